"""
Menu Logging
------------
Everything under the `menu` logger namespace, tagged with the id of the menu
request being served.

- `request_scope()` binds a request id for the duration of a block; the id
  follows the request through extraction, cache lookup and rendering.
- Console output goes through Rich; the file log is JSON lines, one object
  per record, rotated by size.
- INFO for state changes, WARNING for recoverable trouble, ERROR when an
  operation failed.

Usage:
    from infra.logging import get_logger, request_scope, log_request_end

    logger = get_logger("core.menu")

    with request_scope() as request_id:
        logger.info("Rendering menu")
        log_request_end(request_id, success=True, cache_hit=False)
"""

import contextvars
import json
import logging
import logging.handlers
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from rich.logging import RichHandler

ROOT_LOGGER = "menu"
NO_REQUEST = "-"

_current_request: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "menu_request_id", default=None
)
_configured = False


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def get_request_id() -> Optional[str]:
    """Id of the menu request being served in this context, if any."""
    return _current_request.get()


@contextmanager
def request_scope(request_id: Optional[str] = None) -> Iterator[str]:
    """Bind a request id (a fresh one by default) until the block exits."""
    request_id = request_id or generate_request_id()
    token = _current_request.set(request_id)
    try:
        yield request_id
    finally:
        _current_request.reset(token)


class RequestIdFilter(logging.Filter):
    """Stamps `request_id` on records that were not given one explicitly."""

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = get_request_id() or NO_REQUEST
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record; menu-specific extras are copied when set."""

    EXTRA_FIELDS = ("command", "cache_key", "cache_hit", "success", "locale", "details")

    def format(self, record: logging.LogRecord) -> str:
        entry = dict(
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            request_id=getattr(record, "request_id", NO_REQUEST),
        )
        entry.update(
            (name, getattr(record, name)) for name in self.EXTRA_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class FileRotatingHandler(logging.handlers.RotatingFileHandler):
    """
    Size-rotated log file whose backups keep the `.log` suffix:
    menu.log, menu.1.log, menu.2.log, ...
    """

    def __init__(self, filename: str, max_bytes: int = 10 * 1024 * 1024, backup_count: int = 3):
        path = Path(filename)
        path.parent.mkdir(parents=True, exist_ok=True)
        super().__init__(path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
        self.namer = self._backup_name

    @staticmethod
    def _backup_name(default_name: str) -> str:
        # "<dir>/menu.log.2" -> "<dir>/menu.2.log"
        base, _, index = default_name.rpartition(".")
        path = Path(base)
        return str(path.with_suffix(f".{index}{path.suffix}"))


def configure_logging(
    level: int = logging.INFO,
    log_dir: Optional[str] = None,
    console: bool = True,
    file: bool = True,
) -> None:
    """
    Attach the console and file handlers to the `menu` logger.

    Only the first call has an effect; entry points call this, modules never do.

    Args:
        level: Threshold for the logger and the console handler
        log_dir: Directory for menu.log (default ./logs)
        console: Log to the terminal through Rich
        file: Log JSON lines to disk (everything from DEBUG up)
    """
    global _configured

    if _configured:
        return

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()
    stamp = RequestIdFilter()

    handlers = []
    if console:
        rich_handler = RichHandler(rich_tracebacks=True, show_path=False, level=level)
        rich_handler.setFormatter(logging.Formatter("[%(request_id)s] %(name)s: %(message)s"))
        handlers.append(rich_handler)
    if file:
        file_handler = FileRotatingHandler(str(Path(log_dir or "logs") / "menu.log"))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        handlers.append(file_handler)

    for handler in handlers:
        handler.addFilter(stamp)
        logger.addHandler(handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Logger `name` inside the `menu` namespace."""
    if name == ROOT_LOGGER or name.startswith(ROOT_LOGGER + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_request_end(
    request_id: str,
    success: bool,
    cache_hit: bool = False,
    command: Optional[str] = None,
    error: Optional[str] = None,
) -> None:
    """Closing record of a menu request: INFO when served, ERROR when not."""
    command = command or NO_REQUEST
    if success:
        level, summary = logging.INFO, f"cache_hit={cache_hit}"
    else:
        level, summary = logging.ERROR, f"error={error or 'unknown'}"

    get_logger("core.request").log(
        level,
        f"REQUEST_END command={command} success={success} {summary}",
        extra={"request_id": request_id, "success": success, "cache_hit": cache_hit, "command": command},
    )
