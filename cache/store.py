"""
File Store
----------
Content-addressable file persistence for menu data and rendered artifacts.

Layout:
    <base>/<kind>-<locale>.json   JSON data (e.g. the extracted command tree)
    <base>/cache/<key>.<ext>      rendered artifacts

Rules:
- Every write goes to a uniquely named temp sibling and is renamed into place
- A failed write removes its temp file and re-raises
- Every failed read (missing, unparseable, empty) is a miss: None
"""

from pathlib import Path
from typing import Any, Optional, Union
import json
import logging
import uuid

import aiofiles
import aiofiles.os

from .keys import sanitize_name


class FileStore:
    """
    Async file store for JSON data and binary artifacts.
    """

    def __init__(self, base_dir: Union[str, Path], extension: str = "png"):
        self.base_dir = Path(base_dir)
        self.cache_dir = self.base_dir / "cache"
        self.extension = extension.lstrip(".")
        self._logger = logging.getLogger("menu.cache.store")

    def data_path(self, kind: str, locale: Optional[str] = None) -> Path:
        """Path of a JSON data file."""
        name = f"{kind}-{sanitize_name(locale)}.json" if locale else f"{kind}.json"
        return self.base_dir / name

    def cache_path(self, key: str) -> Path:
        """Path of a rendered artifact."""
        return self.cache_dir / f"{key}.{self.extension}"

    async def _atomic_write(self, path: Path, data: bytes) -> None:
        await aiofiles.os.makedirs(path.parent, exist_ok=True)
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp, path)
        except BaseException:
            try:
                await aiofiles.os.remove(tmp)
            except FileNotFoundError:
                pass
            raise

    # JSON data

    async def exists(self, kind: str, locale: Optional[str] = None) -> bool:
        return await aiofiles.os.path.isfile(self.data_path(kind, locale))

    async def save(self, kind: str, data: Any, locale: Optional[str] = None) -> None:
        """Write `data` as JSON. Errors propagate."""
        payload = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
        path = self.data_path(kind, locale)
        await self._atomic_write(path, payload)
        self._logger.debug(f"Saved {path.name} ({len(payload)} bytes)")

    async def load(self, kind: str, locale: Optional[str] = None) -> Optional[Any]:
        """
        Read JSON data, or None.

        List payloads must be non-empty and start with a command-shaped entry
        (a mapping with `commands` or `name`); anything else is treated as absent.
        """
        path = self.data_path(kind, locale)
        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                data = json.loads(await f.read())
        except FileNotFoundError:
            self._logger.debug(f"No data file: {path.name}")
            return None
        except (OSError, ValueError) as e:
            self._logger.warning(f"Unreadable data file {path.name}: {e}")
            return None

        if isinstance(data, list):
            first = data[0] if data else None
            if not isinstance(first, dict) or not ("commands" in first or "name" in first):
                self._logger.warning(f"Invalid data format in {path.name}")
                return None
        return data

    async def delete(self, kind: str, locale: Optional[str] = None) -> bool:
        """Remove a JSON data file. Returns True if it existed."""
        try:
            await aiofiles.os.remove(self.data_path(kind, locale))
            return True
        except FileNotFoundError:
            return False

    # Rendered artifacts

    async def has_cache(self, key: str) -> bool:
        return await aiofiles.os.path.isfile(self.cache_path(key))

    async def get_cache(self, key: str) -> Optional[bytes]:
        """Artifact bytes for `key`, or None on any miss."""
        path = self.cache_path(key)
        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read()
        except FileNotFoundError:
            self._logger.debug(f"Cache miss: {key}")
            return None
        except OSError as e:
            self._logger.warning(f"Failed to read cache {key}: {e}")
            return None

        if not data:
            self._logger.warning(f"Empty cache file: {key}")
            return None
        return data

    async def save_cache(self, key: str, data: bytes) -> None:
        """Store artifact bytes under `key`. Errors propagate."""
        if not isinstance(data, (bytes, bytearray)) or not data:
            raise ValueError(f"Refusing to cache empty or non-binary artifact: {key}")
        await self._atomic_write(self.cache_path(key), bytes(data))
        self._logger.debug(f"Cached {key} ({len(data)} bytes)")

    async def clear_cache(self, scope_name: Optional[str] = None) -> int:
        """
        Delete cached artifacts; only `<sanitized scope>_*` ones when scoped.

        Returns the number of files removed.
        """
        try:
            files = await aiofiles.os.listdir(self.cache_dir)
        except FileNotFoundError:
            return 0

        prefix = f"{sanitize_name(scope_name)}_" if scope_name else ""
        suffix = f".{self.extension}"
        removed = 0

        for name in files:
            if prefix:
                if not (name.startswith(prefix) and name.endswith(suffix)):
                    continue
            elif not (name.endswith(suffix) or name.endswith(".tmp")):
                continue
            try:
                await aiofiles.os.remove(self.cache_dir / name)
                removed += 1
            except OSError as e:
                self._logger.debug(f"Failed to delete cache file {name}: {e}")

        self._logger.info(
            f"Cleared {removed} cache files" + (f" for {scope_name}" if scope_name else "")
        )
        return removed
