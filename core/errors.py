"""
Error Handling Module
---------------------
Typed errors with classification.

Rules:
- A failing node never takes its siblings down
- Cache read problems are misses, not errors
- Cache write problems are logged, never surfaced to the caller
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum, auto
from typing import Any, Dict, List, Optional
import logging
import traceback


class ErrorCategory(Enum):
    """Categories of errors for handling decisions."""
    RESOLUTION_FAILURE = auto()   # A single node failed to build
    OVERRIDE_INVALID = auto()     # Snapshot could not be applied
    CACHE_READ_FAILURE = auto()   # Cached file missing or unreadable
    CACHE_WRITE_FAILURE = auto()  # Atomic write failed
    RENDER_FAILURE = auto()       # Renderer raised
    NOT_FOUND = auto()            # Requested command does not resolve
    CONFIG_ERROR = auto()         # Invalid configuration


class MenuServiceError(Exception):
    """Base class for raised errors."""


class ConfigError(MenuServiceError):
    """Configuration file or value is invalid."""


class CommandNotFoundError(MenuServiceError):
    """A named command does not exist or is not visible to the caller."""

    def __init__(self, name: str):
        super().__init__(f"Command not found: {name}")
        self.name = name


@dataclass
class MenuError:
    """
    Structured error with metadata.

    Used for consistent error handling and reporting.
    """
    category: ErrorCategory
    message: str
    details: Optional[Dict[str, Any]] = None
    timestamp: datetime = field(default_factory=datetime.now)
    stack_trace: Optional[str] = None
    recoverable: bool = True

    @classmethod
    def from_exception(
        cls,
        exception: BaseException,
        category: ErrorCategory,
        details: Optional[Dict] = None
    ) -> "MenuError":
        """Create error from an exception."""
        return cls(
            category=category,
            message=str(exception) or type(exception).__name__,
            details=details,
            stack_trace="".join(traceback.format_exception(
                type(exception), exception, exception.__traceback__
            )),
            recoverable=category not in {
                ErrorCategory.CONFIG_ERROR,
                ErrorCategory.RENDER_FAILURE,
            }
        )

    def __repr__(self) -> str:
        return f"MenuError({self.category.name}: {self.message})"


class ErrorHandler:
    """
    Central error handler with logging and bounded history.
    """

    LEVELS: Dict[ErrorCategory, int] = {
        ErrorCategory.NOT_FOUND: logging.INFO,
        ErrorCategory.OVERRIDE_INVALID: logging.DEBUG,
        ErrorCategory.CACHE_READ_FAILURE: logging.DEBUG,
        ErrorCategory.RESOLUTION_FAILURE: logging.ERROR,
        ErrorCategory.CACHE_WRITE_FAILURE: logging.ERROR,
        ErrorCategory.RENDER_FAILURE: logging.ERROR,
        ErrorCategory.CONFIG_ERROR: logging.CRITICAL,
    }

    MESSAGES: Dict[ErrorCategory, str] = {
        ErrorCategory.RESOLUTION_FAILURE: "Some commands could not be loaded.",
        ErrorCategory.OVERRIDE_INVALID: "A command override was ignored.",
        ErrorCategory.CACHE_READ_FAILURE: "Cached menu unavailable, rebuilding.",
        ErrorCategory.CACHE_WRITE_FAILURE: "The menu could not be cached.",
        ErrorCategory.RENDER_FAILURE: "The menu could not be rendered. Please try again later.",
        ErrorCategory.CONFIG_ERROR: "The menu is misconfigured.",
    }

    def __init__(self, max_history: int = 100):
        self._logger = logging.getLogger("menu.errors")
        self._error_history: List[MenuError] = []
        self._max_history = max_history

    def handle(self, error: MenuError) -> str:
        """
        Handle an error and return user-friendly message.
        """
        self._log_error(error)

        self._error_history.append(error)
        if len(self._error_history) > self._max_history:
            self._error_history.pop(0)

        return self._get_user_message(error)

    def capture(
        self,
        exception: BaseException,
        category: ErrorCategory,
        **details: Any
    ) -> str:
        """Shortcut for handle(MenuError.from_exception(...))."""
        return self.handle(MenuError.from_exception(exception, category, details or None))

    def _log_error(self, error: MenuError) -> None:
        level = self.LEVELS.get(error.category, logging.ERROR)

        self._logger.log(
            level,
            f"{error.category.name}: {error.message}",
            extra={"details": error.details}
        )

        if error.stack_trace and level >= logging.ERROR:
            self._logger.debug(f"Stack trace:\n{error.stack_trace}")

    def _get_user_message(self, error: MenuError) -> str:
        if error.category == ErrorCategory.NOT_FOUND:
            return error.message
        return self.MESSAGES.get(error.category, "An error occurred.")

    @property
    def history(self) -> List[MenuError]:
        return list(self._error_history)

    def get_error_stats(self) -> Dict[str, int]:
        """Count of handled errors per category name."""
        stats: Dict[str, int] = {}
        for error in self._error_history:
            key = error.category.name
            stats[key] = stats.get(key, 0) + 1
        return stats

    def clear_history(self) -> None:
        self._error_history.clear()


def create_not_found_error(name: str) -> MenuError:
    """Create a not-found error for a command name."""
    return MenuError(
        category=ErrorCategory.NOT_FOUND,
        message=f"Command not found: {name}",
        details={"command": name},
    )
