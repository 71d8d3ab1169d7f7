# Core module - Menu service, renderers and error handling
# The menu service is the ONLY coordinator between extraction, cache and renderer
#
# Only errors are re-exported here: core.menu and core.renderer depend on the
# commands package, which itself depends on core.errors.

from .errors import (
    ErrorHandler, MenuError, ErrorCategory,
    MenuServiceError, ConfigError, CommandNotFoundError,
)

__all__ = [
    "ErrorHandler", "MenuError", "ErrorCategory",
    "MenuServiceError", "ConfigError", "CommandNotFoundError",
]
