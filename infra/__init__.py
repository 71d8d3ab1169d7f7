# Infrastructure module - Logging, configuration and the internal HTTP service bus
# FastAPI for internal access to menus; import infra.service_bus explicitly

from .logging import (
    get_logger, configure_logging, request_scope,
    log_request_end, get_request_id, generate_request_id
)
from .config import ConfigManager, MenuConfig, RenderConfig, load_config

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "request_scope",
    "log_request_end",
    "get_request_id",
    "generate_request_id",
    # Config
    "ConfigManager",
    "MenuConfig",
    "RenderConfig",
    "load_config",
]
