"""
Configuration Manager
---------------------
Centralized configuration management.
Loads configuration from YAML with environment variable overrides.

Rules:
- Every value has a default; a missing file is not an error
- Environment wins over file: MENU_<KEY> (dots become underscores)
- Invalid content fails loudly at load time, never halfway through a request
"""

from pathlib import Path
from typing import Any, Dict, Optional
import logging
import os

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.errors import ConfigError


ENV_PREFIX = "MENU_"


class RenderConfig(BaseModel):
    """Render settings. Unknown fields are kept but never reach the cache key."""
    model_config = ConfigDict(extra="allow")

    theme: str = "light"
    width: int = Field(80, gt=20)
    padding: int = 16
    radius: int = 8
    font_family: str = "sans-serif"
    font_size: int = 14
    title_size: int = 18
    primary: str = "#4a6ee0"
    secondary: str = "#8e9aaf"
    bg_color: str = "#ffffff"
    text_color: str = "#333333"
    header: str = ""
    footer: str = ""


class MenuConfig(BaseModel):
    """Top-level service settings."""
    default_locale: str = "en-US"
    fallback_locale: str = "en-US"
    cache_enabled: bool = True
    refresh_interval_hours: float = Field(0, ge=0)
    use_groups_layout: bool = True
    base_dir: str = "data/menu"
    artifact_extension: str = "txt"
    default_group: str = "other"
    description_signature_length: int = Field(50, gt=0)
    registry_path: Optional[str] = None
    locales_path: Optional[str] = None
    log_level: str = "INFO"
    render: RenderConfig = Field(default_factory=RenderConfig)


class ConfigManager:
    """
    YAML-backed configuration with environment overrides.
    """

    def __init__(self, config_path: Optional[str] = "config.yaml"):
        self._config_path = Path(config_path) if config_path else None
        self._config: Dict[str, Any] = {}
        self._logger = logging.getLogger("menu.infra.config")

        self._load_config()

    def _load_config(self) -> None:
        """Load configuration from file."""
        if self._config_path is None:
            self._config = {}
            return

        if not self._config_path.exists():
            self._logger.warning(f"Config file not found: {self._config_path}")
            self._config = {}
            return

        try:
            with open(self._config_path, 'r', encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {self._config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config root must be a mapping: {self._config_path}")

        self._config = data
        self._logger.info(f"Loaded config from {self._config_path}")

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get a configuration value.
        Supports dot notation: 'section.key'
        Environment variables override file config.
        """
        env_value = os.getenv(f"{ENV_PREFIX}{key.upper().replace('.', '_')}")
        if env_value is not None:
            return env_value

        value: Any = self._config
        for part in key.split('.'):
            if isinstance(value, dict) and part in value:
                value = value[part]
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value (runtime only, not persisted)."""
        parts = key.split('.')
        config = self._config

        for part in parts[:-1]:
            config = config.setdefault(part, {})

        config[parts[-1]] = value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get an entire configuration section."""
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()

    def menu_config(self) -> MenuConfig:
        """Validated MenuConfig with environment overrides applied."""
        data: Dict[str, Any] = {}
        for name in MenuConfig.model_fields:
            if name == "render":
                continue
            value = self.get(name)
            if value is not None:
                data[name] = value

        render: Dict[str, Any] = dict(self.get_section("render") or {})
        for name in RenderConfig.model_fields:
            value = self.get(f"render.{name}")
            if value is not None:
                render[name] = value
        data["render"] = render

        try:
            return MenuConfig(**data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e


def load_config(config_path: Optional[str] = None) -> MenuConfig:
    """Load MenuConfig from `config_path` (defaults only when None)."""
    return ConfigManager(config_path).menu_config()
