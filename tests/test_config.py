"""
Configuration Tests
-------------------
Tests for ConfigManager and the MenuConfig models.

Tests cover:
- Defaults without a file
- YAML loading and dotted access
- Environment overrides (top-level and render fields)
- Invalid files and values
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from core.errors import ConfigError
from infra.config import ConfigManager, MenuConfig, RenderConfig, load_config


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "default_locale: zh-CN\n"
        "cache_enabled: false\n"
        "render:\n"
        "  theme: dark\n"
        "  width: 100\n"
        "  api_token: not-a-render-field\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MENU_DEFAULT_LOCALE", "MENU_CACHE_ENABLED", "MENU_RENDER_THEME", "MENU_RENDER_WIDTH"):
        monkeypatch.delenv(name, raising=False)


class TestDefaults:
    """Defaults apply without any file."""

    def test_load_config_defaults(self):
        config = load_config()
        assert config == MenuConfig()
        assert config.default_group == "other"
        assert config.description_signature_length == 50
        assert config.render.width == 80

    def test_missing_file_is_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "missing.yaml")) == MenuConfig()


class TestConfigManager:
    """Tests for ConfigManager."""

    def test_yaml_values(self, config_file):
        config = load_config(str(config_file))
        assert config.default_locale == "zh-CN"
        assert config.cache_enabled is False
        assert config.render.theme == "dark"
        assert config.render.width == 100

    def test_extra_render_fields_kept(self, config_file):
        config = load_config(str(config_file))
        assert config.render.model_dump()["api_token"] == "not-a-render-field"

    def test_dotted_get(self, config_file):
        manager = ConfigManager(str(config_file))
        assert manager.get("render.theme") == "dark"
        assert manager.get("render.missing", "x") == "x"
        assert manager.get_section("render")["width"] == 100

    def test_set_runtime_only(self, config_file):
        manager = ConfigManager(str(config_file))
        manager.set("render.theme", "light")
        assert manager.menu_config().render.theme == "light"

        manager.reload()
        assert manager.menu_config().render.theme == "dark"

    def test_env_overrides(self, config_file, monkeypatch):
        monkeypatch.setenv("MENU_DEFAULT_LOCALE", "ja-JP")
        monkeypatch.setenv("MENU_CACHE_ENABLED", "true")
        monkeypatch.setenv("MENU_RENDER_WIDTH", "120")

        config = load_config(str(config_file))
        assert config.default_locale == "ja-JP"
        assert config.cache_enabled is True
        assert config.render.width == 120
        assert config.render.theme == "dark"

    def test_sample_config(self, project_root):
        config = load_config(str(project_root / "config.yaml"))
        assert config.registry_path == "data/registry.yaml"
        assert config.render.header == "Commands"


class TestInvalidConfig:
    """Invalid content fails at load time."""

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("render: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigManager(str(path))

    def test_non_mapping_root(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            ConfigManager(str(path))

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("refresh_interval_hours: -1\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_invalid_env_value(self, monkeypatch):
        monkeypatch.setenv("MENU_RENDER_WIDTH", "narrow")
        with pytest.raises(ConfigError):
            load_config()


def test_render_width_lower_bound():
    with pytest.raises(ValueError):
        RenderConfig(width=10)
