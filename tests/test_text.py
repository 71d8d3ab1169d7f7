"""
Locale Text Tests
-----------------
Tests for structured-text flattening, text overrides and the locale catalog.
"""

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from commands.context import RequestContext
from commands.text import LocaleCatalog, effective_text, flatten_text, resolve_locale


class TestFlattenText:
    """Tests for flatten_text()."""

    def test_string_passthrough(self):
        assert flatten_text("  as is  ") == "  as is  "

    def test_structured_nodes(self):
        node = [
            "Use",
            {"type": "code", "attrs": {"content": " ping "}},
            ["to", ["check"]],
            {"type": "span", "children": ["the", {"attrs": {"content": "bot"}}]},
        ]
        assert flatten_text(node) == "Use ping to check the bot"

    def test_unknown_values(self):
        assert flatten_text(None) == ""
        assert flatten_text(42) == ""
        assert flatten_text([None, {}, ""]) == ""


class TestEffectiveText:
    """Tests for text override lookup."""

    def fallback(self):
        return "fallback"

    def test_no_override(self):
        assert effective_text(None, "usage", ["en-US"], "en-US", self.fallback) == "fallback"
        assert effective_text({"usage": ""}, "usage", ["en-US"], "en-US", self.fallback) == "fallback"

    def test_string_override(self):
        assert effective_text({"usage": "u"}, "usage", [], "en-US", self.fallback) == "u"

    def test_locale_map(self):
        texts = {"description": {"zh-CN": "中文", "en-US": "English", "ja-JP": "日本語"}}
        assert effective_text(texts, "description", ["zh-CN"], "en-US", self.fallback) == "中文"
        assert effective_text(texts, "description", ["fr-FR"], "en-US", self.fallback) == "English"

    def test_any_string_value(self):
        texts = {"description": {"ja-JP": "日本語"}}
        assert effective_text(texts, "description", ["fr-FR"], "en-US", self.fallback) == "日本語"


class TestLocaleCatalog:
    """Tests for LocaleCatalog."""

    @pytest.fixture
    def catalog(self):
        catalog = LocaleCatalog(fallback_locale="en-US")
        catalog.add("en-US", {"commands": {"ping": {"description": "Pong {who}", "usage": "ping"}}})
        catalog.add("zh-CN", {"commands": {"ping": {"description": "乒 {who}"}}})
        return catalog

    def test_flattened_keys(self, catalog):
        assert catalog.locales() == ["en-US", "zh-CN"]
        assert catalog.has("zh-CN")
        assert not catalog.has("fr-FR")

    def test_locale_then_fallback(self, catalog):
        assert catalog.render(["zh-CN"], "commands.ping.usage") == "ping"
        assert catalog.render(["zh-CN"], "commands.ping.description", {"who": "x"}) == "乒 x"

    def test_path_order_wins_over_locale(self, catalog):
        """Every locale is tried for a path before the next path."""
        paths = ["commands.ping.usage", "commands.ping.description"]
        assert catalog.render(["zh-CN"], paths) == "ping"

    def test_empty_path_stops_search(self, catalog):
        assert catalog.render(["en-US"], ["commands.missing", "", "commands.ping.usage"]) == ""

    def test_unknown_placeholder_kept(self, catalog):
        assert catalog.render(["en-US"], "commands.ping.description", {"other": 1}) == "Pong {who}"

    def test_load_directory(self, tmp_path):
        (tmp_path / "en-US.yml").write_text("en-US:\n  a:\n    b: hello\n", encoding="utf-8")
        (tmp_path / "zh-CN.yaml").write_text("zh-CN:\n  a:\n    b: 你好\n", encoding="utf-8")
        catalog = LocaleCatalog()
        catalog.load(tmp_path)
        assert catalog.render(["zh-CN"], "a.b") == "你好"
        assert catalog.render([], "a.b") == "hello"

    def test_load_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            LocaleCatalog().load(tmp_path / "nope")

    def test_sample_locales_load(self, project_root):
        catalog = LocaleCatalog()
        catalog.load(project_root / "locales")
        assert catalog.render(["en-US"], "commands.roll.options.mode.sum") == "Print only the total"


class TestResolveLocale:
    """Tests for resolve_locale()."""

    def test_first_known_locale(self):
        context = RequestContext(locales=["fr-FR"], user_locales=["zh-CN"])
        assert resolve_locale(context, ["en-US", "zh-CN"], "en-US") == "zh-CN"

    def test_default(self):
        assert resolve_locale(RequestContext(), ["zh-CN"], "en-US") == "en-US"
