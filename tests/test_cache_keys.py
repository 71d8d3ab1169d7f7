"""
Cache Key Tests
---------------
Tests for deterministic cache keys.

Tests cover:
- Order and duplicate independence
- Whitelisted config fields only
- Prefix selection
- Registry mutation token
"""

import random
import re

import pytest
from pathlib import Path
import sys

sys.path.insert(0, str(Path(__file__).parent.parent))

from cache.keys import (
    CacheKeyGenerator, command_signature, registry_mutation_token, sanitize_name
)
from commands.models import Command, NameEntry, Option
from infra.config import RenderConfig


def make_command(name, desc="", **kwargs):
    return Command(group="other", name=[NameEntry(name, True, True)], desc=desc, **kwargs)


@pytest.fixture
def keys():
    return CacheKeyGenerator()


@pytest.fixture
def commands():
    return [
        make_command("ping", "Check that the bot is alive"),
        make_command("help", "Show the command menu", options=[Option("all", syntax="-a")]),
        make_command("info", "Look up information", subs=[make_command("info.user")]),
    ]


class TestCacheKeyGenerator:
    """Tests for CacheKeyGenerator."""

    def test_key_format(self, keys, commands):
        key = keys.key(commands, RenderConfig())
        assert re.fullmatch(r"menu_[0-9a-f]{12}", key)

    def test_deterministic_under_shuffle(self, keys, commands):
        config = RenderConfig()
        expected = keys.key(commands, config)
        rng = random.Random(7)
        for _ in range(10):
            shuffled = list(commands)
            rng.shuffle(shuffled)
            assert keys.key(shuffled, config) == expected

    def test_duplicates_ignored(self, keys, commands):
        config = RenderConfig()
        assert keys.key(commands + commands[:2], config) == keys.key(commands, config)

    def test_unrelated_config_ignored(self, keys, commands):
        base = {"theme": "dark", "width": 80}
        assert keys.key(commands, base) == keys.key(commands, {**base, "api_token": "secret"})

    def test_render_field_changes_key(self, keys, commands):
        assert keys.key(commands, {"theme": "dark"}) != keys.key(commands, {"theme": "light"})

    def test_config_model_and_mapping_agree(self, keys, commands):
        config = RenderConfig(theme="dark")
        assert keys.key(commands, config) == keys.key(commands, config.model_dump())

    def test_content_changes_key(self, keys, commands):
        config = RenderConfig()
        changed = [commands[0].with_changes(desc="Different")] + commands[1:]
        assert keys.key(changed, config) != keys.key(commands, config)

    def test_long_description_truncated(self, keys):
        """Only the first characters of a description are part of the key."""
        head = "x" * 50
        first = [make_command("ping", head + "one tail")]
        second = [make_command("ping", head + "another tail")]
        assert keys.key(first, {}) == keys.key(second, {})

    def test_registry_token_changes_key(self, keys, commands):
        assert keys.key(commands, {}, registry_token="a") != keys.key(commands, {}, registry_token="b")

    def test_prefix(self, keys, commands):
        assert keys.prefix(commands) == "menu"
        assert keys.prefix(commands[:1]) == "ping"
        assert keys.prefix(commands, scope_name="info.user") == "info_user"
        assert keys.key(commands, {}, scope_name="menu").startswith("menu_")


class TestSignatures:
    """Tests for command_signature()."""

    def test_signature_fields(self):
        cmd = Command(
            group="system",
            name=[NameEntry("help", True, True), NameEntry("h", False)],
            desc="Show",
            options=[Option("all")],
        )
        assert command_signature(cmd) == {
            "name": "help",
            "aliases": [["h", False, False], ["help", True, True]],
            "desc": "Show",
            "group": "system",
            "hidden": False,
            "authority": 0,
            "options": 1,
            "subs": 0,
        }


class TestRegistryToken:
    """Tests for registry_mutation_token()."""

    def test_stable_across_order(self):
        a = {"x": {"override": {"config": {"a": 1}}}, "y": {"override": {}}}
        b = {"y": {"override": {}}, "x": {"override": {"config": {"a": 1}}}}
        assert registry_mutation_token(a) == registry_mutation_token(b)

    def test_shape_changes_token(self):
        before = {"x": {"override": {"config": {"a": 1}}}}
        after = {"x": {"override": {"config": {"a": 1}, "texts": {"usage": "u"}}}}
        assert registry_mutation_token(before) != registry_mutation_token(after)
        assert registry_mutation_token({}) != registry_mutation_token(before)


def test_sanitize_name():
    assert sanitize_name('a/b\\c?d%e*f:g|h"i<j>k.l') == "a_b_c_d_e_f_g_h_i_j_k_l"
    assert sanitize_name(None) == ""
