"""
Menu Test Configuration
-----------------------
Shared fixtures and configuration for all tests.

Registries and catalogs are built in code so tests never depend on the
sample data files, except where a test loads them on purpose.
"""

import sys
from pathlib import Path
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from commands.context import RequestContext
from commands.registry import CommandNode, CommandRegistry
from commands.text import LocaleCatalog
from core.menu import MenuService
from infra.config import MenuConfig


# =============================================================================
# Test Doubles
# =============================================================================

class CountingRenderer:
    """Renderer double: deterministic bytes, counts every call."""

    extension = "txt"

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.list_calls = 0
        self.command_calls = 0

    async def render_list(self, commands, config, grouped=False):
        self.list_calls += 1
        if self.fail:
            raise RuntimeError("renderer exploded")
        names = ",".join(cmd.default_name for cmd in commands)
        return f"list:{grouped}:{names}".encode("utf-8")

    async def render_command(self, commands, config, title=None):
        self.command_calls += 1
        if self.fail:
            raise RuntimeError("renderer exploded")
        names = ",".join(cmd.default_name for cmd in commands)
        return f"detail:{title}:{names}".encode("utf-8")


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture(scope="session")
def project_root():
    """Return the project root path."""
    return PROJECT_ROOT


def build_registry() -> CommandRegistry:
    registry = CommandRegistry()

    registry.add(CommandNode(
        name="help",
        config={"group": "system"},
        aliases={"help": {}, "h": {}},
        options={"all": {"syntax": "-a"}},
    ))
    registry.add(CommandNode(name="ping", config={"group": "system"}, usage="ping [target]"))

    info = registry.add(CommandNode(name="info", config={"group": "query"}))
    registry.add(CommandNode(name="info.user", options={"id": {"syntax": "-i <id>"}}), info)
    registry.add(CommandNode(name="info.group", config={"authority": 2}), info)
    registry.add(CommandNode(name="info.debug", config={"hidden": True}), info)

    registry.add(CommandNode(
        name="admin",
        config={"group": "manage", "authority": 3},
        options={"force": {"syntax": "-f", "authority": 4}},
    ))
    return registry


def build_catalog() -> LocaleCatalog:
    catalog = LocaleCatalog(fallback_locale="en-US")
    catalog.add("en-US", {
        "commands": {
            "help": {"description": "Show the command menu", "usage": "help [command]"},
            "ping": {"description": "Check that the bot is alive"},
            "info": {
                "description": "Look up information",
                "user": {"description": "Show a user's profile", "options": {"id": "Look up by id"}},
                "group": {"description": "Show group statistics"},
                "debug": {"description": "Dump internal state"},
            },
            "admin": {"description": "Administrative tools", "options": {"force": "Skip confirmation"}},
        }
    })
    catalog.add("zh-CN", {
        "commands": {
            "help": {"description": "显示指令菜单"},
        }
    })
    return catalog


@pytest.fixture
def registry():
    return build_registry()


@pytest.fixture
def catalog():
    return build_catalog()


@pytest.fixture
def context():
    """Anonymous caller."""
    return RequestContext()


@pytest.fixture
def admin_context():
    """Caller with every permission."""
    return RequestContext(authority=5)


@pytest.fixture
def renderer():
    return CountingRenderer()


@pytest.fixture
def menu_config(tmp_path):
    return MenuConfig(base_dir=str(tmp_path / "menu"))


@pytest.fixture
def service(registry, catalog, renderer, menu_config):
    return MenuService(registry, catalog, renderer, config=menu_config)
