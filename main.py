#!/usr/bin/env python3
"""
Command Menu
============

Command-line entry point for the menu service.

Usage:
    python main.py list                       # Visible command tree
    python main.py show info.user             # One command as JSON
    python main.py render                     # Rendered list view
    python main.py render info -o info.txt    # Rendered detail view, written to a file
    python main.py prerender                  # Render every command into the cache
    python main.py clear-cache --scope info   # Drop cached artifacts
    python main.py key [NAME]                 # Print the cache key only
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent))

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.tree import Tree

from cache.keys import MENU_PREFIX
from commands.context import RequestContext
from commands.models import Command
from core.errors import CommandNotFoundError, ConfigError
from core.menu import MenuService, create_menu_service
from infra.config import ConfigManager
from infra.logging import configure_logging


# Setup rich console
console = Console()


def print_tree(commands: List[Command], locale: str) -> None:
    """Print commands as a Rich tree."""
    tree = Tree(Text(f"Commands ({locale})", style="bold cyan"))

    def add(branch: Tree, command: Command) -> None:
        label = Text(command.default_name, style="bold")
        aliases = [n for n in command.callable_names if n != command.default_name]
        if aliases:
            label.append(f" ({', '.join(aliases)})", style="dim")
        if command.hidden:
            label.append(" [hidden]", style="yellow")
        if command.authority:
            label.append(f" [authority {command.authority}]", style="magenta")
        if command.desc:
            label.append(f"  {command.desc}")
        node = branch.add(label)
        for option in command.options:
            node.add(Text(f"{option.name} {option.syntax}  {option.desc}".strip(), style="green"))
        for sub in command.subs or []:
            add(node, sub)

    for command in commands:
        add(tree, command)

    console.print(tree)


def write_artifact(artifact: bytes, output: Optional[str]) -> None:
    """Write to `output`, or print text artifacts to the console."""
    if output:
        Path(output).write_bytes(artifact)
        console.print(f"[green]Wrote {len(artifact)} bytes to {output}[/green]")
    else:
        console.print(artifact.decode("utf-8", errors="replace"), markup=False, highlight=False)


async def run(service: MenuService, args: argparse.Namespace) -> int:
    context = RequestContext(
        authority=args.authority,
        locales=[args.locale] if args.locale else [],
        platform=args.platform,
    )
    locale = service.resolve_locale(context, args.locale)

    if args.action == "list":
        commands = await service.get_commands(context, locale, show_hidden=args.show_hidden)
        print_tree(commands, locale)
        return 0

    if args.action == "show":
        command = await service.get_command(context, args.name, locale, show_hidden=args.show_hidden)
        if command is None:
            raise CommandNotFoundError(args.name)
        console.print_json(json.dumps(command.to_dict(), ensure_ascii=False))
        return 0

    if args.action == "render":
        if args.name:
            result = await service.render_command(context, args.name, locale, show_hidden=args.show_hidden)
        else:
            result = await service.render_menu(context, locale, show_hidden=args.show_hidden)
        if not result.found:
            raise CommandNotFoundError(args.name)
        console.print(f"[dim]key: {result.key} ({'hit' if result.cache_hit else 'miss'})[/dim]")
        write_artifact(result.artifact, args.output)
        return 0

    if args.action == "prerender":
        stats = await service.prerender(context, locale)
        console.print(Panel(
            f"Total: {stats.total}\nCached: {stats.cached}\n"
            f"Rendered: {stats.rendered}\nFailed: {stats.failed}",
            title="Pre-render",
            border_style="green" if not stats.failed else "yellow"
        ))
        return 0 if not stats.failed else 1

    if args.action == "clear-cache":
        cleared = await service.clear_cache(args.scope)
        console.print(f"[green]Cleared {cleared} cached files[/green]")
        return 0

    if args.action == "key":
        if args.name:
            related = await service.extractor.build_related(context, args.name, locale)
            if not related:
                raise CommandNotFoundError(args.name)
            commands = service.extractor.filter(related, show_hidden=args.show_hidden, is_detail_view=True)
            console.print(service.cache_key(commands, locale, scope_name=args.name))
        else:
            commands = await service.get_commands(context, locale, show_hidden=args.show_hidden)
            console.print(service.cache_key(
                commands, locale, scope_name=MENU_PREFIX, grouped=service.config.use_groups_layout
            ))
        return 0

    return 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Command Menu - command help extraction, caching and rendering"
    )
    parser.add_argument(
        "--config", "-c",
        default="config.yaml",
        help="Path to configuration file"
    )
    parser.add_argument("--registry", help="Command registry YAML (overrides config)")
    parser.add_argument("--locales", help="Locale file or directory (overrides config)")
    parser.add_argument("--authority", "-a", type=int, default=0, help="Caller authority level")
    parser.add_argument("--locale", help="Preferred locale")
    parser.add_argument("--platform", help="Caller platform")
    parser.add_argument("--show-hidden", action="store_true", help="Include hidden commands and options")
    parser.add_argument(
        "--log-level", "-l",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level"
    )

    actions = parser.add_subparsers(dest="action", required=True)

    actions.add_parser("list", help="Print the visible command tree")

    show = actions.add_parser("show", help="Print one command as JSON")
    show.add_argument("name")

    render = actions.add_parser("render", help="Render the list view or one command")
    render.add_argument("name", nargs="?")
    render.add_argument("--output", "-o", help="Write the artifact to this file")

    actions.add_parser("prerender", help="Render every command into the cache")

    clear = actions.add_parser("clear-cache", help="Delete cached artifacts")
    clear.add_argument("--scope", help="Only artifacts of this command")

    key = actions.add_parser("key", help="Print the cache key for a view")
    key.add_argument("name", nargs="?")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = ConfigManager(args.config).menu_config()
    except ConfigError as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        return 1

    if args.registry:
        config.registry_path = args.registry
    if args.locales:
        config.locales_path = args.locales

    log_level = args.log_level or config.log_level.upper()
    configure_logging(level=getattr(logging, log_level, logging.INFO), file=False)

    try:
        service = create_menu_service(config)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]{e}[/red]")
        return 1

    try:
        return asyncio.run(run(service, args))
    except CommandNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
