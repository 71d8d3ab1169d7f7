#!/usr/bin/env python3
"""
Menu Service Bus Server
-----------------------
Runs the FastAPI service bus over a MenuService built from config.

Usage:
    python -m infra.server --port 8000
    python -m infra.server --config config.yaml --prerender
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Ensure project root is in path
sys.path.insert(0, str(Path(__file__).parent.parent))

import uvicorn
from rich.console import Console

from commands.context import RequestContext
from core.menu import create_menu_service
from infra.config import ConfigManager
from infra.logging import configure_logging
from infra.service_bus import ServiceBus

console = Console()


def main():
    parser = argparse.ArgumentParser(description="Command Menu Service Bus Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    parser.add_argument("--config", default="config.yaml", help="Path to config file")
    parser.add_argument("--registry", help="Command registry YAML (overrides config)")
    parser.add_argument("--locales", help="Locale file or directory (overrides config)")
    parser.add_argument("--prerender", action="store_true", help="Pre-render every command before serving")
    parser.add_argument("--log-level", default=None, choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args()

    config = ConfigManager(args.config).menu_config()
    if args.registry:
        config.registry_path = args.registry
    if args.locales:
        config.locales_path = args.locales

    log_level = args.log_level or config.log_level.upper()
    configure_logging(level=getattr(logging, log_level, logging.INFO))

    console.print("[dim]Creating menu service...[/dim]")
    service = create_menu_service(config)

    if args.prerender:
        console.print("[dim]Pre-rendering...[/dim]")
        stats = asyncio.run(service.prerender(RequestContext()))
        console.print(
            f"[green]Pre-rendered {stats.total} commands[/green] "
            f"(cached: {stats.cached}, rendered: {stats.rendered}, failed: {stats.failed})"
        )

    bus = ServiceBus(service)
    app = bus.create_app()

    console.print(f"\n[bold green]Command Menu Service Bus[/bold green]")
    console.print(f"Running on http://{args.host}:{args.port}")
    console.print(f"API docs: http://{args.host}:{args.port}/docs")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        app,
        host=args.host,
        port=args.port,
        log_level=log_level.lower()
    )


if __name__ == "__main__":
    main()
