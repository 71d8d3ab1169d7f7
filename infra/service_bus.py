"""
FastAPI Service Bus
-------------------
Internal API for menu access.
Provides REST endpoints for command trees, rendered menus and cache control.

This is NOT an external-facing API - the caller supplies its own authority.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Dict, List, Optional
import logging

from fastapi import FastAPI, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from commands.context import RequestContext
from core.errors import CommandNotFoundError


# Request/Response Models

class NameEntryModel(BaseModel):
    name: str
    enabled: bool
    is_default: bool = False


class OptionModel(BaseModel):
    name: str
    desc: str = ""
    syntax: str = ""
    hidden: bool = False
    authority: int = 0


class CommandModel(BaseModel):
    """Serialized command tree node."""
    group: str
    name: List[NameEntryModel]
    hidden: bool = False
    authority: int = 0
    desc: str = ""
    usage: str = ""
    examples: str = ""
    options: List[OptionModel] = Field(default_factory=list)
    subs: Optional[List["CommandModel"]] = None


class ClearCacheResponse(BaseModel):
    cleared: int
    scope: Optional[str] = None


class RefreshResponse(BaseModel):
    key: Optional[str]
    commands: int


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    version: str = "0.1.0"
    cache_enabled: bool = True
    timestamp: str = Field(default_factory=lambda: datetime.now().isoformat())


MEDIA_TYPES: Dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "webp": "image/webp",
    "txt": "text/plain; charset=utf-8",
    "html": "text/html; charset=utf-8",
}


# Service Bus

class ServiceBus:
    """
    Internal service bus for the menu service.

    Provides REST API for:
    - Command trees (JSON)
    - Rendered menus (artifact bytes)
    - Cache clearing and refresh
    """

    def __init__(self, menu_service=None):
        self._menu = menu_service
        self._logger = logging.getLogger("menu.infra.service_bus")
        self._app: Optional[FastAPI] = None

    def set_menu_service(self, menu_service) -> None:
        self._menu = menu_service

    def create_app(self) -> FastAPI:
        """Create and configure the FastAPI application."""

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            self._logger.info("Service bus starting...")
            if self._menu is not None:
                self._menu.start_refresh_loop(RequestContext())
            yield
            if self._menu is not None:
                await self._menu.stop_refresh_loop()
            self._logger.info("Service bus shutting down...")

        app = FastAPI(
            title="Command Menu Internal API",
            description="Internal service bus for command menus",
            version="0.1.0",
            lifespan=lifespan
        )

        @app.exception_handler(CommandNotFoundError)
        async def not_found_handler(request: Request, exc: CommandNotFoundError):
            return JSONResponse(status_code=404, content={"detail": str(exc), "command": exc.name})

        self._register_routes(app)

        self._app = app
        return app

    def _service(self):
        if self._menu is None:
            raise HTTPException(status_code=503, detail="Menu service not initialized")
        return self._menu

    @staticmethod
    def _context(authority: int, locale: Optional[str], platform: Optional[str]) -> RequestContext:
        return RequestContext(
            authority=authority,
            locales=[locale] if locale else [],
            platform=platform,
        )

    def _artifact_response(self, result) -> Response:
        media_type = MEDIA_TYPES.get(self._menu.store.extension, "application/octet-stream")
        return Response(
            content=result.artifact,
            media_type=media_type,
            headers={
                "X-Cache-Key": result.key or "",
                "X-Cache": "HIT" if result.cache_hit else "MISS",
            },
        )

    def _register_routes(self, app: FastAPI) -> None:
        """Register all API routes."""

        @app.get("/health", response_model=HealthResponse, tags=["System"])
        async def health_check():
            """Health check endpoint."""
            service = self._service()
            return HealthResponse(status="healthy", cache_enabled=service.config.cache_enabled)

        @app.get("/commands", response_model=List[CommandModel], tags=["Commands"])
        async def list_commands(
            authority: int = Query(0, ge=0),
            locale: Optional[str] = None,
            platform: Optional[str] = None,
            show_hidden: bool = False,
        ):
            """Command tree visible to the caller."""
            service = self._service()
            context = self._context(authority, locale, platform)
            commands = await service.get_commands(context, locale, show_hidden=show_hidden)
            return [cmd.to_dict() for cmd in commands]

        @app.get("/commands/{name}", response_model=CommandModel, tags=["Commands"])
        async def get_command(
            name: str,
            authority: int = Query(0, ge=0),
            locale: Optional[str] = None,
            platform: Optional[str] = None,
            show_hidden: bool = False,
        ):
            """One command by (dotted) name."""
            service = self._service()
            context = self._context(authority, locale, platform)
            command = await service.get_command(context, name, locale, show_hidden=show_hidden)
            if command is None:
                raise CommandNotFoundError(name)
            return command.to_dict()

        @app.get("/menu", tags=["Menu"])
        async def render_menu(
            authority: int = Query(0, ge=0),
            locale: Optional[str] = None,
            platform: Optional[str] = None,
            show_hidden: bool = False,
        ):
            """Rendered command list."""
            service = self._service()
            context = self._context(authority, locale, platform)
            result = await service.render_menu(context, locale, show_hidden=show_hidden)
            return self._artifact_response(result)

        @app.get("/menu/{name}", tags=["Menu"])
        async def render_command(
            name: str,
            authority: int = Query(0, ge=0),
            locale: Optional[str] = None,
            platform: Optional[str] = None,
            show_hidden: bool = False,
        ):
            """Rendered detail view of one command."""
            service = self._service()
            context = self._context(authority, locale, platform)
            result = await service.render_command(context, name, locale, show_hidden=show_hidden)
            if not result.found:
                raise CommandNotFoundError(name)
            return self._artifact_response(result)

        @app.delete("/cache", response_model=ClearCacheResponse, tags=["Cache"])
        async def clear_cache(scope: Optional[str] = None):
            """Delete cached artifacts, optionally only one command's."""
            service = self._service()
            cleared = await service.clear_cache(scope)
            return ClearCacheResponse(cleared=cleared, scope=scope)

        @app.post("/refresh", response_model=RefreshResponse, tags=["Cache"])
        async def refresh(
            authority: int = Query(0, ge=0),
            locale: Optional[str] = None,
            platform: Optional[str] = None,
        ):
            """Clear the cache and rebuild the command list."""
            service = self._service()
            context = self._context(authority, locale, platform)
            result = await service.refresh(context, locale)
            return RefreshResponse(key=result.key, commands=len(result.commands))


def create_app(menu_service=None) -> FastAPI:
    """Create the FastAPI application."""
    bus = ServiceBus(menu_service)
    return bus.create_app()
