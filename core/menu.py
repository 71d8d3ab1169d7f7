"""
Menu Service
------------
Central coordinator for menu requests.
Extract -> key -> cache lookup -> render on miss -> cache save.

Rules:
- Trees are extracted live per request; keys decide whether work is repeated
- A cache write failure never changes what the caller gets back
- "Not found" is an empty result, not an exception
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import asyncio
import contextlib
import logging

from cache.keys import MENU_PREFIX, CacheKeyGenerator, registry_mutation_token
from cache.store import FileStore
from commands.context import RequestContext
from commands.extractor import CommandExtractor, filter_commands
from commands.models import Command
from commands.registry import CommandRegistry, RegistryAdapter
from commands.text import LocaleCatalog, resolve_locale
from infra.config import MenuConfig
from infra.logging import request_scope, log_request_end

from .errors import ErrorCategory, ErrorHandler, create_not_found_error
from .renderer import Renderer, create_renderer


SNAPSHOT_KIND = "data"
PROGRESS_EVERY = 10


@dataclass
class MenuResult:
    """Result of a menu request."""
    found: bool
    key: Optional[str] = None
    artifact: Optional[bytes] = None
    cache_hit: bool = False
    commands: List[Command] = field(default_factory=list)

    def __repr__(self) -> str:
        status = "hit" if self.cache_hit else "miss"
        return f"MenuResult(found={self.found}, key={self.key}, {status})"


@dataclass
class PrerenderStats:
    """Counters for one pre-render pass."""
    total: int = 0
    cached: int = 0
    rendered: int = 0
    failed: int = 0


class MenuService:
    """
    Orchestrates extraction, keying, caching and rendering.

    Responsibilities:
    - List and detail requests
    - Pre-rendering every command
    - Refresh (manual and periodic)
    """

    def __init__(
        self,
        registry: RegistryAdapter,
        catalog: LocaleCatalog,
        renderer: Renderer,
        store: Optional[FileStore] = None,
        config: Optional[MenuConfig] = None,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self.config = config or MenuConfig()
        self._registry = registry
        self._catalog = catalog
        self._renderer = renderer
        self._errors = error_handler or ErrorHandler()
        self._extractor = CommandExtractor(
            registry,
            catalog,
            default_group=self.config.default_group,
            error_handler=self._errors,
        )
        self._keys = CacheKeyGenerator(desc_length=self.config.description_signature_length)
        extension = getattr(renderer, "extension", None) or self.config.artifact_extension
        self._store = store or FileStore(self.config.base_dir, extension)
        self._refresh_task: Optional[asyncio.Task] = None
        self._logger = logging.getLogger("menu.core.menu")

    @property
    def extractor(self) -> CommandExtractor:
        return self._extractor

    @property
    def store(self) -> FileStore:
        return self._store

    @property
    def errors(self) -> ErrorHandler:
        return self._errors

    def resolve_locale(self, context: RequestContext, locale: Optional[str] = None) -> str:
        """Explicit locale, else the first context locale the catalog knows."""
        if locale:
            return locale
        return resolve_locale(context, self._catalog.locales(), self.config.default_locale)

    def _key_config(self, locale: str, grouped: bool) -> Dict[str, Any]:
        return {**self.config.render.model_dump(), "locale": locale, "grouped": grouped}

    def cache_key(
        self,
        commands: List[Command],
        locale: str,
        scope_name: Optional[str] = None,
        grouped: bool = False,
    ) -> str:
        return self._keys.key(
            commands,
            self._key_config(locale, grouped),
            scope_name=scope_name,
            registry_token=registry_mutation_token(self._registry.snapshots()),
        )

    async def get_commands(
        self,
        context: RequestContext,
        locale: Optional[str] = None,
        show_hidden: bool = False,
    ) -> List[Command]:
        """Filtered root-level tree for a list view."""
        locale = self.resolve_locale(context, locale)
        commands = await self._extractor.build_all(context, locale)
        return filter_commands(commands, show_hidden=show_hidden, is_detail_view=False)

    async def get_command(
        self,
        context: RequestContext,
        name: str,
        locale: Optional[str] = None,
        show_hidden: bool = False,
    ) -> Optional[Command]:
        """A single command for a detail view, or None when not found."""
        locale = self.resolve_locale(context, locale)
        command = await self._extractor.build_one(context, name, locale)
        if command is None:
            return None
        return filter_commands([command], show_hidden=show_hidden, is_detail_view=True)[0]

    async def render_menu(
        self,
        context: RequestContext,
        locale: Optional[str] = None,
        show_hidden: bool = False,
    ) -> MenuResult:
        """Rendered command list, from cache when the key matches."""
        with request_scope() as request_id:
            locale = self.resolve_locale(context, locale)
            grouped = self.config.use_groups_layout
            commands = await self.get_commands(context, locale, show_hidden)
            key = self.cache_key(commands, locale, scope_name=MENU_PREFIX, grouped=grouped)

            return await self._render(
                request_id,
                key,
                commands,
                lambda: self._renderer.render_list(commands, self.config.render, grouped=grouped),
            )

    async def render_command(
        self,
        context: RequestContext,
        name: str,
        locale: Optional[str] = None,
        show_hidden: bool = False,
    ) -> MenuResult:
        """Rendered detail view of `name` (with its parent for dotted names)."""
        with request_scope() as request_id:
            locale = self.resolve_locale(context, locale)
            related = await self._extractor.build_related(context, name, locale)
            if not related:
                self._errors.handle(create_not_found_error(name))
                log_request_end(request_id, success=False, command=name, error="not found")
                return MenuResult(found=False)

            commands = filter_commands(related, show_hidden=show_hidden, is_detail_view=True)
            key = self.cache_key(commands, locale, scope_name=name)

            return await self._render(
                request_id,
                key,
                commands,
                lambda: self._renderer.render_command(commands, self.config.render, title=name),
                command=name,
            )

    async def _render(
        self,
        request_id: str,
        key: str,
        commands: List[Command],
        render,
        command: Optional[str] = None,
    ) -> MenuResult:
        if self.config.cache_enabled:
            cached = await self._store.get_cache(key)
            if cached is not None:
                log_request_end(request_id, success=True, cache_hit=True, command=command)
                return MenuResult(found=True, key=key, artifact=cached, cache_hit=True, commands=commands)

        try:
            artifact = await render()
        except Exception as e:
            self._errors.capture(e, ErrorCategory.RENDER_FAILURE, cache_key=key)
            log_request_end(request_id, success=False, command=command, error=str(e))
            raise

        await self._save_artifact(key, artifact)
        log_request_end(request_id, success=True, cache_hit=False, command=command)
        return MenuResult(found=True, key=key, artifact=artifact, cache_hit=False, commands=commands)

    async def _save_artifact(self, key: str, artifact: bytes) -> None:
        if not self.config.cache_enabled:
            return
        try:
            await self._store.save_cache(key, artifact)
        except (OSError, ValueError) as e:
            self._errors.capture(e, ErrorCategory.CACHE_WRITE_FAILURE, cache_key=key)

    async def save_snapshot(self, context: RequestContext, locale: Optional[str] = None) -> List[Command]:
        """Extract the full tree for `context` and persist it as `data-<locale>.json`."""
        locale = self.resolve_locale(context, locale)
        commands = await self._extractor.build_all(context, locale)
        if self.config.cache_enabled:
            try:
                await self._store.save(SNAPSHOT_KIND, [cmd.to_dict() for cmd in commands], locale)
            except OSError as e:
                self._errors.capture(e, ErrorCategory.CACHE_WRITE_FAILURE, locale=locale)
        return commands

    async def load_snapshot(self, locale: str) -> Optional[List[Command]]:
        """Previously persisted tree for `locale`, or None."""
        data = await self._store.load(SNAPSHOT_KIND, locale)
        if not isinstance(data, list):
            return None
        try:
            return [Command.from_dict(item) for item in data]
        except (KeyError, TypeError, AttributeError) as e:
            self._errors.capture(e, ErrorCategory.CACHE_READ_FAILURE, locale=locale)
            return None

    async def prerender(self, context: RequestContext, locale: Optional[str] = None) -> PrerenderStats:
        """Render every command that has no cached artifact yet."""
        locale = self.resolve_locale(context, locale)
        names = self._extractor.collect_names()
        stats = PrerenderStats(total=len(names))

        self._logger.info(f"Pre-rendering {stats.total} commands ({locale})")
        for count, name in enumerate(names, start=1):
            try:
                result = await self.render_command(context, name, locale)
                if not result.found:
                    stats.failed += 1
                elif result.cache_hit:
                    stats.cached += 1
                else:
                    stats.rendered += 1
            except Exception as e:
                stats.failed += 1
                self._logger.debug(f"Pre-render failed for {name}: {e}")

            if count % PROGRESS_EVERY == 0 or count == stats.total:
                self._logger.info(
                    f"Pre-render progress: {count}/{stats.total}, cached: {stats.cached}, "
                    f"rendered: {stats.rendered}, failed: {stats.failed}"
                )

        await self.save_snapshot(context, locale)
        return stats

    async def clear_cache(self, scope_name: Optional[str] = None) -> int:
        return await self._store.clear_cache(scope_name)

    async def refresh(self, context: RequestContext, locale: Optional[str] = None) -> MenuResult:
        """Drop cached artifacts and the snapshot, then rebuild the list."""
        locale = self.resolve_locale(context, locale)
        self._logger.info(f"Refreshing menu cache ({locale})")

        await self._store.clear_cache()
        await self._store.delete(SNAPSHOT_KIND, locale)
        await self.save_snapshot(context, locale)
        result = await self.render_menu(context, locale)

        self._logger.info("Menu cache refreshed")
        return result

    def start_refresh_loop(self, context: RequestContext) -> Optional[asyncio.Task]:
        """Refresh every `refresh_interval_hours` (needs a running loop)."""
        if self.config.refresh_interval_hours <= 0 or not self.config.cache_enabled:
            return None
        if self._refresh_task is not None and not self._refresh_task.done():
            return self._refresh_task

        interval = self.config.refresh_interval_hours * 3600
        self._refresh_task = asyncio.create_task(self._refresh_loop(context, interval))
        self._logger.info(f"Cache refresh interval: {self.config.refresh_interval_hours} hours")
        return self._refresh_task

    async def _refresh_loop(self, context: RequestContext, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await self.refresh(context)
            except Exception as e:
                self._logger.error(f"Scheduled refresh failed: {e}")

    async def stop_refresh_loop(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_menu_service(config: Optional[MenuConfig] = None, renderer: Optional[Renderer] = None) -> MenuService:
    """Wire a MenuService from config: YAML registry, locale catalog, renderer for the artifact extension."""
    config = config or MenuConfig()

    registry = CommandRegistry(config.registry_path)
    catalog = LocaleCatalog(fallback_locale=config.fallback_locale)
    if config.locales_path:
        catalog.load(config.locales_path)

    return MenuService(registry, catalog, renderer or create_renderer(config.artifact_extension), config=config)
