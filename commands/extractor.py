"""
Command Extractor
-----------------
Builds the immutable Command tree for a requesting context.

Rules:
- Authority is re-checked at every level; a rejected node takes its subtree with it
- Children are deduplicated by name, first occurrence wins
- A node that fails to build is logged and left out; siblings carry on
- Nothing here mutates a registry node
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
import asyncio
import inspect
import logging

from core.errors import ErrorCategory, ErrorHandler

from .context import RequestContext
from .models import Command, NameEntry, Option
from .overrides import EffectiveData, OverrideResolver
from .registry import CommandNode, RegistryAdapter
from .text import LocaleCatalog, effective_text, flatten_text


DEFAULT_GROUP = "other"


@dataclass(frozen=True)
class _Scope:
    """Per-call extraction scope, computed once at the entry point."""
    context: RequestContext
    authority: int
    locales: List[str]


def filter_commands(
    commands: Sequence[Command],
    show_hidden: bool = False,
    is_detail_view: bool = False,
) -> List[Command]:
    """
    Strip hidden options and sub-commands unless `show_hidden`.

    Hidden top-level commands are dropped unless `show_hidden` or
    `is_detail_view` (a detail request names the command explicitly).
    """
    filtered = []
    for cmd in commands:
        if cmd.hidden and not (show_hidden or is_detail_view):
            continue
        subs = cmd.subs
        if subs is not None:
            subs = [sub for sub in subs if show_hidden or not sub.hidden]
        filtered.append(cmd.with_changes(
            options=[opt for opt in cmd.options if show_hidden or not opt.hidden],
            subs=subs,
        ))
    return filtered


class CommandExtractor:
    """
    Walks the registry through the override layer and the locale catalog.

    Responsibilities:
    - build_all / build_one / build_related
    - Name resolution for detail requests
    - Name collection for pre-rendering
    """

    def __init__(
        self,
        registry: RegistryAdapter,
        catalog: LocaleCatalog,
        default_group: str = DEFAULT_GROUP,
        error_handler: Optional[ErrorHandler] = None,
    ):
        self._registry = registry
        self._catalog = catalog
        self._overrides = OverrideResolver(registry)
        self._default_group = default_group
        self._errors = error_handler or ErrorHandler()
        self._logger = logging.getLogger("menu.commands.extractor")

    @property
    def overrides(self) -> OverrideResolver:
        return self._overrides

    def _scope(self, context: RequestContext, locale: Optional[str]) -> _Scope:
        context = context.with_locale(locale)
        return _Scope(
            context=context,
            authority=int(context.authority or 0),
            locales=context.all_locales(),
        )

    async def build_all(
        self,
        context: RequestContext,
        locale: Optional[str] = None
    ) -> List[Command]:
        """Every visible root command the caller may see, sorted by default name."""
        scope = self._scope(context, locale)

        roots = [
            node for node in self._registry.list_roots(scope.context)
            if self._eligible(node, scope)
        ]
        built = await asyncio.gather(*(self._build(node, scope) for node in roots))
        commands = [cmd for cmd in built if cmd is not None]

        self._logger.debug(
            f"Extracted {len(commands)}/{len(roots)} root commands "
            f"(authority={scope.authority}, locales={scope.locales})"
        )
        return sorted(commands, key=lambda cmd: cmd.default_name)

    async def build_one(
        self,
        context: RequestContext,
        name: str,
        locale: Optional[str] = None
    ) -> Optional[Command]:
        """A single command by (possibly dotted) name, or None."""
        if not name:
            return None
        scope = self._scope(context, locale)
        node = self.find(name, scope.context)
        if node is None:
            self._logger.debug(f"Command not found: {name}")
            return None
        if not self._ancestors_allowed(node, scope):
            return None
        return await self._build(node, scope)

    async def build_related(
        self,
        context: RequestContext,
        name: str,
        locale: Optional[str] = None
    ) -> List[Command]:
        """The target command, preceded by its root command for dotted names."""
        target = await self.build_one(context, name, locale)
        if target is None:
            return []

        commands = [target]
        node = self.find(name, context) if '.' in name else None
        if node is not None:
            root = node
            while root.parent is not None:
                root = root.parent
            parent = await self.build_one(context, self.default_name(root), locale)
            if parent is not None and parent.default_name != target.default_name:
                commands.insert(0, parent)
        return commands

    def filter(
        self,
        commands: Sequence[Command],
        show_hidden: bool = False,
        is_detail_view: bool = False,
    ) -> List[Command]:
        return filter_commands(commands, show_hidden, is_detail_view)

    def find(self, name: str, context: RequestContext) -> Optional[CommandNode]:
        """
        Resolve `name` to a node the context may address.

        A root answers to its enabled effective aliases only, so a root renamed
        by its override answers to the new name and no longer to the old one.
        A child answers to its registered dotted name, as listed in `subs`, and
        to the same suffix under any enabled alias of its root.
        """
        head, _, rest = name.partition('.')
        roots = self._registry.list_roots(context)

        if not rest:
            node = next((root for root in roots if self._answers_to(root, head)), None)
        else:
            candidates = (
                self._registry.resolve(f"{root.name}.{rest}", context)
                for root in roots
                if root.name == head or self._answers_to(root, head)
            )
            node = next((found for found in candidates if found is not None), None)

        if node is None or not self._registry.is_visible(node, context):
            return None

        if rest:
            alias = self._overrides.resolve(node).aliases.get(node.name)
            if isinstance(alias, dict) and alias.get("filter") is False:
                return None
        return node

    def _answers_to(self, node: CommandNode, name: str) -> bool:
        """Whether `name` is an enabled effective name of a root node."""
        aliases = self._overrides.resolve(node).aliases
        if not aliases:
            return name == node.name
        if name not in aliases:
            return False
        alias = aliases[name]
        return not (isinstance(alias, dict) and alias.get("filter") is False)

    def default_name(self, node: CommandNode) -> str:
        """First enabled effective alias, or the registered name."""
        for alias, alias_config in self._overrides.resolve(node).aliases.items():
            if not (isinstance(alias_config, dict) and alias_config.get("filter") is False):
                return str(alias)
        return node.name

    def collect_names(self) -> List[str]:
        """Every addressable command name, depth first, without duplicates.

        Roots go by their effective default name; children keep their dotted
        suffix under it.
        """
        names: List[str] = []

        def collect(node: CommandNode, prefix: str, public: str) -> None:
            if not node.name:
                return
            name = public + node.name[len(prefix):]
            if name not in names:
                names.append(name)
            for child in node.children:
                collect(child, prefix, public)

        for root in self._registry.list_roots(RequestContext()):
            collect(root, root.name, self.default_name(root))
        return names

    def _eligible(self, node: CommandNode, scope: _Scope) -> bool:
        """Visibility predicate and authority check for one node."""
        try:
            return (
                self._registry.is_visible(node, scope.context)
                and scope.authority >= self._overrides.authority(node)
            )
        except Exception as e:
            self._errors.capture(e, ErrorCategory.RESOLUTION_FAILURE, command=node.name)
            return False

    def _ancestors_allowed(self, node: CommandNode, scope: _Scope) -> bool:
        """A dotted lookup may not reach below a parent the caller cannot see."""
        parent = node.parent
        while parent is not None:
            if scope.authority < self._overrides.authority(parent):
                return False
            parent = parent.parent
        return True

    async def _build(self, node: CommandNode, scope: _Scope) -> Optional[Command]:
        try:
            if scope.authority < self._overrides.authority(node):
                return None

            effective = self._overrides.resolve(node)
            config = effective.config

            usage = await self._usage(node, effective, scope)
            subs = await self._build_subs(node, scope)

            return Command(
                group=scope.context.resolve(config.get("group")) or self._default_group,
                name=self._name_entries(node, effective.aliases),
                hidden=bool(scope.context.resolve(config.get("hidden", False))),
                authority=self._overrides.authority(node),
                desc=self._description(node, effective, scope),
                usage=flatten_text(usage),
                examples=self._examples(node, effective, scope),
                options=self._options(node, effective, scope),
                subs=subs,
            )
        except Exception as e:
            self._errors.capture(e, ErrorCategory.RESOLUTION_FAILURE, command=node.name)
            return None

    async def _build_subs(self, node: CommandNode, scope: _Scope) -> Optional[List[Command]]:
        if not node.children:
            return None

        seen = set()
        unique = []
        for child in node.children:
            if not child.name or child.name in seen:
                continue
            seen.add(child.name)
            unique.append(child)

        eligible = [child for child in unique if self._eligible(child, scope)]
        built = await asyncio.gather(*(self._build(child, scope) for child in eligible))
        subs = [sub for sub in built if sub is not None]
        return subs or None

    def _name_entries(self, node: CommandNode, aliases: Dict[str, Any]) -> List[NameEntry]:
        """
        Alias entries: default first, then enabled before disabled, then by name.

        The default is the first enabled alias in declared order.
        """
        if not aliases:
            return [NameEntry(name=node.name, enabled=True, is_default=True)]

        entries = []
        has_default = False
        for alias, alias_config in aliases.items():
            enabled = not (isinstance(alias_config, dict) and alias_config.get("filter") is False)
            is_default = enabled and not has_default
            if is_default:
                has_default = True
            entries.append(NameEntry(name=str(alias), enabled=enabled, is_default=is_default))

        return sorted(entries, key=lambda e: (not e.is_default, not e.enabled, e.name))

    def _text(self, scope: _Scope, paths: Any, params: Optional[Dict[str, Any]] = None) -> str:
        return flatten_text(self._catalog.render(scope.locales, paths, params or {}))

    def _override_text(
        self,
        texts: Optional[Dict[str, Any]],
        path: str,
        scope: _Scope,
        fallback,
    ) -> str:
        return effective_text(texts, path, scope.locales, self._catalog.fallback_locale, fallback)

    def _description(self, node: CommandNode, effective: EffectiveData, scope: _Scope) -> str:
        return flatten_text(self._override_text(
            effective.texts, "description", scope,
            lambda: self._text(scope, [f"commands.{node.name}.description", ""], node.params),
        ))

    async def _usage(self, node: CommandNode, effective: EffectiveData, scope: _Scope) -> Any:
        """Text override, then the static usage (string or callable), then locale text."""
        override = self._override_text(effective.texts, "usage", scope, lambda: "")
        if override:
            return override

        localized = lambda: self._text(scope, [f"commands.{node.name}.usage", ""], node.params)

        if not node.usage:
            return localized()
        if isinstance(node.usage, str):
            return node.usage

        result = node.usage(scope.context)
        if inspect.isawaitable(result):
            result = await result
        return result

    def _examples(self, node: CommandNode, effective: EffectiveData, scope: _Scope) -> str:
        override = self._override_text(effective.texts, "examples", scope, lambda: "")
        if override:
            return _join_lines(flatten_text(override))

        if node.examples:
            return "\n\n".join(str(example) for example in node.examples)

        return _join_lines(self._text(scope, [f"commands.{node.name}.examples", ""], node.params))

    def _options(self, node: CommandNode, effective: EffectiveData, scope: _Scope) -> List[Option]:
        """
        Direct options under their own name; variant options as `base.variant`.

        Kept only with a description or syntax and sufficient authority.
        """
        texts = effective.texts or {}
        option_texts = texts.get("options") if isinstance(texts.get("options"), dict) else None
        options: List[Option] = []
        seen = set()

        def add(option: Any, name: str) -> None:
            if not isinstance(option, dict) or not name or name in seen:
                return
            authority = int(option.get("authority") or 0)
            if scope.authority < authority:
                return

            desc = flatten_text(self._override_text(
                option_texts, name, scope,
                lambda: self._text(
                    scope,
                    option.get("desc_path") or [f"commands.{node.name}.options.{name}", ""],
                    option.get("params"),
                ),
            ))
            syntax = option.get("syntax") or ""
            if desc or syntax:
                seen.add(name)
                options.append(Option(
                    name=name,
                    desc=desc,
                    syntax=syntax,
                    hidden=bool(scope.context.resolve(option.get("hidden", False))),
                    authority=authority,
                ))

        for key, option in effective.options.items():
            if not isinstance(option, dict):
                continue
            base = option.get("name") or key
            variants = option.get("variants")
            if isinstance(variants, dict) and variants:
                for variant_key, variant in variants.items():
                    add(variant, f"{base}.{variant_key}")
            elif "value" not in option:
                add(option, base)

        return options


def _join_lines(text: str) -> str:
    """Non-blank lines of `text`, separated by blank lines."""
    return "\n\n".join(line for line in text.split("\n") if line.strip())
