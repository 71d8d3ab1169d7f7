"""
Locale Text
-----------
Localized text lookup and structured-text flattening.

Design:
- Catalog entries are stored under flat dotted keys ("commands.ping.usage")
- The first candidate path that resolves wins; "" is the explicit empty fallback
- Structured text (lists of strings / {attrs: {content}} nodes) is reduced to
  plain strings by flatten_text() and nowhere else
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union
import logging
import re

import yaml

from .context import RequestContext


_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def flatten_text(node: Any) -> str:
    """Reduce a string or structured text node to a single plain string."""
    if isinstance(node, str):
        return node
    if isinstance(node, (list, tuple)):
        pieces = [_flatten_piece(item) for item in node]
        return " ".join(piece for piece in pieces if piece).strip()
    return ""


def _flatten_piece(item: Any) -> str:
    if isinstance(item, str):
        return item.strip()
    if isinstance(item, (list, tuple)):
        return flatten_text(item)
    if isinstance(item, dict):
        content = (item.get("attrs") or {}).get("content")
        if isinstance(content, str):
            return content.strip()
        return flatten_text(item.get("children") or [])
    return ""


def effective_text(
    texts: Optional[Dict[str, Any]],
    path: str,
    locales: Sequence[str],
    fallback_locale: str,
    fallback: Callable[[], str],
) -> str:
    """
    Prefer a per-path text override, else call `fallback`.

    A string override is used verbatim. A locale -> string mapping is looked
    up by primary locale, then `fallback_locale`, then any string value.
    """
    if not texts or not texts.get(path):
        return fallback()

    override = texts[path]
    if isinstance(override, str):
        return override

    if isinstance(override, dict):
        primary = locales[0] if locales else fallback_locale
        for locale in (primary, fallback_locale):
            value = override.get(locale)
            if isinstance(value, str) and value:
                return value
        for value in override.values():
            if isinstance(value, str) and value:
                return value

    return fallback()


class LocaleCatalog:
    """
    Localized text catalog.

    Files map a locale to nested text trees:

        en-US:
          commands:
            ping:
              description: Check latency
    """

    def __init__(self, fallback_locale: str = "en-US"):
        self.fallback_locale = fallback_locale
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._logger = logging.getLogger("menu.commands.text")

    def load(self, path: Union[str, Path]) -> None:
        """Load one YAML file of locale trees, or every YAML file in a directory."""
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Locale catalog not found: {path}")

        files = sorted(path.glob("*.y*ml")) if path.is_dir() else [path]
        for file in files:
            with open(file, 'r', encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
            for locale, tree in data.items():
                self.add(locale, tree or {})

        self._logger.info(f"Loaded locales {self.locales()} from {path}")

    def add(self, locale: str, tree: Dict[str, Any], prefix: str = "") -> None:
        """Merge a nested text tree into `locale`."""
        entries = self._entries.setdefault(locale, {})
        for key, value in tree.items():
            full_key = f"{prefix}.{key}" if prefix else str(key)
            if isinstance(value, dict):
                self.add(locale, value, full_key)
            else:
                entries[full_key] = value

    def locales(self) -> List[str]:
        return list(self._entries.keys())

    def has(self, locale: str) -> bool:
        return locale in self._entries

    def render(
        self,
        locales: Iterable[str],
        paths: Union[str, Sequence[str]],
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """First matching text for `paths`, tried across `locales` then the fallback."""
        if isinstance(paths, str):
            paths = [paths]

        candidates = [locale for locale in locales if locale]
        if self.fallback_locale not in candidates:
            candidates.append(self.fallback_locale)

        for path in paths:
            if path == "":
                return ""
            for locale in candidates:
                value = self._entries.get(locale, {}).get(path)
                if value is not None:
                    return self._format(value, params or {})
        return ""

    def _format(self, value: Any, params: Dict[str, Any]) -> Any:
        if not isinstance(value, str) or not params:
            return value
        return _PLACEHOLDER.sub(
            lambda m: str(params[m.group(1)]) if m.group(1) in params else m.group(0),
            value,
        )


def resolve_locale(
    context: RequestContext,
    available: Sequence[str],
    default: str,
) -> str:
    """First context locale the catalog knows, else `default`."""
    for locale in context.all_locales():
        if locale in available:
            return locale
    return default
