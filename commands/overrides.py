"""
Override Resolver
-----------------
Merges a command's static definition with its runtime override snapshot.

(static definition, snapshot) -> effective definition, as a pure function.
The node itself is never touched.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import logging

from .registry import CommandNode, OverrideSnapshot, RegistryAdapter


@dataclass
class EffectiveData:
    """Effective view of one command after overrides."""
    config: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Any] = field(default_factory=dict)
    aliases: Dict[str, Any] = field(default_factory=dict)
    texts: Optional[Dict[str, Any]] = None


def merge_options(initial: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Merge option maps by key; nested mappings merge their own keys."""
    merged = dict(initial)
    for key, value in override.items():
        if isinstance(value, dict):
            base = merged.get(key)
            merged[key] = {**(base if isinstance(base, dict) else {}), **value}
        else:
            merged[key] = value
    return merged


class OverrideResolver:
    """
    Resolves effective command data against the registry's snapshots.

    A missing or malformed snapshot degrades to the static definition.
    """

    def __init__(self, registry: RegistryAdapter):
        self._registry = registry
        self._logger = logging.getLogger("menu.commands.overrides")

    def resolve(self, node: Optional[CommandNode]) -> EffectiveData:
        """Effective config, options, aliases and texts for `node`."""
        if node is None:
            return EffectiveData()

        static = EffectiveData(
            config=dict(node.config or {}),
            options=dict(node.options or {}),
            aliases=dict(node.aliases or {}),
            texts=None,
        )

        raw = self._registry.snapshot_for(node.name)
        if raw is None:
            return static

        try:
            snapshot = raw if isinstance(raw, OverrideSnapshot) else OverrideSnapshot.from_dict(raw)
            return self._merge(node, snapshot)
        except (ValueError, TypeError, AttributeError) as e:
            self._logger.debug(f"Ignoring invalid snapshot for {node.name}: {e}")
            return static

    def _merge(self, node: CommandNode, snapshot: OverrideSnapshot) -> EffectiveData:
        initial, override = snapshot.initial, snapshot.override

        options = merge_options(
            dict(initial.get("options") or {}),
            dict(override.get("options") or {}),
        )
        config = {**(initial.get("config") or {}), **(override.get("config") or {})}
        aliases = override.get("aliases") or dict(node.aliases or {})
        texts = override.get("texts") or None

        return EffectiveData(
            config=config,
            options=options,
            aliases=dict(aliases),
            texts=texts,
        )

    def authority(self, node: CommandNode) -> int:
        """Effective authority requirement of a node (0 when unset)."""
        effective = self.resolve(node).config.get("authority")
        if effective is not None:
            return int(effective)
        return int((node.config or {}).get("authority") or 0)
