"""
Cache Keys
----------
Deterministic content keys for rendered artifacts.

The key depends only on a compact signature of each command and on the
render-relevant config fields. Input order and duplicate entries never
change it; neither do config fields outside the whitelist.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
import hashlib
import json
import re

from commands.models import Command


KEY_DIGEST_LENGTH = 12
DESCRIPTION_SIGNATURE_LENGTH = 50
MENU_PREFIX = "menu"

# Config fields that affect rendered output
RENDER_FIELDS = (
    "theme",
    "width",
    "padding",
    "radius",
    "font_family",
    "font_size",
    "title_size",
    "primary",
    "secondary",
    "bg_color",
    "text_color",
    "header",
    "footer",
    "locale",
    "grouped",
)

_HOSTILE_CHARS = re.compile(r'[/\\?%*:|"<>.]')


def sanitize_name(name: str) -> str:
    """Filesystem-safe token: hostile characters and dots become underscores."""
    return _HOSTILE_CHARS.sub("_", name or "")


def _canonical(value: Any) -> bytes:
    return json.dumps(value, sort_keys=True, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


def _config_dict(config: Any) -> Dict[str, Any]:
    if config is None:
        return {}
    if isinstance(config, Mapping):
        return dict(config)
    if hasattr(config, "model_dump"):
        return config.model_dump()
    return dict(vars(config))


def command_signature(command: Command, desc_length: int = DESCRIPTION_SIGNATURE_LENGTH) -> Dict[str, Any]:
    """Compact, order-independent summary of one command."""
    aliases = sorted(
        ([entry.name, entry.enabled, entry.is_default] for entry in command.name),
        key=lambda alias: alias[0],
    )
    return {
        "name": command.default_name,
        "aliases": aliases,
        "desc": (command.desc or "")[:desc_length],
        "group": command.group,
        "hidden": command.hidden,
        "authority": command.authority,
        "options": len(command.options),
        "subs": len(command.subs or []),
    }


def registry_mutation_token(snapshots: Mapping[str, Any]) -> str:
    """
    Digest of the override layer's shape.

    Only presence flags are hashed, so the token changes when an override is
    added, removed or gains/loses config, options, aliases or texts.
    """
    digest = hashlib.sha256()
    for name in sorted(snapshots):
        snapshot = snapshots[name]
        override = _override_of(snapshot)
        flags = [
            name,
            bool(override.get("config")),
            bool(override.get("options")),
            bool(override.get("aliases")),
            bool(override.get("texts")),
        ]
        digest.update(_canonical(flags))
    return digest.hexdigest()


def _override_of(snapshot: Any) -> Dict[str, Any]:
    override = getattr(snapshot, "override", None)
    if override is None and isinstance(snapshot, Mapping):
        override = snapshot.get("override")
    return override if isinstance(override, dict) else {}


class CacheKeyGenerator:
    """
    Builds `<prefix>_<digest>` keys for command trees.

    Hashing is incremental: signatures are folded into a running digest one
    at a time instead of serializing the whole tree.
    """

    def __init__(
        self,
        fields: Sequence[str] = RENDER_FIELDS,
        desc_length: int = DESCRIPTION_SIGNATURE_LENGTH,
        digest_length: int = KEY_DIGEST_LENGTH,
    ):
        self.fields = tuple(fields)
        self.desc_length = desc_length
        self.digest_length = digest_length

    def prefix(self, commands: Sequence[Command], scope_name: Optional[str] = None) -> str:
        if scope_name:
            return sanitize_name(scope_name)
        if len(commands) == 1:
            return sanitize_name(commands[0].default_name)
        return MENU_PREFIX

    def signatures(self, commands: Iterable[Command]) -> List[Dict[str, Any]]:
        """Deduplicated (by default name, first wins) signatures, sorted by name."""
        by_name: Dict[str, Dict[str, Any]] = {}
        for command in commands:
            name = command.default_name
            if name not in by_name:
                by_name[name] = command_signature(command, self.desc_length)
        return [by_name[name] for name in sorted(by_name)]

    def render_fields(self, config: Any) -> Dict[str, Any]:
        """The whitelisted subset of `config`."""
        values = _config_dict(config)
        return {name: values.get(name) for name in self.fields}

    def key(
        self,
        commands: Sequence[Command],
        config: Any,
        scope_name: Optional[str] = None,
        registry_token: Optional[str] = None,
    ) -> str:
        digest = hashlib.sha256()

        if registry_token:
            digest.update(registry_token.encode("utf-8"))

        for signature in self.signatures(commands):
            digest.update(_canonical(signature))

        digest.update(_canonical(self.render_fields(config)))

        return f"{self.prefix(commands, scope_name)}_{digest.hexdigest()[:self.digest_length]}"
