"""
Command Registry
----------------
In-memory command registry with a runtime override layer.

Nodes hold the static definition. Override snapshots are kept beside them,
keyed by command name, and are never written back into the nodes.

Exit Criterion: Every command is inspectable without a host bot framework.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Protocol, Set, Union
import logging
import yaml

from .context import RequestContext


UsageSource = Union[str, Callable[[RequestContext], Any], None]


@dataclass
class CommandNode:
    """
    Static definition of a command as registered.

    Child names are full dotted paths ("info.user").
    """
    name: str
    config: Dict[str, Any] = field(default_factory=dict)
    options: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    aliases: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    usage: UsageSource = None
    examples: List[str] = field(default_factory=list)
    params: Dict[str, Any] = field(default_factory=dict)
    platforms: Optional[Set[str]] = None
    direct_only: bool = False
    predicate: Optional[Callable[[RequestContext], bool]] = None
    children: List["CommandNode"] = field(default_factory=list)
    parent: Optional["CommandNode"] = field(default=None, repr=False, compare=False)

    def __repr__(self) -> str:
        return f"CommandNode(name={self.name}, children={len(self.children)})"


@dataclass
class OverrideSnapshot:
    """Runtime patch layer for one command."""
    initial: Dict[str, Any] = field(default_factory=dict)
    override: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OverrideSnapshot":
        """Parse a snapshot mapping. Raises ValueError when malformed."""
        if not isinstance(data, dict):
            raise ValueError(f"Snapshot must be a mapping, got {type(data).__name__}")
        initial = data.get("initial") or {}
        override = data.get("override") or {}
        if not isinstance(initial, dict) or not isinstance(override, dict):
            raise ValueError("Snapshot 'initial' and 'override' must be mappings")
        return cls(initial=initial, override=override)


class RegistryAdapter(Protocol):
    """What the extractor needs from a command registry."""

    def list_roots(self, context: RequestContext) -> List[CommandNode]: ...

    def resolve(self, name: str, context: RequestContext) -> Optional[CommandNode]: ...

    def snapshot_for(self, name: str) -> Optional[Any]: ...

    def snapshots(self) -> Dict[str, Any]: ...

    def is_visible(self, node: CommandNode, context: RequestContext) -> bool: ...


class CommandRegistry:
    """
    Registry of command nodes plus their override snapshots.

    Responsibilities:
    - Load command definitions and snapshots from YAML
    - Resolve names (including dotted sub-command paths)
    - Decide context visibility

    Forbidden:
    - Mutating a node to apply an override
    """

    def __init__(self, registry_path: Optional[str] = None):
        self._roots: List[CommandNode] = []
        self._snapshots: Dict[str, Any] = {}
        self._logger = logging.getLogger("menu.commands.registry")

        if registry_path:
            self.load(registry_path)

    def load(self, registry_path: str) -> None:
        """Load command definitions and snapshots from a YAML file."""
        path = Path(registry_path)

        if not path.exists():
            raise FileNotFoundError(f"Command registry not found: {registry_path}")

        with open(path, 'r', encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        for cmd_data in data.get('commands', []):
            self.add(self._parse_node(cmd_data))

        for name, snapshot in (data.get('snapshots') or {}).items():
            self._snapshots[name] = snapshot

        self._logger.info(
            f"Loaded {len(self)} commands and {len(self._snapshots)} snapshots "
            f"from {path}"
        )

    def _parse_node(self, cmd_data: Dict[str, Any], parent_name: str = "") -> CommandNode:
        name = cmd_data['name']
        if parent_name and not name.startswith(f"{parent_name}."):
            name = f"{parent_name}.{name}"

        platforms = cmd_data.get('platforms')
        node = CommandNode(
            name=name,
            config=dict(cmd_data.get('config') or {}),
            options=dict(cmd_data.get('options') or {}),
            aliases=dict(cmd_data.get('aliases') or {}),
            usage=cmd_data.get('usage'),
            examples=list(cmd_data.get('examples') or []),
            params=dict(cmd_data.get('params') or {}),
            platforms=set(platforms) if platforms else None,
            direct_only=cmd_data.get('direct_only', False),
        )
        for child_data in cmd_data.get('children', []):
            child = self._parse_node(child_data, name)
            child.parent = node
            node.children.append(child)
        return node

    def add(self, node: CommandNode, parent: Optional[CommandNode] = None) -> CommandNode:
        """Register a node, at the root or under `parent`."""
        if parent is None:
            node.parent = None
            self._roots.append(node)
        else:
            node.parent = parent
            parent.children.append(node)
        return node

    def set_snapshot(self, name: str, snapshot: Any) -> None:
        """Install or replace the override snapshot for a command."""
        self._snapshots[name] = snapshot
        self._logger.debug(f"Snapshot updated: {name}")

    def remove_snapshot(self, name: str) -> bool:
        """Drop the override snapshot for a command. Returns True if existed."""
        return self._snapshots.pop(name, None) is not None

    def snapshot_for(self, name: str) -> Optional[Any]:
        """Raw snapshot for a command name, if any."""
        return self._snapshots.get(name)

    def snapshots(self) -> Dict[str, Any]:
        """All raw snapshots, keyed by command name."""
        return dict(self._snapshots)

    def list_roots(self, context: Optional[RequestContext] = None) -> List[CommandNode]:
        """Nodes without a parent, in registration order."""
        return [node for node in self._roots if node.parent is None]

    def iter_nodes(self) -> List[CommandNode]:
        """Every node, depth first."""
        nodes: List[CommandNode] = []

        def walk(node: CommandNode) -> None:
            nodes.append(node)
            for child in node.children:
                walk(child)

        for root in self._roots:
            walk(root)
        return nodes

    def get(self, name: str) -> Optional[CommandNode]:
        """Find a root command by name or by one of its static aliases."""
        for node in self._roots:
            if node.name == name:
                return node
        for node in self._roots:
            if name in node.aliases:
                return node
        return None

    def resolve(self, name: str, context: Optional[RequestContext] = None) -> Optional[CommandNode]:
        """
        Resolve a command name to its node.

        Dotted names are walked segment by segment through `children`.
        """
        if not name:
            return None

        if '.' not in name:
            return self.get(name)

        parts = name.split('.')
        current = self.get(parts[0])
        if current is None:
            return None

        for i in range(1, len(parts)):
            target = '.'.join(parts[:i + 1])
            current = next(
                (child for child in current.children if child.name == target),
                None
            )
            if current is None:
                return None
        return current

    def is_visible(self, node: CommandNode, context: RequestContext) -> bool:
        """Context visibility predicate, independent of the `hidden` flag."""
        if node.platforms is not None and context.platform not in node.platforms:
            return False
        if node.direct_only and not context.is_direct:
            return False
        if node.predicate is not None:
            return bool(node.predicate(context))
        return True

    def __len__(self) -> int:
        return len(self.iter_nodes())

    def __contains__(self, name: str) -> bool:
        return self.resolve(name) is not None
