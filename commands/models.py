"""
Command Models
--------------
Immutable snapshot types produced by the extractor.

A tree of Command objects is built fresh per request and never mutated.
Filtering returns new instances. Only the JSON form is persisted.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class NameEntry:
    """One alias of a command."""
    name: str
    enabled: bool = True
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "enabled": self.enabled,
            "is_default": self.is_default,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NameEntry":
        return cls(
            name=data["name"],
            enabled=data.get("enabled", True),
            is_default=data.get("is_default", False),
        )


@dataclass(frozen=True)
class Option:
    """A resolved command option (or one variant of it)."""
    name: str
    desc: str = ""
    syntax: str = ""
    hidden: bool = False
    authority: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "desc": self.desc,
            "syntax": self.syntax,
            "hidden": self.hidden,
            "authority": self.authority,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Option":
        return cls(
            name=data["name"],
            desc=data.get("desc", ""),
            syntax=data.get("syntax", ""),
            hidden=data.get("hidden", False),
            authority=data.get("authority", 0),
        )


@dataclass(frozen=True)
class Command:
    """
    Normalized, localized view of one command node.

    `subs` is None unless at least one visible child survived filtering.
    """
    group: str
    name: List[NameEntry]
    hidden: bool = False
    authority: int = 0
    desc: str = ""
    usage: str = ""
    examples: str = ""
    options: List[Option] = field(default_factory=list)
    subs: Optional[List["Command"]] = None

    @property
    def default_name(self) -> str:
        """Primary display name (the default alias when one exists)."""
        return self.name[0].name if self.name else ""

    @property
    def callable_names(self) -> List[str]:
        """Names the command can currently be invoked by."""
        return [entry.name for entry in self.name if entry.enabled]

    def with_changes(self, **changes: Any) -> "Command":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize for storage."""
        data: Dict[str, Any] = {
            "group": self.group,
            "name": [entry.to_dict() for entry in self.name],
            "hidden": self.hidden,
            "authority": self.authority,
            "desc": self.desc,
            "usage": self.usage,
            "examples": self.examples,
            "options": [option.to_dict() for option in self.options],
        }
        if self.subs is not None:
            data["subs"] = [sub.to_dict() for sub in self.subs]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Command":
        """Deserialize from storage."""
        subs = data.get("subs")
        return cls(
            group=data.get("group", ""),
            name=[NameEntry.from_dict(entry) for entry in data.get("name", [])],
            hidden=data.get("hidden", False),
            authority=data.get("authority", 0),
            desc=data.get("desc", ""),
            usage=data.get("usage", ""),
            examples=data.get("examples", ""),
            options=[Option.from_dict(opt) for opt in data.get("options", [])],
            subs=[cls.from_dict(sub) for sub in subs] if subs is not None else None,
        )

    def __repr__(self) -> str:
        return f"Command(name={self.default_name}, subs={len(self.subs or [])})"
