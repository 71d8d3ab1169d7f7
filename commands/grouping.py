"""
Command Grouping
----------------
Buckets root commands by group label for the grouped list layout.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .models import Command


GROUP_ICONS: Dict[str, str] = {
    "system": "settings",
    "game": "sports_esports",
    "utility": "build",
    "admin": "admin_panel_settings",
    "user": "person",
    "media": "perm_media",
    "music": "music_note",
    "search": "search",
    "fun": "mood",
    "social": "forum",
    "bot": "smart_toy",
    "chat": "chat",
    "image": "image",
    "video": "video_library",
    "plugin": "extension",
    "info": "info",
    "help": "help",
    "tools": "handyman",
    "settings": "settings",
    "commands": "terminal",
    "other": "more_horiz",
}

DEFAULT_ICON = "widgets"


@dataclass
class CommandGroup:
    """A titled bucket of commands."""
    name: str
    icon: str
    commands: List[Command] = field(default_factory=list)


def group_icon(name: str) -> str:
    return GROUP_ICONS.get(name.lower(), DEFAULT_ICON)


def group_commands(commands: Sequence[Command]) -> List[CommandGroup]:
    """Group commands by label; groups sorted by title, members keep their order."""
    buckets: Dict[str, List[Command]] = {}
    for cmd in commands:
        buckets.setdefault(cmd.group or "other", []).append(cmd)

    groups = [
        CommandGroup(name=label[:1].upper() + label[1:], icon=group_icon(label), commands=members)
        for label, members in buckets.items()
    ]
    return sorted(groups, key=lambda group: group.name)
