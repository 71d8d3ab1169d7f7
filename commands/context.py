"""
Request Context
---------------
The requesting scope an extraction is performed for.

Carries caller authority, candidate locales and the channel attributes
visibility predicates look at.
"""

from dataclasses import dataclass, field, replace
from typing import Any, List, Optional


@dataclass(frozen=True)
class RequestContext:
    """Who is asking, and from where."""
    authority: int = 0
    locales: List[str] = field(default_factory=list)
    channel_locales: List[str] = field(default_factory=list)
    guild_locales: List[str] = field(default_factory=list)
    user_locales: List[str] = field(default_factory=list)
    platform: Optional[str] = None
    channel_id: Optional[str] = None
    is_direct: bool = True

    def all_locales(self) -> List[str]:
        """Session, channel, guild then user locales, without duplicates."""
        merged: List[str] = []
        for locale in (
            *self.locales,
            *self.channel_locales,
            *self.guild_locales,
            *self.user_locales,
        ):
            if locale and locale not in merged:
                merged.append(locale)
        return merged

    def with_locale(self, locale: Optional[str]) -> "RequestContext":
        """Copy of this context with `locale` tried first."""
        if not locale:
            return self
        return replace(self, locales=[locale, *self.locales])

    def resolve(self, value: Any) -> Any:
        """Evaluate context-dependent values (callables of the context)."""
        return value(self) if callable(value) else value
