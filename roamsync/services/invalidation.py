"""Declarative cache invalidation for mutations.

A successful mutation invalidates the cache prefixes mapped to the
resource family of its endpoint. The family is the first path segment:
``POST /spots/42/reviews`` belongs to ``spots``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping
from urllib.parse import urlsplit

DEFAULT_RULES: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "spots": ("/spots",),
        "users": ("/users/",),
        "trips": ("/trips",),
        # Sign-in/out change who "me" is
        "auth": ("/auth/me", "/users/"),
    }
)


def resource_family(endpoint: str) -> str:
    """Return the first path segment of an endpoint ("" for the root)."""
    segments = [s for s in urlsplit(endpoint).path.split("/") if s]
    return segments[0] if segments else ""


@dataclass(frozen=True)
class InvalidationPolicy:
    """Map from resource family to the cache-key substrings it invalidates.

    Attributes:
        rules: Family name to cache-key substrings
    """

    rules: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: DEFAULT_RULES)

    def prefixes_for(self, endpoint: str) -> tuple[str, ...]:
        """Cache-key substrings to drop after a mutation of ``endpoint``."""
        return tuple(self.rules.get(resource_family(endpoint), ()))
