"""Null cache implementation.

This cache always misses. The container installs it when caching is
disabled in configuration; the gateway still coalesces concurrent GETs,
so identical in-flight requests are shared even without a cache.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class NullCache:
    """No-op cache - always misses.

    Implements the ResponseCachePort protocol but never stores anything.
    Useful for debugging to rule out staleness issues.
    """

    name: str = "null"

    def get(self, key: str) -> Optional[Any]:
        """Always returns None (cache miss)."""
        return None

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> None:
        """Does nothing."""

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Does nothing, returns 0."""
        return 0

    def size(self) -> int:
        """Always 0."""
        return 0

    def stats(self) -> Dict[str, Any]:
        """Empty statistics."""
        return {"size": 0, "hits": 0, "misses": 0, "hit_rate_percent": 0.0}
