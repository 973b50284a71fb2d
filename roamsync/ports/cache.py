"""Cache port - Injectable response cache abstraction.

This protocol defines the contract for the response cache consulted by
the ApiGateway before any GET reaches the network.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Protocol


class ResponseCachePort(Protocol):
    """Port for response caching.

    Implementations:
    - adapters/cache/memory_cache.py (ResponseCache) - Production
    - adapters/cache/null_cache.py (NullCache) - Caching disabled

    The cache is best-effort: losing its contents changes freshness and
    performance, never correctness.
    """

    def get(self, key: str) -> Optional[Any]:
        """Get a fresh payload from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached payload, or None if absent or expired.
        """
        ...

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> None:
        """Store a payload.

        Args:
            key: The cache key.
            payload: The payload to cache.
            ttl: Time-to-live in seconds for this entry.
        """
        ...

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Drop every entry whose key contains ``pattern``.

        Args:
            pattern: Substring to match, or None to drop everything.

        Returns:
            Number of entries removed.
        """
        ...

    def size(self) -> int:
        """Return the number of stored entries."""
        ...

    def stats(self) -> Dict[str, Any]:
        """Return hit/miss statistics."""
        ...
