"""In-memory response cache with per-entry TTL.

Key properties:
- Per-call TTL, falling back to a configured default
- Lazy eviction: an entry past its TTL is removed when accessed
- Substring invalidation for resource families ("spots", "/users/")
- Optional size bound with oldest-first eviction
- Statistics tracking
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ...domain.models import CacheEntry


@dataclass
class ResponseCache:
    """TTL-keyed store of previously fetched payloads.

    This cache implements the ResponseCachePort protocol. Only the
    ApiGateway writes to it.

    Attributes:
        default_ttl_seconds: TTL used when ``set`` is given none
        max_entries: Maximum number of entries (None = unlimited)
        name: Cache name for logging
        clock: Monotonic seconds source

    Example:
        cache = ResponseCache(default_ttl_seconds=300)
        cache.set("GET /spots?#-", payload, ttl=120)
        cache.invalidate("spots")
    """

    default_ttl_seconds: float = 300.0
    max_entries: Optional[int] = None
    name: str = "responses"
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _store: Dict[str, CacheEntry] = field(default_factory=dict, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    # Statistics
    _hits: int = field(default=0, repr=False)
    _misses: int = field(default=0, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(f"cache.{self.name}")

    def get(self, key: str) -> Optional[Any]:
        """Get a fresh payload from the cache.

        Args:
            key: The cache key.

        Returns:
            The cached payload, or None if not found or expired.
        """
        entry = self._store.get(key)
        if entry is None:
            self._misses += 1
            return None

        if not entry.is_fresh(self.clock()):
            del self._store[key]
            self._logger.debug("Cache entry expired", extra={"key": key})
            self._misses += 1
            return None

        self._hits += 1
        return entry.payload

    def set(self, key: str, payload: Any, ttl: Optional[float] = None) -> None:
        """Store a payload.

        Args:
            key: The cache key.
            payload: The payload to cache.
            ttl: Optional TTL override for this entry.
        """
        if self.max_entries is not None and len(self._store) >= self.max_entries:
            if key not in self._store and self._store:
                oldest_key = next(iter(self._store))
                del self._store[oldest_key]
                self._logger.debug(
                    "Cache evicted entry",
                    extra={"key": oldest_key, "reason": "max_entries"},
                )

        effective_ttl = ttl if ttl is not None else self.default_ttl_seconds
        # Re-insert so iteration order stays oldest-first
        self._store.pop(key, None)
        self._store[key] = CacheEntry(
            key=key,
            payload=payload,
            stored_at=self.clock(),
            ttl=effective_ttl,
        )
        self._logger.debug(
            "Cache entry set",
            extra={"key": key, "ttl": effective_ttl},
        )

    def invalidate(self, pattern: Optional[str] = None) -> int:
        """Drop every entry whose key contains ``pattern``.

        Args:
            pattern: Substring to match, or None to clear the cache.

        Returns:
            Number of entries removed.
        """
        if pattern is None:
            count = len(self._store)
            self._store.clear()
            self._logger.info("Cache cleared", extra={"entries_cleared": count})
            return count

        doomed = [key for key in self._store if pattern in key]
        for key in doomed:
            del self._store[key]
        self._logger.info(
            "Cache invalidated",
            extra={"pattern": pattern, "entries_cleared": len(doomed)},
        )
        return len(doomed)

    def size(self) -> int:
        """Return the number of entries in the cache, expired or not."""
        return len(self._store)

    def stats(self) -> Dict[str, Any]:
        """Return cache statistics.

        Returns:
            Dictionary with hit/miss counts and size.
        """
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0.0
        return {
            "size": len(self._store),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate_percent": round(hit_rate, 1),
        }

    def keys(self) -> list[str]:
        """Return all keys in the cache."""
        return list(self._store.keys())
