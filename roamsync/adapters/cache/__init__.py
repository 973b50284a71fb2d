"""Cache adapters - Implementations of the ResponseCachePort.

Available implementations:
- ResponseCache: In-memory cache with per-entry TTL and lazy eviction
- NullCache: No-op cache used when caching is disabled (always misses)
"""

from .memory_cache import ResponseCache
from .null_cache import NullCache

__all__ = ["ResponseCache", "NullCache"]
