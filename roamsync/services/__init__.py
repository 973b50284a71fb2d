"""Services layer - The client data-sync core.

Available services:
- ApiGateway: Single network chokepoint (cache, coalescing, credentials)
- RequestCoalescer: Deduplicates concurrent identical GETs
- SessionStore: Credential and authentication state
- ProfileResolver: Travel profile with optimistic updates
- BootstrapOrchestrator: Launch routing with retry and skip
"""

from .api_gateway import NO_CACHE, ApiGateway, CachePolicy
from .bootstrap import BootstrapOrchestrator, decide
from .coalescer import RequestCoalescer
from .invalidation import InvalidationPolicy
from .profile_resolver import ProfileResolver, merge_profile, reconcile_primary_mode
from .schemas import ProfileChanges
from .session_store import SessionStore

__all__ = [
    "ApiGateway",
    "CachePolicy",
    "NO_CACHE",
    "RequestCoalescer",
    "InvalidationPolicy",
    "SessionStore",
    "ProfileResolver",
    "ProfileChanges",
    "merge_profile",
    "reconcile_primary_mode",
    "BootstrapOrchestrator",
    "decide",
]
