"""Domain layer - Core models, states and errors.

This module contains immutable domain models, lifecycle states and
typed errors used throughout the client core. No external dependencies.
"""

from .errors import (
    ApiError,
    ApiErrorKind,
    RoamSyncError,
    StorageError,
    TransportError,
)
from .models import (
    ApiResult,
    AuthSession,
    CacheEntry,
    Credential,
    Identity,
    Pagination,
    TransportMode,
    TravelProfile,
)
from .states import (
    ProfileState,
    ProfileStatus,
    Route,
    RouteKind,
    SessionState,
    SessionStatus,
)

__all__ = [
    # Models
    "ApiResult",
    "AuthSession",
    "CacheEntry",
    "Credential",
    "Identity",
    "Pagination",
    "TransportMode",
    "TravelProfile",
    # States
    "ProfileState",
    "ProfileStatus",
    "Route",
    "RouteKind",
    "SessionState",
    "SessionStatus",
    # Errors
    "RoamSyncError",
    "ApiError",
    "ApiErrorKind",
    "TransportError",
    "StorageError",
]
