"""Immutable domain models for the roamsync client core.

All models are frozen dataclasses with slots. These models have no
external dependencies; wire (de)serialization lives in services/schemas.py.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from .errors import ApiError, ApiErrorKind

T = TypeVar("T")
U = TypeVar("U")


class TransportMode(str, Enum):
    """Ways a traveller gets around."""

    HITCHHIKING = "hitchhiking"
    CYCLING = "cycling"
    VAN_LIFE = "van_life"
    WALKING = "walking"


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A cached response payload.

    Attributes:
        key: Canonical cache key
        payload: Stored value
        stored_at: Clock reading (seconds) when the entry was written
        ttl: Time-to-live in seconds
    """

    key: str
    payload: Any
    stored_at: float
    ttl: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_fresh(self, now: float) -> bool:
        """An entry is valid while its age is strictly below its TTL."""
        return self.age(now) < self.ttl


@dataclass(frozen=True, slots=True)
class Credential:
    """Authentication token plus its expiry.

    Attributes:
        token: Bearer access token
        expires_at: Expiry instant, None when the server did not say
        refresh_token: Token used to obtain a new access token, if issued
    """

    token: str
    expires_at: Optional[datetime] = None
    refresh_token: Optional[str] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at

    def __repr__(self) -> str:
        return f"Credential(expires_at={self.expires_at!r})"


@dataclass(frozen=True, slots=True)
class Identity:
    """The user record returned after credential validation."""

    id: str
    email: str
    email_verified: bool = False
    phone_verified: bool = False
    username: Optional[str] = None
    display_name: Optional[str] = None


@dataclass(frozen=True, slots=True)
class AuthSession:
    """Credential and identity issued together by a successful sign-in."""

    credential: Credential
    identity: Identity


@dataclass(frozen=True, slots=True)
class TravelProfile:
    """A user's travel preferences and onboarding status.

    Attributes:
        user_id: Owning identity id
        selected_modes: Ordered, de-duplicated transport modes
        primary_mode: Preferred mode; member of selected_modes when any
        onboarding_completed: Whether the onboarding flow was finished
        experience_level: beginner, intermediate or expert
        safety_priority: high, medium or low
        show_all_spots: Show spots for modes the user did not select
        created_at: Creation instant
        updated_at: Last modification instant
    """

    user_id: str
    selected_modes: tuple[TransportMode, ...] = field(default_factory=tuple)
    primary_mode: Optional[TransportMode] = None
    onboarding_completed: bool = False
    experience_level: str = "beginner"
    safety_priority: str = "high"
    show_all_spots: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_consistent(self) -> bool:
        """Check the primary-mode invariant."""
        if self.selected_modes:
            return self.primary_mode in self.selected_modes
        return self.primary_mode is None


@dataclass(frozen=True, slots=True)
class Pagination:
    """Pagination block of a list response."""

    limit: int
    offset: int
    total: int


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Outcome of a gateway call: a value or a typed error, never both.

    Attributes:
        value: Decoded payload on success
        error: Normalized failure, None on success
        message: Optional server message from the success envelope
        pagination: Optional pagination block from the success envelope
    """

    value: Optional[T] = None
    error: Optional[ApiError] = None
    message: Optional[str] = None
    pagination: Optional[Pagination] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[ApiErrorKind]:
        return self.error.kind if self.error is not None else None

    @classmethod
    def success(
        cls,
        value: T,
        message: Optional[str] = None,
        pagination: Optional[Pagination] = None,
    ) -> ApiResult[T]:
        return cls(value=value, message=message, pagination=pagination)

    @classmethod
    def failure(cls, error: ApiError) -> ApiResult[T]:
        return cls(error=error)

    def map(self, fn: Callable[[T], U]) -> ApiResult[U]:
        """Transform the success value.

        A ValueError or TypeError raised by ``fn`` (which includes pydantic
        validation errors) becomes an UNKNOWN ApiError: the server answered
        with something this client cannot read.
        """
        if self.error is not None:
            return ApiResult(error=self.error)
        try:
            mapped = fn(self.value)  # type: ignore[arg-type]
        except (ValueError, TypeError) as e:
            return ApiResult(
                error=ApiError(
                    "Malformed response payload",
                    kind=ApiErrorKind.UNKNOWN,
                    cause=e,
                )
            )
        return ApiResult(
            value=mapped, message=self.message, pagination=self.pagination
        )

    def unwrap(self) -> T:
        """Return the value or raise the carried ApiError."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
