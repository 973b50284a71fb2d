"""Session, profile and routing states.

States are immutable values. SessionStore and ProfileResolver publish a
new state object on every transition; the bootstrap decision is a pure
function of the two.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .errors import ApiErrorKind
from .models import Identity, TravelProfile


class SessionStatus(Enum):
    UNKNOWN = auto()
    AUTHENTICATING = auto()
    AUTHENTICATED = auto()
    ANONYMOUS = auto()


class ProfileStatus(Enum):
    IDLE = auto()
    LOADING = auto()
    READY = auto()
    NEEDS_ONBOARDING = auto()
    ERROR = auto()


class RouteKind(Enum):
    """Where the app should send the user."""

    WAIT_LOGIN = auto()
    GO_LOGIN = auto()
    WAIT_PROFILE = auto()
    GO_ONBOARDING = auto()
    GO_HOME = auto()
    SHOW_ERROR = auto()


@dataclass(frozen=True, slots=True)
class SessionState:
    """Authentication state.

    Attributes:
        status: Lifecycle status
        identity: Resolved identity, set only when AUTHENTICATED
    """

    status: SessionStatus
    identity: Optional[Identity] = None

    def __post_init__(self) -> None:
        if (self.status is SessionStatus.AUTHENTICATED) != (self.identity is not None):
            raise ValueError("identity is required exactly when authenticated")

    @classmethod
    def unknown(cls) -> SessionState:
        return cls(SessionStatus.UNKNOWN)

    @classmethod
    def authenticating(cls) -> SessionState:
        return cls(SessionStatus.AUTHENTICATING)

    @classmethod
    def authenticated(cls, identity: Identity) -> SessionState:
        return cls(SessionStatus.AUTHENTICATED, identity)

    @classmethod
    def anonymous(cls) -> SessionState:
        return cls(SessionStatus.ANONYMOUS)

    @property
    def is_authenticated(self) -> bool:
        return self.status is SessionStatus.AUTHENTICATED

    @property
    def is_settled(self) -> bool:
        """Whether the session reached a routable state."""
        return self.status in (SessionStatus.AUTHENTICATED, SessionStatus.ANONYMOUS)


@dataclass(frozen=True, slots=True)
class ProfileState:
    """Travel profile resolution state.

    Attributes:
        status: Lifecycle status
        profile: The profile, set only when READY
        reason: Error message, set only when ERROR
        error_kind: Error category, set only when ERROR
    """

    status: ProfileStatus
    profile: Optional[TravelProfile] = None
    reason: Optional[str] = None
    error_kind: Optional[ApiErrorKind] = None

    @classmethod
    def idle(cls) -> ProfileState:
        return cls(ProfileStatus.IDLE)

    @classmethod
    def loading(cls) -> ProfileState:
        return cls(ProfileStatus.LOADING)

    @classmethod
    def ready(cls, profile: TravelProfile) -> ProfileState:
        return cls(ProfileStatus.READY, profile=profile)

    @classmethod
    def needs_onboarding(cls) -> ProfileState:
        return cls(ProfileStatus.NEEDS_ONBOARDING)

    @classmethod
    def error(
        cls, reason: str, kind: Optional[ApiErrorKind] = None
    ) -> ProfileState:
        return cls(ProfileStatus.ERROR, reason=reason, error_kind=kind)


@dataclass(frozen=True, slots=True)
class Route:
    """A routing decision.

    Attributes:
        kind: Destination
        reason: Error message shown with SHOW_ERROR
    """

    kind: RouteKind
    reason: Optional[str] = None

    @property
    def is_waiting(self) -> bool:
        """Loading-indicator routes; renderable, never blocking."""
        return self.kind in (RouteKind.WAIT_LOGIN, RouteKind.WAIT_PROFILE)

    @property
    def offers_retry(self) -> bool:
        """SHOW_ERROR offers Retry and Skip-anyway."""
        return self.kind is RouteKind.SHOW_ERROR
