"""Bootstrap orchestration - Where to send the user at launch.

``decide`` is a pure function of the session and profile states. The
BootstrapOrchestrator wraps it with the side effects the UI needs: it
drives the initial session resolution, triggers the profile load once the
session settles, and offers Retry and Skip from the error screen.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from ..domain.states import (
    ProfileState,
    ProfileStatus,
    Route,
    RouteKind,
    SessionState,
    SessionStatus,
)
from ..ports.session import Unsubscribe
from .profile_resolver import ProfileResolver
from .session_store import SessionStore

RouteListener = Callable[[Route], None]


def decide(session: SessionState, profile: ProfileState) -> Route:
    """Join session and profile state into one routing decision.

    | session                  | profile                    | route          |
    |--------------------------|----------------------------|----------------|
    | UNKNOWN / AUTHENTICATING | any                        | WAIT_LOGIN     |
    | ANONYMOUS                | any                        | GO_LOGIN       |
    | AUTHENTICATED            | IDLE / LOADING             | WAIT_PROFILE   |
    | AUTHENTICATED            | NEEDS_ONBOARDING           | GO_ONBOARDING  |
    | AUTHENTICATED            | READY, not onboarded       | GO_ONBOARDING  |
    | AUTHENTICATED            | READY, onboarded           | GO_HOME        |
    | AUTHENTICATED            | ERROR(reason)              | SHOW_ERROR     |
    """
    if session.status in (SessionStatus.UNKNOWN, SessionStatus.AUTHENTICATING):
        return Route(RouteKind.WAIT_LOGIN)
    if session.status is SessionStatus.ANONYMOUS:
        return Route(RouteKind.GO_LOGIN)

    if profile.status in (ProfileStatus.IDLE, ProfileStatus.LOADING):
        return Route(RouteKind.WAIT_PROFILE)
    if profile.status is ProfileStatus.NEEDS_ONBOARDING:
        return Route(RouteKind.GO_ONBOARDING)
    if profile.status is ProfileStatus.READY:
        if profile.profile is not None and profile.profile.onboarding_completed:
            return Route(RouteKind.GO_HOME)
        return Route(RouteKind.GO_ONBOARDING)
    return Route(RouteKind.SHOW_ERROR, profile.reason or "Could not load your profile")


@dataclass
class BootstrapOrchestrator:
    """Keeps the current route in sync with session and profile.

    Attributes:
        session: Session store
        profiles: Profile resolver

    Example:
        orchestrator = container.resolve(BootstrapOrchestrator)
        orchestrator.subscribe(navigate)
        await orchestrator.start()
    """

    session: SessionStore
    profiles: ProfileResolver

    _route: Route = field(default_factory=lambda: Route(RouteKind.WAIT_LOGIN), init=False)
    _skipped_for: Optional[str] = field(default=None, init=False, repr=False)
    _listeners: List[RouteListener] = field(default_factory=list, init=False, repr=False)
    _unsubscribers: List[Unsubscribe] = field(default_factory=list, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._route = self._evaluate()
        self._unsubscribers.append(self.session.subscribe(self._on_session_changed))
        self._unsubscribers.append(self.profiles.subscribe(self._on_profile_changed))

    @property
    def route(self) -> Route:
        return self._route

    def subscribe(self, listener: RouteListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    async def start(self) -> Route:
        """Resolve the session at launch, then route."""
        await self.session.initialize()
        return await self.resolve()

    async def resolve(self) -> Route:
        """Re-evaluate, loading the profile first if nothing loaded it yet."""
        route = self._refresh_route()
        if (
            route.kind is RouteKind.WAIT_PROFILE
            and self.profiles.state.status is ProfileStatus.IDLE
        ):
            await self.profiles.load_profile()
            route = self._refresh_route()
        return route

    async def retry(self) -> Route:
        """Reload the profile from the error screen."""
        if self._route.kind is not RouteKind.SHOW_ERROR:
            return self._route
        self._logger.info("Retrying profile load")
        await self.profiles.load_profile()
        return self._refresh_route()

    def skip(self) -> Route:
        """Leave the error screen for the main app.

        Holds for the current identity only; a different identity routes
        normally again.
        """
        identity = self.session.state.identity
        if self._route.kind is not RouteKind.SHOW_ERROR or identity is None:
            return self._route
        self._logger.info("Profile error skipped", extra={"user_id": identity.id})
        self._skipped_for = identity.id
        return self._refresh_route()

    def _evaluate(self) -> Route:
        session = self.session.state
        route = decide(session, self.profiles.state)
        identity = session.identity
        if identity is None or identity.id != self._skipped_for:
            self._skipped_for = None
        elif route.kind is RouteKind.SHOW_ERROR:
            return Route(RouteKind.GO_HOME)
        return route

    def _refresh_route(self) -> Route:
        route = self._evaluate()
        if route != self._route:
            self._logger.debug(
                "Route changed",
                extra={"from": self._route.kind.name, "to": route.kind.name},
            )
            self._route = route
            for listener in list(self._listeners):
                listener(route)
        return route

    async def _on_session_changed(self, state: SessionState) -> None:
        # A new identity lands on WAIT_PROFILE with an idle profile
        await self.resolve()

    def _on_profile_changed(self, state: ProfileState) -> None:
        self._refresh_route()
