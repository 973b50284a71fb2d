"""Session events port - How dependents observe authentication changes.

ProfileResolver and BootstrapOrchestrator receive session transitions
through this interface instead of reaching into a global auth object.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Awaitable, Callable, Protocol

if TYPE_CHECKING:
    from ..domain.states import SessionState

SessionListener = Callable[["SessionState"], Awaitable[None]]
Unsubscribe = Callable[[], None]


class SessionEventsPort(Protocol):
    """Port for observing the session.

    Implementation: services/session_store.py (SessionStore)
    """

    @property
    def state(self) -> SessionState:
        """The current session state."""
        ...

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        """Register an async listener called with every new state.

        Listeners run in subscription order.

        Returns:
            A callable removing the listener.
        """
        ...
