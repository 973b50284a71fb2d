"""API gateway port - What the stores need from the network chokepoint.

SessionStore and ProfileResolver depend on this protocol so tests can
substitute a fake gateway without patching global state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Optional, Protocol

if TYPE_CHECKING:
    from ..domain.models import (
        ApiResult,
        AuthSession,
        Credential,
        Identity,
        TravelProfile,
    )

# Called with the token of the request that got a 401; returns whether a
# fresh credential is now in place.
UnauthorizedHandler = Callable[[str], Awaitable[bool]]


class ApiGatewayPort(Protocol):
    """Port for the API gateway.

    Implementation: services/api_gateway.py (ApiGateway)
    """

    @property
    def has_credential(self) -> bool:
        """Whether requests currently carry an Authorization header."""
        ...

    def set_credential(self, credential: Optional[Credential]) -> None:
        """Mirror the session credential for header attachment."""
        ...

    def on_unauthorized(self, handler: Optional[UnauthorizedHandler]) -> None:
        """Register the single-shot refresh hook."""
        ...

    async def get_identity(self) -> ApiResult[Identity]:
        """Validate the current credential (GET /auth/me)."""
        ...

    async def send_magic_link(self, email: str) -> ApiResult[Any]:
        """Ask the backend to email a sign-in link."""
        ...

    async def verify_magic_link(self, token: str, email: str) -> ApiResult[AuthSession]:
        """Exchange a magic-link token for a credential and identity."""
        ...

    async def refresh_credential(self, refresh_token: str) -> ApiResult[Credential]:
        """Obtain a new credential without triggering the refresh hook."""
        ...

    async def logout(self) -> ApiResult[Any]:
        """Tell the backend the credential is no longer used."""
        ...

    async def get_profile(self, user_id: str) -> ApiResult[TravelProfile]:
        """Fetch the travel profile of a user."""
        ...

    async def update_profile(self, profile: TravelProfile) -> ApiResult[TravelProfile]:
        """Persist a full travel profile."""
        ...
