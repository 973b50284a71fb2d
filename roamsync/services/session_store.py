"""Session store - Owner of the credential and the authentication state.

The store is the only writer of the persisted credential. It mirrors the
credential into the gateway and publishes every SessionState transition to
its subscribers (the profile resolver and the bootstrap orchestrator).

Every operation captures a generation number when it starts. A completion
whose generation was superseded in the meantime (for example a sign-out
while the identity check was still on the wire) is dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from pydantic import ValidationError

from ..config import StorageConfig
from ..domain.errors import ApiErrorKind, StorageError
from ..domain.models import ApiResult, AuthSession, Credential, Identity
from ..domain.states import SessionState
from ..ports.gateway import ApiGatewayPort
from ..ports.session import SessionListener, Unsubscribe
from ..ports.storage import KeyValueStoragePort
from .schemas import CredentialPayload, IdentityPayload


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SessionStore:
    """Authentication state machine implementing SessionEventsPort.

    States: UNKNOWN -> AUTHENTICATING -> {AUTHENTICATED, ANONYMOUS}

    Registers itself as the gateway's unauthorized handler, so a 401 seen
    by any caller leads to at most one refresh.

    Attributes:
        gateway: Network chokepoint
        storage: Persisted device storage
        storage_config: Storage key names
        clock: Current UTC time, for credential expiry
    """

    gateway: ApiGatewayPort
    storage: KeyValueStoragePort
    storage_config: StorageConfig = field(default_factory=StorageConfig)
    clock: Callable[[], datetime] = field(default=_utcnow, repr=False)

    _state: SessionState = field(default_factory=SessionState.unknown, init=False)
    _credential: Optional[Credential] = field(default=None, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _listeners: List[SessionListener] = field(default_factory=list, init=False, repr=False)
    _write_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _initializing: Optional[asyncio.Future[SessionState]] = field(
        default=None, init=False, repr=False
    )
    _refreshing: Optional[asyncio.Future[bool]] = field(
        default=None, init=False, repr=False
    )
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self.gateway.on_unauthorized(self.handle_unauthorized)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> Optional[Identity]:
        return self._state.identity

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: SessionListener) -> Unsubscribe:
        """Register an async listener; returns a callable removing it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> SessionState:
        """Resolve the persisted credential into a settled state.

        Concurrent calls join the one in flight. Once the state left
        UNKNOWN, the current state is returned without any I/O.
        """
        if self._initializing is not None and not self._initializing.done():
            return await asyncio.shield(self._initializing)
        if self._state != SessionState.unknown():
            return self._state

        self._initializing = asyncio.ensure_future(self._initialize())
        return await asyncio.shield(self._initializing)

    async def _initialize(self) -> SessionState:
        generation = self._next_generation()
        await self._publish(SessionState.authenticating(), generation)

        try:
            credential = await self._read_credential()
        except StorageError as e:
            self._logger.warning(
                "Could not read persisted credential", extra={"error": str(e)}
            )
            return await self._publish(SessionState.anonymous(), generation)

        if generation != self._generation:
            self._logger.debug("Discarding superseded credential read")
            return self._state

        if credential is None:
            self._logger.info("No persisted credential")
            return await self._publish(SessionState.anonymous(), generation)

        if credential.is_expired(self.clock()) and credential.refresh_token is None:
            self._logger.info("Persisted credential expired")
            await self._forget_credential()
            return await self._publish(SessionState.anonymous(), generation)

        self._credential = credential
        self.gateway.set_credential(credential)

        if credential.is_expired(self.clock()):
            if not await self.handle_unauthorized(credential.token):
                return self._state
            if generation != self._generation:
                return self._state

        result = await self.gateway.get_identity()
        if generation != self._generation:
            self._logger.debug("Discarding superseded identity check")
            return self._state

        if result.is_success:
            identity = result.unwrap()
            try:
                await self._write_identity(identity)
            except StorageError as e:
                self._logger.warning(
                    "Could not persist identity", extra={"error": str(e)}
                )
            self._logger.info("Session restored", extra={"user_id": identity.id})
            return await self._publish(SessionState.authenticated(identity), generation)

        if result.error_kind is ApiErrorKind.UNAUTHORIZED:
            self._logger.info("Persisted credential rejected")
            await self._forget_credential()
        else:
            # Keep the credential for the next launch
            self._logger.warning(
                "Identity check failed",
                extra={"kind": result.error_kind.value if result.error_kind else None},
            )
            self._credential = None
            self.gateway.set_credential(None)
        return await self._publish(SessionState.anonymous(), generation)

    async def sign_in(self, credential: Credential, identity: Identity) -> SessionState:
        """Persist the credential and become AUTHENTICATED.

        A call that would not change anything is a no-op.
        """
        if self._state == SessionState.authenticated(identity) and self._credential == credential:
            return self._state

        generation = self._next_generation()
        self._credential = credential
        self.gateway.set_credential(credential)
        try:
            async with self._write_lock:
                await self.storage.set_item(
                    self.storage_config.token_key, CredentialPayload.dump(credential)
                )
                await self.storage.set_item(
                    self.storage_config.identity_key, IdentityPayload.dump(identity)
                )
        except StorageError as e:
            # The session still works until the app restarts
            self._logger.warning("Could not persist session", extra={"error": str(e)})

        self._logger.info("Signed in", extra={"user_id": identity.id})
        return await self._publish(SessionState.authenticated(identity), generation)

    async def sign_out(self, notify_backend: bool = True) -> SessionState:
        """Drop the credential everywhere and become ANONYMOUS.

        Args:
            notify_backend: Whether to tell the backend first; its answer
                does not matter.
        """
        generation = self._next_generation()
        if notify_backend and self._credential is not None:
            result = await self.gateway.logout()
            if not result.is_success:
                self._logger.info(
                    "Backend logout failed",
                    extra={"kind": result.error_kind.value if result.error_kind else None},
                )
            if generation != self._generation:
                return self._state

        await self._forget_credential()
        self._logger.info("Signed out")
        return await self._publish(SessionState.anonymous(), generation)

    # ------------------------------------------------------------------
    # Magic link
    # ------------------------------------------------------------------

    async def request_magic_link(self, email: str) -> ApiResult[Any]:
        return await self.gateway.send_magic_link(email)

    async def verify_magic_link(self, token: str, email: str) -> ApiResult[AuthSession]:
        """Exchange a magic-link token and sign in on success."""
        result = await self.gateway.verify_magic_link(token, email)
        if result.is_success:
            session = result.unwrap()
            await self.sign_in(session.credential, session.identity)
        return result

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def handle_unauthorized(self, failed_token: str) -> bool:
        """Obtain a fresh credential after a 401.

        Concurrent callers share one refresh. A token that was already
        replaced reports success without refreshing again.

        Args:
            failed_token: Token the rejected request carried.

        Returns:
            True if a newer credential is in place and the request may be
            retried once.
        """
        if self._credential is None:
            return False
        if self._credential.token != failed_token:
            return True
        if self._refreshing is not None and not self._refreshing.done():
            return await asyncio.shield(self._refreshing)

        self._refreshing = asyncio.ensure_future(self._refresh(self._credential))
        return await asyncio.shield(self._refreshing)

    async def _refresh(self, credential: Credential) -> bool:
        generation = self._generation
        if credential.refresh_token is None:
            self._logger.info("Credential rejected and no refresh token available")
            await self._force_anonymous(forget=True)
            return False

        result = await self.gateway.refresh_credential(credential.refresh_token)
        if generation != self._generation:
            self._logger.debug("Discarding superseded refresh")
            return self._credential is not None and self._credential.token != credential.token

        if result.is_success:
            fresh = result.unwrap()
            if fresh.refresh_token is None:
                fresh = Credential(fresh.token, fresh.expires_at, credential.refresh_token)
            self._credential = fresh
            self.gateway.set_credential(fresh)
            try:
                async with self._write_lock:
                    await self.storage.set_item(
                        self.storage_config.token_key, CredentialPayload.dump(fresh)
                    )
            except StorageError as e:
                self._logger.warning(
                    "Could not persist refreshed credential", extra={"error": str(e)}
                )
            self._logger.info("Credential refreshed")
            return True

        self._logger.warning(
            "Credential refresh failed",
            extra={"kind": result.error_kind.value if result.error_kind else None},
        )
        # A network failure says nothing about the stored credential
        await self._force_anonymous(forget=result.error_kind is not ApiErrorKind.NETWORK)
        return False

    async def _force_anonymous(self, forget: bool) -> None:
        generation = self._next_generation()
        if forget:
            await self._forget_credential()
        else:
            self._credential = None
            self.gateway.set_credential(None)
        await self._publish(SessionState.anonymous(), generation)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    async def _publish(self, state: SessionState, generation: int) -> SessionState:
        if generation != self._generation:
            self._logger.debug(
                "Discarding stale session transition",
                extra={"status": state.status.name},
            )
            return self._state
        if state == self._state:
            return state

        self._state = state
        self._logger.debug("Session state changed", extra={"status": state.status.name})
        for listener in list(self._listeners):
            try:
                await listener(state)
            except Exception as e:
                self._logger.error(
                    "Session listener failed",
                    extra={"error": str(e)},
                    exc_info=True,
                )
        return state

    async def _read_credential(self) -> Optional[Credential]:
        raw = await self.storage.get_item(self.storage_config.token_key)
        if raw is None:
            return None
        if isinstance(raw, str):
            return Credential(token=raw)
        try:
            return CredentialPayload.model_validate(raw).to_domain(self.clock())
        except ValidationError:
            self._logger.warning("Ignoring unreadable persisted credential")
            return None

    async def _write_identity(self, identity: Identity) -> None:
        async with self._write_lock:
            await self.storage.set_item(
                self.storage_config.identity_key, IdentityPayload.dump(identity)
            )

    async def _forget_credential(self) -> None:
        self._credential = None
        self.gateway.set_credential(None)
        try:
            async with self._write_lock:
                await self.storage.remove_item(self.storage_config.token_key)
                await self.storage.remove_item(self.storage_config.identity_key)
        except StorageError as e:
            self._logger.warning(
                "Could not clear persisted credential", extra={"error": str(e)}
            )
