"""Profile resolver - Travel profile and onboarding completeness.

The resolver follows the session through an injected SessionEventsPort:
whenever the identity changes it resets to IDLE and abandons whatever it
was doing for the previous identity.

Updates are optimistic. The merged profile is published at once, and
the exact pre-update state is restored if the backend refuses it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ..config import ProfileConfig, StorageConfig
from ..domain.errors import ApiError, ApiErrorKind, StorageError
from ..domain.models import ApiResult, Identity, TravelProfile
from ..domain.states import ProfileState, ProfileStatus, SessionState
from ..ports.gateway import ApiGatewayPort
from ..ports.session import SessionEventsPort, Unsubscribe
from ..ports.storage import KeyValueStoragePort
from .schemas import ProfileChanges, ProfilePayload

ProfileListener = Callable[[ProfileState], None]


def reconcile_primary_mode(profile: TravelProfile) -> TravelProfile:
    """Enforce the primary-mode rule on a profile.

    Selected modes are de-duplicated in order. A primary mode that is not
    selected becomes the first selected mode, or None if none are.
    """
    modes = tuple(dict.fromkeys(profile.selected_modes))
    primary = profile.primary_mode
    if primary not in modes:
        primary = modes[0] if modes else None
    if modes == profile.selected_modes and primary == profile.primary_mode:
        return profile
    return replace(profile, selected_modes=modes, primary_mode=primary)


def merge_profile(base: TravelProfile, changes: ProfileChanges) -> TravelProfile:
    """Apply the explicitly given changes on top of ``base``.

    Selecting only cycling on a hitchhiking-primary profile also moves
    the primary mode to cycling. An explicit None primary mode clears it.
    """
    updates: Dict[str, Any] = {}
    for name, value in changes.given().items():
        if name == "selected_modes":
            updates[name] = tuple(value or ())
        elif name == "primary_mode" or value is not None:
            updates[name] = value
    return reconcile_primary_mode(replace(base, **updates))


def _field_errors(error: ValidationError) -> Dict[str, tuple[str, ...]]:
    fields: Dict[str, List[str]] = {}
    for item in error.errors():
        name = ".".join(str(part) for part in item["loc"]) or "__root__"
        fields.setdefault(name, []).append(item["msg"])
    return {name: tuple(messages) for name, messages in fields.items()}


@dataclass
class ProfileResolver:
    """Travel profile state machine.

    States: IDLE -> LOADING -> {READY, NEEDS_ONBOARDING, ERROR}

    Attributes:
        gateway: Network chokepoint
        sessions: Source of identity changes
        storage: Persisted device storage, for the development fallback
        profile_config: Development fallback switch
        storage_config: Storage key names
    """

    gateway: ApiGatewayPort
    sessions: SessionEventsPort
    storage: KeyValueStoragePort
    profile_config: ProfileConfig = field(default_factory=ProfileConfig)
    storage_config: StorageConfig = field(default_factory=StorageConfig)

    _state: ProfileState = field(default_factory=ProfileState.idle, init=False)
    _identity: Optional[Identity] = field(default=None, init=False, repr=False)
    _generation: int = field(default=0, init=False, repr=False)
    _listeners: List[ProfileListener] = field(default_factory=list, init=False, repr=False)
    _loading: Optional[asyncio.Future[ProfileState]] = field(
        default=None, init=False, repr=False
    )
    _update_lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)
    _unsubscribe: Optional[Unsubscribe] = field(default=None, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        self._identity = self.sessions.state.identity
        self._unsubscribe = self.sessions.subscribe(self._on_session_changed)

    @property
    def state(self) -> ProfileState:
        return self._state

    @property
    def profile(self) -> Optional[TravelProfile]:
        return self._state.profile

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: ProfileListener) -> Unsubscribe:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Stop following the session."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def _on_session_changed(self, session: SessionState) -> None:
        previous = self._identity.id if self._identity else None
        current = session.identity.id if session.identity else None
        self._identity = session.identity
        if previous == current:
            return

        self._logger.info(
            "Identity changed, resetting profile",
            extra={"user_id": current},
        )
        if current is None:
            await self.clear()
        else:
            self._publish(ProfileState.idle(), self._next_generation())

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load_profile(self) -> ProfileState:
        """Fetch the profile of the current identity.

        Concurrent calls join the load in flight. Without an identity the
        resolver stays where it is.
        """
        if self._loading is not None and not self._loading.done():
            return await asyncio.shield(self._loading)
        if self._identity is None:
            self._logger.debug("No identity, nothing to load")
            return self._state

        self._loading = asyncio.ensure_future(self._load(self._identity))
        return await asyncio.shield(self._loading)

    async def _load(self, identity: Identity) -> ProfileState:
        generation = self._next_generation()
        self._publish(ProfileState.loading(), generation)

        result = await self.gateway.get_profile(identity.id)
        if generation != self._generation:
            self._logger.debug("Discarding superseded profile load")
            return self._state

        if result.is_success:
            profile = reconcile_primary_mode(result.unwrap())
            self._logger.info(
                "Profile loaded",
                extra={"user_id": identity.id, "onboarded": profile.onboarding_completed},
            )
            return self._publish(ProfileState.ready(profile), generation)

        if result.error_kind is ApiErrorKind.NOT_FOUND:
            if self.profile_config.local_fallback:
                local = await self._read_local(identity)
                if generation != self._generation:
                    return self._state
                if local is not None:
                    self._logger.info("Using device profile", extra={"user_id": identity.id})
                    return self._publish(ProfileState.ready(local), generation)
            self._logger.info("No profile yet", extra={"user_id": identity.id})
            return self._publish(ProfileState.needs_onboarding(), generation)

        error = result.error
        assert error is not None
        self._logger.warning(
            "Profile load failed",
            extra={"user_id": identity.id, "kind": error.kind.value},
        )
        return self._publish(ProfileState.error(error.message, error.kind), generation)

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    async def update_profile(
        self, changes: Union[ProfileChanges, Mapping[str, Any]]
    ) -> ApiResult[TravelProfile]:
        """Apply changes optimistically, then persist the full profile.

        Updates run one at a time, so a failed update always restores
        a state the backend has confirmed.

        Args:
            changes: Partial profile; snake_case or camelCase keys.

        Returns:
            The merged profile, or the error after the previous state was
            restored.
        """
        if not isinstance(changes, ProfileChanges):
            try:
                changes = ProfileChanges.model_validate(dict(changes))
            except ValidationError as e:
                return ApiResult.failure(
                    ApiError(
                        "Invalid profile changes",
                        kind=ApiErrorKind.VALIDATION,
                        field_errors=_field_errors(e),
                        cause=e,
                    )
                )

        async with self._update_lock:
            return await self._update(changes)

    async def _update(self, changes: ProfileChanges) -> ApiResult[TravelProfile]:
        identity = self._identity
        snapshot = self._state
        if snapshot.status is ProfileStatus.READY and snapshot.profile is not None:
            base = snapshot.profile
        elif snapshot.status is ProfileStatus.NEEDS_ONBOARDING and identity is not None:
            base = TravelProfile(user_id=identity.id)
        else:
            return ApiResult.failure(
                ApiError(
                    f"Profile cannot be updated while {snapshot.status.name.lower()}",
                    kind=ApiErrorKind.UNKNOWN,
                )
            )

        merged = merge_profile(base, changes)
        generation = self._next_generation()
        self._publish(ProfileState.ready(merged), generation)

        result = await self.gateway.update_profile(merged)
        if generation != self._generation:
            self._logger.debug("Discarding superseded profile update")
            return result

        keep_local = (
            self.profile_config.local_fallback
            and result.error_kind is ApiErrorKind.NOT_FOUND
        )
        if result.is_success or keep_local:
            if self.profile_config.local_fallback:
                await self._write_local(merged)
            self._logger.info("Profile updated", extra={"user_id": merged.user_id})
            return ApiResult.success(merged, message=result.message)

        self._logger.warning(
            "Profile update rejected, restoring previous state",
            extra={
                "user_id": merged.user_id,
                "kind": result.error_kind.value if result.error_kind else None,
            },
        )
        self._publish(snapshot, generation)
        return result

    async def clear(self) -> None:
        """Return to IDLE and drop the device copy of the profile."""
        self._publish(ProfileState.idle(), self._next_generation())
        try:
            await self.storage.remove_item(self.storage_config.profile_key)
        except StorageError as e:
            self._logger.warning("Could not drop device profile", extra={"error": str(e)})

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _publish(self, state: ProfileState, generation: int) -> ProfileState:
        if generation != self._generation:
            return self._state
        if state == self._state:
            return state
        self._state = state
        self._logger.debug("Profile state changed", extra={"status": state.status.name})
        for listener in list(self._listeners):
            listener(state)
        return state

    async def _read_local(self, identity: Identity) -> Optional[TravelProfile]:
        try:
            raw = await self.storage.get_item(self.storage_config.profile_key)
        except StorageError as e:
            self._logger.warning("Could not read device profile", extra={"error": str(e)})
            return None
        if raw is None:
            return None
        try:
            profile = ProfilePayload.parse(raw)
        except ValidationError:
            self._logger.warning("Ignoring unreadable device profile")
            return None
        if profile.user_id != identity.id:
            return None
        return reconcile_primary_mode(profile)

    async def _write_local(self, profile: TravelProfile) -> None:
        try:
            await self.storage.set_item(
                self.storage_config.profile_key, ProfilePayload.dump(profile)
            )
        except StorageError as e:
            self._logger.warning("Could not store device profile", extra={"error": str(e)})
