"""API gateway - The single network chokepoint.

Every backend call goes through ``ApiGateway.request``. It decides whether
the response cache may answer, coalesces identical in-flight GETs, attaches
the bearer credential, invalidates cached resource families after
mutations and turns every outcome into an ``ApiResult``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from ..config import ApiConfig, CacheConfig
from ..domain.errors import ApiError, ApiErrorKind, TransportError
from ..domain.models import (
    ApiResult,
    AuthSession,
    Credential,
    Identity,
    TransportMode,
    TravelProfile,
)
from ..ports.cache import ResponseCachePort
from ..ports.gateway import UnauthorizedHandler
from ..ports.transport import HttpTransportPort
from .cache_keys import make_cache_key, split_endpoint
from .coalescer import RequestCoalescer
from .envelope import normalize_response
from .invalidation import InvalidationPolicy
from .schemas import AuthPayload, CredentialPayload, IdentityPayload, ProfilePayload

# Query parameters that make a read position-dependent
LOCATION_PARAMS = frozenset({"latitude", "longitude", "lat", "lng", "lon"})


@dataclass(frozen=True, slots=True)
class CachePolicy:
    """How a GET may use the response cache.

    Attributes:
        ttl_seconds: Freshness window; None disables cache read and write.
            Coalescing applies either way.
    """

    ttl_seconds: Optional[float] = None

    @property
    def uses_cache(self) -> bool:
        return self.ttl_seconds is not None and self.ttl_seconds > 0


NO_CACHE = CachePolicy()


@dataclass
class ApiGateway:
    """Network chokepoint implementing ApiGatewayPort.

    Attributes:
        transport: Raw HTTP round-trip
        cache: Response cache, written only from here
        api_config: Backend location and client identification
        cache_config: Default, location and catalog TTLs
        coalescer: In-flight GET deduplication
        invalidation: Resource family to cache prefixes map

    Example:
        gateway = ApiGateway(HttpxTransport(config.api), ResponseCache())
        result = await gateway.get_spots(limit=20)
        if result.is_success:
            spots = result.value
    """

    transport: HttpTransportPort
    cache: ResponseCachePort
    api_config: ApiConfig = field(default_factory=ApiConfig)
    cache_config: CacheConfig = field(default_factory=CacheConfig)
    coalescer: RequestCoalescer = field(default_factory=RequestCoalescer)
    invalidation: InvalidationPolicy = field(default_factory=InvalidationPolicy)

    _credential: Optional[Credential] = field(default=None, init=False, repr=False)
    _unauthorized_handler: Optional[UnauthorizedHandler] = field(
        default=None, init=False, repr=False
    )
    # Bumped whenever the credential changes; responses fetched under an
    # older credential are not cached.
    _credential_epoch: int = field(default=0, init=False, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Credential
    # ------------------------------------------------------------------

    @property
    def has_credential(self) -> bool:
        return self._credential is not None

    def set_credential(self, credential: Optional[Credential]) -> None:
        """Mirror the session credential.

        Clearing the credential also clears the response cache, since
        cached responses belong to the previous user.
        """
        if credential == self._credential:
            return
        self._credential = credential
        self._credential_epoch += 1
        if credential is None:
            self.cache.invalidate()
        self._logger.debug(
            "Gateway credential changed",
            extra={"has_credential": credential is not None},
        )

    def on_unauthorized(self, handler: Optional[UnauthorizedHandler]) -> None:
        self._unauthorized_handler = handler

    # ------------------------------------------------------------------
    # Core request
    # ------------------------------------------------------------------

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Any = None,
        cache_policy: Optional[CachePolicy] = None,
        *,
        params: Optional[Mapping[str, Any]] = None,
        invalidate: Iterable[str] = (),
        retry_on_unauthorized: bool = True,
    ) -> ApiResult[Any]:
        """Perform one logical API call.

        Args:
            endpoint: Path relative to the base URL, may carry a query.
            method: HTTP method.
            body: JSON body for mutations.
            cache_policy: GET cache usage; defaults to the configured TTL.
            params: Extra query parameters, None values dropped.
            invalidate: Extra cache-key substrings to drop after a
                successful mutation.
            retry_on_unauthorized: Whether a 401 may trigger the refresh
                hook and one retry.

        Returns:
            ApiResult with the envelope data or a typed ApiError.
        """
        method = method.upper()
        invalidate = tuple(invalidate)
        token = self._credential.token if self._credential else None

        if method == "GET":
            result = await self._get(endpoint, params, cache_policy)
        else:
            result = await self._mutate(method, endpoint, params, body, invalidate)

        if (
            retry_on_unauthorized
            and result.error_kind is ApiErrorKind.UNAUTHORIZED
            and token is not None
            and self._unauthorized_handler is not None
        ):
            self._logger.info(
                "Unauthorized response, asking for a fresh credential",
                extra={"method": method, "endpoint": split_endpoint(endpoint)[0]},
            )
            if await self._unauthorized_handler(token):
                return await self.request(
                    endpoint,
                    method,
                    body,
                    cache_policy,
                    params=params,
                    invalidate=invalidate,
                    retry_on_unauthorized=False,
                )
        return result

    async def _get(
        self,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        cache_policy: Optional[CachePolicy],
    ) -> ApiResult[Any]:
        policy = cache_policy or CachePolicy(self.cache_config.default_ttl_seconds)
        key = make_cache_key("GET", endpoint, params)

        if policy.uses_cache:
            cached = self.cache.get(key)
            if cached is not None:
                self._logger.debug("Cache hit", extra={"key": key})
                return cached

        epoch = self._credential_epoch

        async def produce() -> ApiResult[Any]:
            result = await self._send("GET", endpoint, params, None)
            # Written before the coalescer releases the slot
            if (
                result.is_success
                and policy.uses_cache
                and epoch == self._credential_epoch
            ):
                self.cache.set(key, result, ttl=policy.ttl_seconds)
            return result

        return await self.coalescer.dedupe(key, produce)

    async def _mutate(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        body: Any,
        extra_prefixes: Sequence[str],
    ) -> ApiResult[Any]:
        result = await self._send(method, endpoint, params, body)
        if result.is_success:
            prefixes = dict.fromkeys(
                self.invalidation.prefixes_for(endpoint) + tuple(extra_prefixes)
            )
            for prefix in prefixes:
                self.cache.invalidate(prefix)
        return result

    async def _send(
        self,
        method: str,
        endpoint: str,
        params: Optional[Mapping[str, Any]],
        body: Any,
    ) -> ApiResult[Any]:
        path, query = split_endpoint(endpoint, params)
        url = self.api_config.base_url.rstrip("/") + path
        try:
            response = await self.transport.send(
                method,
                url,
                headers=self._headers(),
                params=query or None,
                json=body,
            )
        except TransportError as e:
            self._logger.warning(
                "Network request failed",
                extra={
                    "method": method,
                    "path": path,
                    "timed_out": e.timed_out,
                },
            )
            return ApiResult.failure(
                ApiError(
                    "Request timed out" if e.timed_out else "Network request failed",
                    kind=ApiErrorKind.NETWORK,
                    cause=e,
                )
            )

        result = normalize_response(response)
        if not result.is_success:
            self._logger.info(
                "API request failed",
                extra={
                    "method": method,
                    "path": path,
                    "status": response.status_code,
                    "kind": result.error_kind.value if result.error_kind else None,
                },
            )
        return result

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.api_config.user_agent,
        }
        if self._credential is not None:
            headers["Authorization"] = f"Bearer {self._credential.token}"
        return headers

    def _spot_policy(self, params: Mapping[str, Any]) -> CachePolicy:
        """Location TTL when the query carries coordinates, else catalog TTL."""
        located = any(
            params.get(name) is not None for name in LOCATION_PARAMS
        )
        if located:
            return CachePolicy(self.cache_config.location_ttl_seconds)
        return CachePolicy(self.cache_config.catalog_ttl_seconds)

    # ------------------------------------------------------------------
    # Auth endpoints
    # ------------------------------------------------------------------

    async def get_identity(self) -> ApiResult[Identity]:
        result = await self.request("/auth/me", cache_policy=NO_CACHE)
        return result.map(IdentityPayload.parse)

    async def send_magic_link(self, email: str) -> ApiResult[Any]:
        return await self.request("/auth/magic-link", "POST", {"email": email})

    async def verify_magic_link(self, token: str, email: str) -> ApiResult[AuthSession]:
        result = await self.request(
            "/auth/verify",
            "POST",
            {"token": token, "email": email},
            retry_on_unauthorized=False,
        )
        return result.map(lambda data: AuthPayload.model_validate(data).to_session())

    async def refresh_credential(self, refresh_token: str) -> ApiResult[Credential]:
        """Exchange a refresh token; a 401 here never re-enters the hook."""
        result = await self.request(
            "/auth/refresh",
            "POST",
            {"refreshToken": refresh_token},
            retry_on_unauthorized=False,
        )
        return result.map(lambda data: CredentialPayload.model_validate(data).to_domain())

    async def logout(self) -> ApiResult[Any]:
        return await self.request(
            "/auth/logout", "POST", retry_on_unauthorized=False
        )

    # ------------------------------------------------------------------
    # Profile endpoints
    # ------------------------------------------------------------------

    async def get_profile(self, user_id: str) -> ApiResult[TravelProfile]:
        result = await self.request(f"/users/{user_id}/profile")
        return result.map(ProfilePayload.parse)

    async def update_profile(self, profile: TravelProfile) -> ApiResult[TravelProfile]:
        """Upsert the full profile of its owner."""
        result = await self.request(
            f"/users/{profile.user_id}/profile",
            "PUT",
            ProfilePayload.dump(profile),
        )
        # Some deployments answer 204 to an upsert
        return result.map(
            lambda data: ProfilePayload.parse(data) if data is not None else profile
        )

    # ------------------------------------------------------------------
    # Spot endpoints
    # ------------------------------------------------------------------

    async def get_spots(
        self,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        spot_type: Optional[str] = None,
        is_verified: Optional[bool] = None,
        min_rating: Optional[float] = None,
    ) -> ApiResult[Any]:
        params = {
            "limit": limit,
            "offset": offset,
            "spot_type": spot_type,
            "is_verified": is_verified,
            "min_rating": min_rating,
        }
        return await self.request(
            "/spots",
            params=params,
            cache_policy=CachePolicy(self.cache_config.catalog_ttl_seconds),
        )

    async def get_spots_filtered(
        self,
        transport_modes: Sequence[TransportMode] = (),
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius: Optional[float] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        spot_type: Optional[str] = None,
        min_rating: Optional[float] = None,
        safety_priority: Optional[str] = None,
    ) -> ApiResult[Any]:
        params: Dict[str, Any] = {
            "transport_modes": list(transport_modes) or None,
            "latitude": latitude,
            "longitude": longitude,
            "radius": radius,
            "limit": limit,
            "offset": offset,
            "spot_type": spot_type,
            "min_rating": min_rating,
            "safety_priority": safety_priority,
        }
        return await self.request(
            "/spots/filtered", params=params, cache_policy=self._spot_policy(params)
        )

    async def get_spots_for_mode(
        self,
        mode: TransportMode,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius: Optional[float] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> ApiResult[Any]:
        params: Dict[str, Any] = {
            "latitude": latitude,
            "longitude": longitude,
            "radius": radius,
            "limit": limit,
            "offset": offset,
        }
        return await self.request(
            f"/spots/for-mode/{TransportMode(mode).value}",
            params=params,
            cache_policy=self._spot_policy(params),
        )

    async def get_nearby_spots(
        self,
        latitude: float,
        longitude: float,
        radius: float = 10,
        limit: int = 20,
    ) -> ApiResult[Any]:
        params = {
            "latitude": latitude,
            "longitude": longitude,
            "radius": radius,
            "limit": limit,
        }
        return await self.request(
            "/spots/nearby",
            params=params,
            cache_policy=CachePolicy(self.cache_config.location_ttl_seconds),
        )

    async def get_spot(self, spot_id: str) -> ApiResult[Any]:
        return await self.request(
            f"/spots/{spot_id}",
            cache_policy=CachePolicy(self.cache_config.catalog_ttl_seconds),
        )

    async def create_spot(self, spot: Mapping[str, Any]) -> ApiResult[Any]:
        return await self.request("/spots", "POST", dict(spot))

    async def update_spot(self, spot_id: str, changes: Mapping[str, Any]) -> ApiResult[Any]:
        return await self.request(f"/spots/{spot_id}", "PUT", dict(changes))

    async def delete_spot(self, spot_id: str) -> ApiResult[Any]:
        return await self.request(f"/spots/{spot_id}", "DELETE")

    async def health_check(self) -> ApiResult[Any]:
        return await self.request("/health", cache_policy=NO_CACHE)
