"""httpx transport adapter.

Sends requests with a lazily created ``httpx.AsyncClient`` and turns
transport failures into TransportError. Status handling is left to the
ApiGateway.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

import httpx

from ...config import ApiConfig, get_config
from ...domain.errors import TransportError
from ...ports.transport import TransportResponse


@dataclass
class HttpxTransport:
    """HTTP transport backed by httpx.

    Implements HttpTransportPort.

    Attributes:
        config: API configuration (timeout, user agent)
        client: Optional pre-built client (tests pass one with a MockTransport)
    """

    config: ApiConfig = field(default_factory=lambda: get_config().api)
    client: Optional[httpx.AsyncClient] = None

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _get_client(self) -> httpx.AsyncClient:
        """Get or initialize the HTTP client."""
        if self.client is None:
            self._logger.debug(
                "Initializing HTTP client",
                extra={"timeout": self.config.timeout_seconds},
            )
            self.client = httpx.AsyncClient(
                timeout=self.config.timeout_seconds,
                headers={"User-Agent": self.config.user_agent},
            )
        return self.client

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
    ) -> TransportResponse:
        """Perform one HTTP request.

        Raises:
            TransportError: On timeouts and connection-level failures.
        """
        client = self._get_client()
        try:
            response = await client.request(
                method,
                url,
                headers=dict(headers),
                params=dict(params) if params else None,
                json=json,
            )
        except httpx.TimeoutException as e:
            self._logger.warning(
                "HTTP request timed out",
                extra={"method": method, "url": url},
            )
            raise TransportError("Request timed out", cause=e, timed_out=True) from e
        except httpx.HTTPError as e:
            self._logger.warning(
                "HTTP request failed",
                extra={"method": method, "url": url, "error": str(e)},
            )
            raise TransportError("Network request failed", cause=e) from e

        return TransportResponse(
            status_code=response.status_code,
            body=self._decode(response),
        )

    def _decode(self, response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            self._logger.debug(
                "Response body is not JSON",
                extra={"status": response.status_code},
            )
            return None

    async def aclose(self) -> None:
        """Close the underlying client, if one was created."""
        if self.client is not None:
            await self.client.aclose()
            self.client = None
