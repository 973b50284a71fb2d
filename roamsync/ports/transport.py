"""HTTP transport port - The raw network round-trip.

The ApiGateway is the only caller. Adapters raise TransportError when no
response was received and otherwise return the status and decoded body,
whatever the status.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Protocol


@dataclass(frozen=True, slots=True)
class TransportResponse:
    """A received HTTP response.

    Attributes:
        status_code: HTTP status
        body: Decoded JSON body, or None if empty or not JSON
    """

    status_code: int
    body: Any = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpTransportPort(Protocol):
    """Port for sending one HTTP request.

    Implementation: adapters/http/httpx_transport.py
    """

    async def send(
        self,
        method: str,
        url: str,
        *,
        headers: Mapping[str, str],
        params: Optional[Mapping[str, str]] = None,
        json: Any = None,
    ) -> TransportResponse:
        """Perform the request.

        Args:
            method: HTTP method.
            url: Absolute URL without query string.
            headers: Request headers.
            params: Query parameters.
            json: JSON body, if any.

        Returns:
            The received response.

        Raises:
            TransportError: If the request failed without a response.
        """
        ...
