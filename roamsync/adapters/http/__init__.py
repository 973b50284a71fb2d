"""HTTP adapters - Implementations of the HttpTransportPort."""

from .httpx_transport import HttpxTransport

__all__ = ["HttpxTransport"]
