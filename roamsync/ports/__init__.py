"""Ports layer - Abstract interfaces (Protocols) for the client core.

Ports define the contracts between the services and the outside world:
network transport, persisted device storage, the response cache, and
the observation seams between services.

This module follows the Hexagonal Architecture pattern:
- Input ports: How the core is driven (session events, gateway)
- Output ports: How the core drives external systems (adapters)
"""

from .cache import ResponseCachePort
from .gateway import ApiGatewayPort, UnauthorizedHandler
from .session import SessionEventsPort, SessionListener, Unsubscribe
from .storage import KeyValueStoragePort
from .transport import HttpTransportPort, TransportResponse

__all__ = [
    # Network
    "HttpTransportPort",
    "TransportResponse",
    "ApiGatewayPort",
    "UnauthorizedHandler",
    # Storage
    "KeyValueStoragePort",
    # Cache
    "ResponseCachePort",
    # Session
    "SessionEventsPort",
    "SessionListener",
    "Unsubscribe",
]
