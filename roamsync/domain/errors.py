"""Typed errors for the roamsync client core.

API failures are values: the gateway wraps them in an ``ApiResult`` and
never lets a raw transport exception cross its boundary. ``ApiError`` is
still an exception so callers that prefer raising can ``unwrap()``.

All errors inherit from RoamSyncError and can optionally wrap a root
cause exception for debugging.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


@dataclass
class RoamSyncError(Exception):
    """Base error for the roamsync client core.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


class ApiErrorKind(Enum):
    """Normalized failure categories produced by the ApiGateway."""

    NETWORK = "network"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    SERVER = "server"
    UNKNOWN = "unknown"

    @property
    def is_retryable(self) -> bool:
        """Whether retrying the same request may succeed."""
        return self in (ApiErrorKind.NETWORK, ApiErrorKind.SERVER)


@dataclass
class ApiError(RoamSyncError):
    """A normalized API failure.

    Attributes:
        kind: Failure category
        status_code: HTTP status when a response was received
        field_errors: Per-field validation messages, if the server sent any
    """

    kind: ApiErrorKind = ApiErrorKind.UNKNOWN
    status_code: Optional[int] = None
    field_errors: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_status(
        cls,
        status_code: int,
        message: str,
        field_errors: Optional[Dict[str, Tuple[str, ...]]] = None,
    ) -> ApiError:
        """Map an HTTP status (and optional field errors) to an ApiError."""
        field_errors = field_errors or {}
        if status_code == 401:
            kind = ApiErrorKind.UNAUTHORIZED
        elif status_code == 404:
            kind = ApiErrorKind.NOT_FOUND
        elif status_code == 422 or (400 <= status_code < 500 and field_errors):
            kind = ApiErrorKind.VALIDATION
        elif 500 <= status_code < 600:
            kind = ApiErrorKind.SERVER
        else:
            kind = ApiErrorKind.UNKNOWN
        return cls(
            message,
            kind=kind,
            status_code=status_code,
            field_errors=field_errors,
        )


@dataclass
class TransportError(RoamSyncError):
    """The HTTP transport failed before a response was received.

    Raised by transport adapters only; the gateway converts it into
    an ApiError of kind NETWORK.

    Attributes:
        timed_out: Whether the failure was a timeout
    """

    timed_out: bool = False


@dataclass
class StorageError(RoamSyncError):
    """Persisted device storage could not be read or written.

    Attributes:
        key: Storage key involved, if any
    """

    key: Optional[str] = None
