"""Response envelope normalization.

Every transport response becomes an ApiResult: success envelopes are
unwrapped, error envelopes and bare statuses become typed ApiErrors.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from ..domain.errors import ApiError, ApiErrorKind
from ..domain.models import ApiResult
from ..ports.transport import TransportResponse
from .schemas import ErrorEnvelope, SuccessEnvelope


def normalize_response(response: TransportResponse) -> ApiResult[Any]:
    """Convert a raw response into an ApiResult."""
    if response.ok:
        return _success(response)
    return ApiResult.failure(error_from_response(response))


def _success(response: TransportResponse) -> ApiResult[Any]:
    body = response.body
    if isinstance(body, dict) and "data" in body:
        try:
            envelope = SuccessEnvelope.model_validate(body)
        except ValidationError as e:
            return ApiResult.failure(
                ApiError(
                    "Malformed response envelope",
                    kind=ApiErrorKind.UNKNOWN,
                    status_code=response.status_code,
                    cause=e,
                )
            )
        return ApiResult.success(
            envelope.data,
            message=envelope.message,
            pagination=envelope.pagination.to_domain() if envelope.pagination else None,
        )
    # Empty bodies and endpoints answering without the envelope
    return ApiResult.success(body)


def error_from_response(response: TransportResponse) -> ApiError:
    """Build the typed error for a non-2xx response."""
    message = f"HTTP {response.status_code}"
    field_errors: dict[str, tuple[str, ...]] = {}
    if isinstance(response.body, dict) and "error" in response.body:
        try:
            envelope = ErrorEnvelope.model_validate(response.body)
        except ValidationError:
            envelope = None
        if envelope is not None:
            message = envelope.error.message or message
            field_errors = {
                name: tuple(messages)
                for name, messages in envelope.error.field_errors.items()
            }
    return ApiError.from_status(response.status_code, message, field_errors)
