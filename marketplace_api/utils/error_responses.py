"""Helpers for constructing structured API error responses.

Every exception handler in :mod:`marketplace_api.main` funnels through these
builders so payloads share one shape: the error category, a human message,
the request id, a timezone-aware timestamp, and an optional retry hint.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from fastapi import status

from marketplace_api.errors import (
    MarketplaceError,
    NotFoundError,
    StoreUnavailable,
    Unauthenticated,
    ValidationError,
)
from marketplace_api.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from marketplace_api.utils.request_context import get_request_id

__all__ = [
    "HTTP_UNPROCESSABLE",
    "STORE_UNAVAILABLE_RETRY_AFTER",
    "build_error_response",
    "build_marketplace_error_response",
    "build_validation_error_response",
]

STORE_UNAVAILABLE_RETRY_AFTER = 5
# Literal: the Starlette constant name for 422 differs across releases.
HTTP_UNPROCESSABLE = 422

# Ordered most-specific first; the first isinstance match wins.
_MARKETPLACE_ERROR_MAPPING: tuple[tuple[type[MarketplaceError], ErrorType, int], ...] = (
    (ValidationError, ErrorType.VALIDATION_ERROR, HTTP_UNPROCESSABLE),
    (NotFoundError, ErrorType.NOT_FOUND, status.HTTP_404_NOT_FOUND),
    (StoreUnavailable, ErrorType.DATABASE_ERROR, status.HTTP_503_SERVICE_UNAVAILABLE),
    (Unauthenticated, ErrorType.AUTHENTICATION_ERROR, status.HTTP_401_UNAUTHORIZED),
)


def _current_timestamp() -> datetime:
    """Return a timezone-aware timestamp; patched by tests for determinism."""

    return datetime.now(UTC)


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    """Construct a ``ValidationErrorResponse`` listing every failing field."""

    return ValidationErrorResponse(
        error_type=ErrorType.VALIDATION_ERROR,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str | None,
    status_code: int,
    path: str,
    retry_after: int | None = None,
    request_id: str | None = None,
) -> ErrorResponse:
    """Construct a generic ``ErrorResponse`` enriched with request metadata."""

    return ErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=request_id or get_request_id(),
        path=path,
        retry_after=retry_after,
    )


def build_marketplace_error_response(
    exc: MarketplaceError, *, path: str
) -> ErrorResponse:
    """Translate a domain failure into its HTTP status and error payload."""

    error_type = ErrorType.INTERNAL_ERROR
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for exc_type, mapped_type, mapped_status in _MARKETPLACE_ERROR_MAPPING:
        if isinstance(exc, exc_type):
            error_type, status_code = mapped_type, mapped_status
            break

    retry_after: int | None = None
    if isinstance(exc, StoreUnavailable):
        retry_after = exc.retry_after or STORE_UNAVAILABLE_RETRY_AFTER

    return build_error_response(
        error_type=error_type,
        message=exc.message,
        detail=exc.detail,
        status_code=status_code,
        path=path,
        retry_after=retry_after,
    )
