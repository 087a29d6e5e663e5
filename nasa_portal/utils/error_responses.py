"""Builders for the structured error envelope returned by every handler.

Each payload carries the active request id and a UTC timestamp.  Store errors
are translated here as well so the status mapping lives in one table.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime

from fastapi import status

from nasa_portal.schemas.error import (
    ErrorResponse,
    ErrorType,
    ValidationErrorDetail,
    ValidationErrorResponse,
)
from nasa_portal.services.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    StoreError,
    StoreValidationError,
)
from nasa_portal.utils.request_context import get_request_id

__all__ = [
    "STORAGE_RETRY_AFTER_SECONDS",
    "build_error_response",
    "build_store_error_response",
    "build_validation_error_response",
    "store_error_status",
]

STORAGE_RETRY_AFTER_SECONDS = 5

_STORE_ERROR_TABLE: tuple[tuple[type[StoreError], int, ErrorType], ...] = (
    (StoreValidationError, status.HTTP_400_BAD_REQUEST, ErrorType.VALIDATION_ERROR),
    (NotFoundError, status.HTTP_404_NOT_FOUND, ErrorType.NOT_FOUND),
    (ConflictError, status.HTTP_409_CONFLICT, ErrorType.CONFLICT),
    (StorageError, status.HTTP_503_SERVICE_UNAVAILABLE, ErrorType.DATABASE_ERROR),
)


def _current_timestamp() -> datetime:
    """Return a timezone-aware timestamp; tests monkeypatch this for fixed clocks."""

    return datetime.now(UTC)


def store_error_status(exc: StoreError) -> tuple[int, ErrorType]:
    for error_cls, status_code, error_type in _STORE_ERROR_TABLE:
        if isinstance(exc, error_cls):
            return status_code, error_type
    return status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorType.INTERNAL_ERROR


def build_validation_error_response(
    *,
    errors: Sequence[ValidationErrorDetail],
    message: str,
    detail: str,
    status_code: int,
    path: str,
    error_type: ErrorType = ErrorType.VALIDATION_ERROR,
    request_id: str | None = None,
) -> ValidationErrorResponse:
    resolved_request_id = request_id or get_request_id()
    return ValidationErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=resolved_request_id,
        path=path,
        errors=list(errors),
    )


def build_error_response(
    *,
    error_type: ErrorType,
    message: str,
    detail: str,
    status_code: int,
    path: str,
    retry_after: int | None = None,
    request_id: str | None = None,
) -> ErrorResponse:
    resolved_request_id = request_id or get_request_id()
    return ErrorResponse(
        error_type=error_type,
        message=message,
        detail=detail,
        status_code=status_code,
        timestamp=_current_timestamp(),
        request_id=resolved_request_id,
        path=path,
        retry_after=retry_after,
    )


def build_store_error_response(exc: StoreError, *, path: str) -> ErrorResponse:
    """Translate a store failure into the envelope for its HTTP status.

    Validation failures keep their field-level detail so clients can highlight
    the offending input; storage failures advertise ``retry_after``.
    """

    status_code, error_type = store_error_status(exc)
    if isinstance(exc, StoreValidationError):
        return build_validation_error_response(
            message=exc.message,
            detail=f"Invalid value for '{exc.field}'",
            status_code=status_code,
            path=path,
            errors=[
                ValidationErrorDetail(field=exc.field, message=exc.message, value=exc.value)
            ],
        )
    return build_error_response(
        error_type=error_type,
        message=exc.message,
        detail=exc.message,
        status_code=status_code,
        path=path,
        retry_after=STORAGE_RETRY_AFTER_SECONDS if exc.retryable else None,
    )
