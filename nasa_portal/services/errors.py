"""Typed failures raised by the favorites and collections stores.

Only these four kinds drive HTTP status mapping.  Ownership failures are
reported as :class:`NotFoundError` so callers cannot discover other users'
data.
"""

from __future__ import annotations

from typing import Any

__all__ = [
    "ConflictError",
    "NotFoundError",
    "StorageError",
    "StoreError",
    "StoreValidationError",
]


class StoreError(Exception):
    """Base class for every error surfaced by a store operation."""

    retryable: bool = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class StoreValidationError(StoreError):
    """Malformed or out-of-range input; the caller can fix and resend."""

    def __init__(self, message: str, *, field: str, value: Any = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class NotFoundError(StoreError):
    """Referenced entity is absent or owned by somebody else."""


class ConflictError(StoreError):
    """A uniqueness rule rejected the write."""


class StorageError(StoreError):
    """The database failed or timed out; the whole operation may be retried."""

    retryable = True
