"""Pydantic request/response models shared by the API and the stores."""

from .collections import (
    Collection,
    CollectionCreate,
    CollectionItem,
    CollectionItemCreate,
    CollectionStats,
    CollectionUpdate,
)
from .error import ErrorResponse, ErrorType, ValidationErrorDetail, ValidationErrorResponse
from .favorites import (
    FavoriteCreate,
    FavoriteItem,
    FavoriteListResponse,
    FavoriteStats,
    Pagination,
)

__all__ = [
    "Collection",
    "CollectionCreate",
    "CollectionItem",
    "CollectionItemCreate",
    "CollectionStats",
    "CollectionUpdate",
    "ErrorResponse",
    "ErrorType",
    "FavoriteCreate",
    "FavoriteItem",
    "FavoriteListResponse",
    "FavoriteStats",
    "Pagination",
    "ValidationErrorDetail",
    "ValidationErrorResponse",
]
