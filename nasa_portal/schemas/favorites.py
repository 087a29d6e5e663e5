"""Pydantic schemas that power the favorites API surface."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class FavoriteCreate(BaseModel):
    """Request body for saving an external item.

    The desktop client posts camelCase keys; snake_case is accepted as well so
    scripts and tests can build payloads naturally.
    """

    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(
        ...,
        alias="itemId",
        min_length=1,
        max_length=255,
        description="Source specific identifier used for deduplication.",
    )
    item_type: str = Field(
        ...,
        alias="itemType",
        description="One of APOD, NEO, MARS, EPIC, EARTH, IMAGES.",
    )
    item_date: date | None = Field(
        None,
        alias="itemDate",
        description="Date of the underlying astronomical or space-weather event.",
    )
    data: dict[str, Any] = Field(
        ...,
        description="Opaque document (title, url, description, ...) stored verbatim.",
    )


class FavoriteItem(BaseModel):
    """Read model exposed in API responses."""

    id: str
    owner_id: str
    item_type: str
    external_key: str
    item_date: date | None = None
    data: dict[str, Any] = Field(default_factory=dict)
    saved_at: datetime
    collection_count: int = Field(
        0,
        ge=0,
        description="Number of the owner's collections that reference this item.",
    )


class Pagination(BaseModel):
    """Paging metadata that accompanies favorites listings."""

    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    has_next_page: bool
    has_prev_page: bool


class FavoriteListResponse(BaseModel):
    """Container returned by the listing endpoint."""

    favorites: list[FavoriteItem]
    pagination: Pagination


class FavoriteStats(BaseModel):
    """Aggregate counters for a user's saved items."""

    total_favorites: int = Field(..., ge=0)
    unique_types: int = Field(..., ge=0)
    types: list[str] = Field(default_factory=list)
    by_type: dict[str, int] = Field(default_factory=dict)
    first_saved: datetime | None = None
    last_saved: datetime | None = None
