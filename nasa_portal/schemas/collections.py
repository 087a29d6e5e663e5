"""Pydantic schemas for collections and their membership rows."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .favorites import FavoriteItem


class CollectionCreate(BaseModel):
    """Payload for creating a brand-new collection.

    Length rules are applied by the store after trimming, so the schema only
    checks shape here.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., description="Display name, 1-100 characters once trimmed.")
    description: str | None = Field(None, description="Optional text up to 500 characters.")
    is_public: bool = Field(
        False,
        alias="isPublic",
        description="Flag that toggles visibility for shared collections.",
    )


class CollectionUpdate(BaseModel):
    """Partial update payload for a collection.

    Only keys present in the request body are applied; ``model_fields_set``
    distinguishes "clear the description" from "leave it alone".
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    description: str | None = None
    is_public: bool | None = Field(None, alias="isPublic")


class Collection(BaseModel):
    """Read model for a single collection."""

    id: str
    owner_id: str
    name: str
    description: str | None = None
    is_public: bool = False
    item_count: int = Field(0, ge=0)
    created_at: datetime
    updated_at: datetime


class CollectionItemCreate(BaseModel):
    """Request body used to place a favorite into a collection."""

    model_config = ConfigDict(populate_by_name=True)

    item_id: str = Field(
        ...,
        alias="itemId",
        min_length=1,
        description="Identifier of an existing favorite owned by the caller.",
    )
    notes: str | None = Field(
        None,
        max_length=1024,
        description="Optional note scoped to this collection membership.",
    )


class CollectionItem(BaseModel):
    """Membership row joined with the favorite it points at."""

    collection_id: str
    favorite_item_id: str
    notes: str | None = None
    added_at: datetime
    favorite: FavoriteItem | None = None


class CollectionStats(BaseModel):
    """Aggregated statistics across a user's collections."""

    total_collections: int = Field(..., ge=0)
    public_collections: int = Field(..., ge=0)
    private_collections: int = Field(..., ge=0)
    total_items: int = Field(..., ge=0)
    avg_items_per_collection: float = Field(..., ge=0.0)
