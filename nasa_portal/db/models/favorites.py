"""SQLAlchemy ORM models for saved NASA/NOAA items and user collections.

Favorites hold a verbatim copy of whatever the desktop app posted for an
external data item (an APOD entry, a Mars rover photo, an EPIC frame, ...).
Collections group a user's favorites through the ``collection_items`` join
table.  Uniqueness rules live in the schema itself so concurrent requests are
arbitrated by the database rather than by application-level checks.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base

ITEM_TYPES: tuple[str, ...] = ("APOD", "NEO", "MARS", "EPIC", "EARTH", "IMAGES")


def utcnow() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class UTCDateTime(TypeDecorator):
    """Timezone-aware ``DateTime`` that always round-trips as UTC.

    SQLite has no timezone storage and hands back naive values; those are
    re-tagged as UTC so every timestamp leaving the database is comparable.
    """

    impl = DateTime
    cache_ok = True

    def __init__(self) -> None:
        super().__init__(timezone=True)

    def process_bind_param(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value

    def process_result_value(self, value: datetime | None, dialect: Any) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value


class FavoriteItem(Base):
    """An external data item saved by a single user."""

    __tablename__ = "favorite_items"
    __table_args__ = (
        UniqueConstraint(
            "owner_id",
            "item_type",
            "external_key",
            name="uq_favorite_items_owner_type_key",
        ),
        Index("ix_favorite_items_owner_id_saved_at", "owner_id", "saved_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
        doc=(
            "Opaque identifier for the owning user as forwarded by the auth"
            " gateway (UUID, email address or OAuth subject)."
        ),
    )
    item_type: Mapped[str] = mapped_column(String(16), nullable=False)
    external_key: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Source specific identifier such as ``apod-2024-01-01``.",
    )
    item_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
        doc="Opaque document stored and returned without interpretation.",
    )
    saved_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    memberships: Mapped[list["CollectionItem"]] = relationship(
        "CollectionItem",
        back_populates="favorite",
        passive_deletes=True,
    )


class Collection(Base):
    """A named grouping of favorites owned by one user."""

    __tablename__ = "collections"
    __table_args__ = (
        UniqueConstraint("owner_id", "name", name="uq_collections_owner_name"),
        Index("ix_collections_owner_id_created_at", "owner_id", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    owner_id: Mapped[str] = mapped_column(String(128), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_public: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default="0",
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    items: Mapped[list["CollectionItem"]] = relationship(
        "CollectionItem",
        back_populates="collection",
        passive_deletes=True,
        order_by="CollectionItem.added_at",
    )


class CollectionItem(Base):
    """Association row linking one favorite to one collection."""

    __tablename__ = "collection_items"

    collection_id: Mapped[str] = mapped_column(
        ForeignKey("collections.id", ondelete="CASCADE"),
        primary_key=True,
    )
    favorite_item_id: Mapped[str] = mapped_column(
        ForeignKey("favorite_items.id", ondelete="CASCADE"),
        primary_key=True,
        index=True,
    )
    notes: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    added_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
    )

    collection: Mapped[Collection] = relationship("Collection", back_populates="items")
    favorite: Mapped[FavoriteItem] = relationship(
        "FavoriteItem", back_populates="memberships"
    )
