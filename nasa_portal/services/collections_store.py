"""Named, per-user groupings of favorites.

Collections reference favorites through ``collection_items``; both foreign keys
cascade so deleting either side never leaves orphaned membership rows.  Adding a
favorite checks that the caller owns both the collection and the favorite, and
the composite primary key keeps each pair unique even under concurrent writes.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nasa_portal.db.models import (
    Collection as CollectionModel,
    CollectionItem as CollectionItemModel,
    FavoriteItem as FavoriteItemModel,
    utcnow,
)
from nasa_portal.schemas.collections import Collection, CollectionItem, CollectionStats
from nasa_portal.services.errors import ConflictError, NotFoundError, StoreValidationError
from nasa_portal.services.favorites import FavoritesAnalytics, StatsCache, storage_guard
from nasa_portal.services.favorites_store import (
    MAX_PAGE_SIZE,
    FavoritesStore,
    collection_count_column,
    require_owner,
    validate_paging,
)

logger = logging.getLogger(__name__)

NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
NOTES_MAX_LENGTH = 1024

_FOREIGN_KEY_VIOLATION = "23503"


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def _item_count_subquery():
    return (
        select(
            CollectionItemModel.collection_id.label("collection_id"),
            func.count().label("item_count"),
        )
        .group_by(CollectionItemModel.collection_id)
        .subquery()
    )


def _clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise StoreValidationError("Collection name is required", field="name", value=name)
    cleaned = name.strip()
    if len(cleaned) > NAME_MAX_LENGTH:
        raise StoreValidationError(
            f"Collection name must be {NAME_MAX_LENGTH} characters or less",
            field="name",
            value=name,
        )
    return cleaned


def _clean_description(description: Any) -> str | None:
    if description is None:
        return None
    if not isinstance(description, str):
        raise StoreValidationError(
            "Description must be a string", field="description", value=description
        )
    cleaned = description.strip()
    if len(cleaned) > DESCRIPTION_MAX_LENGTH:
        raise StoreValidationError(
            f"Description must be {DESCRIPTION_MAX_LENGTH} characters or less",
            field="description",
            value=description,
        )
    return cleaned or None


def _clean_is_public(is_public: Any) -> bool:
    if not isinstance(is_public, bool):
        raise StoreValidationError(
            "isPublic must be a boolean", field="is_public", value=is_public
        )
    return is_public


def _clean_notes(notes: Any) -> str | None:
    if notes is None:
        return None
    if not isinstance(notes, str):
        raise StoreValidationError("Notes must be a string", field="notes", value=notes)
    if len(notes) > NOTES_MAX_LENGTH:
        raise StoreValidationError(
            f"Notes must be {NOTES_MAX_LENGTH} characters or less",
            field="notes",
            value=notes,
        )
    return notes


def _is_foreign_key_violation(exc: IntegrityError) -> bool:
    """Tell a vanished parent row apart from a duplicate key.

    PostgreSQL reports SQLSTATE 23503; SQLite only has the message text.
    """

    orig = exc.orig
    if getattr(orig, "sqlstate", None) == _FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY" in str(orig).upper()


class CollectionsStore:
    """Persistence and invariant checks for collections and their members."""

    def __init__(
        self,
        session: AsyncSession,
        favorites: FavoritesStore,
        *,
        cache: StatsCache | None = None,
        analytics: FavoritesAnalytics | None = None,
    ) -> None:
        self._session = session
        self._favorites = favorites
        self._cache = cache
        self._analytics = analytics or FavoritesAnalytics()

    async def list_collections(self, owner_id: str) -> list[Collection]:
        require_owner(owner_id)
        counts = _item_count_subquery()
        query = (
            select(CollectionModel, func.coalesce(counts.c.item_count, 0))
            .outerjoin(counts, counts.c.collection_id == CollectionModel.id)
            .where(CollectionModel.owner_id == owner_id)
            .order_by(CollectionModel.created_at.desc(), CollectionModel.id.desc())
        )
        async with storage_guard(self._session, operation="list_collections"):
            rows = (await self._session.execute(query)).all()

        return [
            self._analytics.collection_to_schema(collection, item_count=count)
            for collection, count in rows
        ]

    async def create_collection(
        self,
        owner_id: str,
        *,
        name: str,
        description: str | None = None,
        is_public: bool = False,
    ) -> Collection:
        require_owner(owner_id)
        now = utcnow()
        collection = CollectionModel(
            owner_id=owner_id,
            name=_clean_name(name),
            description=_clean_description(description),
            is_public=_clean_is_public(is_public),
            created_at=now,
            updated_at=now,
        )

        async with storage_guard(self._session, operation="create_collection"):
            self._session.add(collection)
            try:
                await self._session.flush()
            except IntegrityError as exc:
                raise ConflictError("You already have a collection with this name") from exc
            await self._session.commit()

        await self._invalidate(owner_id)
        return self._analytics.collection_to_schema(collection)

    async def get_collection_by_id(
        self, owner_id: str, collection_id: str
    ) -> Collection | None:
        require_owner(owner_id)
        async with storage_guard(self._session, operation="get_collection_by_id"):
            collection = await self._load_owned_collection(owner_id, collection_id)
            if collection is None:
                return None
            count = await self._count_items(collection_id)

        return self._analytics.collection_to_schema(collection, item_count=count)

    async def update_collection(
        self,
        owner_id: str,
        collection_id: str,
        *,
        name: Any = UNSET,
        description: Any = UNSET,
        is_public: Any = UNSET,
    ) -> Collection | None:
        """Apply the supplied fields and bump ``updated_at``.

        Fields left as :data:`UNSET` are untouched; ``description=None`` clears
        the description.  Returns ``None`` when the collection is not visible to
        ``owner_id``.
        """

        require_owner(owner_id)
        changes: dict[str, Any] = {}
        if name is not UNSET:
            changes["name"] = _clean_name(name)
        if description is not UNSET:
            changes["description"] = _clean_description(description)
        if is_public is not UNSET:
            changes["is_public"] = _clean_is_public(is_public)
        if not changes:
            raise StoreValidationError("No fields to update", field="body")

        async with storage_guard(self._session, operation="update_collection"):
            collection = await self._load_owned_collection(
                owner_id, collection_id, for_update=True
            )
            if collection is None:
                await self._session.rollback()
                return None
            for attr, value in changes.items():
                setattr(collection, attr, value)
            collection.updated_at = utcnow()
            try:
                await self._session.flush()
            except IntegrityError as exc:
                raise ConflictError(
                    "You already have another collection with this name"
                ) from exc
            count = await self._count_items(collection_id)
            await self._session.commit()

        await self._invalidate(owner_id)
        return self._analytics.collection_to_schema(collection, item_count=count)

    async def delete_collection(self, owner_id: str, collection_id: str) -> bool:
        """Delete a collection and its membership rows; favorites are untouched."""

        require_owner(owner_id)
        async with storage_guard(self._session, operation="delete_collection"):
            collection = await self._load_owned_collection(owner_id, collection_id)
            if collection is None:
                await self._session.rollback()
                return False
            await self._session.execute(
                delete(CollectionItemModel).where(
                    CollectionItemModel.collection_id == collection_id
                )
            )
            await self._session.execute(
                delete(CollectionModel).where(
                    CollectionModel.id == collection_id,
                    CollectionModel.owner_id == owner_id,
                )
            )
            await self._session.commit()

        await self._invalidate(owner_id)
        return True

    async def get_collection_items(
        self,
        owner_id: str,
        collection_id: str,
        *,
        page: int = 1,
        limit: int | None = None,
    ) -> list[CollectionItem]:
        """Return memberships joined with their favorites, oldest first.

        ``limit=None`` returns every item; paging past the first page needs an
        explicit ``limit``.
        """

        require_owner(owner_id)
        if limit is None:
            validate_paging(page, MAX_PAGE_SIZE)
            if page != 1:
                raise StoreValidationError(
                    "Limit is required when requesting a later page",
                    field="limit",
                    value=limit,
                )
        else:
            validate_paging(page, limit)

        query = (
            select(CollectionItemModel, FavoriteItemModel, collection_count_column())
            .join(
                FavoriteItemModel,
                FavoriteItemModel.id == CollectionItemModel.favorite_item_id,
            )
            .where(CollectionItemModel.collection_id == collection_id)
            .order_by(
                CollectionItemModel.added_at.asc(),
                CollectionItemModel.favorite_item_id.asc(),
            )
        )
        if limit is not None:
            query = query.limit(limit).offset((page - 1) * limit)

        async with storage_guard(self._session, operation="get_collection_items"):
            collection = await self._load_owned_collection(owner_id, collection_id)
            if collection is None:
                raise NotFoundError("Collection not found")
            rows = (await self._session.execute(query)).all()

        return [
            self._analytics.membership_to_schema(
                membership,
                favorite=self._analytics.favorite_to_schema(
                    favorite, collection_count=count or 0
                ),
            )
            for membership, favorite, count in rows
        ]

    async def add_item_to_collection(
        self,
        owner_id: str,
        collection_id: str,
        favorite_item_id: str,
        *,
        notes: str | None = None,
    ) -> CollectionItem:
        require_owner(owner_id)
        cleaned_notes = _clean_notes(notes)

        async with storage_guard(self._session, operation="add_item_to_collection"):
            collection = await self._load_owned_collection(
                owner_id, collection_id, for_update=True
            )
            if collection is None:
                raise NotFoundError("Collection not found")
            favorite = await self._favorites.load_owned_favorite(owner_id, favorite_item_id)
            if favorite is None:
                raise NotFoundError("Item not found in favorites")
            existing = await self._session.scalar(
                select(CollectionItemModel.collection_id).where(
                    CollectionItemModel.collection_id == collection_id,
                    CollectionItemModel.favorite_item_id == favorite_item_id,
                )
            )
            if existing is not None:
                raise ConflictError("Item already in collection")

            now = utcnow()
            membership = CollectionItemModel(
                collection_id=collection_id,
                favorite_item_id=favorite_item_id,
                notes=cleaned_notes,
                added_at=now,
            )
            self._session.add(membership)
            collection.updated_at = now
            try:
                await self._session.flush()
            except IntegrityError as exc:
                if _is_foreign_key_violation(exc):
                    raise NotFoundError("Item not found in favorites") from exc
                raise ConflictError("Item already in collection") from exc
            await self._session.commit()

        await self._invalidate(owner_id)
        favorite_schema = await self._favorites.get_favorite_by_id(owner_id, favorite_item_id)
        return self._analytics.membership_to_schema(membership, favorite=favorite_schema)

    async def remove_item_from_collection(
        self, owner_id: str, collection_id: str, favorite_item_id: str
    ) -> bool:
        """Detach a favorite from a collection.

        Raises :class:`NotFoundError` when the collection is not visible to
        ``owner_id``; returns ``False`` when it simply does not contain the item.
        """

        require_owner(owner_id)
        async with storage_guard(self._session, operation="remove_item_from_collection"):
            collection = await self._load_owned_collection(
                owner_id, collection_id, for_update=True
            )
            if collection is None:
                raise NotFoundError("Collection not found")
            result = await self._session.execute(
                delete(CollectionItemModel).where(
                    CollectionItemModel.collection_id == collection_id,
                    CollectionItemModel.favorite_item_id == favorite_item_id,
                )
            )
            if not result.rowcount:
                await self._session.rollback()
                return False
            collection.updated_at = utcnow()
            await self._session.commit()

        await self._invalidate(owner_id)
        return True

    async def get_collection_stats(self, owner_id: str) -> CollectionStats:
        require_owner(owner_id)
        if self._cache is not None:
            cached = await self._cache.read_collection_stats(owner_id=owner_id)
            if cached is not None:
                return cached

        counts = _item_count_subquery()
        query = (
            select(CollectionModel.is_public, func.coalesce(counts.c.item_count, 0))
            .outerjoin(counts, counts.c.collection_id == CollectionModel.id)
            .where(CollectionModel.owner_id == owner_id)
        )
        async with storage_guard(self._session, operation="get_collection_stats"):
            rows = (await self._session.execute(query)).all()

        stats = self._analytics.collection_stats(rows)
        if self._cache is not None:
            await self._cache.write_collection_stats(owner_id=owner_id, payload=stats)
        return stats

    async def _load_owned_collection(
        self, owner_id: str, collection_id: str, *, for_update: bool = False
    ) -> CollectionModel | None:
        query = select(CollectionModel).where(
            CollectionModel.id == collection_id,
            CollectionModel.owner_id == owner_id,
        )
        if for_update:
            query = query.with_for_update()
        return await self._session.scalar(query)

    async def _count_items(self, collection_id: str) -> int:
        count = await self._session.scalar(
            select(func.count())
            .select_from(CollectionItemModel)
            .where(CollectionItemModel.collection_id == collection_id)
        )
        return count or 0

    async def _invalidate(self, owner_id: str) -> None:
        if self._cache is not None:
            await self._cache.invalidate(owner_id=owner_id)


__all__ = ["CollectionsStore", "UNSET"]
