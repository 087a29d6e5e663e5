"""Per-user catalog of saved NASA/NOAA items.

:class:`FavoritesStore` owns the ``favorite_items`` table:

* ``list_favorites`` – paged, optionally type-filtered listing, newest first.
* ``search_favorites`` – the same listing narrowed by a free-text query.
* ``add_favorite`` – insert guarded by the ``(owner, type, external key)``
  unique index; duplicates surface as :class:`ConflictError`.
* ``get_favorite_by_id``/``remove_favorite`` – ownership-scoped lookups where a
  foreign favorite looks exactly like a missing one.
* ``get_favorite_stats`` – cached per-owner aggregates.

Every mutation commits its own transaction through
:func:`~nasa_portal.services.favorites.storage_guard`.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date
from typing import Any

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from nasa_portal.db.models import (
    ITEM_TYPES,
    Collection as CollectionModel,
    CollectionItem as CollectionItemModel,
    FavoriteItem as FavoriteItemModel,
    utcnow,
)
from nasa_portal.schemas.favorites import FavoriteItem, FavoriteListResponse, FavoriteStats
from nasa_portal.services.errors import ConflictError, StoreValidationError
from nasa_portal.services.favorites import FavoritesAnalytics, StatsCache, storage_guard

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
OWNER_ID_MAX_LENGTH = 128
EXTERNAL_KEY_MAX_LENGTH = 255
SEARCH_QUERY_MAX_LENGTH = 200

# Payload keys matched by text search.
SEARCHABLE_FIELDS = ("title", "explanation", "description")


def collection_count_column():
    """Correlated count of memberships referencing the outer favorite row."""

    return (
        select(func.count())
        .select_from(CollectionItemModel)
        .where(CollectionItemModel.favorite_item_id == FavoriteItemModel.id)
        .correlate(FavoriteItemModel)
        .scalar_subquery()
        .label("collection_count")
    )


def require_owner(owner_id: str) -> None:
    if not isinstance(owner_id, str) or not owner_id.strip():
        raise StoreValidationError(
            "Owner identifier is required", field="owner_id", value=owner_id
        )
    if len(owner_id) > OWNER_ID_MAX_LENGTH:
        raise StoreValidationError(
            f"Owner identifier must be {OWNER_ID_MAX_LENGTH} characters or less",
            field="owner_id",
            value=owner_id,
        )


def validate_item_type(item_type: Any, *, field: str = "itemType") -> str:
    if item_type not in ITEM_TYPES:
        raise StoreValidationError(
            f"Invalid item type. Must be one of: {', '.join(ITEM_TYPES)}",
            field=field,
            value=item_type,
        )
    return item_type


def validate_paging(page: Any, limit: Any) -> None:
    if isinstance(page, bool) or not isinstance(page, int) or page < 1:
        raise StoreValidationError("Page must be greater than 0", field="page", value=page)
    if (
        isinstance(limit, bool)
        or not isinstance(limit, int)
        or not 1 <= limit <= MAX_PAGE_SIZE
    ):
        raise StoreValidationError(
            f"Limit must be between 1 and {MAX_PAGE_SIZE}", field="limit", value=limit
        )


def _coerce_item_date(item_date: date | str | None) -> date | None:
    if item_date is None or isinstance(item_date, date):
        return item_date
    try:
        return date.fromisoformat(item_date)
    except (TypeError, ValueError) as exc:
        raise StoreValidationError(
            "Item date must be an ISO 8601 date", field="itemDate", value=item_date
        ) from exc


def _validate_payload(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, Mapping):
        raise StoreValidationError("Item data must be an object", field="data", value=payload)
    title = payload.get("title")
    if title is None or (isinstance(title, str) and not title.strip()):
        raise StoreValidationError("Title is required", field="data.title", value=title)
    return dict(payload)


def _term_matches(term: str):
    columns = [func.lower(FavoriteItemModel.external_key)]
    columns.extend(
        func.lower(FavoriteItemModel.payload[field].as_string())
        for field in SEARCHABLE_FIELDS
    )
    return or_(*(column.contains(term, autoescape=True) for column in columns))


class FavoritesStore:
    """Persistence and invariant checks for a user's saved items."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        cache: StatsCache | None = None,
        analytics: FavoritesAnalytics | None = None,
    ) -> None:
        self._session = session
        self._cache = cache
        self._analytics = analytics or FavoritesAnalytics()

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def cache(self) -> StatsCache | None:
        return self._cache

    @property
    def analytics(self) -> FavoritesAnalytics:
        return self._analytics

    async def list_favorites(
        self,
        owner_id: str,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        item_type: str | None = None,
    ) -> FavoriteListResponse:
        require_owner(owner_id)
        validate_paging(page, limit)
        filters = [FavoriteItemModel.owner_id == owner_id]
        if item_type is not None:
            filters.append(FavoriteItemModel.item_type == validate_item_type(item_type, field="type"))

        return await self._page(
            filters, page=page, limit=limit, operation="list_favorites"
        )

    async def search_favorites(
        self,
        owner_id: str,
        query: str,
        *,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        item_type: str | None = None,
    ) -> FavoriteListResponse:
        """Page through favorites whose text matches every whitespace-separated term.

        A term matches when it appears, case-insensitively, in the item id or in
        one of :data:`SEARCHABLE_FIELDS` of the stored document.
        """

        require_owner(owner_id)
        if not isinstance(query, str) or not query.strip():
            raise StoreValidationError("Search query is required", field="q", value=query)
        if len(query) > SEARCH_QUERY_MAX_LENGTH:
            raise StoreValidationError(
                f"Search query must be {SEARCH_QUERY_MAX_LENGTH} characters or less",
                field="q",
                value=query,
            )
        validate_paging(page, limit)

        filters = [FavoriteItemModel.owner_id == owner_id]
        if item_type is not None:
            filters.append(FavoriteItemModel.item_type == validate_item_type(item_type, field="type"))
        for term in query.lower().split():
            filters.append(_term_matches(term))

        return await self._page(
            filters, page=page, limit=limit, operation="search_favorites"
        )

    async def _page(
        self, filters: list[Any], *, page: int, limit: int, operation: str
    ) -> FavoriteListResponse:
        async with storage_guard(self._session, operation=operation):
            total = await self._session.scalar(
                select(func.count()).select_from(FavoriteItemModel).where(*filters)
            )
            query = (
                select(FavoriteItemModel, collection_count_column())
                .where(*filters)
                .order_by(FavoriteItemModel.saved_at.desc(), FavoriteItemModel.id.desc())
                .limit(limit)
                .offset((page - 1) * limit)
            )
            rows = (await self._session.execute(query)).all()

        favorites = [
            self._analytics.favorite_to_schema(item, collection_count=count or 0)
            for item, count in rows
        ]
        return FavoriteListResponse(
            favorites=favorites,
            pagination=self._analytics.build_pagination(
                total=total or 0, page=page, limit=limit
            ),
        )

    async def add_favorite(
        self,
        owner_id: str,
        *,
        item_type: str,
        external_key: str,
        payload: Mapping[str, Any],
        item_date: date | str | None = None,
    ) -> FavoriteItem:
        require_owner(owner_id)
        validate_item_type(item_type)
        if not isinstance(external_key, str) or not external_key.strip():
            raise StoreValidationError(
                "Item ID is required", field="itemId", value=external_key
            )
        if len(external_key) > EXTERNAL_KEY_MAX_LENGTH:
            raise StoreValidationError(
                f"Item ID must be {EXTERNAL_KEY_MAX_LENGTH} characters or less",
                field="itemId",
                value=external_key,
            )
        document = _validate_payload(payload)

        item = FavoriteItemModel(
            owner_id=owner_id,
            item_type=item_type,
            external_key=external_key,
            item_date=_coerce_item_date(item_date),
            payload=document,
            saved_at=utcnow(),
        )

        async with storage_guard(self._session, operation="add_favorite"):
            self._session.add(item)
            try:
                await self._session.flush()
            except IntegrityError as exc:
                logger.info(
                    "Duplicate favorite rejected for owner %s: %s/%s",
                    owner_id,
                    item_type,
                    external_key,
                )
                raise ConflictError("Item already in favorites") from exc
            await self._session.commit()

        await self._invalidate(owner_id)
        return self._analytics.favorite_to_schema(item)

    async def get_favorite_by_id(self, owner_id: str, favorite_id: str) -> FavoriteItem | None:
        require_owner(owner_id)
        async with storage_guard(self._session, operation="get_favorite_by_id"):
            query = select(FavoriteItemModel, collection_count_column()).where(
                FavoriteItemModel.id == favorite_id,
                FavoriteItemModel.owner_id == owner_id,
            )
            row = (await self._session.execute(query)).one_or_none()

        if row is None:
            return None
        item, count = row
        return self._analytics.favorite_to_schema(item, collection_count=count or 0)

    async def load_owned_favorite(
        self, owner_id: str, favorite_id: str
    ) -> FavoriteItemModel | None:
        """Return the ORM row when ``favorite_id`` exists and belongs to ``owner_id``.

        Used by :class:`CollectionsStore` inside its own unit of work, so no
        guard or commit happens here.
        """

        return await self._session.scalar(
            select(FavoriteItemModel).where(
                FavoriteItemModel.id == favorite_id,
                FavoriteItemModel.owner_id == owner_id,
            )
        )

    async def remove_favorite(self, owner_id: str, favorite_id: str) -> bool:
        """Delete a favorite and every membership row that references it."""

        require_owner(owner_id)
        async with storage_guard(self._session, operation="remove_favorite"):
            existing = await self._session.scalar(
                select(FavoriteItemModel.id).where(
                    FavoriteItemModel.id == favorite_id,
                    FavoriteItemModel.owner_id == owner_id,
                )
            )
            if existing is None:
                await self._session.rollback()
                return False

            affected = (
                await self._session.scalars(
                    select(CollectionItemModel.collection_id).where(
                        CollectionItemModel.favorite_item_id == favorite_id
                    )
                )
            ).all()
            await self._session.execute(
                delete(CollectionItemModel).where(
                    CollectionItemModel.favorite_item_id == favorite_id
                )
            )
            if affected:
                await self._session.execute(
                    update(CollectionModel)
                    .where(CollectionModel.id.in_(affected))
                    .values(updated_at=utcnow())
                )
            await self._session.execute(
                delete(FavoriteItemModel).where(
                    FavoriteItemModel.id == favorite_id,
                    FavoriteItemModel.owner_id == owner_id,
                )
            )
            await self._session.commit()

        if affected:
            logger.info(
                "Removed favorite %s from %d collection(s) for owner %s",
                favorite_id,
                len(affected),
                owner_id,
            )
        await self._invalidate(owner_id)
        return True

    async def get_favorite_stats(self, owner_id: str) -> FavoriteStats:
        require_owner(owner_id)
        if self._cache is not None:
            cached = await self._cache.read_favorite_stats(owner_id=owner_id)
            if cached is not None:
                return cached

        async with storage_guard(self._session, operation="get_favorite_stats"):
            query = (
                select(
                    FavoriteItemModel.item_type,
                    func.count(),
                    func.min(FavoriteItemModel.saved_at),
                    func.max(FavoriteItemModel.saved_at),
                )
                .where(FavoriteItemModel.owner_id == owner_id)
                .group_by(FavoriteItemModel.item_type)
            )
            rows = (await self._session.execute(query)).all()

        stats = self._analytics.favorite_stats(rows)
        if self._cache is not None:
            await self._cache.write_favorite_stats(owner_id=owner_id, payload=stats)
        return stats

    async def _invalidate(self, owner_id: str) -> None:
        if self._cache is not None:
            await self._cache.invalidate(owner_id=owner_id)


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "FavoritesStore",
    "MAX_PAGE_SIZE",
    "OWNER_ID_MAX_LENGTH",
    "collection_count_column",
    "require_owner",
    "validate_item_type",
    "validate_paging",
]
