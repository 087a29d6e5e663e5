"""Presentation and aggregation helpers for favorites and collections.

The stores hand ORM rows to :class:`FavoritesAnalytics`, which turns them into
the Pydantic read models returned by the API and folds grouped query results
into the stats payloads.  Nothing here touches the database.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from nasa_portal.db.models import (
    Collection as CollectionModel,
    CollectionItem as CollectionItemModel,
    FavoriteItem as FavoriteItemModel,
)
from nasa_portal.schemas.collections import (
    Collection,
    CollectionItem,
    CollectionStats,
)
from nasa_portal.schemas.favorites import FavoriteItem, FavoriteStats, Pagination


class FavoritesAnalytics:
    """Convert ORM rows into schemas and compute aggregate statistics."""

    def favorite_to_schema(
        self, item: FavoriteItemModel, *, collection_count: int = 0
    ) -> FavoriteItem:
        return FavoriteItem(
            id=item.id,
            owner_id=item.owner_id,
            item_type=item.item_type,
            external_key=item.external_key,
            item_date=item.item_date,
            data=item.payload if item.payload is not None else {},
            saved_at=item.saved_at,
            collection_count=collection_count,
        )

    def collection_to_schema(
        self, collection: CollectionModel, *, item_count: int = 0
    ) -> Collection:
        return Collection(
            id=collection.id,
            owner_id=collection.owner_id,
            name=collection.name,
            description=collection.description,
            is_public=collection.is_public,
            item_count=item_count,
            created_at=collection.created_at,
            updated_at=collection.updated_at,
        )

    def membership_to_schema(
        self,
        membership: CollectionItemModel,
        *,
        favorite: FavoriteItem | None = None,
    ) -> CollectionItem:
        return CollectionItem(
            collection_id=membership.collection_id,
            favorite_item_id=membership.favorite_item_id,
            notes=membership.notes,
            added_at=membership.added_at,
            favorite=favorite,
        )

    def build_pagination(self, *, total: int, page: int, limit: int) -> Pagination:
        """Derive page counters for a listing of ``total`` rows."""

        total_pages = math.ceil(total / limit) if total else 0
        return Pagination(
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )

    def favorite_stats(
        self,
        rows: Iterable[tuple[str, int, datetime | None, datetime | None]],
    ) -> FavoriteStats:
        """Fold ``(item_type, count, first_saved, last_saved)`` groups together."""

        by_type: dict[str, int] = {}
        first_saved: datetime | None = None
        last_saved: datetime | None = None

        for item_type, count, group_first, group_last in rows:
            by_type[item_type] = int(count)
            if group_first is not None and (first_saved is None or group_first < first_saved):
                first_saved = group_first
            if group_last is not None and (last_saved is None or group_last > last_saved):
                last_saved = group_last

        types = sorted(by_type)
        return FavoriteStats(
            total_favorites=sum(by_type.values()),
            unique_types=len(types),
            types=types,
            by_type={item_type: by_type[item_type] for item_type in types},
            first_saved=first_saved,
            last_saved=last_saved,
        )

    def collection_stats(self, rows: Iterable[tuple[bool, int]]) -> CollectionStats:
        """Summarise ``(is_public, item_count)`` pairs, one per collection."""

        total = public = items = 0
        for is_public, item_count in rows:
            total += 1
            if is_public:
                public += 1
            items += int(item_count or 0)

        average = round(items / total, 2) if total else 0.0
        return CollectionStats(
            total_collections=total,
            public_collections=public,
            private_collections=total - public,
            total_items=items,
            avg_items_per_collection=average,
        )
