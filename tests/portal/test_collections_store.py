"""Behavioural tests for :class:`nasa_portal.services.collections_store.CollectionsStore`."""

from __future__ import annotations

from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import event, func, select

from nasa_portal.cache import collection_stats_key
from nasa_portal.db.connection import create_session_factory
from nasa_portal.db.models import CollectionItem as CollectionItemModel
from nasa_portal.services.collections_store import CollectionsStore
from nasa_portal.services.errors import ConflictError, NotFoundError, StoreValidationError
from nasa_portal.services.favorites_store import FavoritesStore
from tests.conftest import apod_payload


async def _favorite(store, owner_id: str = "u1", key: str = "apod-2024-01-01"):
    return await store.add_favorite(
        owner_id, item_type="APOD", external_key=key, payload=apod_payload()
    )


async def _membership_rows(session) -> int:
    return await session.scalar(select(func.count()).select_from(CollectionItemModel))


@pytest.mark.asyncio
async def test_concrete_scenario(favorites_store, collections_store, session) -> None:
    favorite = await _favorite(favorites_store)
    collection = await collections_store.create_collection("u1", name="Favorites 2024")

    membership = await collections_store.add_item_to_collection(
        "u1", collection.id, favorite.id
    )
    assert membership.favorite is not None
    assert membership.favorite.id == favorite.id
    assert membership.favorite.collection_count == 1

    items = await collections_store.get_collection_items("u1", collection.id)
    assert [item.favorite_item_id for item in items] == [favorite.id]
    assert items[0].favorite.data["title"] == "Pillars of Creation"

    with pytest.raises(ConflictError) as excinfo:
        await collections_store.add_item_to_collection("u1", collection.id, favorite.id)
    assert excinfo.value.message == "Item already in collection"

    assert await collections_store.delete_collection("u1", collection.id) is True
    assert await favorites_store.get_favorite_by_id("u1", favorite.id) is not None
    assert await _membership_rows(session) == 0


@pytest.mark.asyncio
async def test_create_collection_trims_and_defaults(collections_store) -> None:
    collection = await collections_store.create_collection(
        "u1", name="  Mars rovers  ", description="   "
    )

    assert collection.name == "Mars rovers"
    assert collection.description is None
    assert collection.is_public is False
    assert collection.item_count == 0
    assert collection.created_at == collection.updated_at


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("kwargs", "field"),
    [
        ({"name": "   "}, "name"),
        ({"name": "x" * 101}, "name"),
        ({"name": "ok", "description": "d" * 501}, "description"),
        ({"name": "ok", "is_public": "yes"}, "is_public"),
    ],
)
async def test_create_collection_validates(collections_store, kwargs, field) -> None:
    with pytest.raises(StoreValidationError) as excinfo:
        await collections_store.create_collection("u1", **kwargs)

    assert excinfo.value.field == field
    assert await collections_store.list_collections("u1") == []


@pytest.mark.asyncio
async def test_list_collections_is_owner_scoped_with_counts(
    favorites_store, collections_store
) -> None:
    first = await collections_store.create_collection("u1", name="First")
    second = await collections_store.create_collection("u1", name="Second")
    await collections_store.create_collection("u2", name="Someone else")
    favorite = await _favorite(favorites_store)
    await collections_store.add_item_to_collection("u1", first.id, favorite.id)

    listing = await collections_store.list_collections("u1")

    assert {collection.id for collection in listing} == {first.id, second.id}
    counts = {collection.id: collection.item_count for collection in listing}
    assert counts == {first.id: 1, second.id: 0}
    stamps = [(collection.created_at, collection.id) for collection in listing]
    assert stamps == sorted(stamps, reverse=True)


@pytest.mark.asyncio
async def test_foreign_collection_looks_missing(favorites_store, collections_store) -> None:
    collection = await collections_store.create_collection("u1", name="Private")
    favorite = await _favorite(favorites_store, owner_id="u2")

    assert await collections_store.get_collection_by_id("u2", collection.id) is None
    assert await collections_store.update_collection("u2", collection.id, name="x") is None
    assert await collections_store.delete_collection("u2", collection.id) is False

    with pytest.raises(NotFoundError) as excinfo:
        await collections_store.get_collection_items("u2", collection.id)
    assert excinfo.value.message == "Collection not found"

    with pytest.raises(NotFoundError) as excinfo:
        await collections_store.add_item_to_collection("u2", collection.id, favorite.id)
    assert excinfo.value.message == "Collection not found"


@pytest.mark.asyncio
async def test_cannot_add_another_owners_favorite(
    favorites_store, collections_store, session
) -> None:
    collection = await collections_store.create_collection("u1", name="Mine")
    foreign = await _favorite(favorites_store, owner_id="u2")

    with pytest.raises(NotFoundError) as excinfo:
        await collections_store.add_item_to_collection("u1", collection.id, foreign.id)

    assert excinfo.value.message == "Item not found in favorites"
    assert await _membership_rows(session) == 0


@pytest.mark.asyncio
async def test_add_unknown_favorite_is_not_found(collections_store) -> None:
    collection = await collections_store.create_collection("u1", name="Mine")

    with pytest.raises(NotFoundError) as excinfo:
        await collections_store.add_item_to_collection("u1", collection.id, "missing-id")

    assert excinfo.value.message == "Item not found in favorites"


@pytest.mark.asyncio
async def test_add_item_keeps_notes_and_touches_collection(
    favorites_store, collections_store
) -> None:
    collection = await collections_store.create_collection("u1", name="Notes")
    favorite = await _favorite(favorites_store)

    membership = await collections_store.add_item_to_collection(
        "u1", collection.id, favorite.id, notes="Print this one"
    )

    assert membership.notes == "Print this one"
    refreshed = await collections_store.get_collection_by_id("u1", collection.id)
    assert refreshed.item_count == 1
    assert refreshed.updated_at >= collection.updated_at


@pytest.mark.asyncio
async def test_add_item_rejects_oversized_notes(favorites_store, collections_store) -> None:
    collection = await collections_store.create_collection("u1", name="Notes")
    favorite = await _favorite(favorites_store)

    with pytest.raises(StoreValidationError) as excinfo:
        await collections_store.add_item_to_collection(
            "u1", collection.id, favorite.id, notes="n" * 1025
        )

    assert excinfo.value.field == "notes"


@pytest.mark.asyncio
async def test_remove_item_is_idempotent(favorites_store, collections_store) -> None:
    collection = await collections_store.create_collection("u1", name="Remove")
    favorite = await _favorite(favorites_store)
    await collections_store.add_item_to_collection("u1", collection.id, favorite.id)

    assert (
        await collections_store.remove_item_from_collection("u1", collection.id, favorite.id)
        is True
    )
    assert (
        await collections_store.remove_item_from_collection("u1", collection.id, favorite.id)
        is False
    )
    assert await collections_store.get_collection_items("u1", collection.id) == []
    assert await favorites_store.get_favorite_by_id("u1", favorite.id) is not None


@pytest.mark.asyncio
async def test_remove_item_from_foreign_collection_is_not_found(
    favorites_store, collections_store
) -> None:
    collection = await collections_store.create_collection("u1", name="Mine")
    favorite = await _favorite(favorites_store)
    await collections_store.add_item_to_collection("u1", collection.id, favorite.id)

    with pytest.raises(NotFoundError):
        await collections_store.remove_item_from_collection("u2", collection.id, favorite.id)

    assert len(await collections_store.get_collection_items("u1", collection.id)) == 1


@pytest.mark.asyncio
async def test_removing_favorite_cascades_memberships(
    favorites_store, collections_store, session
) -> None:
    first = await collections_store.create_collection("u1", name="One")
    second = await collections_store.create_collection("u1", name="Two")
    favorite = await _favorite(favorites_store)
    keeper = await _favorite(favorites_store, key="apod-2024-01-02")
    for collection in (first, second):
        await collections_store.add_item_to_collection("u1", collection.id, favorite.id)
    await collections_store.add_item_to_collection("u1", first.id, keeper.id)

    assert (await favorites_store.get_favorite_by_id("u1", favorite.id)).collection_count == 2
    assert await favorites_store.remove_favorite("u1", favorite.id) is True

    assert await _membership_rows(session) == 1
    first_items = await collections_store.get_collection_items("u1", first.id)
    assert [item.favorite_item_id for item in first_items] == [keeper.id]
    assert await collections_store.get_collection_items("u1", second.id) == []
    refreshed = await collections_store.get_collection_by_id("u1", second.id)
    assert refreshed.updated_at >= second.updated_at


@pytest.mark.asyncio
async def test_collection_items_are_ordered_by_added_at(
    favorites_store, collections_store
) -> None:
    collection = await collections_store.create_collection("u1", name="Ordered")
    favorites = [
        await _favorite(favorites_store, key=f"apod-{index}") for index in range(3)
    ]
    for favorite in favorites:
        await collections_store.add_item_to_collection("u1", collection.id, favorite.id)

    items = await collections_store.get_collection_items("u1", collection.id)

    stamps = [(item.added_at, item.favorite_item_id) for item in items]
    assert stamps == sorted(stamps)
    assert {item.favorite_item_id for item in items} == {f.id for f in favorites}


@pytest.mark.asyncio
async def test_update_collection_applies_only_supplied_fields(collections_store) -> None:
    collection = await collections_store.create_collection(
        "u1", name="Draft", description="Initial", is_public=False
    )

    renamed = await collections_store.update_collection("u1", collection.id, name=" Final ")
    assert renamed.name == "Final"
    assert renamed.description == "Initial"
    assert renamed.is_public is False
    assert renamed.updated_at >= collection.updated_at
    assert renamed.created_at == collection.created_at

    cleared = await collections_store.update_collection(
        "u1", collection.id, description=None, is_public=True
    )
    assert cleared.name == "Final"
    assert cleared.description is None
    assert cleared.is_public is True


@pytest.mark.asyncio
async def test_update_collection_validates(collections_store) -> None:
    collection = await collections_store.create_collection("u1", name="Draft")

    with pytest.raises(StoreValidationError) as excinfo:
        await collections_store.update_collection("u1", collection.id)
    assert excinfo.value.field == "body"

    with pytest.raises(StoreValidationError) as excinfo:
        await collections_store.update_collection("u1", collection.id, name="")
    assert excinfo.value.field == "name"

    unchanged = await collections_store.get_collection_by_id("u1", collection.id)
    assert unchanged.name == "Draft"


@pytest.mark.asyncio
async def test_collection_stats(favorites_store, collections_store, memory_cache) -> None:
    public = await collections_store.create_collection("u1", name="Public", is_public=True)
    await collections_store.create_collection("u1", name="Private")
    first = await _favorite(favorites_store, key="a")
    second = await _favorite(favorites_store, key="b")
    await collections_store.add_item_to_collection("u1", public.id, first.id)
    await collections_store.add_item_to_collection("u1", public.id, second.id)

    stats = await collections_store.get_collection_stats("u1")

    assert stats.total_collections == 2
    assert stats.public_collections == 1
    assert stats.private_collections == 1
    assert stats.total_items == 2
    assert stats.avg_items_per_collection == 1.0
    assert collection_stats_key("u1") in memory_cache.store

    await collections_store.delete_collection("u1", public.id)
    assert collection_stats_key("u1") not in memory_cache.store

    after = await collections_store.get_collection_stats("u1")
    assert after.total_collections == 1
    assert after.total_items == 0
    assert after.avg_items_per_collection == 0.0


@pytest.mark.asyncio
async def test_created_at_stays_utc_after_reload(collections_store, engine) -> None:
    collection = await collections_store.create_collection("u1", name="Reloaded")

    async with create_session_factory(engine)() as other_session:
        store = CollectionsStore(other_session, FavoritesStore(other_session))
        reloaded = await store.get_collection_by_id("u1", collection.id)

    assert reloaded.created_at.utcoffset() == timedelta(0)
    assert reloaded.updated_at.utcoffset() == timedelta(0)
    assert reloaded.created_at == collection.created_at


@pytest.mark.asyncio
async def test_duplicate_collection_name_is_rejected(collections_store) -> None:
    await collections_store.create_collection("u1", name="Mars")

    with pytest.raises(ConflictError) as excinfo:
        await collections_store.create_collection("u1", name="  Mars  ")

    assert excinfo.value.message == "You already have a collection with this name"
    assert [c.name for c in await collections_store.list_collections("u1")] == ["Mars"]


@pytest.mark.asyncio
async def test_collection_names_are_unique_per_owner_only(collections_store) -> None:
    mine = await collections_store.create_collection("u1", name="Mars")
    theirs = await collections_store.create_collection("u2", name="Mars")

    assert mine.id != theirs.id
    assert theirs.name == "Mars"


@pytest.mark.asyncio
async def test_rename_onto_existing_name_is_rejected(collections_store) -> None:
    await collections_store.create_collection("u1", name="Mars")
    other = await collections_store.create_collection("u1", name="Moon")

    with pytest.raises(ConflictError) as excinfo:
        await collections_store.update_collection("u1", other.id, name="Mars")

    assert excinfo.value.message == "You already have another collection with this name"
    unchanged = await collections_store.get_collection_by_id("u1", other.id)
    assert unchanged.name == "Moon"

    same = await collections_store.update_collection("u1", other.id, name="Moon")
    assert same.name == "Moon"


@pytest.mark.asyncio
async def test_favorite_vanishing_before_insert_is_not_found(
    favorites_store, collections_store, session, monkeypatch
) -> None:
    collection = await collections_store.create_collection("u1", name="Race")

    async def _stale_lookup(owner_id, favorite_id):
        return SimpleNamespace(id=favorite_id, owner_id=owner_id)

    monkeypatch.setattr(favorites_store, "load_owned_favorite", _stale_lookup)

    with pytest.raises(NotFoundError) as excinfo:
        await collections_store.add_item_to_collection("u1", collection.id, "deleted-id")

    assert excinfo.value.message == "Item not found in favorites"
    assert await _membership_rows(session) == 0


@pytest.mark.asyncio
async def test_collection_items_are_loaded_with_one_join(
    favorites_store, collections_store, engine
) -> None:
    collection = await collections_store.create_collection("u1", name="Joined")
    for index in range(3):
        favorite = await _favorite(favorites_store, key=f"apod-{index}")
        await collections_store.add_item_to_collection("u1", collection.id, favorite.id)

    statements: list[str] = []

    def _record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", _record)
    try:
        items = await collections_store.get_collection_items("u1", collection.id)
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", _record)

    assert len(items) == 3
    assert all(item.favorite.collection_count == 1 for item in items)
    assert {item.favorite.external_key for item in items} == {
        "apod-0",
        "apod-1",
        "apod-2",
    }
    # collection ownership check plus the joined item query
    assert len(statements) == 2


@pytest.mark.asyncio
async def test_collection_items_can_be_paged(favorites_store, collections_store) -> None:
    collection = await collections_store.create_collection("u1", name="Paged")
    for index in range(5):
        favorite = await _favorite(favorites_store, key=f"apod-{index}")
        await collections_store.add_item_to_collection("u1", collection.id, favorite.id)

    everything = await collections_store.get_collection_items("u1", collection.id)
    pages = [
        await collections_store.get_collection_items(
            "u1", collection.id, page=page, limit=2
        )
        for page in (1, 2, 3)
    ]

    assert [len(page) for page in pages] == [2, 2, 1]
    paged_ids = [item.favorite_item_id for page in pages for item in page]
    assert paged_ids == [item.favorite_item_id for item in everything]
    assert await collections_store.get_collection_items(
        "u1", collection.id, page=4, limit=2
    ) == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("kwargs", "field"),
    [
        ({"page": 0, "limit": 2}, "page"),
        ({"limit": 0}, "limit"),
        ({"limit": 101}, "limit"),
        ({"page": 2}, "limit"),
    ],
)
async def test_collection_items_reject_bad_paging(
    collections_store, kwargs, field
) -> None:
    collection = await collections_store.create_collection("u1", name="Paged")

    with pytest.raises(StoreValidationError) as excinfo:
        await collections_store.get_collection_items("u1", collection.id, **kwargs)

    assert excinfo.value.field == field
