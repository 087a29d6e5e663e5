"""FastAPI router exposing CRUD operations for collections and their items."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from nasa_portal.api.identity import get_owner_id
from nasa_portal.schemas.collections import (
    Collection,
    CollectionCreate,
    CollectionItem,
    CollectionItemCreate,
    CollectionStats,
    CollectionUpdate,
)
from nasa_portal.services.collections_store import CollectionsStore
from nasa_portal.services.dependencies import get_collections_store

router = APIRouter()


@router.get("", response_model=list[Collection])
async def list_collections(
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> list[Collection]:
    return await store.list_collections(owner_id)


@router.get("/stats", response_model=CollectionStats)
async def collection_stats(
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> CollectionStats:
    return await store.get_collection_stats(owner_id)


@router.post("", response_model=Collection, status_code=status.HTTP_201_CREATED)
async def create_collection(
    payload: CollectionCreate,
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> Collection:
    return await store.create_collection(
        owner_id,
        name=payload.name,
        description=payload.description,
        is_public=payload.is_public,
    )


@router.get("/{collection_id}", response_model=Collection)
async def get_collection(
    collection_id: str,
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> Collection:
    collection = await store.get_collection_by_id(owner_id, collection_id)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


@router.patch("/{collection_id}", response_model=Collection)
async def update_collection(
    collection_id: str,
    payload: CollectionUpdate,
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> Collection:
    """Apply only the fields present in the request body."""

    changes = payload.model_dump(exclude_unset=True)
    collection = await store.update_collection(owner_id, collection_id, **changes)
    if collection is None:
        raise HTTPException(status_code=404, detail="Collection not found")
    return collection


@router.delete("/{collection_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_collection(
    collection_id: str,
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> Response:
    """Remove a collection; the favorites it referenced are kept."""

    if not await store.delete_collection(owner_id, collection_id):
        raise HTTPException(status_code=404, detail="Collection not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{collection_id}/items", response_model=list[CollectionItem])
async def list_collection_items(
    collection_id: str,
    page: int = Query(1, description="1-based page number"),
    limit: int | None = Query(
        None, description="Page size between 1 and 100; omit for all items"
    ),
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> list[CollectionItem]:
    """Return the collection's items, oldest first."""

    return await store.get_collection_items(
        owner_id, collection_id, page=page, limit=limit
    )


@router.post(
    "/{collection_id}/items",
    response_model=CollectionItem,
    status_code=status.HTTP_201_CREATED,
)
async def add_collection_item(
    collection_id: str,
    payload: CollectionItemCreate,
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> CollectionItem:
    return await store.add_item_to_collection(
        owner_id, collection_id, payload.item_id, notes=payload.notes
    )


@router.delete(
    "/{collection_id}/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def remove_collection_item(
    collection_id: str,
    item_id: str,
    owner_id: str = Depends(get_owner_id),
    store: CollectionsStore = Depends(get_collections_store),
) -> Response:
    if not await store.remove_item_from_collection(owner_id, collection_id, item_id):
        raise HTTPException(status_code=404, detail="Item not found in collection")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
