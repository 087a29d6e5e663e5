"""FastAPI router exposing the caller's saved items."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from nasa_portal.api.identity import get_owner_id
from nasa_portal.schemas.favorites import (
    FavoriteCreate,
    FavoriteItem,
    FavoriteListResponse,
    FavoriteStats,
)
from nasa_portal.services.dependencies import get_favorites_store
from nasa_portal.services.favorites_store import DEFAULT_PAGE_SIZE, FavoritesStore

router = APIRouter()


@router.get("", response_model=FavoriteListResponse)
async def list_favorites(
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Page size between 1 and 100"),
    item_type: str | None = Query(
        None, alias="type", description="Restrict results to one item type"
    ),
    owner_id: str = Depends(get_owner_id),
    store: FavoritesStore = Depends(get_favorites_store),
) -> FavoriteListResponse:
    """Return one page of favorites, newest first."""

    return await store.list_favorites(
        owner_id, page=page, limit=limit, item_type=item_type
    )


@router.get("/stats", response_model=FavoriteStats)
async def favorite_stats(
    owner_id: str = Depends(get_owner_id),
    store: FavoritesStore = Depends(get_favorites_store),
) -> FavoriteStats:
    return await store.get_favorite_stats(owner_id)


@router.get("/search", response_model=FavoriteListResponse)
async def search_favorites(
    q: str = Query(..., description="Whitespace-separated terms; every term must match"),
    page: int = Query(1, description="1-based page number"),
    limit: int = Query(DEFAULT_PAGE_SIZE, description="Page size between 1 and 100"),
    item_type: str | None = Query(
        None, alias="type", description="Restrict results to one item type"
    ),
    owner_id: str = Depends(get_owner_id),
    store: FavoritesStore = Depends(get_favorites_store),
) -> FavoriteListResponse:
    """Search titles, descriptions and item ids, newest first."""

    return await store.search_favorites(
        owner_id, q, page=page, limit=limit, item_type=item_type
    )


@router.post("", response_model=FavoriteItem, status_code=status.HTTP_201_CREATED)
async def add_favorite(
    payload: FavoriteCreate,
    owner_id: str = Depends(get_owner_id),
    store: FavoritesStore = Depends(get_favorites_store),
) -> FavoriteItem:
    """Save an external item; a repeat of the same item is rejected with 409."""

    return await store.add_favorite(
        owner_id,
        item_type=payload.item_type,
        external_key=payload.item_id,
        payload=payload.data,
        item_date=payload.item_date,
    )


@router.get("/{favorite_id}", response_model=FavoriteItem)
async def get_favorite(
    favorite_id: str,
    owner_id: str = Depends(get_owner_id),
    store: FavoritesStore = Depends(get_favorites_store),
) -> FavoriteItem:
    favorite = await store.get_favorite_by_id(owner_id, favorite_id)
    if favorite is None:
        raise HTTPException(status_code=404, detail="Favorite not found")
    return favorite


@router.delete("/{favorite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_favorite(
    favorite_id: str,
    owner_id: str = Depends(get_owner_id),
    store: FavoritesStore = Depends(get_favorites_store),
) -> Response:
    """Delete a favorite along with its collection memberships."""

    if not await store.remove_favorite(owner_id, favorite_id):
        raise HTTPException(status_code=404, detail="Favorite not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
