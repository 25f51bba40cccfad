"""Items API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from demonax.api.schemas import ItemDetailResponse, ItemListResponse, ItemResponse
from demonax.db.repository import Repository

router = APIRouter(prefix="/api/items", tags=["items"])


def get_repository() -> Repository:
    """Dependency injection for repository - set by app factory."""
    raise NotImplementedError("Repository not configured")


@router.get("", response_model=ItemListResponse)
def list_items(
    search: Optional[str] = Query(None, description="Search by name"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    repo: Repository = Depends(get_repository),
) -> ItemListResponse:
    """List catalog items, optionally filtered by name."""
    items = repo.get_items(search=search, limit=limit, offset=offset)
    return ItemListResponse(
        items=[ItemResponse(**item) for item in items],
        total=repo.get_item_count(),
    )


@router.get("/{type_id}", response_model=ItemDetailResponse)
def get_item(
    type_id: int,
    repo: Repository = Depends(get_repository),
) -> ItemDetailResponse:
    """Get an item with the NPC offers for it."""
    item = repo.get_item(type_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return ItemDetailResponse(**item)
