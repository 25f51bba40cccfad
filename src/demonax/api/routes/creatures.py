"""Creatures API routes."""

from fastapi import APIRouter, Depends, HTTPException, Query

from demonax.api.schemas import (
    CreatureDetailResponse,
    CreatureListResponse,
    CreatureResponse,
)
from demonax.db.repository import Repository

router = APIRouter(prefix="/api/creatures", tags=["creatures"])


def get_repository() -> Repository:
    """Dependency injection for repository - set by app factory."""
    raise NotImplementedError("Repository not configured")


@router.get("", response_model=CreatureListResponse)
def list_creatures(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    repo: Repository = Depends(get_repository),
) -> CreatureListResponse:
    """List creatures ordered by race number."""
    creatures = repo.get_creatures(limit=limit, offset=offset)
    return CreatureListResponse(
        creatures=[CreatureResponse(**c) for c in creatures],
        total=repo.get_creature_count(),
    )


@router.get("/{race}", response_model=CreatureDetailResponse)
def get_creature(
    race: int,
    repo: Repository = Depends(get_repository),
) -> CreatureDetailResponse:
    """Get a creature with its loot table."""
    creature = repo.get_creature(race)
    if not creature:
        raise HTTPException(status_code=404, detail="Creature not found")
    return CreatureDetailResponse(**creature)
