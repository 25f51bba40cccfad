"""Spells API routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from demonax.api.schemas import RuneSellerResponse, SpellDetailResponse, SpellResponse
from demonax.db.repository import Repository

router = APIRouter(prefix="/api/spells", tags=["spells"])


def get_repository() -> Repository:
    """Dependency injection for repository - set by app factory."""
    raise NotImplementedError("Repository not configured")


@router.get("", response_model=list[SpellResponse])
def list_spells(repo: Repository = Depends(get_repository)) -> list[SpellResponse]:
    return [SpellResponse(**spell) for spell in repo.get_spells()]


@router.get("/untaught")
def list_untaught_spells(repo: Repository = Depends(get_repository)) -> list[dict]:
    """Spells no NPC teaches, runes excluded."""
    return repo.get_untaught_spells()


@router.get("/sellers", response_model=list[RuneSellerResponse])
def list_rune_sellers(
    item_id: Optional[int] = Query(None, description="Only offers for this item type"),
    repo: Repository = Depends(get_repository),
) -> list[RuneSellerResponse]:
    """NPC offers for runes, wands and rods."""
    return [RuneSellerResponse(**seller) for seller in repo.get_rune_sellers(item_id)]


@router.get("/{spell_id}", response_model=SpellDetailResponse)
def get_spell(
    spell_id: int,
    repo: Repository = Depends(get_repository),
) -> SpellDetailResponse:
    """Get a spell with its teachers."""
    spell = repo.get_spell(spell_id)
    if not spell:
        raise HTTPException(status_code=404, detail="Spell not found")
    return SpellDetailResponse(**spell)
