"""Quest and raid API routes."""

from fastapi import APIRouter, Depends

from demonax.api.schemas import QuestResponse, RaidResponse
from demonax.db.repository import Repository

router = APIRouter(prefix="/api", tags=["world"])


def get_repository() -> Repository:
    """Dependency injection for repository - set by app factory."""
    raise NotImplementedError("Repository not configured")


@router.get("/quests", response_model=list[QuestResponse])
def list_quests(repo: Repository = Depends(get_repository)) -> list[QuestResponse]:
    """All quests with their chests, by quest number."""
    return [QuestResponse(**quest) for quest in repo.get_quests()]


@router.get("/raids", response_model=list[RaidResponse])
def list_raids(repo: Repository = Depends(get_repository)) -> list[RaidResponse]:
    return [RaidResponse(**raid) for raid in repo.get_raids()]
