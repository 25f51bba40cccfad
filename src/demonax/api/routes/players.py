"""Players API routes."""

from fastapi import APIRouter, Depends, HTTPException

from demonax.api.schemas import PlayerResponse, SnapshotResponse
from demonax.db.repository import Repository

router = APIRouter(prefix="/api/players", tags=["players"])


def get_repository() -> Repository:
    """Dependency injection for repository - set by app factory."""
    raise NotImplementedError("Repository not configured")


@router.get("", response_model=list[PlayerResponse])
def list_players(repo: Repository = Depends(get_repository)) -> list[PlayerResponse]:
    return [PlayerResponse(**player) for player in repo.get_players()]


@router.get("/{name}/snapshots", response_model=list[SnapshotResponse])
def get_snapshots(
    name: str,
    repo: Repository = Depends(get_repository),
) -> list[SnapshotResponse]:
    """Daily snapshots of one player, oldest first."""
    snapshots = repo.get_player_snapshots(name)
    if not snapshots:
        raise HTTPException(status_code=404, detail="Player not found")
    return [SnapshotResponse(**snapshot) for snapshot in snapshots]
