"""FastAPI application factory."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from demonax import __version__
from demonax.api.routes import creatures, items, players, spells, world
from demonax.api.schemas import StatusResponse
from demonax.db.connection import Database
from demonax.db.repository import Repository


def create_app(db: Database) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        db: Connected database

    Returns:
        Configured FastAPI application serving read-only routes
    """
    app = FastAPI(
        title="Demonax API",
        description="Read-only query API over the ingested game database",
        version=__version__,
    )

    # CORS middleware for local development
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    repo = Repository(db)

    # Dependency override for repository injection
    def get_repository() -> Repository:
        return repo

    routers = [creatures, items, world, spells, players]
    for module in routers:
        app.dependency_overrides[module.get_repository] = get_repository
        app.include_router(module.router)

    app.state.db = db
    app.state.repo = repo

    @app.get("/api/status", response_model=StatusResponse, tags=["status"])
    def get_status() -> StatusResponse:
        """Get server status."""
        return StatusResponse(
            status="ok",
            db_path=str(db.db_path),
            schema_version=db.schema_version(),
            counts=repo.get_table_counts(),
        )

    return app
