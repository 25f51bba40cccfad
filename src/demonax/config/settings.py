"""Configuration and settings management."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from demonax.core.scheduler import default_workers
from demonax.db.repository import DEFAULT_BATCH_SIZE

ENV_DATABASE = "DEMONAX_DATABASE"
ENV_LOG_FILE = "DEMONAX_LOG_FILE"
ENV_GAME_PATH = "DEMONAX_GAME_PATH"
ENV_WORKERS = "DEMONAX_WORKERS"

# magic.cc locations relative to the game directory
MAGIC_CC_CANDIDATES = [
    Path("src/magic.cc"),
    Path("magic.cc"),
    Path("../src/magic.cc"),
]

# Harvesting recipe CSV locations relative to the game directory
RECIPE_CSV_CANDIDATES = [
    Path("harvesting.csv"),
    Path("dat/harvesting.csv"),
]


def get_default_db_path() -> Path:
    """Database path from DEMONAX_DATABASE, else ./demonax.sqlite."""
    env = os.environ.get(ENV_DATABASE)
    if env:
        return Path(env)
    return Path.cwd() / "demonax.sqlite"


def _env_path(name: str) -> Optional[Path]:
    value = os.environ.get(name)
    return Path(value) if value else None


def _env_workers() -> int:
    value = os.environ.get(ENV_WORKERS)
    if value and value.isdigit() and int(value) > 0:
        return int(value)
    return default_workers()


def find_magic_cc(game_path: Path) -> Optional[Path]:
    """
    Locate magic.cc for a game directory.

    Args:
        game_path: Game installation directory

    Returns:
        First existing candidate, None if there is none
    """
    for candidate in MAGIC_CC_CANDIDATES:
        path = game_path / candidate
        if path.is_file():
            return path
    return None


def find_recipe_csv(game_path: Optional[Path]) -> Optional[Path]:
    """Locate harvesting.csv in the game directory, then the working directory."""
    candidates = [game_path / c for c in RECIPE_CSV_CANDIDATES] if game_path else []
    candidates.append(Path.cwd() / "harvesting.csv")
    for path in candidates:
        if path.is_file():
            return path
    return None


@dataclass
class Settings:
    """Application settings."""

    # Path to database file
    db_path: Path = field(default_factory=get_default_db_path)

    # Optional log file in addition to stderr
    log_file: Optional[Path] = field(default_factory=lambda: _env_path(ENV_LOG_FILE))

    # Game installation directory (mon/, npc/, map/, dat/)
    game_path: Optional[Path] = field(default_factory=lambda: _env_path(ENV_GAME_PATH))

    # Decode worker count
    workers: int = field(default_factory=_env_workers)

    # Rows per write transaction
    batch_size: int = DEFAULT_BATCH_SIZE

    # -v count: 0 warnings, 1 info, 2+ debug
    verbosity: int = 0

    @classmethod
    def from_args(
        cls,
        db_path: Optional[str] = None,
        log_file: Optional[str] = None,
        game_path: Optional[str] = None,
        workers: Optional[int] = None,
        batch_size: Optional[int] = None,
        verbosity: int = 0,
    ) -> "Settings":
        """
        Create settings from CLI arguments.

        Arguments left unset fall back to the environment, then defaults.
        """
        settings = cls(verbosity=verbosity)
        if db_path:
            settings.db_path = Path(db_path)
        if log_file:
            settings.log_file = Path(log_file)
        if game_path:
            settings.game_path = Path(game_path)
        if workers is not None:
            settings.workers = workers
        if batch_size is not None:
            settings.batch_size = batch_size
        return settings

    def validate(self, require_game_path: bool = False) -> list[str]:
        """
        Validate settings.

        Returns:
            List of error messages (empty if valid)
        """
        errors = []

        if self.workers < 1:
            errors.append(f"Worker count must be positive: {self.workers}")

        if self.batch_size < 1:
            errors.append(f"Batch size must be positive: {self.batch_size}")

        if require_game_path:
            if self.game_path is None:
                errors.append(f"Game path not set (use --game-path or {ENV_GAME_PATH})")
            elif not self.game_path.is_dir():
                errors.append(f"Game directory not found: {self.game_path}")

        return errors
