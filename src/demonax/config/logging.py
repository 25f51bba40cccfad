"""Logging setup for the CLI and server."""

import logging
import sys
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_LEVELS = {0: logging.WARNING, 1: logging.INFO}


def level_for(verbosity: int) -> int:
    return _LEVELS.get(verbosity, logging.DEBUG if verbosity > 1 else logging.WARNING)


def setup_logging(verbosity: int = 0, log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure root logging once per process.

    Args:
        verbosity: -v count (0 WARNING, 1 INFO, 2+ DEBUG)
        log_file: Optional file receiving the same records as stderr

    Returns:
        The package logger
    """
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=level_for(verbosity),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    return get_logger()


def get_logger(name: str = "demonax") -> logging.Logger:
    return logging.getLogger(name)
