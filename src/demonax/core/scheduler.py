"""Parallel file decoding with per-file failure isolation."""

import logging
import os
from concurrent.futures import (
    FIRST_COMPLETED,
    Executor,
    Future,
    ProcessPoolExecutor,
    ThreadPoolExecutor,
    wait,
)
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Generic, Iterable, TypeVar

from demonax.core.errors import DecodeError
from demonax.core.models import FileFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that skip one file and let its siblings continue
FILE_ERRORS = (DecodeError, OSError, UnicodeDecodeError)


def default_workers() -> int:
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class ScheduleResult(Generic[T]):
    """Decoded values and failures of one scheduler run."""

    successes: dict[Path, T] = field(default_factory=dict)
    failures: list[FileFailure] = field(default_factory=list)

    def ordered(self) -> list[tuple[Path, T]]:
        """Successes sorted by path."""
        return sorted(self.successes.items(), key=lambda item: str(item[0]))


class FileScheduler:
    """
    Runs a decode function over many files in a worker pool.

    At most ``2 * max_workers`` decodes are queued at any time, so memory use
    does not grow with the number of files. Decode functions must be pure;
    with ``use_processes=True`` they must also be picklable (module level).
    """

    def __init__(self, max_workers: int | None = None, use_processes: bool = False) -> None:
        self.max_workers = max_workers or default_workers()
        self.use_processes = use_processes

    def _executor(self) -> Executor:
        if self.use_processes:
            return ProcessPoolExecutor(max_workers=self.max_workers)
        return ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="decode")

    def run(self, paths: Iterable[Path], decode: Callable[[Path], T]) -> ScheduleResult[T]:
        """
        Decode every path.

        Args:
            paths: Files to decode
            decode: Function mapping one path to its decoded value

        Returns:
            ScheduleResult with one entry per path, either a success or a
            FileFailure. Errors other than decode and I/O errors propagate.
        """
        result: ScheduleResult[T] = ScheduleResult()
        limit = 2 * self.max_workers
        pending: dict[Future, Path] = {}

        with self._executor() as executor:
            for path in paths:
                if len(pending) >= limit:
                    self._drain(pending, result)
                pending[executor.submit(decode, path)] = path
            while pending:
                self._drain(pending, result)

        logger.info(
            "Decoded %d file(s), %d failed", len(result.successes), len(result.failures)
        )
        return result

    def _drain(self, pending: dict[Future, Path], result: ScheduleResult) -> None:
        done, _ = wait(pending, return_when=FIRST_COMPLETED)
        for future in done:
            path = pending.pop(future)
            try:
                result.successes[path] = future.result()
            except FILE_ERRORS as e:
                logger.warning("Skipping %s: %s", path, e)
                result.failures.append(FileFailure(path=path, reason=str(e)))
