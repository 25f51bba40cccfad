"""Error taxonomy for ingestion and persistence.

Errors raised inside worker processes cross a pickle boundary, so every
error with a custom constructor rebuilds itself from its own fields.
"""

from pathlib import Path
from typing import Optional


class DemonaxError(Exception):
    """Base exception for all ingestion errors."""

    pass


class IoError(DemonaxError):
    """A required input directory or file is missing or unreadable.

    Fatal for the command that raised it.
    """

    def __init__(self, message: str, path: Optional[Path] = None) -> None:
        super().__init__(message)
        self.message = message
        self.path = path

    def __reduce__(self):
        return (type(self), (self.message, self.path), self.__dict__)


class DecodeError(DemonaxError):
    """A single file could not be decoded. The file is skipped."""

    def __init__(
        self,
        message: str,
        path: Optional[Path] = None,
        line: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.path = path
        self.line = line

    def __reduce__(self):
        return (type(self), (self.message, self.path, self.line), self.__dict__)

    def __str__(self) -> str:
        location = ""
        if self.path is not None:
            location = f"{self.path}"
            if self.line is not None:
                location += f":{self.line}"
            location += ": "
        elif self.line is not None:
            location = f"line {self.line}: "
        return f"{location}{self.message}"


class UnexpectedEof(DecodeError):
    """A binary read ran past the end of the buffer."""

    def __init__(self, offset: int, wanted: int, available: int) -> None:
        super().__init__(
            f"unexpected end of data at offset {offset}: "
            f"wanted {wanted} byte(s), {available} available"
        )
        self.offset = offset
        self.wanted = wanted
        self.available = available

    def __reduce__(self):
        return (type(self), (self.offset, self.wanted, self.available), self.__dict__)


class SchemaViolation(DemonaxError):
    """A decoded row violates a table constraint and is dropped."""

    def __init__(self, entity: str, key: object, reason: str) -> None:
        super().__init__(f"{entity} {key!r}: {reason}")
        self.entity = entity
        self.key = key
        self.reason = reason

    def __reduce__(self):
        return (type(self), (self.entity, self.key, self.reason), self.__dict__)


class PersistenceError(DemonaxError):
    """A write batch failed twice. Fatal for the current stage."""

    pass
