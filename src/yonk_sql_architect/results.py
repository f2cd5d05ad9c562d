"""Result type for user-facing outcomes.

Operations that can fail in ways the user should see return a ``Result``
instead of raising, so callers branch on ``error`` rather than message text.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced to callers."""
    PARSE_YIELDED_NOTHING = "parse_yielded_nothing"
    ORACLE_BATCH_FAILURE = "oracle_batch_failure"
    ORACLE_UNAVAILABLE = "oracle_unavailable"
    SNAPSHOT_CORRUPT = "snapshot_corrupt"
    NO_TABLES = "no_tables"
    TAGGING_IN_PROGRESS = "tagging_in_progress"
    READ_FAILED = "read_failed"


@dataclass
class Result(Generic[T]):
    """Outcome of an operation: a value, or an error kind plus message."""
    value: T | None = None
    error: ErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, message: str = "") -> Result[T]:
        return cls(value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> Result[T]:
        return cls(error=error, message=message)
