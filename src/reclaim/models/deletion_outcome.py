"""Deletion outcome dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ErrorKind(str, Enum):
    """Failure categories shared by scans and deletions."""

    PERMISSION_DENIED = "permission_denied"
    PATH_UNREADABLE = "path_unreadable"
    PATH_GONE_RACE = "path_gone_race"
    DELETION_FAILED = "deletion_failed"
    SCAN_ALREADY_RUNNING = "scan_already_running"
    INVALID_SELECTION = "invalid_selection"


@dataclass(frozen=True, slots=True)
class PathOutcome:
    """Result of one removal attempt."""

    path: str
    succeeded: bool
    error_kind: ErrorKind | None = None
    message: str = ""


@dataclass(slots=True)
class DeletionOutcome:
    """Result of a deletion batch.

    ``results`` holds one entry per attempted path, in the order the
    paths were processed.  Paths skipped because the batch was cancelled
    are not listed.
    """

    results: list[PathOutcome] = field(default_factory=list)
    bytes_freed: int = 0
    cancelled: bool = False

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for r in self.results if r.succeeded)

    @property
    def failed(self) -> list[PathOutcome]:
        return [r for r in self.results if not r.succeeded]

    @property
    def errors(self) -> list[str]:
        """Human-readable ``path: message`` lines for failed attempts."""
        return [f"{r.path}: {r.message}" for r in self.failed]
