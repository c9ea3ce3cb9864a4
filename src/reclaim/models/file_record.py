"""File record dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class FileRecord:
    """Snapshot of a single filesystem item taken at enumeration time.

    Records are never updated after creation.  If the item changes on
    disk afterwards the record simply goes stale.
    """

    path: str
    size_bytes: int
    is_directory: bool
    modified_at: datetime


@dataclass(frozen=True, slots=True)
class DigestKey:
    """Identity of file content: two files are duplicates iff keys are equal."""

    size_bytes: int
    digest: bytes

    @property
    def hexdigest(self) -> str:
        return self.digest.hex()
