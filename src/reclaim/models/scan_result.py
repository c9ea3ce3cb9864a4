"""Scan result dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator

from reclaim.models.deletion_outcome import ErrorKind
from reclaim.models.file_record import DigestKey, FileRecord


class Category(str, Enum):
    """Semantic category assigned by the path classifier."""

    CACHE = "cache"
    LOG = "log"
    DERIVED_DATA = "derived_data"
    OTHER = "other"
    PROTECTED = "protected"


class ScanKind(str, Enum):
    DUPLICATES = "duplicates"
    JUNK = "junk"
    TRASH = "trash"


@dataclass(frozen=True, slots=True)
class SkippedPath:
    """A path the scan could not read and left out."""

    path: str
    kind: ErrorKind
    reason: str = ""


@dataclass(frozen=True, slots=True)
class DuplicateGroup:
    """Two or more files with identical size and content digest.

    ``members[0]`` is the copy that is kept; the rest are deletion
    candidates.
    """

    key: DigestKey
    members: tuple[FileRecord, ...]

    def __post_init__(self) -> None:
        if len(self.members) < 2:
            raise ValueError(f"A duplicate group needs at least 2 members, got {len(self.members)}")

    @property
    def kept(self) -> FileRecord:
        return self.members[0]

    @property
    def candidates(self) -> tuple[FileRecord, ...]:
        return self.members[1:]

    @property
    def reclaimable_bytes(self) -> int:
        return self.key.size_bytes * len(self.candidates)


@dataclass(slots=True)
class JunkItem:
    """A file found under a junk root.

    ``selected`` belongs to the caller's selection UI; scanners leave it alone.
    """

    record: FileRecord
    category: Category
    selected: bool = False


@dataclass(frozen=True, slots=True)
class TrashItem:
    record: FileRecord


@dataclass(slots=True)
class ScanResult:
    """Everything a single scan produced.

    Only the collection matching ``kind`` is populated.
    """

    kind: ScanKind
    duplicate_groups: list[DuplicateGroup] = field(default_factory=list)
    junk_items: list[JunkItem] = field(default_factory=list)
    trash_items: list[TrashItem] = field(default_factory=list)
    skipped: list[SkippedPath] = field(default_factory=list)

    def records(self) -> Iterator[FileRecord]:
        """Yield every record in the result in a stable order."""
        for group in self.duplicate_groups:
            yield from group.members
        for item in self.junk_items:
            yield item.record
        for trash_item in self.trash_items:
            yield trash_item.record

    @property
    def total_bytes(self) -> int:
        return sum(r.size_bytes for r in self.records())

    @property
    def reclaimable_bytes(self) -> int:
        """Bytes freed if every candidate were deleted (kept duplicates excluded)."""
        if self.kind is ScanKind.DUPLICATES:
            return sum(g.reclaimable_bytes for g in self.duplicate_groups)
        return self.total_bytes

    def duplicate_candidates(self) -> list[str]:
        """Paths of every duplicate except the kept copy of each group."""
        return [r.path for g in self.duplicate_groups for r in g.candidates]

    def without(self, paths: Iterable[str]) -> ScanResult:
        """Return a copy with *paths* removed.

        Duplicate groups that fall below two members are dropped.
        """
        gone = set(paths)
        groups: list[DuplicateGroup] = []
        for group in self.duplicate_groups:
            remaining = tuple(r for r in group.members if r.path not in gone)
            if len(remaining) >= 2:
                groups.append(DuplicateGroup(key=group.key, members=remaining))
        return ScanResult(
            kind=self.kind,
            duplicate_groups=groups,
            junk_items=[i for i in self.junk_items if i.record.path not in gone],
            trash_items=[i for i in self.trash_items if i.record.path not in gone],
            skipped=list(self.skipped),
        )
