"""Content-based duplicate grouping."""

from __future__ import annotations

import filecmp
import logging
import os
import stat
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Callable, Iterable

from reclaim.core.errors import ReadFailure
from reclaim.core.hasher import ContentHasher
from reclaim.models.deletion_outcome import ErrorKind
from reclaim.models.file_record import DigestKey, FileRecord
from reclaim.models.scan_result import DuplicateGroup, SkippedPath

log = logging.getLogger(__name__)


class VerifyMode(str, Enum):
    """How equal digests are turned into a duplicate verdict.

    ``HASH`` trusts SHA-256 equality; ``BYTES`` additionally compares the
    files byte for byte and splits groups that differ.
    """

    HASH = "hash"
    BYTES = "bytes"


def keep_order(record: FileRecord) -> tuple:
    """Sort key for group members: oldest first, path breaks ties."""
    return (record.modified_at, record.path)


class DuplicateGrouper:
    """Groups file records by (size, digest).

    Records are bucketed by size first so files with a unique size are
    never read.  Only same-size candidates are hashed, on a pool of
    ``max_workers`` threads regardless of how many files there are.
    Directories and empty files never take part.
    """

    def __init__(
        self,
        hasher: ContentHasher | None = None,
        max_workers: int = 4,
        verify: VerifyMode = VerifyMode.HASH,
        cancel_event: threading.Event | None = None,
        on_hashed: Callable[[FileRecord], None] | None = None,
        on_skipped: Callable[[SkippedPath], None] | None = None,
    ) -> None:
        self.hasher = hasher or ContentHasher()
        self.max_workers = max(1, max_workers)
        self.verify = verify
        self._cancel = cancel_event or threading.Event()
        self._on_hashed = on_hashed
        self._on_skipped = on_skipped

    def group(self, records: Iterable[FileRecord]) -> list[DuplicateGroup]:
        """Consume *records* and return every group with two or more members."""
        by_size: dict[int, list[FileRecord]] = defaultdict(list)
        for record in records:
            if record.is_directory or record.size_bytes == 0:
                continue
            by_size[record.size_bytes].append(record)

        candidates = self._distinct_files(
            r for bucket in by_size.values() if len(bucket) > 1 for r in bucket
        )
        log.debug("%d of %d sizes need hashing (%d files)",
                  sum(1 for b in by_size.values() if len(b) > 1), len(by_size), len(candidates))
        if not candidates or self._cancel.is_set():
            return []

        by_key: dict[DigestKey, list[FileRecord]] = defaultdict(list)
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="reclaim-hash") as pool:
            for record, digest in pool.map(self._hash_one, candidates):
                if digest is not None:
                    by_key[DigestKey(record.size_bytes, digest)].append(record)

        groups: list[DuplicateGroup] = []
        for key, members in by_key.items():
            if len(members) < 2:
                continue
            classes = self._split_by_bytes(members) if self.verify is VerifyMode.BYTES else [members]
            for same in classes:
                if len(same) >= 2:
                    groups.append(DuplicateGroup(key=key, members=tuple(sorted(same, key=keep_order))))

        groups.sort(key=lambda g: (-g.reclaimable_bytes, g.kept.path))
        return groups

    @staticmethod
    def _distinct_files(records: Iterable[FileRecord]) -> list[FileRecord]:
        """Drop symlinks and extra hard links; deleting those frees nothing."""
        seen: set[tuple[int, int]] = set()
        distinct: list[FileRecord] = []
        for record in records:
            try:
                st = os.lstat(record.path)
            except OSError:
                # The hasher reports it.
                distinct.append(record)
                continue
            if stat.S_ISLNK(st.st_mode):
                log.debug("Symlink, not a duplicate candidate: %s", record.path)
                continue
            key = (st.st_dev, st.st_ino)
            if key in seen:
                log.debug("Hard link to a file already seen: %s", record.path)
                continue
            seen.add(key)
            distinct.append(record)
        return distinct

    def _hash_one(self, record: FileRecord) -> tuple[FileRecord, bytes | None]:
        if self._cancel.is_set():
            return record, None
        try:
            digest = self.hasher.hash(record.path, expected_size=record.size_bytes)
        except ReadFailure as e:
            log.debug("Excluding %s from duplicate scan: %s", record.path, e)
            self._report(SkippedPath(record.path, e.kind, e.reason))
            return record, None
        if self._on_hashed:
            self._on_hashed(record)
        return record, digest

    def _split_by_bytes(self, members: list[FileRecord]) -> list[list[FileRecord]]:
        """Partition same-digest files into classes of byte-identical content."""
        classes: list[list[FileRecord]] = []
        for record in members:
            if self._cancel.is_set():
                break
            try:
                for cls in classes:
                    if filecmp.cmp(cls[0].path, record.path, shallow=False):
                        cls.append(record)
                        break
                else:
                    classes.append([record])
            except OSError as e:
                self._report(SkippedPath(record.path, ErrorKind.PATH_UNREADABLE, e.strerror or str(e)))
        return classes

    def _report(self, skipped: SkippedPath) -> None:
        if self._on_skipped:
            self._on_skipped(skipped)
