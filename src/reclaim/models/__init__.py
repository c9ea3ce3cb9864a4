"""Reclaim data models."""

from reclaim.models.deletion_outcome import DeletionOutcome, ErrorKind, PathOutcome
from reclaim.models.file_record import DigestKey, FileRecord
from reclaim.models.progress import ScanPhase, ScanProgress, SessionState
from reclaim.models.scan_result import (
    Category,
    DuplicateGroup,
    JunkItem,
    ScanKind,
    ScanResult,
    SkippedPath,
    TrashItem,
)

__all__ = [
    "Category",
    "DeletionOutcome",
    "DigestKey",
    "DuplicateGroup",
    "ErrorKind",
    "FileRecord",
    "JunkItem",
    "PathOutcome",
    "ScanKind",
    "ScanPhase",
    "ScanProgress",
    "ScanResult",
    "SessionState",
    "SkippedPath",
    "TrashItem",
]
