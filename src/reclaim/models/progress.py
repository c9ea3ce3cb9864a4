"""Scan session state and progress snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class SessionState(str, Enum):
    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


class ScanPhase(str, Enum):
    IDLE = "idle"
    WALKING = "walking"
    HASHING = "hashing"
    LISTING = "listing"
    DONE = "done"


@dataclass(frozen=True, slots=True)
class ScanProgress:
    """Consistent point-in-time view of a running scan.

    There is no known total while walking; ``phase == DONE`` is the only
    completion signal.
    """

    items_found: int = 0
    bytes_found: int = 0
    items_hashed: int = 0
    skipped: int = 0
    phase: ScanPhase = ScanPhase.IDLE
