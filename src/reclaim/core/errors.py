"""Domain errors raised by the scan and deletion engine."""

from __future__ import annotations

from typing import Iterable

from reclaim.models.deletion_outcome import ErrorKind


class ReclaimError(Exception):
    """Base class for all engine errors."""

    kind: ErrorKind | None = None


class PermissionDenied(ReclaimError):
    """Raised when the permission gate refuses a capability."""

    kind = ErrorKind.PERMISSION_DENIED

    def __init__(self, capability: str) -> None:
        super().__init__(f"Not authorized: {capability}")
        self.capability = capability


class ReadFailure(ReclaimError):
    """Raised when a file vanishes or becomes unreadable while it is read."""

    def __init__(self, path: str, kind: ErrorKind, reason: str = "") -> None:
        super().__init__(f"{path}: {reason}" if reason else path)
        self.path = path
        self.kind = kind
        self.reason = reason


class ScanAlreadyRunning(ReclaimError):
    kind = ErrorKind.SCAN_ALREADY_RUNNING

    def __init__(self, handle: str) -> None:
        super().__init__(f"Scan {handle} is still running")
        self.handle = handle


class InvalidSelection(ReclaimError):
    """Raised when a deletion names paths the current scan never produced."""

    kind = ErrorKind.INVALID_SELECTION

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = sorted(paths)
        shown = ", ".join(self.paths[:3])
        more = f" (+{len(self.paths) - 3} more)" if len(self.paths) > 3 else ""
        super().__init__(f"Not part of the current scan result: {shown}{more}")


class UnknownSession(ReclaimError, LookupError):
    def __init__(self, handle: str) -> None:
        super().__init__(f"Unknown scan session: {handle}")
        self.handle = handle
