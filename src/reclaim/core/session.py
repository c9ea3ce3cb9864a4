"""Lifecycle of a single user-initiated scan."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Callable

from reclaim.models.file_record import FileRecord
from reclaim.models.progress import ScanPhase, ScanProgress, SessionState
from reclaim.models.scan_result import JunkItem, ScanKind, ScanResult, SkippedPath

log = logging.getLogger(__name__)

ScanRunner = Callable[["ScanSession"], ScanResult]
FinishedCallback = Callable[["ScanSession"], None]


@dataclass(frozen=True, slots=True)
class SessionHandle:
    id: str
    kind: ScanKind

    def __str__(self) -> str:
        return self.id


class ScanSession:
    """One scan run: ``IDLE -> SCANNING -> COMPLETED | CANCELLED``.

    The runner executes on a background thread.  Producers on any thread
    report through ``note_record``, ``note_hashed``, ``note_skipped`` and
    ``add_item``; all of them mutate state under one lock, so
    ``progress()`` always returns a consistent snapshot.

    A cancelled session never exposes a result, even if the runner had
    already finished some of its work.  A runner that raises moves the
    session to ``FAILED``.
    """

    def __init__(
        self,
        kind: ScanKind,
        runner: ScanRunner,
        on_finished: FinishedCallback | None = None,
    ) -> None:
        self.handle = SessionHandle(id=uuid.uuid4().hex, kind=kind)
        self.cancel_event = threading.Event()
        self.error = ""
        self._runner = runner
        self._on_finished = on_finished
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._state = SessionState.IDLE
        self._phase = ScanPhase.IDLE
        self._items: list[JunkItem] = []
        self._skipped: list[SkippedPath] = []
        self._items_found = 0
        self._bytes_found = 0
        self._items_hashed = 0
        self._result: ScanResult | None = None
        self._thread: threading.Thread | None = None

    @property
    def kind(self) -> ScanKind:
        return self.handle.kind

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def is_cancelled(self) -> bool:
        return self.cancel_event.is_set()

    # -- lifecycle --

    def start(self) -> None:
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise RuntimeError(f"Session {self.handle} already started")
            self._state = SessionState.SCANNING
        log.info("Starting %s scan %s", self.kind.value, self.handle)
        self._thread = threading.Thread(
            target=self._run, name=f"reclaim-scan-{self.handle.id[:8]}", daemon=True
        )
        self._thread.start()

    def cancel(self) -> bool:
        """Request cancellation.  Returns False if the scan was not running."""
        with self._lock:
            if self._state is not SessionState.SCANNING:
                return False
            self._state = SessionState.CANCELLED
            self._result = None
        self.cancel_event.set()
        log.info("Cancelled %s scan %s", self.kind.value, self.handle)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the runner thread has exited."""
        return self._done.wait(timeout)

    def result(self) -> ScanResult | None:
        with self._lock:
            return self._result if self._state is SessionState.COMPLETED else None

    def replace_result(self, result: ScanResult) -> None:
        with self._lock:
            if self._state is SessionState.COMPLETED:
                self._result = result

    def discard(self) -> None:
        """Drop the result; used when a newer scan supersedes this one."""
        with self._lock:
            self._result = None
            self._items.clear()

    def _run(self) -> None:
        try:
            result = self._runner(self)
        except Exception as e:
            log.exception("%s scan %s crashed", self.kind.value, self.handle)
            with self._lock:
                if self._state is SessionState.SCANNING:
                    self._state = SessionState.FAILED
                    self.error = str(e) or type(e).__name__
        else:
            with self._lock:
                if self._state is SessionState.SCANNING:
                    result.skipped = list(self._skipped)
                    self._result = result
                    self._state = SessionState.COMPLETED
                    self._phase = ScanPhase.DONE
            if self.state is SessionState.COMPLETED:
                progress = self.progress()
                log.info(
                    "%s scan %s completed: %d item(s), %d bytes",
                    self.kind.value, self.handle, progress.items_found, progress.bytes_found,
                )
        finally:
            if self._on_finished:
                try:
                    self._on_finished(self)
                except Exception:
                    log.exception("Scan finished callback failed")
            self._done.set()

    # -- producer side --

    def set_phase(self, phase: ScanPhase) -> None:
        with self._lock:
            self._phase = phase

    def note_record(self, record: FileRecord) -> None:
        """Count a discovered record towards progress."""
        with self._lock:
            self._items_found += 1
            self._bytes_found += max(record.size_bytes, 0)

    def note_hashed(self, record: FileRecord) -> None:
        with self._lock:
            self._items_hashed += 1

    def note_skipped(self, skipped: SkippedPath) -> None:
        with self._lock:
            self._skipped.append(skipped)

    def add_item(self, item: JunkItem) -> None:
        """Append a found junk item and count it."""
        with self._lock:
            self._items.append(item)
            self._items_found += 1
            self._bytes_found += max(item.record.size_bytes, 0)

    def items(self) -> list[JunkItem]:
        """Snapshot of items appended so far."""
        with self._lock:
            return list(self._items)

    def progress(self) -> ScanProgress:
        with self._lock:
            return ScanProgress(
                items_found=self._items_found,
                bytes_found=self._bytes_found,
                items_hashed=self._items_hashed,
                skipped=len(self._skipped),
                phase=self._phase,
            )
