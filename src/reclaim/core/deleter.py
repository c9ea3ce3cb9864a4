"""Serial, failure-isolating deletion of user-approved paths."""

from __future__ import annotations

import errno
import logging
import os
import shutil
import threading
from enum import Enum
from typing import Callable, Sequence

from send2trash import send2trash

from reclaim.models.deletion_outcome import DeletionOutcome, ErrorKind, PathOutcome
from reclaim.models.file_record import FileRecord

log = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]  # (completed, total)
Remover = Callable[[str], None]

# How long delete() waits for the progress thread to deliver the final update.
_FLUSH_TIMEOUT = 5.0


class DeletionMode(str, Enum):
    TRASH = "trash"
    PERMANENT = "permanent"


def move_to_trash(path: str) -> None:
    """Move *path* to the desktop trash."""
    if not os.path.lexists(path):
        raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), path)
    send2trash(path)


def permanently_delete(path: str) -> None:
    """Remove *path* for good; directories are removed recursively."""
    if os.path.isdir(path) and not os.path.islink(path):
        shutil.rmtree(path)
    else:
        os.unlink(path)


_REMOVERS: dict[DeletionMode, Remover] = {
    DeletionMode.TRASH: move_to_trash,
    DeletionMode.PERMANENT: permanently_delete,
}


class _ProgressRelay:
    """Delivers progress updates to a callback on a dedicated thread.

    Only the most recent ``(completed, total)`` pair is kept, so a slow
    callback sees fewer updates instead of stalling the deletion loop.
    The final update is always delivered.
    """

    def __init__(self, callback: ProgressCallback) -> None:
        self._callback = callback
        self._lock = threading.Lock()
        self._pending: tuple[int, int] | None = None
        self._closed = False
        self._wakeup = threading.Event()
        self._thread = threading.Thread(target=self._run, name="reclaim-progress", daemon=True)
        self._thread.start()

    def post(self, completed: int, total: int) -> None:
        with self._lock:
            self._pending = (completed, total)
        self._wakeup.set()

    def close(self, timeout: float = _FLUSH_TIMEOUT) -> None:
        with self._lock:
            self._closed = True
        self._wakeup.set()
        self._thread.join(timeout)
        if self._thread.is_alive():
            log.warning("Progress callback still busy after %.1fs, not waiting", timeout)

    def _run(self) -> None:
        while True:
            self._wakeup.wait()
            self._wakeup.clear()
            with self._lock:
                update, self._pending = self._pending, None
                closed = self._closed
            if update is not None:
                try:
                    self._callback(*update)
                except Exception:
                    log.exception("Progress callback failed")
            if closed:
                return


class DeletionExecutor:
    """Deletes an explicit list of records one at a time.

    Only the given records are ever touched.  A failed removal is recorded
    and the batch moves on.  ``bytes_freed`` is the sum of the recorded
    sizes of the records whose removal succeeded.

    Args:
        mode: Move to trash (recoverable) or delete permanently.
        cancel_event: Checked before each removal.
        remover: Replaces the removal primitive chosen by *mode*.
    """

    def __init__(
        self,
        mode: DeletionMode = DeletionMode.TRASH,
        cancel_event: threading.Event | None = None,
        remover: Remover | None = None,
    ) -> None:
        self.mode = mode
        self._cancel = cancel_event or threading.Event()
        self._remove = remover or _REMOVERS[mode]
        self._busy = threading.Lock()

    def delete(
        self,
        records: Sequence[FileRecord],
        on_progress: ProgressCallback | None = None,
    ) -> DeletionOutcome:
        """Remove *records* in order and return the outcome.

        Raises:
            RuntimeError: Another batch is running on this executor.
        """
        if not self._busy.acquire(blocking=False):
            raise RuntimeError("A deletion batch is already running on this executor")
        try:
            return self._delete(tuple(records), on_progress)
        finally:
            self._busy.release()

    def _delete(self, batch: tuple[FileRecord, ...], on_progress: ProgressCallback | None) -> DeletionOutcome:
        outcome = DeletionOutcome()
        relay = _ProgressRelay(on_progress) if on_progress else None
        total = len(batch)
        log.info("Deleting %d item(s) (%s)", total, self.mode.value)

        try:
            for index, record in enumerate(batch, start=1):
                if self._cancel.is_set():
                    log.info("Deletion cancelled after %d of %d item(s)", index - 1, total)
                    outcome.cancelled = True
                    break
                result = self._remove_one(record)
                outcome.results.append(result)
                if result.succeeded:
                    outcome.bytes_freed += record.size_bytes
                if relay:
                    relay.post(index, total)
        finally:
            if relay:
                relay.close()

        log.info(
            "Deletion finished: %d attempted, %d succeeded, %d bytes freed",
            outcome.attempted, outcome.succeeded, outcome.bytes_freed,
        )
        return outcome

    def _remove_one(self, record: FileRecord) -> PathOutcome:
        try:
            self._remove(record.path)
        except FileNotFoundError as e:
            log.warning("Already gone: %s", record.path)
            return PathOutcome(record.path, False, ErrorKind.PATH_GONE_RACE, e.strerror or str(e))
        except OSError as e:
            log.warning("Failed to delete %s: %s", record.path, e)
            return PathOutcome(record.path, False, ErrorKind.DELETION_FAILED, e.strerror or str(e))
        log.info("Deleted %s (%d bytes)", record.path, record.size_bytes)
        return PathOutcome(record.path, True)
