"""Concurrent directory traversal.

Every directory is read by its own task on a bounded thread pool; a task
submits the subdirectories it finds as new tasks.  Records go into a
shared bounded queue which the caller drains through a generator, so
discovery order is arbitrary.  A slow or hung directory only holds up
the worker reading it.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Iterator

from reclaim.models.deletion_outcome import ErrorKind
from reclaim.models.file_record import FileRecord
from reclaim.models.scan_result import SkippedPath
from reclaim.utils import is_within, tree_size

log = logging.getLogger(__name__)

SkippedCallback = Callable[[SkippedPath], None]

# Directory extensions treated as opaque leaves (macOS bundles and friends).
PACKAGE_EXTENSIONS = frozenset({
    ".app",
    ".appex",
    ".bundle",
    ".framework",
    ".kext",
    ".photoslibrary",
    ".plugin",
    ".xcarchive",
    ".xcodeproj",
    ".xcworkspace",
})

_QUEUE_SIZE = 1024
_PUT_TIMEOUT = 0.1


@dataclass(frozen=True, slots=True)
class WalkOptions:
    skip_hidden: bool = True
    skip_packages: bool = True
    follow_symlinks: bool = False
    max_workers: int = 4


def is_package(name: str) -> bool:
    """Check whether a directory name carries a bundle extension."""
    return os.path.splitext(name)[1].lower() in PACKAGE_EXTENSIONS


def collapse_roots(roots: Iterable[str | os.PathLike]) -> list[str]:
    """Normalize *roots* and drop any root nested inside another one."""
    normalized: list[str] = []
    for root in roots:
        path = os.path.abspath(os.fspath(root))
        if path not in normalized:
            normalized.append(path)
    return [
        r for r in normalized
        if not any(other != r and is_within(r, other) for other in normalized)
    ]


def _timestamp(st: os.stat_result) -> datetime:
    return datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)


class _WalkRun:
    """Pool, output queue and pending-task count of one ``walk`` call.

    The count starts at one for the seeding caller, so the run cannot
    finish before every root has been submitted.
    """

    def __init__(self, max_workers: int) -> None:
        self.out: queue.Queue = queue.Queue(maxsize=_QUEUE_SIZE)
        self.stop = threading.Event()
        self.finished = threading.Event()
        self._lock = threading.Lock()
        self._pending = 1
        self._executor = ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="reclaim-walk"
        )

    def submit(self, fn: Callable[..., None], path: str, *args) -> None:
        with self._lock:
            self._pending += 1
        try:
            self._executor.submit(self._run, fn, path, *args)
        except RuntimeError:
            # Pool already shut down; the consumer is gone.
            self.task_done()

    def _run(self, fn: Callable[..., None], path: str, *args) -> None:
        try:
            fn(path, *args)
        except Exception:
            log.exception("Walker crashed on %s", path)
        finally:
            self.task_done()

    def task_done(self) -> None:
        with self._lock:
            self._pending -= 1
            if self._pending == 0:
                self.finished.set()

    def records(self) -> Iterator[FileRecord]:
        """Drain the output queue until every task has finished."""
        while True:
            try:
                yield self.out.get(timeout=_PUT_TIMEOUT)
            except queue.Empty:
                # Every put happens before its task finishes.
                if self.finished.is_set() and self.out.empty():
                    return

    def put(self, item: object) -> bool:
        """Hand *item* to the consumer, giving up once the consumer is gone."""
        while not self.stop.is_set():
            try:
                self.out.put(item, timeout=_PUT_TIMEOUT)
                return True
            except queue.Full:
                continue
        return False

    def close(self) -> None:
        self.stop.set()
        self._executor.shutdown(wait=True, cancel_futures=True)


class DirectoryWalker:
    """Enumerates files under one or more roots.

    Symbolic links to files are never reported, and a file reachable
    through several hard links is reported once.  With
    ``follow_symlinks`` set, links to directories are descended, guarded
    against loops by (device, inode).

    Args:
        options: Skip rules and worker limit.
        cancel_event: Checked before every directory read; once set no new
            directory is opened.
        on_skipped: Called (from worker threads) for every path that could
            not be read.
    """

    def __init__(
        self,
        options: WalkOptions | None = None,
        cancel_event: threading.Event | None = None,
        on_skipped: SkippedCallback | None = None,
    ) -> None:
        self.options = options or WalkOptions()
        self._cancel = cancel_event or threading.Event()
        self._on_skipped = on_skipped
        self._skipped: list[SkippedPath] = []
        self._lock = threading.Lock()
        self._visited: set[tuple[int, int]] = set()

    @property
    def skipped(self) -> list[SkippedPath]:
        """Paths skipped so far, in the order they were reported."""
        with self._lock:
            return list(self._skipped)

    def walk(self, roots: Iterable[str | os.PathLike]) -> Iterator[FileRecord]:
        """Yield a record for every reachable file under *roots*.

        The generator is lazy and single-use.  Closing it early stops the
        worker threads.
        """
        root_list = collapse_roots(roots)
        if not root_list:
            return

        run = _WalkRun(self.options.max_workers)
        for root in root_list:
            run.submit(self._walk_root, root, run)
        run.task_done()

        try:
            yield from run.records()
        finally:
            run.close()

    # -- worker side --

    def _stopped(self, run: _WalkRun) -> bool:
        return run.stop.is_set() or self._cancel.is_set()

    def _skip(self, path: str, kind: ErrorKind, reason: str) -> None:
        skipped = SkippedPath(path=path, kind=kind, reason=reason)
        log.debug("Skipping %s (%s): %s", path, kind.value, reason)
        with self._lock:
            self._skipped.append(skipped)
        if self._on_skipped:
            self._on_skipped(skipped)

    def _skip_error(self, path: str, exc: OSError) -> None:
        kind = ErrorKind.PATH_GONE_RACE if isinstance(exc, FileNotFoundError) else ErrorKind.PATH_UNREADABLE
        self._skip(path, kind, exc.strerror or str(exc))

    def _first_visit(self, st: os.stat_result) -> bool:
        """Record an inode as seen; False if it was seen before."""
        key = (st.st_dev, st.st_ino)
        with self._lock:
            if key in self._visited:
                return False
            self._visited.add(key)
            return True

    def _walk_root(self, root: str, run: _WalkRun) -> None:
        try:
            st = os.stat(root)
        except OSError as e:
            self._skip_error(root, e)
            return

        if os.path.isdir(root):
            self._walk_dir(root, run)
        elif st.st_nlink < 2 or self._first_visit(st):
            run.put(FileRecord(root, st.st_size, False, _timestamp(st)))

    def _walk_dir(self, path: str, run: _WalkRun) -> None:
        if self._stopped(run):
            return
        follow = self.options.follow_symlinks

        if follow:
            try:
                if not self._first_visit(os.stat(path)):
                    log.debug("Already visited, skipping: %s", path)
                    return
            except OSError as e:
                self._skip_error(path, e)
                return

        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            self._skip_error(path, e)
            return

        for entry in entries:
            if self.options.skip_hidden and entry.name.startswith("."):
                continue
            try:
                if entry.is_symlink() and not (follow and entry.is_dir()):
                    continue
                if entry.is_dir(follow_symlinks=follow):
                    if self.options.skip_packages and is_package(entry.name):
                        record = self._package_record(entry)
                    else:
                        run.submit(self._walk_dir, entry.path, run)
                        continue
                elif entry.is_file(follow_symlinks=False):
                    est = entry.stat(follow_symlinks=False)
                    if est.st_nlink > 1 and not self._first_visit(est):
                        log.debug("Hard link to a file already seen: %s", entry.path)
                        continue
                    record = FileRecord(entry.path, est.st_size, False, _timestamp(est))
                else:
                    continue
            except OSError as e:
                self._skip_error(entry.path, e)
                continue
            if not run.put(record):
                return

    def _package_record(self, entry: os.DirEntry) -> FileRecord:
        st = entry.stat(follow_symlinks=self.options.follow_symlinks)
        return FileRecord(entry.path, tree_size(entry.path), True, _timestamp(st))
