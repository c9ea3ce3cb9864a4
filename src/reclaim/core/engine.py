"""Scan and deletion orchestration engine."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Iterable

from reclaim.core.classifier import PathClassifier
from reclaim.core.deleter import DeletionExecutor, DeletionMode, ProgressCallback
from reclaim.core.errors import InvalidSelection, ScanAlreadyRunning, UnknownSession
from reclaim.core.grouper import DuplicateGrouper
from reclaim.core.hasher import ContentHasher
from reclaim.core.junk import JunkScanner
from reclaim.core.permissions import Capability, PermissionGate, require
from reclaim.core.session import ScanRunner, ScanSession, SessionHandle
from reclaim.core.trash import TrashInventory
from reclaim.core.walker import DirectoryWalker
from reclaim.models.deletion_outcome import DeletionOutcome
from reclaim.models.file_record import FileRecord
from reclaim.models.progress import ScanPhase, ScanProgress, SessionState
from reclaim.models.scan_result import ScanKind, ScanResult
from reclaim.settings import EngineConfig
from reclaim.utils import default_trash_dir

log = logging.getLogger(__name__)

# Finished sessions kept queryable by handle, newest last.
_MAX_SESSIONS = 16

SessionFinishedCallback = Callable[[SessionHandle, SessionState], None]


class ReclaimEngine:
    """Runs duplicate, junk and trash scans and deletes approved items.

    Only one scan runs at a time.  Starting a new scan discards the result
    of the previous one.  Deletions only accept paths from the result of
    the most recent completed scan.

    Args:
        permission_gate: Asked before scans that touch protected areas.
        config: Worker counts, skip rules and deletion defaults.
        classifier: Junk allow-list; built from *config* when omitted.
        hasher: Shared content hasher.
        on_session_finished: Called from the scan thread when a session
            reaches a terminal state.
    """

    def __init__(
        self,
        permission_gate: PermissionGate,
        config: EngineConfig | None = None,
        classifier: PathClassifier | None = None,
        hasher: ContentHasher | None = None,
        on_session_finished: SessionFinishedCallback | None = None,
    ) -> None:
        self.permission_gate = permission_gate
        self.config = config or EngineConfig()
        self.classifier = classifier or PathClassifier.default(self.config.extra_junk_roots)
        self.hasher = hasher or ContentHasher()
        self._on_session_finished = on_session_finished
        self._lock = threading.Lock()
        self._delete_lock = threading.Lock()
        self._deletion_cancel = threading.Event()
        self._sessions: dict[str, ScanSession] = {}
        self._current: ScanSession | None = None
        self._trash = TrashInventory()
        self._trash_root: Path | None = None

    # -- scans --

    def start_duplicate_scan(self, root: str | os.PathLike) -> SessionHandle:
        """Start looking for duplicate files under *root*."""
        root_str = os.fspath(root)
        return self._start(ScanKind.DUPLICATES, lambda s: self._run_duplicates(s, root_str))

    def start_junk_scan(self, roots: Iterable[str | os.PathLike] | None = None) -> SessionHandle:
        """Start a junk scan of *roots*, or of the classifier's allow-list.

        Raises:
            PermissionDenied: Full disk access is not granted.
            ScanAlreadyRunning: Another scan is in progress.
        """
        if roots is None:
            root_list = [r.path for r in self.classifier.roots]
        else:
            root_list = [os.fspath(r) for r in roots]
        return self._start(
            ScanKind.JUNK,
            lambda s: self._run_junk(s, root_list),
            capability=Capability.FULL_DISK_ACCESS,
        )

    def start_trash_scan(self, trash_root: str | os.PathLike | None = None) -> SessionHandle:
        """Start listing the trash directory."""
        root = Path(trash_root) if trash_root is not None else default_trash_dir()
        return self._start(
            ScanKind.TRASH,
            lambda s: self._run_trash(s, root),
            capability=Capability.TRASH_ACCESS,
        )

    def _start(
        self,
        kind: ScanKind,
        runner: ScanRunner,
        capability: Capability | None = None,
    ) -> SessionHandle:
        with self._lock:
            current = self._current
            if current is not None and current.state is SessionState.SCANNING:
                raise ScanAlreadyRunning(current.handle.id)
            if capability is not None:
                require(self.permission_gate, capability)

            session = ScanSession(kind, runner, on_finished=self._session_finished)
            if current is not None:
                current.discard()
            self._sessions[session.handle.id] = session
            self._current = session
            while len(self._sessions) > _MAX_SESSIONS:
                del self._sessions[next(iter(self._sessions))]
            session.start()
        return session.handle

    def _session_finished(self, session: ScanSession) -> None:
        if self._on_session_finished:
            self._on_session_finished(session.handle, session.state)

    def _run_duplicates(self, session: ScanSession, root: str) -> ScanResult:
        session.set_phase(ScanPhase.WALKING)
        walker = DirectoryWalker(
            self.config.walk_options,
            cancel_event=session.cancel_event,
            on_skipped=session.note_skipped,
        )
        records: list[FileRecord] = []
        for record in walker.walk([root]):
            if self.classifier.is_protected(record.path, record.is_directory):
                log.debug("Protected, not a duplicate candidate: %s", record.path)
                continue
            session.note_record(record)
            records.append(record)

        if session.is_cancelled:
            return ScanResult(kind=ScanKind.DUPLICATES)

        session.set_phase(ScanPhase.HASHING)
        grouper = DuplicateGrouper(
            self.hasher,
            max_workers=self.config.hash_workers,
            verify=self.config.verify,
            cancel_event=session.cancel_event,
            on_hashed=session.note_hashed,
            on_skipped=session.note_skipped,
        )
        groups = grouper.group(records)
        log.info("Found %d duplicate group(s) under %s", len(groups), root)
        return ScanResult(kind=ScanKind.DUPLICATES, duplicate_groups=groups)

    def _run_junk(self, session: ScanSession, roots: list[str]) -> ScanResult:
        session.set_phase(ScanPhase.WALKING)
        scanner = JunkScanner(
            self.classifier,
            self.config.walk_options,
            cancel_event=session.cancel_event,
            on_skipped=session.note_skipped,
            include_unclassified=self.config.include_unclassified,
        )
        scanner.scan(roots, on_item=session.add_item)
        return ScanResult(kind=ScanKind.JUNK, junk_items=session.items())

    def _run_trash(self, session: ScanSession, root: Path) -> ScanResult:
        session.set_phase(ScanPhase.LISTING)
        items = self._trash.list(root)
        self._trash_root = root
        for item in items:
            session.note_record(item.record)
        return ScanResult(kind=ScanKind.TRASH, trash_items=items)

    # -- session queries --

    def _session(self, handle: SessionHandle | str) -> ScanSession:
        session = self._sessions.get(str(handle))
        if session is None:
            raise UnknownSession(str(handle))
        return session

    def cancel(self, handle: SessionHandle | str) -> bool:
        return self._session(handle).cancel()

    def get_state(self, handle: SessionHandle | str) -> SessionState:
        return self._session(handle).state

    def get_progress(self, handle: SessionHandle | str) -> ScanProgress:
        return self._session(handle).progress()

    def get_result(self, handle: SessionHandle | str) -> ScanResult | None:
        """Return the result, or None while scanning, after cancellation or once superseded."""
        return self._session(handle).result()

    def wait(self, handle: SessionHandle | str, timeout: float | None = None) -> SessionState:
        session = self._session(handle)
        session.wait(timeout)
        return session.state

    def selection_size(self, paths: Iterable[str | os.PathLike]) -> int:
        """Total recorded size of the selected items of the current result."""
        wanted = {os.fspath(p) for p in paths}
        result = self._current.result() if self._current else None
        if result is None:
            return 0
        if result.kind is ScanKind.TRASH:
            return self._trash.aggregate_size(wanted)
        return sum(r.size_bytes for r in result.records() if r.path in wanted)

    # -- deletion --

    def cancel_deletion(self) -> None:
        """Stop the running deletion batch before its next item."""
        self._deletion_cancel.set()

    def request_deletion(
        self,
        paths: Iterable[str | os.PathLike],
        *,
        permanent: bool | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> DeletionOutcome:
        """Delete the selected paths of the current scan result.

        Items are moved to the trash unless *permanent* (or the
        ``delete.permanent`` setting) asks otherwise.  Items from a trash
        scan are always deleted permanently.  If a selection covers every
        member of a duplicate group, the kept copy is left in place.

        Raises:
            InvalidSelection: A path is not part of the current result.
                Nothing is deleted.
        """
        selection = {os.fspath(p) for p in paths}
        if not selection:
            return DeletionOutcome()

        with self._delete_lock:
            session = self._current
            result = session.result() if session else None
            if result is None:
                raise InvalidSelection(selection)

            ordered = [r for r in result.records() if r.path in selection]
            unknown = selection - {r.path for r in ordered}
            if unknown:
                raise InvalidSelection(unknown)
            ordered = self._spare_survivors(result, ordered, selection)

            self._deletion_cancel = threading.Event()
            executor = DeletionExecutor(
                self._deletion_mode(result.kind, permanent),
                cancel_event=self._deletion_cancel,
            )
            outcome = executor.delete(ordered, on_progress=on_progress)

            removed = [r.path for r in outcome.results if r.succeeded]
            if removed:
                session.replace_result(result.without(removed))
                if result.kind is ScanKind.TRASH and self._trash_root is not None:
                    self._trash.remove_info(removed)
                    self._trash.list(self._trash_root)
            return outcome

    def _deletion_mode(self, kind: ScanKind, permanent: bool | None) -> DeletionMode:
        if kind is ScanKind.TRASH:
            if permanent is False:
                log.debug("Items already in the trash are always deleted permanently")
            return DeletionMode.PERMANENT
        if permanent is None:
            permanent = self.config.permanent_delete
        return DeletionMode.PERMANENT if permanent else DeletionMode.TRASH

    @staticmethod
    def _spare_survivors(
        result: ScanResult,
        ordered: list[FileRecord],
        selection: set[str],
    ) -> list[FileRecord]:
        """Drop the kept copy of any duplicate group selected in full."""
        spared: set[str] = set()
        for group in result.duplicate_groups:
            if all(r.path in selection for r in group.members):
                log.warning("Whole duplicate group selected, keeping %s", group.kept.path)
                spared.add(group.kept.path)
        return [r for r in ordered if r.path not in spared]
