"""D-Bus service for GUI communication.

D-Bus methods use PascalCase per D-Bus convention, and type signatures
like "as" and "(ss)" are D-Bus protocol types, not Python syntax.

Scans run on background threads; clients poll ``GetProgress`` or wait
for the ``ScanFinished`` signal, then fetch ``GetResult``.
"""

from __future__ import annotations

import asyncio
import functools
import json
import logging
from pathlib import Path

from dbus_next.aio import MessageBus
from dbus_next.service import ServiceInterface, method, signal
from dbus_next import BusType

from reclaim.core.engine import ReclaimEngine
from reclaim.core.errors import ReclaimError
from reclaim.core.permissions import Capability, FilesystemPermissionGate
from reclaim.core.session import SessionHandle
from reclaim.models.progress import SessionState
from reclaim.serialize import outcome_to_dict, progress_to_dict, result_to_dict
from reclaim.settings import EngineConfig, Settings
from reclaim.utils import default_trash_dir

log = logging.getLogger(__name__)

_BUS_NAME = "io.github.reclaim"
_OBJECT_PATH = "/io/github/reclaim"
_INTERFACE = "io.github.reclaim.Manager"


def _error(exc: ReclaimError) -> str:
    return json.dumps({"error": str(exc), "kind": exc.kind.value if exc.kind else None})


# noinspection PyPep8Naming,DuplicatedCode
class ReclaimDBusService(ServiceInterface):
    """D-Bus service interface for Reclaim."""

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__(_INTERFACE)
        self._loop = loop
        gate = FilesystemPermissionGate({
            Capability.FULL_DISK_ACCESS: [Path.home() / "Library"],
            Capability.TRASH_ACCESS: [default_trash_dir()],
        })
        self._engine = ReclaimEngine(
            gate,
            EngineConfig.from_settings(Settings()),
            on_session_finished=self._on_session_finished,
        )

    def _on_session_finished(self, handle: SessionHandle, state: SessionState) -> None:
        # Called from the scan thread; signals must be emitted on the bus loop.
        self._loop.call_soon_threadsafe(self.ScanFinished, handle.id, state.value)

    def _start(self, start) -> str:
        try:
            handle = start()
        except ReclaimError as e:
            return _error(e)
        return json.dumps({"handle": handle.id, "kind": handle.kind.value})

    @method()
    def StartDuplicateScan(self, root: "s") -> "s":  # type: ignore[override]
        """Start a duplicate scan of a directory."""
        return self._start(lambda: self._engine.start_duplicate_scan(root))

    @method()
    def StartJunkScan(self, roots: "as") -> "s":  # type: ignore[override]
        """Start a junk scan; an empty list scans the known junk locations."""
        return self._start(lambda: self._engine.start_junk_scan(list(roots) if roots else None))

    @method()
    def StartTrashScan(self, trash_dir: "s") -> "s":  # type: ignore[override]
        """Start listing the trash; an empty string lists the default trash."""
        return self._start(lambda: self._engine.start_trash_scan(trash_dir or None))

    @method()
    def Cancel(self, handle: "s") -> "b":  # type: ignore[override]
        try:
            return self._engine.cancel(handle)
        except ReclaimError:
            return False

    @method()
    def GetProgress(self, handle: "s") -> "s":  # type: ignore[override]
        """Get the progress snapshot and state of a session as JSON."""
        try:
            progress = self._engine.get_progress(handle)
            state = self._engine.get_state(handle)
        except ReclaimError as e:
            return _error(e)
        return json.dumps({**progress_to_dict(progress), "state": state.value})

    @method()
    def GetResult(self, handle: "s") -> "s":  # type: ignore[override]
        """Get the scan result as JSON, or null while it is not available."""
        try:
            result = self._engine.get_result(handle)
        except ReclaimError as e:
            return _error(e)
        return json.dumps(result_to_dict(result) if result else None)

    @method()
    async def RequestDeletion(self, paths: "as", permanent: "b") -> "s":  # type: ignore[override]
        """Delete selected paths of the current result, returning the outcome as JSON."""
        return await self._request_deletion(paths, permanent)

    @method()
    def CancelDeletion(self) -> "b":  # type: ignore[override]
        """Stop a running deletion before its next item."""
        self._engine.cancel_deletion()
        return True

    async def _request_deletion(self, paths: list[str], permanent: bool) -> str:
        # The batch runs on a worker thread so the bus keeps serving
        # GetProgress, CancelDeletion and the DeletionProgress signal.
        def progress(done: int, total: int) -> None:
            self._loop.call_soon_threadsafe(self.DeletionProgress, done, total)

        delete = functools.partial(
            self._engine.request_deletion,
            list(paths),
            permanent=True if permanent else None,
            on_progress=progress,
        )
        try:
            outcome = await self._loop.run_in_executor(None, delete)
        except ReclaimError as e:
            return _error(e)
        return json.dumps(outcome_to_dict(outcome))

    @signal()
    def ScanFinished(self, handle: str, state: str) -> "(ss)":  # type: ignore[override]
        return [handle, state]

    @signal()
    def DeletionProgress(self, done: int, total: int) -> "(uu)":  # type: ignore[override]
        return [done, total]


async def run_service() -> None:
    """Start the D-Bus service."""
    bus = await MessageBus(bus_type=BusType.SESSION).connect()
    service = ReclaimDBusService(asyncio.get_running_loop())
    bus.export(_OBJECT_PATH, service)
    await bus.request_name(_BUS_NAME)
    log.info("D-Bus service started on %s", _BUS_NAME)
    await bus.wait_for_disconnect()


def start_service() -> None:
    """Entry point to start the D-Bus service."""
    asyncio.run(run_service())
