"""Tests for the D-Bus service deletion path."""

from __future__ import annotations

import asyncio
import json
import threading

from reclaim.dbus_service import ReclaimDBusService
from reclaim.models.deletion_outcome import DeletionOutcome, PathOutcome


class TestRequestDeletion:
    def test_progress_delivered_while_batch_runs(self):
        release = threading.Event()

        async def scenario():
            service = ReclaimDBusService(asyncio.get_running_loop())
            seen: list[tuple[int, int]] = []
            service.DeletionProgress = lambda done, total: seen.append((done, total))

            def slow_delete(paths, *, permanent, on_progress):
                on_progress(1, 2)
                release.wait(5)
                on_progress(2, 2)
                return DeletionOutcome(results=[PathOutcome(p, True) for p in paths], bytes_freed=10)

            service._engine.request_deletion = slow_delete
            task = asyncio.create_task(service._request_deletion(["/a", "/b"], False))
            for _ in range(200):
                await asyncio.sleep(0.01)
                if seen:
                    break
            assert seen == [(1, 2)]
            assert not task.done()

            release.set()
            reply = json.loads(await task)
            await asyncio.sleep(0)
            return seen, reply

        try:
            seen, reply = asyncio.run(scenario())
        finally:
            release.set()
        assert seen == [(1, 2), (2, 2)]
        assert reply["succeeded"] == 2
        assert reply["bytes_freed"] == 10

    def test_invalid_selection_returns_error(self, tmp_path):
        async def scenario():
            service = ReclaimDBusService(asyncio.get_running_loop())
            return json.loads(await service._request_deletion([str(tmp_path / "x")], True))

        reply = asyncio.run(scenario())
        assert reply["kind"] == "invalid_selection"
        assert "error" in reply
