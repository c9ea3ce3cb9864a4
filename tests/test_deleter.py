"""Tests for the deletion executor."""

from __future__ import annotations

import os
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

import reclaim.core.deleter as deleter
from reclaim.core.deleter import DeletionExecutor, DeletionMode, move_to_trash, permanently_delete
from reclaim.models.deletion_outcome import ErrorKind
from reclaim.models.file_record import FileRecord

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


def _record(path: Path, size: int, is_directory: bool = False) -> FileRecord:
    return FileRecord(str(path), size, is_directory, _EPOCH)


class TestRemovers:
    def test_permanently_delete_file(self, tmp_path, write_file):
        path = write_file(tmp_path / "f")
        permanently_delete(str(path))
        assert not path.exists()

    def test_permanently_delete_directory_tree(self, tmp_path, write_file):
        write_file(tmp_path / "d" / "sub" / "f")
        permanently_delete(str(tmp_path / "d"))
        assert not (tmp_path / "d").exists()

    def test_permanently_delete_symlink_keeps_target(self, tmp_path, write_file):
        target = write_file(tmp_path / "target" / "f")
        os.symlink(tmp_path / "target", tmp_path / "link")
        permanently_delete(str(tmp_path / "link"))
        assert target.exists()
        assert not os.path.lexists(tmp_path / "link")

    def test_move_to_trash_uses_send2trash(self, tmp_path, write_file, monkeypatch):
        path = write_file(tmp_path / "f")
        trashed = []
        monkeypatch.setattr(deleter, "send2trash", trashed.append)
        move_to_trash(str(path))
        assert trashed == [str(path)]

    def test_move_to_trash_missing_path(self, tmp_path, monkeypatch):
        monkeypatch.setattr(deleter, "send2trash", lambda p: pytest.fail("should not be called"))
        with pytest.raises(FileNotFoundError):
            move_to_trash(str(tmp_path / "gone"))


class TestDeletionExecutor:
    def test_missing_path_fails_alone(self, tmp_path, write_file):
        p1 = write_file(tmp_path / "p1", b"1" * 10)
        p2 = tmp_path / "p2"
        p3 = write_file(tmp_path / "p3", b"3" * 30)
        progress = []

        outcome = DeletionExecutor(DeletionMode.PERMANENT).delete(
            [_record(p1, 10), _record(p2, 20), _record(p3, 30)],
            on_progress=lambda done, total: progress.append((done, total)),
        )

        assert outcome.attempted == 3
        assert outcome.succeeded == 2
        assert outcome.bytes_freed == 40
        assert [r.path for r in outcome.failed] == [str(p2)]
        assert outcome.failed[0].error_kind is ErrorKind.PATH_GONE_RACE
        assert progress[-1] == (3, 3)
        assert not p1.exists() and not p3.exists()

    def test_results_in_processing_order(self, tmp_path, write_file):
        paths = [write_file(tmp_path / name) for name in ("c", "a", "b")]
        outcome = DeletionExecutor(DeletionMode.PERMANENT).delete([_record(p, 1) for p in paths])
        assert [r.path for r in outcome.results] == [str(p) for p in paths]

    def test_os_error_is_deletion_failed(self, tmp_path):
        def refuse(path: str) -> None:
            raise PermissionError(13, "Operation not permitted", path)

        outcome = DeletionExecutor(remover=refuse).delete([_record(tmp_path / "x", 5)])
        assert outcome.succeeded == 0
        assert outcome.bytes_freed == 0
        assert outcome.results[0].error_kind is ErrorKind.DELETION_FAILED
        assert outcome.errors == [f"{tmp_path / 'x'}: Operation not permitted"]

    def test_only_given_records_touched(self, tmp_path, write_file):
        keep = write_file(tmp_path / "keep")
        drop = write_file(tmp_path / "drop")
        DeletionExecutor(DeletionMode.PERMANENT).delete([_record(drop, 1)])
        assert keep.exists()
        assert not drop.exists()

    def test_trash_mode_uses_send2trash(self, tmp_path, write_file, monkeypatch):
        path = write_file(tmp_path / "f", b"abc")
        trashed = []
        monkeypatch.setattr(deleter, "send2trash", trashed.append)
        outcome = DeletionExecutor(DeletionMode.TRASH).delete([_record(path, 3)])
        assert trashed == [str(path)]
        assert outcome.bytes_freed == 3

    def test_cancel_stops_before_next_item(self, tmp_path):
        cancel = threading.Event()
        removed = []

        def remove(path: str) -> None:
            removed.append(path)
            cancel.set()

        records = [_record(tmp_path / str(i), 1) for i in range(3)]
        outcome = DeletionExecutor(cancel_event=cancel, remover=remove).delete(records)
        assert removed == [str(tmp_path / "0")]
        assert outcome.cancelled
        assert outcome.attempted == 1

    def test_concurrent_batch_rejected(self, tmp_path):
        started = threading.Event()
        release = threading.Event()

        def slow(path: str) -> None:
            started.set()
            release.wait(5)

        executor = DeletionExecutor(remover=slow)
        worker = threading.Thread(target=executor.delete, args=([_record(tmp_path / "a", 1)],))
        worker.start()
        try:
            assert started.wait(5)
            with pytest.raises(RuntimeError):
                executor.delete([_record(tmp_path / "b", 1)])
        finally:
            release.set()
            worker.join(5)

    def test_failing_progress_callback_does_not_abort(self, tmp_path, write_file):
        path = write_file(tmp_path / "f")

        def explode(done: int, total: int) -> None:
            raise RuntimeError("ui gone")

        outcome = DeletionExecutor(DeletionMode.PERMANENT).delete([_record(path, 1)], on_progress=explode)
        assert outcome.succeeded == 1

    def test_empty_batch(self):
        outcome = DeletionExecutor().delete([])
        assert outcome.attempted == 0
        assert outcome.bytes_freed == 0
