"""Tests for chunked content hashing."""

from __future__ import annotations

import hashlib

import pytest

from reclaim.core.errors import ReadFailure
from reclaim.core.hasher import ContentHasher
from reclaim.models.deletion_outcome import ErrorKind


class TestContentHasher:
    def test_matches_hashlib(self, tmp_path, write_file):
        data = b"reclaim" * 1000
        path = write_file(tmp_path / "f.bin", data)
        assert ContentHasher().hash(path) == hashlib.sha256(data).digest()

    def test_small_chunks_give_same_digest(self, tmp_path, write_file):
        data = bytes(range(256)) * 40
        path = write_file(tmp_path / "f.bin", data)
        assert ContentHasher(chunk_size=7).hash(path) == ContentHasher().hash(path)

    def test_equal_content_equal_digest(self, tmp_path, write_file):
        a = write_file(tmp_path / "a", b"same")
        b = write_file(tmp_path / "b", b"same")
        c = write_file(tmp_path / "c", b"diff")
        hasher = ContentHasher()
        assert hasher.hash(a) == hasher.hash(b)
        assert hasher.hash(a) != hasher.hash(c)

    def test_missing_file_is_gone_race(self, tmp_path):
        with pytest.raises(ReadFailure) as exc_info:
            ContentHasher().hash(tmp_path / "vanished")
        assert exc_info.value.kind is ErrorKind.PATH_GONE_RACE

    def test_size_change_is_gone_race(self, tmp_path, write_file):
        path = write_file(tmp_path / "growing.log", b"12345")
        with pytest.raises(ReadFailure) as exc_info:
            ContentHasher().hash(path, expected_size=3)
        assert exc_info.value.kind is ErrorKind.PATH_GONE_RACE
        assert "size changed" in exc_info.value.reason

    def test_unreadable_file(self, tmp_path, monkeypatch):
        def deny(*args, **kwargs):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr("reclaim.core.hasher.open", deny, raising=False)
        with pytest.raises(ReadFailure) as exc_info:
            ContentHasher().hash(tmp_path / "secret")
        assert exc_info.value.kind is ErrorKind.PATH_UNREADABLE

    def test_unknown_algorithm_rejected(self):
        with pytest.raises(ValueError):
            ContentHasher(algorithm="not-a-hash")
