"""Shared test fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from reclaim.core.classifier import JunkRoot, PathClassifier
from reclaim.core.engine import ReclaimEngine
from reclaim.core.permissions import StaticPermissionGate
from reclaim.models.scan_result import Category
from reclaim.settings import EngineConfig


@pytest.fixture(autouse=True)
def isolate_home(tmp_path, monkeypatch):
    """Point HOME and the XDG directories into a temp directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CACHE_HOME", str(home / ".cache"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(home / ".local" / "share"))
    monkeypatch.setenv("XDG_STATE_HOME", str(home / ".local" / "state"))
    return home


@pytest.fixture
def write_file():
    """Create a file with the given content and optional mtime."""

    def _write(path: Path, content: bytes = b"x", mtime: float | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        if mtime is not None:
            os.utime(path, (mtime, mtime))
        return path

    return _write


@pytest.fixture
def junk_tree(tmp_path, write_file):
    """A cache root and a log root with a few files each, plus an unrelated directory."""
    cache = tmp_path / "junk" / "cache"
    logs = tmp_path / "junk" / "logs"
    write_file(cache / "app" / "blob.bin", b"c" * 100)
    write_file(cache / "app" / "index.db", b"i" * 50)
    write_file(cache / "empty.tmp", b"")
    write_file(logs / "app.log", b"l" * 30)
    write_file(tmp_path / "documents" / "thesis.txt", b"keep me")
    return tmp_path / "junk"


@pytest.fixture
def classifier(junk_tree):
    return PathClassifier(
        [
            JunkRoot(str(junk_tree / "cache"), Category.CACHE),
            JunkRoot(str(junk_tree / "logs"), Category.LOG),
        ],
        protected=[str(junk_tree / "cache" / "fontconfig")],
    )


@pytest.fixture
def engine(classifier):
    return ReclaimEngine(StaticPermissionGate(), EngineConfig(permanent_delete=True), classifier=classifier)
