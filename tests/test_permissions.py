"""Tests for permission gates."""

from __future__ import annotations

import pytest

import reclaim.core.permissions as permissions
from reclaim.core.errors import PermissionDenied
from reclaim.core.permissions import (
    Capability,
    FilesystemPermissionGate,
    StaticPermissionGate,
    require,
)
from reclaim.models.deletion_outcome import ErrorKind


class TestStaticPermissionGate:
    def test_grants_everything_by_default(self):
        gate = StaticPermissionGate()
        assert all(gate.is_authorized(c) for c in Capability)

    def test_only_listed_capabilities(self):
        gate = StaticPermissionGate([Capability.TRASH_ACCESS])
        assert gate.is_authorized(Capability.TRASH_ACCESS)
        assert not gate.is_authorized(Capability.FULL_DISK_ACCESS)


class TestRequire:
    def test_passes_when_granted(self):
        require(StaticPermissionGate(), Capability.FULL_DISK_ACCESS)

    def test_raises_permission_denied(self):
        with pytest.raises(PermissionDenied) as exc_info:
            require(StaticPermissionGate([]), Capability.FULL_DISK_ACCESS)
        assert exc_info.value.kind is ErrorKind.PERMISSION_DENIED
        assert exc_info.value.capability == "full_disk_access"


class TestFilesystemPermissionGate:
    def test_missing_probe_does_not_deny(self, tmp_path, monkeypatch):
        monkeypatch.setattr(permissions, "is_root", lambda: False)
        gate = FilesystemPermissionGate({Capability.TRASH_ACCESS: [tmp_path / "absent"]})
        assert gate.is_authorized(Capability.TRASH_ACCESS)

    def test_unlistable_probe_denies(self, tmp_path, monkeypatch):
        monkeypatch.setattr(permissions, "is_root", lambda: False)
        monkeypatch.setattr(permissions.os, "access", lambda path, mode: False)
        gate = FilesystemPermissionGate({Capability.FULL_DISK_ACCESS: [tmp_path]})
        assert not gate.is_authorized(Capability.FULL_DISK_ACCESS)

    def test_root_always_authorized(self, tmp_path, monkeypatch):
        monkeypatch.setattr(permissions, "is_root", lambda: True)
        monkeypatch.setattr(permissions.os, "access", lambda path, mode: False)
        gate = FilesystemPermissionGate({Capability.FULL_DISK_ACCESS: [tmp_path]})
        assert gate.is_authorized(Capability.FULL_DISK_ACCESS)

    def test_no_probes_means_granted(self, monkeypatch):
        monkeypatch.setattr(permissions, "is_root", lambda: False)
        assert FilesystemPermissionGate().is_authorized(Capability.FULL_DISK_ACCESS)
