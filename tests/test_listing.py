"""Tests for folder and application listings."""

from __future__ import annotations

import pytest

from reclaim.core.listing import app_dirs, folder_contents, installed_apps


class TestFolderContents:
    def test_children_with_recursive_sizes(self, tmp_path, write_file):
        data = tmp_path / "data"
        write_file(data / "small.txt", b"s" * 5)
        write_file(data / "videos" / "a.mp4", b"v" * 300)
        write_file(data / "videos" / "old" / "b.mp4", b"v" * 200)
        write_file(data / "notes.md", b"n" * 40)

        records = folder_contents(data)
        assert [(r.path, r.size_bytes, r.is_directory) for r in records] == [
            (str(data / "videos"), 500, True),
            (str(data / "notes.md"), 40, False),
            (str(data / "small.txt"), 5, False),
        ]

    def test_hidden_entries(self, tmp_path, write_file):
        data = tmp_path / "data"
        write_file(data / ".config" / "x", b"x" * 10)
        write_file(data / "shown", b"s")
        assert [r.path for r in folder_contents(data)] == [str(data / "shown")]
        assert len(folder_contents(data, skip_hidden=False)) == 2

    def test_missing_folder_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            folder_contents(tmp_path / "absent")


class TestInstalledApps:
    def test_finds_bundles_sorted_by_name(self, tmp_path, write_file):
        system = tmp_path / "Applications"
        user = tmp_path / "home-apps"
        write_file(system / "Zed.app" / "Contents" / "MacOS" / "zed", b"z" * 70)
        write_file(user / "editor.APP" / "Contents" / "Info.plist", b"i" * 30)
        write_file(system / "readme.txt", b"r")
        write_file(system / "Fake.app", b"not a bundle")

        apps = installed_apps([system, user, tmp_path / "missing"])
        assert [(r.path, r.size_bytes) for r in apps] == [
            (str(user / "editor.APP"), 30),
            (str(system / "Zed.app"), 70),
        ]
        assert all(r.is_directory for r in apps)

    def test_default_dirs(self, isolate_home):
        assert app_dirs()[-1] == isolate_home / "Applications"
