"""Flat listings of a folder's children and of installed application bundles."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from reclaim.models.file_record import FileRecord
from reclaim.utils import tree_size

log = logging.getLogger(__name__)

_APP_EXTENSION = ".app"


def app_dirs() -> list[Path]:
    """Directories searched for application bundles."""
    return [Path("/Applications"), Path.home() / "Applications"]


def _entry_record(entry: os.DirEntry) -> FileRecord:
    st = entry.stat(follow_symlinks=False)
    is_dir = entry.is_dir(follow_symlinks=False)
    return FileRecord(
        path=entry.path,
        size_bytes=tree_size(entry.path) if is_dir else st.st_size,
        is_directory=is_dir,
        modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
    )


def folder_contents(path: str | os.PathLike, skip_hidden: bool = True) -> list[FileRecord]:
    """List the direct children of *path*, largest first.

    Directories carry the total size of everything beneath them.  Entries
    that cannot be read are left out.

    Raises:
        OSError: *path* itself cannot be read.
    """
    records: list[FileRecord] = []
    with os.scandir(path) as it:
        entries = list(it)
    for entry in entries:
        if skip_hidden and entry.name.startswith("."):
            continue
        try:
            records.append(_entry_record(entry))
        except OSError as e:
            log.debug("Cannot access %s: %s", entry.path, e)
    records.sort(key=lambda r: (-r.size_bytes, r.path))
    return records


def installed_apps(search_dirs: Iterable[str | os.PathLike] | None = None) -> list[FileRecord]:
    """Find ``.app`` bundles directly inside *search_dirs*, sorted by name.

    Missing or unreadable search directories are skipped.
    """
    apps: list[FileRecord] = []
    for directory in search_dirs if search_dirs is not None else app_dirs():
        try:
            with os.scandir(directory) as it:
                entries = [e for e in it if os.path.splitext(e.name)[1].lower() == _APP_EXTENSION]
        except OSError as e:
            log.debug("Skipping application folder %s: %s", directory, e)
            continue
        for entry in entries:
            try:
                if entry.is_dir(follow_symlinks=False):
                    apps.append(_entry_record(entry))
            except OSError as e:
                log.debug("Cannot access %s: %s", entry.path, e)
    apps.sort(key=lambda r: (os.path.basename(r.path).lower(), r.path))
    return apps
