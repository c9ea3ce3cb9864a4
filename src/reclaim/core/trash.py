"""Trash directory inventory."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable

from reclaim.models.file_record import FileRecord
from reclaim.models.scan_result import TrashItem
from reclaim.utils import tree_size

log = logging.getLogger(__name__)


class TrashInventory:
    """Lists the top level of a trash directory.

    The trash is a flat container: only its direct children are listed.
    Directories are reported with the total size of their contents.
    """

    def __init__(self) -> None:
        self._items: list[TrashItem] = []

    @property
    def items(self) -> list[TrashItem]:
        return list(self._items)

    def list(self, trash_root: Path | str) -> list[TrashItem]:
        """Read *trash_root* and return its items, sorted by name.

        A missing trash directory is treated as empty.
        """
        items: list[TrashItem] = []
        try:
            with os.scandir(trash_root) as it:
                entries = sorted(it, key=lambda e: e.name)
        except FileNotFoundError:
            log.debug("Trash directory does not exist: %s", trash_root)
            entries = []

        for entry in entries:
            if entry.name.startswith("."):
                continue
            try:
                st = entry.stat(follow_symlinks=False)
                is_dir = entry.is_dir(follow_symlinks=False)
                size = tree_size(entry.path) if is_dir else st.st_size
            except OSError:
                log.debug("Cannot access: %s", entry.path)
                continue
            record = FileRecord(
                path=entry.path,
                size_bytes=size,
                is_directory=is_dir,
                modified_at=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
            )
            items.append(TrashItem(record=record))

        self._items = items
        return list(items)

    def remove_info(self, removed: Iterable[str]) -> int:
        """Delete the ``.trashinfo`` files of items removed from a freedesktop trash.

        Items outside a ``Trash/files`` directory have no info file.
        Returns the number of info files deleted.
        """
        count = 0
        for path in removed:
            parent = Path(path).parent
            if parent.name != "files":
                continue
            info = parent.parent / "info" / f"{Path(path).name}.trashinfo"
            try:
                info.unlink()
                count += 1
            except FileNotFoundError:
                continue
            except OSError as e:
                log.warning("Could not remove %s: %s", info, e)
        return count

    def aggregate_size(self, selection: Iterable[str]) -> int:
        """Sum the sizes of listed items whose path is in *selection*."""
        wanted = set(selection)
        return sum(i.record.size_bytes for i in self._items if i.record.path in wanted)
