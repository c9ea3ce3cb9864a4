"""Shared utility functions."""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

log = logging.getLogger(__name__)


def xdg_cache_home() -> Path:
    """Return XDG_CACHE_HOME, defaulting to ~/.cache."""
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache"))


def xdg_config_home() -> Path:
    """Return XDG_CONFIG_HOME, defaulting to ~/.config."""
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))


def xdg_data_home() -> Path:
    """Return XDG_DATA_HOME, defaulting to ~/.local/share."""
    return Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local" / "share"))


def xdg_state_home() -> Path:
    """Return XDG_STATE_HOME, defaulting to ~/.local/state."""
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local" / "state"))


def default_trash_dir() -> Path:
    """Return the directory holding trashed items.

    ``~/.Trash`` on macOS, the freedesktop ``Trash/files`` directory elsewhere.
    """
    mac_trash = Path.home() / ".Trash"
    if mac_trash.is_dir():
        return mac_trash
    return xdg_data_home() / "Trash" / "files"


def is_within(path: str, root: str) -> bool:
    """Check whether *path* equals *root* or lies beneath it (pure string test)."""
    path = os.path.normpath(path)
    root = os.path.normpath(root)
    if path == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return path.startswith(prefix)


def tree_size(path: Path | str) -> int:
    """Total size in bytes of the regular files below *path*.

    Bundles and trashed folders are sized as one unit.  GNU ``find`` does
    the walk when it is usable; otherwise the tree is read with scandir.
    Unreadable subdirectories count as empty.
    """
    try:
        return _tree_size_find(os.fspath(path))
    except (OSError, ValueError, subprocess.SubprocessError) as e:
        log.debug("find unusable for %s (%s), sizing with scandir", path, e)
        return _tree_size_scandir(path)


def _tree_size_find(path_str: str) -> int:
    proc = subprocess.run(
        ["find", path_str, "-type", "f", "-printf", "%s\n"],
        capture_output=True, timeout=60,
    )
    # BSD find has no -printf; a non-zero exit with no output means find is unusable here
    if proc.returncode != 0 and not proc.stdout:
        raise OSError(f"find failed on {path_str}: {proc.stderr.decode(errors='replace').strip()}")
    return sum(int(line) for line in proc.stdout.splitlines() if line)


def _tree_size_scandir(path: Path | str) -> int:
    size = 0
    pending: list[Path | str] = [path]
    while pending:
        directory = pending.pop()
        try:
            with os.scandir(directory) as it:
                for entry in it:
                    try:
                        if entry.is_dir(follow_symlinks=False):
                            pending.append(entry.path)
                        elif entry.is_file(follow_symlinks=False):
                            size += entry.stat(follow_symlinks=False).st_size
                    except OSError:
                        log.debug("Cannot stat: %s", entry.path)
        except OSError:
            log.debug("Cannot read directory: %s", directory)
    return size


def bytes_to_human(size_bytes: int) -> str:
    """Convert byte count to a human-readable string."""
    if size_bytes < 0:
        return f"-{bytes_to_human(-size_bytes)}"
    if size_bytes == 0:
        return "0 B"

    units = ("B", "KB", "MB", "GB", "TB")
    value = float(size_bytes)
    for unit in units[:-1]:
        if abs(value) < 1024:
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} {units[-1]}"


def format_elapsed(seconds: float) -> str:
    """Format an elapsed time as a human-readable string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f} ms"
    if seconds < 60:
        return f"{seconds:.1f}s"
    minutes = int(seconds) // 60
    secs = seconds - minutes * 60
    return f"{minutes}m {secs:.0f}s"
