"""Maps paths to junk categories.

Classification is a pure function of the path string and the directory
flag.  A path is junk only if it lies under an explicitly listed root;
anything else is ``OTHER``.  Protected locations win over every root.
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from reclaim.models.scan_result import Category
from reclaim.utils import is_within, xdg_cache_home, xdg_state_home

log = logging.getLogger(__name__)

# Operating system installation directories.
SYSTEM_PROTECTED = (
    "/System",
    "/bin",
    "/boot",
    "/etc",
    "/lib",
    "/lib64",
    "/private/var/db",
    "/sbin",
    "/usr",
)

# Cache directories actively used by running desktop applications.
_IN_USE_CACHE_DIRS = (
    "fontconfig",
    "icon-cache.kcache",
    "gstreamer-1.0",
    "babl",
    "gegl-0.4",
)

JUNK_CATEGORIES = (Category.CACHE, Category.LOG, Category.DERIVED_DATA)


@dataclass(frozen=True, slots=True)
class JunkRoot:
    """An allow-listed directory and the category of everything beneath it."""

    path: str
    category: Category


def default_junk_roots() -> list[JunkRoot]:
    """Return the built-in allow-list for the current user."""
    home = Path.home()
    library = home / "Library"
    return [
        JunkRoot(str(xdg_cache_home()), Category.CACHE),
        JunkRoot(str(library / "Caches"), Category.CACHE),
        JunkRoot(str(library / "Logs"), Category.LOG),
        JunkRoot(str(xdg_state_home() / "log"), Category.LOG),
        JunkRoot(str(library / "Developer" / "Xcode" / "DerivedData"), Category.DERIVED_DATA),
    ]


def default_protected_paths() -> list[str]:
    """Return the paths that must never be reported as junk."""
    package_dir = Path(__file__).resolve().parent.parent
    paths = list(SYSTEM_PROTECTED)
    paths.extend({sys.prefix, sys.base_prefix, str(package_dir)})
    paths.extend(str(xdg_cache_home() / name) for name in _IN_USE_CACHE_DIRS)
    return paths


class PathClassifier:
    """Assigns a ``Category`` to a path.

    Args:
        roots: Allow-listed junk roots.  When roots nest, the deepest wins.
        protected: Locations that are never junk, regardless of roots.
    """

    def __init__(self, roots: Iterable[JunkRoot], protected: Iterable[str] = ()) -> None:
        self.roots = sorted(
            (JunkRoot(os.path.normpath(r.path), r.category) for r in roots),
            key=lambda r: len(r.path),
            reverse=True,
        )
        for root in self.roots:
            if root.category not in JUNK_CATEGORIES:
                raise ValueError(f"Junk root {root.path} has non-junk category {root.category.value}")
        self.protected = [os.path.normpath(p) for p in protected]

    @classmethod
    def default(cls, extra_roots: Iterable[JunkRoot] = ()) -> PathClassifier:
        return cls([*default_junk_roots(), *extra_roots], default_protected_paths())

    def is_protected(self, path: str, is_directory: bool = False) -> bool:
        """Check whether *path* is, or (for a directory) contains, a protected location."""
        if any(is_within(path, p) for p in self.protected):
            return True
        return is_directory and any(is_within(p, path) for p in self.protected)

    def root_for(self, path: str) -> JunkRoot | None:
        """Return the deepest allow-listed root containing *path*."""
        for root in self.roots:
            if is_within(path, root.path):
                return root
        return None

    def classify(self, path: str, is_directory: bool = False) -> Category:
        path = os.path.normpath(path)
        if self.is_protected(path, is_directory):
            return Category.PROTECTED
        root = self.root_for(path)
        return root.category if root else Category.OTHER
