"""JSON-backed settings and the engine configuration derived from them."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from reclaim.core.classifier import JunkRoot
from reclaim.core.grouper import VerifyMode
from reclaim.core.walker import WalkOptions
from reclaim.models.scan_result import Category
from reclaim.utils import xdg_config_home

log = logging.getLogger(__name__)

_SETTINGS_DIR = "reclaim"
_SETTINGS_FILE = "settings.json"


class Settings:
    """Persistent settings backed by a JSON file.

    Uses dot-notation keys for nested access:
        settings.get("scan.hash_workers")  # reads data["scan"]["hash_workers"]
        settings.set("scan.hash_workers", 8)  # writes + saves
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _SETTINGS_DIR / _SETTINGS_FILE)
        self._data: dict[str, Any] = {}
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str, default: Any = None) -> Any:
        """Get a value by dot-notation key."""
        parts = key.split(".")
        node: Any = self._data
        for part in parts:
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a value by dot-notation key and persist to disk."""
        parts = key.split(".")
        node = self._data
        for part in parts[:-1]:
            if part not in node or not isinstance(node[part], dict):
                node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        self._save()

    def _load(self) -> None:
        """Load settings from disk, gracefully handling errors."""
        if not self._path.exists():
            return
        try:
            self._data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load settings from %s: %s", self._path, e)
            self._data = {}
        if not isinstance(self._data, dict):
            log.warning("Ignoring settings in %s: top level is not an object", self._path)
            self._data = {}

    def _save(self) -> None:
        """Persist settings to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(self._data, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save settings to %s: %s", self._path, e)


@dataclass(slots=True)
class EngineConfig:
    """Tunables for scans and deletions."""

    walk_workers: int = 4
    hash_workers: int = 4
    skip_hidden: bool = True
    skip_packages: bool = True
    follow_symlinks: bool = False
    verify: VerifyMode = VerifyMode.HASH
    extra_junk_roots: list[JunkRoot] = field(default_factory=list)
    include_unclassified: bool = False
    permanent_delete: bool = False

    @property
    def walk_options(self) -> WalkOptions:
        return WalkOptions(
            skip_hidden=self.skip_hidden,
            skip_packages=self.skip_packages,
            follow_symlinks=self.follow_symlinks,
            max_workers=self.walk_workers,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> EngineConfig:
        """Build a config, falling back to defaults for malformed values."""
        defaults = cls()
        return cls(
            walk_workers=_positive_int(settings, "scan.walk_workers", defaults.walk_workers),
            hash_workers=_positive_int(settings, "scan.hash_workers", defaults.hash_workers),
            skip_hidden=_bool(settings, "scan.skip_hidden", defaults.skip_hidden),
            skip_packages=_bool(settings, "scan.skip_packages", defaults.skip_packages),
            follow_symlinks=_bool(settings, "scan.follow_symlinks", defaults.follow_symlinks),
            verify=_verify_mode(settings, "scan.verify_content", defaults.verify),
            extra_junk_roots=_junk_roots(settings, "junk.roots"),
            include_unclassified=_bool(settings, "junk.include_unclassified", defaults.include_unclassified),
            permanent_delete=_bool(settings, "delete.permanent", defaults.permanent_delete),
        )


def _positive_int(settings: Settings, key: str, default: int) -> int:
    value = settings.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        log.warning("Invalid value for %s: %r, using %d", key, value, default)
        return default
    return value


def _bool(settings: Settings, key: str, default: bool) -> bool:
    value = settings.get(key, default)
    if not isinstance(value, bool):
        log.warning("Invalid value for %s: %r, using %s", key, value, default)
        return default
    return value


def _verify_mode(settings: Settings, key: str, default: VerifyMode) -> VerifyMode:
    value = settings.get(key, default.value)
    try:
        return VerifyMode(value)
    except ValueError:
        log.warning("Invalid value for %s: %r, using %s", key, value, default.value)
        return default


def _junk_roots(settings: Settings, key: str) -> list[JunkRoot]:
    value = settings.get(key, [])
    if not isinstance(value, list):
        log.warning("Invalid value for %s: %r, expected a list", key, value)
        return []
    roots: list[JunkRoot] = []
    for raw in value:
        try:
            path = Path(raw["path"]).expanduser()
            category = Category(raw.get("category", Category.CACHE.value))
        except (KeyError, TypeError, ValueError, AttributeError):
            log.warning("Ignoring malformed junk root in settings: %r", raw)
            continue
        if category not in (Category.CACHE, Category.LOG, Category.DERIVED_DATA):
            log.warning("Ignoring junk root %s with non-junk category %s", path, category.value)
            continue
        roots.append(JunkRoot(str(path), category))
    return roots
