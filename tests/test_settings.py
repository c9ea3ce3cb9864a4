"""Tests for settings and engine configuration."""

from __future__ import annotations

import json

from reclaim.core.grouper import VerifyMode
from reclaim.models.scan_result import Category
from reclaim.settings import EngineConfig, Settings


def _settings(tmp_path, data) -> Settings:
    path = tmp_path / "settings.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return Settings(path)


class TestSettings:
    def test_default_location(self, isolate_home):
        assert Settings().path == isolate_home / ".config" / "reclaim" / "settings.json"

    def test_get_with_dot_keys(self, tmp_path):
        settings = _settings(tmp_path, {"scan": {"hash_workers": 8}})
        assert settings.get("scan.hash_workers") == 8
        assert settings.get("scan.missing", "fallback") == "fallback"
        assert settings.get("scan.hash_workers.deeper") is None

    def test_set_persists(self, tmp_path):
        path = tmp_path / "nested" / "settings.json"
        Settings(path).set("delete.permanent", True)
        assert json.loads(path.read_text())["delete"]["permanent"] is True
        assert Settings(path).get("delete.permanent") is True

    def test_corrupt_file_ignored(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{not json", encoding="utf-8")
        assert Settings(path).get("scan.walk_workers") is None

    def test_non_object_top_level_ignored(self, tmp_path):
        assert _settings(tmp_path, [1, 2, 3]).get("scan") is None


class TestEngineConfig:
    def test_defaults_without_file(self, tmp_path):
        config = EngineConfig.from_settings(Settings(tmp_path / "absent.json"))
        assert config == EngineConfig()
        assert config.walk_options.skip_hidden
        assert config.verify is VerifyMode.HASH

    def test_values_read(self, tmp_path):
        settings = _settings(tmp_path, {
            "scan": {
                "walk_workers": 2,
                "hash_workers": 6,
                "skip_hidden": False,
                "follow_symlinks": True,
                "verify_content": "bytes",
            },
            "junk": {
                "roots": [{"path": "~/build-cache", "category": "derived_data"}],
                "include_unclassified": True,
            },
            "delete": {"permanent": True},
        })
        config = EngineConfig.from_settings(settings)
        assert config.walk_options.max_workers == 2
        assert config.hash_workers == 6
        assert not config.skip_hidden
        assert config.follow_symlinks
        assert config.verify is VerifyMode.BYTES
        assert config.include_unclassified
        assert config.permanent_delete
        assert len(config.extra_junk_roots) == 1
        assert config.extra_junk_roots[0].path.endswith("build-cache")
        assert config.extra_junk_roots[0].category is Category.DERIVED_DATA

    def test_invalid_values_fall_back(self, tmp_path):
        settings = _settings(tmp_path, {
            "scan": {"walk_workers": 0, "hash_workers": "many", "skip_hidden": "yes", "verify_content": "md5"},
        })
        config = EngineConfig.from_settings(settings)
        assert config.walk_workers == 4
        assert config.hash_workers == 4
        assert config.skip_hidden is True
        assert config.verify is VerifyMode.HASH

    def test_bad_junk_roots_dropped(self, tmp_path):
        settings = _settings(tmp_path, {
            "junk": {"roots": [
                {"category": "cache"},
                "not-a-dict",
                {"path": "/x", "category": "protected"},
                {"path": "/y", "category": "nonsense"},
                {"path": "/ok"},
            ]},
        })
        roots = EngineConfig.from_settings(settings).extra_junk_roots
        assert [(r.path, r.category) for r in roots] == [("/ok", Category.CACHE)]

        for bad in (5, "~/cache", {"path": "/ok"}, None):
            config = EngineConfig.from_settings(_settings(tmp_path, {"junk": {"roots": bad}}))
            assert config.extra_junk_roots == []
