"""Tests for junk scanning."""

from __future__ import annotations

import threading

from reclaim.core.junk import JunkScanner
from reclaim.models.scan_result import Category


class TestJunkScanner:
    def test_finds_classified_items(self, junk_tree, classifier):
        items = JunkScanner(classifier).scan([junk_tree / "cache", junk_tree / "logs"])
        found = {i.record.path: i.category for i in items}
        assert found == {
            str(junk_tree / "cache" / "app" / "blob.bin"): Category.CACHE,
            str(junk_tree / "cache" / "app" / "index.db"): Category.CACHE,
            str(junk_tree / "logs" / "app.log"): Category.LOG,
        }
        assert not any(i.selected for i in items)

    def test_never_reports_outside_roots(self, junk_tree, classifier, tmp_path):
        items = JunkScanner(classifier, include_unclassified=True).scan([junk_tree / "logs"])
        roots = str(junk_tree / "logs")
        assert items
        assert all(i.record.path.startswith(roots) for i in items)
        assert not any("documents" in i.record.path for i in items)

    def test_empty_files_ignored(self, junk_tree, classifier):
        items = JunkScanner(classifier).scan([junk_tree / "cache"])
        assert str(junk_tree / "cache" / "empty.tmp") not in {i.record.path for i in items}

    def test_protected_paths_excluded(self, junk_tree, classifier, write_file):
        write_file(junk_tree / "cache" / "fontconfig" / "fonts.cache-8", b"f" * 64)
        items = JunkScanner(classifier).scan([junk_tree / "cache"])
        assert not any("fontconfig" in i.record.path for i in items)

    def test_unclassified_dropped_unless_requested(self, tmp_path, classifier, write_file):
        write_file(tmp_path / "misc" / "stuff.bin", b"m" * 10)
        assert JunkScanner(classifier).scan([tmp_path / "misc"]) == []

        items = JunkScanner(classifier, include_unclassified=True).scan([tmp_path / "misc"])
        assert [i.category for i in items] == [Category.OTHER]

    def test_on_item_called_per_item(self, junk_tree, classifier):
        seen = []
        items = JunkScanner(classifier).scan([junk_tree], on_item=seen.append)
        assert seen == items

    def test_overlapping_roots_report_once(self, junk_tree, classifier):
        items = JunkScanner(classifier).scan([junk_tree / "cache", junk_tree / "cache" / "app"])
        paths = [i.record.path for i in items]
        assert len(paths) == len(set(paths)) == 2

    def test_cancelled_scan_returns_early(self, junk_tree, classifier):
        cancel = threading.Event()
        cancel.set()
        assert JunkScanner(classifier, cancel_event=cancel).scan([junk_tree]) == []
