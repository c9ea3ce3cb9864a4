"""Junk file scanning over configured cache/log roots."""

from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Iterable

from reclaim.core.classifier import PathClassifier
from reclaim.core.walker import DirectoryWalker, SkippedCallback, WalkOptions, collapse_roots
from reclaim.models.scan_result import Category, JunkItem
from reclaim.utils import is_within

log = logging.getLogger(__name__)

ItemCallback = Callable[[JunkItem], None]


class JunkScanner:
    """Walks the configured junk roots and classifies what it finds.

    Only the given roots are walked.  Protected paths and empty files are
    dropped.  Paths outside the classifier's allow-list come back as
    ``OTHER`` and are dropped too unless ``include_unclassified`` is set.
    """

    def __init__(
        self,
        classifier: PathClassifier,
        options: WalkOptions | None = None,
        cancel_event: threading.Event | None = None,
        on_skipped: SkippedCallback | None = None,
        include_unclassified: bool = False,
    ) -> None:
        self.classifier = classifier
        self.options = options or WalkOptions()
        self._cancel = cancel_event or threading.Event()
        self._on_skipped = on_skipped
        self.include_unclassified = include_unclassified

    def scan(
        self,
        roots: Iterable[str | os.PathLike],
        on_item: ItemCallback | None = None,
    ) -> list[JunkItem]:
        """Return junk items found under *roots*.

        *on_item* fires once per accepted item as soon as it is found.
        """
        root_list = collapse_roots(roots)
        walker = DirectoryWalker(self.options, cancel_event=self._cancel, on_skipped=self._on_skipped)
        items: list[JunkItem] = []

        for record in walker.walk(root_list):
            if self._cancel.is_set():
                break
            if record.size_bytes <= 0:
                continue
            if not any(is_within(record.path, root) for root in root_list):
                log.warning("Walker returned %s outside the scanned roots, ignoring", record.path)
                continue

            category = self.classifier.classify(record.path, record.is_directory)
            if category is Category.PROTECTED:
                log.debug("Protected, not junk: %s", record.path)
                continue
            if category is Category.OTHER and not self.include_unclassified:
                continue

            item = JunkItem(record=record, category=category)
            items.append(item)
            if on_item:
                on_item(item)

        log.info("Junk scan of %d root(s) found %d items", len(root_list), len(items))
        return items
