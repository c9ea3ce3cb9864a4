"""Conversion of engine objects to JSON-ready dicts."""

from __future__ import annotations

from typing import Any

from reclaim.models.deletion_outcome import DeletionOutcome
from reclaim.models.file_record import FileRecord
from reclaim.models.progress import ScanProgress
from reclaim.models.scan_result import ScanResult


def record_to_dict(record: FileRecord) -> dict[str, Any]:
    return {
        "path": record.path,
        "size_bytes": record.size_bytes,
        "is_directory": record.is_directory,
        "modified_at": record.modified_at.isoformat(),
    }


def progress_to_dict(progress: ScanProgress) -> dict[str, Any]:
    return {
        "items_found": progress.items_found,
        "bytes_found": progress.bytes_found,
        "items_hashed": progress.items_hashed,
        "skipped": progress.skipped,
        "phase": progress.phase.value,
    }


def result_to_dict(result: ScanResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "kind": result.kind.value,
        "total_bytes": result.total_bytes,
        "reclaimable_bytes": result.reclaimable_bytes,
        "skipped": [
            {"path": s.path, "kind": s.kind.value, "reason": s.reason} for s in result.skipped
        ],
    }
    if result.duplicate_groups:
        data["duplicate_groups"] = [
            {
                "size_bytes": g.key.size_bytes,
                "digest": g.key.hexdigest,
                "kept": g.kept.path,
                "members": [record_to_dict(r) for r in g.members],
            }
            for g in result.duplicate_groups
        ]
    if result.junk_items:
        data["junk_items"] = [
            {**record_to_dict(i.record), "category": i.category.value, "selected": i.selected}
            for i in result.junk_items
        ]
    if result.trash_items:
        data["trash_items"] = [record_to_dict(i.record) for i in result.trash_items]
    return data


def outcome_to_dict(outcome: DeletionOutcome) -> dict[str, Any]:
    return {
        "attempted": outcome.attempted,
        "succeeded": outcome.succeeded,
        "bytes_freed": outcome.bytes_freed,
        "cancelled": outcome.cancelled,
        "results": [
            {
                "path": r.path,
                "succeeded": r.succeeded,
                "error_kind": r.error_kind.value if r.error_kind else None,
                "message": r.message,
            }
            for r in outcome.results
        ],
    }
