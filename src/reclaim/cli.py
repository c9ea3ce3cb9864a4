"""CLI interface for Reclaim."""

from __future__ import annotations

import json
import logging
import sys
import time
from collections import defaultdict
from pathlib import Path
from typing import Callable, NoReturn

import click

from reclaim.core.engine import ReclaimEngine
from reclaim.core.errors import ReclaimError
from reclaim.core.grouper import VerifyMode
from reclaim.core.listing import folder_contents, installed_apps
from reclaim.core.permissions import Capability, FilesystemPermissionGate
from reclaim.core.session import SessionHandle
from reclaim.models.deletion_outcome import DeletionOutcome
from reclaim.models.file_record import FileRecord
from reclaim.models.progress import SessionState
from reclaim.models.scan_result import ScanResult
from reclaim.serialize import outcome_to_dict, record_to_dict, result_to_dict
from reclaim.settings import EngineConfig, Settings
from reclaim.utils import bytes_to_human, default_trash_dir, format_elapsed

_POLL_INTERVAL = 0.2


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _build_engine(verify: str | None = None) -> ReclaimEngine:
    config = EngineConfig.from_settings(Settings())
    if verify:
        config.verify = VerifyMode(verify)
    gate = FilesystemPermissionGate({
        Capability.FULL_DISK_ACCESS: [Path.home() / "Library"],
        Capability.TRASH_ACCESS: [default_trash_dir()],
    })
    return ReclaimEngine(gate, config)


def _fail(message: str) -> NoReturn:
    click.echo(click.style(message, fg="red"), err=True)
    sys.exit(1)


def _run_scan(
    engine: ReclaimEngine,
    start: Callable[[], SessionHandle],
    as_json: bool,
) -> ScanResult:
    """Start a scan, show live progress and return its result.

    Ctrl-C cancels the session and exits with status 130.
    """
    try:
        handle = start()
    except ReclaimError as e:
        _fail(str(e))

    started = time.monotonic()
    try:
        while engine.wait(handle, timeout=_POLL_INTERVAL) is SessionState.SCANNING:
            if not as_json:
                p = engine.get_progress(handle)
                click.echo(
                    f"\r  {p.phase.value:8s} {p.items_found:>10,} items  {bytes_to_human(p.bytes_found):>10s}",
                    nl=False,
                    err=True,
                )
    except KeyboardInterrupt:
        engine.cancel(handle)
        engine.wait(handle)
        click.echo("\nCancelled.", err=True)
        sys.exit(130)

    if not as_json:
        click.echo(f"\r{' ' * 50}\r", nl=False, err=True)

    state = engine.get_state(handle)
    result = engine.get_result(handle)
    if state is not SessionState.COMPLETED or result is None:
        _fail(f"Scan ended in state '{state.value}'")

    if not as_json:
        elapsed = format_elapsed(time.monotonic() - started)
        skipped = len(result.skipped)
        skipped_note = f", {skipped} path(s) skipped" if skipped else ""
        click.echo(f"Scan finished in {elapsed}{skipped_note}.\n")
    return result


def _confirm_and_delete(
    engine: ReclaimEngine,
    paths: list[str],
    *,
    yes: bool,
    dry_run: bool,
    as_json: bool,
    permanent: bool | None,
) -> None:
    if not paths:
        if as_json:
            click.echo(json.dumps({"status": "nothing_to_delete"}))
        else:
            click.echo("Nothing to delete.")
        return

    size = engine.selection_size(paths)
    if dry_run:
        if as_json:
            click.echo(json.dumps({"status": "dry_run", "would_free_bytes": size, "paths": paths}, indent=2))
        else:
            click.echo(f"Would delete {len(paths):,} item(s), {bytes_to_human(size)} (dry run, nothing deleted)")
        return

    if not yes and not as_json:
        how = "Permanently delete" if permanent else "Delete"
        if not click.confirm(f"{how} {len(paths):,} item(s) ({bytes_to_human(size)})?", default=False):
            click.echo("Aborted.")
            return

    def on_progress(done: int, total: int) -> None:
        if not as_json:
            click.echo(f"\r  Deleting {done}/{total}", nl=False, err=True)

    outcome = engine.request_deletion(paths, permanent=permanent, on_progress=on_progress)
    _report_deletion(outcome, as_json)


def _report_deletion(outcome: DeletionOutcome, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps({"status": "deleted", **outcome_to_dict(outcome)}, indent=2))
        return

    click.echo(f"\r{' ' * 40}\r", nl=False, err=True)
    for failure in outcome.failed:
        click.echo(f"  {click.style('!', fg='yellow')} {failure.path} — {failure.message}")
    mark = click.style("✓", fg="green") if not outcome.failed else click.style("!", fg="yellow")
    click.echo(
        f"{mark} Deleted {outcome.succeeded} of {outcome.attempted} item(s), "
        f"freed {click.style(bytes_to_human(outcome.bytes_freed), fg='green', bold=True)}"
    )


def _print_sized(records: list[FileRecord]) -> None:
    for record in records:
        kind = "dir " if record.is_directory else "file"
        click.echo(f"  {kind}  {bytes_to_human(record.size_bytes):>10s}  {Path(record.path).name}")
    total = sum(r.size_bytes for r in records)
    click.echo(f"\nTotal: {click.style(bytes_to_human(total), fg='green', bold=True)}\n")


@click.group()
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug)")
def main(verbose: int) -> None:
    """Reclaim — find duplicates, junk and trash, and delete them safely."""
    _setup_logging(verbose)


# ── duplicates ───────────────────────────────────────────────────────────

@main.command()
@click.argument("root", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--verify", type=click.Choice([m.value for m in VerifyMode]), default=None,
              help="Trust SHA-256 equality or confirm byte by byte")
@click.option("--delete", "delete_", is_flag=True, help="Delete every duplicate except the kept copy")
@click.option("--permanent", is_flag=True, help="Delete permanently instead of moving to trash")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def duplicates(
    root: Path,
    verify: str | None,
    delete_: bool,
    permanent: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Find files with identical content under ROOT."""
    engine = _build_engine(verify)
    result = _run_scan(engine, lambda: engine.start_duplicate_scan(root), as_json)

    if as_json and not delete_:
        click.echo(json.dumps(result_to_dict(result), indent=2))
        return

    if not as_json:
        if not result.duplicate_groups:
            click.echo("No duplicates found.")
        for group in result.duplicate_groups:
            click.echo(
                f"{click.style(bytes_to_human(group.key.size_bytes), fg='cyan', bold=True)} × "
                f"{len(group.members)}  ({group.key.hexdigest[:12]})"
            )
            click.echo(f"  {click.style('keep', fg='green')}  {group.kept.path}")
            for record in group.candidates:
                click.echo(f"  {click.style('dup ', fg='yellow')}  {record.path}")
        click.echo(f"\nReclaimable: {click.style(bytes_to_human(result.reclaimable_bytes), fg='green', bold=True)}\n")

    if delete_:
        _confirm_and_delete(
            engine, result.duplicate_candidates(),
            yes=yes, dry_run=dry_run, as_json=as_json, permanent=permanent or None,
        )


# ── junk ─────────────────────────────────────────────────────────────────

@main.command()
@click.argument("roots", nargs=-1, type=click.Path(path_type=Path))
@click.option("--list", "list_items", is_flag=True, help="List every item, not just category totals")
@click.option("--delete", "delete_", is_flag=True, help="Delete all junk found")
@click.option("--permanent", is_flag=True, help="Delete permanently instead of moving to trash")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def junk(
    roots: tuple[Path, ...],
    list_items: bool,
    delete_: bool,
    permanent: bool,
    yes: bool,
    dry_run: bool,
    as_json: bool,
) -> None:
    """Find cache, log and build junk under ROOTS (default: known junk locations)."""
    engine = _build_engine()
    scan_roots = list(roots) if roots else None
    result = _run_scan(engine, lambda: engine.start_junk_scan(scan_roots), as_json)

    if as_json and not delete_:
        click.echo(json.dumps(result_to_dict(result), indent=2))
        return

    if not as_json:
        totals: dict[str, list[int]] = defaultdict(lambda: [0, 0])
        for item in result.junk_items:
            totals[item.category.value][0] += 1
            totals[item.category.value][1] += item.record.size_bytes
            if list_items:
                click.echo(f"  {bytes_to_human(item.record.size_bytes):>10s}  {item.record.path}")
        if list_items and result.junk_items:
            click.echo()
        if not totals:
            click.echo("No junk found.")
        for category, (count, size) in sorted(totals.items(), key=lambda kv: kv[1][1], reverse=True):
            click.echo(
                f"  {click.style('✓', fg='green')} {category:15s} — "
                f"{click.style(bytes_to_human(size), fg='green', bold=True)} ({count:,} items)"
            )
        click.echo(f"\nTotal reclaimable: {click.style(bytes_to_human(result.total_bytes), fg='green', bold=True)}\n")

    if delete_:
        _confirm_and_delete(
            engine, [i.record.path for i in result.junk_items],
            yes=yes, dry_run=dry_run, as_json=as_json, permanent=permanent or None,
        )


# ── trash ────────────────────────────────────────────────────────────────

@main.command()
@click.option("--trash-dir", type=click.Path(path_type=Path), default=None, help="Trash directory to inspect")
@click.option("--empty", is_flag=True, help="Permanently delete everything in the trash")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
@click.option("--dry-run", is_flag=True, help="Show what would be deleted without doing it")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def trash(trash_dir: Path | None, empty: bool, yes: bool, dry_run: bool, as_json: bool) -> None:
    """Show trash contents and optionally empty it."""
    engine = _build_engine()
    result = _run_scan(engine, lambda: engine.start_trash_scan(trash_dir), as_json)

    if as_json and not empty:
        click.echo(json.dumps(result_to_dict(result), indent=2))
        return

    if not as_json:
        if not result.trash_items:
            click.echo("Trash is empty.")
        _print_sized([i.record for i in result.trash_items])

    if empty:
        _confirm_and_delete(
            engine, [i.record.path for i in result.trash_items],
            yes=yes, dry_run=dry_run, as_json=as_json, permanent=True,
        )


# ── roots ────────────────────────────────────────────────────────────────

@main.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def roots(as_json: bool) -> None:
    """List the junk locations and protected paths."""
    engine = _build_engine()
    classifier = engine.classifier

    if as_json:
        data = {
            "junk_roots": [
                {"path": r.path, "category": r.category.value, "exists": Path(r.path).is_dir()}
                for r in classifier.roots
            ],
            "protected": classifier.protected,
        }
        click.echo(json.dumps(data, indent=2))
        return

    click.echo(f"\n  {click.style('Junk locations', fg='blue', bold=True)}")
    for root in sorted(classifier.roots, key=lambda r: r.path):
        status = "" if Path(root.path).is_dir() else click.style(" (not present)", fg="bright_black")
        click.echo(f"    {click.style(root.category.value, fg='cyan'):24s} {root.path}{status}")
    click.echo(f"\n  {click.style('Protected', fg='blue', bold=True)}")
    for path in classifier.protected:
        click.echo(f"    {path}")
    click.echo()


# ── folder / apps ────────────────────────────────────────────────────────

@main.command()
@click.argument("path", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--all", "-a", "show_hidden", is_flag=True, help="Include hidden entries")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def folder(path: Path, show_hidden: bool, as_json: bool) -> None:
    """Show what takes up space directly inside PATH."""
    try:
        records = folder_contents(path, skip_hidden=not show_hidden)
    except OSError as e:
        _fail(f"Cannot read {path}: {e.strerror or e}")

    if as_json:
        click.echo(json.dumps([record_to_dict(r) for r in records], indent=2))
        return
    if not records:
        click.echo("Folder is empty.")
        return
    _print_sized(records)


@main.command()
@click.option("--dir", "dirs", multiple=True, type=click.Path(path_type=Path),
              help="Application folder to search (repeatable)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def apps(dirs: tuple[Path, ...], as_json: bool) -> None:
    """List installed application bundles and their sizes."""
    records = installed_apps(list(dirs) if dirs else None)

    if as_json:
        click.echo(json.dumps([record_to_dict(r) for r in records], indent=2))
        return
    if not records:
        click.echo("No applications found.")
        return
    _print_sized(records)


# ── service ──────────────────────────────────────────────────────────────

@main.group()
def service() -> None:
    """D-Bus service management."""


@service.command("start")
def service_start() -> None:
    """Start the D-Bus service in foreground."""
    from reclaim.dbus_service import start_service

    click.echo("Starting Reclaim D-Bus service...")
    start_service()
