"""Patch command - run chunk files through the engine, one batch per file."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..cache import KEY_CACHE, KEY_SIGNATURE
from ..config import Settings, SessionContext
from ..engine import BatchReport, build_engine
from ..storage import FileStore, MemoryStore
from . import open_log

_STATUS_STYLES = {
    "patched": "green",
    "unchanged": "dim",
    "failed": "bold red",
}


def run_patch(
    chunks: list[Path],
    state_dir: Path,
    settings: Settings,
    session: SessionContext,
    *,
    out_dir: Path | None = None,
    in_place: bool = False,
    dry_run: bool = False,
    verbose: bool = False,
) -> int:
    """
    Patch chunk files in argument order.

    Each file is its own batch (unit id = file stem), mimicking a host
    that registers chunks one at a time. With --dry-run the cache is
    read but nothing is written.

    Returns:
        Exit code (0 = success, 1 = at least one chunk failed to materialize)
    """
    console = Console()

    if sum((out_dir is not None, in_place, dry_run)) != 1:
        raise ValueError("Choose exactly one of --out, --in-place, --dry-run")

    file_store = FileStore(state_dir)
    if dry_run:
        # Work on a copy so the persisted cache is left alone.
        seed = {}
        for key in (KEY_CACHE, KEY_SIGNATURE):
            value = file_store.get(key)
            if value is not None:
                seed[key] = value
        store = MemoryStore(seed)
        log = open_log(None, verbose=verbose)
    else:
        store = file_store
        log = open_log(state_dir, verbose=verbose)

    # Sources read for --out/--dry-run are pristine every run; in-place ones are not.
    engine = build_engine(settings, store, session=session, log=log, retry_cached=not in_place)

    table = Table(title="Patch results")
    table.add_column("Chunk", style="bold")
    table.add_column("Status")
    table.add_column("Rules")

    failed = 0
    for path in chunks:
        try:
            units = {path.stem: path.read_text(encoding="utf-8")}
        except UnicodeDecodeError as e:
            raise ValueError(f"{path}: not UTF-8 text ({e.reason} at byte {e.start})") from e
        report = engine.patch(units)
        unit = report.get(path.stem)

        if unit is None:
            table.add_row(path.name, "[dim]skipped[/dim]", "")
        else:
            style = _STATUS_STYLES[unit.status]
            table.add_row(path.name, f"[{style}]{unit.status}[/{style}]", ", ".join(unit.applied))
            if unit.status == "failed":
                failed += 1

        if not dry_run:
            _write_chunk(path, units[path.stem], report, out_dir=out_dir, in_place=in_place)

    console.print(table)

    pending = engine.scheduler.pending()
    console.print(
        f"[dim]Live rules left: {len(pending['initial'])} initial, {len(pending['deferred'])} deferred[/dim]"
    )
    if dry_run:
        console.print("[yellow]Dry run: no files or cache written[/yellow]")

    return 1 if failed else 0


def _write_chunk(path: Path, text: str, report: BatchReport, *, out_dir: Path | None, in_place: bool) -> None:
    unit = report.get(path.stem)
    if in_place:
        if unit is not None and unit.status == "patched":
            path.write_text(text, encoding="utf-8")
        return

    if out_dir is None:
        raise ValueError("An output directory is required unless patching in place")
    out_dir.mkdir(parents=True, exist_ok=True)
    (out_dir / path.name).write_text(text, encoding="utf-8")
