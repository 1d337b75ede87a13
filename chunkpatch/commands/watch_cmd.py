"""Watch command - patch chunks as they appear in a directory."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from rich.console import Console

from ..config import Settings, SessionContext
from ..engine import BatchReport, build_engine
from ..storage import FileStore
from ..watcher import run_watch_loop
from . import open_log


def run_watch(
    chunk_dir: Path,
    out_dir: Path,
    state_dir: Path,
    settings: Settings,
    session: SessionContext,
    *,
    verbose: bool = False,
) -> None:
    """
    Watch `chunk_dir` and write patched copies to `out_dir`.

    This is a blocking command that runs until interrupted (Ctrl+C). One
    engine session spans the whole watch, so rules consumed by an early
    chunk are not tried against later ones.
    """
    console = Console(stderr=True)

    log = open_log(state_dir, verbose=verbose)
    engine = build_engine(settings, FileStore(state_dir), session=session, log=log, retry_cached=True)
    engine.start()

    console.print(f"[bold]Watching[/bold] {chunk_dir}")
    console.print(f"  Output: {out_dir}")
    console.print(f"  Host version: {session.host_version or '(unknown)'}")
    console.print(f"  In play: {'yes' if session.in_play else 'no'}")
    console.print()
    console.print("[dim]Press Ctrl+C to stop watching[/dim]")
    console.print()

    batch_count = 0
    patched_count = 0

    def on_batch(report: BatchReport, written: list[Path]) -> None:
        nonlocal batch_count, patched_count
        batch_count += 1
        timestamp = datetime.now().strftime("%H:%M:%S")
        for unit in report.units:
            if unit.status == "patched":
                patched_count += 1
                console.print(f"[dim]{timestamp}[/dim] [green]+[/green] {unit.unit_id}: {', '.join(unit.applied)}")
            elif unit.status == "failed":
                console.print(f"[dim]{timestamp}[/dim] [red]![/red] {unit.unit_id}: {unit.error}")
        if not report.units:
            console.print(f"[dim]{timestamp} {len(written)} chunk(s), nothing to do[/dim]")

    try:
        run_watch_loop(chunk_dir, engine, out_dir, on_batch=on_batch)
    except KeyboardInterrupt:
        pass

    console.print()
    console.print(f"[bold]Stopped.[/bold] {batch_count} batches, {patched_count} chunks patched.")
