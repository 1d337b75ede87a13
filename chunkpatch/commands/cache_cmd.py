"""Cache, signature and log commands."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..cache import KEY_SIGNATURE, PatchCache
from ..config import Settings, SessionContext
from ..engine import build_engine
from ..patchlog import LOG_FILENAME, format_entry, read_patch_log
from ..storage import FileStore, MemoryStore


def run_cache_show(state_dir: Path, *, output_json: bool = False) -> int:
    store = FileStore(state_dir)
    cache = PatchCache(store)
    entries = cache.load()
    signature = store.get(KEY_SIGNATURE)

    if output_json:
        print(json.dumps({"signature": signature, "entries": entries}, indent=2))
        return 0

    console = Console()
    if not entries:
        console.print("[dim]Cache is empty.[/dim]")
        return 0

    table = Table(title=f"Patch cache ({len(entries)} chunks)")
    table.add_column("Chunk", style="bold")
    table.add_column("Rules")
    for unit_id, names in entries.items():
        table.add_row(unit_id, ", ".join(names))

    console.print(table)
    if signature:
        console.print(f"[dim]Signature: {signature.strip()}[/dim]")
    return 0


def run_cache_clear(state_dir: Path) -> int:
    """Drop every cached association; the signature is kept."""
    console = Console()
    PatchCache(FileStore(state_dir)).clear()
    console.print("[green]Cache cleared.[/green]")
    return 0


def run_signature(state_dir: Path, settings: Settings, session: SessionContext) -> int:
    """
    Print the signature the current settings would produce.

    Returns 0 if it matches the stored signature, 1 if the cache would be
    invalidated at the next run.
    """
    console = Console()

    # Only the signature is needed; build against a throwaway store.
    engine = build_engine(settings, MemoryStore(), session=session)
    current = engine.signature()
    stored = FileStore(state_dir).get(KEY_SIGNATURE)
    stored = stored.strip() if stored is not None else None

    console.print(f"Current: {current}")
    console.print(f"Stored:  {stored or '(none)'}")
    console.print(f"[dim]Host version: {session.host_version or '(unknown)'}[/dim]")

    if stored == current:
        console.print("[green]Cache is valid for this configuration.[/green]")
        return 0

    console.print("[yellow]Cache will be cleared at the next run.[/yellow]")
    return 1


def run_log(state_dir: Path, *, last_n: int | None = None) -> int:
    """Display entries from the patch log. Returns the number shown."""
    console = Console()
    entries = read_patch_log(state_dir / LOG_FILENAME, last_n=last_n)

    if not entries:
        console.print("[dim]No log entries found.[/dim]")
        return 0

    styles = {"info": "", "warning": "yellow", "error": "bold red"}
    for entry in entries:
        timestamp = entry.timestamp[:19].replace("T", " ")
        console.print(f"[dim]{timestamp}[/dim] ", end="")
        console.print(format_entry(entry), style=styles.get(entry.level) or None, markup=False, highlight=False)

    return len(entries)
