"""
Watch a chunk directory and patch chunks as the host drops them in.

Each debounce flush is one batch through a single long-lived engine,
the same way a host progressively registers chunks during a session.
"""

from __future__ import annotations

import hashlib
import time
from pathlib import Path
from typing import Callable

from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .engine import BatchReport, PatchEngine


def compute_file_hash(path: Path) -> str | None:
    """SHA-256 of file contents (first 16 hex chars)."""
    try:
        return hashlib.sha256(path.read_bytes()).hexdigest()[:16]
    except OSError:
        return None


def write_outputs(paths: list[Path], units: dict[str, str], out_dir: Path) -> list[Path]:
    """Write each chunk (patched or not) to out_dir under its original file name."""
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for path in paths:
        text = units.get(path.stem)
        if text is None:
            continue
        target = out_dir / path.name
        target.write_text(text, encoding="utf-8")
        written.append(target)
    return written


class ChunkEventHandler(FileSystemEventHandler):
    """
    Collects created/modified chunk files and patches them in batches.

    Key behaviors:
    - Debounces rapid writes (the host or a sync tool writing in pieces)
    - Skips files whose content hash has not changed since the last flush
    - Ignores hidden files and anything that is not a .js chunk
    """

    RELEVANT_EXTENSIONS = {".js"}
    DEBOUNCE_SECONDS = 1.0

    def __init__(
        self,
        engine: PatchEngine,
        out_dir: Path,
        on_batch: Callable[[BatchReport, list[Path]], None] | None = None,
    ):
        super().__init__()
        self.engine = engine
        self.out_dir = out_dir
        self.on_batch = on_batch

        # path -> time of last event
        self.pending: dict[str, float] = {}
        self.file_hashes: dict[str, str] = {}

    def _is_relevant(self, path: str) -> bool:
        p = Path(path)
        if p.name.startswith("."):
            return False
        if p.suffix.lower() not in self.RELEVANT_EXTENSIONS:
            return False
        # Never re-patch our own output.
        try:
            p.resolve().relative_to(self.out_dir.resolve())
            return False
        except ValueError:
            return True

    def _queue(self, path: str) -> None:
        if self._is_relevant(path):
            self.pending[path] = time.time()

    def on_created(self, event: FileCreatedEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path)

    def on_modified(self, event: FileModifiedEvent) -> None:
        if not event.is_directory:
            self._queue(event.src_path)

    def on_moved(self, event: FileMovedEvent) -> None:
        if not event.is_directory:
            self._queue(event.dest_path)

    def flush_pending(self) -> BatchReport | None:
        """Patch every pending chunk past the debounce window as one batch."""
        now = time.time()
        due: list[Path] = []
        units: dict[str, str] = {}

        for path_str, timestamp in list(self.pending.items()):
            if now - timestamp < self.DEBOUNCE_SECONDS:
                continue
            del self.pending[path_str]

            path = Path(path_str)
            new_hash = compute_file_hash(path)
            if new_hash is None or self.file_hashes.get(path_str) == new_hash:
                continue
            try:
                text = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                self.engine.log.warning("Chunk unreadable, skipped", path=path_str, error=f"{type(e).__name__}: {e}")
                continue
            self.file_hashes[path_str] = new_hash
            units[path.stem] = text
            due.append(path)

        if not due:
            return None

        report = self.engine.patch(units)
        written = write_outputs(due, units, self.out_dir)

        if self.on_batch:
            self.on_batch(report, written)
        return report


def watch_chunks(
    chunk_dir: Path,
    engine: PatchEngine,
    out_dir: Path,
    on_batch: Callable[[BatchReport, list[Path]], None] | None = None,
) -> tuple[Observer, ChunkEventHandler]:
    """
    Start watching a chunk directory.

    Returns:
        Tuple of (observer, handler) - caller should call observer.stop() to stop watching
    """
    handler = ChunkEventHandler(engine=engine, out_dir=out_dir, on_batch=on_batch)

    observer = Observer()
    observer.schedule(handler, str(chunk_dir), recursive=False)
    observer.start()

    return observer, handler


def run_watch_loop(
    chunk_dir: Path,
    engine: PatchEngine,
    out_dir: Path,
    on_batch: Callable[[BatchReport, list[Path]], None] | None = None,
) -> None:
    """Blocking: watch and flush until interrupted."""
    observer, handler = watch_chunks(chunk_dir, engine, out_dir, on_batch=on_batch)

    try:
        while True:
            time.sleep(0.5)
            handler.flush_pending()
    except KeyboardInterrupt:
        observer.stop()

    observer.join()
