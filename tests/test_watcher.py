"""Tests for the chunk directory watcher (events fed by hand, no observer)."""

from __future__ import annotations

from pathlib import Path

import pytest
from watchdog.events import DirCreatedEvent, FileCreatedEvent, FileModifiedEvent, FileMovedEvent

from chunkpatch.watcher import ChunkEventHandler, compute_file_hash, write_outputs


@pytest.fixture
def dirs(tmp_path: Path) -> tuple[Path, Path]:
    chunk_dir = tmp_path / "chunks"
    out_dir = tmp_path / "out"
    chunk_dir.mkdir()
    return chunk_dir, out_dir


@pytest.fixture
def handler(dirs, make_engine, monkeypatch) -> ChunkEventHandler:
    monkeypatch.setattr(ChunkEventHandler, "DEBOUNCE_SECONDS", 0)
    batches = []
    h = ChunkEventHandler(make_engine(retry_cached=True), dirs[1], on_batch=lambda report, written: batches.append((report, written)))
    h.batches = batches
    return h


def _write(path: Path, text: str) -> str:
    path.write_text(text, encoding="utf-8")
    return str(path)


def test_created_chunks_are_patched_as_one_batch(dirs, handler) -> None:
    chunk_dir, out_dir = dirs
    handler.on_created(FileCreatedEvent(_write(chunk_dir / "1.js", "xfoox")))
    handler.on_created(FileCreatedEvent(_write(chunk_dir / "2.js", "plain")))

    report = handler.flush_pending()

    assert report.get("1").applied == ["A", "B"]
    # Unit 1 consumed every live rule, so unit 2 had no candidates.
    assert report.get("2") is None
    assert (out_dir / "1.js").read_text(encoding="utf-8") == "xbazx"
    assert (out_dir / "2.js").read_text(encoding="utf-8") == "plain"
    assert len(handler.batches) == 1
    assert sorted(p.name for p in handler.batches[0][1]) == ["1.js", "2.js"]
    assert handler.pending == {}


def test_unchanged_content_is_not_reprocessed(dirs, handler) -> None:
    chunk_dir, _ = dirs
    path = _write(chunk_dir / "1.js", "xfoox")
    handler.on_created(FileCreatedEvent(path))
    handler.flush_pending()

    handler.on_modified(FileModifiedEvent(path))
    assert handler.flush_pending() is None

    handler.on_modified(FileModifiedEvent(_write(chunk_dir / "1.js", "foo again")))
    report = handler.flush_pending()
    assert report.get("1").applied == ["A", "B"]


def test_moved_files_use_destination(dirs, handler) -> None:
    chunk_dir, out_dir = dirs
    dest = _write(chunk_dir / "3.js", "foo")
    handler.on_moved(FileMovedEvent(str(chunk_dir / "3.js.part"), dest))

    handler.flush_pending()

    assert (out_dir / "3.js").read_text(encoding="utf-8") == "baz"


def test_irrelevant_paths_are_ignored(dirs, handler) -> None:
    chunk_dir, out_dir = dirs
    out_dir.mkdir()
    handler.on_created(FileCreatedEvent(_write(chunk_dir / ".hidden.js", "foo")))
    handler.on_created(FileCreatedEvent(_write(chunk_dir / "notes.txt", "foo")))
    handler.on_created(FileCreatedEvent(_write(out_dir / "1.js", "foo")))
    handler.on_created(DirCreatedEvent(str(chunk_dir / "sub.js")))

    assert handler.pending == {}
    assert handler.flush_pending() is None


def test_debounce_holds_recent_events(dirs, handler, monkeypatch) -> None:
    chunk_dir, _ = dirs
    monkeypatch.setattr(ChunkEventHandler, "DEBOUNCE_SECONDS", 60)
    handler.on_created(FileCreatedEvent(_write(chunk_dir / "1.js", "foo")))

    assert handler.flush_pending() is None
    assert len(handler.pending) == 1


def test_vanished_file_is_dropped(dirs, handler) -> None:
    chunk_dir, _ = dirs
    path = _write(chunk_dir / "gone.js", "foo")
    handler.on_created(FileCreatedEvent(path))
    Path(path).unlink()

    assert handler.flush_pending() is None
    assert handler.pending == {}


def test_unreadable_chunk_is_skipped_and_retried(dirs, handler, patch_log) -> None:
    chunk_dir, out_dir = dirs
    bad = chunk_dir / "bad.js"
    bad.write_bytes(b"\xff\xfe")
    handler.on_created(FileCreatedEvent(str(bad)))
    handler.on_created(FileCreatedEvent(_write(chunk_dir / "good.js", "foo")))

    report = handler.flush_pending()

    assert report.get("bad") is None
    assert (out_dir / "good.js").read_text(encoding="utf-8") == "baz"
    assert not (out_dir / "bad.js").exists()
    assert "Chunk unreadable, skipped" in patch_log.messages("warning")
    assert str(bad) not in handler.file_hashes

    # Once fixed, the same file is picked up again.
    handler.on_modified(FileModifiedEvent(_write(bad, "xfoox")))
    assert handler.flush_pending() is not None
    assert (out_dir / "bad.js").read_text(encoding="utf-8") == "xfoox"
    assert str(bad) in handler.file_hashes


def test_compute_file_hash(tmp_path) -> None:
    path = tmp_path / "a.js"
    path.write_text("abc", encoding="utf-8")

    assert compute_file_hash(path) == "ba7816bf8f01cfea"
    assert compute_file_hash(tmp_path / "missing.js") is None


def test_write_outputs_skips_unknown_units(tmp_path) -> None:
    paths = [tmp_path / "a.js", tmp_path / "b.js"]
    written = write_outputs(paths, {"a": "patched"}, tmp_path / "out")

    assert written == [tmp_path / "out" / "a.js"]
    assert (tmp_path / "out" / "a.js").read_text(encoding="utf-8") == "patched"
