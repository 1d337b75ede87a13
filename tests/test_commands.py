"""Tests for the command implementations behind the CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from chunkpatch.cache import KEY_CACHE, KEY_SIGNATURE
from chunkpatch.commands import open_log, resolve_session, resolve_settings
from chunkpatch.commands.cache_cmd import run_cache_clear, run_cache_show, run_log, run_signature
from chunkpatch.commands.patch_cmd import _write_chunk, run_patch
from chunkpatch.commands.rules_cmd import collect_rules, run_rules
from chunkpatch.config import Settings, SessionContext
from chunkpatch.engine import BatchReport

ORIGIN_CRASH = 'a(e){if(!e)throw new Error("RequestInfo.origin is falsy");return e}'
ORIGIN_FIXED = 'a(e){if (!e) e = "https://www.xbox.com";return e}'
SESSION = SessionContext(host_version="1.0")


@pytest.fixture
def chunk_dir(tmp_path: Path) -> Path:
    d = tmp_path / "chunks"
    d.mkdir()
    (d / "main.js").write_text(ORIGIN_CRASH, encoding="utf-8")
    (d / "vendor.js").write_text("var nothing=1;", encoding="utf-8")
    return d


@pytest.fixture
def chunks(chunk_dir: Path) -> list[Path]:
    return [chunk_dir / "main.js", chunk_dir / "vendor.js"]


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    return tmp_path / "state"


class TestRunPatch:
    def test_out_writes_every_chunk(self, chunks, state_dir, tmp_path) -> None:
        out = tmp_path / "out"

        assert run_patch(chunks, state_dir, Settings(), SESSION, out_dir=out) == 0

        assert (out / "main.js").read_text(encoding="utf-8") == ORIGIN_FIXED
        assert (out / "vendor.js").read_text(encoding="utf-8") == "var nothing=1;"
        assert chunks[0].read_text(encoding="utf-8") == ORIGIN_CRASH
        cached = json.loads((state_dir / KEY_CACHE).read_text(encoding="utf-8"))
        assert cached == {"main": ["patch-request-info-crash"]}
        assert (state_dir / "patch.log").exists()

    def test_repeated_out_runs_patch_pristine_sources(self, chunks, state_dir, tmp_path) -> None:
        out = tmp_path / "out"
        run_patch(chunks, state_dir, Settings(), SESSION, out_dir=out)
        (out / "main.js").unlink()

        run_patch(chunks, state_dir, Settings(), SESSION, out_dir=out)

        assert (out / "main.js").read_text(encoding="utf-8") == ORIGIN_FIXED

    def test_in_place_rewrites_patched_chunks_once(self, chunks, state_dir) -> None:
        run_patch(chunks, state_dir, Settings(), SESSION, in_place=True)
        assert chunks[0].read_text(encoding="utf-8") == ORIGIN_FIXED

        # The rule is cached for "main": a second in-place run leaves it alone.
        run_patch(chunks, state_dir, Settings(), SESSION, in_place=True)
        assert chunks[0].read_text(encoding="utf-8") == ORIGIN_FIXED

    def test_dry_run_writes_nothing(self, chunks, state_dir, capsys) -> None:
        assert run_patch(chunks, state_dir, Settings(), SESSION, dry_run=True) == 0

        assert chunks[0].read_text(encoding="utf-8") == ORIGIN_CRASH
        assert not state_dir.exists()
        out = capsys.readouterr().out
        assert "Patch results" in out
        assert "patch-request-info-crash" in out
        assert "Dry run" in out

    def test_dry_run_reads_existing_cache(self, chunks, state_dir, capsys) -> None:
        run_patch(chunks, state_dir, Settings(), SESSION, in_place=True)
        before = (state_dir / KEY_CACHE).read_text(encoding="utf-8")
        capsys.readouterr()

        run_patch(chunks, state_dir, Settings(), SESSION, dry_run=True)

        assert (state_dir / KEY_CACHE).read_text(encoding="utf-8") == before

    @pytest.mark.parametrize(
        "kwargs",
        [{}, {"in_place": True, "dry_run": True}, {"out_dir": Path("x"), "in_place": True}],
    )
    def test_exactly_one_mode(self, chunks, state_dir, kwargs) -> None:
        with pytest.raises(ValueError, match="exactly one"):
            run_patch(chunks, state_dir, Settings(), SESSION, **kwargs)

    def test_non_utf8_chunk_is_a_clean_error(self, chunk_dir, state_dir, tmp_path) -> None:
        bad = chunk_dir / "bad.js"
        bad.write_bytes(b"\xff\xfe")

        with pytest.raises(ValueError, match="bad.js: not UTF-8 text"):
            run_patch([bad], state_dir, Settings(), SESSION, out_dir=tmp_path / "out")

    def test_write_without_out_dir(self, chunks) -> None:
        with pytest.raises(ValueError, match="output directory is required"):
            _write_chunk(chunks[0], "x", BatchReport(), out_dir=None, in_place=False)


class TestRules:
    def test_phases_under_default_settings(self) -> None:
        rows = {row["name"]: row for row in collect_rules(Settings(), SESSION)}

        assert rows["patch-request-info-crash"]["phase"] == "initial"
        assert rows["patch-request-info-crash"]["position"] == 2
        assert rows["loading-ending-chunks"]["phase"] == "marker"
        assert rows["patch-poll-gamepads"]["phase"] == "deferred"
        assert rows["disable-ai-track"]["phase"] == "off"
        assert rows["expose-stream-session"]["phase"] == "off"
        assert rows["expose-stream-session"]["skipped"] == "payload 'expose-stream-session' not available"

    def test_rows_sorted_by_phase(self) -> None:
        phases = [row["phase"] for row in collect_rules(Settings(), SESSION)]
        assert phases[0] == "initial"
        assert phases.index("marker") < phases.index("deferred") < phases.index("off")

    def test_json_output(self, capsys) -> None:
        assert run_rules(Settings(), SESSION, output_json=True) == 0
        rows = json.loads(capsys.readouterr().out)
        assert len(rows) == 52
        assert rows[0]["name"] == "detect-browser-router-ready"


class TestCacheCommands:
    def test_show_and_clear(self, chunks, state_dir, tmp_path, capsys) -> None:
        run_patch(chunks, state_dir, Settings(), SESSION, out_dir=tmp_path / "out")
        capsys.readouterr()

        run_cache_show(state_dir, output_json=True)
        shown = json.loads(capsys.readouterr().out)
        assert shown["entries"] == {"main": ["patch-request-info-crash"]}
        assert shown["signature"] == (state_dir / KEY_SIGNATURE).read_text(encoding="utf-8")

        run_cache_clear(state_dir)
        capsys.readouterr()
        run_cache_show(state_dir, output_json=True)
        assert json.loads(capsys.readouterr().out)["entries"] == {}

    def test_show_empty(self, state_dir, capsys) -> None:
        assert run_cache_show(state_dir) == 0
        assert "Cache is empty" in capsys.readouterr().out

    def test_signature_matches_after_a_run(self, chunks, state_dir, tmp_path) -> None:
        assert run_signature(state_dir, Settings(), SESSION) == 1

        run_patch(chunks, state_dir, Settings(), SESSION, out_dir=tmp_path / "out")

        assert run_signature(state_dir, Settings(), SESSION) == 0
        assert run_signature(state_dir, Settings(), SessionContext(host_version="2.0")) == 1

    def test_log(self, chunks, state_dir, tmp_path, capsys) -> None:
        assert run_log(state_dir) == 0

        run_patch(chunks, state_dir, Settings(), SESSION, out_dir=tmp_path / "out")
        capsys.readouterr()

        assert run_log(state_dir) > 2
        assert run_log(state_dir, last_n=2) == 2
        assert "[Patcher]" in capsys.readouterr().out


class TestResolve:
    def test_settings_default(self) -> None:
        settings = resolve_settings(None)
        assert settings.payload_dir is None
        assert settings.session == SessionContext()

    def test_session_from_page_and_options(self, tmp_path) -> None:
        page = tmp_path / "index.html"
        page.write_text('<meta name="gamepass-app-version" content="3.4.5">', encoding="utf-8")

        assert resolve_session(Settings(), host_page=page).host_version == "3.4.5"
        assert resolve_session(Settings(), host_page=page, host_version="9").host_version == "9"
        assert resolve_session(Settings(), url="https://www.xbox.com/en-US/play/launch/x").in_play
        assert not resolve_session(Settings(), url="https://www.xbox.com/en-US/").in_play

    def test_settings_session_is_the_base(self) -> None:
        settings = Settings(session=SessionContext(host_version="1.1", touch_capable=True))
        session = resolve_session(settings)
        assert session.host_version == "1.1"
        assert session.touch_capable

    def test_page_without_version(self, tmp_path) -> None:
        page = tmp_path / "index.html"
        page.write_text("<html></html>", encoding="utf-8")

        with pytest.raises(ValueError, match="gamepass-app-version"):
            resolve_session(Settings(), host_page=page)

    def test_open_log(self, tmp_path) -> None:
        assert open_log(tmp_path).log_path == tmp_path / "patch.log"
        assert open_log(None).log_path is None
        assert open_log(None, verbose=True).console is not None
