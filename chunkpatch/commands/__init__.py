"""Command implementations behind the chunkpatch CLI, plus the wiring they share."""

from __future__ import annotations

from pathlib import Path

from rich.console import Console

from ..config import Settings, SessionContext, detect_host_version, load_settings
from ..patchlog import LOG_FILENAME, PatchLog


def resolve_settings(settings_path: Path | None) -> Settings:
    if settings_path is None:
        return Settings()
    return load_settings(settings_path)


def resolve_session(
    settings: Settings,
    *,
    host_version: str | None = None,
    host_page: Path | None = None,
    url: str | None = None,
) -> SessionContext:
    """
    Session facts: settings first, then page meta tag, then explicit options.

    An explicit --host-version wins over the page; a --url under /play/
    marks the session as already in play.
    """
    base = settings.session
    version = base.host_version

    if host_page is not None:
        detected = detect_host_version(host_page.read_text(encoding="utf-8", errors="replace"))
        if detected is None:
            raise ValueError(f"No gamepass-app-version meta tag in {host_page}")
        version = detected

    if host_version:
        version = host_version

    in_play = base.in_play or (url is not None and SessionContext.from_url(url).in_play)

    return SessionContext(
        host_version=version,
        in_play=in_play,
        touch_capable=base.touch_capable,
        app_interface=base.app_interface,
    )


def open_log(state_dir: Path | None, *, verbose: bool = False) -> PatchLog:
    return PatchLog(
        console=Console(stderr=True) if verbose else None,
        log_path=state_dir / LOG_FILENAME if state_dir is not None else None,
    )
