"""
External payload bodies injected by some rules.

Payloads are maintained alongside the host integration, not here; this
module only knows how to find them (<payload_dir>/<name>.js) and fill
in their ${placeholders}.
"""

from __future__ import annotations

from pathlib import Path
from string import Template
from typing import Mapping

CONTROLLER_SHORTCUTS = "controller-shortcuts"
EXPOSE_STREAM_SESSION = "expose-stream-session"
LOCAL_CO_OP_ENABLE = "local-co-op-enable"
SET_CURRENTLY_FOCUSED_INTERACTABLE = "set-currently-focused-interactable"
REMOTE_PLAY_ENABLE = "remote-play-enable"
REMOTE_PLAY_KEEP_ALIVE = "remote-play-keep-alive"
VIBRATION_ADJUST = "vibration-adjust"

PAYLOAD_NAMES = (
    CONTROLLER_SHORTCUTS,
    EXPOSE_STREAM_SESSION,
    LOCAL_CO_OP_ENABLE,
    SET_CURRENTLY_FOCUSED_INTERACTABLE,
    REMOTE_PLAY_ENABLE,
    REMOTE_PLAY_KEEP_ALIVE,
    VIBRATION_ADJUST,
)


class Payloads:
    def __init__(self, bodies: Mapping[str, str] | None = None):
        self._bodies = dict(bodies or {})

    @classmethod
    def from_dir(cls, payload_dir: Path | None) -> "Payloads":
        """Load every known payload present in `payload_dir`; missing ones are skipped."""
        bodies: dict[str, str] = {}
        if payload_dir is not None and payload_dir.is_dir():
            for name in PAYLOAD_NAMES:
                path = payload_dir / f"{name}.js"
                if path.is_file():
                    bodies[name] = path.read_text(encoding="utf-8")
        return cls(bodies)

    def has(self, name: str) -> bool:
        return name in self._bodies

    def available(self) -> list[str]:
        return sorted(self._bodies)

    def get(self, name: str) -> str:
        try:
            return self._bodies[name]
        except KeyError:
            raise KeyError(f"Payload not available: {name}") from None

    def render(self, name: str, **values: str) -> str:
        """Return the payload with ${name} placeholders filled; unknown ones stay as-is."""
        return Template(self.get(name)).safe_substitute(values)
