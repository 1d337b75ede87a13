"""
Structured log sink for patch sessions.

Every entry is kept in memory for the session, optionally appended to
<state_dir>/patch.log in JSON Lines format, and optionally echoed to a
rich console on stderr.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

from rich.console import Console

Level = Literal["info", "warning", "error"]

LOG_TAG = "Patcher"
LOG_FILENAME = "patch.log"

_LEVEL_STYLES = {
    "info": "dim",
    "warning": "yellow",
    "error": "bold red",
}


@dataclass
class LogEntry:
    """A single structured log record."""

    timestamp: str
    level: Level
    tag: str
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "timestamp": self.timestamp,
            "level": self.level,
            "tag": self.tag,
            "message": self.message,
        }
        if self.data:
            d["data"] = self.data
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "LogEntry":
        return cls(
            timestamp=data["timestamp"],
            level=data["level"],
            tag=data.get("tag", LOG_TAG),
            message=data["message"],
            data=data.get("data", {}),
        )


def format_entry(entry: LogEntry) -> str:
    """Format an entry for human-readable display."""
    line = f"[{entry.tag}] {entry.message}"
    if entry.data:
        parts = []
        for key, value in entry.data.items():
            if key == "text":
                # Unit text can be megabytes; show how much, not what.
                parts.append(f"text=<{len(str(value))} chars>")
            else:
                parts.append(f"{key}={value}")
        line += " (" + ", ".join(parts) + ")"
    return line


class PatchLog:
    """Session log shared by the engine, cache and hook."""

    def __init__(
        self,
        *,
        console: Console | None = None,
        log_path: Path | None = None,
        tag: str = LOG_TAG,
    ):
        self.console = console
        self.log_path = log_path
        self.tag = tag
        self.entries: list[LogEntry] = []

    def info(self, message: str, **data: Any) -> LogEntry:
        return self.log("info", message, **data)

    def warning(self, message: str, **data: Any) -> LogEntry:
        return self.log("warning", message, **data)

    def error(self, message: str, **data: Any) -> LogEntry:
        return self.log("error", message, **data)

    def log(self, level: Level, message: str, **data: Any) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            level=level,
            tag=self.tag,
            message=message,
            data=data,
        )
        self.entries.append(entry)

        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(json.dumps(entry.to_dict(), default=str) + "\n")

        if self.console is not None:
            self.console.print(format_entry(entry), style=_LEVEL_STYLES[level], markup=False, highlight=False)

        return entry

    def messages(self, level: Level | None = None) -> list[str]:
        return [e.message for e in self.entries if level is None or e.level == level]


def read_patch_log(log_path: Path, last_n: int | None = None) -> list[LogEntry]:
    """
    Read entries from a patch.log file.

    Args:
        log_path: Path to the JSON Lines log
        last_n: If specified, return only the last N entries

    Returns:
        List of entries, oldest first
    """
    if not log_path.exists():
        return []

    entries = []
    with log_path.open("r", encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entries.append(LogEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError):
                continue  # Skip malformed lines

    if last_n is not None:
        return entries[-last_n:]
    return entries
