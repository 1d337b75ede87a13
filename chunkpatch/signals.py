"""Session-scoped events published when rules succeed.

Other subsystems subscribe by event name. A given (event, source) pair
is delivered at most once per session, even if the publishing rule is
re-applied to a chunk the host loads twice.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Callable

Listener = Callable[[str, dict[str, Any]], None]

VIBRATION_RECONFIGURE = "vibration.reconfigure"


class SessionEvents:
    def __init__(self) -> None:
        self._listeners: dict[str, list[Listener]] = defaultdict(list)
        self._published: set[tuple[str, str]] = set()
        self.history: list[tuple[str, dict[str, Any]]] = []

    def subscribe(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def publish(self, event: str, source: str, payload: dict[str, Any] | None = None) -> bool:
        """Deliver `event` to listeners; returns False if `source` already published it."""
        key = (event, source)
        if key in self._published:
            return False
        self._published.add(key)

        payload = {"source": source, **(payload or {})}
        self.history.append((event, payload))
        for listener in list(self._listeners.get(event, ())):
            listener(event, payload)
        return True

    def was_published(self, event: str) -> bool:
        return any(name == event for name, _ in self._published)
