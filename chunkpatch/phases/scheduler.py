from __future__ import annotations

from typing import Iterable

from .schema import PhaseLists


class PhaseScheduler:
    """
    Live rule lists for one session.

    `initial` is the live list the engine draws candidates from. Deferred
    rules join it (at the end, in order) once play starts, either because
    the session began inside a stream or because the marker rule matched.
    A name is only ever in one list, and leaves it for good once consumed.
    """

    def __init__(self, initial: Iterable[str], deferred: Iterable[str] = (), marker: str | None = None):
        self.initial: list[str] = list(initial)
        self.deferred: list[str] = [name for name in deferred if name not in self.initial]
        self.marker = marker
        self.deferred_unlocked = False
        self.started = False

        # Snapshot for the cache signature; excludes the marker.
        self.all_names: tuple[str, ...] = tuple(self.initial + self.deferred)

    @classmethod
    def from_lists(cls, lists: PhaseLists, marker: str | None = None) -> "PhaseScheduler":
        return cls(lists.initial, lists.deferred, marker=marker)

    @property
    def live(self) -> list[str]:
        return self.initial

    def start(self, in_play: bool) -> None:
        """Arrange the live list for how the session began. Idempotent."""
        if self.started:
            return
        self.started = True

        if in_play:
            self.unlock_deferred()
        elif self.marker and self.marker not in self.initial:
            self.initial.append(self.marker)

    def unlock_deferred(self) -> list[str]:
        """Move every deferred rule to the end of the live list; returns the names moved."""
        if self.deferred_unlocked:
            return []
        self.deferred_unlocked = True

        moved = [name for name in self.deferred if name not in self.initial]
        self.initial.extend(moved)
        self.deferred.clear()
        return moved

    def consume(self, name: str) -> bool:
        """Remove `name` from whichever list holds it."""
        removed = False
        for names in (self.initial, self.deferred):
            while name in names:
                names.remove(name)
                removed = True
        return removed

    def prune(self, names: Iterable[str]) -> None:
        """Drop names already proven elsewhere (e.g. cached from a prior session)."""
        done = set(names)
        self.initial[:] = [name for name in self.initial if name not in done]
        self.deferred[:] = [name for name in self.deferred if name not in done]

    def pending(self) -> dict[str, list[str]]:
        return {"initial": list(self.initial), "deferred": list(self.deferred)}
