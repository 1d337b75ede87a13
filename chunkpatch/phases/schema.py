from __future__ import annotations

from dataclasses import dataclass, field

INITIAL = "initial"
DEFERRED = "deferred"
PHASES = (INITIAL, DEFERRED)


@dataclass(frozen=True)
class PhaseGroup:
    """Consecutive rules sharing the same inclusion conditions."""

    rules: tuple[str, ...]
    when: tuple[str, ...] = ()


@dataclass(frozen=True)
class PhaseLayout:
    layout_id: str
    version: int
    marker: str | None = None
    description: str | None = None
    initial: tuple[PhaseGroup, ...] = ()
    deferred: tuple[PhaseGroup, ...] = ()

    def groups(self, phase: str) -> tuple[PhaseGroup, ...]:
        if phase == INITIAL:
            return self.initial
        if phase == DEFERRED:
            return self.deferred
        raise ValueError(f"Unknown phase: {phase}")


@dataclass
class PhaseLists:
    """Result of evaluating a layout against the current configuration."""

    initial: list[str] = field(default_factory=list)
    deferred: list[str] = field(default_factory=list)
    skipped: dict[str, str] = field(default_factory=dict)
