from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator

from ..config import DEFAULT_FLAGS, Flags, Preferences
from .payloads import Payloads


@dataclass(frozen=True)
class RuleContext:
    """Read-only state a rule may consult when building its replacement."""

    prefs: Preferences = field(default_factory=Preferences)
    flags: Flags = DEFAULT_FLAGS
    payloads: Payloads = field(default_factory=Payloads)


RuleFn = Callable[[str, RuleContext], "str | None"]


@dataclass(frozen=True)
class Rule:
    """
    A named text rewrite.

    `fn` returns None when its target pattern is absent. A marker rule
    only detects its pattern and hands the text back untouched; any other
    rule that hands back its input unchanged is treated as not applicable,
    so re-running a rule on its own output never counts as a match.

    Markers are the one exception to that idempotence: they match their
    own output every time. The engine therefore records a marker for a
    chunk once and afterwards only replays its unlock.
    """

    name: str
    fn: RuleFn
    description: str = ""
    payload: str | None = None
    unlocks: str | None = None
    publishes: str | None = None
    marker: bool = False

    def apply(self, text: str, ctx: RuleContext) -> str | None:
        result = self.fn(text, ctx)
        if result is None:
            return None
        if result == text and not self.marker:
            return None
        return result


class Catalog:
    """Name -> Rule mapping. Names are unique."""

    def __init__(self, rules: Iterable[Rule] = ()):
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            self.add(rule)

    def add(self, rule: Rule) -> None:
        if rule.name in self._rules:
            raise ValueError(f"Duplicate rule name: {rule.name}")
        self._rules[rule.name] = rule

    def get(self, name: str) -> Rule | None:
        return self._rules.get(name)

    def names(self) -> list[str]:
        return list(self._rules)

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)
