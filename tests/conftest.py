"""Pytest configuration and fixtures."""

from typing import Callable

import pytest

from chunkpatch.cache import PatchCache
from chunkpatch.config import SessionContext
from chunkpatch.engine import EngineState, PatchEngine
from chunkpatch.materialize import MaterializationError, TextMaterializer
from chunkpatch.patchlog import PatchLog
from chunkpatch.phases import PhaseScheduler
from chunkpatch.rules import Catalog, Payloads, Rule, RuleContext
from chunkpatch.rules.payloads import CONTROLLER_SHORTCUTS, PAYLOAD_NAMES
from chunkpatch.storage import MemoryStore


def _replace_rule(name: str, old: str, new: str, **kwargs) -> Rule:
    def fn(text: str, ctx: RuleContext) -> str | None:
        if old not in text:
            return None
        return text.replace(old, new, 1)

    return Rule(name, fn, f"{old} -> {new}", **kwargs)


def _marker_rule(name: str, needle: str) -> Rule:
    return Rule(
        name,
        lambda text, ctx: text if needle in text else None,
        f"marker: {needle}",
        unlocks="deferred",
        marker=True,
    )


@pytest.fixture
def store() -> MemoryStore:
    """In-memory key-value store shared across engines of one test."""
    return MemoryStore()


@pytest.fixture
def patch_log() -> PatchLog:
    return PatchLog()


@pytest.fixture
def payloads() -> Payloads:
    """A body for every known payload; each body names itself."""
    bodies = {name: f"/*{name}*/" for name in PAYLOAD_NAMES}
    bodies[CONTROLLER_SHORTCUTS] = "if(${gamepadVar}.buttons[17])return;"
    return Payloads(bodies)


@pytest.fixture
def rule_ctx(payloads: Payloads) -> RuleContext:
    return RuleContext(payloads=payloads)


@pytest.fixture
def small_catalog() -> Catalog:
    """
    A: foo -> bar
    B: bar -> baz
    C: late -> LATE (meant for the deferred phase)
    MARK: marker on "<play>", unlocks deferred
    """
    return Catalog(
        [
            _replace_rule("A", "foo", "bar"),
            _replace_rule("B", "bar", "baz"),
            _replace_rule("C", "late", "LATE"),
            _marker_rule("MARK", "<play>"),
        ]
    )


class RejectingMaterializer(TextMaterializer):
    """Refuses any rewrite containing a given snippet."""

    def __init__(self, poison: str):
        super().__init__()
        self.poison = poison

    def materialize(self, unit_id, text, original):
        if self.poison in text:
            raise MaterializationError(f"poisoned rewrite of {unit_id}")
        return super().materialize(unit_id, text, original)


@pytest.fixture
def poisoned_materializer() -> RejectingMaterializer:
    """Materializer that rejects any rewrite containing "POISON"."""
    return RejectingMaterializer("POISON")


@pytest.fixture
def make_engine(store: MemoryStore, patch_log: PatchLog, small_catalog: Catalog) -> Callable[..., PatchEngine]:
    """
    Build a fresh session over the shared store.

    Calling it twice in one test simulates a process restart: live lists
    are rebuilt, the persisted cache carries over.
    """

    def factory(
        initial=("A", "B"),
        deferred=(),
        marker=None,
        *,
        catalog: Catalog | None = None,
        materializer=None,
        session=None,
        engine_version: str = "test",
        retry_cached: bool = False,
        events=None,
    ) -> PatchEngine:
        state = EngineState(
            scheduler=PhaseScheduler(initial, deferred, marker=marker),
            cache=PatchCache(store, log=patch_log),
        )
        return PatchEngine(
            catalog or small_catalog,
            state,
            materializer=materializer,
            session=session or SessionContext(host_version="1.0"),
            log=patch_log,
            events=events,
            engine_version=engine_version,
            retry_cached=retry_cached,
        )

    return factory
