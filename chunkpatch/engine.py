"""
The patch loop.

For every chunk in a batch the engine builds a candidate list (rules
cached for that chunk, then the live list), tries each rule in order,
and on a match consumes the rule for the rest of the session. A
chunk's rewrite only replaces the original if the materializer accepts
it; otherwise the host keeps running the unmodified chunk.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, MutableMapping

from . import ENGINE_VERSION
from .cache import PatchCache, compute_signature
from .config import Settings, SessionContext
from .materialize import MaterializationError, Materializer, TextMaterializer
from .patchlog import PatchLog
from .phases import PhaseScheduler, build_phases, load_default_layout
from .phases.conditions import ConditionContext
from .phases.schema import DEFERRED, PhaseLayout
from .rules import Catalog, Payloads, RuleContext, build_catalog
from .signals import SessionEvents
from .storage import KeyValueStore

UnitStatus = Literal["unchanged", "patched", "failed"]


def _describe(e: Exception) -> str:
    if isinstance(e, MaterializationError):
        return str(e)
    return f"{type(e).__name__}: {e}"


@dataclass
class UnitReport:
    unit_id: str
    status: UnitStatus
    applied: list[str] = field(default_factory=list)
    error: str | None = None


@dataclass
class BatchReport:
    units: list[UnitReport] = field(default_factory=list)
    saved: dict[str, list[str]] = field(default_factory=dict)

    @property
    def applied(self) -> list[str]:
        return [name for unit in self.units for name in unit.applied]

    def by_status(self, status: UnitStatus) -> list[UnitReport]:
        return [unit for unit in self.units if unit.status == status]

    def get(self, unit_id: object) -> UnitReport | None:
        for unit in self.units:
            if unit.unit_id == str(unit_id):
                return unit
        return None


@dataclass
class EngineState:
    """Everything mutable in a session: live lists, cache, started flag."""

    scheduler: PhaseScheduler
    cache: PatchCache
    started: bool = False


class PatchEngine:
    def __init__(
        self,
        catalog: Catalog,
        state: EngineState,
        *,
        rule_ctx: RuleContext | None = None,
        materializer: Materializer | None = None,
        session: SessionContext | None = None,
        log: PatchLog | None = None,
        events: SessionEvents | None = None,
        engine_version: str = ENGINE_VERSION,
        retry_cached: bool = False,
    ):
        self.catalog = catalog
        self.state = state
        self.rule_ctx = rule_ctx or RuleContext()
        self.materializer = materializer or TextMaterializer()
        self.session = session or SessionContext()
        self.log = log or state.cache.log
        self.events = events or SessionEvents()
        self.engine_version = engine_version
        self.retry_cached = retry_cached

    @property
    def scheduler(self) -> PhaseScheduler:
        return self.state.scheduler

    @property
    def cache(self) -> PatchCache:
        return self.state.cache

    def signature(self) -> str:
        return compute_signature(self.engine_version, self.session.host_version, self.scheduler.all_names)

    def start(self) -> None:
        """Validate and load the cache, then arrange the live list. Idempotent."""
        if self.state.started:
            return
        self.state.started = True

        self.cache.check_signature(self.signature())
        self.cache.load()

        self.scheduler.start(self.session.in_play)

        # Rules proven in an earlier session only run against their own chunk.
        self.scheduler.prune(self.cache.rule_names())

        self.log.info("Live rules", initial=list(self.scheduler.initial), deferred=list(self.scheduler.deferred))

    def candidates(self, unit_id: object) -> list[str]:
        cached = self.cache.get(unit_id) or []
        return cached + list(self.scheduler.live)

    def patch(self, units: MutableMapping[Any, Any]) -> BatchReport:
        """
        Patch one batch in place.

        `units` maps chunk id -> chunk (whatever the materializer handles).
        Entries are only replaced when their rewrite materializes.
        """
        self.start()

        report = BatchReport()
        patches_map: dict[str, list[str]] = {}

        for unit_id in list(units):
            key = str(unit_id)
            candidates = self.candidates(key)
            if not candidates:
                continue

            original = units[unit_id]
            try:
                text = self.materializer.source(original)
            except Exception as e:
                self.log.warning("Source unavailable", unit_id=key, error=_describe(e))
                continue

            unit_report, new_unit = self._patch_unit(key, text, candidates, original)
            if unit_report.status == "patched":
                units[unit_id] = new_unit
            report.units.append(unit_report)

            if unit_report.applied:
                patches_map[key] = list(unit_report.applied)

        if patches_map:
            self.cache.save(patches_map)
            report.saved = patches_map

        return report

    def _patch_unit(self, unit_id: str, text: str, candidates: list[str], original: Any) -> tuple[UnitReport, Any]:
        applied: list[str] = []
        patched = text

        # Names cached for this unit count as already applied to it, unless
        # the host hands over pristine text each session.
        # Markers never change text, so a cached marker is always replayed.
        cached = set(self.cache.get(unit_id) or ())
        done = set() if self.retry_cached else cached

        for name in candidates:
            if name in applied:
                continue

            rule = self.catalog.get(name)
            if rule is None:
                continue

            if name in done or (rule.marker and name in cached):
                # Seeing this unit again still means what it meant last time.
                if rule.unlocks:
                    self._unlock(rule.unlocks, name)
                continue

            try:
                result = rule.apply(patched, self.rule_ctx)
            except Exception as e:
                self.log.error("Rule raised", rule=name, unit_id=unit_id, error=_describe(e))
                continue

            if result is None:
                continue

            patched = result
            applied.append(name)
            self.log.info("Rule applied", rule=name, unit_id=unit_id)

            self.scheduler.consume(name)
            if rule.unlocks:
                self._unlock(rule.unlocks, name)
            if rule.publishes:
                self._publish(rule.publishes, name, unit_id)

        if patched == text:
            # Nothing matched, or only marker rules did.
            return UnitReport(unit_id=unit_id, status="unchanged", applied=applied), original

        try:
            new_unit = self.materializer.materialize(unit_id, patched, original)
        except Exception as e:
            # Pluggable materializers may raise anything; the original unit stays.
            error = _describe(e)
            self.log.error("Materialization failed", unit_id=unit_id, rules=list(applied), error=error, text=patched)
            return UnitReport(unit_id=unit_id, status="failed", applied=applied, error=error), original

        return UnitReport(unit_id=unit_id, status="patched", applied=applied), new_unit

    def _unlock(self, phase: str, trigger: str) -> None:
        if phase != DEFERRED:
            self.log.warning("Unknown phase to unlock", phase=phase, trigger=trigger)
            return
        moved = self.scheduler.unlock_deferred()
        if moved:
            self.log.info("Deferred rules unlocked", trigger=trigger, rules=moved)

    def _publish(self, event: str, name: str, unit_id: str) -> None:
        try:
            self.events.publish(event, name, {"unit_id": unit_id})
        except Exception as e:
            self.log.error("Event listener raised", event=event, rule=name, error=_describe(e))


def build_engine(
    settings: Settings,
    store: KeyValueStore,
    *,
    session: SessionContext | None = None,
    log: PatchLog | None = None,
    materializer: Materializer | None = None,
    catalog: Catalog | None = None,
    layout: PhaseLayout | None = None,
    events: SessionEvents | None = None,
    retry_cached: bool = False,
) -> PatchEngine:
    """
    Wire an engine for the xCloud host from settings.

    `session` overrides the session facts in `settings` (the CLI fills in
    host version and play context from its own options).
    """
    log = log or PatchLog()
    session = session or settings.session
    catalog = catalog or build_catalog()
    layout = layout or load_default_layout()

    rule_ctx = RuleContext(
        prefs=settings.preferences,
        flags=settings.flags,
        payloads=Payloads.from_dir(settings.payload_dir),
    )
    cond_ctx = ConditionContext(prefs=settings.preferences, flags=settings.flags, session=session)

    lists = build_phases(layout, cond_ctx, catalog, rule_ctx=rule_ctx, log=log)
    scheduler = PhaseScheduler.from_lists(lists, marker=layout.marker)
    state = EngineState(scheduler=scheduler, cache=PatchCache(store, log=log))

    return PatchEngine(
        catalog,
        state,
        rule_ctx=rule_ctx,
        materializer=materializer,
        session=session,
        log=log,
        events=events,
        retry_cached=retry_cached,
    )
