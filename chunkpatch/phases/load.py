from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any

from ..patchlog import PatchLog
from ..rules.base import Catalog, RuleContext
from .conditions import CONDITIONS, ConditionContext, evaluate, split_condition
from .schema import DEFERRED, INITIAL, PHASES, PhaseGroup, PhaseLayout, PhaseLists

DEFAULT_LAYOUT_PATH = Path(__file__).parent / "xcloud.toml"


def _coerce_str_list(value: Any, what: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"{what} must be a list of strings")
    items = tuple(str(v).strip() for v in value)
    if any(not item for item in items):
        raise ValueError(f"{what} contains an empty entry")
    return items


def layout_from_dict(data: dict[str, Any]) -> PhaseLayout:
    layout_id = str(data.get("layout_id", "")).strip()
    if not layout_id:
        raise ValueError("layout_id is required")

    version = int(data.get("version", 0))
    if version <= 0:
        raise ValueError("version must be a positive integer")

    marker = data.get("marker")
    marker_str = str(marker).strip() if isinstance(marker, str) and marker.strip() else None

    groups: dict[str, list[PhaseGroup]] = {phase: [] for phase in PHASES}
    for phase in PHASES:
        raw_groups = data.get(phase, [])
        if not isinstance(raw_groups, list):
            raise ValueError(f"{phase} must be an array of tables")

        for i, raw in enumerate(raw_groups):
            if not isinstance(raw, dict):
                raise ValueError(f"{phase}[{i}] must be a table")

            rules = _coerce_str_list(raw.get("rules"), f"{phase}[{i}].rules")
            when = _coerce_str_list(raw.get("when"), f"{phase}[{i}].when")
            for expr in when:
                name, _ = split_condition(expr)
                if name not in CONDITIONS:
                    raise ValueError(f"{phase}[{i}]: unknown condition {name!r}")

            groups[phase].append(PhaseGroup(rules=rules, when=when))

    description = data.get("description")
    return PhaseLayout(
        layout_id=layout_id,
        version=version,
        marker=marker_str,
        description=str(description) if isinstance(description, str) else None,
        initial=tuple(groups[INITIAL]),
        deferred=tuple(groups[DEFERRED]),
    )


def load_layout(path: Path) -> PhaseLayout:
    """
    Load a phase layout from TOML.

    Group order and rule order within a group are significant: rules are
    tried against each chunk in exactly this order.
    """
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    return layout_from_dict(data)


def load_default_layout() -> PhaseLayout:
    return load_layout(DEFAULT_LAYOUT_PATH)


def build_phases(
    layout: PhaseLayout,
    ctx: ConditionContext,
    catalog: Catalog,
    rule_ctx: RuleContext | None = None,
    log: PatchLog | None = None,
) -> PhaseLists:
    """
    Evaluate a layout against the current configuration.

    A name is kept only where it first appears, so a rule listed in both
    phases stays in the initial one. Rules that need a payload the
    integration did not provide are left out.
    """
    result = PhaseLists()
    seen: set[str] = set()

    for phase in PHASES:
        target = result.initial if phase == INITIAL else result.deferred

        for group in layout.groups(phase):
            if not all(evaluate(expr, ctx) for expr in group.when):
                continue

            for name in group.rules:
                if name in seen:
                    continue

                rule = catalog.get(name)
                if rule is not None and rule.payload and rule_ctx is not None and not rule_ctx.payloads.has(rule.payload):
                    result.skipped[name] = f"payload '{rule.payload}' not available"
                    continue

                seen.add(name)
                target.append(name)

    if log is not None:
        for name, reason in result.skipped.items():
            log.info("Rule skipped", rule=name, reason=reason)

    return result
