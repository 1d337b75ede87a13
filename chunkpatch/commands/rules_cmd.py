"""Rules command - show the catalog and which phase each rule lands in."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from ..config import Settings, SessionContext
from ..phases import build_phases, load_default_layout
from ..phases.conditions import ConditionContext
from ..rules import Payloads, RuleContext, build_catalog


def collect_rules(settings: Settings, session: SessionContext) -> list[dict]:
    """One row per catalog rule, with its phase under the current settings."""
    catalog = build_catalog()
    layout = load_default_layout()
    rule_ctx = RuleContext(
        prefs=settings.preferences,
        flags=settings.flags,
        payloads=Payloads.from_dir(settings.payload_dir),
    )
    cond_ctx = ConditionContext(prefs=settings.preferences, flags=settings.flags, session=session)
    lists = build_phases(layout, cond_ctx, catalog, rule_ctx=rule_ctx)

    rows = []
    for rule in catalog:
        if rule.name in lists.initial:
            phase, position = "initial", lists.initial.index(rule.name) + 1
        elif rule.name in lists.deferred:
            phase, position = "deferred", lists.deferred.index(rule.name) + 1
        elif rule.name == layout.marker:
            phase, position = "marker", None
        else:
            phase, position = "off", None

        rows.append(
            {
                "name": rule.name,
                "phase": phase,
                "position": position,
                "payload": rule.payload,
                "skipped": lists.skipped.get(rule.name),
                "description": rule.description,
            }
        )

    phase_order = {"initial": 0, "marker": 1, "deferred": 2, "off": 3}
    rows.sort(key=lambda r: (phase_order[r["phase"]], r["position"] or 0, r["name"]))
    return rows


def run_rules(settings: Settings, session: SessionContext, *, output_json: bool = False) -> int:
    rows = collect_rules(settings, session)

    if output_json:
        print(json.dumps(rows, indent=2))
        return 0

    console = Console()
    table = Table(title=f"Rules ({len(rows)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Rule", style="bold")
    table.add_column("Phase")
    table.add_column("Payload", style="cyan")
    table.add_column("Description")

    phase_styles = {"initial": "green", "deferred": "blue", "marker": "magenta", "off": "dim"}
    for row in rows:
        style = phase_styles[row["phase"]]
        note = row["description"]
        if row["skipped"]:
            note = f"[yellow]{row['skipped']}[/yellow]"
        table.add_row(
            str(row["position"] or ""),
            row["name"],
            f"[{style}]{row['phase']}[/{style}]",
            row["payload"] or "",
            note,
        )

    console.print(table)
    return 0
