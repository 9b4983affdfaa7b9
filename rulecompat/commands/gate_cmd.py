"""Gate command: evaluate the migration decision for a stored version."""

from __future__ import annotations

import json

from rich.console import Console
from rich.table import Table

from ..config import CompatConfig
from ..migration.gate import GateInputs, GateState, decide


def run_gate(
    config: CompatConfig,
    *,
    stored_version: str | None,
    has_persisted_entities: bool,
    output_json: bool = False,
) -> int:
    """
    Print what the gate would decide. Nothing is written.

    Returns 1 when the stored version is too old to migrate.
    """
    migration = config.migration
    decision = decide(
        GateInputs(
            stored_version=stored_version or None,
            current_system_version=migration.current_version,
            minimum_migratable_version=migration.minimum_migratable_version,
            target_schema_version=migration.target_schema_version,
            has_persisted_entities=has_persisted_entities,
            relocation_threshold=migration.relocation_threshold,
        )
    )
    exit_code = 1 if decision.state is GateState.BLOCKED else 0

    if output_json:
        data = {
            "system": config.identity.canonical,
            "state": decision.state.value,
            "reason": decision.reason,
            "stored_version": decision.inputs.stored_version,
            "target_schema_version": migration.target_schema_version,
            "minimum_migratable_version": migration.minimum_migratable_version,
            "stamp_version": decision.stamp_version,
            "needs_relocation": decision.needs_relocation,
        }
        print(json.dumps(data, indent=2, sort_keys=True))
        return exit_code

    style = {
        GateState.UP_TO_DATE: "green",
        GateState.PENDING_MIGRATION: "yellow",
        GateState.BLOCKED: "bold red",
    }.get(decision.state, "")

    table = Table(title=f"Migration gate: {config.identity.canonical}")
    table.add_column("field", style="cyan", no_wrap=True)
    table.add_column("value")
    table.add_row("state", f"[{style}]{decision.state.value}[/{style}]" if style else decision.state.value)
    table.add_row("reason", decision.reason)
    table.add_row("stored", decision.inputs.stored_version or "(none)")
    table.add_row("target", migration.target_schema_version)
    table.add_row("minimum", migration.minimum_migratable_version)
    if decision.stamp_version:
        table.add_row("stamp", decision.stamp_version)
    if decision.needs_relocation:
        table.add_row("relocation", "required")

    Console().print(table)
    return exit_code
