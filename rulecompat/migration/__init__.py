"""
Schema-version gated data migration.

The gate decides whether to skip, block or run; the runner applies ordered
steps; the stored version is checkpointed after every step.
"""

from __future__ import annotations

from .gate import (
    DEFAULT_VERSION_SETTING,
    GateDecision,
    GateInputs,
    GateOutcome,
    GateState,
    MigrationGate,
    decide,
)
from .steps import MigrationResult, MigrationRunner, MigrationRunnerBackend, MigrationStep
from .version import compare_versions, is_newer_version, parse_version

__all__ = [
    "DEFAULT_VERSION_SETTING",
    "GateDecision",
    "GateInputs",
    "GateOutcome",
    "GateState",
    "MigrationGate",
    "MigrationResult",
    "MigrationRunner",
    "MigrationRunnerBackend",
    "MigrationStep",
    "compare_versions",
    "decide",
    "is_newer_version",
    "parse_version",
]
