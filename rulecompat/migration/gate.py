"""
Migration gate.

Decides, once per process start, whether persisted data needs migrating and
whether that is safe:

    UNKNOWN -> {UP_TO_DATE, PENDING_MIGRATION, BLOCKED} -> MIGRATING -> {DONE, FAILED}

- No stored version and nothing persisted: a fresh install. The current
  version is stamped and nothing runs.
- Stored version at or past the target schema version: nothing to do.
- Stored version below the minimum migratable version: BLOCKED. A
  persistent warning is raised and no step is ever invoked; skipping that
  many steps risks silent data corruption.
- Otherwise the structural relocation runs first (when the stored version
  predates its threshold), then the runner applies each step in order.

The stored version is checkpointed after every successful step, never only
at the end, and only ever moves forward. A failed run leaves it at the last
completed step so the next start resumes there.

Only a privileged caller migrates. Everyone else observes the decision.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping

from ..errors import CompatError, ConfigurationError, MigrationBlockedError, MigrationStepError
from ..identity import Identity
from ..journal import (
    GATE_EVALUATED,
    MIGRATION_BLOCKED,
    MIGRATION_CHECKPOINT,
    MIGRATION_COMPLETED,
    MIGRATION_FAILED,
    MIGRATION_RELOCATED,
    MIGRATION_STAMPED,
    MigrationJournal,
)
from ..notify import Notifier, RecordingNotifier
from ..redirect.settings import SettingsBackend
from ..store.settings import SettingDefinition
from .steps import MigrationRunnerBackend, MigrationStep
from .version import is_newer_version

logger = logging.getLogger(__name__)

DEFAULT_VERSION_SETTING = "systemMigrationVersion"


class GateState(str, Enum):
    UNKNOWN = "unknown"
    UP_TO_DATE = "up_to_date"
    PENDING_MIGRATION = "pending_migration"
    BLOCKED = "blocked"
    MIGRATING = "migrating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class GateInputs:
    stored_version: str | None
    current_system_version: str
    minimum_migratable_version: str
    target_schema_version: str
    has_persisted_entities: bool
    relocation_threshold: str | None = None


@dataclass(frozen=True)
class GateDecision:
    """Pure verdict on a set of inputs. Nothing has been written yet."""

    state: GateState
    inputs: GateInputs
    reason: str
    stamp_version: str | None = None
    needs_relocation: bool = False

    @property
    def requires_migration(self) -> bool:
        return self.state is GateState.PENDING_MIGRATION


@dataclass
class GateOutcome:
    state: GateState
    decision: GateDecision
    stored_version: str | None
    completed_steps: list[MigrationStep] = field(default_factory=list)
    error: CompatError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": self.state.value,
            "reason": self.decision.reason,
            "stored_version": self.stored_version,
            "completed_steps": [s.label() for s in self.completed_steps],
            "error": str(self.error) if self.error is not None else None,
        }


def decide(inputs: GateInputs) -> GateDecision:
    """Classify inputs as UP_TO_DATE, BLOCKED or PENDING_MIGRATION."""
    stored = inputs.stored_version

    if stored is None and not inputs.has_persisted_entities:
        return GateDecision(
            state=GateState.UP_TO_DATE,
            inputs=inputs,
            reason="fresh install: no stored version and no persisted data",
            stamp_version=inputs.current_system_version,
        )

    if stored is not None and not is_newer_version(inputs.target_schema_version, stored):
        return GateDecision(
            state=GateState.UP_TO_DATE,
            inputs=inputs,
            reason=f"stored version {stored} is at or past target {inputs.target_schema_version}",
        )

    if stored is not None and is_newer_version(inputs.minimum_migratable_version, stored):
        return GateDecision(
            state=GateState.BLOCKED,
            inputs=inputs,
            reason=(
                f"stored version {stored} is older than minimum migratable "
                f"version {inputs.minimum_migratable_version}"
            ),
        )

    threshold = inputs.relocation_threshold
    needs_relocation = threshold is not None and (stored is None or is_newer_version(threshold, stored))
    return GateDecision(
        state=GateState.PENDING_MIGRATION,
        inputs=inputs,
        reason=f"migration required from {stored or 'unversioned data'} to {inputs.target_schema_version}",
        needs_relocation=needs_relocation,
    )


async def _settle(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class MigrationGate:
    """Evaluates the migration decision and, for the privileged caller, carries it out."""

    def __init__(
        self,
        identity: Identity,
        settings: SettingsBackend,
        runner: MigrationRunnerBackend,
        *,
        current_version: str,
        target_schema_version: str,
        minimum_migratable_version: str,
        relocation_threshold: str | None = None,
        version_setting: str = DEFAULT_VERSION_SETTING,
        world_flags: Mapping[str, Any] | None = None,
        relocate: Callable[[], Any] | None = None,
        notifier: Notifier | None = None,
        journal: MigrationJournal | None = None,
    ):
        self.identity = identity
        self.settings = settings
        self.runner = runner
        self.current_version = current_version
        self.target_schema_version = target_schema_version
        self.minimum_migratable_version = minimum_migratable_version
        self.relocation_threshold = relocation_threshold
        self.version_setting = version_setting
        self.world_flags = world_flags
        self.relocate = relocate
        self.notifier = notifier or RecordingNotifier()
        self.journal = journal or MigrationJournal()

        self.state = GateState.UNKNOWN
        self._checkpointed: str | None = None
        self._task: asyncio.Future[GateOutcome] | None = None

    # -------------------------------------------------------------------------
    # Stored version
    # -------------------------------------------------------------------------

    def register_settings(self) -> None:
        """Register the version setting under the canonical namespace."""
        self.settings.register(
            self.identity.canonical,
            self.version_setting,
            SettingDefinition(name="System Migration Version", scope="world", config=False, type=str, default=""),
        )

    def read_stored_version(self) -> str | None:
        """The version setting, falling back to the world flags' version field."""
        try:
            value = self.settings.get(self.identity.canonical, self.version_setting)
        except ConfigurationError:
            value = None
        text = str(value).strip() if value is not None else ""
        if text:
            return text

        if self.world_flags is not None:
            flags = self.world_flags.get(self.identity.canonical)
            if isinstance(flags, Mapping) and flags.get("version") is not None:
                text = str(flags["version"]).strip()
                if text:
                    return text
        return None

    async def _write_version(self, version: str) -> None:
        await _settle(self.settings.set(self.identity.canonical, self.version_setting, version))
        self._checkpointed = version

    async def _checkpoint(self, step: MigrationStep) -> None:
        current = self._checkpointed
        if current is not None and not is_newer_version(step.to_version, current):
            logger.warning("Not moving stored version back from %s to %s", current, step.to_version)
            return
        await self._write_version(step.to_version)
        self.journal.record(
            MIGRATION_CHECKPOINT,
            from_version=step.from_version,
            to_version=step.to_version,
            state=GateState.MIGRATING.value,
        )
        logger.info("Checkpointed stored version at %s", step.to_version)

    # -------------------------------------------------------------------------
    # Decision
    # -------------------------------------------------------------------------

    def inputs(self, *, has_persisted_entities: bool) -> GateInputs:
        return GateInputs(
            stored_version=self.read_stored_version(),
            current_system_version=self.current_version,
            minimum_migratable_version=self.minimum_migratable_version,
            target_schema_version=self.target_schema_version,
            has_persisted_entities=has_persisted_entities,
            relocation_threshold=self.relocation_threshold,
        )

    def evaluate(self, *, has_persisted_entities: bool) -> GateDecision:
        """Decide without writing anything. Safe for any caller."""
        decision = decide(self.inputs(has_persisted_entities=has_persisted_entities))
        if self.state is GateState.UNKNOWN:
            self.state = decision.state
        return decision

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run(self, *, has_persisted_entities: bool, privileged: bool) -> GateOutcome:
        """
        Evaluate the gate and, for the privileged caller, act on it.

        The privileged path executes at most once per gate; later or
        concurrent calls get the same outcome. Failures are reported in the
        outcome, not raised.
        """
        if not privileged:
            decision = self.evaluate(has_persisted_entities=has_persisted_entities)
            return GateOutcome(
                state=self.state if self._task is not None else decision.state,
                decision=decision,
                stored_version=decision.inputs.stored_version,
            )

        if self._task is None:
            self._task = asyncio.ensure_future(self._run(has_persisted_entities))
        return await asyncio.shield(self._task)

    async def _run(self, has_persisted_entities: bool) -> GateOutcome:
        decision = decide(self.inputs(has_persisted_entities=has_persisted_entities))
        inputs = decision.inputs
        stored = inputs.stored_version
        self._checkpointed = stored
        self.state = decision.state
        self.journal.record(
            GATE_EVALUATED,
            from_version=stored,
            to_version=inputs.target_schema_version,
            state=decision.state.value,
            metadata={"reason": decision.reason},
        )
        logger.info("Migration gate: %s (%s)", decision.state.value, decision.reason)

        if decision.stamp_version is not None:
            try:
                await self._write_version(decision.stamp_version)
            except Exception as e:
                return self._fail(decision, MigrationStepError(None, e, self._checkpointed, stage="version stamp"), [])
            self.journal.record(MIGRATION_STAMPED, to_version=decision.stamp_version, state=self.state.value)
            return GateOutcome(state=self.state, decision=decision, stored_version=self._checkpointed)

        if decision.state is GateState.UP_TO_DATE:
            return GateOutcome(state=self.state, decision=decision, stored_version=stored)

        if decision.state is GateState.BLOCKED:
            blocked = MigrationBlockedError(stored or "", inputs.minimum_migratable_version)
            logger.warning("%s", blocked)
            self.notifier.warn(str(blocked), permanent=True)
            self.journal.record(MIGRATION_BLOCKED, from_version=stored, state=self.state.value, error=str(blocked))
            return GateOutcome(state=self.state, decision=decision, stored_version=stored, error=blocked)

        return await self._migrate(decision)

    async def _migrate(self, decision: GateDecision) -> GateOutcome:
        inputs = decision.inputs
        stored = inputs.stored_version
        target = inputs.target_schema_version
        self.state = GateState.MIGRATING
        self.notifier.info(
            f"Applying data migration to version {target}. Do not shut down until it completes.",
            permanent=True,
        )

        if decision.needs_relocation and self.relocate is not None:
            try:
                await _settle(self.relocate())
            except Exception as e:
                return self._fail(decision, MigrationStepError(None, e, self._checkpointed), [])
            self.journal.record(
                MIGRATION_RELOCATED,
                from_version=stored,
                state=self.state.value,
                metadata={"threshold": inputs.relocation_threshold},
            )

        try:
            result = await self.runner.run(stored, target, self._checkpoint)
        except Exception as e:
            # Host runner broke its contract; the stored version is whatever last succeeded.
            return self._fail(decision, MigrationStepError(None, e, self._checkpointed, stage="runner"), [])

        if not result.success:
            error = MigrationStepError(result.failed_step, result.error, self._checkpointed)
            return self._fail(decision, error, result.completed)

        if self._checkpointed is None or is_newer_version(target, self._checkpointed):
            try:
                await self._write_version(target)
            except Exception as e:
                error = MigrationStepError(None, e, self._checkpointed, stage="final version write")
                return self._fail(decision, error, result.completed)

        self.state = GateState.DONE
        self.journal.record(
            MIGRATION_COMPLETED,
            from_version=stored,
            to_version=target,
            state=self.state.value,
            metadata={"steps": len(result.completed)},
        )
        self.notifier.info(f"Data migration to version {target} completed.")
        return GateOutcome(
            state=self.state,
            decision=decision,
            stored_version=self._checkpointed,
            completed_steps=list(result.completed),
        )

    def _fail(
        self,
        decision: GateDecision,
        error: MigrationStepError,
        completed: list[MigrationStep],
    ) -> GateOutcome:
        self.state = GateState.FAILED
        logger.error("%s; stored version remains %s", error, self._checkpointed)
        self.notifier.error(
            f"{error}. Data remains at version {self._checkpointed or 'unversioned'}; "
            "migration resumes on next start."
        )
        self.journal.record(
            MIGRATION_FAILED,
            from_version=self._checkpointed,
            to_version=decision.inputs.target_schema_version,
            state=self.state.value,
            error=str(error),
        )
        return GateOutcome(
            state=self.state,
            decision=decision,
            stored_version=self._checkpointed,
            completed_steps=list(completed),
            error=error,
        )
