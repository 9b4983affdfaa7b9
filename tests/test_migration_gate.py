"""Tests for the migration gate: decisions, checkpointing and reporting."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable

import pytest

from rulecompat.errors import ConfigurationError, MigrationBlockedError, MigrationStepError
from rulecompat.identity import Identity
from rulecompat.journal import (
    GATE_EVALUATED,
    MIGRATION_BLOCKED,
    MIGRATION_CHECKPOINT,
    MIGRATION_COMPLETED,
    MIGRATION_FAILED,
    MIGRATION_RELOCATED,
    MIGRATION_STAMPED,
    MigrationJournal,
    read_journal,
)
from rulecompat.migration import GateInputs, GateState, MigrationGate, MigrationRunner, MigrationStep, decide
from rulecompat.notify import RecordingNotifier
from rulecompat.redirect import AliasedFlags, SettingsRedirector
from rulecompat.store import SettingsStore

VERSION_KEY = "dnd5e-2014.systemMigrationVersion"


class StepLog:
    """Records which steps ran."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    def step(self, name: str, *, fail: bool = False) -> Callable[[], None]:
        def apply() -> None:
            self.calls.append(name)
            if fail:
                raise RuntimeError(f"{name} exploded")

        return apply


def make_gate(
    identity: Identity,
    store: SettingsStore,
    steps: list[MigrationStep],
    *,
    notifier: RecordingNotifier | None = None,
    **kwargs: Any,
) -> MigrationGate:
    options: dict[str, Any] = {
        "current_version": "3.3.1",
        "target_schema_version": "3.3.1",
        "minimum_migratable_version": "3.0.0",
    }
    options.update(kwargs)
    gate = MigrationGate(
        identity,
        SettingsRedirector(identity, store),
        MigrationRunner(steps),
        notifier=notifier or RecordingNotifier(),
        **options,
    )
    gate.register_settings()
    return gate


@pytest.fixture
def log() -> StepLog:
    return StepLog()


@pytest.fixture
def steps(log: StepLog) -> list[MigrationStep]:
    return [
        MigrationStep("3.1.0", "3.2.0", log.step("3.2.0")),
        MigrationStep("3.2.0", "3.3.1", log.step("3.3.1")),
    ]


class TestDecide:
    def _inputs(self, stored: str | None, *, entities: bool = True, **kwargs: Any) -> GateInputs:
        return GateInputs(
            stored_version=stored,
            current_system_version="3.3.1",
            minimum_migratable_version="3.0.0",
            target_schema_version="3.3.1",
            has_persisted_entities=entities,
            **kwargs,
        )

    def test_fresh_install_stamps_current(self) -> None:
        decision = decide(self._inputs(None, entities=False))
        assert decision.state is GateState.UP_TO_DATE
        assert decision.stamp_version == "3.3.1"

    def test_at_or_past_target(self) -> None:
        assert decide(self._inputs("3.3.1")).state is GateState.UP_TO_DATE
        assert decide(self._inputs("4.0.0")).state is GateState.UP_TO_DATE
        assert decide(self._inputs("4.0.0")).stamp_version is None

    def test_below_floor_blocked(self) -> None:
        assert decide(self._inputs("2.0.0")).state is GateState.BLOCKED

    def test_pending(self) -> None:
        decision = decide(self._inputs("3.1.0"))
        assert decision.state is GateState.PENDING_MIGRATION
        assert decision.requires_migration
        assert not decision.needs_relocation

    def test_unversioned_data_with_entities_migrates(self) -> None:
        decision = decide(self._inputs(None, relocation_threshold="3.1.0"))
        assert decision.state is GateState.PENDING_MIGRATION
        assert decision.needs_relocation

    def test_relocation_threshold(self) -> None:
        assert decide(self._inputs("3.0.5", relocation_threshold="3.1.0")).needs_relocation
        assert not decide(self._inputs("3.1.0", relocation_threshold="3.1.0")).needs_relocation


class TestGateOutcomes:
    @pytest.mark.asyncio
    async def test_fresh_install(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)

        outcome = await gate.run(has_persisted_entities=False, privileged=True)

        assert outcome.state is GateState.UP_TO_DATE
        assert outcome.stored_version == "3.3.1"
        assert store.values[VERSION_KEY] == "3.3.1"
        assert log.calls == []

    @pytest.mark.asyncio
    async def test_up_to_date(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)
        store.values[VERSION_KEY] = "3.3.1"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.UP_TO_DATE
        assert outcome.success
        assert log.calls == []

    @pytest.mark.asyncio
    async def test_blocked(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        notifier = RecordingNotifier()
        gate = make_gate(identity, store, steps, notifier=notifier)
        store.values[VERSION_KEY] = "2.0.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.BLOCKED
        assert isinstance(outcome.error, MigrationBlockedError)
        assert outcome.error.minimum_version == "3.0.0"
        assert log.calls == []
        assert store.values[VERSION_KEY] == "2.0.0"
        (warning,) = notifier.persistent
        assert warning.level == "warning"
        assert "2.0.0" in warning.message

    @pytest.mark.asyncio
    async def test_full_migration(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        notifier = RecordingNotifier()
        gate = make_gate(identity, store, steps, notifier=notifier)
        store.values[VERSION_KEY] = "3.1.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.DONE
        assert gate.state is GateState.DONE
        assert log.calls == ["3.2.0", "3.3.1"]
        assert [s.to_version for s in outcome.completed_steps] == ["3.2.0", "3.3.1"]
        assert store.values[VERSION_KEY] == "3.3.1"
        assert notifier.persistent[0].level == "info"
        assert "completed" in notifier.notifications[-1].message

    @pytest.mark.asyncio
    async def test_failure_keeps_last_checkpoint(self, identity: Identity, log: StepLog) -> None:
        store = SettingsStore()
        notifier = RecordingNotifier()
        broken = [
            MigrationStep("3.1.0", "3.2.0", log.step("3.2.0")),
            MigrationStep("3.2.0", "3.3.1", log.step("3.3.1", fail=True)),
        ]
        gate = make_gate(identity, store, broken, notifier=notifier)
        store.values[VERSION_KEY] = "3.1.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.FAILED
        assert store.values[VERSION_KEY] == "3.2.0"
        assert outcome.stored_version == "3.2.0"
        assert isinstance(outcome.error, MigrationStepError)
        assert outcome.error.step is broken[1]
        assert outcome.error.checkpoint == "3.2.0"
        assert isinstance(outcome.error.cause, RuntimeError)
        assert notifier.notifications[-1].level == "error"

        # Next start resumes from the checkpoint.
        fixed = [
            MigrationStep("3.1.0", "3.2.0", log.step("3.2.0 again")),
            MigrationStep("3.2.0", "3.3.1", log.step("3.3.1 fixed")),
        ]
        retry = make_gate(identity, store, fixed)
        outcome = await retry.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.DONE
        assert log.calls == ["3.2.0", "3.3.1", "3.3.1 fixed"]
        assert store.values[VERSION_KEY] == "3.3.1"

    @pytest.mark.asyncio
    async def test_unversioned_data_runs_every_step(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.DONE
        assert log.calls == ["3.2.0", "3.3.1"]

    @pytest.mark.asyncio
    async def test_target_written_without_matching_step(self, identity: Identity) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, [])
        store.values[VERSION_KEY] = "3.2.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.DONE
        assert store.values[VERSION_KEY] == "3.3.1"

    @pytest.mark.asyncio
    async def test_steps_past_target_not_run(self, identity: Identity, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(
            identity,
            store,
            [
                MigrationStep("3.1.0", "3.3.1", log.step("3.3.1")),
                MigrationStep("3.3.1", "3.4.0", log.step("3.4.0")),
            ],
        )
        store.values[VERSION_KEY] = "3.1.0"

        await gate.run(has_persisted_entities=True, privileged=True)

        assert log.calls == ["3.3.1"]
        assert store.values[VERSION_KEY] == "3.3.1"


class TestRelocation:
    @pytest.mark.asyncio
    async def test_relocation_runs_before_steps(self, identity: Identity, log: StepLog) -> None:
        store = SettingsStore()
        steps = [MigrationStep("3.0.5", "3.3.1", log.step("3.3.1"))]
        gate = make_gate(
            identity,
            store,
            steps,
            relocation_threshold="3.1.0",
            relocate=lambda: log.calls.append("relocate"),
        )
        store.values[VERSION_KEY] = "3.0.5"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.DONE
        assert log.calls == ["relocate", "3.3.1"]

    @pytest.mark.asyncio
    async def test_relocation_skipped_past_threshold(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(
            identity,
            store,
            steps,
            relocation_threshold="3.1.0",
            relocate=lambda: log.calls.append("relocate"),
        )
        store.values[VERSION_KEY] = "3.1.0"

        await gate.run(has_persisted_entities=True, privileged=True)

        assert "relocate" not in log.calls

    @pytest.mark.asyncio
    async def test_async_relocation_failure_halts_run(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()

        async def relocate() -> None:
            raise OSError("folder locked")

        gate = make_gate(identity, store, steps, relocation_threshold="3.2.0", relocate=relocate)
        store.values[VERSION_KEY] = "3.1.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.FAILED
        assert isinstance(outcome.error, MigrationStepError)
        assert outcome.error.step is None
        assert log.calls == []
        assert store.values[VERSION_KEY] == "3.1.0"


class TestCallers:
    @pytest.mark.asyncio
    async def test_non_privileged_caller_never_migrates(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)
        store.values[VERSION_KEY] = "3.1.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=False)

        assert outcome.state is GateState.PENDING_MIGRATION
        assert log.calls == []
        assert store.values[VERSION_KEY] == "3.1.0"

    @pytest.mark.asyncio
    async def test_non_privileged_fresh_install_writes_nothing(self, identity: Identity, steps) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)

        outcome = await gate.run(has_persisted_entities=False, privileged=False)

        assert outcome.state is GateState.UP_TO_DATE
        assert VERSION_KEY not in store.values

    @pytest.mark.asyncio
    async def test_privileged_run_happens_once(self, identity: Identity, steps, log: StepLog) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)
        store.values[VERSION_KEY] = "3.1.0"

        first, second = await asyncio.gather(
            gate.run(has_persisted_entities=True, privileged=True),
            gate.run(has_persisted_entities=True, privileged=True),
        )
        third = await gate.run(has_persisted_entities=True, privileged=True)

        assert first is second is third
        assert log.calls == ["3.2.0", "3.3.1"]

    @pytest.mark.asyncio
    async def test_observer_sees_outcome_after_run(self, identity: Identity, steps) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)
        store.values[VERSION_KEY] = "3.1.0"

        await gate.run(has_persisted_entities=True, privileged=True)
        observed = await gate.run(has_persisted_entities=True, privileged=False)

        assert observed.state is GateState.DONE


class TestStoredVersion:
    def test_world_flag_fallback(self, identity: Identity, steps) -> None:
        world = AliasedFlags(identity, {"dnd5e-2014": {"version": "3.2.0"}})
        gate = make_gate(identity, SettingsStore(), steps, world_flags=world)
        assert gate.read_stored_version() == "3.2.0"

    def test_setting_wins_over_world_flag(self, identity: Identity, steps) -> None:
        store = SettingsStore()
        world = {"dnd5e-2014": {"version": "3.2.0"}}
        gate = make_gate(identity, store, steps, world_flags=world)
        store.values[VERSION_KEY] = "3.3.1"
        assert gate.read_stored_version() == "3.3.1"

    def test_unregistered_setting_reads_as_none(self, identity: Identity) -> None:
        gate = MigrationGate(
            identity,
            SettingsRedirector(identity, SettingsStore()),
            MigrationRunner(),
            current_version="3.3.1",
            target_schema_version="3.3.1",
            minimum_migratable_version="3.0.0",
        )
        assert gate.read_stored_version() is None

    def test_setting_registered_under_canonical(self, identity: Identity) -> None:
        store = SettingsStore()
        make_gate(identity, store, [])
        assert VERSION_KEY in store.definitions

    def test_evaluate_writes_nothing(self, identity: Identity, steps) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps)

        decision = gate.evaluate(has_persisted_entities=False)

        assert decision.stamp_version == "3.3.1"
        assert gate.state is GateState.UP_TO_DATE
        assert store.values == {}


class TestJournal:
    @pytest.mark.asyncio
    async def test_events_recorded(self, identity: Identity, steps, tmp_path: Path) -> None:
        store = SettingsStore()
        journal = MigrationJournal(tmp_path / ".rulecompat")
        gate = make_gate(identity, store, steps, journal=journal)
        store.values[VERSION_KEY] = "3.1.0"

        await gate.run(has_persisted_entities=True, privileged=True)

        events = [e.event for e in read_journal(tmp_path / ".rulecompat")]
        assert events == [GATE_EVALUATED, MIGRATION_CHECKPOINT, MIGRATION_CHECKPOINT, MIGRATION_COMPLETED]

    @pytest.mark.asyncio
    async def test_failure_and_relocation_recorded(self, identity: Identity, log: StepLog) -> None:
        store = SettingsStore()
        journal = MigrationJournal()
        steps = [MigrationStep("3.0.5", "3.3.1", log.step("3.3.1", fail=True))]
        gate = make_gate(
            identity,
            store,
            steps,
            journal=journal,
            relocation_threshold="3.1.0",
            relocate=lambda: None,
        )
        store.values[VERSION_KEY] = "3.0.5"

        await gate.run(has_persisted_entities=True, privileged=True)

        entries = journal.entries()
        assert [e.event for e in entries] == [GATE_EVALUATED, MIGRATION_RELOCATED, MIGRATION_FAILED]
        assert entries[-1].from_version == "3.0.5"
        assert "exploded" in entries[-1].error

    @pytest.mark.asyncio
    async def test_stamp_and_block_recorded(self, identity: Identity) -> None:
        journal = MigrationJournal()
        await make_gate(identity, SettingsStore(), [], journal=journal).run(
            has_persisted_entities=False, privileged=True
        )
        assert [e.event for e in journal.entries()] == [GATE_EVALUATED, MIGRATION_STAMPED]

        store = SettingsStore()
        journal = MigrationJournal()
        gate = make_gate(identity, store, [], journal=journal)
        store.values[VERSION_KEY] = "1.0.0"
        await gate.run(has_persisted_entities=True, privileged=True)
        assert [e.event for e in journal.entries()] == [GATE_EVALUATED, MIGRATION_BLOCKED]


class FailingSettingsStore(SettingsStore):
    """Settings store whose write of one specific value fails."""

    def __init__(self, fail_on: str) -> None:
        super().__init__()
        self.fail_on = fail_on

    async def set(self, namespace: str, key: str, value: Any) -> Any:
        if value == self.fail_on:
            raise OSError("disk full")
        return await super().set(namespace, key, value)


class TestVersionWriteFailures:
    @pytest.mark.asyncio
    async def test_failed_checkpoint_names_the_step(self, identity: Identity, steps, log: StepLog) -> None:
        store = FailingSettingsStore(fail_on="3.3.1")
        gate = make_gate(identity, store, steps)
        store.values[VERSION_KEY] = "3.1.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.FAILED
        assert isinstance(outcome.error, MigrationStepError)
        assert outcome.error.step is steps[1]
        assert outcome.error.stage == "step"
        assert "3.2.0 -> 3.3.1" in str(outcome.error)
        assert isinstance(outcome.error.cause, OSError)
        assert outcome.completed_steps == [steps[0]]
        assert outcome.stored_version == "3.2.0"
        assert store.values[VERSION_KEY] == "3.2.0"
        assert log.calls == ["3.2.0", "3.3.1"]

    @pytest.mark.asyncio
    async def test_failed_stamp_is_reported(self, identity: Identity, steps) -> None:
        gate = MigrationGate(
            identity,
            SettingsRedirector(identity, SettingsStore()),
            MigrationRunner(steps),
            current_version="3.3.1",
            target_schema_version="3.3.1",
            minimum_migratable_version="3.0.0",
        )

        outcome = await gate.run(has_persisted_entities=False, privileged=True)

        assert outcome.state is GateState.FAILED
        assert gate.state is GateState.FAILED
        assert isinstance(outcome.error, MigrationStepError)
        assert outcome.error.stage == "version stamp"
        assert isinstance(outcome.error.cause, ConfigurationError)
        assert await gate.run(has_persisted_entities=False, privileged=True) is outcome

    @pytest.mark.asyncio
    async def test_failed_final_write_is_reported(self, identity: Identity) -> None:
        store = FailingSettingsStore(fail_on="3.3.1")
        notifier = RecordingNotifier()
        gate = make_gate(identity, store, [], notifier=notifier)
        store.values[VERSION_KEY] = "3.2.0"

        outcome = await gate.run(has_persisted_entities=True, privileged=True)

        assert outcome.state is GateState.FAILED
        assert outcome.error.stage == "final version write"
        assert outcome.stored_version == "3.2.0"
        assert store.values[VERSION_KEY] == "3.2.0"
        assert notifier.notifications[-1].level == "error"


class TestBlankStoredVersion:
    def test_whitespace_setting_reads_as_none(self, identity: Identity, steps) -> None:
        store = SettingsStore()
        gate = make_gate(identity, store, steps, world_flags={"dnd5e-2014": {"version": "  "}})
        store.values[VERSION_KEY] = "   "

        assert gate.read_stored_version() is None
        assert gate.evaluate(has_persisted_entities=False).stamp_version == "3.3.1"

    def test_world_flag_version_is_stripped(self, identity: Identity, steps) -> None:
        gate = make_gate(identity, SettingsStore(), steps, world_flags={"dnd5e-2014": {"version": " 3.2.0 "}})
        assert gate.read_stored_version() == "3.2.0"
