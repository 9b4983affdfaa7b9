"""
Migration steps and the runner that applies them.

Step bodies belong to the host; this module only fixes their ordering and
checkpoint contract. A step must be atomic per persisted entity so a
failure never leaves one entity half-migrated.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Awaitable, Callable, Protocol, Sequence, runtime_checkable

from .version import compare_versions, is_newer_version

logger = logging.getLogger(__name__)

StepFn = Callable[[], Any]
Checkpoint = Callable[["MigrationStep"], Awaitable[Any]]


@dataclass(frozen=True)
class MigrationStep:
    from_version: str
    to_version: str
    apply: StepFn
    description: str = ""

    def __post_init__(self) -> None:
        if not is_newer_version(self.to_version, self.from_version):
            raise ValueError(
                f"migration step must move forward: {self.from_version} -> {self.to_version}"
            )

    def label(self) -> str:
        text = f"{self.from_version} -> {self.to_version}"
        return f"{text} ({self.description})" if self.description else text


@dataclass
class MigrationResult:
    """What a run did: the steps it completed, and where it stopped if it failed."""

    completed: list[MigrationStep] = field(default_factory=list)
    failed_step: MigrationStep | None = None
    error: BaseException | None = None

    @property
    def success(self) -> bool:
        return self.error is None


@runtime_checkable
class MigrationRunnerBackend(Protocol):
    def plan(self, from_version: str | None, to_version: str) -> list[MigrationStep]: ...

    async def run(
        self,
        from_version: str | None,
        to_version: str,
        checkpoint: Checkpoint,
    ) -> MigrationResult: ...


class MigrationRunner:
    """Applies an ordered sequence of steps, checkpointing after each one."""

    def __init__(self, steps: Sequence[MigrationStep] = ()):
        self.steps = sorted(steps, key=cmp_to_key(lambda a, b: compare_versions(a.to_version, b.to_version)))

    def plan(self, from_version: str | None, to_version: str) -> list[MigrationStep]:
        """
        Steps needed to move data from from_version to to_version, in order.

        A step is included when its target is newer than from_version (every
        step when from_version is None) and not newer than to_version.
        """
        return [
            step
            for step in self.steps
            if (from_version is None or is_newer_version(step.to_version, from_version))
            and not is_newer_version(step.to_version, to_version)
        ]

    async def run(
        self,
        from_version: str | None,
        to_version: str,
        checkpoint: Checkpoint,
    ) -> MigrationResult:
        result = MigrationResult()
        for step in self.plan(from_version, to_version):
            logger.info("Applying migration %s", step.label())
            try:
                outcome = step.apply()
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception as e:
                logger.error("Migration %s failed: %s", step.label(), e)
                result.failed_step = step
                result.error = e
                return result
            try:
                await checkpoint(step)
            except Exception as e:
                # Applied but not recorded; the next run repeats this step.
                logger.error("Checkpoint after migration %s failed: %s", step.label(), e)
                result.failed_step = step
                result.error = e
                return result
            result.completed.append(step)
        return result

