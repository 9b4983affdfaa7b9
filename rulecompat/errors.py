"""
Error types for the compatibility layer.

Redirectors never raise on identifiers they do not own; the errors here are
the ones callers are expected to see (unregistered settings, rejected flag
writes) or that the migration gate reports in its outcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .migration.steps import MigrationStep


class CompatError(Exception):
    """Base class for rulecompat errors."""


class ConfigurationError(CompatError, KeyError):
    """A setting was read or written before it was registered."""

    def __init__(self, namespace: str, key: str):
        self.namespace = namespace
        self.key = key
        super().__init__(f"Setting is not registered: {namespace}.{key}")

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return str(self.args[0])


class FlagValidationError(CompatError, ValueError):
    """A flag write failed schema validation; nothing was persisted."""

    def __init__(self, scope: str, key: str, errors: list[dict[str, Any]] | None = None):
        self.scope = scope
        self.key = key
        self.errors = errors or []
        detail = "; ".join(
            f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}" for e in self.errors
        )
        message = f"Invalid flag value for {scope}.{key}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class ReferenceResolutionError(CompatError, LookupError):
    """
    No canonical or alias path resolved.

    Returned inside a not-found ResolveResult; resolve() never raises it.
    """

    def __init__(self, path: str, attempted: tuple[str, ...]):
        self.path = path
        self.attempted = attempted
        super().__init__(f"Reference not found: {path} (tried {', '.join(attempted)})")


class MigrationBlockedError(CompatError):
    """Stored version is older than the oldest version that can be migrated."""

    def __init__(self, stored_version: str, minimum_version: str):
        self.stored_version = stored_version
        self.minimum_version = minimum_version
        super().__init__(
            f"Stored data version {stored_version} is older than the minimum migratable "
            f"version {minimum_version}; migration was not attempted"
        )


class MigrationStepError(CompatError):
    """
    A migration step or version write failed; the run halted at the last checkpoint.

    `stage` names what failed when no single step is to blame (the
    structural relocation, the version stamp, the final version write).
    """

    def __init__(
        self,
        step: MigrationStep | None,
        cause: BaseException,
        checkpoint: str | None,
        *,
        stage: str = "structural relocation",
    ):
        self.step = step
        self.cause = cause
        self.checkpoint = checkpoint
        self.stage = stage if step is None else "step"
        if step is not None:
            where = f"step {step.from_version} -> {step.to_version}"
        else:
            where = stage
        super().__init__(f"Migration {where} failed: {type(cause).__name__}: {cause}")
