"""
Composition root.

CompatContext is built once at process start and injected wherever
redirected access is needed. The Identity is constructed first; every other
component is built from it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, MutableMapping

from .config import CompatConfig
from .identity import Identity
from .journal import MigrationJournal
from .migration.gate import MigrationGate
from .migration.steps import MigrationRunner, MigrationRunnerBackend
from .notify import Notifier, RecordingNotifier
from .redirect.flags import EntityFlagRedirector
from .redirect.hooks import HookBackend, HookMirror
from .redirect.settings import SettingsBackend, SettingsRedirector
from .redirect.sheets import SheetBackend, SheetRegistryRedirector
from .redirect.world import AliasedFlags
from .references.rewriter import CatalogBackend, ReferenceRewriter
from .store import Catalog, HookBus, SettingsStore, SheetRegistry


@dataclass(frozen=True)
class CompatContext:
    identity: Identity
    settings: SettingsRedirector
    flags: EntityFlagRedirector
    hooks: HookMirror
    sheets: SheetRegistryRedirector
    references: ReferenceRewriter
    world_flags: AliasedFlags
    gate: MigrationGate

    @property
    def system_id(self) -> str:
        return self.identity.canonical

    def is_compatible(self, system_id: Any) -> bool:
        """True for the canonical id and every legacy alias."""
        return self.identity.is_compatible(system_id)

    @classmethod
    def build(
        cls,
        config: CompatConfig,
        *,
        settings_store: SettingsBackend | None = None,
        hook_bus: HookBackend | None = None,
        sheet_registry: SheetBackend | None = None,
        catalog: CatalogBackend | None = None,
        world_flags: MutableMapping[str, Any] | None = None,
        runner: MigrationRunnerBackend | None = None,
        relocate: Callable[[], Any] | None = None,
        notifier: Notifier | None = None,
        journal: MigrationJournal | None = None,
    ) -> CompatContext:
        """
        Wire every component around one Identity.

        Substrates that are not supplied default to the in-memory ones.
        """
        identity = config.identity
        settings = SettingsRedirector(identity, settings_store if settings_store is not None else SettingsStore())
        aliased_world_flags = AliasedFlags(identity, world_flags)

        gate = MigrationGate(
            identity,
            settings,
            runner if runner is not None else MigrationRunner(),
            current_version=config.migration.current_version,
            target_schema_version=config.migration.target_schema_version,
            minimum_migratable_version=config.migration.minimum_migratable_version,
            relocation_threshold=config.migration.relocation_threshold,
            version_setting=config.migration.version_setting,
            world_flags=aliased_world_flags,
            relocate=relocate,
            notifier=notifier if notifier is not None else RecordingNotifier(),
            journal=journal if journal is not None else MigrationJournal(),
        )
        gate.register_settings()

        return cls(
            identity=identity,
            settings=settings,
            flags=EntityFlagRedirector(identity),
            hooks=HookMirror(identity, hook_bus if hook_bus is not None else HookBus()),
            sheets=SheetRegistryRedirector(
                identity, sheet_registry if sheet_registry is not None else SheetRegistry()
            ),
            references=ReferenceRewriter(
                identity,
                catalog if catalog is not None else Catalog(),
                catalogs=config.catalogs,
            ),
            world_flags=aliased_world_flags,
            gate=gate,
        )
