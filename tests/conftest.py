"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest

from rulecompat.config import CompatConfig, MigrationConfig
from rulecompat.context import CompatContext
from rulecompat.identity import Identity
from rulecompat.notify import RecordingNotifier
from rulecompat.store import Catalog, HookBus, SettingsStore, SheetRegistry

CANONICAL = "dnd5e-2014"
LEGACY = "dnd5e"


@pytest.fixture
def identity() -> Identity:
    """The canonical id with its single legacy alias."""
    return Identity.of(CANONICAL, [LEGACY])


@pytest.fixture
def settings_store() -> SettingsStore:
    return SettingsStore()


@pytest.fixture
def hook_bus() -> HookBus:
    return HookBus()


@pytest.fixture
def sheet_registry() -> SheetRegistry:
    return SheetRegistry(subtypes={"Actor": ("character", "npc")})


@pytest.fixture
def catalog() -> Catalog:
    return Catalog()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def compat_config(identity: Identity) -> CompatConfig:
    return CompatConfig(
        identity=identity,
        migration=MigrationConfig(
            current_version="3.3.1",
            target_schema_version="3.3.0",
            minimum_migratable_version="3.0.0",
            relocation_threshold="3.1.0",
        ),
        catalogs=("Compendium",),
    )


@pytest.fixture
def context(
    compat_config: CompatConfig,
    settings_store: SettingsStore,
    hook_bus: HookBus,
    sheet_registry: SheetRegistry,
    catalog: Catalog,
    notifier: RecordingNotifier,
) -> CompatContext:
    """A fully wired context over fresh in-memory stores."""
    return CompatContext.build(
        compat_config,
        settings_store=settings_store,
        hook_bus=hook_bus,
        sheet_registry=sheet_registry,
        catalog=catalog,
        notifier=notifier,
    )


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """A rulecompat.toml in a temporary project directory."""
    path = tmp_path / "rulecompat.toml"
    path.write_text(
        "\n".join(
            [
                "[identity]",
                f'canonical = "{CANONICAL}"',
                f'legacy_aliases = ["{LEGACY}"]',
                "",
                "[migration]",
                'current_version = "3.3.1"',
                'target_schema_version = "3.3.0"',
                'minimum_migratable_version = "3.0.0"',
                "",
                "[references]",
                'catalogs = ["Compendium"]',
                "",
            ]
        ),
        encoding="utf-8",
    )
    return path
