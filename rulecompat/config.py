"""
Compatibility layer configuration.

Loaded from TOML or YAML (by file suffix):

    [identity]
    canonical = "dnd5e-2014"
    legacy_aliases = ["dnd5e"]

    [migration]
    current_version = "3.3.1"
    target_schema_version = "3.3.0"
    minimum_migratable_version = "3.0.0"
    relocation_threshold = "3.0.0"

    [references]
    catalogs = ["Compendium"]

    [logging]
    level = "INFO"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # type: ignore

import yaml

from .identity import Identity
from .migration.gate import DEFAULT_VERSION_SETTING

CONFIG_FILENAMES = ("rulecompat.toml", "rulecompat.yml", "rulecompat.yaml")


@dataclass(frozen=True)
class MigrationConfig:
    current_version: str
    target_schema_version: str
    minimum_migratable_version: str
    relocation_threshold: str | None = None
    version_setting: str = DEFAULT_VERSION_SETTING


@dataclass(frozen=True)
class CompatConfig:
    identity: Identity
    migration: MigrationConfig
    catalogs: tuple[str, ...] = ()
    log_level: str = "INFO"


def _coerce_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_str(section: dict[str, Any], key: str, section_name: str) -> str:
    value = _optional_str(section.get(key))
    if value is None:
        raise ValueError(f"[{section_name}] {key} is required")
    return value


def _str_list(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(str(v).strip() for v in value if str(v).strip())


def config_from_dict(data: dict[str, Any]) -> CompatConfig:
    identity_raw = _coerce_dict(data.get("identity"))
    identity = Identity.of(
        _required_str(identity_raw, "canonical", "identity"),
        _str_list(identity_raw.get("legacy_aliases")),
    )

    migration_raw = _coerce_dict(data.get("migration"))
    current_version = _required_str(migration_raw, "current_version", "migration")
    migration = MigrationConfig(
        current_version=current_version,
        target_schema_version=_optional_str(migration_raw.get("target_schema_version")) or current_version,
        minimum_migratable_version=_required_str(migration_raw, "minimum_migratable_version", "migration"),
        relocation_threshold=_optional_str(migration_raw.get("relocation_threshold")),
        version_setting=_optional_str(migration_raw.get("version_setting")) or DEFAULT_VERSION_SETTING,
    )

    references_raw = _coerce_dict(data.get("references"))
    logging_raw = _coerce_dict(data.get("logging"))

    return CompatConfig(
        identity=identity,
        migration=migration,
        catalogs=_str_list(references_raw.get("catalogs")),
        log_level=(_optional_str(logging_raw.get("level")) or "INFO").upper(),
    )


def load_config(path: Path) -> CompatConfig:
    """
    Load configuration from a TOML or YAML file.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is malformed or misses a required key
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() in (".yml", ".yaml"):
            data = yaml.safe_load(text) or {}
        else:
            data = tomllib.loads(text)
    except (tomllib.TOMLDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Failed to parse config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config {path} must be a table/mapping at the top level")
    return config_from_dict(data)


def find_config(start: Path) -> Path | None:
    """Find a rulecompat config file by walking up from `start`."""
    cur = start.resolve()
    for p in (cur, *cur.parents):
        for name in CONFIG_FILENAMES:
            candidate = p / name
            if candidate.is_file():
                return candidate
    return None
