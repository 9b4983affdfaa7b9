"""
In-memory namespaced settings store.

Settings must be registered before they are read or written. Values live
under "<namespace>.<key>"; the store itself knows nothing about aliases.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Literal

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)

SettingScope = Literal["world", "client"]


@dataclass(frozen=True)
class SettingDefinition:
    """Registration data for one setting."""

    name: str = ""
    hint: str = ""
    scope: SettingScope = "world"
    config: bool = False
    default: Any = None
    type: Callable[[Any], Any] | None = None
    choices: dict[Any, str] | None = None
    on_change: Callable[[Any], Any] | None = None


@dataclass(frozen=True)
class MenuDefinition:
    """Registration data for a settings submenu."""

    name: str = ""
    label: str = ""
    hint: str = ""
    icon: str = ""
    renderer: Any = None
    restricted: bool = True


@dataclass
class SettingsStore:
    """Registered definitions and stored values, keyed by "<namespace>.<key>"."""

    definitions: dict[str, SettingDefinition] = field(default_factory=dict)
    menus: dict[str, MenuDefinition] = field(default_factory=dict)
    values: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _full_key(namespace: str, key: str) -> str:
        return f"{namespace}.{key}"

    def register(self, namespace: str, key: str, definition: SettingDefinition | None = None) -> None:
        full_key = self._full_key(namespace, key)
        if full_key in self.definitions:
            logger.debug("Re-registering setting %s", full_key)
        self.definitions[full_key] = definition or SettingDefinition()

    def register_menu(self, namespace: str, key: str, definition: MenuDefinition | None = None) -> None:
        self.menus[self._full_key(namespace, key)] = definition or MenuDefinition()

    def definition(self, namespace: str, key: str) -> SettingDefinition:
        full_key = self._full_key(namespace, key)
        try:
            return self.definitions[full_key]
        except KeyError:
            raise ConfigurationError(namespace, key) from None

    def get(self, namespace: str, key: str) -> Any:
        definition = self.definition(namespace, key)
        full_key = self._full_key(namespace, key)
        if full_key in self.values:
            return copy.deepcopy(self.values[full_key])
        return copy.deepcopy(definition.default)

    async def set(self, namespace: str, key: str, value: Any) -> Any:
        definition = self.definition(namespace, key)
        if definition.type is not None and value is not None:
            value = definition.type(value)
        if definition.choices is not None and value not in definition.choices:
            raise ValueError(f"{value!r} is not a valid choice for {namespace}.{key}")

        self.values[self._full_key(namespace, key)] = copy.deepcopy(value)
        if definition.on_change is not None:
            definition.on_change(value)
        return value

    def namespaces(self) -> set[str]:
        """Namespaces that hold at least one registration or value."""
        keys = set(self.definitions) | set(self.values) | set(self.menus)
        return {k.split(".", 1)[0] for k in keys}
