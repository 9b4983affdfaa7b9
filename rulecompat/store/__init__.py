"""
In-process persistence substrates.

The compatibility layer wraps these; it never replaces them. Hosts with
their own stores only need objects that match the same method shapes.
"""

from __future__ import annotations

from .catalog import Catalog
from .documents import FlagDocument
from .hooks import HookBus, HookSubscription
from .settings import MenuDefinition, SettingDefinition, SettingsStore
from .sheets import DEFAULT_SUBTYPE, SheetOptions, SheetRegistration, SheetRegistry

__all__ = [
    "Catalog",
    "DEFAULT_SUBTYPE",
    "FlagDocument",
    "HookBus",
    "HookSubscription",
    "MenuDefinition",
    "SettingDefinition",
    "SettingsStore",
    "SheetOptions",
    "SheetRegistration",
    "SheetRegistry",
]
