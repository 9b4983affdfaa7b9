"""
Namespace redirectors.

Each adapter wraps one shared primitive (settings, entity flags, hook
dispatch, sheet registry, world flags) and canonicalizes the namespace
argument before delegating. They are constructed once at the composition
root and injected; nothing here patches a shared object.
"""

from __future__ import annotations

from .flags import EntityFlagRedirector, FlagEntity
from .hooks import HookBackend, HookMirror
from .settings import SettingsBackend, SettingsRedirector
from .sheets import DocumentSheets, SheetBackend, SheetRegistryRedirector
from .world import AliasedFlags

__all__ = [
    "AliasedFlags",
    "DocumentSheets",
    "EntityFlagRedirector",
    "FlagEntity",
    "HookBackend",
    "HookMirror",
    "SettingsBackend",
    "SettingsRedirector",
    "SheetBackend",
    "SheetRegistryRedirector",
]
