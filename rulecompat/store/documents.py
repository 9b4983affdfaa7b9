"""
Per-entity flag bags.

A FlagDocument holds namespaced metadata: flags[scope][key...]. Writes go
through update() so every mutation, direct or redirected, takes one path.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from ..objects import delete_property, get_property, merge_object, set_property


@dataclass
class FlagDocument:
    """A persisted entity carrying a flag bag."""

    id: str
    document_type: str = "Actor"
    flags: dict[str, Any] = field(default_factory=dict)
    updates: list[dict[str, Any]] = field(default_factory=list)

    def get_flag(self, scope: str, key: str) -> Any:
        return copy.deepcopy(get_property(self.flags.get(scope), key))

    async def set_flag(self, scope: str, key: str, value: Any) -> FlagDocument:
        changes: dict[str, Any] = {}
        set_property(changes, key, value)
        return await self.update({"flags": {scope: changes}})

    async def unset_flag(self, scope: str, key: str) -> FlagDocument:
        bag = self.flags.get(scope)
        if isinstance(bag, dict) and delete_property(bag, key):
            self.updates.append({"flags": {scope: {f"-={key}": None}}})
        return self

    async def update(self, changes: dict[str, Any]) -> FlagDocument:
        """Deep-merge a change object into this document's flags."""
        flag_changes = changes.get("flags") or {}
        if flag_changes:
            self.flags = merge_object(self.flags, flag_changes)
            self.updates.append(copy.deepcopy(changes))
        return self
