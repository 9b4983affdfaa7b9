"""In-memory catalog of referenceable entities, keyed by full path."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class Catalog:
    entries: dict[str, Any] = field(default_factory=dict)
    lookups: list[str] = field(default_factory=list)

    def add(self, path: str, entity: Any) -> None:
        self.entries[path] = entity

    def resolve_by_path(self, path: str) -> Any | None:
        self.lookups.append(path)
        return self.entries.get(path)
