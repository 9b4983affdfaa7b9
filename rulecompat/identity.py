"""
Canonical identity and its legacy aliases.

Exactly one Identity is active per process. Every other component takes it
as a dependency and asks it which namespaces belong to this package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable


@dataclass(frozen=True)
class Identity:
    """The canonical identifier plus ordered legacy aliases."""

    canonical: str
    legacy_aliases: tuple[str, ...] = ()
    _members: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        canonical = str(self.canonical or "").strip()
        if not canonical:
            raise ValueError("canonical identifier must be a non-empty string")

        aliases: list[str] = []
        for raw in self.legacy_aliases:
            alias = str(raw or "").strip()
            if not alias:
                raise ValueError("legacy aliases must be non-empty strings")
            if alias == canonical:
                raise ValueError(f"canonical identifier {canonical!r} cannot also be a legacy alias")
            if alias not in aliases:
                aliases.append(alias)

        object.__setattr__(self, "canonical", canonical)
        object.__setattr__(self, "legacy_aliases", tuple(aliases))
        object.__setattr__(self, "_members", frozenset((canonical, *aliases)))

    @classmethod
    def of(cls, canonical: str, aliases: Iterable[str] = ()) -> Identity:
        return cls(canonical=canonical, legacy_aliases=tuple(aliases))

    def canonicalize(self, identifier: Any) -> Any:
        """
        Map an owned identifier to the canonical one.

        Identifiers this package does not own pass through unchanged.
        Unhashable input raises TypeError; redirectors catch that and
        forward the original argument.
        """
        if identifier in self._members:
            return self.canonical
        return identifier

    def is_compatible(self, identifier: Any) -> bool:
        """True iff identifier is the canonical id or one of its aliases."""
        try:
            return identifier in self._members
        except TypeError:
            return False

    def is_legacy(self, identifier: Any) -> bool:
        return self.is_compatible(identifier) and identifier != self.canonical

    @property
    def all_ids(self) -> tuple[str, ...]:
        """Canonical first, then aliases in declared order."""
        return (self.canonical, *self.legacy_aliases)
