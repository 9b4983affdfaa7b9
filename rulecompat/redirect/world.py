"""
World-level flag view.

Reading or writing world flags under a legacy alias reaches the canonical
entry. Only stored keys are iterated, so the same data never shows up under
two namespaces.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from typing import Any

from ..identity import Identity
from .base import Redirector


class AliasedFlags(Redirector, MutableMapping[str, Any]):
    def __init__(self, identity: Identity, flags: MutableMapping[str, Any] | None = None):
        super().__init__(identity)
        self.flags: MutableMapping[str, Any] = flags if flags is not None else {}

    def __getitem__(self, namespace: str) -> Any:
        return self.flags[self._canonical(namespace)]

    def __setitem__(self, namespace: str, value: Any) -> None:
        self.flags[self._canonical(namespace)] = value

    def __delitem__(self, namespace: str) -> None:
        del self.flags[self._canonical(namespace)]

    def __iter__(self) -> Iterator[str]:
        return iter(self.flags)

    def __len__(self) -> int:
        return len(self.flags)

    def __contains__(self, namespace: object) -> bool:
        return self._canonical(namespace) in self.flags
