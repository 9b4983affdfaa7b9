"""
Settings redirection.

Every call canonicalizes its namespace argument and delegates to the
wrapped store. Return values are passed back untouched, so a store whose
set() returns an awaitable still does through the redirector.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..identity import Identity
from .base import Redirector


@runtime_checkable
class SettingsBackend(Protocol):
    """Shape of a namespaced key/value settings store."""

    def get(self, namespace: str, key: str) -> Any: ...

    def set(self, namespace: str, key: str, value: Any) -> Any: ...

    def register(self, namespace: str, key: str, definition: Any) -> Any: ...

    def register_menu(self, namespace: str, key: str, definition: Any) -> Any: ...


class SettingsRedirector(Redirector):
    """Settings store adapter that files legacy-namespace calls under the canonical one."""

    def __init__(self, identity: Identity, store: SettingsBackend):
        super().__init__(identity)
        self.store = store

    def get(self, namespace: str, key: str) -> Any:
        return self.store.get(self._canonical(namespace), key)

    def set(self, namespace: str, key: str, value: Any) -> Any:
        return self.store.set(self._canonical(namespace), key, value)

    def register(self, namespace: str, key: str, definition: Any = None) -> Any:
        return self.store.register(self._canonical(namespace), key, definition)

    def register_menu(self, namespace: str, key: str, definition: Any = None) -> Any:
        return self.store.register_menu(self._canonical(namespace), key, definition)
