"""Sheet registry redirection."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from ..identity import Identity
from .base import Redirector


@runtime_checkable
class SheetBackend(Protocol):
    def register_sheet(self, document_type: str, namespace: str, renderer: Any, options: Any = None) -> Any: ...

    def unregister_sheet(self, document_type: str, namespace: str, renderer: Any, options: Any = None) -> Any: ...


class SheetRegistryRedirector(Redirector):
    """
    Files legacy-namespace sheet registrations under the canonical namespace.

    Unregistration matches on the canonicalized namespace and the renderer
    object itself, so a legacy-namespace unregister removes the canonical
    registration and nothing else.
    """

    def __init__(self, identity: Identity, registry: SheetBackend):
        super().__init__(identity)
        self.registry = registry

    def register_sheet(self, document_type: str, namespace: str, renderer: Any, options: Any = None) -> Any:
        return self.registry.register_sheet(document_type, self._canonical(namespace), renderer, options)

    def unregister_sheet(self, document_type: str, namespace: str, renderer: Any, options: Any = None) -> Any:
        return self.registry.unregister_sheet(document_type, self._canonical(namespace), renderer, options)

    def for_document(self, document_type: str) -> DocumentSheets:
        """Collection-style shortcut bound to one document type."""
        return DocumentSheets(self, document_type)


class DocumentSheets:
    """register_sheet(namespace, renderer, options) bound to a document type."""

    def __init__(self, redirector: SheetRegistryRedirector, document_type: str):
        self.redirector = redirector
        self.document_type = document_type

    def register_sheet(self, namespace: str, renderer: Any, options: Any = None) -> Any:
        return self.redirector.register_sheet(self.document_type, namespace, renderer, options)

    def unregister_sheet(self, namespace: str, renderer: Any, options: Any = None) -> Any:
        return self.redirector.unregister_sheet(self.document_type, namespace, renderer, options)
