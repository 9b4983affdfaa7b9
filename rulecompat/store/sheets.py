"""
Document type -> renderer association registry.

Each registration covers one or more subtypes of a document type. Within a
(document_type, subtype) pair the most recent make_default registration is
the default; removing it falls back to the next most recent one still
registered.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

DEFAULT_SUBTYPE = "base"


@dataclass(frozen=True)
class SheetOptions:
    make_default: bool = False
    label: str = ""
    types: tuple[str, ...] = ()

    @classmethod
    def coerce(cls, options: SheetOptions | Mapping[str, Any] | None) -> SheetOptions:
        if options is None:
            return cls()
        if isinstance(options, SheetOptions):
            return options
        types = options.get("types") or ()
        if isinstance(types, str):
            types = (types,)
        return cls(
            make_default=bool(options.get("make_default", options.get("makeDefault", False))),
            label=str(options.get("label", "")),
            types=tuple(types),
        )


@dataclass(eq=False)
class SheetRegistration:
    document_type: str
    namespace: str
    renderer: Any
    label: str = ""
    types: set[str] = field(default_factory=set)

    @property
    def sheet_id(self) -> str:
        name = getattr(self.renderer, "__name__", type(self.renderer).__name__)
        return f"{self.namespace}.{name}"


@dataclass
class SheetRegistry:
    """Registered renderers per document type."""

    subtypes: dict[str, tuple[str, ...]] = field(default_factory=dict)
    _entries: dict[str, list[SheetRegistration]] = field(default_factory=dict)
    # (document_type, subtype) -> make_default registrations, oldest first
    _default_history: dict[tuple[str, str], list[SheetRegistration]] = field(default_factory=dict)

    def _resolve_types(self, document_type: str, types: tuple[str, ...]) -> set[str]:
        if types:
            return set(types)
        return set(self.subtypes.get(document_type) or (DEFAULT_SUBTYPE,))

    def _find(self, document_type: str, namespace: str, renderer: Any) -> SheetRegistration | None:
        for entry in self._entries.get(document_type, []):
            if entry.namespace == namespace and entry.renderer is renderer:
                return entry
        return None

    def register_sheet(
        self,
        document_type: str,
        namespace: str,
        renderer: Any,
        options: SheetOptions | Mapping[str, Any] | None = None,
    ) -> SheetRegistration:
        opts = SheetOptions.coerce(options)
        types = self._resolve_types(document_type, opts.types)

        entry = self._find(document_type, namespace, renderer)
        if entry is None:
            entry = SheetRegistration(
                document_type=document_type,
                namespace=namespace,
                renderer=renderer,
                label=opts.label,
            )
            self._entries.setdefault(document_type, []).append(entry)
        entry.types |= types
        if opts.label:
            entry.label = opts.label

        if opts.make_default:
            for subtype in types:
                history = self._default_history.setdefault((document_type, subtype), [])
                if entry in history:
                    history.remove(entry)
                history.append(entry)
        return entry

    def unregister_sheet(
        self,
        document_type: str,
        namespace: str,
        renderer: Any,
        options: SheetOptions | Mapping[str, Any] | None = None,
    ) -> bool:
        """Remove a registration; no-op unless namespace and renderer both match."""
        entry = self._find(document_type, namespace, renderer)
        if entry is None:
            return False

        opts = SheetOptions.coerce(options)
        removed = set(opts.types) & entry.types if opts.types else set(entry.types)
        entry.types -= removed
        for subtype in removed:
            history = self._default_history.get((document_type, subtype), [])
            if entry in history:
                history.remove(entry)
        if not entry.types:
            self._entries[document_type].remove(entry)
        return bool(removed)

    def sheets_for(self, document_type: str, subtype: str = DEFAULT_SUBTYPE) -> list[SheetRegistration]:
        return [e for e in self._entries.get(document_type, []) if subtype in e.types]

    def default_sheet(self, document_type: str, subtype: str = DEFAULT_SUBTYPE) -> SheetRegistration | None:
        history = self._default_history.get((document_type, subtype), [])
        if history:
            return history[-1]
        return None

    def registrations(self, document_type: str | None = None) -> list[SheetRegistration]:
        if document_type is not None:
            return list(self._entries.get(document_type, []))
        return [e for entries in self._entries.values() for e in entries]
