"""
Cross-reference rewriting and alias-aware resolution.

A reference is a string "<Catalog>.<namespace>.<rest>". rewrite() replaces
the namespace segment of every legacy-alias reference in a configuration
tree with the canonical identifier; strings that do not match the pattern
are never touched. resolve() looks a reference up under the canonical
namespace first and then under each alias, reporting absence as a result
rather than an exception.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Iterable, Protocol, runtime_checkable

from ..errors import ReferenceResolutionError
from ..identity import Identity
from .tree import NodeKind, TreePath, classify, iter_strings

logger = logging.getLogger(__name__)


@runtime_checkable
class CatalogBackend(Protocol):
    def resolve_by_path(self, path: str) -> Any | None: ...


@dataclass(frozen=True)
class ResolveResult:
    """Outcome of resolve(): the entity, or a not-found error."""

    path: str
    entity: Any = None
    resolved_path: str | None = None
    attempted: tuple[str, ...] = ()
    error: ReferenceResolutionError | None = None

    @property
    def found(self) -> bool:
        return self.error is None


def _alternation(values: Iterable[str]) -> str:
    # Longest first so "pkg-2014" is tried before "pkg".
    return "|".join(re.escape(v) for v in sorted(values, key=len, reverse=True))


class ReferenceRewriter:
    def __init__(
        self,
        identity: Identity,
        catalog: CatalogBackend | None = None,
        *,
        catalogs: Iterable[str] = (),
    ):
        self.identity = identity
        self.catalog = catalog
        self.catalogs = tuple(catalogs)

        catalog_pattern = _alternation(self.catalogs) if self.catalogs else r"[^.\s]+"
        self._owned = re.compile(
            rf"(?P<catalog>{catalog_pattern})\.(?P<ns>{_alternation(identity.all_ids)})\.(?P<rest>.+)",
            re.DOTALL,
        )
        self._legacy = None
        if identity.legacy_aliases:
            self._legacy = re.compile(
                rf"(?P<catalog>{catalog_pattern})\.(?P<ns>{_alternation(identity.legacy_aliases)})\.(?P<rest>.+)",
                re.DOTALL,
            )

    # -------------------------------------------------------------------------
    # Rewriting
    # -------------------------------------------------------------------------

    def rewrite_string(self, value: str) -> str:
        if self._legacy is None:
            return value
        m = self._legacy.fullmatch(value)
        if m is None:
            return value
        return f"{m.group('catalog')}.{self.identity.canonical}.{m.group('rest')}"

    def is_legacy_reference(self, value: Any) -> bool:
        return isinstance(value, str) and self._legacy is not None and self._legacy.fullmatch(value) is not None

    def rewrite(self, tree: Any) -> Any:
        """
        Rewrite legacy references throughout a tree.

        Mappings and lists are updated in place; tuples are rebuilt. Returns
        the root, which is a new object only when the root itself is a
        string or a tuple.
        """
        holder = [tree]
        seen: set[int] = set()
        # (parent, key) slots holding a list that stands in for a tuple
        tuple_slots: list[tuple[Any, Any]] = []
        stack: list[tuple[Any, Any]] = [(holder, 0)]
        rewritten = 0

        while stack:
            parent, key = stack.pop()
            value = parent[key]
            kind = classify(value)

            if kind is NodeKind.STRING:
                new_value = self.rewrite_string(value)
                if new_value != value:
                    parent[key] = new_value
                    rewritten += 1
            elif kind is NodeKind.SCALAR:
                continue
            elif isinstance(value, tuple):
                # Tuples cannot close a cycle on their own, so each occurrence
                # gets its own stand-in.
                stand_in = list(value)
                parent[key] = stand_in
                tuple_slots.append((parent, key))
                stack.extend((stand_in, i) for i in reversed(range(len(stand_in))))
            else:
                if id(value) in seen:
                    continue
                seen.add(id(value))
                keys = list(value.keys()) if kind is NodeKind.MAPPING else list(range(len(value)))
                stack.extend((value, k) for k in reversed(keys))

        # Innermost first: a slot is always recorded after its enclosing one.
        for parent, key in reversed(tuple_slots):
            parent[key] = tuple(parent[key])

        if rewritten:
            logger.debug("Rewrote %d legacy reference(s)", rewritten)
        return holder[0]

    def find_legacy_references(self, tree: Any) -> list[tuple[TreePath, str]]:
        """(path, value) for every legacy reference in tree, without rewriting."""
        return [(path, value) for path, value in iter_strings(tree) if self.is_legacy_reference(value)]

    # -------------------------------------------------------------------------
    # Resolution
    # -------------------------------------------------------------------------

    def candidate_paths(self, path: str) -> list[str]:
        """Paths to try for a reference: canonical namespace first, then aliases."""
        m = self._owned.fullmatch(path) if isinstance(path, str) else None
        if m is None:
            return [path]
        catalog, rest = m.group("catalog"), m.group("rest")
        return [f"{catalog}.{ns}.{rest}" for ns in self.identity.all_ids]

    def resolve(self, path: str) -> ResolveResult:
        if self.catalog is None:
            raise RuntimeError("ReferenceRewriter has no catalog to resolve against")

        attempted: list[str] = []
        for candidate in self.candidate_paths(path):
            attempted.append(candidate)
            try:
                entity = self.catalog.resolve_by_path(candidate)
            except LookupError:
                entity = None
            if entity is not None:
                return ResolveResult(
                    path=path,
                    entity=entity,
                    resolved_path=candidate,
                    attempted=tuple(attempted),
                )

        error = ReferenceResolutionError(path, tuple(attempted))
        logger.debug("%s", error)
        return ResolveResult(path=path, attempted=tuple(attempted), error=error)
