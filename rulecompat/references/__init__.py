"""Cross-reference rewriting over configuration trees."""

from __future__ import annotations

from .rewriter import CatalogBackend, ReferenceRewriter, ResolveResult
from .tree import NodeKind, TreePath, TreeValue, classify, format_path, iter_strings

__all__ = [
    "CatalogBackend",
    "NodeKind",
    "ReferenceRewriter",
    "ResolveResult",
    "TreePath",
    "TreeValue",
    "classify",
    "format_path",
    "iter_strings",
]
