"""
Configuration tree value model.

A tree value is exactly one of four variants:

- MAPPING: a mutable mapping of string keys to tree values
- SEQUENCE: a list (mutable) or tuple (immutable) of tree values
- STRING: a str, the only leaf a reference can live in
- SCALAR: any other leaf (numbers, booleans, None, ...) - never inspected

Walkers branch on classify() rather than probing types ad hoc, so every
value lands in exactly one branch.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping, MutableSequence
from enum import Enum
from typing import Any, Iterator, Union

TreeValue = Union[
    MutableMapping[str, "TreeValue"],
    MutableSequence["TreeValue"],
    tuple["TreeValue", ...],
    str,
    int,
    float,
    bool,
    None,
]

# A location inside a tree: the keys / indices leading to a value.
TreePath = tuple[Union[str, int], ...]


class NodeKind(str, Enum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    STRING = "string"
    SCALAR = "scalar"


def classify(value: Any) -> NodeKind:
    if isinstance(value, str):
        return NodeKind.STRING
    if isinstance(value, Mapping):
        return NodeKind.MAPPING
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def iter_strings(tree: Any) -> Iterator[tuple[TreePath, str]]:
    """
    Yield (path, value) for every string leaf, depth first, in document order.

    Iterative, so nesting depth is bounded by memory rather than the
    recursion limit. A container reached twice (shared or cyclic) is only
    walked once.
    """
    seen: set[int] = set()
    stack: list[tuple[TreePath, Any]] = [((), tree)]
    while stack:
        path, value = stack.pop()
        kind = classify(value)
        if kind is NodeKind.STRING:
            yield path, value
        elif kind is NodeKind.SCALAR:
            continue
        else:
            if id(value) in seen:
                continue
            seen.add(id(value))
            if kind is NodeKind.MAPPING:
                children = [((*path, k), v) for k, v in value.items()]
            else:
                children = [((*path, i), v) for i, v in enumerate(value)]
            stack.extend(reversed(children))


def format_path(path: TreePath) -> str:
    """Render a tree path as a.b[0].c"""
    out = ""
    for part in path:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "<root>"
