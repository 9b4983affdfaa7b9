"""
Helpers for nested mapping data addressed by dotted paths.

Flag bags and settings values are plain nested dicts; these helpers expand
dotted keys, merge change objects and compute the minimal diff between two
states.
"""

from __future__ import annotations

import copy
from typing import Any, Mapping


_MISSING = object()


def expand_object(flat: Mapping[str, Any]) -> dict[str, Any]:
    """
    Expand dotted keys into nested dicts.

    {"a.b": 1, "c": 2} -> {"a": {"b": 1}, "c": 2}
    """
    result: dict[str, Any] = {}
    for key, value in flat.items():
        if isinstance(value, Mapping):
            value = expand_object(value)
        set_property(result, key, value)
    return result


def get_property(data: Any, path: str, default: Any = None) -> Any:
    """Read a dotted path from nested mappings, returning default when absent."""
    if data is None:
        return default
    if not path:
        return data
    current = data
    for part in path.split("."):
        if isinstance(current, Mapping) and part in current:
            current = current[part]
        else:
            return default
    return current


def set_property(data: dict[str, Any], path: str, value: Any) -> None:
    """Write a dotted path, creating intermediate dicts as needed."""
    parts = path.split(".")
    current = data
    for part in parts[:-1]:
        nxt = current.get(part)
        if not isinstance(nxt, dict):
            nxt = {}
            current[part] = nxt
        current = nxt
    last = parts[-1]
    if isinstance(value, Mapping) and isinstance(current.get(last), dict):
        current[last] = merge_object(current[last], value)
    else:
        current[last] = value


def delete_property(data: dict[str, Any], path: str) -> bool:
    """Remove a dotted path. Returns True if something was removed."""
    parts = path.split(".")
    current: Any = data
    for part in parts[:-1]:
        if not isinstance(current, dict) or part not in current:
            return False
        current = current[part]
    if isinstance(current, dict) and parts[-1] in current:
        del current[parts[-1]]
        return True
    return False


def merge_object(original: Mapping[str, Any], changes: Mapping[str, Any]) -> dict[str, Any]:
    """Deep-merge changes over original without mutating either."""
    merged = copy.deepcopy(dict(original))
    for key, value in changes.items():
        existing = merged.get(key, _MISSING)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = merge_object(existing, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def diff_object(original: Mapping[str, Any], updated: Mapping[str, Any]) -> dict[str, Any]:
    """
    Return only the entries of updated that differ from original.

    Nested mappings are compared recursively; keys present only in original
    are not reported (a diff never deletes).
    """
    diff: dict[str, Any] = {}
    for key, value in updated.items():
        before = original.get(key, _MISSING)
        if isinstance(value, Mapping) and isinstance(before, Mapping):
            inner = diff_object(before, value)
            if inner:
                diff[key] = inner
        elif before is _MISSING or before != value:
            diff[key] = copy.deepcopy(value)
    return diff
