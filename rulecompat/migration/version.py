"""
Dotted version comparison.

Segments are compared left to right: two numeric segments compare as
integers, anything else compares as strings, and a missing segment counts
as 0. "3.1" == "3.1.0" < "3.1.1" < "3.10.0".
"""

from __future__ import annotations

from typing import Any, Union

Segment = Union[int, str]


def parse_version(version: Any) -> tuple[Segment, ...]:
    text = str(version).strip()
    if not text:
        raise ValueError("version must be a non-empty string")
    segments: list[Segment] = []
    for part in text.split("."):
        part = part.strip()
        segments.append(int(part) if part.isdigit() else part)
    return tuple(segments)


def _compare_segment(a: Segment, b: Segment) -> int:
    if isinstance(a, int) and isinstance(b, int):
        return (a > b) - (a < b)
    sa, sb = str(a), str(b)
    return (sa > sb) - (sa < sb)


def compare_versions(a: Any, b: Any) -> int:
    """Return -1, 0 or 1 as a is older than, equal to, or newer than b."""
    va, vb = parse_version(a), parse_version(b)
    for i in range(max(len(va), len(vb))):
        sa = va[i] if i < len(va) else 0
        sb = vb[i] if i < len(vb) else 0
        result = _compare_segment(sa, sb)
        if result:
            return result
    return 0


def is_newer_version(version: Any, than: Any) -> bool:
    """True iff version is strictly newer than `than`."""
    return compare_versions(version, than) > 0
