"""Loose version comparison used to classify inventory changes between uploads."""

import re

_SEGMENT_SPLIT = re.compile(r"[.\-]")
_LEADING_INT = re.compile(r"^\d+")


def _segments(version: str) -> list[int]:
    v = version.strip()
    if v[:1] in ("v", "V", "="):
        v = v[1:]
    values = []
    for part in _SEGMENT_SPLIT.split(v):
        match = _LEADING_INT.match(part)
        values.append(int(match.group()) if match else 0)
    return values


def compare_versions(a: str, b: str) -> int:
    """
    Return -1, 0 or 1 as ``a`` is lower than, equal to or higher than ``b``.

    One leading ``v``/``V``/``=`` is ignored, segments split on ``.`` and ``-``
    compare by their leading integer (non-numeric segments count as 0) and missing
    segments count as 0. This is an approximation: pre-release tags and build
    metadata are not ordered the way SemVer orders them.
    """
    if a == b:
        return 0
    left = _segments(a)
    right = _segments(b)
    for i in range(max(len(left), len(right))):
        x = left[i] if i < len(left) else 0
        y = right[i] if i < len(right) else 0
        if x > y:
            return 1
        if x < y:
            return -1
    return 0
