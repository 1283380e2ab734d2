# homefinder/domain/parsing.py
from __future__ import annotations

import re
from typing import Any

DEFAULT_DRIVE_MINUTES = 15

_DIGITS = re.compile(r"(\d+)")
_LEADING_NUMBER = re.compile(r"^\s*(\d+(?:\.\d+)?)")


def to_int(x: Any) -> int | None:
    if x is None or x == "":
        return None
    try:
        return int(float(x))
    except (TypeError, ValueError):
        return None


def to_float(x: Any) -> float | None:
    if x is None or x == "":
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        return None


def leading_float(x: Any) -> float | None:
    """Number at the start of a value: "2.5+" -> 2.5, "3 full" -> 3.0."""
    if isinstance(x, (int, float)) and not isinstance(x, bool):
        return float(x)
    if not isinstance(x, str):
        return None
    m = _LEADING_NUMBER.match(x)
    return float(m.group(1)) if m else None


def get_nested(payload: dict[str, Any], path: str) -> Any:
    """Tiny dot-path getter: 'location.address.city'."""
    cur: Any = payload
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
        if cur is None:
            return None
    return cur


def parse_drive_time(label: str | None) -> tuple[int, bool]:
    """
    First run of digits in the label, as minutes.

    Returns (minutes, parsed). When no digits are present the minutes fall back
    to DEFAULT_DRIVE_MINUTES and parsed is False so the caller can report it.
    """
    m = _DIGITS.search(label or "")
    if m:
        return int(m.group(1)), True
    return DEFAULT_DRIVE_MINUTES, False
