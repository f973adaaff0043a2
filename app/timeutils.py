from __future__ import annotations

import math
import re

SNAP_MINUTES = 5

CLOCK_PATTERN = re.compile(r"^([01]?\d|2[0-3]):[0-5]\d$")


def to_minutes(hhmm: str | None) -> int:
    """Convert an ``H:MM`` or ``HH:MM`` string into minutes since midnight.

    Malformed values fall back to ``0`` instead of raising; callers that need a
    strict parse check the value with :func:`is_clock` first.
    """

    if not hhmm or not isinstance(hhmm, str):
        return 0
    hours_raw, _, minutes_raw = hhmm.strip().partition(":")
    try:
        hours = int(hours_raw)
    except ValueError:
        hours = 0
    try:
        minutes = int(minutes_raw)
    except ValueError:
        minutes = 0
    return hours * 60 + minutes


def to_clock(minutes: float) -> str:
    total = max(0, math.floor(minutes + 0.5))
    return f"{total // 60}:{total % 60:02d}"


def is_clock(value: object) -> bool:
    return isinstance(value, str) and CLOCK_PATTERN.match(value) is not None


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return max(a_start, b_start) < min(a_end, b_end)


def clamp(low: int, value: int, high: int) -> int:
    return max(low, min(high, value))


def floor_to_grid(minutes: int) -> int:
    return (minutes // SNAP_MINUTES) * SNAP_MINUTES


def snap(minutes: float) -> int:
    return int(round(minutes / SNAP_MINUTES)) * SNAP_MINUTES


def minutes_to_hm(minutes: float | None) -> str:
    """Format a duration for display, e.g. ``90 -> "1h30"`` and ``60 -> "1h"``."""

    total = max(0, math.floor((minutes or 0) + 0.5))
    hours, rest = divmod(total, 60)
    if rest:
        return f"{hours}h{rest:02d}"
    return f"{hours}h"
