"""
Time arithmetic for weekly course slots.

Slots are (day_of_week, start_minutes, end_minutes) where day_of_week is
1 (Monday) .. 6 (Saturday) and times are minutes from midnight. A slot with
any bound set to None is "not a fixed slot" and never conflicts.
"""

import re
from datetime import datetime
from typing import Optional

from .constants import DAY_NAMES

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


def parse_time_of_day(value: str) -> Optional[int]:
    """
    Parse "HH:mm" into minutes from midnight (0-1439).

    Returns None for anything that is not a valid 24h time. None is the
    "non-comparable" marker used by overlaps(), so callers can feed the
    result straight in without a try/except.
    """
    if not isinstance(value, str):
        return None
    match = _TIME_RE.match(value)
    if not match:
        return None

    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours > 23 or minutes > 59:
        return None

    return hours * 60 + minutes


def format_time_of_day(minutes: int) -> str:
    """Format minutes from midnight as "HH:mm"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def format_slot(
    day_of_week: Optional[int], start: Optional[int], end: Optional[int]
) -> str:
    """Human-readable slot, e.g. "Tuesday 08:00-10:00"."""
    if day_of_week is None or start is None or end is None:
        return "unscheduled"
    return f"{DAY_NAMES[day_of_week - 1]} {format_time_of_day(start)}-{format_time_of_day(end)}"


def overlaps(
    day_a: Optional[int],
    start_a: Optional[int],
    end_a: Optional[int],
    day_b: Optional[int],
    start_b: Optional[int],
    end_b: Optional[int],
) -> bool:
    """
    Check whether two weekly slots overlap.

    Half-open intervals: a slot ending at 10:00 does not conflict with one
    starting at 10:00.
    """
    if day_a is None or day_b is None or day_a != day_b:
        return False
    if start_a is None or end_a is None or start_b is None or end_b is None:
        return False
    return start_a < end_b and end_a > start_b


def is_within(now: datetime, start: datetime, end: datetime) -> bool:
    """Inclusive window check: start <= now <= end."""
    return start <= now <= end
