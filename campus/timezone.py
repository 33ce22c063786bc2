"""
Timezone helpers.

Everything stored in the database is UTC. Calendar-day questions ("starts
today", "exam tomorrow") are answered in the scheduler's configured timezone.
"""

from datetime import date, datetime, time, timedelta, timezone

import pytz


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    Naive values are treated as UTC (SQLite hands timestamps back naive).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(now: datetime, tz_name: str) -> date:
    """Calendar date of `now` in the given timezone."""
    return to_utc(now).astimezone(pytz.timezone(tz_name)).date()


def local_day_bounds(now: datetime, tz_name: str) -> tuple[datetime, datetime]:
    """
    Half-open [local midnight today, local midnight tomorrow) as UTC datetimes.

    Uses localize() per day so DST days get their real 23h/25h length.
    """
    tz = pytz.timezone(tz_name)
    today = local_date(now, tz_name)
    start = tz.localize(datetime.combine(today, time.min))
    end = tz.localize(datetime.combine(today + timedelta(days=1), time.min))
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


def _offset_label(local_dt: datetime) -> str:
    """UTC offset as "UTC", "UTC+7" or "UTC+5:30"."""
    offset = local_dt.strftime("%z")  # "+0700" or "-0500"
    if not offset:
        return "UTC"
    hours = int(offset[:3])
    minutes = int(offset[0] + offset[3:5])
    if minutes == 0:
        return f"UTC{hours:+d}" if hours != 0 else "UTC"
    return f"UTC{hours:+d}:{abs(minutes):02d}"


def format_datetime_in_timezone(utc_dt: datetime, tz_name: str) -> str:
    """
    Format a UTC datetime for notification text.

    Returns:
        Formatted string like "Wednesday, January 10 at 3:00 PM (UTC-5)"
    """
    try:
        tz = pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        tz = pytz.UTC
    local_dt = to_utc(utc_dt).astimezone(tz)

    day_str = local_dt.strftime("%A, %B %d").replace(" 0", " ")
    time_str = local_dt.strftime("%I:%M %p").lstrip("0")
    return f"{day_str} at {time_str} ({_offset_label(local_dt)})"


def format_date(value: date) -> str:
    """Format a calendar date like "Wednesday, January 10"."""
    return value.strftime("%A, %B %d").replace(" 0", " ")
