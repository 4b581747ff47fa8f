# backend/clinicbook/core/timeutils.py
"""
Time value normalization for the scheduling core.

Clients and stored rows hand us dates as ISO strings, `date` or `datetime`
objects, times as "HH:MM" / "HH:MM:SS" strings or `time` objects, and
timestamps that may or may not carry a timezone (SQLite drops it). Everything
is normalized here, at the data-access boundary, so the scheduling code only
ever sees `date`, `time`, minutes-since-midnight and aware UTC datetimes.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from .constants import MINUTES_PER_DAY

TimeLike = Union[str, time]
DateLike = Union[str, date, datetime]


def parse_time(value: TimeLike) -> time:
    """Parse "HH:MM" / "HH:MM:SS" (or pass through a `time`), dropping seconds."""
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if not isinstance(value, str):
        raise ValueError(f"Unsupported time value: {value!r}")
    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"Time must be HH:MM, got {value!r}")
    hours, minutes = int(parts[0]), int(parts[1])
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f"Time out of range: {value!r}")
    return time(hours, minutes)


def to_minutes(value: TimeLike) -> int:
    """Minutes since midnight."""
    parsed = parse_time(value)
    return parsed.hour * 60 + parsed.minute


def from_minutes(minutes: int) -> time:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {minutes}")
    return time(minutes // 60, minutes % 60)


def format_hhmm(value: TimeLike) -> str:
    parsed = parse_time(value)
    return f"{parsed.hour:02d}:{parsed.minute:02d}"


def format_minutes(minutes: int) -> str:
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def coerce_date(value: DateLike) -> date:
    """Accept an ISO date string, a `date` or a `datetime` (its UTC calendar day)."""
    if isinstance(value, datetime):
        return ensure_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Unsupported date value: {value!r}")


def day_of_week(value: date) -> int:
    """Weekday index with 0 = Sunday .. 6 = Saturday, as stored on schedule rules."""
    return (value.weekday() + 1) % 7


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[Union[datetime, date]]) -> Optional[datetime]:
    """
    Normalize a timestamp to an aware UTC datetime.

    Naive datetimes are assumed to already be UTC (that is how they are
    written); a bare `date` becomes midnight UTC.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime.combine(value, time(0, 0), tzinfo=timezone.utc)


def add_minutes(value: TimeLike, minutes: int) -> time:
    """Add minutes to a wall-clock time; the result must stay within the same day."""
    total = to_minutes(value) + minutes
    return from_minutes(total)


def intervals_overlap(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open interval overlap on minutes-since-midnight."""
    return start_a < end_b and end_a > start_b


def hours_from(now: datetime, hours: int) -> datetime:
    return ensure_utc(now) + timedelta(hours=hours)


def minutes_from(now: datetime, minutes: int) -> datetime:
    return ensure_utc(now) + timedelta(minutes=minutes)


def claim_cells(start_minutes: int, end_minutes: int, granularity: int) -> list[time]:
    """Cells of an absolute `granularity`-minute grid touched by [start, end)."""
    first = (start_minutes // granularity) * granularity
    return [from_minutes(minute) for minute in range(first, end_minutes, granularity)]
