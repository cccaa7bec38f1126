"""Datetime utilities with consistent wall-clock handling.

Task dates are written into plain text as local calendar dates and times, so
everything in tasklines works on naive ("floating") datetimes that represent
wall-clock time. Durations between two such datetimes are calendar durations
and never drift across daylight saving changes.
"""

from datetime import datetime, time, timedelta
from typing import Optional


DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
DATETIME_FORMAT = "%Y-%m-%dT%H:%M"


def now_local() -> datetime:
    """Return the current local wall-clock time without tzinfo.

    Returns:
        Current datetime in local time, seconds and microseconds kept
    """
    return datetime.now()


def ensure_naive(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is floating local time.

    Aware datetimes are converted to local time before their tzinfo is dropped.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Naive local datetime, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is not None:
        return dt.astimezone().replace(tzinfo=None)

    return dt


def start_of_day(dt: datetime) -> datetime:
    """Return midnight of the day ``dt`` falls on."""
    return datetime.combine(dt.date(), time.min)


def end_of_day(dt: datetime) -> datetime:
    """Return the last representable instant of the day ``dt`` falls on."""
    return datetime.combine(dt.date(), time.max)


def is_midnight(dt: datetime) -> bool:
    """True when hour and minute are both zero (a date-only value)."""
    return dt.hour == 0 and dt.minute == 0


def same_day(a: datetime, b: datetime) -> bool:
    return a.date() == b.date()


def seconds_until_midnight(now: Optional[datetime] = None) -> float:
    """Seconds from ``now`` until the next local midnight.

    Hosts use this to rebuild queries with relative dates once the day
    changes.
    """
    now = now or now_local()
    midnight = start_of_day(now) + timedelta(days=1)
    return (midnight - now).total_seconds()


def parse_date(date_str: str) -> datetime:
    """Parse ``YYYY-MM-DD`` into a midnight datetime.

    Raises:
        ValueError: If the string is not a real calendar date
    """
    return datetime.strptime(date_str, DATE_FORMAT)


def parse_datetime(date_str: str) -> datetime:
    """Parse ``YYYY-MM-DDTHH:MM``.

    Raises:
        ValueError: If the string is not a real calendar date and time
    """
    return datetime.strptime(date_str, DATETIME_FORMAT)


def parse_time_on(time_str: str, day: datetime) -> datetime:
    """Parse ``HH:MM`` and place it on the calendar date of ``day``.

    Raises:
        ValueError: If the string is not a valid time of day
    """
    parsed = datetime.strptime(time_str, TIME_FORMAT)
    return datetime.combine(day.date(), parsed.time())


def format_date(dt: datetime) -> str:
    return dt.strftime(DATE_FORMAT)


def format_datetime(dt: datetime) -> str:
    return dt.strftime(DATETIME_FORMAT)


def format_time(dt: datetime) -> str:
    return dt.strftime(TIME_FORMAT)
