"""Plain-text labels shown next to tasks in task lists."""

from datetime import datetime
from typing import Optional

from .task import Status, Task
from .utils.datetime import is_midnight, now_local, same_day


def format_clock(dt: datetime) -> str:
    """Format a time as ``2:05pm``."""
    hour = dt.hour % 12 or 12
    meridiem = "am" if dt.hour < 12 else "pm"
    return f"{hour}:{dt.minute:02d}{meridiem}"


def relative_day_label(start: datetime, stop: Optional[datetime] = None,
                       now: Optional[datetime] = None) -> str:
    """Describe a date relative to today.

    ``0d`` is today, ``-2d`` two days ago, ``3d 2:00pm`` three days ahead at
    2pm. A range shows its start and stop times.
    """
    now = now or now_local()

    times = ""
    if stop is not None:
        times = f"{format_clock(start)}–{format_clock(stop)}"
    elif not is_midnight(start):
        times = format_clock(start)

    if same_day(start, now):
        return times or "0d"

    days = (start.date() - now.date()).days
    return f"{days}d {times}" if times else f"{days}d"


def is_overdue(task: Task, now: Optional[datetime] = None) -> bool:
    """True for an incomplete task whose due day is before today."""
    if task.status != Status.TODO or task.due_start is None:
        return False
    now = now or now_local()
    return task.due_start.date() < now.date()
