"""Default ordering of task lists."""

from datetime import datetime
from typing import Iterable, List, Optional, Tuple

from .task import Status, Task


def nearest_date(task: Task) -> Optional[datetime]:
    """The earlier of due start and scheduled start, whichever exist."""
    dates = [d for d in (task.due_start, task.scheduled_start) if d is not None]
    return min(dates) if dates else None


def sort_key(task: Task) -> Tuple:
    """Key ordering by status, then nearest date, then path.

    Incomplete tasks come first, dated tasks before undated ones.
    """
    date = nearest_date(task)
    return (
        0 if task.status == Status.TODO else 1,
        date is None,
        date or datetime.min,
        task.path,
    )


def sort_tasks(tasks: Iterable[Task]) -> List[Task]:
    """Return a new, stably sorted list of tasks."""
    return sorted(tasks, key=sort_key)


by_status_then_date_then_path = sort_tasks
