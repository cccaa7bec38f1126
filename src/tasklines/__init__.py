"""tasklines - parse, query and toggle markdown checkbox tasks."""

__version__ = "0.1.0"

from .config import ConfigModel, Settings
from .parser import TaskLineParser, parse_task_line
from .query import Query
from .recurrence import Occurrence, Recurrence, RecurrenceRule
from .sort import sort_tasks
from .task import Status, Task

__all__ = [
    "ConfigModel",
    "Settings",
    "Occurrence",
    "Query",
    "Recurrence",
    "RecurrenceRule",
    "Status",
    "Task",
    "TaskLineParser",
    "parse_task_line",
    "sort_tasks",
    "__version__",
]
