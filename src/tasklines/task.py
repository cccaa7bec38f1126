"""Task data model for tasklines.

A ``Task`` is an immutable value reconstructed from a checkbox line on every
parse. Changing a task means building a new one with ``with_changes``.
"""

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List, Optional

from .recurrence import Recurrence
from .utils.datetime import (
    ensure_naive,
    format_date,
    format_datetime,
    format_time,
    is_midnight,
    now_local,
    same_day,
    start_of_day,
)

if TYPE_CHECKING:
    from .config import ConfigModel


class Status(Enum):
    """Task status derived from the checkbox character."""
    TODO = "todo"
    DONE = "done"

    @classmethod
    def from_character(cls, character: str) -> "Status":
        return cls.TODO if character == " " else cls.DONE


def _format_start(start: datetime) -> str:
    return format_date(start) if is_midnight(start) else format_datetime(start)


def _format_stop(start: datetime, stop: datetime) -> str:
    if same_day(start, stop):
        return format_time(stop)
    return format_date(stop) if is_midnight(stop) else format_datetime(stop)


@dataclass(frozen=True)
class Task:
    """A task parsed from a single checkbox line."""

    status: Status
    description: str
    path: str = ""
    indentation: str = ""
    # Line number where the section containing this task starts.
    section_start: int = 0
    # Index of this task among the tasks of its section.
    section_index: int = 0
    # The character between the brackets, kept verbatim.
    original_status_character: str = " "
    preceding_header: Optional[str] = None

    scheduled_start: Optional[datetime] = None
    scheduled_stop: Optional[datetime] = None
    due_start: Optional[datetime] = None
    due_stop: Optional[datetime] = None
    done_date: Optional[datetime] = None

    recurrence: Optional[Recurrence] = None

    # Trailing " ^id" annotation including its leading space, or "".
    block_link: str = ""

    def __post_init__(self):
        if self.scheduled_stop is not None and self.scheduled_start is None:
            raise ValueError("scheduled_stop requires scheduled_start")
        if self.due_stop is not None and self.due_start is None:
            raise ValueError("due_stop requires due_start")

    @classmethod
    def from_line(
        cls,
        line: str,
        path: str = "",
        section_start: int = 0,
        section_index: int = 0,
        preceding_header: Optional[str] = None,
        global_filter: str = "",
    ) -> Optional["Task"]:
        """Parse a checkbox line; ``None`` if the line is not a task."""
        from .parser import parse_task_line
        return parse_task_line(
            line,
            path=path,
            section_start=section_start,
            section_index=section_index,
            preceding_header=preceding_header,
            global_filter=global_filter,
        )

    def with_changes(self, **changes) -> "Task":
        """Return a copy of this task with the given fields replaced."""
        return dataclasses.replace(self, **changes)

    @property
    def is_done(self) -> bool:
        return self.status == Status.DONE

    def to_string(self) -> str:
        """Render description and metadata in line format, without checkbox."""
        recurrence = f" +{self.recurrence.to_text()}" if self.recurrence else ""

        scheduled = ""
        if self.scheduled_start:
            scheduled = f" @{_format_start(self.scheduled_start)}"
            if self.scheduled_stop:
                scheduled += f"--{_format_stop(self.scheduled_start, self.scheduled_stop)}"

        due = ""
        if self.due_start:
            due = f" !{_format_start(self.due_start)}"
            if self.due_stop:
                due += f"--{_format_stop(self.due_start, self.due_stop)}"

        done = f" ✅ {format_date(self.done_date)}" if self.done_date else ""

        return f"{self.description}{recurrence}{scheduled}{due}{done}{self.block_link}"

    def to_file_line_string(self) -> str:
        """Render the complete line as it is written to a document."""
        return f"{self.indentation}- [{self.original_status_character}] {self.to_string()}"

    def to_display_string(self, config: "ConfigModel") -> str:
        """Render the line text shown to users, honouring display settings."""
        text = self.to_string()
        token = config.global_filter
        if config.remove_global_filter and token and token in text:
            before, after = text.split(token, 1)
            # Close only the gap the token leaves behind.
            if before.endswith(" ") and after.startswith(" "):
                after = after[1:]
            text = (before + after).strip()
        return text

    def toggle(self, now: Optional[datetime] = None) -> List["Task"]:
        """Toggle this task and return the resulting tasks.

        Completing a recurring task returns the next occurrence together with
        the toggled task, in the order ``[next, toggled]``. Otherwise the list
        holds only the toggled task.
        """
        now = ensure_naive(now) or now_local()

        if self.status == Status.TODO:
            toggled = self.with_changes(
                status=Status.DONE,
                done_date=start_of_day(now),
                original_status_character="x",
            )
        else:
            toggled = self.with_changes(
                status=Status.TODO,
                done_date=None,
                original_status_character=" ",
            )

        new_tasks: List[Task] = []
        if toggled.status == Status.DONE and self.recurrence is not None:
            occurrence = self.recurrence.next(now)
            if occurrence is not None:
                recurrence = Recurrence.from_text(
                    self.recurrence.to_text(),
                    scheduled_start=occurrence.scheduled_start,
                    scheduled_stop=occurrence.scheduled_stop,
                    due_start=occurrence.due_start,
                    due_stop=occurrence.due_stop,
                )
                new_tasks.append(self.with_changes(
                    scheduled_start=occurrence.scheduled_start,
                    scheduled_stop=occurrence.scheduled_stop,
                    due_start=occurrence.due_start,
                    due_stop=occurrence.due_stop,
                    recurrence=recurrence,
                    # New occurrences cannot share the block link.
                    block_link="",
                ))

        new_tasks.append(toggled)
        return new_tasks
