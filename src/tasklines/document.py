"""Markdown document helpers.

These functions sit between a host application's files and the parsing core:
they locate tasks in a markdown document, record where each task lives, and
write toggled tasks back into the document text. They work on strings only;
reading and writing files is left to the caller.
"""

import logging
import re
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, Tuple

from .exceptions import TaskNotFoundError
from .parser import TaskLineParser
from .task import Task

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^#{1,6}\s+(.*?)\s*#*\s*$")
FENCE_RE = re.compile(r"^\s*(```|~~~)")


def _scan(text: str, path: str, global_filter: str) -> Iterator[Tuple[int, Task]]:
    """Yield ``(line_number, task)`` for every task in the document.

    A section is a run of non-blank lines; ``section_start`` is the 0-based
    line number of its first line and ``section_index`` counts the tasks
    within it. Lines inside fenced code blocks are skipped.
    """
    parser = TaskLineParser(global_filter=global_filter)
    preceding_header: Optional[str] = None
    section_start = 0
    section_index = 0
    in_section = False
    in_fence = False

    for line_number, line in enumerate(text.split("\n")):
        if FENCE_RE.match(line):
            in_fence = not in_fence
            in_section = False
            continue
        if in_fence:
            continue

        if not line.strip():
            in_section = False
            continue

        heading = HEADING_RE.match(line)
        if heading:
            preceding_header = heading.group(1)
            in_section = False
            continue

        if not in_section:
            in_section = True
            section_start = line_number
            section_index = 0

        task = parser.parse(
            line,
            path=path,
            section_start=section_start,
            section_index=section_index,
            preceding_header=preceding_header,
        )
        if task is not None:
            section_index += 1
            yield line_number, task


def tasks_from_markdown(text: str, path: str = "", global_filter: str = "") -> List[Task]:
    """Parse every task of a markdown document."""
    return [task for _, task in _scan(text, path, global_filter)]


def find_task_line(text: str, task: Task, global_filter: str = "") -> int:
    """Return the 0-based line number of ``task`` in ``text``.

    Raises:
        TaskNotFoundError: If the document no longer contains the task at its
            recorded section position
    """
    for line_number, candidate in _scan(text, task.path, global_filter):
        if (candidate.section_start, candidate.section_index) != (task.section_start, task.section_index):
            continue
        if candidate != task:
            raise TaskNotFoundError(
                f"Task at section {task.section_start}, index {task.section_index} has changed",
                path=task.path,
                line_number=line_number,
            )
        return line_number

    raise TaskNotFoundError(
        f"No task at section {task.section_start}, index {task.section_index}",
        path=task.path,
    )


def replace_task_with_tasks(
    text: str,
    original_task: Task,
    new_tasks: Sequence[Task],
    global_filter: str = "",
) -> str:
    """Return ``text`` with the original task's line replaced by ``new_tasks``."""
    line_number = find_task_line(text, original_task, global_filter)
    lines = text.split("\n")
    lines[line_number:line_number + 1] = [task.to_file_line_string() for task in new_tasks]
    logger.debug(
        f"Replaced line {line_number + 1} of {original_task.path or '<text>'} "
        f"with {len(new_tasks)} task(s)"
    )
    return "\n".join(lines)


def task_at_line(text: str, line_number: int, path: str = "", global_filter: str = "") -> Task:
    """Return the task on a 0-based line number.

    Raises:
        TaskNotFoundError: If that line is not a task
    """
    for number, task in _scan(text, path, global_filter):
        if number == line_number:
            return task
    raise TaskNotFoundError(f"Line {line_number + 1} is not a task", path=path, line_number=line_number)


def toggle_task_at_line(
    text: str,
    line_number: int,
    path: str = "",
    global_filter: str = "",
    now: Optional[datetime] = None,
) -> Tuple[str, List[Task]]:
    """Toggle the task on a 0-based line and return the new text and tasks."""
    task = task_at_line(text, line_number, path, global_filter)
    new_tasks = task.toggle(now)
    return replace_task_with_tasks(text, task, new_tasks, global_filter), new_tasks
