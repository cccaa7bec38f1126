"""Checkbox line parser for tasklines.

A task line looks like::

    - [ ] description +every week @2021-09-10 !2021-09-12--18:00 ✅ 2021-09-11 ^block-id

Metadata markers are matched and removed from the end of the body, one rule
at a time, until a full pass matches nothing. Markers may therefore appear in
any order after the description, while marker characters inside the
description itself are left alone.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Tuple

from .recurrence import Recurrence
from .task import Status, Task
from .utils.datetime import parse_date, parse_datetime, parse_time_on

logger = logging.getLogger(__name__)


TASK_LINE_RE = re.compile(r"^([\s\t]*)[-*] +\[(.)\] *(.*)")
BLOCK_LINK_RE = re.compile(r" \^[a-zA-Z0-9-]+$")

# The following patterns end with `$` because they are matched and removed
# from the end of the body until none are left.
_RANGE = (
    r"\{?(\d{4}-\d{2}-\d{2}(T\d{2}:\d{2})?)"
    r"(--((\d{4}-\d{2}-\d{2}T\d{2}:\d{2})|(\d{4}-\d{2}-\d{2})|(\d{2}:\d{2})))?\}?$"
)
SCHEDULED_DATE_RE = re.compile("@" + _RANGE)
DUE_DATE_RE = re.compile("!" + _RANGE)
DONE_DATE_RE = re.compile(r"✅ ?(\d{4}-\d{2}-\d{2})$")
RECURRENCE_RE = re.compile(r"\+([a-zA-Z0-9, !]+)$")

# Failsafe so that the strip loop always terminates.
MAX_STRIP_PASSES = 6


@dataclass
class _Extraction:
    """Mutable scratch state for a single parse."""
    body: str
    scheduled_start: Optional[datetime] = None
    scheduled_stop: Optional[datetime] = None
    due_start: Optional[datetime] = None
    due_stop: Optional[datetime] = None
    done_date: Optional[datetime] = None
    recurrence_text: Optional[str] = None


def _parse_range(match: "re.Match") -> Tuple[datetime, Optional[datetime]]:
    """Turn a date range match into start and stop datetimes.

    Raises:
        ValueError: If a component is not a real calendar date or time
    """
    if match.group(2):
        start = parse_datetime(match.group(1))
    else:
        start = parse_date(match.group(1))

    stop = None
    if match.group(3):
        if match.group(5):
            stop = parse_datetime(match.group(5))
        elif match.group(6):
            stop = parse_date(match.group(6))
        else:
            # A bare time inherits the calendar date of the start.
            stop = parse_time_on(match.group(7), start)
    return start, stop


def _apply_done(state: _Extraction, match: "re.Match") -> None:
    state.done_date = parse_date(match.group(1))


def _apply_scheduled(state: _Extraction, match: "re.Match") -> None:
    state.scheduled_start, state.scheduled_stop = _parse_range(match)


def _apply_due(state: _Extraction, match: "re.Match") -> None:
    state.due_start, state.due_stop = _parse_range(match)


def _apply_recurrence(state: _Extraction, match: "re.Match") -> None:
    state.recurrence_text = match.group(1).strip()


@dataclass(frozen=True)
class StripRule:
    """One end-anchored metadata marker and how to read it."""
    name: str
    pattern: "re.Pattern"
    apply: Callable[[_Extraction, "re.Match"], None]

    def strip(self, state: _Extraction) -> bool:
        """Extract and remove this marker from the end of the body.

        Returns True if the marker was found and consumed.
        """
        match = self.pattern.search(state.body)
        if match is None:
            return False
        try:
            self.apply(state, match)
        except ValueError as e:
            # Leave impossible dates such as 2021-02-30 in the description.
            logger.debug(f"Not a valid {self.name} marker {match.group(0)!r}: {e}")
            return False
        state.body = state.body[:match.start()].strip()
        return True


STRIP_RULES: Tuple[StripRule, ...] = (
    StripRule("done date", DONE_DATE_RE, _apply_done),
    StripRule("scheduled date", SCHEDULED_DATE_RE, _apply_scheduled),
    StripRule("due date", DUE_DATE_RE, _apply_due),
    StripRule("recurrence", RECURRENCE_RE, _apply_recurrence),
)


class TaskLineParser:
    """Parses checkbox lines into ``Task`` values."""

    def __init__(self, global_filter: str = "", rules: Tuple[StripRule, ...] = STRIP_RULES,
                 max_passes: int = MAX_STRIP_PASSES):
        self.global_filter = global_filter
        self.rules = rules
        self.max_passes = max_passes

    def parse(
        self,
        line: str,
        path: str = "",
        section_start: int = 0,
        section_index: int = 0,
        preceding_header: Optional[str] = None,
    ) -> Optional[Task]:
        """Parse one line; ``None`` if it is not a checkbox line with the filter."""
        match = TASK_LINE_RE.match(line)
        if match is None:
            return None

        indentation = match.group(1)
        status_character = match.group(2)
        body = match.group(3).strip()

        if self.global_filter not in body:
            return None

        block_link = ""
        block_link_match = BLOCK_LINK_RE.search(body)
        if block_link_match:
            block_link = block_link_match.group(0)
            body = body[:block_link_match.start()].strip()

        state = self._strip_metadata(body)

        recurrence = None
        if state.recurrence_text is not None:
            recurrence = Recurrence.from_text(
                state.recurrence_text,
                scheduled_start=state.scheduled_start,
                scheduled_stop=state.scheduled_stop,
                due_start=state.due_start,
                due_stop=state.due_stop,
            )

        return Task(
            status=Status.from_character(status_character),
            description=state.body,
            path=path,
            indentation=indentation,
            section_start=section_start,
            section_index=section_index,
            original_status_character=status_character,
            preceding_header=preceding_header,
            scheduled_start=state.scheduled_start,
            scheduled_stop=state.scheduled_stop,
            due_start=state.due_start,
            due_stop=state.due_stop,
            done_date=state.done_date,
            recurrence=recurrence,
            block_link=block_link,
        )

    def _strip_metadata(self, body: str) -> _Extraction:
        """Run the strip rules to a fixed point, bounded by ``max_passes``."""
        state = _Extraction(body=body)
        runs = 0
        while True:
            matched = False
            for rule in self.rules:
                if rule.strip(state):
                    matched = True
            runs += 1
            if not matched or runs > self.max_passes:
                break
        return state


def parse_task_line(
    line: str,
    path: str = "",
    section_start: int = 0,
    section_index: int = 0,
    preceding_header: Optional[str] = None,
    global_filter: str = "",
) -> Optional[Task]:
    """Parse a checkbox line into a ``Task``, or ``None`` if it is not a task."""
    parser = TaskLineParser(global_filter=global_filter)
    return parser.parse(
        line,
        path=path,
        section_start=section_start,
        section_index=section_index,
        preceding_header=preceding_header,
    )
