"""
Query language for tasklines

A query is plain text with one clause per line, for example::

    not done
    due before next monday
    path includes projects/
    limit to 10 tasks

Every clause becomes an independent predicate over ``Task``. A task matches
the query when it satisfies all predicates. The limit is applied after
sorting, as a final truncation.
"""

import logging
import re
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Tuple

from .dates import parse_natural_date
from .sort import sort_tasks
from .task import Status, Task
from .utils.datetime import end_of_day, ensure_naive, is_midnight, now_local

logger = logging.getLogger(__name__)

Predicate = Callable[[Task], bool]


def _includes_case_insensitive(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


class Query:
    """A parsed query: ordered predicates, an optional limit and an optional error.

    Queries with relative dates ("due today") are resolved against the moment
    they were parsed. Rebuild the query once ``is_stale`` reports that the day
    has changed.
    """

    LITERAL_CLAUSES = {
        "done": lambda task: task.status == Status.DONE,
        "not done": lambda task: task.status != Status.DONE,
        "no due date": lambda task: task.due_start is None,
        "no scheduled date": lambda task: task.scheduled_start is None,
        "exclude sub-items": lambda task: task.indentation == "",
    }

    DATE_CLAUSE_RE = re.compile(
        r"^(due|scheduled|any|done)(?:\s+(before|after|on))?\s+(.+)$", re.IGNORECASE
    )
    STRING_CLAUSE_RE = re.compile(
        r"^(path|description|heading)\s+(includes|does\s+not\s+include)\s+(.+)$", re.IGNORECASE
    )
    LIMIT_RE = re.compile(r"^limit\s+(?:to\s+)?(\d+)(?:\s+tasks?)?$", re.IGNORECASE)

    DATE_FIELDS = {
        "due": lambda task: (task.due_start,),
        "scheduled": lambda task: (task.scheduled_start,),
        "any": lambda task: (task.due_start, task.scheduled_start),
        "done": lambda task: (task.done_date,),
    }

    def __init__(self, source: str, now: Optional[datetime] = None):
        self._source = source
        self._parsed_at = ensure_naive(now) or now_local()
        self._filters: List[Predicate] = []
        self._limit: Optional[int] = None
        self._error: Optional[str] = None

        self._parse()

    @classmethod
    def parse(cls, source: str, now: Optional[datetime] = None) -> "Query":
        return cls(source, now=now)

    @property
    def source(self) -> str:
        return self._source

    @property
    def parsed_at(self) -> datetime:
        return self._parsed_at

    @property
    def filters(self) -> Tuple[Predicate, ...]:
        return tuple(self._filters)

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def error(self) -> Optional[str]:
        return self._error

    def is_stale(self, now: Optional[datetime] = None) -> bool:
        """True once the calendar day the query was parsed on has passed."""
        now = ensure_naive(now) or now_local()
        return now.date() != self._parsed_at.date()

    def matches(self, task: Task) -> bool:
        return all(predicate(task) for predicate in self._filters)

    def apply(self, tasks: Iterable[Task]) -> List[Task]:
        """Filter, sort and limit tasks. An invalid query yields no tasks."""
        if self._error is not None:
            return []

        result = sort_tasks(task for task in tasks if self.matches(task))
        if self._limit is not None:
            result = result[:self._limit]
        return result

    def _parse(self) -> None:
        for raw_line in self._source.split("\n"):
            line = raw_line.strip()
            if not line:
                continue

            error = self._parse_clause(line)
            if error is not None:
                # Never show a partially filtered result set.
                logger.debug(f"Query clause {line!r} rejected: {error}")
                self._error = error
                self._filters = []
                self._limit = None
                return

    def _parse_clause(self, line: str) -> Optional[str]:
        """Register the predicate for one clause; return an error message on failure."""
        literal = " ".join(line.lower().split())
        if literal in self.LITERAL_CLAUSES:
            self._filters.append(self.LITERAL_CLAUSES[literal])
            return None

        match = self.DATE_CLAUSE_RE.match(line)
        if match:
            return self._parse_date_clause(
                match.group(1).lower(),
                (match.group(2) or "on").lower(),
                match.group(3),
            )

        match = self.STRING_CLAUSE_RE.match(line)
        if match:
            self._parse_string_clause(
                match.group(1).lower(),
                " ".join(match.group(2).lower().split()),
                match.group(3),
            )
            return None

        match = self.LIMIT_RE.match(line)
        if match:
            # Last limit wins.
            self._limit = int(match.group(1))
            return None

        return "invalid query clause"

    def _parse_date_clause(self, field: str, operator: str, date_text: str) -> Optional[str]:
        filter_date = parse_natural_date(date_text, self._parsed_at)
        if filter_date is None:
            return f"invalid {field} date in query"

        # Date-only values cover the whole day, except for done dates which
        # are always date-only themselves.
        whole_day = is_midnight(filter_date) and field != "done"

        if operator == "before":
            def compare(value: datetime) -> bool:
                return value < filter_date
        elif operator == "after":
            threshold = end_of_day(filter_date) if whole_day else filter_date

            def compare(value: datetime) -> bool:
                return value > threshold
        elif whole_day:
            def compare(value: datetime) -> bool:
                return value.date() == filter_date.date()
        else:
            def compare(value: datetime) -> bool:
                return value == filter_date

        get_dates = self.DATE_FIELDS[field]

        def predicate(task: Task) -> bool:
            return any(value is not None and compare(value) for value in get_dates(task))

        self._filters.append(predicate)
        return None

    def _parse_string_clause(self, field: str, method: str, needle: str) -> None:
        include = method == "includes"

        if field == "path":
            def predicate(task: Task) -> bool:
                return (needle in task.path) == include
        elif field == "description":
            def predicate(task: Task) -> bool:
                return _includes_case_insensitive(task.description, needle) == include
        else:
            def predicate(task: Task) -> bool:
                # A task without heading never includes anything.
                if task.preceding_header is None:
                    return not include
                return _includes_case_insensitive(task.preceding_header, needle) == include

        self._filters.append(predicate)
