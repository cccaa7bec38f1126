"""
Recurrence rules for tasklines

A recurrence is written into a task line as a short English phrase such as
``+every week on Monday`` or ``+every 2 months on the last Friday``. This module
parses those phrases, renders them back in canonical form and computes the
dates of the next occurrence of a recurring task.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import NamedTuple, Optional, Tuple

from dateutil import rrule as _rrule

from .utils.datetime import ensure_naive, now_local, start_of_day

logger = logging.getLogger(__name__)


class Frequency(Enum):
    """Base period of a recurrence"""
    DAILY = "day"
    WEEKLY = "week"
    MONTHLY = "month"
    YEARLY = "year"


_RRULE_FREQ = {
    Frequency.DAILY: _rrule.DAILY,
    Frequency.WEEKLY: _rrule.WEEKLY,
    Frequency.MONTHLY: _rrule.MONTHLY,
    Frequency.YEARLY: _rrule.YEARLY,
}

_RRULE_WEEKDAYS = (_rrule.MO, _rrule.TU, _rrule.WE, _rrule.TH, _rrule.FR, _rrule.SA, _rrule.SU)

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

# English names regardless of locale, so rendered rules parse back.
MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)

_DAY_ALIASES = {
    "mon": 0, "monday": 0,
    "tue": 1, "tues": 1, "tuesday": 1,
    "wed": 2, "wednesday": 2,
    "thu": 3, "thur": 3, "thurs": 3, "thursday": 3,
    "fri": 4, "friday": 4,
    "sat": 5, "saturday": 5,
    "sun": 6, "sunday": 6,
}

_ORDINAL_WORDS = {"first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5, "last": -1}

WORKWEEK = (0, 1, 2, 3, 4)

_SHORTHANDS = {
    "daily": Frequency.DAILY,
    "weekly": Frequency.WEEKLY,
    "monthly": Frequency.MONTHLY,
    "yearly": Frequency.YEARLY,
    "annually": Frequency.YEARLY,
}

_EVERY_RE = re.compile(r"^every (?:(\d+|other) )?(day|week|month|year)s?(?: on (.+))?$")
_EVERY_DAYS_RE = re.compile(r"^every (.+)$")
_COUNT_RE = re.compile(r"^(.*) for (\d+) times?$")
_UNTIL_RE = re.compile(r"^(.*) until (.+)$")
_LIST_SPLIT_RE = re.compile(r"\s*,\s*(?:and\s+)?|\s+and\s+")
_ORDINAL_RE = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?$")

_UNTIL_NAMED_RE = re.compile(r"^([a-z]+)\.? (\d{1,2}),? (\d{4})$")
_UNTIL_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")


def day_name_to_number(day_name: str) -> Optional[int]:
    """Convert a day name, abbreviation or plural to a number (0=Monday)."""
    name = day_name.strip().lower()
    if name in _DAY_ALIASES:
        return _DAY_ALIASES[name]
    if name.endswith("s") and name[:-1] in _DAY_ALIASES:
        return _DAY_ALIASES[name[:-1]]
    return None


def _ordinal_suffix(n: int) -> str:
    if 10 <= n % 100 <= 20:
        return f"{n}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _parse_ordinal(token: str) -> Optional[int]:
    token = token.strip()
    if token in _ORDINAL_WORDS:
        return _ORDINAL_WORDS[token]
    match = _ORDINAL_RE.match(token)
    if match:
        return int(match.group(1))
    return None


def month_name_to_number(month_name: str) -> Optional[int]:
    """Convert a month name or an abbreviation of 3+ letters to 1-12."""
    name = month_name.strip().lower()
    if len(name) < 3:
        return None
    for number, full_name in enumerate(MONTH_NAMES, start=1):
        if full_name.lower().startswith(name):
            return number
    return None


def _parse_until(text: str) -> Optional[date]:
    cleaned = text.strip().lower()

    match = _UNTIL_ISO_RE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
    else:
        match = _UNTIL_NAMED_RE.match(cleaned)
        if match is None:
            return None
        month = month_name_to_number(match.group(1))
        if month is None:
            return None
        day, year = int(match.group(2)), int(match.group(3))

    try:
        return date(year, month, day)
    except ValueError:
        return None


@dataclass(frozen=True)
class RecurrenceRule:
    """A parsed recurrence phrase.

    Held as plain values so two rules parsed from equivalent text compare
    equal. ``to_rrule`` builds the ``dateutil`` rule used for calculations.
    """
    frequency: Frequency
    interval: int = 1
    weekdays: Tuple[int, ...] = ()  # 0=Monday
    month_days: Tuple[int, ...] = ()  # -1 is the last day of the month
    nth_weekdays: Tuple[Tuple[int, int], ...] = ()  # (position, weekday), -1 is last
    count: Optional[int] = None
    until: Optional[date] = None

    @classmethod
    def parse(cls, text: str) -> Optional["RecurrenceRule"]:
        """Parse a recurrence phrase; ``None`` if it is not one."""
        phrase = " ".join(text.lower().split())
        if not phrase:
            return None

        count = until = None
        # Suffixes may come in either order.
        for _ in range(2):
            count_match = _COUNT_RE.match(phrase)
            if count_match and count is None:
                count = int(count_match.group(2))
                phrase = count_match.group(1).strip()
                continue
            until_match = _UNTIL_RE.match(phrase)
            if until_match and until is None:
                until = _parse_until(until_match.group(2))
                if until is None:
                    return None
                phrase = until_match.group(1).strip()
                continue
            break

        if count is not None and until is not None:
            # dateutil refuses rules bounded both ways
            return None
        if count == 0:
            return None

        rule = cls._parse_base(phrase)
        if rule is None:
            return None
        return cls(
            frequency=rule.frequency,
            interval=rule.interval,
            weekdays=rule.weekdays,
            month_days=rule.month_days,
            nth_weekdays=rule.nth_weekdays,
            count=count,
            until=until,
        )

    @classmethod
    def _parse_base(cls, phrase: str) -> Optional["RecurrenceRule"]:
        if phrase in _SHORTHANDS:
            return cls(frequency=_SHORTHANDS[phrase])

        if phrase in ("every weekday", "every weekdays", "weekdays"):
            return cls(frequency=Frequency.WEEKLY, weekdays=WORKWEEK)

        match = _EVERY_RE.match(phrase)
        if match:
            amount, unit, on_clause = match.groups()
            if amount is None:
                interval = 1
            elif amount == "other":
                interval = 2
            else:
                interval = int(amount)
            if interval < 1:
                return None

            frequency = Frequency(unit)
            if on_clause is None:
                return cls(frequency=frequency, interval=interval)
            if frequency == Frequency.WEEKLY:
                weekdays = cls._parse_weekday_list(on_clause)
                if weekdays is None:
                    return None
                return cls(frequency=frequency, interval=interval, weekdays=weekdays)
            if frequency == Frequency.MONTHLY:
                return cls._parse_month_clause(on_clause, interval)
            return None

        # "every monday and thursday"
        match = _EVERY_DAYS_RE.match(phrase)
        if match:
            weekdays = cls._parse_weekday_list(match.group(1))
            if weekdays is not None:
                return cls(frequency=Frequency.WEEKLY, weekdays=weekdays)

        return None

    @staticmethod
    def _parse_weekday_list(text: str) -> Optional[Tuple[int, ...]]:
        days = []
        for item in _LIST_SPLIT_RE.split(text.strip()):
            day = day_name_to_number(item)
            if day is None:
                return None
            if day not in days:
                days.append(day)
        return tuple(sorted(days)) if days else None

    @classmethod
    def _parse_month_clause(cls, text: str, interval: int) -> Optional["RecurrenceRule"]:
        if not text.startswith("the "):
            return None

        month_days = []
        nth_weekdays = []
        for item in _LIST_SPLIT_RE.split(text[len("the "):].strip()):
            item = item.strip()
            if item.startswith("the "):
                item = item[len("the "):]
            parts = item.split()
            if len(parts) == 1:
                position = _parse_ordinal(parts[0])
                if position is None or position == 0 or not -1 <= position <= 31:
                    return None
                month_days.append(position)
            elif len(parts) == 2:
                position = _parse_ordinal(parts[0])
                if position is None or position == 0 or not -1 <= position <= 5:
                    return None
                if parts[1] == "day":
                    if position != -1:
                        return None
                    month_days.append(-1)
                    continue
                weekday = day_name_to_number(parts[1])
                if weekday is None:
                    return None
                nth_weekdays.append((position, weekday))
            else:
                return None

        if month_days and nth_weekdays:
            return None
        return cls(
            frequency=Frequency.MONTHLY,
            interval=interval,
            month_days=tuple(month_days),
            nth_weekdays=tuple(nth_weekdays),
        )

    def to_text(self) -> str:
        """Render the canonical phrase for this rule."""
        unit = self.frequency.value
        if self.frequency == Frequency.WEEKLY and self.weekdays == WORKWEEK and self.interval == 1:
            text = "every weekday"
        else:
            text = f"every {unit}" if self.interval == 1 else f"every {self.interval} {unit}s"
            if self.weekdays:
                text += " on " + ", ".join(DAY_NAMES[d] for d in self.weekdays)
            elif self.month_days:
                text += " on the " + ", ".join(
                    "last day" if d == -1 else _ordinal_suffix(d) for d in self.month_days
                )
            elif self.nth_weekdays:
                text += " on the " + ", ".join(
                    f"{'last' if n == -1 else _ordinal_suffix(n)} {DAY_NAMES[d]}"
                    for n, d in self.nth_weekdays
                )

        if self.count is not None:
            text += f" for {self.count} time" + ("" if self.count == 1 else "s")
        if self.until is not None:
            month = MONTH_NAMES[self.until.month - 1]
            text += f" until {month} {self.until.day}, {self.until.year}"
        return text

    def to_rrule(self, dtstart: datetime) -> _rrule.rrule:
        """Build a dateutil rule anchored at ``dtstart``."""
        kwargs = {
            "freq": _RRULE_FREQ[self.frequency],
            "interval": self.interval,
            "dtstart": dtstart,
        }
        if self.weekdays:
            kwargs["byweekday"] = tuple(_RRULE_WEEKDAYS[d] for d in self.weekdays)
        if self.nth_weekdays:
            kwargs["byweekday"] = tuple(_RRULE_WEEKDAYS[d](n) for n, d in self.nth_weekdays)
        if self.month_days:
            kwargs["bymonthday"] = self.month_days
        if self.count is not None:
            kwargs["count"] = self.count
        if self.until is not None:
            kwargs["until"] = datetime.combine(self.until, time.max)
        return _rrule.rrule(**kwargs)


class Occurrence(NamedTuple):
    """Dates of the next occurrence of a recurring task"""
    scheduled_start: Optional[datetime]
    scheduled_stop: Optional[datetime]
    due_start: Optional[datetime]
    due_stop: Optional[datetime]


@dataclass(frozen=True)
class Recurrence:
    """A recurrence rule bound to the dates of the task that owns it.

    The reference date is the due date if given, otherwise the scheduled date.
    Future occurrences keep every other date at the same distance from the
    reference date as in the original task, e.g. "scheduled one week before it
    is due".
    """
    rule: RecurrenceRule
    reference_date: Optional[datetime]
    scheduled_start: Optional[datetime] = None
    scheduled_stop: Optional[datetime] = None
    due_start: Optional[datetime] = None
    due_stop: Optional[datetime] = None

    @classmethod
    def from_text(
        cls,
        rule_text: str,
        scheduled_start: Optional[datetime] = None,
        scheduled_stop: Optional[datetime] = None,
        due_start: Optional[datetime] = None,
        due_stop: Optional[datetime] = None,
    ) -> Optional["Recurrence"]:
        """Build a recurrence from its phrase, or ``None`` if it does not parse.

        A phrase that does not parse is usually one the user is still typing,
        so this never raises.
        """
        rule = RecurrenceRule.parse(rule_text)
        if rule is None:
            logger.debug(f"Ignoring unparsable recurrence rule: {rule_text!r}")
            return None

        if due_start is not None:
            reference_date = due_start
        elif scheduled_start is not None:
            reference_date = scheduled_start
        else:
            reference_date = None

        return cls(
            rule=rule,
            reference_date=reference_date,
            scheduled_start=scheduled_start,
            scheduled_stop=scheduled_stop,
            due_start=due_start,
            due_stop=due_stop,
        )

    def to_text(self) -> str:
        return self.rule.to_text()

    def next(self, now: Optional[datetime] = None) -> Optional[Occurrence]:
        """Return the dates of the next occurrence, or ``None`` if there is none.

        Without a reference date the next occurrence is counted from the start
        of today and becomes the new scheduled date.
        """
        if self.reference_date is not None:
            after = self.reference_date
        else:
            after = start_of_day(ensure_naive(now) or now_local())

        next_date = self.rule.to_rrule(dtstart=after).after(after)
        if next_date is None:
            return None

        if self.reference_date is None:
            return Occurrence(next_date, None, None, None)

        scheduled_start = scheduled_stop = due_start = due_stop = None
        if self.scheduled_start is not None:
            scheduled_start = next_date + (self.scheduled_start - self.reference_date)
            if self.scheduled_stop is not None:
                scheduled_stop = scheduled_start + (self.scheduled_stop - self.scheduled_start)
        if self.due_start is not None:
            due_start = next_date + (self.due_start - self.reference_date)
            if self.due_stop is not None:
                due_stop = due_start + (self.due_stop - self.due_start)

        return Occurrence(scheduled_start, scheduled_stop, due_start, due_stop)
