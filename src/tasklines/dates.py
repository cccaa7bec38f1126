"""Natural language date parsing for query clauses."""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional

import parsedatetime
from dateutil import parser as dateutil_parser

from .utils.datetime import ensure_naive, now_local, parse_date, parse_datetime, start_of_day

logger = logging.getLogger(__name__)

# parsedatetime status bit set when a time of day was recognised
_PARSED_TIME = 2

_MONTH = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?"
_DAY = r"\d{1,2}(?:st|nd|rd|th)?"

# Leap year, so "Feb 29" parses before the year is chosen.
_NO_YEAR_DEFAULT = datetime(2000, 1, 1)


class SmartDateParser:
    """Resolves phrases like ``today``, ``next friday`` or ``2021-09-12``.

    A phrase that does not name a time of day resolves to midnight, so callers
    can tell date-only values apart with ``is_midnight``.
    """

    ISO_PATTERNS = [
        (re.compile(r"^\d{4}-\d{2}-\d{2}$"), parse_date),
        (re.compile(r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}$"), lambda s: parse_datetime(s.replace(" ", "T"))),
    ]
    # "week of 2021-09-06" means the week after that date
    WEEK_OF_RE = re.compile(r"\bweek of (\d{4}-\d{2}-\d{2})\b", re.IGNORECASE)
    # "Sep 12", "12th September", "Sept 12 2021", "September 12, 2021"
    MONTH_NAME_RE = re.compile(
        rf"^(?:{_MONTH}\s+{_DAY}|{_DAY}\s+(?:of\s+)?{_MONTH}),?(?:\s+(\d{{4}}))?$",
        re.IGNORECASE,
    )

    def __init__(self):
        self.cal = parsedatetime.Calendar()

    def parse(self, date_str: str, now: Optional[datetime] = None) -> Optional[datetime]:
        """Parse a natural language date; ``None`` if nothing was recognised."""
        if not date_str or not date_str.strip():
            return None

        date_str = date_str.strip()
        now = ensure_naive(now) or now_local()

        for pattern, convert in self.ISO_PATTERNS:
            if pattern.match(date_str):
                try:
                    return convert(date_str)
                except ValueError:
                    logger.debug(f"Invalid calendar date in {date_str!r}")
                    return None

        week_of = self.WEEK_OF_RE.search(date_str)
        if week_of:
            try:
                return parse_date(week_of.group(1)) + timedelta(weeks=1)
            except ValueError:
                logger.debug(f"Invalid calendar date in {date_str!r}")
                return None

        month_name = self.MONTH_NAME_RE.match(date_str)
        if month_name:
            return self._parse_month_name(date_str, has_year=bool(month_name.group(1)), now=now)

        time_struct, parse_status = self.cal.parse(date_str, now)
        if parse_status == 0:
            return None

        parsed = datetime(*time_struct[:6])
        if not parse_status & _PARSED_TIME:
            parsed = start_of_day(parsed)
        return parsed

    def _parse_month_name(self, date_str: str, has_year: bool, now: datetime) -> Optional[datetime]:
        """Parse an absolute date written with a month name.

        Without a year, the candidate closest to ``now`` wins, so "Sep 12"
        read on 2021-09-15 is 2021-09-12 and "Jan 3" read in late December is
        early next year.
        """
        try:
            parsed = dateutil_parser.parse(date_str, default=_NO_YEAR_DEFAULT)
        except (ValueError, OverflowError):
            logger.debug(f"Invalid calendar date in {date_str!r}")
            return None

        if has_year:
            return parsed

        candidates = []
        for year in (now.year - 1, now.year, now.year + 1):
            try:
                candidates.append(parsed.replace(year=year))
            except ValueError:
                # Feb 29 outside a leap year
                continue
        if not candidates:
            return None
        return min(candidates, key=lambda candidate: abs(candidate - now))


_default_parser: Optional[SmartDateParser] = None


def parse_natural_date(date_str: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Parse a natural language date with a shared parser instance."""
    global _default_parser
    if _default_parser is None:
        _default_parser = SmartDateParser()
    return _default_parser.parse(date_str, now)
