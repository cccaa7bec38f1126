"""Tests for the query language."""

from datetime import datetime, timezone

import pytest

from tasklines.query import Query
from tasklines.task import Status, Task


@pytest.fixture
def query_now():
    return datetime(2021, 1, 1, 9, 0)


class TestQueryParsing:
    """Test clause recognition, limits and errors."""

    def test_empty_query(self, query_now):
        """Test an empty query matches everything."""
        query = Query("", now=query_now)

        assert query.error is None
        assert query.filters == ()
        assert query.limit is None

    @pytest.mark.parametrize("clause", [
        "done", "not done", "no due date", "no scheduled date", "exclude sub-items", "NOT   Done",
    ])
    def test_literal_clauses(self, clause, query_now):
        """Test each literal clause adds one filter."""
        query = Query(clause, now=query_now)

        assert query.error is None
        assert len(query.filters) == 1

    def test_blank_lines_are_ignored(self, query_now):
        """Test blank and whitespace-only lines."""
        query = Query("\n  not done  \n\n   \ndone\n", now=query_now)

        assert query.error is None
        assert len(query.filters) == 2

    def test_limit_last_wins(self, query_now):
        """Test the final limit clause overrides earlier ones."""
        query = Query("limit 5\nlimit to 3 tasks\nlimit to 1 task", now=query_now)
        assert query.limit == 1

    def test_unknown_clause_clears_everything(self, query_now):
        """Test an invalid clause leaves no filters and no limit."""
        query = Query("not done\nlimit 2\nmake me a sandwich\ndone", now=query_now)

        assert query.error == "invalid query clause"
        assert query.filters == ()
        assert query.limit is None

    def test_invalid_date_error(self, query_now):
        """Test the error names the date field."""
        query = Query("due before blargh", now=query_now)
        assert query.error == "invalid due date in query"

        query = Query("scheduled 2021-02-30", now=query_now)
        assert query.error == "invalid scheduled date in query"

    def test_parse_classmethod(self, query_now):
        """Test the alternate constructor."""
        query = Query.parse("not done", now=query_now)

        assert query.source == "not done"
        assert query.parsed_at == query_now

    def test_is_stale(self, query_now):
        """Test staleness once the day changes."""
        query = Query("due today", now=query_now)

        assert not query.is_stale(datetime(2021, 1, 1, 23, 59))
        assert query.is_stale(datetime(2021, 1, 2, 0, 0))


class TestQueryMatching:
    """Test the predicates built from clauses."""

    def test_done_filters(self, make_task, query_now):
        """Test status clauses."""
        todo = make_task("todo")
        done = make_task("done", status=Status.DONE)

        assert Query("done", now=query_now).apply([todo, done]) == [done]
        assert Query("not done", now=query_now).apply([todo, done]) == [todo]

    def test_no_date_filters(self, make_task, query_now):
        """Test the missing-date clauses."""
        due = make_task("due", due_start=datetime(2021, 1, 2))
        scheduled = make_task("scheduled", scheduled_start=datetime(2021, 1, 2))

        assert Query("no due date", now=query_now).apply([due, scheduled]) == [scheduled]
        assert Query("no scheduled date", now=query_now).apply([due, scheduled]) == [due]

    def test_exclude_sub_items(self, query_now):
        """Test only top-level tasks remain."""
        top = Task.from_line("- [ ] top")
        sub = Task.from_line("  - [ ] sub")

        assert Query("exclude sub-items", now=query_now).apply([top, sub]) == [top]

    def test_due_after_covers_whole_day(self, make_task, query_now):
        """Test 'after' a date-only value excludes that entire day."""
        late_same_day = make_task("late", due_start=datetime(2021, 1, 1, 23, 0))
        next_day = make_task("next", due_start=datetime(2021, 1, 2))

        query = Query("due after 2021-01-01", now=query_now)
        assert query.apply([late_same_day, next_day]) == [next_day]

    def test_due_after_instant(self, make_task, query_now):
        """Test 'after' a timed value compares instants."""
        early = make_task("early", due_start=datetime(2021, 1, 1, 8, 0))
        late = make_task("late", due_start=datetime(2021, 1, 1, 23, 0))

        query = Query("due after 2021-01-01T12:00", now=query_now)
        assert query.apply([early, late]) == [late]

    def test_due_on_matches_day(self, make_task, query_now):
        """Test 'on' (and no operator) match any time on the day."""
        morning = make_task("morning", due_start=datetime(2021, 1, 1, 8, 0))
        other = make_task("other", due_start=datetime(2021, 1, 2))

        assert Query("due on 2021-01-01", now=query_now).apply([morning, other]) == [morning]
        assert Query("due 2021-01-01", now=query_now).apply([morning, other]) == [morning]

    def test_due_before(self, make_task, query_now):
        """Test 'before' is strict."""
        before = make_task("before", due_start=datetime(2020, 12, 31, 23, 0))
        same = make_task("same", due_start=datetime(2021, 1, 1))

        assert Query("due before 2021-01-01", now=query_now).apply([before, same]) == [before]

    def test_due_today(self, make_task, query_now):
        """Test natural language dates resolve against the parse time."""
        today = make_task("today", due_start=datetime(2021, 1, 1, 17, 0))
        tomorrow = make_task("tomorrow", due_start=datetime(2021, 1, 2))

        assert Query("due today", now=query_now).apply([today, tomorrow]) == [today]

    def test_scheduled_clauses(self, make_task, query_now):
        """Test scheduled before, after and on, with whole-day widening."""
        evening = make_task("evening", scheduled_start=datetime(2021, 1, 5, 20, 0))
        earlier = make_task("earlier", scheduled_start=datetime(2021, 1, 4))
        later = make_task("later", scheduled_start=datetime(2021, 1, 6))
        due_only = make_task("due only", due_start=datetime(2021, 1, 5))
        tasks = [evening, earlier, later, due_only]

        assert Query("scheduled before 2021-01-05", now=query_now).apply(tasks) == [earlier]
        assert Query("scheduled after 2021-01-05", now=query_now).apply(tasks) == [later]
        assert Query("scheduled on 2021-01-05", now=query_now).apply(tasks) == [evening]
        assert Query("scheduled 2021-01-05", now=query_now).apply(tasks) == [evening]

    def test_scheduled_after_instant(self, make_task, query_now):
        """Test a timed value is compared as an instant."""
        morning = make_task("morning", scheduled_start=datetime(2021, 1, 5, 8, 0))
        evening = make_task("evening", scheduled_start=datetime(2021, 1, 5, 20, 0))

        query = Query("scheduled after 2021-01-05 12:00", now=query_now)
        assert query.apply([morning, evening]) == [evening]

    def test_week_of(self, make_task, query_now):
        """Test 'week of' resolves to the week after the given date."""
        target = make_task("target", due_start=datetime(2021, 9, 13))
        other = make_task("other", due_start=datetime(2021, 9, 6))

        query = Query("due on week of 2021-09-06", now=query_now)
        assert query.error is None
        assert query.apply([target, other]) == [target]

    @pytest.mark.parametrize("clause", [
        "due on Sep 12",
        "due on Sept 12 2021",
        "due on September 12, 2021",
        "due 12th September",
    ])
    def test_month_name_dates(self, make_task, clause):
        """Test month-name dates pick the right day."""
        now = datetime(2021, 9, 15, 10, 30)
        match = make_task("match", due_start=datetime(2021, 9, 12))
        next_year = make_task("next year", due_start=datetime(2022, 9, 12))

        query = Query(clause, now=now)
        assert query.error is None
        assert query.apply([match, next_year]) == [match]

    def test_aware_now_is_made_naive(self):
        """Test an aware parse time is converted to wall-clock time."""
        query = Query("due today", now=datetime(2021, 1, 1, 12, 0, tzinfo=timezone.utc))

        assert query.parsed_at.tzinfo is None
        assert not query.is_stale(query.parsed_at)

    def test_missing_date_never_matches(self, make_task, query_now):
        """Test tasks without the date are excluded by date clauses."""
        undated = make_task("undated")
        assert Query("due before 2030-01-01", now=query_now).apply([undated]) == []

    def test_any_date(self, make_task, query_now):
        """Test 'any' matches on due or scheduled."""
        by_due = make_task("due", due_start=datetime(2021, 1, 5))
        by_scheduled = make_task("scheduled", scheduled_start=datetime(2021, 1, 5))
        neither = make_task("neither", due_start=datetime(2021, 1, 9))

        result = Query("any on 2021-01-05", now=query_now).apply([by_due, by_scheduled, neither])
        assert {t.description for t in result} == {"due", "scheduled"}

    def test_done_date(self, make_task, query_now):
        """Test done dates compare without whole-day widening."""
        jan1 = make_task("jan1", status=Status.DONE, done_date=datetime(2021, 1, 1))
        jan2 = make_task("jan2", status=Status.DONE, done_date=datetime(2021, 1, 2))

        assert Query("done after 2021-01-01", now=query_now).apply([jan1, jan2]) == [jan2]
        assert Query("done on 2021-01-01", now=query_now).apply([jan1, jan2]) == [jan1]

    def test_path_is_case_sensitive(self, make_task, query_now):
        """Test path clauses."""
        work = make_task("a", path="Work/todo.md")
        home = make_task("b", path="home/todo.md")

        assert Query("path includes Work", now=query_now).apply([work, home]) == [work]
        assert Query("path includes work", now=query_now).apply([work, home]) == []
        assert Query("path does not include Work", now=query_now).apply([work, home]) == [home]

    def test_description_is_case_insensitive(self, make_task, query_now):
        """Test description clauses."""
        milk = make_task("Buy MILK")
        bread = make_task("buy bread")

        assert Query("description includes milk", now=query_now).apply([milk, bread]) == [milk]
        assert Query("description does not include MILK", now=query_now).apply([milk, bread]) == [bread]

    def test_heading(self, make_task, query_now):
        """Test heading clauses, including tasks without a heading."""
        inbox = make_task("a", preceding_header="Inbox")
        loose = make_task("b")

        assert Query("heading includes inbox", now=query_now).apply([inbox, loose]) == [inbox]
        assert Query("heading does not include inbox", now=query_now).apply([inbox, loose]) == [loose]

    def test_all_clauses_must_match(self, make_task, query_now):
        """Test clauses are combined with 'and'."""
        match = make_task("match", path="a.md", due_start=datetime(2021, 1, 3))
        wrong_path = make_task("wrong", path="b.md", due_start=datetime(2021, 1, 3))
        done = make_task("done", status=Status.DONE, path="a.md", due_start=datetime(2021, 1, 3))

        query = Query("not done\npath includes a.md\ndue after today", now=query_now)
        assert query.apply([match, wrong_path, done]) == [match]


class TestQueryApply:
    """Test sorting, limits and errors when applying a query."""

    def test_sorts_then_limits(self, make_task, query_now):
        """Test the limit keeps the first tasks of the sorted result."""
        tasks = [make_task(f"t{day}", due_start=datetime(2021, 1, day)) for day in range(10, 0, -1)]

        result = Query("not done\nlimit to 3 tasks", now=query_now).apply(tasks)

        assert [t.description for t in result] == ["t1", "t2", "t3"]

    def test_limit_zero(self, make_task, query_now):
        """Test a zero limit yields nothing."""
        assert Query("limit 0", now=query_now).apply([make_task()]) == []

    def test_error_yields_no_tasks(self, make_task, query_now):
        """Test an invalid query never shows a partial result."""
        assert Query("not done\nnonsense", now=query_now).apply([make_task()]) == []

    def test_apply_does_not_mutate_input(self, make_task, query_now):
        """Test the input list is left as it was."""
        tasks = [make_task("b", due_start=datetime(2021, 1, 2)), make_task("a", due_start=datetime(2021, 1, 1))]
        original = list(tasks)

        Query("", now=query_now).apply(tasks)
        assert tasks == original
