"""Tests for default task ordering."""

from datetime import datetime

from tasklines.sort import nearest_date, sort_tasks
from tasklines.task import Status


class TestSortTasks:
    """Test sorting by status, date and path."""

    def test_nearest_date(self, make_task):
        """Test the earlier of due and scheduled is used."""
        task = make_task(scheduled_start=datetime(2021, 9, 10), due_start=datetime(2021, 9, 12))
        assert nearest_date(task) == datetime(2021, 9, 10)

        task = make_task(due_start=datetime(2021, 9, 12))
        assert nearest_date(task) == datetime(2021, 9, 12)

        assert nearest_date(make_task()) is None

    def test_past_due_comes_first(self, make_task):
        """Test earlier dates sort before later ones."""
        later = make_task("later", due_start=datetime(2021, 9, 20))
        overdue = make_task("overdue", due_start=datetime(2021, 9, 1))
        today = make_task("today", scheduled_start=datetime(2021, 9, 15))

        result = sort_tasks([later, overdue, today])
        assert [t.description for t in result] == ["overdue", "today", "later"]

    def test_undated_tasks_last(self, make_task):
        """Test tasks without dates come after dated tasks."""
        undated = make_task("undated")
        dated = make_task("dated", due_start=datetime(2030, 1, 1))

        assert sort_tasks([undated, dated]) == [dated, undated]

    def test_todo_before_done(self, make_task):
        """Test completed tasks sort after incomplete ones regardless of date."""
        done = make_task("done", status=Status.DONE, due_start=datetime(2021, 1, 1))
        todo = make_task("todo")

        assert sort_tasks([done, todo]) == [todo, done]

    def test_path_breaks_ties(self, make_task):
        """Test path ordering for equal status and date."""
        b = make_task("b", path="b.md", due_start=datetime(2021, 9, 12))
        a = make_task("a", path="a.md", due_start=datetime(2021, 9, 12))

        assert sort_tasks([b, a]) == [a, b]

    def test_sort_is_stable_and_non_mutating(self, make_task):
        """Test equal keys keep input order and the input list is untouched."""
        first = make_task("first", path="same.md")
        second = make_task("second", path="same.md")
        tasks = [first, second]

        result = sort_tasks(tasks)

        assert [t.description for t in result] == ["first", "second"]
        assert result is not tasks
        assert tasks == [first, second]
