"""Pytest configuration and shared fixtures."""

import sys
from datetime import datetime
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tasklines.config import Config  # noqa: E402
from tasklines.task import Status, Task  # noqa: E402


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the config loader at an empty temp directory for every test."""
    monkeypatch.setenv("TASKLINES_CONFIG", str(tmp_path / "config.yaml"))
    Config.reset()
    yield
    Config.reset()


@pytest.fixture
def now():
    """A fixed 'now': Wednesday 2021-09-15, 10:30."""
    return datetime(2021, 9, 15, 10, 30)


@pytest.fixture
def make_task():
    """Factory for tasks with sensible defaults."""
    def _make(description="task", status=Status.TODO, **fields):
        fields.setdefault("original_status_character", " " if status == Status.TODO else "x")
        return Task(status=status, description=description, **fields)
    return _make
