"""Exceptions raised at the edges of tasklines.

The parsing core never raises on user input: rejected lines are ``None``,
broken recurrence rules are ``None`` and broken queries carry an ``error``
string. These exceptions are reserved for the document and configuration
helpers.
"""

from typing import List, Optional


class TaskLinesError(Exception):
    """Base class for tasklines errors."""


class TaskNotFoundError(TaskLinesError):
    """Raised when a task can no longer be located in its document."""

    def __init__(self, message: str, path: str = "", line_number: Optional[int] = None):
        self.path = path
        self.line_number = line_number
        super().__init__(message)


class ConfigError(TaskLinesError):
    """Raised when a configuration file cannot be read in strict mode."""

    def __init__(self, message: str, suggestions: List[str] = None):
        self.suggestions = suggestions or []
        super().__init__(message)
