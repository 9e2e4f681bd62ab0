"""Exception types raised by taskbuffer."""

from typing import Any, Optional


class TaskbufferError(Exception):
    """Base class for all taskbuffer errors."""


class ParseError(TaskbufferError):
    """A single line could not be turned into a task."""

    def __init__(self, message: str, line: str = "", path: Optional[str] = None,
                 line_number: Optional[int] = None):
        self.line = line
        self.path = path
        self.line_number = line_number
        super().__init__(message)


class NoMatch(ParseError):
    """The line does not start with a configured checkbox."""


class UnknownCheckbox(ParseError):
    """A checkbox matched but has no status name behind it."""


class InvalidDate(ParseError):
    """A well-formed date group holds an impossible calendar date."""


class HorizonResolutionError(TaskbufferError):
    """One horizon's ``after`` value could not be turned into a cutoff."""

    def __init__(self, message: str, label: str = "", value: Any = None):
        self.label = label
        self.value = value
        super().__init__(message)


class UnsupportedAfterType(HorizonResolutionError):
    """The ``after`` value is neither an integer nor a string."""


class MutationError(TaskbufferError):
    """A single-line file rewrite was refused."""


class StateError(TaskbufferError):
    """The current-task state file could not be read."""


class ScanError(TaskbufferError):
    """The external line scan failed."""
