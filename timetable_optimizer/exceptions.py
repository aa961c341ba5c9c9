"""
Exceptions raised by the timetable optimizer.
"""


class TimetableError(Exception):
    """Base class for all timetable optimizer errors."""


class InvalidSettings(TimetableError, ValueError):
    """Raised when time settings are malformed or out of range."""


class InvalidProjectData(TimetableError, ValueError):
    """Raised when a project snapshot cannot be interpreted."""
