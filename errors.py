"""
Error kinds raised by the rotation scheduler.

The HTTP layer in ``app.py`` maps these onto JSON error responses; the
scheduling core only raises them.
"""


class SchedulerError(Exception):
    """Base class for every error raised by the scheduler."""


class ValidationError(SchedulerError):
    """Malformed time, date, phase or weekday text.

    ``field`` names the offending input location (for example
    ``"Delphine/A/Tuesday[0].start"``) when one is known.
    """

    def __init__(self, message, field=None):
        super().__init__(message)
        self.field = field


class InvalidMonth(ValidationError):
    """Unrecognised month name."""

    def __init__(self, month):
        super().__init__(f"invalid month: {month!r}", field='month')
        self.month = month


class NotFoundError(SchedulerError):
    """Unknown employee (or phase) requested from the store."""


class ReadError(SchedulerError):
    """The store failed while reading."""


class WriteError(SchedulerError):
    """The store failed while writing; nothing was committed."""


class HolidayUnavailable(SchedulerError):
    """Holiday data could not be loaded; projections continue without it."""
