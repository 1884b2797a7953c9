"""
Time-of-day helpers and the worked-hours aggregator.

Times travel as ``"HH:MM"`` text (24-hour clock) at every boundary.  A
single-digit hour such as ``"9:00"`` is accepted on input; output is
always zero padded.
"""

import re
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from errors import ValidationError

TIME_FORMAT = '%H:%M'
_TIME_PATTERN = re.compile(r'^([0-9]{1,2}):([0-9]{2})$')


def parse_time_of_day(text, field=None):
    """Parse ``"HH:MM"`` into a :class:`datetime.time`.

    Raises :class:`ValidationError` for anything that is not a valid
    24-hour clock reading (``"25:00"``, ``"12:60"``, ``"noon"``...).
    """
    if isinstance(text, time):
        return text.replace(second=0, microsecond=0)
    if not isinstance(text, str):
        raise ValidationError(f"expected HH:MM text, got {text!r}", field=field)
    match = _TIME_PATTERN.match(text.strip())
    if not match:
        raise ValidationError(f"invalid time {text!r}; expected HH:MM", field=field)
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"invalid time {text!r}; out of range", field=field)
    return time(hour, minute)


def format_time_of_day(value):
    return value.strftime(TIME_FORMAT)


@dataclass(frozen=True)
class TimeSlot:
    """One working period within a day.

    ``end`` earlier than ``start`` means the slot runs past midnight.
    """
    start: time
    end: time

    @classmethod
    def parse(cls, start, end, field=None):
        prefix = f"{field}." if field else ''
        return cls(
            start=parse_time_of_day(start, field=f"{prefix}start"),
            end=parse_time_of_day(end, field=f"{prefix}end"),
        )

    @property
    def crosses_midnight(self):
        return self.end < self.start

    def to_dict(self):
        return {
            'start': format_time_of_day(self.start),
            'end': format_time_of_day(self.end),
        }


def calculate_hours(start, end):
    """Duration in hours between two times of day.

    When ``end`` is before ``start`` the slot crosses midnight and 24
    hours are added to ``end``.  Equal times give ``0.0``.
    """
    start_time = parse_time_of_day(start, field='start')
    end_time = parse_time_of_day(end, field='end')

    start_dt = datetime.combine(datetime.min.date(), start_time)
    end_dt = datetime.combine(datetime.min.date(), end_time)
    if end_dt < start_dt:
        end_dt += timedelta(days=1)

    return (end_dt - start_dt).total_seconds() / 3600


def _slot_bounds(slot):
    if isinstance(slot, TimeSlot):
        return slot.start, slot.end
    if isinstance(slot, dict):
        try:
            return slot['start'], slot['end']
        except KeyError as e:
            raise ValidationError(f"time slot is missing {e.args[0]!r}") from e
    raise ValidationError(f"not a time slot: {slot!r}")


def total_hours(items):
    """Sum worked hours over slots or day projections.

    ``items`` may mix :class:`TimeSlot` objects, ``{"start", "end"}``
    mappings and anything exposing a ``time_slots`` sequence (a
    ``DayProjection``).  One malformed slot fails the whole sum.
    """
    total = 0.0
    for item in items:
        slots = getattr(item, 'time_slots', None)
        if slots is None:
            slots = [item]
        for slot in slots:
            start, end = _slot_bounds(slot)
            total += calculate_hours(start, end)
    return total
