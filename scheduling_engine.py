import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List

from errors import HolidayUnavailable, InvalidMonth, ReadError, ValidationError
from timeslots import TimeSlot
from weekly_template import PHASES, WEEKDAYS, expand_weeks

logger = logging.getLogger(__name__)

# ISO week numbers restart every year; a fixed 52 is added when the target
# week number is below the anchor's. Years with 53 ISO weeks are not corrected.
WEEKS_PER_YEAR = 52

_MONTHS = {}
for _number in range(1, 13):
    _MONTHS[calendar.month_name[_number].lower()] = _number
    _MONTHS[calendar.month_abbr[_number].lower()] = _number


def month_number(month):
    """Map an English month name ("March", "mar") to 1..12."""
    if isinstance(month, str):
        number = _MONTHS.get(month.strip().lower())
        if number:
            return number
    raise InvalidMonth(month)


def resolve_phase(anchor, target):
    """Return "A" or "B" for ``target`` relative to the rotation ``anchor``.

    Phase A is the anchor's own ISO week and every second week after it.
    """
    anchor_week = anchor.isocalendar()[1]
    target_week = target.isocalendar()[1]

    weeks_since_start = target_week - anchor_week
    if weeks_since_start < 0:
        weeks_since_start += WEEKS_PER_YEAR

    return 'A' if weeks_since_start % 2 == 0 else 'B'


def month_dates(year, month):
    first_day = date(year, month, 1)
    days_in_month = calendar.monthrange(year, month)[1]
    return [first_day + timedelta(days=offset) for offset in range(days_in_month)]


@dataclass
class DayProjection:
    """One calendar day of an employee's projected month."""
    date: date
    day_name: str
    phase: str
    holiday_name: str = ''
    time_slots: List[TimeSlot] = field(default_factory=list)

    def to_dict(self):
        return {
            'date': self.date.isoformat(),
            'dayName': self.day_name,
            'weekType': self.phase,
            'holiday_name': self.holiday_name,
            'timeSlots': [slot.to_dict() for slot in self.time_slots],
        }


class SchedulingEngine:
    """Projects an employee's A/B rotation onto calendar months.

    ``store`` provides ``get_employee_anchor(employee_id)`` and
    ``get_schedule_entries(employee_id, phase=None)``.  ``holidays``
    provides ``get_holidays(year, month)`` returning ``(date, name)``
    pairs, or is ``None`` to skip the holiday overlay.
    """

    def __init__(self, store, holidays=None):
        self.store = store
        self.holidays = holidays

    def project_month(self, employee_id, month, year):
        """Return one :class:`DayProjection` per day of ``month``/``year``.

        Store failures propagate; a holiday failure only drops the
        holiday labels.
        """
        month_num = month_number(month)
        if not isinstance(year, int) or not 1 <= year <= 9999:
            raise ValidationError(f"invalid year: {year!r}", field='year')

        anchor = self.store.get_employee_anchor(employee_id)
        entries = self.store.get_schedule_entries(employee_id)
        holiday_map = self._holiday_map(year, month_num)

        slots_by_key = {}
        for entry in entries:
            slots_by_key.setdefault((entry.phase, entry.day_name), []).append(entry.slot)

        projections = []
        for current_date in month_dates(year, month_num):
            phase = resolve_phase(anchor, current_date)
            day_name = WEEKDAYS[current_date.weekday()]
            projections.append(DayProjection(
                date=current_date,
                day_name=day_name,
                phase=phase,
                holiday_name=holiday_map.get(current_date, ''),
                time_slots=list(slots_by_key.get((phase, day_name), [])),
            ))

        logger.info(f"Projected {len(projections)} days for employee {employee_id} ({year}-{month_num:02d})")
        return projections

    def formatted_weeks(self, employee_id):
        """The canonical two-phase, seven-day view of the stored template."""
        self.store.get_employee_anchor(employee_id)
        entries = []
        for phase in PHASES:
            entries.extend(self.store.get_schedule_entries(employee_id, phase))
        return expand_weeks(entries)

    def _holiday_map(self, year, month):
        if self.holidays is None:
            return {}
        try:
            holidays = self.holidays.get_holidays(year, month)
        except (HolidayUnavailable, ReadError) as e:
            logger.warning(f"Could not fetch holidays for {year}-{month:02d}: {e}")
            return {}
        return {holiday_date: name for holiday_date, name in holidays}
