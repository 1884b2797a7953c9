"""
Weekly rotation templates.

A template is the set of time slots an employee works on each weekday of
one phase ("A" or "B").  This module turns the JSON submitted by clients
into :class:`ScheduleEntry` rows ready for the store, and turns stored
rows back into the fixed two-phase, seven-day view used by the front end.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List

from errors import ValidationError
from timeslots import TimeSlot

PHASES = ('A', 'B')
WEEKDAYS = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')
DATE_FORMAT = '%Y-%m-%d'


def validate_phase(phase):
    if phase not in PHASES:
        raise ValidationError(f"week type must be either 'A' or 'B', got: {phase!r}", field='weekType')
    return phase


def parse_date(text, field=None):
    if isinstance(text, date):
        return text
    try:
        return datetime.strptime(text, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise ValidationError(f"invalid date {text!r}; expected YYYY-MM-DD", field=field) from e


@dataclass(frozen=True)
class ScheduleEntry:
    """One stored slot of an employee's weekly template."""
    employee_id: int
    phase: str
    day_name: str
    slot: TimeSlot


@dataclass
class EmployeeTemplate:
    """A validated employee load request: anchor date plus both phases."""
    name: str
    start_date: date
    weeks: Dict[str, Dict[str, List[TimeSlot]]] = field(default_factory=dict)

    def entries_for(self, employee_id):
        """Flatten the template into store rows for ``employee_id``."""
        entries = []
        for phase in PHASES:
            days = self.weeks.get(phase, {})
            for day_name in WEEKDAYS:
                for slot in days.get(day_name, []):
                    entries.append(ScheduleEntry(employee_id, phase, day_name, slot))
        return entries

    @property
    def slot_count(self):
        return sum(len(slots) for days in self.weeks.values() for slots in days.values())


def _normalize_week(name, phase, raw_week):
    if raw_week is None:
        return {}
    if not isinstance(raw_week, dict):
        raise ValidationError(f"{name}/{phase}: week must be an object of weekday lists", field=f"{name}/{phase}")

    unknown = sorted(set(raw_week) - set(WEEKDAYS))
    if unknown:
        raise ValidationError(f"{name}/{phase}: unknown weekday(s) {', '.join(unknown)}", field=f"{name}/{phase}")

    days = {}
    for day_name in WEEKDAYS:
        raw_slots = raw_week.get(day_name) or []
        if not isinstance(raw_slots, list):
            raise ValidationError(f"{name}/{phase}/{day_name}: slots must be a list", field=f"{name}/{phase}/{day_name}")
        slots = []
        for index, raw_slot in enumerate(raw_slots):
            location = f"{name}/{phase}/{day_name}[{index}]"
            if not isinstance(raw_slot, dict):
                raise ValidationError(f"{location}: slot must be an object with start and end", field=location)
            try:
                slot = TimeSlot.parse(raw_slot.get('start'), raw_slot.get('end'), field=location)
            except ValidationError as e:
                raise ValidationError(f"{location}: {e}", field=e.field) from e
            slots.append(slot)
        days[day_name] = slots
    return days


def normalize_employee(raw):
    """Validate one client-submitted employee and return its template.

    Expected shape::

        {"name": "Delphine", "startDate": "2024-01-08",
         "weeks": {"A": {"Monday": [{"start": "09:00", "end": "12:00"}], ...},
                   "B": {...}}}
    """
    if not isinstance(raw, dict):
        raise ValidationError("employee entry must be an object")
    name = raw.get('name')
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("employee name is required", field='name')
    name = name.strip()
    start_date = parse_date(raw.get('startDate'), field=f"{name}/startDate")

    raw_weeks = raw.get('weeks') or {}
    if not isinstance(raw_weeks, dict):
        raise ValidationError(f"{name}: weeks must be an object keyed by week type", field=f"{name}/weeks")

    weeks = {}
    for phase in raw_weeks:
        try:
            validate_phase(phase)
        except ValidationError as e:
            raise ValidationError(f"{name}: {e}", field=f"{name}/weeks") from e
    for phase in PHASES:
        weeks[phase] = _normalize_week(name, phase, raw_weeks.get(phase))

    return EmployeeTemplate(name=name, start_date=start_date, weeks=weeks)


def normalize_employees(payload):
    """Validate a whole load request before anything is written.

    The first bad slot anywhere in the batch raises
    :class:`ValidationError`; callers persist only a fully validated list.
    """
    if not isinstance(payload, list):
        raise ValidationError("request body must be a list of employees")
    templates = [normalize_employee(raw) for raw in payload]

    seen = set()
    for template in templates:
        if template.name in seen:
            raise ValidationError(f"employee {template.name!r} appears more than once", field='name')
        seen.add(template.name)
    return templates


def count_slots(templates):
    """Number of slots submitted per employee name."""
    return {template.name: template.slot_count for template in templates}


@dataclass
class DailySchedule:
    day_name: str
    time_slots: List[TimeSlot] = field(default_factory=list)

    def to_dict(self):
        return {
            'dayName': self.day_name,
            'timeSlots': [slot.to_dict() for slot in self.time_slots],
        }


@dataclass
class WeekSchedule:
    week_type: str
    days: List[DailySchedule] = field(default_factory=list)

    def to_dict(self):
        return {
            'weekType': self.week_type,
            'days': [day.to_dict() for day in self.days],
        }


def expand_weeks(entries):
    """Build the canonical A/B view from stored rows.

    Always two weeks (A then B) of seven days (Monday..Sunday); days
    without slots are present with an empty list.  Slots keep the order
    the rows arrive in.
    """
    weeks = [WeekSchedule(phase, [DailySchedule(day_name) for day_name in WEEKDAYS]) for phase in PHASES]
    week_index = {phase: i for i, phase in enumerate(PHASES)}
    day_index = {day_name: i for i, day_name in enumerate(WEEKDAYS)}

    for entry in entries:
        if entry.phase not in week_index or entry.day_name not in day_index:
            continue
        weeks[week_index[entry.phase]].days[day_index[entry.day_name]].time_slots.append(entry.slot)

    return weeks
