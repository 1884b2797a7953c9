import logging
import os
from datetime import date

import pytest

# The app reads its database URI at import time; keep tests off the real file.
os.environ['DATABASE_URL'] = 'sqlite://'

from errors import HolidayUnavailable, NotFoundError  # noqa: E402
from weekly_template import normalize_employee, validate_phase  # noqa: E402

logging.basicConfig(
    level=logging.DEBUG,
    format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
)


class InMemoryStore:
    """Dict-backed stand-in for ``database.ScheduleRepository``."""

    def __init__(self):
        self.anchors = {}
        self.entries = {}
        self.writes = 0

    def add_employee(self, employee_id, raw_employee):
        template = normalize_employee(raw_employee)
        self.anchors[employee_id] = template.start_date
        self.replace_schedule_entries(employee_id, template.entries_for(employee_id))
        return template

    def get_employee_anchor(self, employee_id):
        try:
            return self.anchors[employee_id]
        except KeyError:
            raise NotFoundError(f"employee {employee_id} not found")

    def get_schedule_entries(self, employee_id, phase=None):
        entries = self.entries.get(employee_id, [])
        if phase is not None:
            validate_phase(phase)
            entries = [entry for entry in entries if entry.phase == phase]
        return list(entries)

    def replace_schedule_entries(self, employee_id, entries):
        self.writes += 1
        self.entries[employee_id] = list(entries)


class StaticHolidays:
    """Holiday collaborator returning a fixed table, or raising ``error``."""

    def __init__(self, holidays=(), error=None):
        self.holidays = list(holidays)
        self.error = error
        self.calls = []

    def get_holidays(self, year, month):
        self.calls.append((year, month))
        if self.error is not None:
            raise self.error
        return {(d, name) for d, name in self.holidays if d.year == year and d.month == month}


DELPHINE = {
    "name": "Delphine",
    "startDate": "2024-01-08",
    "weeks": {
        "A": {
            "Monday": [],
            "Tuesday": [{"start": "9:00", "end": "12:00"}, {"start": "13:00", "end": "17:45"}],
            "Wednesday": [{"start": "9:00", "end": "12:00"}, {"start": "13:00", "end": "18:45"}],
            "Thursday": [{"start": "12:45", "end": "19:45"}],
            "Friday": [{"start": "13:00", "end": "20:00"}],
            "Saturday": [{"start": "13:00", "end": "20:00"}],
            "Sunday": []
        },
        "B": {
            "Monday": [{"start": "12:45", "end": "19:45"}],
            "Tuesday": [{"start": "11:45", "end": "19:45"}],
            "Wednesday": [{"start": "12:45", "end": "19:45"}],
            "Thursday": [],
            "Friday": [{"start": "9:00", "end": "12:00"}, {"start": "13:00", "end": "17:45"}],
            "Saturday": [{"start": "09:00", "end": "16:00"}],
            "Sunday": []
        }
    }
}

HENNY = {
    "name": "Henny Honore",
    "startDate": "2024-02-24",
    "weeks": {
        "A": {
            "Monday": [{"start": "9:00", "end": "12:00"}, {"start": "13:00", "end": "17:00"}],
            "Tuesday": [],
            "Wednesday": [{"start": "10:00", "end": "13:00"}, {"start": "14:00", "end": "18:45"}],
            "Thursday": [{"start": "9:00", "end": "13:00"}, {"start": "15:00", "end": "19:00"}],
            "Friday": [{"start": "13:00", "end": "20:00"}],
            "Saturday": [{"start": "13:00", "end": "20:00"}],
            "Sunday": []
        },
        "B": {
            "Monday": [{"start": "10:00", "end": "13:00"}, {"start": "14:00", "end": "19:00"}],
            "Tuesday": [{"start": "11:45", "end": "19:45"}],
            "Wednesday": [{"start": "12:00", "end": "19:45"}],
            "Thursday": [],
            "Friday": [{"start": "9:00", "end": "13:00"}, {"start": "14:00", "end": "18:00"}],
            "Saturday": [{"start": "9:00", "end": "14:00"}],
            "Sunday": []
        }
    }
}

FRENCH_HOLIDAYS_2024 = {
    "2024-01-01": "1er janvier",
    "2024-04-01": "Lundi de Pâques",
    "2024-05-01": "1er mai",
    "2024-05-08": "8 mai",
    "2024-05-09": "Ascension",
    "2024-05-20": "Lundi de Pentecôte",
    "2024-07-14": "14 juillet",
    "2024-08-15": "Assomption",
    "2024-11-01": "Toussaint",
    "2024-11-11": "11 novembre",
    "2024-12-25": "Jour de Noël",
}


@pytest.fixture
def app_ctx():
    """App context over a freshly created in-memory database."""
    from app import app
    from database import db

    app.config["TESTING"] = True
    app.config["PROPAGATE_EXCEPTIONS"] = True
    with app.app_context():
        db.drop_all()
        db.create_all()

        yield app

        db.session.remove()
        db.drop_all()


@pytest.fixture
def store():
    store = InMemoryStore()
    store.add_employee(1, DELPHINE)
    return store


@pytest.fixture
def easter_monday():
    return StaticHolidays([(date(2024, 4, 1), "Lundi de Pâques")])


@pytest.fixture
def broken_holidays():
    return StaticHolidays(error=HolidayUnavailable("holiday API request failed for 2024: timeout"))
