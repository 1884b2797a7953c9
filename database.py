import logging
from datetime import date, datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.exc import SQLAlchemyError

from errors import NotFoundError, ReadError, WriteError
from timeslots import TimeSlot
from weekly_template import ScheduleEntry, validate_phase

logger = logging.getLogger(__name__)

db = SQLAlchemy()


class Employee(db.Model):
    """An employee on the biweekly rotation.

    ``start_date`` anchors the A/B phase computation and is never changed
    by a template reload.
    """
    __tablename__ = 'employees'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    start_date = db.Column(db.Date, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    schedules = db.relationship('Schedule', backref='employee', lazy=True,
                                cascade='all, delete-orphan', order_by='Schedule.id')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'startDate': self.start_date.isoformat(),
        }


class Schedule(db.Model):
    """One recurring slot: employee, week type, weekday, start and end."""
    __tablename__ = 'schedules'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False, index=True)
    week_type = db.Column(db.String(1), nullable=False)  # A, B
    day_name = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    def to_entry(self):
        return ScheduleEntry(
            employee_id=self.employee_id,
            phase=self.week_type,
            day_name=self.day_name,
            slot=TimeSlot(self.start_time, self.end_time),
        )


class Holiday(db.Model):
    __tablename__ = 'holidays'

    holiday_date = db.Column(db.Date, primary_key=True)
    holiday_name = db.Column(db.String(255), nullable=False)


class HolidayYear(db.Model):
    """A year whose holiday document has been fetched, even if it was empty."""
    __tablename__ = 'holiday_years'

    year = db.Column(db.Integer, primary_key=True)
    fetched_at = db.Column(db.DateTime, default=datetime.utcnow)


class PayloadDigest(db.Model):
    """Digest of the most recent load request applied.

    Only one row is kept; it is cleared when an employee is deleted, since
    the stored templates no longer match that request.
    """
    __tablename__ = 'payload_digests'

    digest = db.Column(db.String(64), primary_key=True)
    employee_count = db.Column(db.Integer, default=0)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)


def init_db():
    """Create every table that does not exist yet."""
    db.create_all()
    logger.info("Database schema created")


def drop_db():
    db.drop_all()
    logger.info("Database schema dropped")


class ScheduleRepository:
    """Store used by the scheduling engine and the holiday calendar.

    Reads raise :class:`ReadError` and writes raise :class:`WriteError`
    (after rolling back) when the database fails.
    """

    def __init__(self, session=None):
        self.session = session or db.session

    # --- Employees ---
    def _get_employee(self, employee_id):
        try:
            employee = self.session.get(Employee, employee_id)
        except SQLAlchemyError as e:
            raise ReadError(f"failed to read employee {employee_id}: {e}") from e
        if employee is None:
            raise NotFoundError(f"employee {employee_id} not found")
        return employee

    def get_employee_anchor(self, employee_id):
        return self._get_employee(employee_id).start_date

    def list_employees(self):
        try:
            return self.session.query(Employee).order_by(Employee.id).all()
        except SQLAlchemyError as e:
            raise ReadError(f"failed to list employees: {e}") from e

    def upsert_employee(self, name, start_date):
        """Find ``name`` or add it; returns ``(employee, created)``.

        Does not commit.  An existing employee keeps its anchor date.
        """
        employee = self.session.query(Employee).filter_by(name=name).first()
        if employee is None:
            employee = Employee(name=name, start_date=start_date)
            self.session.add(employee)
            self.session.flush()
            return employee, True
        if employee.start_date != start_date:
            logger.warning(
                f"Ignoring start date {start_date} for {name}; "
                f"rotation stays anchored on {employee.start_date}"
            )
        return employee, False

    def delete_employee(self, employee_id):
        employee = self._get_employee(employee_id)
        try:
            self.session.delete(employee)
            self.session.query(PayloadDigest).delete(synchronize_session=False)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteError(f"failed to delete employee {employee_id}: {e}") from e
        logger.info(f"Deleted employee {employee_id} ({employee.name})")

    # --- Schedules ---
    def get_schedule_entries(self, employee_id, phase=None):
        query = self.session.query(Schedule).filter(Schedule.employee_id == employee_id)
        if phase is not None:
            query = query.filter(Schedule.week_type == validate_phase(phase))
        try:
            rows = query.order_by(Schedule.id).all()
        except SQLAlchemyError as e:
            raise ReadError(f"failed to read schedules for employee {employee_id}: {e}") from e
        return [row.to_entry() for row in rows]

    def _replace_rows(self, employee_id, entries):
        self.session.query(Schedule).filter(Schedule.employee_id == employee_id).delete(synchronize_session=False)
        for entry in entries:
            self.session.add(Schedule(
                employee_id=employee_id,
                week_type=validate_phase(entry.phase),
                day_name=entry.day_name,
                start_time=entry.slot.start,
                end_time=entry.slot.end,
            ))

    def replace_schedule_entries(self, employee_id, entries):
        """Replace every stored slot of ``employee_id`` in one transaction."""
        self._get_employee(employee_id)
        try:
            self._replace_rows(employee_id, entries)
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteError(f"failed to store schedules for employee {employee_id}: {e}") from e

    def load_employee(self, template):
        """Upsert the employee and replace its template, committing once."""
        try:
            employee, created = self.upsert_employee(template.name, template.start_date)
            self._replace_rows(employee.id, template.entries_for(employee.id))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteError(f"failed to load employee {template.name!r}: {e}") from e
        logger.info(
            f"{'Created' if created else 'Reloaded'} employee {employee.name} "
            f"(id={employee.id}) with {template.slot_count} slots"
        )
        return employee

    # --- Holidays ---
    def find_holidays(self, year, month):
        start_of_month = date(year, month, 1)
        end_of_month = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
        try:
            return self.session.query(Holiday).filter(
                Holiday.holiday_date >= start_of_month,
                Holiday.holiday_date < end_of_month
            ).order_by(Holiday.holiday_date).all()
        except SQLAlchemyError as e:
            raise ReadError(f"failed to read holidays for {year}-{month:02d}: {e}") from e

    def is_holiday_year_fetched(self, year):
        try:
            return self.session.get(HolidayYear, year) is not None
        except SQLAlchemyError as e:
            raise ReadError(f"failed to read fetched holiday years: {e}") from e

    def save_holidays(self, holidays, year=None):
        """Store ``(date, name)`` pairs, skipping dates already present.

        When ``year`` is given it is marked as fetched in the same commit.
        """
        saved = 0
        try:
            for holiday_date, name in holidays:
                if self.session.get(Holiday, holiday_date) is not None:
                    continue
                self.session.add(Holiday(holiday_date=holiday_date, holiday_name=name))
                saved += 1
            if year is not None and self.session.get(HolidayYear, year) is None:
                self.session.add(HolidayYear(year=year))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteError(f"failed to store holidays: {e}") from e
        return saved

    # --- Load digests ---
    def has_digest(self, digest):
        try:
            return self.session.get(PayloadDigest, digest) is not None
        except SQLAlchemyError as e:
            raise ReadError(f"failed to read payload digests: {e}") from e

    def record_digest(self, digest, employee_count):
        """Make ``digest`` the only recorded load, replacing older ones."""
        try:
            self.session.query(PayloadDigest).delete(synchronize_session=False)
            self.session.add(PayloadDigest(digest=digest, employee_count=employee_count))
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            raise WriteError(f"failed to record payload digest: {e}") from e
