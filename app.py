#!/usr/bin/env python3
"""
Biweekly Rotation Scheduler - HTTP API

Employees work a recurring two-week rotation: a "Week A" template and a
"Week B" template that alternate every ISO week from the employee's start
date.  This service loads those templates, projects them onto calendar
months (with public holidays marked) and reports worked hours.

Running the app:

    $ python app.py

Configuration comes from the environment (``DATABASE_URL``, ``PORT``,
``HOLIDAY_API_URL``, ``HOLIDAY_ZONE``, ``HOLIDAY_API_TIMEOUT``,
``SECRET_KEY``).
"""

import json
import logging
import os

from flask import Flask, jsonify, request

from database import ScheduleRepository, db, drop_db, init_db
from errors import NotFoundError, SchedulerError, ValidationError
from holiday_calendar import DEFAULT_API_URL, DEFAULT_TIMEOUT, DEFAULT_ZONE, HolidayCalendar, fetch_holidays_from_api
from payload_hash import hash_json
from scheduling_engine import SchedulingEngine
from timeslots import total_hours
from weekly_template import count_slots, normalize_employees

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Configuration
app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///rotation_schedule.db')
app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'rotation-scheduler-secret-key-change-in-production')
app.config['HOLIDAY_API_URL'] = os.environ.get('HOLIDAY_API_URL', DEFAULT_API_URL)
app.config['HOLIDAY_ZONE'] = os.environ.get('HOLIDAY_ZONE', DEFAULT_ZONE)
app.config['HOLIDAY_API_TIMEOUT'] = float(os.environ.get('HOLIDAY_API_TIMEOUT', DEFAULT_TIMEOUT))

# Initialize database
db.init_app(app)


def _fetch_holidays(year):
    return fetch_holidays_from_api(
        year,
        base_url=app.config['HOLIDAY_API_URL'],
        zone=app.config['HOLIDAY_ZONE'],
        timeout=app.config['HOLIDAY_API_TIMEOUT'],
    )


def _engine(repository=None):
    repository = repository or ScheduleRepository()
    return SchedulingEngine(repository, HolidayCalendar(repository, fetcher=_fetch_holidays))


def _error_status(error):
    if isinstance(error, ValidationError):
        return 400
    if isinstance(error, NotFoundError):
        return 404
    return 500


def _error_response(error, action):
    status = _error_status(error)
    if status >= 500:
        logger.error(f"Error {action}: {error}")
    else:
        logger.warning(f"Rejected {action}: {error}")
    return jsonify({'success': False, 'error': str(error)}), status


# API Routes
@app.route('/api/loadEmployees', methods=['POST'])
def load_employees():
    """Load employees and their A/B weekly templates.

    A payload identical (up to object key order) to the last one applied
    is acknowledged without touching the database.
    """
    try:
        raw = request.get_data(as_text=True)
        digest = hash_json(raw)
        repository = ScheduleRepository()

        if repository.has_digest(digest):
            logger.info(f"Payload {digest[:12]} matches the last load, skipping")
            return jsonify({'success': True, 'skipped': True, 'digest': digest})

        templates = normalize_employees(json.loads(raw))
        slot_counts = count_slots(templates)
        logger.info(f"Loading {len(templates)} employees: {slot_counts}")

        loaded = []
        for template in templates:
            employee = repository.load_employee(template)
            loaded.append({
                'id': employee.id,
                'name': employee.name,
                'startDate': employee.start_date.isoformat(),
                'slots': slot_counts[template.name],
            })
        repository.record_digest(digest, len(templates))

        return jsonify({
            'success': True,
            'skipped': False,
            'digest': digest,
            'employees': loaded,
        })
    except SchedulerError as e:
        return _error_response(e, 'loading employees')


@app.route('/api/db/create', methods=['GET'])
def create_database():
    try:
        init_db()
        return jsonify({'success': True, 'message': 'Database schema created'})
    except Exception as e:
        logger.error(f"Error creating database schema: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/db/delete', methods=['DELETE'])
def delete_database():
    try:
        drop_db()
        return jsonify({'success': True, 'message': 'Database schema dropped'})
    except Exception as e:
        logger.error(f"Error dropping database schema: {str(e)}")
        return jsonify({'success': False, 'error': str(e)}), 500


@app.route('/api/getMonthlySchedule', methods=['GET'])
def get_monthly_schedule():
    """Project an employee's rotation onto one month.

    Query parameters: ``employee_id`` (int), ``month`` (English month
    name) and ``year`` (int).
    """
    try:
        employee_id = request.args.get('employee_id', type=int)
        year = request.args.get('year', type=int)
        month = request.args.get('month')
        if employee_id is None:
            raise ValidationError('employee_id is required and must be an integer', field='employee_id')
        if year is None:
            raise ValidationError('year is required and must be an integer', field='year')

        days = _engine().project_month(employee_id, month, year)
        return jsonify({
            'success': True,
            'employee_id': employee_id,
            'schedule': [day.to_dict() for day in days],
            'total_hours': round(total_hours(days), 2),
        })
    except SchedulerError as e:
        return _error_response(e, 'fetching monthly schedule')


@app.route('/api/getEmployees', methods=['GET'])
def get_employees():
    try:
        employees = ScheduleRepository().list_employees()
        return jsonify({
            'success': True,
            'employees': [emp.to_dict() for emp in employees],
            'count': len(employees)
        })
    except SchedulerError as e:
        return _error_response(e, 'fetching employees')


@app.route('/api/getWeeksAB/<int:employee_id>', methods=['GET'])
def get_weeks_ab(employee_id):
    """Week A and Week B templates, all seven days each."""
    try:
        weeks = _engine().formatted_weeks(employee_id)
        return jsonify({
            'success': True,
            'employee_id': employee_id,
            'weeks': [week.to_dict() for week in weeks]
        })
    except SchedulerError as e:
        return _error_response(e, f'fetching weeks for employee {employee_id}')


@app.route('/api/employees/<int:employee_id>', methods=['DELETE'])
def delete_employee(employee_id):
    """Remove an employee together with all of their schedule rows."""
    try:
        ScheduleRepository().delete_employee(employee_id)
        return jsonify({'success': True, 'message': 'Employee deleted successfully'})
    except SchedulerError as e:
        return _error_response(e, f'deleting employee {employee_id}')


# Error handlers
@app.errorhandler(404)
def not_found(error):
    return jsonify({'success': False, 'error': 'Resource not found'}), 404


@app.errorhandler(500)
def internal_error(error):
    logger.error(f"Internal server error: {str(error)}")
    return jsonify({'success': False, 'error': 'Internal server error'}), 500


if __name__ == '__main__':
    with app.app_context():
        init_db()

    port = int(os.environ.get('PORT', 8070))
    is_production = os.environ.get('FLASK_ENV') == 'production'

    if is_production:
        app.run(host='0.0.0.0', port=port, debug=False)
    else:
        app.run(host='0.0.0.0', port=port, debug=True)
