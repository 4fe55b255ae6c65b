"""
Pytest configuration and fixtures for TurnoFácil tests.

This module provides shared fixtures for:
- Flask application with test configuration
- Factories for actors, employees, shifts and team requests
- A fixed reference clock
"""
import pytest
from datetime import date, datetime, timedelta, timezone

from turnofacil import create_app
from turnofacil.models import (
    Actor,
    ApprovalFlow,
    DayAvailability,
    Employee,
    FlowConfig,
    RequestPriority,
    RequestStatus,
    RequestType,
    Role,
    ScheduleShift,
    TeamRequest,
)
from turnofacil.utils.time_utils import shift_duration_hours

# Monday; every factory date defaults around it
REFERENCE_DATE = date(2024, 1, 15)
REFERENCE_NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope='session')
def app():
    """
    Create application for the tests.

    Uses TestingConfig. Scope is 'session' to reuse the same app across
    all tests.
    """
    app = create_app('testing')
    app.config.update({
        'TESTING': True,
    })
    return app


@pytest.fixture(scope='function')
def client(app):
    """
    Create a test client for the app.

    The query cache is emptied first so cached views never leak between tests.
    """
    app.extensions['query_cache'].clear()
    with app.test_client() as client:
        yield client


@pytest.fixture
def now():
    return REFERENCE_NOW


@pytest.fixture
def clock(now):
    """A clock that always answers the reference instant."""
    return lambda: now


@pytest.fixture
def actor_factory():
    """
    Factory for creating acting users.

    Usage:
        supervisor = actor_factory(role=Role.SUPERVISOR, location_id='LOC1')
    """
    def _create_actor(**kwargs):
        defaults = {
            'id': 'USR001',
            'role': Role.EMPLOYEE,
            'name': 'Usuario de prueba',
            'location_id': 'LOC1',
        }
        defaults.update(kwargs)
        defaults['role'] = Role(defaults['role'])
        return Actor(**defaults)

    return _create_actor


@pytest.fixture
def supervisor(actor_factory):
    return actor_factory(id='SUP001', role=Role.SUPERVISOR, name='Sara Supervisora')


@pytest.fixture
def admin(actor_factory):
    return actor_factory(id='ADM001', role=Role.BUSINESS_ADMIN, name='Andrés Admin', location_id=None)


@pytest.fixture
def employee_actor(actor_factory):
    return actor_factory(id='EMP001', role=Role.EMPLOYEE, name='Ana Gómez')


def full_week_availability(start_time=None, end_time=None):
    return tuple(DayAvailability(day=day, start_time=start_time, end_time=end_time) for day in range(7))


@pytest.fixture
def employee_factory():
    """
    Factory for creating roster employees.

    Employees are available every day with no time window unless
    availability is passed.
    """
    def _create_employee(**kwargs):
        defaults = {
            'id': 'EMP001',
            'name': 'Ana Gómez',
            'position': 'Cajera',
            'location_id': 'LOC1',
            'max_weekly_hours': None,
            'hourly_rate': 10000.0,
            'availability': full_week_availability(),
        }
        defaults.update(kwargs)
        return Employee(**defaults)

    return _create_employee


@pytest.fixture
def shift_factory():
    """
    Factory for creating shifts.

    Duration is computed from the times unless given.
    """
    counter = {'value': 0}

    def _create_shift(**kwargs):
        counter['value'] += 1
        defaults = {
            'id': f"SHF{counter['value']:03d}",
            'employee_id': 'EMP001',
            'location_id': 'LOC1',
            'date': REFERENCE_DATE,
            'start_time': '08:00',
            'end_time': '16:00',
            'cost': 0.0,
        }
        defaults.update(kwargs)
        if 'duration' not in defaults:
            defaults['duration'] = shift_duration_hours(defaults['start_time'], defaults['end_time'])
        return ScheduleShift(**defaults)

    return _create_shift


@pytest.fixture
def request_factory():
    """
    Factory for creating team requests.

    Usage:
        request = request_factory(id='REQ9', priority=RequestPriority.LOW)
    """
    def _create_request(**kwargs):
        business_admin = kwargs.pop('requires_business_admin', False)
        defaults = {
            'id': 'REQ001',
            'employee_id': 'EMP001',
            'employee_name': 'Ana Gómez',
            'location_id': 'LOC1',
            'type': RequestType.SHIFT_CHANGE,
            'status': RequestStatus.PENDING,
            'priority': RequestPriority.MEDIUM,
            'submitted_date': REFERENCE_NOW - timedelta(hours=2),
            'reason': 'Cita médica',
            'approval_flow': ApprovalFlow(
                flow_config=FlowConfig(requires_business_admin_approval=business_admin)
            ),
        }
        defaults.update(kwargs)
        return TeamRequest(**defaults)

    return _create_request

