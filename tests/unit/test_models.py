"""
Unit tests for the snapshot models and time helpers.

Tests cover:
- Hydrating models from JSON payloads
- Overnight shift arithmetic
- Enum ordering helpers
- Rejection of malformed payloads
"""
import pytest
from datetime import date, datetime, timezone

from turnofacil.error_handlers.exceptions import AuthenticationException, ValidationException
from turnofacil.models import (
    Actor,
    ApprovalStage,
    Employee,
    RequestPriority,
    RequestStatus,
    RequestType,
    Role,
    ScheduleShift,
    TeamRequest,
)
from turnofacil.utils import time_utils
from turnofacil.utils.validators import (
    is_valid_time,
    sanitize_request_data,
    time_to_minutes,
    validate_datetime_param,
    validate_number_param,
)


class TestTimeHelpers:
    """Tests for HH:mm arithmetic."""

    @pytest.mark.unit
    def test_valid_times(self):
        assert is_valid_time('06:00') is True
        assert is_valid_time('6:30') is True
        assert is_valid_time('23:59') is True
        assert is_valid_time('24:00') is False
        assert is_valid_time('12:60') is False
        assert is_valid_time(None) is False

    @pytest.mark.unit
    def test_time_to_minutes_rejects_malformed(self):
        assert time_to_minutes('06:30') == 390
        with pytest.raises(ValidationException):
            time_to_minutes('25:00')

    @pytest.mark.unit
    def test_overnight_shift_end_moves_to_next_day(self):
        """An end at or before the start adds a full day of minutes."""
        start, end = time_utils.shift_minutes('22:00', '06:00')
        assert start == 1320
        assert end == 360 + 1440
        assert time_utils.shift_duration_hours('22:00', '06:00') == 8
        assert time_utils.crosses_midnight('22:00', '06:00') is True
        assert time_utils.crosses_midnight('06:00', '14:00') is False

    @pytest.mark.unit
    def test_same_start_and_end_is_a_full_day(self):
        assert time_utils.shift_duration_hours('08:00', '08:00') == 24

    @pytest.mark.unit
    def test_shift_bounds_span_midnight(self):
        start, end = time_utils.shift_bounds(date(2024, 1, 15), '22:00', '06:00')
        assert start == datetime(2024, 1, 15, 22, 0)
        assert end == datetime(2024, 1, 16, 6, 0)

    @pytest.mark.unit
    def test_day_index_starts_on_sunday(self):
        assert time_utils.day_index(date(2024, 1, 14)) == 0  # Sunday
        assert time_utils.day_index(date(2024, 1, 15)) == 1  # Monday
        assert time_utils.day_index(date(2024, 1, 20)) == 6  # Saturday
        assert time_utils.week_start(date(2024, 1, 17)) == date(2024, 1, 14)


class TestPayloadValidators:

    @pytest.mark.unit
    def test_naive_timestamp_is_taken_as_utc(self):
        parsed = validate_datetime_param('2024-01-15T08:00:00')
        assert parsed.tzinfo == timezone.utc

    @pytest.mark.unit
    def test_zulu_timestamp(self):
        parsed = validate_datetime_param('2024-01-15T08:00:00Z')
        assert parsed == datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc)

    @pytest.mark.unit
    def test_number_param_rejects_booleans(self):
        with pytest.raises(ValidationException):
            validate_number_param(True, 'weekly_budget')
        assert validate_number_param(None, 'weekly_budget', default=0) == 0

    @pytest.mark.unit
    def test_sanitize_request_data(self):
        assert sanitize_request_data('{"token": "abc"}') == '{"token": "[REDACTED]"}'


class TestActor:

    @pytest.mark.unit
    def test_from_dict(self):
        actor = Actor.from_dict({'id': 'U1', 'role': 'SUPERVISOR', 'location_id': 7})
        assert actor.role == Role.SUPERVISOR
        assert actor.location_id == '7'

    @pytest.mark.unit
    def test_missing_actor_is_an_authentication_error(self):
        with pytest.raises(AuthenticationException):
            Actor.from_dict(None)
        with pytest.raises(AuthenticationException):
            Actor.from_dict({'id': 'U1', 'role': 'MANAGER'})

    @pytest.mark.unit
    def test_role_levels_are_ordered(self):
        assert Role.EMPLOYEE.level < Role.SUPERVISOR.level < Role.BUSINESS_ADMIN.level


class TestScheduleModels:

    @pytest.mark.unit
    def test_shift_from_dict_computes_duration(self):
        shift = ScheduleShift.from_dict({
            'id': 'S1',
            'employee_id': 'EMP001',
            'date': '2024-01-15',
            'start_time': '22:00',
            'end_time': '06:00',
        })
        assert shift.duration == 8
        assert shift.crosses_midnight is True
        assert shift.to_dict()['crosses_midnight'] is True

    @pytest.mark.unit
    def test_shift_keeps_malformed_times_for_reporting(self):
        shift = ScheduleShift.from_dict({
            'employee_id': 'EMP001',
            'date': '2024-01-15',
            'start_time': '25:00',
            'end_time': '14:00',
        })
        assert shift.has_valid_times is False
        assert shift.duration == 0

    @pytest.mark.unit
    def test_shift_requires_employee(self):
        with pytest.raises(ValidationException):
            ScheduleShift.from_dict({'date': '2024-01-15', 'start_time': '06:00', 'end_time': '14:00'})

    @pytest.mark.unit
    def test_employee_availability_lookup(self):
        employee = Employee.from_dict({
            'id': 'EMP001',
            'name': 'Ana',
            'availability': [
                {'day': 1, 'available': True, 'start_time': '06:00', 'end_time': '18:00'},
                {'day': 0, 'available': False},
            ],
        })
        assert employee.availability_for(1).has_window is True
        assert employee.availability_for(0).available is False
        assert employee.availability_for(3) is None

    @pytest.mark.unit
    def test_availability_day_must_be_in_range(self):
        with pytest.raises(ValidationException):
            Employee.from_dict({'id': 'EMP001', 'availability': [{'day': 7}]})


class TestTeamRequest:

    @pytest.mark.unit
    def test_from_dict_defaults(self):
        request = TeamRequest.from_dict({
            'id': 'REQ1',
            'employee_id': 'EMP001',
            'type': 'vacation',
            'submitted_date': '2024-01-15T08:00:00Z',
            'start_date': '2024-02-01',
            'end_date': '2024-02-05',
        })
        assert request.status == RequestStatus.PENDING
        assert request.priority == RequestPriority.MEDIUM
        assert request.approval_flow.current_stage == ApprovalStage.SUPERVISOR
        assert request.approval_flow.approval_history == ()
        assert request.effective_range == (date(2024, 2, 1), date(2024, 2, 5))

    @pytest.mark.unit
    def test_single_day_range_from_requested_date(self, request_factory):
        request = request_factory(requested_date=date(2024, 1, 20))
        assert request.effective_range == (date(2024, 1, 20), date(2024, 1, 20))
        assert request_factory().effective_range is None

    @pytest.mark.unit
    def test_unknown_type_is_rejected(self):
        with pytest.raises(ValidationException) as excinfo:
            TeamRequest.from_dict({
                'id': 'REQ1',
                'employee_id': 'EMP001',
                'type': 'holiday',
                'submitted_date': '2024-01-15T08:00:00Z',
            })
        assert 'request type' in excinfo.value.message

    @pytest.mark.unit
    def test_dict_roundtrip_keeps_history(self, request_factory, supervisor, now):
        from turnofacil.services import approval_flow
        from turnofacil.models import ReviewDecision

        review = approval_flow.make_review(supervisor, ReviewDecision.APPROVED, ' ok ', now)
        request = approval_flow.approve(request_factory(), review)
        restored = TeamRequest.from_dict(request.to_dict())
        assert restored == request

    @pytest.mark.unit
    def test_priority_rank(self):
        ranks = [p.rank for p in RequestPriority]
        assert ranks == [1, 2, 3, 4, 5]
        assert RequestStatus.UNDER_REVIEW.is_reviewable is True
        assert RequestStatus.DRAFT.is_reviewable is False
        assert RequestType('sick_leave') == RequestType.SICK_LEAVE
