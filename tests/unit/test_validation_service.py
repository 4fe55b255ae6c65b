"""
Unit tests for the schedule validation engine.

Tests cover:
- Per-shift checks: format, duration, date, availability, overlap, rest
- Full-schedule checks: weekly hours, rest days, leave, streaks, budget, staffing
- Result bookkeeping: is_valid, summary buckets, finding ids
"""
import pytest
from datetime import date, timedelta

from turnofacil.models import DayAvailability, RequestStatus, RequestType, RestDay
from turnofacil.services.validation_service import (
    ScheduleValidationService,
    ValidationConfig,
    validate_schedule,
    validate_shift,
)
from turnofacil.services.validation_types import (
    EntityType,
    FindingType,
    Severity,
    ValidationFinding,
    ValidationResult,
)

MONDAY = date(2024, 1, 15)
BEFORE_MONDAY = date(2024, 1, 1)


@pytest.fixture
def service():
    """Validation service whose 'today' precedes every test date."""
    return ScheduleValidationService(ValidationConfig(), today=BEFORE_MONDAY)


def _week(start=MONDAY, days=7):
    return [start + timedelta(days=offset) for offset in range(days)]


class TestValidationResult:

    @pytest.mark.unit
    def test_warnings_never_invalidate(self):
        result = ValidationResult()
        result.add_finding(ValidationFinding(FindingType.BUDGET, Severity.WARNING, 'cerca'))
        assert result.is_valid is True
        result.add_finding(ValidationFinding(FindingType.OVERLAP, Severity.ERROR, 'choque'))
        assert result.is_valid is False

    @pytest.mark.unit
    def test_summary_has_a_bucket_for_every_type(self):
        result = ValidationResult()
        result.add_finding(ValidationFinding(FindingType.OVERLAP, Severity.ERROR, 'choque'))
        summary = result.summary
        assert set(summary.by_type) == set(FindingType)
        assert summary.by_type[FindingType.OVERLAP] == 1
        assert summary.by_type[FindingType.BUDGET] == 0
        assert summary.total_errors == 1
        assert summary.critical_errors == 1

    @pytest.mark.unit
    def test_findings_are_numbered_in_order(self):
        result = ValidationResult()
        result.add_finding(ValidationFinding(FindingType.OVERLAP, Severity.ERROR, 'a'))
        result.add_finding(ValidationFinding(FindingType.BUDGET, Severity.WARNING, 'b'))
        assert [f.id for f in result.findings] == ['overlap-1', 'budget-2']
        payload = result.to_dict()
        assert payload['errors'][0]['type'] == 'overlap'
        assert payload['warnings'][0]['severity'] == 'warning'


class TestShiftValidation:

    @pytest.mark.unit
    def test_clean_shift(self, service, employee_factory, shift_factory):
        result = service.validate_shift_data(shift_factory(), [employee_factory()])
        assert result.is_valid is True
        assert result.findings == []

    @pytest.mark.unit
    def test_overlap_references_the_existing_shift(self, service, employee_factory, shift_factory):
        """06:00-14:00 against an existing 13:00-21:00 on the same date."""
        existing = shift_factory(id='S-EXIST', start_time='13:00', end_time='21:00')
        draft = shift_factory(id='', start_time='06:00', end_time='14:00')

        result = service.validate_shift_data(draft, [employee_factory()], [existing])

        overlaps = result.of_type(FindingType.OVERLAP)
        assert len(overlaps) == 1
        assert overlaps[0].severity == Severity.ERROR
        assert overlaps[0].entity_id == 'S-EXIST'
        assert overlaps[0].message == 'Conflicto de horarios con turno existente (13:00 - 21:00)'
        assert result.is_valid is False

    @pytest.mark.unit
    def test_overlap_message_uses_existing_times(self, service, employee_factory, shift_factory):
        existing = shift_factory(id='S-EXIST', start_time='06:00', end_time='14:00')
        draft = shift_factory(id='S-NEW', start_time='13:00', end_time='21:00')
        result = service.validate_shift_data(draft, [employee_factory()], [existing])
        assert result.of_type(FindingType.OVERLAP)[0].message == (
            'Conflicto de horarios con turno existente (06:00 - 14:00)'
        )

    @pytest.mark.unit
    def test_update_does_not_clash_with_itself(self, service, employee_factory, shift_factory):
        stored = shift_factory(id='S1')
        edited = shift_factory(id='S1', start_time='09:00', end_time='17:00')
        result = service.validate_shift_data(edited, [employee_factory()], [stored])
        assert result.of_type(FindingType.OVERLAP) == []

    @pytest.mark.unit
    def test_other_employees_shifts_are_ignored(self, service, employee_factory, shift_factory):
        existing = shift_factory(employee_id='EMP002')
        result = service.validate_shift_data(shift_factory(), [employee_factory()], [existing])
        assert result.is_valid is True

    @pytest.mark.unit
    def test_invalid_time_format(self, service, employee_factory, shift_factory):
        draft = shift_factory(start_time='25:00', end_time='14:00', duration=0)
        result = service.validate_shift_data(draft, [employee_factory()])
        assert result.is_valid is False
        assert result.errors[0].type == FindingType.SHIFT_GAP
        assert result.errors[0].message == 'Formato de hora inválido'

    @pytest.mark.unit
    def test_short_shift_is_an_error(self, service, employee_factory, shift_factory):
        draft = shift_factory(start_time='08:00', end_time='08:30')
        result = service.validate_shift_data(draft, [employee_factory()])
        assert result.is_valid is False
        assert 'al menos 1 hora' in result.errors[0].message

    @pytest.mark.unit
    def test_long_shift_only_warns(self, service, employee_factory, shift_factory):
        draft = shift_factory(start_time='06:00', end_time='20:00')
        result = service.validate_shift_data(draft, [employee_factory()])
        assert result.is_valid is True
        assert [f.type for f in result.warnings] == [FindingType.OVERTIME]

    @pytest.mark.unit
    def test_overnight_shift_is_not_too_short(self, service, employee_factory, shift_factory):
        draft = shift_factory(start_time='22:00', end_time='06:00')
        result = service.validate_shift_data(draft, [employee_factory()])
        assert result.is_valid is True

    @pytest.mark.unit
    def test_past_date_warns(self, employee_factory, shift_factory):
        service = ScheduleValidationService(today=MONDAY + timedelta(days=1))
        result = service.validate_shift_data(shift_factory(), [employee_factory()])
        assert result.is_valid is True
        assert 'fecha pasada' in result.warnings[0].message

    @pytest.mark.unit
    def test_unknown_employee(self, service, shift_factory):
        result = service.validate_shift_data(shift_factory(), [])
        assert result.errors[0].type == FindingType.AVAILABILITY
        assert result.errors[0].entity_type == EntityType.EMPLOYEE

    @pytest.mark.unit
    def test_unavailable_weekday(self, service, employee_factory, shift_factory):
        availability = tuple(DayAvailability(day=d, available=d != 1) for d in range(7))
        employee = employee_factory(availability=availability)
        result = service.validate_shift_data(shift_factory(), [employee])
        assert result.is_valid is False
        assert result.errors[0].message == 'Ana Gómez no está disponible los lunes'

    @pytest.mark.unit
    def test_no_availability_entries_blocks(self, service, employee_factory, shift_factory):
        result = service.validate_shift_data(shift_factory(), [employee_factory(availability=())])
        assert result.of_type(FindingType.AVAILABILITY)[0].severity == Severity.ERROR

    @pytest.mark.unit
    def test_outside_availability_window_warns(self, service, employee_factory, shift_factory):
        availability = tuple(DayAvailability(day=d, start_time='10:00', end_time='18:00') for d in range(7))
        result = service.validate_shift_data(shift_factory(), [employee_factory(availability=availability)])
        assert result.is_valid is True
        assert result.warnings[0].type == FindingType.AVAILABILITY

    @pytest.mark.unit
    def test_availability_can_be_switched_off(self, shift_factory):
        service = ScheduleValidationService(ValidationConfig(enforce_availability=False), today=BEFORE_MONDAY)
        assert service.validate_shift_data(shift_factory(), []).is_valid is True

    @pytest.mark.unit
    def test_rest_below_eight_hours_blocks(self, service, employee_factory, shift_factory):
        """Night shift ending 06:00 followed by a 10:00 start leaves 4h."""
        previous = shift_factory(id='S-NIGHT', date=MONDAY - timedelta(days=1),
                                 start_time='22:00', end_time='06:00')
        draft = shift_factory(id='S-DAY', start_time='10:00', end_time='18:00')
        result = service.validate_shift_data(draft, [employee_factory()], [previous])
        gaps = result.of_type(FindingType.SHIFT_GAP)
        assert len(gaps) == 1
        assert gaps[0].severity == Severity.ERROR
        assert gaps[0].entity_id == 'S-NIGHT'
        assert '4.0h' in gaps[0].message

    @pytest.mark.unit
    def test_rest_between_eight_and_minimum_warns(self, service, employee_factory, shift_factory):
        previous = shift_factory(id='S-PREV', date=MONDAY - timedelta(days=1),
                                 start_time='14:00', end_time='22:00')
        draft = shift_factory(start_time='08:00', end_time='16:00')
        result = service.validate_shift_data(draft, [employee_factory()], [previous])
        gaps = result.of_type(FindingType.SHIFT_GAP)
        assert [g.severity for g in gaps] == [Severity.WARNING]
        assert result.is_valid is True

    @pytest.mark.unit
    def test_overnight_overlap_into_next_day_is_zero_rest(self, service, employee_factory, shift_factory):
        previous = shift_factory(id='S-NIGHT', date=MONDAY - timedelta(days=1),
                                 start_time='22:00', end_time='08:00')
        draft = shift_factory(start_time='06:00', end_time='14:00')
        result = service.validate_shift_data(draft, [employee_factory()], [previous])
        assert result.of_type(FindingType.OVERLAP) == []
        gaps = result.of_type(FindingType.SHIFT_GAP)
        assert gaps[0].severity == Severity.ERROR
        assert '0.0h' in gaps[0].message

    @pytest.mark.unit
    def test_module_level_call_shape(self, employee_factory, shift_factory):
        result = validate_shift(shift_factory(), [employee_factory()], today=BEFORE_MONDAY)
        assert result.is_valid is True


class TestScheduleValidation:

    @pytest.mark.unit
    def test_weekly_hours_warning_can_be_auto_fixed(self, service, employee_factory, shift_factory):
        """46h against a 40h ceiling is one overtime warning; the schedule stays valid."""
        employee = employee_factory(max_weekly_hours=40)
        hours = [8, 8, 8, 8, 8, 6]
        ends = {8: '16:00', 6: '14:00'}
        shifts = [
            shift_factory(date=day, start_time='08:00', end_time=ends[h])
            for day, h in zip(_week(), hours)
        ]

        result = service.validate_full_schedule(shifts, [employee])

        overtime = result.of_type(FindingType.OVERTIME)
        assert len(overtime) == 1
        assert overtime[0].severity == Severity.WARNING
        assert overtime[0].can_auto_fix is True
        assert overtime[0].message == 'Ana Gómez excede horas semanales: 46h de 40h'
        assert result.is_valid is True

    @pytest.mark.unit
    def test_weekly_hours_far_over_is_an_error(self, service, employee_factory, shift_factory):
        employee = employee_factory(max_weekly_hours=40)
        shifts = [shift_factory(date=day, start_time='06:00', end_time='16:00') for day in _week(days=5)]
        result = service.validate_full_schedule(shifts, [employee])
        assert result.of_type(FindingType.OVERTIME)[0].severity == Severity.ERROR

    @pytest.mark.unit
    def test_configured_ceiling_applies_without_employee_limit(self, employee_factory, shift_factory):
        service = ScheduleValidationService(ValidationConfig(max_weekly_hours=16))
        shifts = [shift_factory(date=day) for day in _week(days=3)]
        result = service.validate_full_schedule(shifts, [employee_factory()])
        assert len(result.of_type(FindingType.OVERTIME)) == 1

    @pytest.mark.unit
    def test_seven_days_without_rest_day(self, service, employee_factory, shift_factory):
        shifts = [shift_factory(date=day, start_time='08:00', end_time='12:00') for day in _week()]
        result = service.validate_full_schedule(shifts, [employee_factory()])
        rest = [f for f in result.of_type(FindingType.REST_DAY) if f.severity == Severity.ERROR]
        assert len(rest) == 1
        assert result.is_valid is False

    @pytest.mark.unit
    def test_assigned_rest_day_satisfies_rule(self, service, employee_factory, shift_factory):
        shifts = [shift_factory(date=day, start_time='08:00', end_time='12:00') for day in _week()]
        rest_days = [RestDay('EMP001', MONDAY + timedelta(days=6))]
        result = service.validate_full_schedule(shifts, [employee_factory()], rest_days)
        assert [f for f in result.errors if f.type == FindingType.REST_DAY] == []

    @pytest.mark.unit
    def test_consecutive_days_warns_once_per_run(self, employee_factory, shift_factory):
        service = ScheduleValidationService(ValidationConfig(max_consecutive_work_days=3))
        shifts = [shift_factory(date=day, start_time='08:00', end_time='12:00') for day in _week(days=5)]
        rest_days = [RestDay('EMP001', MONDAY + timedelta(days=6))]
        result = service.validate_full_schedule(shifts, [employee_factory()], rest_days)
        streaks = [f for f in result.of_type(FindingType.REST_DAY) if f.severity == Severity.WARNING]
        assert len(streaks) == 1

    @pytest.mark.unit
    def test_approved_leave_blocks_shift(self, service, employee_factory, shift_factory, request_factory):
        leave = request_factory(type=RequestType.VACATION, status=RequestStatus.APPROVED,
                                start_date=MONDAY, end_date=MONDAY + timedelta(days=2))
        pending = request_factory(id='REQ002', type=RequestType.VACATION,
                                  start_date=MONDAY, end_date=MONDAY)
        shift = shift_factory(id='S-LEAVE', date=MONDAY + timedelta(days=1))

        result = service.validate_full_schedule([shift], [employee_factory()], leaves=[leave, pending])

        conflicts = result.of_type(FindingType.LEAVE_CONFLICT)
        assert len(conflicts) == 1
        assert conflicts[0].entity_id == 'S-LEAVE'

    @pytest.mark.unit
    def test_budget_over_threshold_warns(self, service, employee_factory, shift_factory):
        shifts = [shift_factory(cost=9200000)]
        result = service.validate_full_schedule(shifts, [employee_factory()], weekly_budget=10000000)
        budget = result.of_type(FindingType.BUDGET)
        assert [f.severity for f in budget] == [Severity.WARNING]
        assert '92.0%' in budget[0].message

    @pytest.mark.unit
    def test_budget_exceeded_is_an_error(self, service, employee_factory, shift_factory):
        shifts = [shift_factory(cost=1200)]
        result = service.validate_full_schedule(shifts, [employee_factory()], weekly_budget=1000)
        assert result.of_type(FindingType.BUDGET)[0].severity == Severity.ERROR

    @pytest.mark.unit
    def test_budget_skipped_without_budget(self, service, employee_factory, shift_factory):
        shifts = [shift_factory(cost=1200)]
        assert service.validate_full_schedule(shifts, [employee_factory()], weekly_budget=0).of_type(
            FindingType.BUDGET) == []

    @pytest.mark.unit
    def test_understaffed_day(self, service, employee_factory, shift_factory):
        shifts = [shift_factory()]
        result = service.validate_full_schedule(shifts, [employee_factory()])
        understaffed = result.of_type(FindingType.UNDERSTAFFED)
        assert len(understaffed) == 1
        assert understaffed[0].entity_type == EntityType.DAY
        assert understaffed[0].entity_id == '2024-01-15'

    @pytest.mark.unit
    def test_staffing_counts_distinct_employees(self, service, employee_factory, shift_factory):
        shifts = [shift_factory(), shift_factory(employee_id='EMP002', start_time='14:00', end_time='22:00')]
        employees = [employee_factory(), employee_factory(id='EMP002', name='Luis')]
        result = service.validate_full_schedule(shifts, employees)
        assert result.of_type(FindingType.UNDERSTAFFED) == []

    @pytest.mark.unit
    def test_config_from_mapping(self):
        config = ValidationConfig.from_mapping({'MAX_WEEKLY_HOURS': 40, 'MIN_STAFFING_PER_DAY': 3, 'OTHER': 1})
        assert config.max_weekly_hours == 40
        assert config.min_staffing == 3
        assert config.min_rest_between_shifts == 12

    @pytest.mark.unit
    def test_module_level_call_shape(self, employee_factory, shift_factory):
        result = validate_schedule([shift_factory()], [employee_factory()],
                                   config=ValidationConfig(min_staffing=1))
        assert result.findings == []
