"""
Unit tests for request and shift filtering, presets and filter export.
"""
import pytest
from datetime import date, timedelta

from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.models import (
    ApprovalFlow,
    RequestPriority,
    RequestStatus,
    RequestType,
    ShiftType,
)
from turnofacil.services.permissions import ALL, RequestPermissionManager
from turnofacil.services.query_filters import (
    RequestFilters,
    ShiftFilters,
    active_filter_count,
    apply_preset,
    apply_request_filters,
    apply_shift_filters,
    export_filters,
    filter_options,
    filter_summary,
    import_filters,
    is_overdue,
    requires_attention,
)


@pytest.fixture
def snapshot(request_factory, now):
    return [
        request_factory(id='R1', employee_id='EMP001', employee_name='Ana Gómez',
                        priority=RequestPriority.LOW, submitted_date=now - timedelta(days=10),
                        reason='Cita médica'),
        request_factory(id='R2', employee_id='EMP002', employee_name='Luis Pérez',
                        priority=RequestPriority.URGENT, submitted_date=now - timedelta(hours=1),
                        reason='Emergencia familiar', location_id='LOC2'),
        request_factory(id='R3', employee_id='EMP003', employee_name='Carla Ruiz',
                        status=RequestStatus.APPROVED, type=RequestType.VACATION,
                        submitted_date=now - timedelta(days=2), updated_at=now, reason='Vacaciones'),
        request_factory(id='R4', employee_id='EMP001', employee_name='Ana Gómez',
                        status=RequestStatus.UNDER_REVIEW, priority=RequestPriority.HIGH,
                        submitted_date=now - timedelta(days=3), reason='Cambio de turno',
                        approval_flow=ApprovalFlow(is_escalated=True)),
    ]


def _ids(requests):
    return [r.id for r in requests]


class TestRequestFilters:

    @pytest.mark.unit
    def test_default_sort_is_newest_first(self, snapshot, now):
        assert _ids(apply_request_filters(snapshot, now=now)) == ['R2', 'R3', 'R4', 'R1']

    @pytest.mark.unit
    def test_sort_is_stable(self, request_factory, now):
        same = [request_factory(id=f'R{i}', submitted_date=now) for i in range(4)]
        filters = RequestFilters(sort_by='priority', sort_order='asc')
        assert _ids(apply_request_filters(same, filters, now)) == ['R0', 'R1', 'R2', 'R3']

    @pytest.mark.unit
    def test_choice_filters(self, snapshot, now):
        filters = RequestFilters(status=(RequestStatus.PENDING, RequestStatus.UNDER_REVIEW),
                                 employee=('EMP001',))
        assert _ids(apply_request_filters(snapshot, filters, now)) == ['R4', 'R1']

    @pytest.mark.unit
    def test_search_is_case_insensitive(self, snapshot, now):
        filters = RequestFilters(search_term='EMERGENCIA')
        assert _ids(apply_request_filters(snapshot, filters, now)) == ['R2']

    @pytest.mark.unit
    def test_date_range_on_submission(self, snapshot, now):
        filters = RequestFilters(date_start=now.date() - timedelta(days=3), date_end=now.date())
        assert set(_ids(apply_request_filters(snapshot, filters, now))) == {'R2', 'R3', 'R4'}

    @pytest.mark.unit
    def test_today_uses_last_activity(self, snapshot, now):
        filters = RequestFilters(is_today=True)
        assert set(_ids(apply_request_filters(snapshot, filters, now))) == {'R2', 'R3'}

    @pytest.mark.unit
    def test_overdue_and_attention(self, snapshot, now):
        by_id = {r.id: r for r in snapshot}
        # Low priority waits 120h; ten days is past it
        assert is_overdue(by_id['R1'], now) is True
        assert is_overdue(by_id['R3'], now) is False
        assert requires_attention(by_id['R2'], now) is True
        assert requires_attention(by_id['R3'], now) is False
        # High priority waits 24h; three days is past it
        assert _ids(apply_request_filters(snapshot, RequestFilters(is_overdue=True), now)) == ['R4', 'R1']

    @pytest.mark.unit
    def test_escalated_flag(self, snapshot, now):
        assert _ids(apply_request_filters(snapshot, RequestFilters(is_escalated=True), now)) == ['R4']

    @pytest.mark.unit
    def test_from_dict(self):
        filters = RequestFilters.from_dict({
            'status': ['pending'],
            'type': 'vacation',
            'location': 'all',
            'date_range': {'start': '2024-01-01', 'end': None},
            'sort_by': 'priority',
            'is_today': True,
        })
        assert filters.status == (RequestStatus.PENDING,)
        assert filters.type == (RequestType.VACATION,)
        assert filters.location == ALL
        assert filters.date_start == date(2024, 1, 1)
        assert filters.sort_order == 'desc'
        assert filters.is_today is True

    @pytest.mark.unit
    @pytest.mark.parametrize('data', [
        {'status': ['archived']},
        {'sort_by': 'salary'},
        {'sort_order': 'sideways'},
        {'date_range': {'start': 'ayer'}},
    ])
    def test_from_dict_rejects_bad_values(self, data):
        with pytest.raises(ValidationException):
            RequestFilters.from_dict(data)

    @pytest.mark.unit
    def test_count_and_summary(self):
        filters = RequestFilters(status=(RequestStatus.PENDING,), search_term='cita', is_escalated=True)
        assert active_filter_count(filters) == 3
        assert filter_summary(filters) == 'Filtros activos: Estado: Pendiente | Búsqueda: "cita" | Escaladas'
        assert active_filter_count(RequestFilters()) == 0
        assert filter_summary(RequestFilters()) == 'Sin filtros'


class TestPresets:

    @pytest.mark.unit
    def test_my_requests(self, snapshot, employee_actor, now):
        filters = apply_preset('my_requests', employee_actor, now=now)
        assert _ids(apply_request_filters(snapshot, filters, now)) == ['R4', 'R1']

    @pytest.mark.unit
    def test_pending_approval_sorts_by_priority(self, snapshot, supervisor, now):
        filters = apply_preset('pending_approval', supervisor, now=now)
        assert _ids(apply_request_filters(snapshot, filters, now)) == ['R2', 'R4', 'R1']

    @pytest.mark.unit
    def test_approved_today(self, snapshot, supervisor, now):
        filters = apply_preset('approved_today', supervisor, now=now)
        assert _ids(apply_request_filters(snapshot, filters, now)) == ['R3']

    @pytest.mark.unit
    def test_preset_overlays_base(self, supervisor, now):
        base = RequestFilters(search_term='cita')
        filters = apply_preset('urgent_requests', supervisor, base, now)
        assert filters.search_term == 'cita'
        assert filters.sort_order == 'asc'

    @pytest.mark.unit
    def test_unknown_preset(self, supervisor):
        with pytest.raises(ValidationException):
            apply_preset('everything', supervisor)


class TestExportImport:

    @pytest.mark.unit
    def test_export_then_import(self):
        filters = RequestFilters(priority=(RequestPriority.HIGH,), search_term='turno', sort_by='type')
        assert import_filters(export_filters(filters)) == filters

    @pytest.mark.unit
    def test_import_overlays_base(self):
        partial = export_filters(RequestFilters(is_overdue=True))
        base = RequestFilters(search_term='cita')
        # Every exported field is present, so the export wins over the base
        assert import_filters(partial, base).search_term == ''

    @pytest.mark.unit
    @pytest.mark.parametrize('encoded', ['not base64!', 'WzEsMl0=', ''])
    def test_import_rejects_garbage(self, encoded):
        with pytest.raises(ValidationException):
            import_filters(encoded)


class TestFilterOptions:

    @pytest.mark.unit
    def test_options_with_counts(self, snapshot, supervisor):
        options = filter_options(snapshot, RequestPermissionManager(supervisor))
        statuses = {o['value']: o['count'] for o in options['statuses']}
        assert statuses['pending'] == 2
        assert statuses['cancelled'] == 0
        assert [o['label'] for o in options['employees']] == ['Ana Gómez', 'Carla Ruiz', 'Luis Pérez']
        # Supervisors only get their own location
        assert [o['value'] for o in options['locations']] == ['LOC1']
        assert len(options['types']) == len(RequestType)

    @pytest.mark.unit
    def test_admin_sees_every_location(self, snapshot, admin):
        options = filter_options(snapshot, RequestPermissionManager(admin))
        assert [o['value'] for o in options['locations']] == ['LOC1', 'LOC2']


class TestShiftFilters:

    @pytest.mark.unit
    def test_filter_and_sort(self, shift_factory):
        day = date(2024, 1, 15)
        shifts = [
            shift_factory(id='B', date=day, start_time='14:00', end_time='22:00'),
            shift_factory(id='A', date=day, start_time='06:00', end_time='14:00'),
            shift_factory(id='C', date=day + timedelta(days=1), type=ShiftType.NIGHT,
                          start_time='22:00', end_time='06:00', employee_id='EMP002'),
        ]
        assert [s.id for s in apply_shift_filters(shifts)] == ['A', 'B', 'C']

        night = ShiftFilters.from_dict({'type': ['night']})
        assert [s.id for s in apply_shift_filters(shifts, night)] == ['C']

        by_duration = ShiftFilters(sort_by='duration', sort_order='desc', employee=('EMP001',))
        assert [s.id for s in apply_shift_filters(shifts, by_duration)] == ['B', 'A']

    @pytest.mark.unit
    def test_shift_filters_default_ascending(self):
        assert ShiftFilters.from_dict({}).sort_order == 'asc'
        assert ShiftFilters.from_dict({'sort_by': 'cost', 'sort_order': 'desc'}).sort_order == 'desc'
