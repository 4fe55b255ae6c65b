"""
Filter and query layer for requests and shifts

A filter set is a frozen dataclass. Applying it to a snapshot returns
a new, filtered and sorted list; option counts describe the snapshot for
building filter menus. Presets expand to concrete filter sets relative to the
current date.

Usage:
    filters = apply_preset('pending_approval', actor, now=now)
    visible = apply_request_filters(requests, filters, now=now)
"""
import base64
import binascii
import json
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.models import (
    Actor,
    RequestPriority,
    RequestStatus,
    RequestType,
    ScheduleShift,
    ShiftStatus,
    ShiftType,
    TeamRequest,
)
from turnofacil.utils.time_utils import week_start
from turnofacil.utils.validators import time_to_minutes, validate_optional_date
from . import constants
from .permissions import ALL, RequestPermissionManager

Choice = Union[str, Tuple[Any, ...]]

REQUEST_SORT_FIELDS = ('date', 'employee', 'priority', 'status', 'type')
SHIFT_SORT_FIELDS = ('date', 'employee', 'cost', 'duration')
SORT_ORDERS = ('asc', 'desc')

PRESETS = (
    'my_requests',
    'pending_approval',
    'urgent_requests',
    'recent_requests',
    'escalated_requests',
    'overdue_requests',
    'approved_today',
    'rejected_requests',
)

_FLAG_LABELS = (
    ('is_today', 'Hoy'),
    ('is_this_week', 'Esta semana'),
    ('is_this_month', 'Este mes'),
    ('is_overdue', 'Vencidas'),
    ('is_escalated', 'Escaladas'),
    ('requires_attention', 'Requieren atención'),
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _parse_choice(value: Any, name: str, enum_cls=None) -> Choice:
    """'all', a single value or a list of values; enums are coerced."""
    if value in (None, '', ALL):
        return ALL
    values = value if isinstance(value, (list, tuple)) else [value]
    if not values:
        return ALL
    if enum_cls is None:
        return tuple(str(v) for v in values)
    try:
        return tuple(enum_cls(v) for v in values)
    except ValueError:
        allowed = ', '.join(member.value for member in enum_cls)
        raise ValidationException(f"Invalid {name} filter. Allowed: {allowed}")


def _choice_to_json(choice: Choice):
    if choice == ALL:
        return ALL
    return [c.value if hasattr(c, 'value') else c for c in choice]


def _matches(choice: Choice, value) -> bool:
    return choice == ALL or value in choice


def _parse_sort(data: Mapping[str, Any], allowed: Tuple[str, ...], default_by='date'):
    sort_by = data.get('sort_by') or default_by
    sort_order = data.get('sort_order') or 'desc'
    if sort_by not in allowed:
        raise ValidationException(f"Invalid sort_by '{sort_by}'. Allowed: {', '.join(allowed)}")
    if sort_order not in SORT_ORDERS:
        raise ValidationException("sort_order must be 'asc' or 'desc'")
    return sort_by, sort_order


# ----------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class RequestFilters:
    """
    Filter set for team requests

    Choice fields hold 'all' or a tuple of accepted values. The date range
    applies to the submission date. Time flags (today, this week, this
    month) apply to the last activity: updated_at, or submitted_date for
    untouched requests.
    """
    status: Choice = ALL
    type: Choice = ALL
    priority: Choice = ALL
    location: Choice = ALL
    employee: Choice = ALL
    date_start: Optional[date] = None
    date_end: Optional[date] = None
    search_term: str = ''
    sort_by: str = 'date'
    sort_order: str = 'desc'
    is_today: bool = False
    is_this_week: bool = False
    is_this_month: bool = False
    is_overdue: bool = False
    is_escalated: bool = False
    requires_attention: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'RequestFilters':
        data = data or {}
        date_range = data.get('date_range') or {}
        sort_by, sort_order = _parse_sort(data, REQUEST_SORT_FIELDS)
        return cls(
            status=_parse_choice(data.get('status'), 'status', RequestStatus),
            type=_parse_choice(data.get('type'), 'type', RequestType),
            priority=_parse_choice(data.get('priority'), 'priority', RequestPriority),
            location=_parse_choice(data.get('location'), 'location'),
            employee=_parse_choice(data.get('employee'), 'employee'),
            date_start=validate_optional_date(date_range.get('start'), 'date_range.start'),
            date_end=validate_optional_date(date_range.get('end'), 'date_range.end'),
            search_term=str(data.get('search_term') or '').strip(),
            sort_by=sort_by,
            sort_order=sort_order,
            **{name: bool(data.get(name, False)) for name, _ in _FLAG_LABELS}
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'status': _choice_to_json(self.status),
            'type': _choice_to_json(self.type),
            'priority': _choice_to_json(self.priority),
            'location': _choice_to_json(self.location),
            'employee': _choice_to_json(self.employee),
            'date_range': {
                'start': self.date_start.isoformat() if self.date_start else None,
                'end': self.date_end.isoformat() if self.date_end else None,
            },
            'search_term': self.search_term,
            'sort_by': self.sort_by,
            'sort_order': self.sort_order,
            **{name: getattr(self, name) for name, _ in _FLAG_LABELS}
        }


def is_overdue(request: TeamRequest, now: Optional[datetime] = None) -> bool:
    """A request still under review past its priority's escalation window."""
    if not request.status.is_reviewable:
        return False
    now = now or _utcnow()
    limit = timedelta(hours=constants.ESCALATION_HOURS[request.priority])
    return now - request.submitted_date > limit


def requires_attention(request: TeamRequest, now: Optional[datetime] = None) -> bool:
    """Reviewable and either overdue or urgent and above."""
    return request.status.is_reviewable and (
        request.priority.rank >= RequestPriority.URGENT.rank or is_overdue(request, now)
    )


def _last_activity(request: TeamRequest) -> datetime:
    return request.updated_at or request.submitted_date


def _matches_search(request: TeamRequest, term: str) -> bool:
    term = term.lower()
    haystack = [request.employee_name, request.reason, request.description]
    haystack.extend(review.comments for review in request.approval_flow.approval_history)
    return any(term in (text or '').lower() for text in haystack)


def _request_sort_key(sort_by: str):
    if sort_by == 'employee':
        return lambda r: r.employee_name.lower()
    if sort_by == 'priority':
        return lambda r: r.priority.rank
    if sort_by == 'status':
        return lambda r: r.status.value
    if sort_by == 'type':
        return lambda r: r.type.value
    return lambda r: r.submitted_date


def apply_request_filters(requests: Iterable[TeamRequest], filters: Optional[RequestFilters] = None,
                          now: Optional[datetime] = None) -> List[TeamRequest]:
    """
    Filter and sort a request snapshot.

    Sorting is stable: requests comparing equal keep their input order.
    """
    filters = filters or RequestFilters()
    now = now or _utcnow()
    today = now.date()
    this_week = week_start(today)

    def keep(r: TeamRequest) -> bool:
        submitted = r.submitted_date.date()
        activity = _last_activity(r).date()
        return (
            _matches(filters.status, r.status)
            and _matches(filters.type, r.type)
            and _matches(filters.priority, r.priority)
            and _matches(filters.location, r.location_id)
            and _matches(filters.employee, r.employee_id)
            and (filters.date_start is None or submitted >= filters.date_start)
            and (filters.date_end is None or submitted <= filters.date_end)
            and (not filters.search_term or _matches_search(r, filters.search_term))
            and (not filters.is_today or activity == today)
            and (not filters.is_this_week or this_week <= activity <= today)
            and (not filters.is_this_month or (activity.year, activity.month) == (today.year, today.month))
            and (not filters.is_overdue or is_overdue(r, now))
            and (not filters.is_escalated or r.approval_flow.is_escalated)
            and (not filters.requires_attention or requires_attention(r, now))
        )

    result = [r for r in requests if keep(r)]
    result.sort(key=_request_sort_key(filters.sort_by), reverse=filters.sort_order == 'desc')
    return result


def preset_filters(preset: str, actor: Actor, now: Optional[datetime] = None) -> Dict[str, Any]:
    """The concrete field values a preset stands for."""
    today = (now or _utcnow()).date()
    reviewable = (RequestStatus.PENDING, RequestStatus.UNDER_REVIEW)
    presets = {
        'my_requests': {'employee': (actor.id,), 'sort_by': 'date', 'sort_order': 'desc'},
        'pending_approval': {'status': reviewable, 'sort_by': 'priority', 'sort_order': 'desc'},
        'urgent_requests': {
            'priority': (RequestPriority.URGENT, RequestPriority.EMERGENCY),
            'status': reviewable,
            'sort_by': 'date',
            'sort_order': 'asc',
        },
        'recent_requests': {
            'date_start': week_start(today),
            'date_end': today,
            'sort_by': 'date',
            'sort_order': 'desc',
        },
        'escalated_requests': {'is_escalated': True, 'sort_by': 'priority', 'sort_order': 'desc'},
        'overdue_requests': {'is_overdue': True, 'sort_by': 'date', 'sort_order': 'asc'},
        'approved_today': {
            'status': (RequestStatus.APPROVED,),
            'is_today': True,
            'sort_by': 'date',
            'sort_order': 'desc',
        },
        'rejected_requests': {'status': (RequestStatus.REJECTED,), 'sort_by': 'date', 'sort_order': 'desc'},
    }
    if preset not in presets:
        raise ValidationException(f"Unknown preset '{preset}'. Allowed: {', '.join(PRESETS)}")
    return presets[preset]


def apply_preset(preset: str, actor: Actor, base: Optional[RequestFilters] = None,
                 now: Optional[datetime] = None) -> RequestFilters:
    """Overlay a preset on an existing filter set (default: an empty one)."""
    return replace(base or RequestFilters(), **preset_filters(preset, actor, now))


def active_filter_count(filters: RequestFilters) -> int:
    count = sum(
        1 for choice in (filters.status, filters.type, filters.priority, filters.location, filters.employee)
        if choice != ALL
    )
    if filters.search_term:
        count += 1
    if filters.date_start or filters.date_end:
        count += 1
    count += sum(1 for name, _ in _FLAG_LABELS if getattr(filters, name))
    return count


def filter_summary(filters: RequestFilters) -> str:
    """One-line description of the active filters for display."""
    parts = []
    if filters.status != ALL:
        parts.append('Estado: ' + ', '.join(constants.STATUS_LABELS[s] for s in filters.status))
    if filters.type != ALL:
        parts.append('Tipo: ' + ', '.join(constants.REQUEST_TYPE_CONFIG[t].label for t in filters.type))
    if filters.priority != ALL:
        parts.append('Prioridad: ' + ', '.join(constants.PRIORITY_LABELS[p] for p in filters.priority))
    if filters.search_term:
        parts.append(f'Búsqueda: "{filters.search_term}"')
    for name, label in _FLAG_LABELS:
        if getattr(filters, name):
            parts.append(label)
    return f"Filtros activos: {' | '.join(parts)}" if parts else 'Sin filtros'


def export_filters(filters: RequestFilters) -> str:
    """Encode a filter set as base64 JSON, suitable for a URL or clipboard."""
    payload = json.dumps(filters.to_dict(), sort_keys=True).encode('utf-8')
    return base64.b64encode(payload).decode('ascii')


def import_filters(encoded: str, base: Optional[RequestFilters] = None) -> RequestFilters:
    """
    Decode an exported filter set, overlaying it on base.

    Raises:
        ValidationException: If the text is not an exported filter set
    """
    try:
        data = json.loads(base64.b64decode(encoded.encode('ascii'), validate=True).decode('utf-8'))
    except (binascii.Error, UnicodeError, ValueError):
        raise ValidationException('Filter export string is not valid')
    if not isinstance(data, dict):
        raise ValidationException('Filter export string is not valid')

    merged = (base or RequestFilters()).to_dict()
    merged.update(data)
    return RequestFilters.from_dict(merged)


def _counted(values: Iterable[Any]) -> Dict[Any, int]:
    counts: Dict[Any, int] = {}
    for value in values:
        counts[value] = counts.get(value, 0) + 1
    return counts


def filter_options(requests: Iterable[TeamRequest],
                   permissions: RequestPermissionManager) -> Dict[str, List[Dict[str, Any]]]:
    """
    Per-dimension options with counts for a filter menu.

    Type options are limited to the types the actor may create, location
    options to the locations the actor can access.
    """
    requests = list(requests)
    type_counts = _counted(r.type for r in requests)
    status_counts = _counted(r.status for r in requests)
    priority_counts = _counted(r.priority for r in requests)
    employee_counts = _counted(r.employee_id for r in requests)
    location_counts = _counted(r.location_id for r in requests if r.location_id)

    employee_names: Dict[str, str] = {}
    for r in requests:
        employee_names.setdefault(r.employee_id, r.employee_name or 'Empleado desconocido')

    return {
        'types': [
            {'value': t.value, 'label': config.label, 'count': type_counts.get(t, 0)}
            for t, config in constants.REQUEST_TYPE_CONFIG.items()
            if permissions.can_create_request_type(t)
        ],
        'statuses': [
            {'value': s.value, 'label': label, 'count': status_counts.get(s, 0)}
            for s, label in constants.STATUS_LABELS.items()
        ],
        'priorities': [
            {'value': p.value, 'label': label, 'count': priority_counts.get(p, 0)}
            for p, label in constants.PRIORITY_LABELS.items()
        ],
        'employees': sorted(
            ({'value': eid, 'label': employee_names[eid], 'count': count}
             for eid, count in employee_counts.items()),
            key=lambda option: option['label'].lower(),
        ),
        'locations': sorted(
            ({'value': lid, 'label': lid, 'count': count}
             for lid, count in location_counts.items()
             if permissions.can_access_location(lid)),
            key=lambda option: option['label'],
        ),
    }


# ----------------------------------------------------------------------
# Shifts
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class ShiftFilters:
    employee: Choice = ALL
    location: Choice = ALL
    type: Choice = ALL
    status: Choice = ALL
    date_start: Optional[date] = None
    date_end: Optional[date] = None
    search_term: str = ''
    sort_by: str = 'date'
    sort_order: str = 'asc'

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> 'ShiftFilters':
        data = dict(data or {})
        data.setdefault('sort_order', 'asc')
        date_range = data.get('date_range') or {}
        sort_by, sort_order = _parse_sort(data, SHIFT_SORT_FIELDS)
        return cls(
            employee=_parse_choice(data.get('employee'), 'employee'),
            location=_parse_choice(data.get('location'), 'location'),
            type=_parse_choice(data.get('type'), 'type', ShiftType),
            status=_parse_choice(data.get('status'), 'status', ShiftStatus),
            date_start=validate_optional_date(date_range.get('start'), 'date_range.start'),
            date_end=validate_optional_date(date_range.get('end'), 'date_range.end'),
            search_term=str(data.get('search_term') or '').strip(),
            sort_by=sort_by,
            sort_order=sort_order,
        )


def _shift_sort_key(sort_by: str):
    if sort_by == 'employee':
        return lambda s: (s.employee_name or s.employee_id).lower()
    if sort_by == 'cost':
        return lambda s: s.cost
    if sort_by == 'duration':
        return lambda s: s.duration
    # Malformed times sort first within their date
    return lambda s: (s.date, time_to_minutes(s.start_time) if s.has_valid_times else -1)


def apply_shift_filters(shifts: Iterable[ScheduleShift],
                        filters: Optional[ShiftFilters] = None) -> List[ScheduleShift]:
    filters = filters or ShiftFilters()
    term = filters.search_term.lower()

    def keep(s: ScheduleShift) -> bool:
        return (
            _matches(filters.employee, s.employee_id)
            and _matches(filters.location, s.location_id)
            and _matches(filters.type, s.type)
            and _matches(filters.status, s.status)
            and (filters.date_start is None or s.date >= filters.date_start)
            and (filters.date_end is None or s.date <= filters.date_end)
            and (not term or any(term in (text or '').lower() for text in (s.employee_name, s.notes)))
        )

    result = [s for s in shifts if keep(s)]
    result.sort(key=_shift_sort_key(filters.sort_by), reverse=filters.sort_order == 'desc')
    return result
