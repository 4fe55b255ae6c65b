"""
Business constants for scheduling and team requests

Colombian labour figures (Código Sustantivo del Trabajo) and the
static request-type, status and priority tables.
"""
from dataclasses import dataclass
from types import MappingProxyType
from typing import Tuple

from turnofacil.models import (
    FlowConfig,
    RequestPriority,
    RequestStatus,
    RequestType,
)


# Labour law
REGULAR_HOURS_PER_WEEK = 48
REGULAR_HOURS_PER_DAY = 8
MAX_OVERTIME_HOURS_PER_DAY = 2
MAX_OVERTIME_HOURS_PER_WEEK = 12
MIN_REST_HOURS_BETWEEN_SHIFTS = 12
MAX_CONSECUTIVE_WORK_DAYS = 6
MIN_REST_DAYS_PER_WEEK = 1

# Night work runs 21:00 to 06:00
NIGHT_START_HOUR = 21
NIGHT_END_HOUR = 6

# Surcharges over the ordinary hourly rate
NIGHT_SURCHARGE = 0.35
OVERTIME_SURCHARGE = 0.25
OVERTIME_NIGHT_SURCHARGE = 0.75
SUNDAY_SURCHARGE = 0.75
SUNDAY_NIGHT_SURCHARGE = 1.10
HOLIDAY_SURCHARGE = 0.75
HOLIDAY_NIGHT_SURCHARGE = 1.10

# More Sundays worked in a month than this makes Sunday work habitual
OCCASIONAL_SUNDAY_LIMIT = 2
COMPENSATORY_EXPIRATION_DAYS = 30

# Schedule validation defaults
DEFAULT_MAX_CONSECUTIVE_HOURS = 12
MIN_SHIFT_HOURS = 1
HARD_REST_FLOOR_HOURS = 8
WEEKLY_HOURS_TOLERANCE = 8
DEFAULT_BUDGET_WARNING_THRESHOLD = 85
DEFAULT_MIN_STAFFING = 2

# Team request form limits
MAX_DESCRIPTION_LENGTH = 500
MAX_REASON_LENGTH = 100


@dataclass(frozen=True)
class RequestTypeConfig:
    """Static behaviour of one request type"""
    label: str
    flow: FlowConfig
    default_priority: RequestPriority
    requires_date_range: bool = False


def _flow(supervisor=True, business_admin=False):
    return FlowConfig(
        requires_supervisor_approval=supervisor,
        requires_business_admin_approval=business_admin,
    )


REQUEST_TYPE_CONFIG = MappingProxyType({
    RequestType.SHIFT_CHANGE: RequestTypeConfig(
        'Cambio de turno', _flow(), RequestPriority.MEDIUM),
    RequestType.VACATION: RequestTypeConfig(
        'Vacaciones', _flow(business_admin=True), RequestPriority.LOW, requires_date_range=True),
    RequestType.SICK_LEAVE: RequestTypeConfig(
        'Incapacidad', _flow(supervisor=False), RequestPriority.HIGH, requires_date_range=True),
    RequestType.PERSONAL_LEAVE: RequestTypeConfig(
        'Permiso personal', _flow(), RequestPriority.MEDIUM, requires_date_range=True),
    RequestType.TIME_OFF: RequestTypeConfig(
        'Tiempo libre', _flow(), RequestPriority.MEDIUM),
    RequestType.ABSENCE: RequestTypeConfig(
        'Ausencia', _flow(supervisor=False), RequestPriority.URGENT),
    RequestType.OVERTIME: RequestTypeConfig(
        'Horas extra', _flow(business_admin=True), RequestPriority.MEDIUM),
    RequestType.EARLY_LEAVE: RequestTypeConfig(
        'Salida temprana', _flow(), RequestPriority.MEDIUM),
    RequestType.LATE_ARRIVAL: RequestTypeConfig(
        'Llegada tarde', _flow(supervisor=False), RequestPriority.MEDIUM),
})


STATUS_LABELS = MappingProxyType({
    RequestStatus.DRAFT: 'Borrador',
    RequestStatus.PENDING: 'Pendiente',
    RequestStatus.UNDER_REVIEW: 'En revisión',
    RequestStatus.APPROVED: 'Aprobada',
    RequestStatus.REJECTED: 'Rechazada',
    RequestStatus.CANCELLED: 'Cancelada',
})

PRIORITY_LABELS = MappingProxyType({
    RequestPriority.LOW: 'Baja',
    RequestPriority.MEDIUM: 'Media',
    RequestPriority.HIGH: 'Alta',
    RequestPriority.URGENT: 'Urgente',
    RequestPriority.EMERGENCY: 'Emergencia',
})


# Statuses a request may move to from each status
STATUS_TRANSITIONS = MappingProxyType({
    RequestStatus.DRAFT: (RequestStatus.PENDING, RequestStatus.CANCELLED),
    RequestStatus.PENDING: (
        RequestStatus.UNDER_REVIEW, RequestStatus.APPROVED,
        RequestStatus.REJECTED, RequestStatus.CANCELLED,
    ),
    RequestStatus.UNDER_REVIEW: (
        RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.REJECTED,
    ),
    RequestStatus.APPROVED: (),
    RequestStatus.REJECTED: (),
    RequestStatus.CANCELLED: (),
})

# Hours a request may wait at each priority before it is overdue
ESCALATION_HOURS = MappingProxyType({
    RequestPriority.LOW: 120,
    RequestPriority.MEDIUM: 48,
    RequestPriority.HIGH: 24,
    RequestPriority.URGENT: 4,
    RequestPriority.EMERGENCY: 1,
})

# Escalation moves priority up one step only from the two lowest levels
ESCALATION_PRIORITY_BUMP = MappingProxyType({
    RequestPriority.LOW: RequestPriority.MEDIUM,
    RequestPriority.MEDIUM: RequestPriority.HIGH,
})

ALL_REQUEST_TYPES: Tuple[RequestType, ...] = tuple(RequestType)


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in STATUS_TRANSITIONS[current]
