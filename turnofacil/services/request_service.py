"""
Request Service
Create, edit, submit, cancel and delete team requests for one user

Mirrors ApprovalService: the snapshot goes in, a ServiceResult comes out,
nothing is stored here.
"""
import calendar
import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, Mapping, Optional
import logging

from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.models import (
    Actor,
    ApprovalFlow,
    RequestPriority,
    RequestStatus,
    RequestType,
    TeamRequest,
)
from turnofacil.models.base import coerce_enum
from turnofacil.utils.validators import validate_optional_date
from . import approval_flow, constants
from .approval_service import RequestSnapshot, index_requests
from .permissions import RequestPermissionManager
from .service_result import ErrorCode, ServiceResult

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ('reason', 'description', 'priority', 'requested_date', 'start_date', 'end_date')


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def _month_ago(moment: datetime) -> datetime:
    year, month = (moment.year, moment.month - 1) if moment.month > 1 else (moment.year - 1, 12)
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class RequestService:
    """
    Lifecycle operations on the actor's own requests

    Args:
        actor: The requester (or the admin acting on a request)
        clock: Returns the timestamp stamped on new and updated requests
    """

    def __init__(self, actor: Actor, clock: Optional[Callable[[], datetime]] = None):
        self.actor = actor
        self.permissions = RequestPermissionManager(actor)
        self.clock = clock or _utcnow

    def create_request(self, data: Mapping[str, Any], existing: RequestSnapshot = (),
                       as_draft: bool = False) -> ServiceResult[TeamRequest]:
        """
        Create a request owned by the actor.

        Args:
            data: Request fields; type and reason are required
            existing: Requests already on record, used for the monthly limit
            as_draft: Save as draft instead of submitting for review

        Returns:
            ServiceResult with the new TeamRequest
        """
        if not self.permissions.can('can_create_request'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)

        try:
            request_type = coerce_enum(RequestType, data.get('type'), 'request type')
            priority = coerce_enum(RequestPriority, data.get('priority'), 'priority',
                                   constants.REQUEST_TYPE_CONFIG[request_type].default_priority)
            dates = {
                name: validate_optional_date(data.get(name), name)
                for name in ('requested_date', 'start_date', 'end_date')
            }
        except ValidationException as e:
            return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, e.message)

        if not self.permissions.can_create_request_type(request_type):
            return ServiceResult.fail(
                ErrorCode.INSUFFICIENT_PERMISSIONS,
                f"No tienes permisos para crear solicitudes de tipo {request_type.value}",
            )

        reason = str(data.get('reason') or '').strip()
        description = str(data.get('description') or '').strip()
        error = self._check_content(request_type, reason, description, **dates)
        if error:
            return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, error)

        now = self.clock()
        limit = self.permissions.monthly_request_limit
        if limit:
            month_start = _month_start(now)
            used = sum(
                1 for r in index_requests(existing).values()
                if r.employee_id == self.actor.id and r.submitted_date >= month_start
            )
            if used >= limit:
                return ServiceResult.fail(ErrorCode.MONTHLY_LIMIT_EXCEEDED)

        type_config = constants.REQUEST_TYPE_CONFIG[request_type]
        request = TeamRequest(
            id=str(data.get('id') or f"req_{uuid.uuid4().hex[:12]}"),
            employee_id=self.actor.id,
            employee_name=self.actor.name,
            location_id=self.actor.location_id,
            type=request_type,
            status=RequestStatus.DRAFT if as_draft else RequestStatus.PENDING,
            priority=priority,
            submitted_date=now,
            reason=reason,
            description=description,
            approval_flow=ApprovalFlow(flow_config=type_config.flow),
            **dates
        )
        logger.debug(f"Request {request.id} ({request_type.value}) created by {self.actor.id}")
        return ServiceResult.ok(request)

    def update_request(self, request_id: str, changes: Mapping[str, Any],
                       requests: RequestSnapshot) -> ServiceResult[TeamRequest]:
        """Edit content fields of a draft or pending request."""
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if not self.permissions.can_manage_request(request, 'edit'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        if request.status not in (RequestStatus.DRAFT, RequestStatus.PENDING):
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS, 'No se puede editar una solicitud en este estado'
            )

        values = {}
        try:
            for name in EDITABLE_FIELDS:
                if name not in changes:
                    continue
                if name == 'priority':
                    values[name] = coerce_enum(RequestPriority, changes[name], 'priority')
                elif name.endswith('_date'):
                    values[name] = validate_optional_date(changes[name], name)
                else:
                    values[name] = str(changes[name] or '').strip()
        except ValidationException as e:
            return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, e.message)

        updated = replace(request, updated_at=self.clock(), **values)
        error = self._check_content(
            updated.type, updated.reason, updated.description,
            updated.requested_date, updated.start_date, updated.end_date,
        )
        if error:
            return ServiceResult.fail(ErrorCode.VALIDATION_FAILED, error)
        return ServiceResult.ok(updated)

    def delete_request(self, request_id: str, requests: RequestSnapshot) -> ServiceResult[str]:
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if not self.permissions.can_manage_request(request, 'delete'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        logger.debug(f"Request {request_id} deleted by {self.actor.id}")
        return ServiceResult.ok(request_id)

    def submit_request(self, request_id: str, requests: RequestSnapshot) -> ServiceResult[TeamRequest]:
        """Move one of the actor's drafts into review."""
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if request.employee_id != self.actor.id:
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        if request.status != RequestStatus.DRAFT:
            return ServiceResult.fail(ErrorCode.INVALID_STATUS, 'Solo se pueden enviar borradores')
        return ServiceResult.ok(approval_flow.submit(request, self.clock()))

    def cancel_request(self, request_id: str, requests: RequestSnapshot) -> ServiceResult[TeamRequest]:
        """Withdraw one of the actor's requests before anybody has reviewed it."""
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if request.employee_id != self.actor.id:
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        if (not constants.can_transition(request.status, RequestStatus.CANCELLED)
                or request.approval_flow.approval_history):
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS, 'Solo se pueden cancelar solicitudes sin revisar'
            )
        return ServiceResult.ok(approval_flow.cancel(request, self.clock()))

    @staticmethod
    def _check_content(request_type, reason, description, requested_date=None,
                       start_date=None, end_date=None) -> Optional[str]:
        """Return the first content problem, or None."""
        if not reason:
            return 'El motivo es obligatorio'
        if len(reason) > constants.MAX_REASON_LENGTH:
            return 'El motivo es demasiado largo'
        if len(description) > constants.MAX_DESCRIPTION_LENGTH:
            return 'La descripción es demasiado larga'
        if start_date and end_date and start_date > end_date:
            return 'La fecha de inicio debe ser anterior a la fecha de fin'
        if constants.REQUEST_TYPE_CONFIG[request_type].requires_date_range and not (start_date or requested_date):
            return 'Este tipo de solicitud requiere fechas'
        return None


def request_metrics(requests: Iterable[TeamRequest], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Dashboard figures over a request snapshot.

    Rates are percentages of the total. average_approval_time is the mean
    number of hours between submission and the last review of approved
    requests.
    """
    requests = list(requests)
    now = now or _utcnow()
    total = len(requests)

    def count(predicate) -> int:
        return sum(1 for r in requests if predicate(r))

    def rate(value: int) -> float:
        return value * 100 / total if total else 0.0

    by_status = {status.value: count(lambda r, s=status: r.status == s) for status in RequestStatus}
    by_type: Dict[str, int] = {}
    by_priority: Dict[str, int] = {}
    by_stage: Dict[str, int] = {}
    for request in requests:
        by_type[request.type.value] = by_type.get(request.type.value, 0) + 1
        by_priority[request.priority.value] = by_priority.get(request.priority.value, 0) + 1
        stage = request.approval_flow.current_stage.value
        by_stage[stage] = by_stage.get(stage, 0) + 1

    approval_hours = []
    for request in requests:
        history = request.approval_flow.approval_history
        if request.status == RequestStatus.APPROVED and history:
            last = max(history, key=lambda r: r.reviewed_at)
            approval_hours.append((last.reviewed_at - request.submitted_date).total_seconds() / 3600)

    week_ago = now - timedelta(days=7)
    month_ago = _month_ago(now)

    return {
        'total_requests': total,
        'pending_requests': by_status[RequestStatus.PENDING.value],
        'approved_requests': by_status[RequestStatus.APPROVED.value],
        'rejected_requests': by_status[RequestStatus.REJECTED.value],
        'requests_by_status': by_status,
        'requests_this_week': count(lambda r: r.submitted_date > week_ago),
        'requests_this_month': count(lambda r: r.submitted_date > month_ago),
        'average_approval_time': (
            round(sum(approval_hours) / len(approval_hours), 2) if approval_hours else 0
        ),
        'requests_by_type': by_type,
        'requests_by_priority': by_priority,
        'requests_by_stage': by_stage,
        'escalation_rate': rate(count(lambda r: r.approval_flow.is_escalated)),
        'approval_rate': rate(by_status[RequestStatus.APPROVED.value]),
        'rejection_rate': rate(by_status[RequestStatus.REJECTED.value]),
        'cancellation_rate': rate(by_status[RequestStatus.CANCELLED.value]),
    }
