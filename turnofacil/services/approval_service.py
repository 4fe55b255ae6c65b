"""
Approval Service
Runs review decisions on team requests for one acting user

Every operation receives the request snapshot it acts on and returns a
ServiceResult. A successful result carries the updated TeamRequest; the
caller writes it back to the system of record.
"""
from datetime import date, datetime, timezone
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union
import logging

from turnofacil.models import (
    Actor,
    ApprovalStage,
    RequestStatus,
    ReviewDecision,
    TeamRequest,
)
from . import approval_flow
from .permissions import RequestPermissionManager
from .service_result import BulkFailure, BulkResult, ErrorCode, ServiceResult

logger = logging.getLogger(__name__)

RequestSnapshot = Union[Mapping[str, TeamRequest], Iterable[TeamRequest]]


def index_requests(requests: RequestSnapshot) -> Dict[str, TeamRequest]:
    """Key a request snapshot by id; mappings are copied as-is."""
    if isinstance(requests, Mapping):
        return dict(requests)
    return {r.id: r for r in requests}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApprovalService:
    """
    Approve, reject, escalate and query requests awaiting review

    Args:
        actor: The reviewer every decision is attributed to
        clock: Returns the timestamp recorded on reviews
    """

    def __init__(self, actor: Actor, clock: Optional[Callable[[], datetime]] = None):
        self.actor = actor
        self.permissions = RequestPermissionManager(actor)
        self.clock = clock or _utcnow

    # ------------------------------------------------------------------
    # Single decisions
    # ------------------------------------------------------------------

    def approve_request(self, request_id: str, requests: RequestSnapshot,
                        comments: Optional[str] = None) -> ServiceResult[TeamRequest]:
        """
        Approve at the request's current stage.

        From supervisor the request moves on to business_admin when its
        type requires it, otherwise it is approved. business_admin and
        escalated approvals always complete it.
        """
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if not request.status.is_reviewable:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS, 'La solicitud no se puede aprobar en su estado actual'
            )
        if not self.permissions.can_manage_request(request, 'approve'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)

        review = approval_flow.make_review(self.actor, ReviewDecision.APPROVED, comments, self.clock())
        updated = approval_flow.approve(request, review)
        logger.debug(f"Request {request_id} approved by {self.actor.id}: "
                     f"stage {updated.approval_flow.current_stage.value}")
        return ServiceResult.ok(updated)

    def reject_request(self, request_id: str, requests: RequestSnapshot,
                       comments: Optional[str]) -> ServiceResult[TeamRequest]:
        """Reject from any stage; comments are mandatory."""
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if not request.status.is_reviewable:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS, 'La solicitud no se puede rechazar en su estado actual'
            )
        if not self.permissions.can_manage_request(request, 'reject'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        if not (comments or '').strip():
            return ServiceResult.fail(
                ErrorCode.COMMENTS_REQUIRED, 'Los comentarios son obligatorios para rechazar una solicitud'
            )

        review = approval_flow.make_review(self.actor, ReviewDecision.REJECTED, comments, self.clock())
        updated = approval_flow.reject(request, review)
        logger.debug(f"Request {request_id} rejected by {self.actor.id}")
        return ServiceResult.ok(updated)

    def escalate_request(self, request_id: str, requests: RequestSnapshot,
                         reason: Optional[str] = None) -> ServiceResult[TeamRequest]:
        """
        Hand a request from supervisor review to business-admin review.

        Only supervisors escalate, only from the supervisor stage. Low
        priority becomes medium and medium becomes high.
        """
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if not request.status.is_reviewable:
            return ServiceResult.fail(
                ErrorCode.INVALID_STATUS, 'La solicitud no se puede escalar en su estado actual'
            )
        if not self.permissions.can_escalate_request(request):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)

        review = approval_flow.make_review(self.actor, ReviewDecision.ESCALATED, reason, self.clock())
        updated = approval_flow.escalate(request, review)
        logger.debug(f"Request {request_id} escalated by {self.actor.id}: "
                     f"priority {request.priority.value} -> {updated.priority.value}")
        return ServiceResult.ok(updated)

    def request_more_info(self, request_id: str, requests: RequestSnapshot,
                          comments: Optional[str]) -> ServiceResult[TeamRequest]:
        """Send the request back to pending at the same stage, asking the requester for details."""
        request = index_requests(requests).get(request_id)
        if request is None:
            return ServiceResult.fail(ErrorCode.REQUEST_NOT_FOUND)
        if not request.status.is_reviewable:
            return ServiceResult.fail(ErrorCode.INVALID_STATUS)
        if not self.permissions.can_manage_request(request, 'approve'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        if not (comments or '').strip():
            return ServiceResult.fail(
                ErrorCode.COMMENTS_REQUIRED, 'Indique qué información adicional se necesita'
            )

        review = approval_flow.make_review(self.actor, ReviewDecision.NEEDS_INFO, comments, self.clock())
        return ServiceResult.ok(approval_flow.request_more_info(request, review))

    # ------------------------------------------------------------------
    # Bulk decisions
    # ------------------------------------------------------------------

    def bulk_approve(self, request_ids: Iterable[str], requests: RequestSnapshot,
                     comments: Optional[str] = None) -> ServiceResult[BulkResult]:
        """
        Approve each id independently.

        Returns a failed result only when the actor's role cannot bulk
        approve at all; otherwise every id lands in succeeded or failed.
        """
        if not self.permissions.can('can_bulk_approve'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        return ServiceResult.ok(
            self._run_bulk(request_ids, requests, lambda rid, snap: self.approve_request(rid, snap, comments))
        )

    def bulk_reject(self, request_ids: Iterable[str], requests: RequestSnapshot,
                    comments: Optional[str]) -> ServiceResult[BulkResult]:
        """Reject each id independently; the shared comment is mandatory."""
        if not self.permissions.can('can_bulk_reject'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)
        if not (comments or '').strip():
            return ServiceResult.fail(
                ErrorCode.COMMENTS_REQUIRED, 'Los comentarios son obligatorios para rechazos en lote'
            )
        return ServiceResult.ok(
            self._run_bulk(request_ids, requests, lambda rid, snap: self.reject_request(rid, snap, comments))
        )

    def _run_bulk(self, request_ids, requests, operation) -> BulkResult:
        snapshot = index_requests(requests)
        result = BulkResult()
        for request_id in request_ids:
            outcome = operation(request_id, snapshot)
            if outcome.success:
                # Later ids see earlier updates, so a repeated id fails on status
                snapshot[request_id] = outcome.data
                result.succeeded.append(request_id)
                result.updated.append(outcome.data)
            else:
                result.failed.append(BulkFailure(request_id, outcome.error_code, outcome.message))
        logger.debug(f"Bulk action by {self.actor.id}: "
                     f"{len(result.succeeded)} succeeded, {len(result.failed)} failed")
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pending_approvals(self, requests: RequestSnapshot) -> List[TeamRequest]:
        """Requests the actor can approve right now, most urgent and oldest first."""
        pending = [
            r for r in index_requests(requests).values()
            if r.status.is_reviewable and self.permissions.can_manage_request(r, 'approve')
        ]
        pending.sort(key=lambda r: (-r.priority.rank, r.submitted_date))
        return pending

    def get_approval_stats(self, requests: RequestSnapshot, start: Optional[date] = None,
                           end: Optional[date] = None) -> ServiceResult[Dict]:
        """
        Review statistics over the actor's visible requests.

        Args:
            requests: Request snapshot
            start: First review date counted (inclusive)
            end: Last review date counted (inclusive)

        Returns:
            ServiceResult with counts per decision, requests reviewed,
            average hours from submission to final decision and the
            current stage distribution of reviewed requests
        """
        if not self.permissions.can('can_view_request_analytics'):
            return ServiceResult.fail(ErrorCode.INSUFFICIENT_PERMISSIONS)

        def in_period(moment: datetime) -> bool:
            day = moment.date()
            return (start is None or day >= start) and (end is None or day <= end)

        visible = self.permissions.filter_requests_by_permissions(index_requests(requests).values())
        decisions = {decision.value: 0 for decision in ReviewDecision}
        by_stage = {stage.value: 0 for stage in ApprovalStage}
        reviewed = 0
        decision_hours = []

        for request in visible:
            reviews = [r for r in request.approval_flow.approval_history if in_period(r.reviewed_at)]
            if not reviews:
                continue
            reviewed += 1
            by_stage[request.approval_flow.current_stage.value] += 1
            for review in reviews:
                decisions[review.decision.value] += 1
            if request.status in (RequestStatus.APPROVED, RequestStatus.REJECTED):
                final = max(request.approval_flow.approval_history, key=lambda r: r.reviewed_at)
                if in_period(final.reviewed_at):
                    elapsed = final.reviewed_at - request.submitted_date
                    decision_hours.append(elapsed.total_seconds() / 3600)

        return ServiceResult.ok({
            'total_reviewed': reviewed,
            'approved': decisions[ReviewDecision.APPROVED.value],
            'rejected': decisions[ReviewDecision.REJECTED.value],
            'escalated': decisions[ReviewDecision.ESCALATED.value],
            'needs_info': decisions[ReviewDecision.NEEDS_INFO.value],
            'average_time_to_decision': (
                round(sum(decision_hours) / len(decision_hours), 2) if decision_hours else 0
            ),
            'approvals_by_stage': by_stage,
        })
