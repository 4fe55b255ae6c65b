"""
Approval flow transitions

Each function takes a request snapshot plus the review being recorded
and returns a new TeamRequest. The input is never modified and the
review is appended to a new history tuple.

    supervisor --approve--> business_admin --approve--> completed
    supervisor --approve (no admin step)--------------> completed
    supervisor --escalate--> business_admin (escalated) --approve--> completed
    any stage  --reject----------------------------------> completed

Callers check permissions and status before calling in; these functions
only encode the state change.
"""
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Optional

from turnofacil.models import (
    Actor,
    ApprovalFlow,
    ApprovalReview,
    ApprovalStage,
    RequestStatus,
    ReviewDecision,
    TeamRequest,
)
from .constants import ESCALATION_PRIORITY_BUMP


def make_review(actor: Actor, decision: ReviewDecision, comments: Optional[str],
                reviewed_at: datetime) -> ApprovalReview:
    return ApprovalReview(
        id=f"review_{uuid.uuid4().hex[:12]}",
        reviewer_id=actor.id,
        reviewer_name=actor.name,
        reviewer_role=actor.role,
        decision=decision,
        comments=(comments or '').strip(),
        reviewed_at=reviewed_at,
    )


def next_stage(flow: ApprovalFlow) -> ApprovalStage:
    """Stage an approval moves the request to."""
    if flow.current_stage == ApprovalStage.SUPERVISOR and flow.flow_config.requires_business_admin_approval:
        return ApprovalStage.BUSINESS_ADMIN
    # business_admin and escalated are terminal review stages
    return ApprovalStage.COMPLETED


def _with_review(request: TeamRequest, review: ApprovalReview, **flow_changes) -> ApprovalFlow:
    return replace(
        request.approval_flow,
        approval_history=request.approval_flow.approval_history + (review,),
        **flow_changes
    )


def approve(request: TeamRequest, review: ApprovalReview) -> TeamRequest:
    stage = next_stage(request.approval_flow)
    status = RequestStatus.APPROVED if stage == ApprovalStage.COMPLETED else RequestStatus.UNDER_REVIEW
    return replace(
        request,
        status=status,
        approval_flow=_with_review(request, review, current_stage=stage),
        updated_at=review.reviewed_at,
    )


def reject(request: TeamRequest, review: ApprovalReview) -> TeamRequest:
    return replace(
        request,
        status=RequestStatus.REJECTED,
        approval_flow=_with_review(request, review, current_stage=ApprovalStage.COMPLETED),
        updated_at=review.reviewed_at,
    )


def escalate(request: TeamRequest, review: ApprovalReview) -> TeamRequest:
    return replace(
        request,
        status=RequestStatus.UNDER_REVIEW,
        priority=ESCALATION_PRIORITY_BUMP.get(request.priority, request.priority),
        approval_flow=_with_review(
            request, review, current_stage=ApprovalStage.BUSINESS_ADMIN, is_escalated=True
        ),
        updated_at=review.reviewed_at,
    )


def request_more_info(request: TeamRequest, review: ApprovalReview) -> TeamRequest:
    # Stage stays put so the same reviewer picks it up again
    return replace(
        request,
        status=RequestStatus.PENDING,
        approval_flow=_with_review(request, review),
        updated_at=review.reviewed_at,
    )


def cancel(request: TeamRequest, cancelled_at: datetime) -> TeamRequest:
    return replace(request, status=RequestStatus.CANCELLED, updated_at=cancelled_at)


def submit(request: TeamRequest, submitted_at: datetime) -> TeamRequest:
    return replace(
        request,
        status=RequestStatus.PENDING,
        submitted_date=submitted_at,
        updated_at=submitted_at,
    )
