"""
Team request models
Leave, shift-change and similar requests plus their approval flow
"""
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from turnofacil.utils.validators import (
    validate_datetime_param,
    validate_optional_date,
)
from .actor import Role
from .base import coerce_enum, optional_str, require_str


class RequestType(str, Enum):
    SHIFT_CHANGE = "shift_change"
    VACATION = "vacation"
    SICK_LEAVE = "sick_leave"
    PERSONAL_LEAVE = "personal_leave"
    TIME_OFF = "time_off"
    ABSENCE = "absence"
    OVERTIME = "overtime"
    EARLY_LEAVE = "early_leave"
    LATE_ARRIVAL = "late_arrival"


class RequestStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def is_reviewable(self) -> bool:
        return self in (RequestStatus.PENDING, RequestStatus.UNDER_REVIEW)


class RequestPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        """Fixed sort rank: low = 1 through emergency = 5"""
        return PRIORITY_RANK[self]


PRIORITY_RANK = {
    RequestPriority.LOW: 1,
    RequestPriority.MEDIUM: 2,
    RequestPriority.HIGH: 3,
    RequestPriority.URGENT: 4,
    RequestPriority.EMERGENCY: 5,
}


class ApprovalStage(str, Enum):
    """Checkpoint a request occupies in its review lifecycle"""
    SUPERVISOR = "supervisor"
    BUSINESS_ADMIN = "business_admin"
    ESCALATED = "escalated"
    COMPLETED = "completed"


class ReviewDecision(str, Enum):
    APPROVED = "approved"
    REJECTED = "rejected"
    NEEDS_INFO = "needs_info"
    ESCALATED = "escalated"


@dataclass(frozen=True)
class FlowConfig:
    """Which review stages a request type goes through"""
    requires_supervisor_approval: bool = True
    requires_business_admin_approval: bool = False

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'FlowConfig':
        data = data or {}
        return cls(
            requires_supervisor_approval=bool(data.get('requires_supervisor_approval', True)),
            requires_business_admin_approval=bool(data.get('requires_business_admin_approval', False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'requires_supervisor_approval': self.requires_supervisor_approval,
            'requires_business_admin_approval': self.requires_business_admin_approval,
        }


@dataclass(frozen=True)
class ApprovalReview:
    """One immutable entry of a request's approval history"""
    id: str
    reviewer_id: str
    reviewer_name: str
    reviewer_role: Role
    decision: ReviewDecision
    comments: str
    reviewed_at: datetime

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ApprovalReview':
        return cls(
            id=str(data.get('id') or ''),
            reviewer_id=require_str(data, 'reviewer_id'),
            reviewer_name=str(data.get('reviewer_name') or ''),
            reviewer_role=coerce_enum(Role, data.get('reviewer_role'), 'reviewer_role'),
            decision=coerce_enum(ReviewDecision, data.get('decision'), 'decision'),
            comments=str(data.get('comments') or ''),
            reviewed_at=validate_datetime_param(data.get('reviewed_at'), 'reviewed_at'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'reviewer_id': self.reviewer_id,
            'reviewer_name': self.reviewer_name,
            'reviewer_role': self.reviewer_role.value,
            'decision': self.decision.value,
            'comments': self.comments,
            'reviewed_at': self.reviewed_at.isoformat(),
        }


@dataclass(frozen=True)
class ApprovalFlow:
    """
    Review state of a request

    approval_history is a tuple: transitions return a new flow with one
    more review appended, earlier entries are never touched.
    """
    current_stage: ApprovalStage = ApprovalStage.SUPERVISOR
    is_escalated: bool = False
    approval_history: Tuple[ApprovalReview, ...] = ()
    flow_config: FlowConfig = FlowConfig()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'ApprovalFlow':
        data = data or {}
        return cls(
            current_stage=coerce_enum(
                ApprovalStage, data.get('current_stage'), 'current_stage', ApprovalStage.SUPERVISOR
            ),
            is_escalated=bool(data.get('is_escalated', False)),
            approval_history=tuple(
                ApprovalReview.from_dict(review) for review in data.get('approval_history') or []
            ),
            flow_config=FlowConfig.from_dict(data.get('flow_config')),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'current_stage': self.current_stage.value,
            'is_escalated': self.is_escalated,
            'approval_history': [review.to_dict() for review in self.approval_history],
            'flow_config': self.flow_config.to_dict(),
        }


@dataclass(frozen=True)
class TeamRequest:
    """
    A leave, shift-change or attendance request raised by an employee

    Approved leaves double as the leave calendar used by schedule validation.
    """
    id: str
    employee_id: str
    type: RequestType
    submitted_date: datetime
    status: RequestStatus = RequestStatus.PENDING
    priority: RequestPriority = RequestPriority.MEDIUM
    employee_name: str = ''
    location_id: Optional[str] = None
    reason: str = ''
    description: str = ''
    requested_date: Optional[date] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    approval_flow: ApprovalFlow = ApprovalFlow()
    updated_at: Optional[datetime] = None

    @property
    def effective_range(self) -> Optional[Tuple[date, date]]:
        """Calendar days the request covers, or None when it carries no dates."""
        start = self.start_date or self.requested_date
        if start is None:
            return None
        return start, self.end_date or start

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TeamRequest':
        updated_at = data.get('updated_at')
        return cls(
            id=require_str(data, 'id'),
            employee_id=require_str(data, 'employee_id'),
            type=coerce_enum(RequestType, data.get('type'), 'request type'),
            submitted_date=validate_datetime_param(data.get('submitted_date'), 'submitted_date'),
            status=coerce_enum(RequestStatus, data.get('status'), 'status', RequestStatus.PENDING),
            priority=coerce_enum(RequestPriority, data.get('priority'), 'priority', RequestPriority.MEDIUM),
            employee_name=str(data.get('employee_name') or ''),
            location_id=optional_str(data, 'location_id'),
            reason=str(data.get('reason') or ''),
            description=str(data.get('description') or ''),
            requested_date=validate_optional_date(data.get('requested_date'), 'requested_date'),
            start_date=validate_optional_date(data.get('start_date'), 'start_date'),
            end_date=validate_optional_date(data.get('end_date'), 'end_date'),
            approval_flow=ApprovalFlow.from_dict(data.get('approval_flow')),
            updated_at=validate_datetime_param(updated_at, 'updated_at') if updated_at else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'employee_id': self.employee_id,
            'employee_name': self.employee_name,
            'location_id': self.location_id,
            'type': self.type.value,
            'status': self.status.value,
            'priority': self.priority.value,
            'submitted_date': self.submitted_date.isoformat(),
            'requested_date': self.requested_date.isoformat() if self.requested_date else None,
            'start_date': self.start_date.isoformat() if self.start_date else None,
            'end_date': self.end_date.isoformat() if self.end_date else None,
            'reason': self.reason,
            'description': self.description,
            'approval_flow': self.approval_flow.to_dict(),
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
