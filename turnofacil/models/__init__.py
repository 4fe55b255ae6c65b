"""
Snapshot models for the scheduling core

Every model is a frozen dataclass hydrated from the caller's payload.
The core never loads or stores them; it receives a snapshot and returns
new instances.
"""
from .actor import Actor, Role, ROLE_LEVELS
from .schedule import (
    DayAvailability,
    Employee,
    RestDay,
    ScheduleShift,
    ShiftStatus,
    ShiftType,
)
from .requests import (
    ApprovalFlow,
    ApprovalReview,
    ApprovalStage,
    FlowConfig,
    PRIORITY_RANK,
    RequestPriority,
    RequestStatus,
    RequestType,
    ReviewDecision,
    TeamRequest,
)

# Leave requests are team requests whose approved date range blocks scheduling
LeaveRequest = TeamRequest

__all__ = [
    'Actor',
    'Role',
    'ROLE_LEVELS',
    'DayAvailability',
    'Employee',
    'RestDay',
    'ScheduleShift',
    'ShiftStatus',
    'ShiftType',
    'ApprovalFlow',
    'ApprovalReview',
    'ApprovalStage',
    'FlowConfig',
    'PRIORITY_RANK',
    'RequestPriority',
    'RequestStatus',
    'RequestType',
    'ReviewDecision',
    'TeamRequest',
    'LeaveRequest',
]
