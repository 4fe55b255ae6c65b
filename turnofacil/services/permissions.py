"""
Role-based permission model

Two static capability tables, one for scheduling and one for team
requests, keyed by Role. A manager built for an actor holds a copy of
its role's row with location scope narrowed to the actor's assigned
location, and answers capability queries against it. Nothing here has
side effects.

Usage:
    manager = RequestPermissionManager(actor)
    if manager.can_manage_request(request, 'approve'):
        ...
"""
from dataclasses import dataclass, fields, replace
from types import MappingProxyType
from typing import Dict, Iterable, List, Optional, Tuple, Union

from turnofacil.models import Actor, RequestType, Role, ScheduleShift, TeamRequest
from turnofacil.models import ApprovalStage, RequestStatus
from .constants import ALL_REQUEST_TYPES

ALL = 'all'
UNLIMITED = 'unlimited'

LocationAccess = Union[str, Tuple[str, ...]]


@dataclass(frozen=True)
class SchedulePermissions:
    """Scheduling capabilities of one role"""
    can_create_shifts: bool = False
    can_edit_shifts: bool = False
    can_delete_shifts: bool = False
    can_edit_own_shifts: bool = False
    can_view_all_employees: bool = False
    can_manage_employees: bool = False
    can_assign_shifts: bool = False
    can_view_all_locations: bool = False
    can_manage_locations: bool = False
    can_manage_rest_days: bool = False
    can_approve_leaves: bool = False
    can_view_leaves: bool = False
    can_manage_templates: bool = False
    can_bypass_validations: bool = False
    can_approve_schedules: bool = False
    can_view_reports: bool = False
    can_view_budgets: bool = False
    can_export_data: bool = False
    location_access: LocationAccess = ()
    max_employees_visible: Union[str, int] = UNLIMITED
    budget_visibility: str = 'none'


@dataclass(frozen=True)
class RequestPermissions:
    """Team-request capabilities of one role"""
    can_create_request: bool = False
    can_edit_own_request: bool = False
    can_delete_own_request: bool = False
    can_view_own_requests: bool = False
    can_view_team_requests: bool = False
    can_view_all_requests: bool = False
    can_view_all_locations: bool = False
    can_approve_requests: bool = False
    can_reject_requests: bool = False
    can_escalate_requests: bool = False
    can_make_final_decision: bool = False
    can_bulk_approve: bool = False
    can_bulk_reject: bool = False
    can_edit_request_comments: bool = False
    can_view_request_analytics: bool = False
    can_manage_request_types: bool = False
    location_access: LocationAccess = ()
    request_type_access: Union[str, Tuple[RequestType, ...]] = ALL
    max_requests_per_month: Optional[int] = None


SCHEDULE_PERMISSIONS = MappingProxyType({
    Role.SUPERVISOR: SchedulePermissions(
        can_create_shifts=True,
        can_edit_shifts=True,
        can_delete_shifts=True,
        can_assign_shifts=True,
        can_manage_rest_days=True,
        can_view_leaves=True,
        can_manage_templates=True,
        can_view_reports=True,
        budget_visibility='summary',
    ),
    Role.BUSINESS_ADMIN: SchedulePermissions(
        can_create_shifts=True,
        can_edit_shifts=True,
        can_delete_shifts=True,
        can_view_all_employees=True,
        can_manage_employees=True,
        can_assign_shifts=True,
        can_view_all_locations=True,
        can_manage_locations=True,
        can_manage_rest_days=True,
        can_approve_leaves=True,
        can_view_leaves=True,
        can_manage_templates=True,
        can_bypass_validations=True,
        can_approve_schedules=True,
        can_view_reports=True,
        can_view_budgets=True,
        can_export_data=True,
        location_access=ALL,
        budget_visibility='full',
    ),
    Role.EMPLOYEE: SchedulePermissions(
        max_employees_visible=10,
    ),
})

REQUEST_PERMISSIONS = MappingProxyType({
    Role.EMPLOYEE: RequestPermissions(
        can_create_request=True,
        can_edit_own_request=True,
        can_delete_own_request=True,
        can_view_own_requests=True,
        max_requests_per_month=10,
    ),
    Role.SUPERVISOR: RequestPermissions(
        can_create_request=True,
        can_edit_own_request=True,
        can_delete_own_request=True,
        can_view_own_requests=True,
        can_view_team_requests=True,
        can_approve_requests=True,
        can_reject_requests=True,
        can_escalate_requests=True,
        can_bulk_approve=True,
        can_bulk_reject=True,
        can_edit_request_comments=True,
        can_view_request_analytics=True,
        max_requests_per_month=25,
    ),
    Role.BUSINESS_ADMIN: RequestPermissions(
        can_create_request=True,
        can_edit_own_request=True,
        can_delete_own_request=True,
        can_view_own_requests=True,
        can_view_team_requests=True,
        can_view_all_requests=True,
        can_view_all_locations=True,
        can_approve_requests=True,
        can_reject_requests=True,
        can_make_final_decision=True,
        can_bulk_approve=True,
        can_bulk_reject=True,
        can_edit_request_comments=True,
        can_view_request_analytics=True,
        can_manage_request_types=True,
        location_access=ALL,
    ),
})

# Stages at which each role may decide on a request
_DECIDING_ROLES = MappingProxyType({
    ApprovalStage.SUPERVISOR: (Role.SUPERVISOR, Role.BUSINESS_ADMIN),
    ApprovalStage.BUSINESS_ADMIN: (Role.BUSINESS_ADMIN,),
    ApprovalStage.ESCALATED: (Role.BUSINESS_ADMIN,),
    ApprovalStage.COMPLETED: (),
})

SHIFT_OPERATIONS = {
    'create': 'can_create_shifts',
    'edit': 'can_edit_shifts',
    'delete': 'can_delete_shifts',
}

SCHEDULE_FEATURES = MappingProxyType({
    'shift-creation': 'can_create_shifts',
    'shift-editing': 'can_edit_shifts',
    'shift-deletion': 'can_delete_shifts',
    'employee-management': 'can_manage_employees',
    'template-management': 'can_manage_templates',
    'rest-day-management': 'can_manage_rest_days',
    'leave-approval': 'can_approve_leaves',
    'budget-view': 'can_view_budgets',
    'reports-view': 'can_view_reports',
    'data-export': 'can_export_data',
    'schedule-approval': 'can_approve_schedules',
    'validation-bypass': 'can_bypass_validations',
})

REQUEST_FEATURES = MappingProxyType({
    'request-creation': 'can_create_request',
    'request-approval': 'can_approve_requests',
    'request-rejection': 'can_reject_requests',
    'bulk-actions': 'can_bulk_approve',
    'team-requests': 'can_view_team_requests',
    'all-requests': 'can_view_all_requests',
    'request-analytics': 'can_view_request_analytics',
    'escalation': 'can_escalate_requests',
    'final-decision': 'can_make_final_decision',
    'request-types-management': 'can_manage_request_types',
})


def _capability(permissions, action: str) -> bool:
    """Boolean capability lookup; unknown names and scope fields are False."""
    return action in _boolean_fields(permissions) and getattr(permissions, action) is True


def _boolean_fields(permissions) -> Tuple[str, ...]:
    return tuple(f.name for f in fields(permissions) if f.type is bool)


class _PermissionManager:
    """Shared scoping logic for both capability tables"""

    table = None
    features: Dict[str, str] = {}

    def __init__(self, actor: Actor):
        self.actor = actor
        self.permissions = self._scoped(self.table[actor.role], actor)

    @staticmethod
    def _scoped(permissions, actor: Actor):
        """Narrow location scope to the actor's own location for non-admins."""
        if actor.role in (Role.SUPERVISOR, Role.EMPLOYEE) and actor.location_id:
            return replace(permissions, location_access=(actor.location_id,))
        return permissions

    def can(self, action: str) -> bool:
        return _capability(self.permissions, action)

    def can_access_location(self, location_id: Optional[str]) -> bool:
        access = self.permissions.location_access
        if access == ALL:
            return True
        return location_id is not None and location_id in access

    def is_feature_enabled(self, feature: str) -> bool:
        required = self.features.get(feature)
        return self.can(required) if required else False

    def allowed_actions(self) -> List[str]:
        return [name for name in _boolean_fields(self.permissions) if self.can(name)]


class SchedulePermissionManager(_PermissionManager):
    """Capability queries for shifts, employees and budgets"""

    table = SCHEDULE_PERMISSIONS
    features = SCHEDULE_FEATURES

    def can_manage_shift(self, shift: ScheduleShift, operation: str) -> bool:
        action = SHIFT_OPERATIONS.get(operation)
        if action is None:
            return False
        return self.can(action) and self.can_access_location(shift.location_id)

    def can_view_employee_count(self, count: int) -> bool:
        limit = self.permissions.max_employees_visible
        return limit == UNLIMITED or count <= limit

    @property
    def budget_visibility(self) -> str:
        return self.permissions.budget_visibility

    def filter_shifts_by_permissions(self, shifts: Iterable[ScheduleShift]) -> List[ScheduleShift]:
        """Employees see their own shifts; other roles see their locations."""
        if self.actor.role == Role.EMPLOYEE:
            return [s for s in shifts if s.employee_id == self.actor.id]
        return [s for s in shifts if self.can_access_location(s.location_id)]

    def get_restrictions(self) -> Dict:
        access = self.permissions.location_access
        return {
            'locations': access if access == ALL else list(access),
            'max_employees': self.permissions.max_employees_visible,
            'budget_level': self.permissions.budget_visibility,
            'read_only': not self.can('can_create_shifts') and not self.can('can_edit_shifts'),
        }


class RequestPermissionManager(_PermissionManager):
    """Capability queries for team requests and their approval flow"""

    table = REQUEST_PERMISSIONS
    features = REQUEST_FEATURES

    def _is_own(self, request: TeamRequest) -> bool:
        return request.employee_id == self.actor.id

    def can_create_request_type(self, request_type: RequestType) -> bool:
        if not self.permissions.can_create_request:
            return False
        access = self.permissions.request_type_access
        return access == ALL or request_type in access

    def available_request_types(self) -> List[RequestType]:
        access = self.permissions.request_type_access
        return list(ALL_REQUEST_TYPES if access == ALL else access)

    @property
    def monthly_request_limit(self) -> Optional[int]:
        return self.permissions.max_requests_per_month

    def can_decide_at_stage(self, request: TeamRequest) -> bool:
        """Whether the actor's role matches the request's current review stage."""
        return self.actor.role in _DECIDING_ROLES[request.approval_flow.current_stage]

    def can_manage_request(self, request: TeamRequest, action: str) -> bool:
        """
        Answer whether the actor may view, edit, delete, approve or reject a request.

        Nobody approves or rejects their own request, whatever their role.
        """
        perms = self.permissions
        own = self._is_own(request)
        location_ok = self.can_access_location(request.location_id)
        is_admin = self.actor.role == Role.BUSINESS_ADMIN

        if action == 'view':
            return ((own and perms.can_view_own_requests)
                    or (perms.can_view_team_requests and location_ok)
                    or perms.can_view_all_requests)

        if action == 'edit':
            if own and perms.can_edit_own_request and request.status in (
                    RequestStatus.DRAFT, RequestStatus.PENDING):
                return True
            return is_admin and location_ok

        if action == 'delete':
            if own and perms.can_delete_own_request and request.status == RequestStatus.DRAFT:
                return True
            return is_admin and location_ok

        if action in ('approve', 'reject'):
            flag = perms.can_approve_requests if action == 'approve' else perms.can_reject_requests
            return flag and location_ok and not own and self.can_decide_at_stage(request)

        return False

    def can_escalate_request(self, request: TeamRequest) -> bool:
        return (self.permissions.can_escalate_requests
                and self.actor.role == Role.SUPERVISOR
                and not self._is_own(request)
                and request.approval_flow.current_stage == ApprovalStage.SUPERVISOR
                and self.can_access_location(request.location_id))

    def can_perform_bulk_action(self, action: str, requests: Iterable[TeamRequest]) -> bool:
        """Role-level bulk flag plus individual authority over every request."""
        if action == 'approve':
            allowed = self.permissions.can_bulk_approve
        elif action == 'reject':
            allowed = self.permissions.can_bulk_reject
        else:
            return False
        if not allowed:
            return False
        return all(self.can_manage_request(request, action) for request in requests)

    def filter_requests_by_permissions(self, requests: Iterable[TeamRequest]) -> List[TeamRequest]:
        return [r for r in requests if self.can_manage_request(r, 'view')]

    def get_restrictions(self) -> Dict:
        perms = self.permissions
        access = perms.location_access
        types = perms.request_type_access
        return {
            'locations': access if access == ALL else list(access),
            'request_types': types if types == ALL else [t.value for t in types],
            'max_requests_per_month': perms.max_requests_per_month,
            'read_only': not perms.can_create_request and not perms.can_approve_requests,
            'can_create_requests': perms.can_create_request,
            'can_approve_requests': perms.can_approve_requests,
        }


def role_can_perform(role: Role, action: str, table=REQUEST_PERMISSIONS) -> bool:
    return _capability(table[role], action)


def allowed_actions(role: Role, table=REQUEST_PERMISSIONS) -> List[str]:
    return [name for name in _boolean_fields(table[role]) if role_can_perform(role, name, table)]


def compare_roles(first: Role, second: Role, table=REQUEST_PERMISSIONS) -> Dict[str, List[str]]:
    first_actions = allowed_actions(first, table)
    second_actions = allowed_actions(second, table)
    return {
        'first_only': [a for a in first_actions if a not in second_actions],
        'second_only': [a for a in second_actions if a not in first_actions],
        'shared': [a for a in first_actions if a in second_actions],
    }


def role_hierarchy(role: Role) -> int:
    return role.level


def can_escalate_to(from_role: Role, to_role: Role) -> bool:
    return from_role.level < to_role.level
