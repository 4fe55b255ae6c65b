"""
Services package for scheduling rules, permissions and request approvals
"""

from .validation_types import (
    EntityType,
    FindingType,
    Severity,
    ValidationFinding,
    ValidationResult,
    ValidationSummary,
)
from .validation_service import (
    ScheduleValidationService,
    ValidationConfig,
    validate_schedule,
    validate_shift,
)
from .schedule_metrics import ScheduleMetrics, compute_metrics
from .permissions import (
    RequestPermissionManager,
    SchedulePermissionManager,
)
from .service_result import BulkResult, ErrorCode, ServiceResult
from .approval_service import ApprovalService
from .request_service import RequestService, request_metrics
from .query_filters import (
    RequestFilters,
    ShiftFilters,
    apply_preset,
    apply_request_filters,
    apply_shift_filters,
    filter_options,
)
from .query_cache import QueryCache, RequestQueryService
from .labor_law import build_shift

__all__ = [
    # Validation types
    'EntityType',
    'FindingType',
    'Severity',
    'ValidationFinding',
    'ValidationResult',
    'ValidationSummary',
    # Services
    'ScheduleValidationService',
    'ValidationConfig',
    'validate_schedule',
    'validate_shift',
    'ScheduleMetrics',
    'compute_metrics',
    'RequestPermissionManager',
    'SchedulePermissionManager',
    'BulkResult',
    'ErrorCode',
    'ServiceResult',
    'ApprovalService',
    'RequestService',
    'request_metrics',
    'RequestFilters',
    'ShiftFilters',
    'apply_preset',
    'apply_request_filters',
    'apply_shift_filters',
    'filter_options',
    'QueryCache',
    'RequestQueryService',
    'build_shift',
]
