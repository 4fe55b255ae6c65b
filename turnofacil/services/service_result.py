"""
Typed outcome of mutating core operations

Business failures (missing permission, unknown id, illegal transition)
come back as a failed ServiceResult carrying an ErrorCode. Only the
route layer turns them into exceptions.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar('T')


class ErrorCode(str, Enum):
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    REQUEST_NOT_FOUND = "REQUEST_NOT_FOUND"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    INVALID_STATUS = "INVALID_STATUS"
    COMMENTS_REQUIRED = "COMMENTS_REQUIRED"
    MONTHLY_LIMIT_EXCEEDED = "MONTHLY_LIMIT_EXCEEDED"


ERROR_MESSAGES = {
    ErrorCode.INSUFFICIENT_PERMISSIONS: 'No tienes permisos para realizar esta acción',
    ErrorCode.REQUEST_NOT_FOUND: 'Solicitud no encontrada',
    ErrorCode.VALIDATION_FAILED: 'Los datos de la solicitud no son válidos',
    ErrorCode.INVALID_STATUS: 'La solicitud no se puede modificar en su estado actual',
    ErrorCode.COMMENTS_REQUIRED: 'Los comentarios son obligatorios para esta acción',
    ErrorCode.MONTHLY_LIMIT_EXCEEDED: 'Has alcanzado el límite mensual de solicitudes',
}


@dataclass(frozen=True)
class ServiceResult(Generic[T]):
    success: bool
    data: Optional[T] = None
    error_code: Optional[ErrorCode] = None
    message: str = ''

    @classmethod
    def ok(cls, data: T = None) -> 'ServiceResult[T]':
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error_code: ErrorCode, message: Optional[str] = None) -> 'ServiceResult[T]':
        return cls(success=False, error_code=error_code,
                   message=message or ERROR_MESSAGES[error_code])

    def __bool__(self):
        return self.success

    def to_dict(self) -> Dict[str, Any]:
        data = self.data.to_dict() if hasattr(self.data, 'to_dict') else self.data
        return {
            'success': self.success,
            'data': data,
            'error_code': self.error_code.value if self.error_code else None,
            'message': self.message,
        }


@dataclass
class BulkFailure:
    request_id: str
    error_code: ErrorCode
    message: str

    def to_dict(self):
        return {
            'request_id': self.request_id,
            'error_code': self.error_code.value,
            'message': self.message,
        }


@dataclass
class BulkResult:
    """Per-id partition of a bulk action; failures never undo successes"""
    succeeded: List[str] = field(default_factory=list)
    failed: List[BulkFailure] = field(default_factory=list)
    updated: List[Any] = field(default_factory=list)

    @property
    def failed_ids(self) -> List[str]:
        return [f.request_id for f in self.failed]

    def to_dict(self):
        return {
            'succeeded': list(self.succeeded),
            'failed': [f.to_dict() for f in self.failed],
            'updated': [r.to_dict() for r in self.updated],
        }
