"""
Exception hierarchy for the HTTP boundary

The scheduling core reports business failures as result values
(see services.service_result). These exceptions are raised by the
route and serialization layer and turned into JSON responses by
@handle_errors.

Exception Hierarchy:
    AppException (base, 500)
    ├── ValidationException (400)
    ├── AuthenticationException (401)
    ├── AuthorizationException (403)
    ├── ResourceNotFoundException (404)
    ├── InvalidStateException (409)
    └── ConfigurationException (500)
"""
from typing import Dict, Any, Optional


class AppException(Exception):
    """
    Base exception for all application errors

    Attributes:
        status_code: HTTP status code for the error
        error_type: String identifier for the error type
        message: Human-readable error message
        details: Additional context merged into the JSON body
    """
    status_code = 500
    error_type = 'ApplicationError'

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if status_code:
            self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to a JSON-serializable dictionary"""
        result = {
            'error': self.error_type,
            'message': self.message,
            'status_code': self.status_code
        }
        if self.details:
            result.update(self.details)
        return result

    def __str__(self) -> str:
        return f"{self.error_type}: {self.message}"

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}('{self.message}', status_code={self.status_code})>"


class ValidationException(AppException):
    """
    Malformed payload (HTTP 400)

    Example:
        >>> if 'shift' not in payload:
        ...     raise ValidationException('shift is required')
    """
    status_code = 400
    error_type = 'ValidationError'


class AuthenticationException(AppException):
    """
    Missing or unusable actor identity (HTTP 401)

    Example:
        >>> if not payload.get('actor'):
        ...     raise AuthenticationException('actor is required')
    """
    status_code = 401
    error_type = 'AuthenticationError'


class AuthorizationException(AppException):
    """
    Actor is known but lacks the capability (HTTP 403)

    Example:
        >>> if not manager.can_manage_request(req, 'approve'):
        ...     raise AuthorizationException('Cannot approve this request')
    """
    status_code = 403
    error_type = 'AuthorizationError'


class ResourceNotFoundException(AppException):
    """
    Referenced entity is not in the supplied snapshot (HTTP 404)

    Example:
        >>> if request_id not in requests_by_id:
        ...     raise ResourceNotFoundException(f'Request {request_id} not found')
    """
    status_code = 404
    error_type = 'NotFound'


class InvalidStateException(AppException):
    """
    Transition attempted from a state that does not allow it (HTTP 409)

    Example:
        >>> if req.status not in ('pending', 'under_review'):
        ...     raise InvalidStateException('Request is not awaiting review')
    """
    status_code = 409
    error_type = 'InvalidState'


class ConfigurationException(AppException):
    """
    Application is misconfigured (HTTP 500)

    Example:
        >>> if config.MIN_STAFFING_PER_DAY < 0:
        ...     raise ConfigurationException('MIN_STAFFING_PER_DAY must be >= 0')
    """
    status_code = 500
    error_type = 'ConfigurationError'
