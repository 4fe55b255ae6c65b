"""
Unified Error Handling System

Usage:
    from turnofacil.error_handlers import handle_errors
    from turnofacil.error_handlers.exceptions import ValidationException

    @api_bp.route('/endpoint', methods=['POST'])
    @handle_errors
    def my_endpoint():
        if not valid:
            raise ValidationException('Invalid data')
        return jsonify({'success': True})
"""
from .exceptions import (
    AppException,
    ValidationException,
    AuthenticationException,
    AuthorizationException,
    ResourceNotFoundException,
    InvalidStateException,
    ConfigurationException
)
from .decorators import handle_errors, requires_json
from .logging import setup_logging, register_error_handlers, review_logger


__all__ = [
    # Exceptions
    'AppException',
    'ValidationException',
    'AuthenticationException',
    'AuthorizationException',
    'ResourceNotFoundException',
    'InvalidStateException',
    'ConfigurationException',
    # Decorators
    'handle_errors',
    'requires_json',
    # Logging
    'setup_logging',
    'register_error_handlers',
    'review_logger',
]
