"""
Endpoint decorators: JSON error rendering and JSON body enforcement
"""
from functools import wraps
from flask import jsonify, current_app, request
from datetime import datetime, timezone
from .exceptions import AppException, ValidationException


def new_error_id():
    """Timestamp id that ties a 500 response to its log lines."""
    return datetime.now(timezone.utc).strftime('%Y%m%d_%H%M%S_%f')


def handle_errors(f):
    """
    Render AppExceptions as JSON error bodies

    Business refusals (403, 404, 409) and bad payloads are logged at
    warning level with their error code; anything else is logged with a
    traceback and answered with an error id the operator can grep for.

    Usage:
        @requests_bp.route('/<request_id>/approve', methods=['POST'])
        @handle_errors
        @requires_json
        def approve(request_id):
            ...
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        try:
            return f(*args, **kwargs)

        except AppException as e:
            code = (e.details or {}).get('error_code', e.error_type)
            current_app.logger.warning(
                f"{request.method} {request.path} -> {e.status_code} [{code}]: {e.message}"
            )
            return jsonify(e.to_dict()), e.status_code

        except Exception as e:
            error_id = new_error_id()
            current_app.logger.error(
                f"Unexpected error [{error_id}] in {request.method} {request.path}: {e}",
                exc_info=True
            )
            return jsonify({
                'error': 'InternalError',
                'message': 'An unexpected error occurred',
                'error_id': error_id,
                'status_code': 500
            }), 500

    return decorated


def requires_json(f):
    """
    Reject requests whose body is not a JSON object

    Raises ValidationException, so it must sit below @handle_errors:
        @handle_errors
        @requires_json
        def my_endpoint():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            raise ValidationException('Request body must be a JSON object')
        return f(*args, **kwargs)
    return decorated_function
