"""
Payload parsing shared by the API blueprints

Each call carries its own snapshot (actor, shifts, employees, requests)
in the JSON body. These helpers hydrate the snapshot into models and
translate failed ServiceResults into the exception hierarchy so
@handle_errors renders them.
"""
from flask import request

from turnofacil.error_handlers.exceptions import (
    AuthorizationException,
    InvalidStateException,
    ResourceNotFoundException,
    ValidationException,
)
from turnofacil.models import Actor, Employee, RestDay, ScheduleShift, TeamRequest
from turnofacil.services.service_result import ErrorCode
from turnofacil.utils.validators import validate_list_param

_ERROR_EXCEPTIONS = {
    ErrorCode.INSUFFICIENT_PERMISSIONS: AuthorizationException,
    ErrorCode.REQUEST_NOT_FOUND: ResourceNotFoundException,
    ErrorCode.INVALID_STATUS: InvalidStateException,
}


def json_body():
    """The request body; @requires_json guarantees it is a dict."""
    return request.get_json(silent=True) or {}


def parse_actor(data):
    return Actor.from_dict(data.get('actor'))


def _parse_items(data, name, model, required):
    items = validate_list_param(data, name, required=required)
    parsed = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationException(f"{name}[{index}] must be an object")
        try:
            parsed.append(model.from_dict(item))
        except ValidationException as e:
            raise ValidationException(f"{name}[{index}]: {e.message}")
    return parsed


def parse_shifts(data, name='shifts', required=True):
    return _parse_items(data, name, ScheduleShift, required)


def parse_employees(data, required=True):
    return _parse_items(data, 'employees', Employee, required)


def parse_rest_days(data):
    return _parse_items(data, 'rest_days', RestDay, required=False)


def parse_requests(data, name='requests', required=True):
    return _parse_items(data, name, TeamRequest, required)


def unwrap(result):
    """
    Return the data of a successful ServiceResult.

    Raises:
        AppException: The subclass matching the result's error code
    """
    if result.success:
        return result.data
    exception_class = _ERROR_EXCEPTIONS.get(result.error_code, ValidationException)
    raise exception_class(result.message, details={'error_code': result.error_code.value})
