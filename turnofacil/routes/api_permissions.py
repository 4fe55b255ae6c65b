"""
Permission API Endpoints

Lets the client ask what the acting user may do, so it can hide
actions the core would refuse anyway.
"""
from flask import Blueprint, jsonify

from turnofacil.error_handlers import handle_errors, requires_json
from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.models import Role, ScheduleShift, TeamRequest
from turnofacil.models.base import coerce_enum
from turnofacil.services.permissions import (
    RequestPermissionManager,
    SchedulePermissionManager,
    compare_roles,
)
from .payloads import json_body, parse_actor

permissions_bp = Blueprint('permissions_api', __name__, url_prefix='/api/permissions')

DOMAINS = ('schedule', 'requests')


def _manager(domain, actor):
    if domain == 'schedule':
        return SchedulePermissionManager(actor)
    if domain == 'requests':
        return RequestPermissionManager(actor)
    raise ValidationException(f"domain must be one of: {', '.join(DOMAINS)}")


@permissions_bp.route('/check', methods=['POST'])
@handle_errors
@requires_json
def check_permission():
    """
    POST /api/permissions/check - Capability and, optionally, entity checks.

    Request Body (JSON):
        {
            "actor": {...},
            "domain": "requests",           // or "schedule", default "requests"
            "action": "can_approve_requests",
            "request": {...},               // optional, with "operation"
            "shift": {...},                 // optional, with "operation"
            "operation": "approve"
        }

    Returns:
        200 with allowed flag and the actor's restrictions
    """
    data = json_body()
    actor = parse_actor(data)
    domain = data.get('domain') or 'requests'
    manager = _manager(domain, actor)

    response = {
        'actor': actor.to_dict(),
        'domain': domain,
        'restrictions': manager.get_restrictions(),
    }

    action = data.get('action')
    if action:
        response['action'] = action
        response['allowed'] = manager.can(str(action))

    operation = data.get('operation')
    if isinstance(data.get('request'), dict) and domain == 'requests':
        request_entity = TeamRequest.from_dict(data['request'])
        if operation == 'escalate':
            response['entity_allowed'] = manager.can_escalate_request(request_entity)
        else:
            response['entity_allowed'] = manager.can_manage_request(request_entity, str(operation))
    elif isinstance(data.get('shift'), dict) and domain == 'schedule':
        shift = ScheduleShift.from_dict(data['shift'])
        response['entity_allowed'] = manager.can_manage_shift(shift, str(operation))

    return jsonify(response)


@permissions_bp.route('/actions', methods=['POST'])
@handle_errors
@requires_json
def allowed_actions():
    """POST /api/permissions/actions - Every capability the actor holds in both domains."""
    data = json_body()
    actor = parse_actor(data)
    requests_manager = RequestPermissionManager(actor)
    return jsonify({
        'actor': actor.to_dict(),
        'schedule': SchedulePermissionManager(actor).allowed_actions(),
        'requests': requests_manager.allowed_actions(),
        'request_types': [t.value for t in requests_manager.available_request_types()],
        'monthly_request_limit': requests_manager.monthly_request_limit,
    })


@permissions_bp.route('/compare', methods=['POST'])
@handle_errors
@requires_json
def compare():
    """POST /api/permissions/compare - Body: {"first": "SUPERVISOR", "second": "BUSINESS_ADMIN"}."""
    data = json_body()
    first = coerce_enum(Role, data.get('first'), 'first')
    second = coerce_enum(Role, data.get('second'), 'second')
    return jsonify(compare_roles(first, second))
