"""
Team Request API Endpoints

Lifecycle, approval and query endpoints. Every call sends the acting
user and the request snapshot it acts on; responses carry the updated
request for the caller to store.
"""
from flask import Blueprint, current_app, jsonify
import logging

from turnofacil.error_handlers import handle_errors, requires_json, review_logger
from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.services.approval_service import ApprovalService
from turnofacil.services.query_cache import QueryCache, RequestQueryService
from turnofacil.services.query_filters import RequestFilters
from turnofacil.services.request_service import RequestService
from turnofacil.utils.validators import validate_list_param, validate_optional_date
from .payloads import json_body, parse_actor, parse_requests, unwrap

logger = logging.getLogger(__name__)

requests_bp = Blueprint('requests_api', __name__, url_prefix='/api/requests')


def _query_service(actor):
    cache = current_app.extensions.get('query_cache')
    if cache is None:
        cache = current_app.extensions['query_cache'] = QueryCache(current_app.config['QUERY_CACHE_TTL'])
    return RequestQueryService(actor, cache)


def _invalidate_views(actor):
    _query_service(actor).invalidate()


def _review(action, request_id, operation):
    """Run a single review decision and log its outcome."""
    data = json_body()
    actor = parse_actor(data)
    requests = parse_requests(data)
    result = operation(ApprovalService(actor), request_id, requests, data)

    if not result.success:
        review_logger.decision_refused(action, request_id, actor.id,
                                       result.error_code.value, result.message)
    updated = unwrap(result)
    review_logger.decision_recorded(action, request_id, actor.id,
                                    f"status={updated.status.value} "
                                    f"stage={updated.approval_flow.current_stage.value}")
    _invalidate_views(actor)
    return jsonify({'success': True, 'request': updated.to_dict()})


# ----------------------------------------------------------------------
# Review decisions
# ----------------------------------------------------------------------

@requests_bp.route('/<request_id>/approve', methods=['POST'])
@handle_errors
@requires_json
def approve(request_id):
    """
    POST /api/requests/<id>/approve

    Request Body (JSON):
        {"actor": {...}, "requests": [...], "comments": "optional"}
    """
    return _review('approve', request_id,
                   lambda service, rid, reqs, data: service.approve_request(rid, reqs, data.get('comments')))


@requests_bp.route('/<request_id>/reject', methods=['POST'])
@handle_errors
@requires_json
def reject(request_id):
    """POST /api/requests/<id>/reject - comments are mandatory."""
    return _review('reject', request_id,
                   lambda service, rid, reqs, data: service.reject_request(rid, reqs, data.get('comments')))


@requests_bp.route('/<request_id>/escalate', methods=['POST'])
@handle_errors
@requires_json
def escalate(request_id):
    """POST /api/requests/<id>/escalate - supervisors only, optional reason."""
    return _review('escalate', request_id,
                   lambda service, rid, reqs, data: service.escalate_request(rid, reqs, data.get('reason')))


@requests_bp.route('/<request_id>/request-info', methods=['POST'])
@handle_errors
@requires_json
def request_info(request_id):
    """POST /api/requests/<id>/request-info - ask the requester for more details."""
    return _review('request_info', request_id,
                   lambda service, rid, reqs, data: service.request_more_info(rid, reqs, data.get('comments')))


def _bulk(action):
    data = json_body()
    actor = parse_actor(data)
    requests = parse_requests(data)
    request_ids = [str(i) for i in validate_list_param(data, 'request_ids')]

    service = ApprovalService(actor)
    if action == 'approve':
        result = service.bulk_approve(request_ids, requests, data.get('comments'))
    else:
        result = service.bulk_reject(request_ids, requests, data.get('comments'))

    bulk = unwrap(result)
    review_logger.bulk_completed(action, actor.id, bulk.succeeded, bulk.failed_ids)
    if bulk.succeeded:
        _invalidate_views(actor)
    return jsonify({'success': True, **bulk.to_dict()})


@requests_bp.route('/bulk-approve', methods=['POST'])
@handle_errors
@requires_json
def bulk_approve():
    """
    POST /api/requests/bulk-approve

    Request Body (JSON):
        {"actor": {...}, "requests": [...], "request_ids": ["r1", "r2"], "comments": "optional"}

    Returns:
        200 with succeeded ids, per-id failures and the updated requests
    """
    return _bulk('approve')


@requests_bp.route('/bulk-reject', methods=['POST'])
@handle_errors
@requires_json
def bulk_reject():
    """POST /api/requests/bulk-reject - shared comments are mandatory."""
    return _bulk('reject')


# ----------------------------------------------------------------------
# Lifecycle
# ----------------------------------------------------------------------

@requests_bp.route('', methods=['POST'])
@handle_errors
@requires_json
def create_request():
    """
    POST /api/requests - Create a request owned by the actor.

    Request Body (JSON):
        {
            "actor": {...},
            "request": {"type": "vacation", "reason": "...", "start_date": "...", "end_date": "..."},
            "requests": [...],   // optional, the actor's existing requests
            "draft": false
        }
    """
    data = json_body()
    actor = parse_actor(data)
    payload = data.get('request')
    if not isinstance(payload, dict):
        raise ValidationException('request must be an object')
    existing = parse_requests(data, required=False)

    created = unwrap(RequestService(actor).create_request(payload, existing, bool(data.get('draft'))))
    logger.info(f"Request {created.id} created by {actor.id}")
    _invalidate_views(actor)
    return jsonify({'success': True, 'request': created.to_dict()}), 201


@requests_bp.route('/<request_id>', methods=['PATCH'])
@handle_errors
@requires_json
def update_request(request_id):
    """PATCH /api/requests/<id> - Body: {"actor", "requests", "changes"}."""
    data = json_body()
    actor = parse_actor(data)
    changes = data.get('changes')
    if not isinstance(changes, dict):
        raise ValidationException('changes must be an object')
    updated = unwrap(RequestService(actor).update_request(request_id, changes, parse_requests(data)))
    _invalidate_views(actor)
    return jsonify({'success': True, 'request': updated.to_dict()})


@requests_bp.route('/<request_id>/delete', methods=['POST'])
@handle_errors
@requires_json
def delete_request(request_id):
    """POST /api/requests/<id>/delete - Body: {"actor", "requests"}."""
    data = json_body()
    actor = parse_actor(data)
    deleted_id = unwrap(RequestService(actor).delete_request(request_id, parse_requests(data)))
    logger.info(f"Request {deleted_id} deleted by {actor.id}")
    _invalidate_views(actor)
    return jsonify({'success': True, 'deleted': deleted_id})


@requests_bp.route('/<request_id>/submit', methods=['POST'])
@handle_errors
@requires_json
def submit_request(request_id):
    data = json_body()
    actor = parse_actor(data)
    submitted = unwrap(RequestService(actor).submit_request(request_id, parse_requests(data)))
    _invalidate_views(actor)
    return jsonify({'success': True, 'request': submitted.to_dict()})


@requests_bp.route('/<request_id>/cancel', methods=['POST'])
@handle_errors
@requires_json
def cancel_request(request_id):
    data = json_body()
    actor = parse_actor(data)
    cancelled = unwrap(RequestService(actor).cancel_request(request_id, parse_requests(data)))
    _invalidate_views(actor)
    return jsonify({'success': True, 'request': cancelled.to_dict()})


# ----------------------------------------------------------------------
# Queries
# ----------------------------------------------------------------------

@requests_bp.route('/query', methods=['POST'])
@handle_errors
@requires_json
def query_requests():
    """
    POST /api/requests/query - Filtered, sorted view of the visible requests.

    Request Body (JSON):
        {
            "actor": {...},
            "requests": [...],
            "filters": {"status": ["pending"], "sort_by": "priority", ...},  // optional
            "preset": "pending_approval"                                    // optional
        }

    Returns:
        200 with requests, total, active filter count, summary and options
    """
    data = json_body()
    actor = parse_actor(data)
    requests = parse_requests(data)
    filters = RequestFilters.from_dict(data.get('filters'))
    return jsonify(_query_service(actor).query(requests, filters, data.get('preset')))


@requests_bp.route('/pending', methods=['POST'])
@handle_errors
@requires_json
def pending_approvals():
    """POST /api/requests/pending - Requests the actor can approve now."""
    data = json_body()
    actor = parse_actor(data)
    pending = ApprovalService(actor).get_pending_approvals(parse_requests(data))
    return jsonify({'requests': [r.to_dict() for r in pending], 'total': len(pending)})


@requests_bp.route('/metrics', methods=['POST'])
@handle_errors
@requires_json
def request_metrics():
    """POST /api/requests/metrics - Dashboard figures over the visible requests."""
    data = json_body()
    actor = parse_actor(data)
    return jsonify(_query_service(actor).metrics(parse_requests(data)))


@requests_bp.route('/stats', methods=['POST'])
@handle_errors
@requires_json
def approval_stats():
    """
    POST /api/requests/stats - Review statistics for a period.

    Request Body (JSON):
        {"actor": {...}, "requests": [...], "start_date": "2024-01-01", "end_date": "2024-01-31"}
    """
    data = json_body()
    actor = parse_actor(data)
    start = validate_optional_date(data.get('start_date'), 'start_date')
    end = validate_optional_date(data.get('end_date'), 'end_date')
    stats = unwrap(ApprovalService(actor).get_approval_stats(parse_requests(data), start, end))
    return jsonify(stats)
