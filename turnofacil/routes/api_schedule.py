"""
Schedule API Endpoints

Validation, metrics and labour-cost calculation over a schedule snapshot
sent in the request body. Validation findings are data, not errors: a
schedule with error findings still answers 200 with is_valid false.
"""
from flask import Blueprint, current_app, jsonify
from datetime import timedelta
import logging

from turnofacil.error_handlers import handle_errors, requires_json
from turnofacil.error_handlers.exceptions import ValidationException
from turnofacil.models import Employee, ScheduleShift
from turnofacil.services import labor_law
from turnofacil.services.schedule_metrics import compute_metrics
from turnofacil.services.validation_service import ScheduleValidationService, ValidationConfig
from turnofacil.utils.validators import validate_date_param, validate_number_param
from .payloads import (
    json_body,
    parse_employees,
    parse_requests,
    parse_rest_days,
    parse_shifts,
)

logger = logging.getLogger(__name__)

schedule_bp = Blueprint('schedule_api', __name__, url_prefix='/api/schedule')


def _validation_service():
    return ScheduleValidationService(ValidationConfig.from_mapping(current_app.config))


def _weekly_budget(data):
    return validate_number_param(data.get('weekly_budget'), 'weekly_budget',
                                 default=current_app.config.get('WEEKLY_BUDGET_LIMIT', 0))


@schedule_bp.route('/validate-shift', methods=['POST'])
@handle_errors
@requires_json
def validate_shift():
    """
    POST /api/schedule/validate-shift - Check one shift draft before saving it.

    Request Body (JSON):
        {
            "shift": {"id": "", "employee_id": "E1", "date": "2024-01-15",
                      "start_time": "06:00", "end_time": "14:00"},
            "employees": [...],
            "shifts": [...]   // existing shifts, optional
        }

    Returns:
        200 with the ValidationResult
    """
    data = json_body()
    shift_data = data.get('shift')
    if not isinstance(shift_data, dict):
        raise ValidationException('shift must be an object')

    draft = ScheduleShift.from_dict(shift_data)
    employees = parse_employees(data)
    existing = parse_shifts(data, required=False)

    result = _validation_service().validate_shift_data(draft, employees, existing)
    return jsonify(result.to_dict())


@schedule_bp.route('/validate', methods=['POST'])
@handle_errors
@requires_json
def validate_schedule():
    """
    POST /api/schedule/validate - Check a full week before publishing it.

    Request Body (JSON):
        {
            "shifts": [...],
            "employees": [...],
            "rest_days": [...],      // optional
            "leaves": [...],         // optional, team requests
            "weekly_budget": 10000000  // optional
        }
    """
    data = json_body()
    shifts = parse_shifts(data)
    employees = parse_employees(data)
    rest_days = parse_rest_days(data)
    leaves = parse_requests(data, 'leaves', required=False)

    result = _validation_service().validate_full_schedule(
        shifts, employees, rest_days, leaves, _weekly_budget(data)
    )
    logger.info(
        f"Schedule validated: {len(shifts)} shifts, "
        f"{len(result.errors)} errors, {len(result.warnings)} warnings"
    )
    return jsonify(result.to_dict())


@schedule_bp.route('/metrics', methods=['POST'])
@handle_errors
@requires_json
def schedule_metrics():
    """POST /api/schedule/metrics - Weekly hours, cost and budget utilization."""
    data = json_body()
    shifts = parse_shifts(data)
    employees = parse_employees(data, required=False)
    metrics = compute_metrics(shifts, employees, _weekly_budget(data))
    return jsonify(metrics.to_dict())


@schedule_bp.route('/build-shift', methods=['POST'])
@handle_errors
@requires_json
def build_shift():
    """
    POST /api/schedule/build-shift - Fill in duration, pay type and cost of a draft.

    Request Body (JSON):
        {"shift": {...}, "employee": {...}}   // employee optional
    """
    data = json_body()
    shift_data = data.get('shift')
    if not isinstance(shift_data, dict):
        raise ValidationException('shift must be an object')
    employee_data = data.get('employee')
    employee = Employee.from_dict(employee_data) if isinstance(employee_data, dict) else None

    draft = ScheduleShift.from_dict(shift_data)
    if not draft.has_valid_times:
        raise ValidationException('start_time and end_time must be HH:mm')
    return jsonify(labor_law.build_shift(draft, employee).to_dict())


@schedule_bp.route('/rest-days/recommendations', methods=['POST'])
@handle_errors
@requires_json
def rest_day_recommendations():
    """
    POST /api/schedule/rest-days/recommendations - Suggest rest days for the week.

    Request Body (JSON):
        {"shifts": [...], "employees": [...], "rest_days": [...], "week_start": "2024-01-14"}
    """
    data = json_body()
    shifts = parse_shifts(data)
    employees = parse_employees(data)
    rest_days = parse_rest_days(data)
    start = validate_date_param(data.get('week_start'), 'week_start')
    week = [start + timedelta(days=offset) for offset in range(7)]

    recommendations = labor_law.rest_day_recommendations(employees, shifts, rest_days, week)
    compliance = [labor_law.rest_day_compliance(e.id, shifts, rest_days) for e in employees]
    return jsonify({
        'recommendations': [r.to_dict() for r in recommendations],
        'compliance': [c.to_dict() for c in compliance],
    })


@schedule_bp.route('/holidays/<int:year>', methods=['GET'])
@handle_errors
def holidays(year):
    """GET /api/schedule/holidays/<year> - Colombian public holidays of a year."""
    if not 1900 <= year <= 2200:
        raise ValidationException('year must be between 1900 and 2200')
    return jsonify({
        'year': year,
        'holidays': [d.isoformat() for d in labor_law.colombian_holidays(year)],
    })
