"""
Health Check and Monitoring Endpoints
Provides endpoints for liveness, readiness and process status.
"""
from flask import Blueprint, jsonify, current_app
from datetime import datetime, timezone
import sys
import psutil
import os

health_bp = Blueprint('health', __name__, url_prefix='/health')


def _now():
    return datetime.now(timezone.utc).isoformat()


@health_bp.route('/ping', methods=['GET'])
def ping():
    """
    Simple ping endpoint for basic connectivity checks.
    Returns: 200 OK with pong message
    """
    return jsonify({
        'status': 'ok',
        'message': 'pong',
        'timestamp': _now()
    }), 200


@health_bp.route('/live', methods=['GET'])
def liveness():
    """
    Liveness probe - checks if application is running.

    Returns:
        200: Application is alive
    """
    return jsonify({
        'status': 'alive',
        'timestamp': _now()
    }), 200


@health_bp.route('/ready', methods=['GET'])
def readiness():
    """
    Readiness probe - checks the rule configuration and the query cache.

    Returns:
        200: Application is ready
        503: Application is not ready
    """
    from turnofacil.services.validation_service import ValidationConfig

    checks = {'validation_config': False, 'query_cache': False}
    errors = []

    try:
        ValidationConfig.from_mapping(current_app.config)
        checks['validation_config'] = True
    except (TypeError, ValueError) as e:
        errors.append(f"Validation config: {e}")

    cache = current_app.extensions.get('query_cache')
    if cache is not None:
        checks['query_cache'] = True
    else:
        errors.append("Query cache: not initialized")

    all_checks_passed = all(checks.values())
    response = {
        'status': 'ready' if all_checks_passed else 'not_ready',
        'checks': checks,
        'timestamp': _now()
    }
    if errors:
        response['errors'] = errors

    return jsonify(response), 200 if all_checks_passed else 503


@health_bp.route('/status', methods=['GET'])
def status():
    """
    Detailed application status: process resources and cache statistics.

    Returns:
        200: Status information
    """
    process = psutil.Process()
    memory_info = process.memory_info()
    cache = current_app.extensions.get('query_cache')

    return jsonify({
        'status': 'operational',
        'timestamp': _now(),
        'application': {
            'name': 'TurnoFácil API',
            'version': current_app.config.get('VERSION'),
            'debug': current_app.debug,
        },
        'system': {
            'python_version': sys.version,
            'platform': sys.platform,
            'process_id': os.getpid(),
        },
        'resources': {
            'memory': {
                'used_mb': round(memory_info.rss / 1024 / 1024, 2),
                'percent': round(process.memory_percent(), 2),
            },
            'cpu': {
                'percent': round(process.cpu_percent(interval=0.1), 2),
            },
        },
        'query_cache': cache.stats() if cache is not None else None,
    }), 200
