"""
Logging setup and global error handlers for the TurnoFácil API
"""
import logging
import traceback
from flask import jsonify, request
from werkzeug.exceptions import HTTPException
import os

from .decorators import new_error_id


def setup_logging(app):
    """Configure application logging"""
    log_level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO').upper())
    log_file = app.config.get('LOG_FILE', 'logs/turnofacil.log')

    if not os.path.isabs(log_file):
        basedir = os.path.abspath(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
        log_file = os.path.join(basedir, log_file)

    log_dir = os.path.dirname(log_file)
    os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
    )

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    app.logger.setLevel(log_level)
    app.logger.addHandler(file_handler)
    app.logger.addHandler(console_handler)

    # Service modules log under the package namespace
    package_logger = logging.getLogger('turnofacil')
    package_logger.setLevel(log_level)
    package_logger.addHandler(file_handler)

    werkzeug_logger = logging.getLogger('werkzeug')
    werkzeug_logger.setLevel(log_level)

    return app.logger


def register_error_handlers(app):
    """
    Answer framework-level errors (unknown route, wrong method, crashes)
    with the same JSON shape the endpoints use
    """

    @app.errorhandler(HTTPException)
    def http_error(error):
        # Redirects raised by routing are not errors
        if error.code is None or error.code < 400:
            return error
        level = logging.INFO if error.code == 404 else logging.WARNING
        app.logger.log(level, f"{error.code} {error.name}: {request.method} {request.url} from {request.remote_addr}")
        return jsonify({
            'error': error.name,
            'message': error.description,
            'status_code': error.code
        }), error.code

    @app.errorhandler(500)
    def internal_error(error):
        from turnofacil.utils.validators import sanitize_request_data

        error_id = new_error_id()
        body = sanitize_request_data(request.get_data(as_text=True)[:1000])
        app.logger.error(
            f"Internal Server Error [{error_id}] on {request.method} {request.url}: {error}\n"
            f"{traceback.format_exc()}\nBody: {body}"
        )
        return jsonify({
            'error': 'Internal Server Error',
            'message': 'An unexpected error occurred',
            'error_id': error_id,
            'status_code': 500
        }), 500


class ReviewLogger:
    """Logger for approval decisions taken through the API"""

    def __init__(self, name='turnofacil.reviews'):
        self.logger = logging.getLogger(name)

    def decision_recorded(self, action, request_id, actor_id, outcome=None):
        """Log a successful review action"""
        message = f"{action}: request {request_id} by {actor_id}"
        if outcome:
            message += f" | {outcome}"
        self.logger.info(message)

    def decision_refused(self, action, request_id, actor_id, error_code, message):
        """Log a review action that the core refused"""
        self.logger.warning(
            f"{action} refused [{error_code}]: request {request_id} by {actor_id} - {message}"
        )

    def bulk_completed(self, action, actor_id, succeeded, failed):
        """Log the partition produced by a bulk action"""
        self.logger.info(
            f"Bulk {action} by {actor_id}: {len(succeeded)} succeeded, {len(failed)} failed"
        )


review_logger = ReviewLogger()
