"""
Flask application factory.

This module implements the application factory pattern for creating
TurnoFácil API instances with different configurations. The scheduling
core lives in turnofacil.services and never needs an app; the factory
only wires it to HTTP.
"""

from flask import Flask
from datetime import datetime

from .config import ProductionConfig, get_config
from .error_handlers.exceptions import ConfigurationException


def create_app(config_name=None):
    """
    Application factory function.

    Args:
        config_name: Configuration name (development, testing, production)
                    If None, determined from environment

    Returns:
        Flask application instance
    """
    app = Flask(__name__)

    # Apply ProxyFix for correct IP and scheme handling behind reverse proxies
    from werkzeug.middleware.proxy_fix import ProxyFix
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    config_class = get_config(config_name)
    # Only production settings are validated at startup, however they were selected
    if issubclass(config_class, ProductionConfig):
        try:
            config_class.validate()
        except ValueError as e:
            raise ConfigurationException(str(e))
    app.config.from_object(config_class)
    app.json.sort_keys = app.config.get('JSON_SORT_KEYS', False)

    app.config['VERSION'] = datetime.now().strftime('%Y%m%d%H%M%S')

    # Configure logging and error handling
    from turnofacil.error_handlers import setup_logging, register_error_handlers
    setup_logging(app)
    register_error_handlers(app)

    # Shared cache for filtered request views
    from turnofacil.services.query_cache import QueryCache
    app.extensions['query_cache'] = QueryCache(ttl=app.config['QUERY_CACHE_TTL'])

    register_blueprints(app)

    app.logger.info(f"TurnoFácil API started ({config_class.__name__})")
    return app


def register_blueprints(app):
    """Register all Flask blueprints."""

    from turnofacil.routes.health import health_bp
    app.register_blueprint(health_bp)

    from turnofacil.routes.api_schedule import schedule_bp
    app.register_blueprint(schedule_bp)

    from turnofacil.routes.api_requests import requests_bp
    app.register_blueprint(requests_bp)

    from turnofacil.routes.api_permissions import permissions_bp
    app.register_blueprint(permissions_bp)
