"""
Flask application factory.

Creates and configures the Flask app, wires the relay services and registers
all blueprints.
"""
import logging

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from factor_relay.errors import RelayError

logger = logging.getLogger('factor_relay')

NO_CACHE_HEADERS = {
    'Cache-Control': 'no-cache, no-store, must-revalidate',
    'Pragma': 'no-cache',
    'Expires': '0',
}


def _error_response(message, status_code, code):
    return jsonify({
        'success': False,
        'error': {'code': code, 'message': message, 'status_code': status_code},
    }), status_code


def create_app(settings=None, services=None):
    """
    Create and configure the Flask application.

    settings defaults to load_settings() (environment); services defaults to
    build_services(settings). Tests pass pre-built services.
    """
    from factor_relay.logging_config import configure_logging
    from factor_relay.config import load_settings
    from factor_relay.extensions import EXTENSION_KEY, build_services

    app = Flask(__name__)
    configure_logging(app)

    if services is None:
        settings = settings or load_settings()
        services = build_services(settings)
    app.extensions[EXTENSION_KEY] = services

    @app.after_request
    def no_cache(response):
        response.headers.update(NO_CACHE_HEADERS)
        return response

    @app.errorhandler(RelayError)
    def handle_relay_error(error):
        if error.http_status >= 500:
            logger.error("%s: %s", error.code, error.message)
        payload = error.to_dict()
        return jsonify({'success': False, 'error': payload}), error.http_status

    @app.errorhandler(HTTPException)
    def handle_http_error(error):
        if error.code == 404:
            return _error_response(f"Route {request.path} not found", 404, 'NOT_FOUND')
        return _error_response(error.description, error.code, 'HTTP_ERROR')

    @app.errorhandler(Exception)
    def handle_unexpected(error):
        logger.exception("Unhandled error")
        return _error_response('Internal Server Error', 500, 'INTERNAL_ERROR')

    from factor_relay.routes.health import bp as health_bp
    from factor_relay.routes.items import bp as items_bp
    from factor_relay.routes.webhook import bp as webhook_bp

    app.register_blueprint(health_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(webhook_bp)

    return app
