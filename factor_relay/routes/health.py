"""
Service info and health check.
"""
from datetime import datetime, timezone

from flask import Blueprint, jsonify

bp = Blueprint('health', __name__)

SERVICE_NAME = 'monday.com factor relay'
SERVICE_VERSION = '1.0.0'


@bp.route('/')
def index():
    return jsonify({
        'message': SERVICE_NAME,
        'version': SERVICE_VERSION,
        'status': 'running',
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'endpoints': {
            'health': '/health',
            'items': '/api/items',
            'webhooks': '/webhooks/monday',
        },
    })


@bp.route('/health')
def health_check():
    """Health check endpoint."""
    return jsonify({'status': 'healthy'}), 200
