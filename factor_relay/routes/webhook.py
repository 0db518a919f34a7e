"""
Webhook routes — monday.com change notifications and URL verification.
"""
from flask import Blueprint, request, jsonify

from factor_relay.extensions import get_services

bp = Blueprint('webhook', __name__)


def _payload():
    # None for an empty or unparseable body; the ingestor answers those with 500
    return request.get_json(silent=True)


@bp.route('/webhooks/monday', methods=['POST'])
def monday_webhook():
    body, status = get_services().webhooks.handle_event(_payload())
    return jsonify(body), status


@bp.route('/webhooks/monday/verify', methods=['POST'])
def monday_webhook_verify():
    body, status = get_services().webhooks.handle_verification(_payload())
    return jsonify(body), status
