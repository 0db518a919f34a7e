"""
Item routes — factor get/set, manual recalculation, history, board listing.
"""
from flask import Blueprint, request, jsonify

from factor_relay.errors import NoFactorConfigured, PersistenceError, RelayError, ValidationError
from factor_relay.extensions import get_services
from factor_relay.services.audit import DEFAULT_LIMIT

bp = Blueprint('items', __name__, url_prefix='/api/items')


@bp.route('/<item_id>/factor')
def get_factor(item_id):
    """Current factor for an item; 404 when none is stored."""
    factor = get_services().calculator.get_factor(item_id)
    if factor is None:
        raise NoFactorConfigured(item_id)
    return jsonify({
        'success': True,
        'data': {'item_id': item_id, 'factor': factor},
    })


@bp.route('/<item_id>/factor', methods=['POST'])
def set_factor(item_id):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict) or 'factor' not in data:
        raise ValidationError('Factor must be a non-negative number')

    result = get_services().calculator.update_factor(item_id, data['factor'], 'api')
    if not result.success:
        raise result.error or PersistenceError('Failed to update factor')

    return jsonify({
        'success': True,
        'data': {
            'item_id': item_id,
            'old_factor': result.old_factor,
            'new_factor': result.new_factor,
        },
    }), 201


@bp.route('/<item_id>/recalculate', methods=['POST'])
def recalculate(item_id):
    """Recalculate an item's result; failure status comes from the typed error."""
    result = get_services().calculator.calculate_and_update_result(item_id, 'api')
    if not result.success:
        raise result.error or RelayError('Failed to recalculate result')

    return jsonify({
        'success': True,
        'data': {
            'item_id': item_id,
            'input_value': result.input_value,
            'factor': result.factor,
            'result_value': result.result_value,
        },
    })


@bp.route('/<item_id>/history')
def history(item_id):
    # Non-integer limits fall back to the default; out-of-range ones are rejected
    limit = request.args.get('limit', DEFAULT_LIMIT, type=int)
    entries = get_services().calculator.get_history(item_id, limit)
    return jsonify({
        'success': True,
        'data': {
            'item_id': item_id,
            'history': entries,
            'count': len(entries),
        },
    })


@bp.route('/', strict_slashes=False)
def list_items():
    """Items on the configured board."""
    items = get_services().calculator.get_all_items()
    return jsonify({'success': True, 'data': items})
