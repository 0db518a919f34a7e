"""
Inbound monday.com webhook handling.

Decides which change notifications trigger a recalculation. Once a payload
is structurally valid the sender always gets a success response: a failure
here is something the sender cannot fix by retrying, and its retries would
only pile up. Internal failure detail goes to the logs and the audit trail.
"""
import logging
import math
from typing import Any, Dict, Optional, Tuple

from factor_relay.services.calculation import CalculationOrchestrator

logger = logging.getLogger('webhooks.monday')

COLUMN_CHANGE_EVENT = 'update_column_value'

Response = Tuple[Dict[str, Any], int]


def parse_event_value(value) -> Optional[float]:
    """`event.value` → float from its inner `value`, or None if that isn't a finite number."""
    if not isinstance(value, dict):
        return None
    raw = value.get('value')
    if raw is None or isinstance(raw, bool):
        return None
    try:
        parsed = float(raw)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def is_cleared_value(value) -> bool:
    """True when the column was emptied: no `event.value`, or no inner `value`."""
    return value is None or (isinstance(value, dict) and value.get('value') is None)


class WebhookIngestor:

    def __init__(self, calculator: CalculationOrchestrator, input_column_id: str):
        self.calculator = calculator
        self.input_column_id = input_column_id

    @staticmethod
    def _challenge(payload) -> Optional[Response]:
        if isinstance(payload, dict) and payload.get('challenge') is not None:
            logger.info("Responding to challenge")
            return {'challenge': payload['challenge']}, 200
        return None

    def should_process(self, event: Dict[str, Any]) -> bool:
        return (
            event.get('type') == COLUMN_CHANGE_EVENT
            and event.get('columnId') == self.input_column_id
        )

    def handle_verification(self, payload) -> Response:
        answered = self._challenge(payload)
        if answered is not None:
            return answered
        return {'error': 'No challenge provided'}, 400

    def handle_event(self, payload) -> Response:
        answered = self._challenge(payload)
        if answered is not None:
            return answered

        if not isinstance(payload, dict) or not isinstance(payload.get('event'), dict):
            logger.error("Rejecting webhook without an event envelope: %r", payload)
            return {'error': 'Malformed webhook payload'}, 500

        event = payload['event']
        if not self.should_process(event):
            logger.info(
                "Ignoring webhook event %s for column %s",
                event.get('type'), event.get('columnId'),
            )
            return {'success': True}, 200

        item_id = event.get('pulseId')
        if item_id is None or item_id == '':
            logger.error("Rejecting column change without pulseId: %r", event)
            return {'error': 'Malformed webhook payload'}, 500
        item_id = str(item_id)

        logger.info(
            "Column change for item %s: %r -> %r", item_id,
            event.get('previousValue'), event.get('value'),
        )

        value = event.get('value')
        if not is_cleared_value(value) and parse_event_value(value) is None:
            logger.warning("Dropping webhook with invalid input value for item %s: %r", item_id, value)
            return {'success': True}, 200

        try:
            result = self.calculator.calculate_and_update_result(item_id, triggered_by='webhook')
        except Exception:
            logger.exception("Recalculation crashed for webhook item %s", item_id)
            return {'success': True}, 200

        if result.success:
            logger.info(
                "Recalculated item %s from webhook: %s * %s = %s",
                item_id, result.input_value, result.factor, result.result_value,
            )
        else:
            logger.error(
                "Webhook recalculation failed for item %s: %s",
                item_id, result.error.message if result.error else 'unknown error',
            )
        return {'success': True}, 200
