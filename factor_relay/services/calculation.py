"""
Calculation orchestration: stored factor × live board input → board result.

One call to calculate_and_update_result() walks
factor lookup → input read → multiply → result write → audit, and always
leaves exactly one `recalculation` history entry behind, successful or not.
Remote calls are already retried by the client; a failure surfacing here is
treated as final.
"""
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from factor_relay.errors import (
    InvalidOrMissingInput,
    NoFactorConfigured,
    PersistenceError,
    RelayError,
    RemoteError,
    RemoteNotFound,
    RemoteWriteFailed,
    ValidationError,
)
from factor_relay.models.history import TRIGGER_SOURCES
from factor_relay.services.audit import AuditLog, HistoryEntry, DEFAULT_LIMIT
from factor_relay.services.factors import FactorStore, validate_factor
from factor_relay.services.monday import MondayClient, format_number

logger = logging.getLogger('services.calculation')


@dataclass
class CalculationResult:
    input_value: float
    factor: float
    result_value: float
    success: bool
    error: Optional[RelayError] = None

    def to_dict(self):
        return {
            'input_value': self.input_value,
            'factor': self.factor,
            'result_value': self.result_value,
            'success': self.success,
        }


@dataclass
class FactorUpdateResult:
    old_factor: Optional[float]
    new_factor: float
    success: bool
    error: Optional[RelayError] = None


def parse_input_value(text: Optional[str]) -> Optional[float]:
    """Board column text → float, or None when it is blank or not a finite number."""
    if text is None:
        return None
    try:
        value = float(str(text).strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _check_trigger(triggered_by):
    if triggered_by not in TRIGGER_SOURCES:
        raise ValidationError(f"Unknown trigger source: {triggered_by}")


class CalculationOrchestrator:

    def __init__(self, board: MondayClient, factors: FactorStore, audit: AuditLog,
                 input_column_id: str, result_column_id: str, board_id: Optional[str] = None):
        self.board = board
        self.factors = factors
        self.audit = audit
        self.input_column_id = input_column_id
        self.result_column_id = result_column_id
        self.board_id = board_id

    def calculate_and_update_result(self, item_id: str, triggered_by: str = 'api') -> CalculationResult:
        item_id = str(item_id)
        _check_trigger(triggered_by)
        input_value = None
        try:
            factor = self.factors.get(item_id)
            if factor is None:
                raise NoFactorConfigured(item_id)

            raw_input = self.board.fetch_column_value(item_id, self.input_column_id)
            input_value = parse_input_value(raw_input)
            if input_value is None:
                raise InvalidOrMissingInput(item_id, raw_input)

            result_value = input_value * factor
            if not math.isfinite(result_value):
                raise ValidationError(
                    f"Result for item {item_id} is not a finite number: {input_value!r} * {factor!r}",
                    details={'item_id': item_id, 'input_value': input_value, 'factor': factor},
                )

            try:
                acknowledged = self.board.write_column_value(
                    item_id, self.result_column_id, result_value, self.board_id,
                )
            except (RemoteError, RemoteNotFound) as e:
                raise RemoteWriteFailed(
                    f"Failed to update result column for item {item_id}: {e.message}",
                    details={'item_id': item_id, 'cause': e.code},
                ) from e
            if not acknowledged:
                raise RemoteWriteFailed(
                    f"Board did not acknowledge result update for item {item_id}",
                    details={'item_id': item_id},
                )
        except RelayError as e:
            logger.error(
                "Recalculation failed for item %s (%s): %s", item_id, e.code, e.message,
                extra={'item_id': item_id, 'triggered_by': triggered_by},
            )
            return self._fail(item_id, e, triggered_by, input_value)
        except Exception as e:
            logger.exception("Unexpected error recalculating item %s", item_id)
            return self._fail(item_id, RelayError(str(e)), triggered_by, input_value)

        self.audit.record(HistoryEntry(
            item_id=item_id,
            action='recalculation',
            new_value=result_value,
            input_value=input_value,
            result_value=result_value,
            triggered_by=triggered_by,
            metadata={
                'factor': factor,
                'calculation': f"{format_number(input_value)} * {format_number(factor)} = {format_number(result_value)}",
            },
        ))
        logger.info(
            "Recalculated item %s: %s * %s = %s (%s)",
            item_id, input_value, factor, result_value, triggered_by,
        )
        return CalculationResult(
            input_value=input_value, factor=factor, result_value=result_value, success=True,
        )

    def _fail(self, item_id, error: RelayError, triggered_by, input_value=None) -> CalculationResult:
        self.audit.record(HistoryEntry(
            item_id=item_id,
            action='recalculation',
            new_value=0.0,
            input_value=input_value,
            triggered_by=triggered_by,
            metadata={
                'error': error.message,
                'error_type': type(error).__name__,
            },
        ))
        return CalculationResult(
            input_value=0.0, factor=0.0, result_value=0.0, success=False, error=error,
        )

    def update_factor(self, item_id: str, new_factor, triggered_by: str = 'api') -> FactorUpdateResult:
        """
        Store a new factor and append a `factor_updated` entry.

        Negative factors raise ValidationError before anything is written.
        A store failure returns success=False and appends nothing, so a
        `factor_updated` entry always describes a change that persisted.
        """
        item_id = str(item_id)
        _check_trigger(triggered_by)
        new_factor = validate_factor(new_factor)

        try:
            change = self.factors.set(item_id, new_factor)
        except PersistenceError as e:
            logger.error("Factor update failed for item %s: %s", item_id, e.message)
            return FactorUpdateResult(old_factor=None, new_factor=0.0, success=False, error=e)

        if change.old_factor is None:
            note = f"New factor: {format_number(change.new_factor)}"
        else:
            note = f"{format_number(change.old_factor)} → {format_number(change.new_factor)}"
        self.audit.record(HistoryEntry(
            item_id=item_id,
            action='factor_updated',
            old_value=change.old_factor,
            new_value=change.new_factor,
            triggered_by=triggered_by,
            metadata={'change': note},
        ))
        logger.info("Factor for item %s set to %s (was %s)", item_id, change.new_factor, change.old_factor)
        return FactorUpdateResult(old_factor=change.old_factor, new_factor=change.new_factor, success=True)

    def get_factor(self, item_id: str) -> Optional[float]:
        return self.factors.get(str(item_id))

    def get_history(self, item_id: str, limit: int = DEFAULT_LIMIT) -> List[dict]:
        return self.audit.query(str(item_id), limit)

    def get_all_items(self, board_id: Optional[str] = None) -> List[dict]:
        """Items on the board as plain dicts; [] when the board can't be read."""
        try:
            items = self.board.fetch_board_items(board_id or self.board_id)
        except RelayError as e:
            logger.error("Failed to list board items: %s", e.message)
            return []
        return [item.to_dict() for item in items]
