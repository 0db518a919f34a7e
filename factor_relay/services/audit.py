"""
AuditLog — append-only history of factor changes and recalculations.

Appends are best-effort: record() logs and swallows store failures so the
primary action it describes (a remote write, a factor update) is never
rolled back or blocked by the audit trail. History is therefore usually,
but not always, complete.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from factor_relay.errors import PersistenceError, ValidationError
from factor_relay.models.history import History, HISTORY_ACTIONS, TRIGGER_SOURCES

logger = logging.getLogger('services.audit')

DEFAULT_LIMIT = 50
MAX_LIMIT = 100


@dataclass
class HistoryEntry:
    item_id: str
    action: str
    new_value: float
    triggered_by: str
    old_value: Optional[float] = None
    input_value: Optional[float] = None
    result_value: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.action not in HISTORY_ACTIONS:
            raise ValidationError(f"Unknown history action: {self.action}")
        if self.triggered_by not in TRIGGER_SOURCES:
            raise ValidationError(f"Unknown trigger source: {self.triggered_by}")


class AuditLog:

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def record(self, entry: HistoryEntry) -> Optional[dict]:
        """Append `entry`. Returns the stored row as a dict, or None if the append failed."""
        session = self._session_factory()
        try:
            row = History(
                item_id=str(entry.item_id),
                action=entry.action,
                old_value=entry.old_value,
                new_value=entry.new_value,
                input_value=entry.input_value,
                result_value=entry.result_value,
                triggered_by=entry.triggered_by,
                meta=dict(entry.metadata),
            )
            session.add(row)
            session.commit()
            return row.to_dict()
        except SQLAlchemyError:
            session.rollback()
            logger.error(
                "Failed to record %s history for item %s", entry.action, entry.item_id,
                exc_info=True,
            )
            return None
        finally:
            session.close()

    def query(self, item_id: str, limit: int = DEFAULT_LIMIT) -> List[dict]:
        """Most recent entries for `item_id`, newest first, at most `limit` of them."""
        if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= MAX_LIMIT:
            raise ValidationError(
                f'Limit must be between 1 and {MAX_LIMIT}', details={'limit': limit},
            )

        session = self._session_factory()
        try:
            rows = (
                session.query(History)
                .filter_by(item_id=str(item_id))
                .order_by(History.created_at.desc(), History.id.desc())
                .limit(limit)
                .all()
            )
            return [row.to_dict() for row in rows]
        except SQLAlchemyError as e:
            logger.error("Failed to load history for item %s", item_id, exc_info=True)
            raise PersistenceError(f"Could not load history for item {item_id}") from e
        finally:
            session.close()
