"""
FactorStore — CRUD over the per-item multiplier.
"""
import logging
import math
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from factor_relay.errors import PersistenceError, ValidationError
from factor_relay.models.factor import Factor

logger = logging.getLogger('services.factors')


@dataclass(frozen=True)
class FactorChange:
    old_factor: Optional[float]
    new_factor: float


def validate_factor(value) -> float:
    """Return `value` as a float, or raise ValidationError if it is not a finite number >= 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError('Factor must be a non-negative number', details={'factor': value})
    value = float(value)
    if not math.isfinite(value) or value < 0:
        raise ValidationError('Factor must be a non-negative number', details={'factor': value})
    return value


class FactorStore:

    def __init__(self, session_factory):
        self._session_factory = session_factory

    def get(self, item_id: str) -> Optional[float]:
        session = self._session_factory()
        try:
            row = session.query(Factor).filter_by(item_id=str(item_id)).first()
            return row.factor if row is not None else None
        except SQLAlchemyError as e:
            logger.error("Failed to load factor for item %s", item_id, exc_info=True)
            raise PersistenceError(f"Could not load factor for item {item_id}") from e
        finally:
            session.close()

    def set(self, item_id: str, new_factor) -> FactorChange:
        """Upsert the factor. Negative values are rejected before touching the store."""
        new_factor = validate_factor(new_factor)

        session = self._session_factory()
        try:
            row = session.query(Factor).filter_by(item_id=str(item_id)).first()
            if row is None:
                old_factor = None
                session.add(Factor(item_id=str(item_id), factor=new_factor))
            else:
                old_factor = row.factor
                row.factor = new_factor
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Failed to store factor for item %s", item_id, exc_info=True)
            raise PersistenceError(f"Could not store factor for item {item_id}") from e
        finally:
            session.close()

        return FactorChange(old_factor=old_factor, new_factor=new_factor)
