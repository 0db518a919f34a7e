"""
Factor model — one multiplier per board item, keyed by item_id.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime, CheckConstraint

from factor_relay.database import Base


def _utcnow():
    return datetime.now(timezone.utc)


class Factor(Base):
    __tablename__ = 'factors'
    __table_args__ = (
        CheckConstraint('factor >= 0', name='ck_factors_factor_non_negative'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Text, nullable=False, unique=True, index=True)
    factor = Column(Float, nullable=False, default=1.0)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def to_dict(self):
        return {
            'item_id': self.item_id,
            'factor': self.factor,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
