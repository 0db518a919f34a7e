"""
History model — append-only audit trail of factor changes and recalculations.

Rows are written once and never updated. `metadata` is an open map of
string keys to primitive values (the attribute is `meta` because
DeclarativeBase reserves `metadata`).
"""
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Float, Text, DateTime, JSON, Index

from factor_relay.database import Base

HISTORY_ACTIONS = ('factor_updated', 'recalculation', 'webhook_triggered')
TRIGGER_SOURCES = ('api', 'webhook', 'system')


def _utcnow():
    return datetime.now(timezone.utc)


class History(Base):
    __tablename__ = 'history'
    __table_args__ = (
        Index('ix_history_item_id_created_at', 'item_id', 'created_at'),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    item_id = Column(Text, nullable=False, index=True)
    action = Column(Text, nullable=False, index=True)
    old_value = Column(Float, nullable=True)
    new_value = Column(Float, nullable=False)
    input_value = Column(Float, nullable=True)
    result_value = Column(Float, nullable=True)
    triggered_by = Column(Text, nullable=False, index=True)
    meta = Column('metadata', JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'item_id': self.item_id,
            'action': self.action,
            'old_value': self.old_value,
            'new_value': self.new_value,
            'input_value': self.input_value,
            'result_value': self.result_value,
            'triggered_by': self.triggered_by,
            'metadata': self.meta or {},
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
