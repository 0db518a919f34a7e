"""Create factors and history tables

Revision ID: 3f1a9c2d7e54
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f1a9c2d7e54'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('factors',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('item_id', sa.Text(), nullable=False),
        sa.Column('factor', sa.Float(), nullable=False, server_default=sa.text('1')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=True),
        sa.CheckConstraint('factor >= 0', name='ck_factors_factor_non_negative'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_factors_item_id', 'factors', ['item_id'], unique=True)

    # Append-only audit trail; read newest-first per item
    op.create_table('history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('item_id', sa.Text(), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('old_value', sa.Float(), nullable=True),
        sa.Column('new_value', sa.Float(), nullable=False),
        sa.Column('input_value', sa.Float(), nullable=True),
        sa.Column('result_value', sa.Float(), nullable=True),
        sa.Column('triggered_by', sa.Text(), nullable=False),
        sa.Column('metadata', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_history_item_id', 'history', ['item_id'])
    op.create_index('ix_history_action', 'history', ['action'])
    op.create_index('ix_history_triggered_by', 'history', ['triggered_by'])
    op.create_index('ix_history_item_id_created_at', 'history', ['item_id', 'created_at'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_history_item_id_created_at', 'history')
    op.drop_index('ix_history_triggered_by', 'history')
    op.drop_index('ix_history_action', 'history')
    op.drop_index('ix_history_item_id', 'history')
    op.drop_table('history')
    op.drop_index('ix_factors_item_id', 'factors')
    op.drop_table('factors')
