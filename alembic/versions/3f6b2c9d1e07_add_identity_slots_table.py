"""add_identity_slots_table

Revision ID: 3f6b2c9d1e07
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f6b2c9d1e07'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Add identity_slots table."""

    # Per-browser session state, one row per (scope, slot key)
    op.create_table('identity_slots',
        sa.Column('scope_id', sa.String(length=64), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.Text(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('scope_id', 'key'),
        comment='Token and derived identity fields per browser session scope'
    )
    op.create_index('ix_identity_slots_scope_id', 'identity_slots', ['scope_id'], unique=False)


def downgrade() -> None:
    """Drop identity_slots table."""
    op.drop_index('ix_identity_slots_scope_id', table_name='identity_slots')
    op.drop_table('identity_slots')
