"""exclude_overlapping_active_bookings

Revision ID: 9a8f1e2b4c63
Revises: 7c3e5a9d2f41
Create Date: 2026-10-20 10:05:52.630917

"""
from typing import Sequence, Union
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '9a8f1e2b4c63'
down_revision: Union[str, Sequence[str], None] = '7c3e5a9d2f41'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Two active bookings of one professional may never overlap, whatever their bounds
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute('CREATE EXTENSION IF NOT EXISTS btree_gist')
    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_active_overlap
        EXCLUDE USING gist (
            professional_id WITH =,
            tsrange(date + start_time, date + end_time) WITH &&
        )
        WHERE (status IN ('pending', 'confirmed', 'rescheduled'))
        """
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != 'postgresql':
        return

    op.execute('ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_active_overlap')
