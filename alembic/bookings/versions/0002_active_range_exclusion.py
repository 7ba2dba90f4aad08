"""exclude overlapping active bookings per item

Revision ID: 0002_active_range_exclusion
Revises: 0001_bookings
Create Date: 2026-10-18
"""

from alembic import op


revision = "0002_active_range_exclusion"
down_revision = "0001_bookings"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # btree_gist lets the text item_id take part in a GiST exclusion constraint.
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")
    op.execute(
        """
        ALTER TABLE bookings
        ADD CONSTRAINT ex_bookings_active_range
        EXCLUDE USING gist (
            item_id WITH =,
            daterange(start_date, end_date, '[]') WITH &&
        )
        WHERE (status IN ('pending', 'confirmed'))
        """
    )


def downgrade() -> None:
    op.execute("ALTER TABLE bookings DROP CONSTRAINT IF EXISTS ex_bookings_active_range")
