"""initial bookings schema

Revision ID: 0001_bookings
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


revision = "0001_bookings"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "bookings",
        sa.Column("booking_id", sa.String(), nullable=False),
        sa.Column("item_id", sa.String(), nullable=False),
        sa.Column("requester_id", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("payment_status", sa.String(), nullable=False),
        sa.Column("state_version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("booking_id"),
        sa.CheckConstraint("end_date >= start_date", name="ck_bookings_range"),
    )
    op.create_index("ix_bookings_item_status", "bookings", ["item_id", "status"])
    op.create_index("ix_bookings_requester_id", "bookings", ["requester_id"])

    op.create_table(
        "booking_transitions",
        sa.Column("transition_id", sa.String(), nullable=False),
        sa.Column("booking_id", sa.String(), nullable=False),
        sa.Column("from_status", sa.String(), nullable=True),
        sa.Column("to_status", sa.String(), nullable=False),
        sa.Column("payment_status", sa.String(), nullable=False),
        sa.Column("reason", sa.String(), nullable=False),
        sa.Column("actor_id", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.booking_id"]),
        sa.PrimaryKeyConstraint("transition_id"),
    )
    op.create_index("ix_booking_transitions_booking_id", "booking_transitions", ["booking_id"])

    op.create_table(
        "payment_orders",
        sa.Column("order_id", sa.String(), nullable=False),
        sa.Column("booking_id", sa.String(), nullable=False),
        sa.Column("attempt_number", sa.Integer(), nullable=False),
        sa.Column("amount_minor_units", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("rent_payment", sa.Integer(), nullable=False),
        sa.Column("platform_fee", sa.Integer(), nullable=False),
        sa.Column("safety_deposit", sa.Integer(), nullable=False),
        sa.Column("total", sa.Integer(), nullable=False),
        sa.Column("receipt", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["booking_id"], ["bookings.booking_id"]),
        sa.PrimaryKeyConstraint("order_id"),
        sa.UniqueConstraint("booking_id", "attempt_number", name="uq_payment_orders_attempt"),
    )
    op.create_index("ix_payment_orders_booking_id", "payment_orders", ["booking_id"])


def downgrade() -> None:
    op.drop_index("ix_payment_orders_booking_id", table_name="payment_orders")
    op.drop_table("payment_orders")
    op.drop_index("ix_booking_transitions_booking_id", table_name="booking_transitions")
    op.drop_table("booking_transitions")
    op.drop_index("ix_bookings_requester_id", table_name="bookings")
    op.drop_index("ix_bookings_item_status", table_name="bookings")
    op.drop_table("bookings")
