"""Booking database models.

This DB is the source of truth for booking state, its transition timeline and
the payment orders opened against each booking.
"""

from datetime import date, datetime
from uuid import uuid4

from sqlalchemy import CheckConstraint, Date, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from rentpay.common.db import Base
from rentpay.common.records import utcnow


class BookingRow(Base):
    """Current state of a booking aggregate."""

    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_item_status", "item_id", "status"),
        CheckConstraint("end_date >= start_date", name="ck_bookings_range"),
    )

    booking_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    item_id: Mapped[str] = mapped_column(String)
    requester_id: Mapped[str] = mapped_column(String, index=True)
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String)
    payment_status: Mapped[str] = mapped_column(String)
    state_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class BookingTransitionRow(Base):
    """Immutable audit trail of every status/payment change."""

    __tablename__ = "booking_transitions"

    transition_id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: str(uuid4()))
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.booking_id"), index=True)
    from_status: Mapped[str | None] = mapped_column(String, nullable=True)
    to_status: Mapped[str] = mapped_column(String)
    payment_status: Mapped[str] = mapped_column(String)
    reason: Mapped[str] = mapped_column(String)
    actor_id: Mapped[str | None] = mapped_column(String, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class PaymentOrderRow(Base):
    """One gateway order per payment attempt; never updated after insert."""

    __tablename__ = "payment_orders"
    __table_args__ = (UniqueConstraint("booking_id", "attempt_number", name="uq_payment_orders_attempt"),)

    order_id: Mapped[str] = mapped_column(String, primary_key=True)
    booking_id: Mapped[str] = mapped_column(ForeignKey("bookings.booking_id"), index=True)
    attempt_number: Mapped[int] = mapped_column(Integer)
    amount_minor_units: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(3))
    rent_payment: Mapped[int] = mapped_column(Integer)
    platform_fee: Mapped[int] = mapped_column(Integer)
    safety_deposit: Mapped[int] = mapped_column(Integer)
    total: Mapped[int] = mapped_column(Integer)
    receipt: Mapped[str] = mapped_column(String)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
