"""Canonical typed records exchanged at the core boundary.

One record per entity; field-name normalization for external systems happens
in the collaborator adapters, never here.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class PriceUnit(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Item(BaseModel):
    """Catalog item as seen by pricing and booking authorization."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    owner_id: str
    unit_price: Decimal = Field(gt=0)
    price_unit: PriceUnit


class Booking(BaseModel):
    """Reservation of one item for an inclusive calendar-date range."""

    model_config = ConfigDict(frozen=True)

    booking_id: str
    item_id: str
    requester_id: str
    start_date: date
    end_date: date
    status: BookingStatus = BookingStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.UNPAID
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Breakdown(BaseModel):
    """Fee breakdown in whole currency units."""

    model_config = ConfigDict(frozen=True)

    rent_payment: int
    platform_fee: int
    safety_deposit: int
    total: int


class PaymentOrder(BaseModel):
    """Gateway-side order opened for one payment attempt of a booking."""

    model_config = ConfigDict(frozen=True)

    order_id: str
    booking_id: str
    attempt_number: int
    amount_minor_units: int
    currency: str
    breakdown: Breakdown
    receipt: str
    created_at: datetime = Field(default_factory=utcnow)


class BookingTransition(BaseModel):
    """Immutable audit entry for one status or payment change."""

    model_config = ConfigDict(frozen=True)

    booking_id: str
    from_status: BookingStatus | None
    to_status: BookingStatus
    payment_status: PaymentStatus
    reason: str
    actor_id: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
