"""API request/response schemas for booking and payment endpoints."""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from rentpay.common.records import Booking, BookingStatus, Breakdown, PaymentOrder, PaymentStatus


class BookingCreateRequest(BaseModel):
    """Booking request for one item and an inclusive date range."""

    item_id: str = Field(min_length=1)
    start_date: date
    end_date: date


class BookingStatusRequest(BaseModel):
    status: BookingStatus


class BookingResponse(BaseModel):
    booking_id: str
    item_id: str
    requester_id: str
    start_date: date
    end_date: date
    status: BookingStatus
    payment_status: PaymentStatus

    @classmethod
    def from_record(cls, booking: Booking) -> "BookingResponse":
        return cls(**booking.model_dump(include=set(cls.model_fields)))


class DateRange(BaseModel):
    start_date: date
    end_date: date


class ReservedRangesResponse(BaseModel):
    item_id: str
    ranges: list[DateRange]


class OrderCreateRequest(BaseModel):
    """Payment order request. `amount` is only checked against the computed total."""

    booking_id: str = Field(min_length=1)
    amount: int | None = Field(default=None, gt=0)
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    metadata: dict[str, str] = Field(default_factory=dict)


class OrderResponse(BaseModel):
    order_id: str
    booking_id: str
    attempt_number: int
    amount: int
    currency: str
    breakdown: Breakdown
    key_id: str

    @classmethod
    def from_record(cls, order: PaymentOrder, key_id: str) -> "OrderResponse":
        return cls(
            order_id=order.order_id,
            booking_id=order.booking_id,
            attempt_number=order.attempt_number,
            amount=order.amount_minor_units,
            currency=order.currency,
            breakdown=order.breakdown,
            key_id=key_id,
        )


class PaymentCallback(BaseModel):
    """Gateway callback payload; accepts the gateway's `razorpay_*` field names too."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(min_length=1, alias="razorpay_order_id")
    payment_id: str = Field(min_length=1, alias="razorpay_payment_id")
    signature: str = Field(min_length=1, alias="razorpay_signature")
    booking_id: str = Field(min_length=1)


class BookingListResponse(BaseModel):
    role: str
    bookings: list[BookingResponse]
