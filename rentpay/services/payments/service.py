"""Payment order creation for pending bookings.

The charged amount is always recomputed from the catalog price and the stored
booking range; a client-supplied amount is only compared, never used.
"""

from decimal import Decimal

from rentpay.common.errors import (
    AmountMismatchError,
    ForbiddenError,
    InvalidTransitionError,
    RentPayError,
    UnsupportedCurrencyError,
)
from rentpay.common.logging import booking_id_ctx, logger
from rentpay.common.metrics import payment_orders_total
from rentpay.common.records import BookingStatus, Breakdown, PaymentOrder, PaymentStatus
from rentpay.services.bookings.pricing import (
    DEFAULT_PLATFORM_FEE_RATE,
    DEFAULT_SAFETY_DEPOSIT,
    compute_breakdown,
    to_minor_units,
)
from rentpay.services.bookings.service import BookingService
from rentpay.storage.base import BookingStore

# Receipt ids are capped at 40 characters by the gateway.
MAX_RECEIPT_LENGTH = 40


def make_receipt(booking_id: str, attempt_number: int) -> str:
    return f"bk_{booking_id.replace('-', '')}_{attempt_number}"[:MAX_RECEIPT_LENGTH]


class PaymentOrderService:
    """Opens one gateway order per payment attempt and records it against the booking."""

    def __init__(
        self,
        store: BookingStore,
        bookings: BookingService,
        gateway,
        currency: str = "INR",
        minor_units: int = 100,
        platform_fee_rate: Decimal = DEFAULT_PLATFORM_FEE_RATE,
        safety_deposit: int = DEFAULT_SAFETY_DEPOSIT,
        service_name: str = "payments",
    ) -> None:
        self.store = store
        self.bookings = bookings
        self.gateway = gateway
        self.currency = currency.upper()
        self.minor_units = minor_units
        self.platform_fee_rate = platform_fee_rate
        self.safety_deposit = safety_deposit
        self.service_name = service_name

    def quote(self, booking_id: str) -> Breakdown:
        """Authoritative breakdown for a booking at call time."""

        booking = self.bookings.get_booking(booking_id)
        item = self.bookings.catalog.get_item(booking.item_id)
        return compute_breakdown(
            item.unit_price,
            item.price_unit,
            booking.start_date,
            booking.end_date,
            platform_fee_rate=self.platform_fee_rate,
            safety_deposit=self.safety_deposit,
        )

    def create_order(
        self,
        booking_id: str,
        amount_minor_units: int | None = None,
        currency: str | None = None,
        metadata: dict | None = None,
        actor_id: str | None = None,
    ) -> PaymentOrder:
        booking = self.bookings.get_booking(booking_id)
        booking_id_ctx.set(booking_id)
        if actor_id is not None and actor_id != booking.requester_id:
            raise ForbiddenError("only the requester may pay for a booking")
        if booking.status != BookingStatus.PENDING or booking.payment_status != PaymentStatus.UNPAID:
            raise InvalidTransitionError(
                f"booking is not awaiting payment (status={booking.status.value}, "
                f"payment_status={booking.payment_status.value})"
            )
        currency = (currency or self.currency).upper()
        if currency != self.currency:
            raise UnsupportedCurrencyError(f"only {self.currency} settlement is supported")

        breakdown = self.quote(booking_id)
        amount = to_minor_units(breakdown.total, self.minor_units)
        if amount_minor_units is not None and amount_minor_units != amount:
            payment_orders_total.labels(service=self.service_name, result="amount_mismatch").inc()
            logger.warning(
                "order_amount_mismatch booking_id=%s asserted=%s expected=%s",
                booking_id,
                amount_minor_units,
                amount,
            )
            raise AmountMismatchError("requested amount does not match the computed total")

        latest = self.store.latest_order(booking_id)
        attempt_number = latest.attempt_number + 1 if latest else 1
        receipt = make_receipt(booking_id, attempt_number)
        notes = {str(key): str(value) for key, value in (metadata or {}).items()}
        notes.update(
            {
                "booking_id": booking_id,
                "item_id": booking.item_id,
                "start_date": booking.start_date.isoformat(),
                "end_date": booking.end_date.isoformat(),
                "rent_payment": str(breakdown.rent_payment),
                "platform_fee": str(breakdown.platform_fee),
                "safety_deposit": str(breakdown.safety_deposit),
                "attempt_number": str(attempt_number),
            }
        )

        try:
            gateway_order = self.gateway.create_order(amount, currency, receipt, notes)
        except RentPayError as exc:
            payment_orders_total.labels(service=self.service_name, result=exc.code).inc()
            raise

        order = self.store.add_order(
            PaymentOrder(
                order_id=gateway_order.order_id,
                booking_id=booking_id,
                attempt_number=attempt_number,
                amount_minor_units=amount,
                currency=currency,
                breakdown=breakdown,
                receipt=receipt,
            )
        )
        payment_orders_total.labels(service=self.service_name, result="created").inc()
        logger.info(
            "payment_order_created booking_id=%s order_id=%s attempt=%s amount=%s",
            booking_id,
            order.order_id,
            attempt_number,
            amount,
        )
        return order
