"""Gateway callback verification.

A callback is trusted only if its signature is the hex HMAC-SHA256 of
`"{order_id}|{payment_id}"` under the gateway key secret, and the order is the
latest attempt recorded for the booking it claims to pay for.
"""

import hashlib
import hmac

from rentpay.common.errors import InvalidSignatureError, OrderMismatchError
from rentpay.common.logging import booking_id_ctx, logger
from rentpay.common.metrics import payment_verifications_total
from rentpay.common.records import Booking
from rentpay.services.bookings.service import BookingService
from rentpay.storage.base import BookingStore


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    message = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, order_id: str, payment_id: str, signature: str) -> bool:
    expected = compute_signature(secret, order_id, payment_id)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))


class PaymentVerifier:
    """Checks callback authenticity and confirms the booking through `mark_paid`."""

    def __init__(
        self,
        store: BookingStore,
        bookings: BookingService,
        secret: str,
        service_name: str = "payments",
    ) -> None:
        self.store = store
        self.bookings = bookings
        self.secret = secret
        self.service_name = service_name

    def verify_and_confirm(self, order_id: str, payment_id: str, signature: str, booking_id: str) -> Booking:
        booking_id_ctx.set(booking_id)
        if not signature_matches(self.secret, order_id, payment_id, signature):
            payment_verifications_total.labels(service=self.service_name, result="invalid_signature").inc()
            logger.warning(
                "security_event=invalid_payment_signature booking_id=%s order_id=%s payment_id=%s",
                booking_id,
                order_id,
                payment_id,
            )
            raise InvalidSignatureError("invalid payment signature")

        order = self.store.get_order(order_id)
        latest = self.store.latest_order(booking_id)
        if order is None or order.booking_id != booking_id or latest is None or latest.order_id != order_id:
            payment_verifications_total.labels(service=self.service_name, result="order_mismatch").inc()
            logger.warning(
                "payment_order_mismatch booking_id=%s order_id=%s latest_order_id=%s",
                booking_id,
                order_id,
                latest.order_id if latest else None,
            )
            raise OrderMismatchError("order does not match the booking's current payment attempt")

        booking = self.bookings.mark_paid(booking_id)
        payment_verifications_total.labels(service=self.service_name, result="verified").inc()
        logger.info("payment_verified booking_id=%s order_id=%s payment_id=%s", booking_id, order_id, payment_id)
        return booking
