"""Booking lifecycle logic.

Owns the booking state machine: creation with per-item overlap admission,
owner/requester driven status transitions, and the payment-driven
`mark_paid` step. Every write after creation is compare-and-swap on the
booking version.
"""

from datetime import date
from uuid import uuid4

from rentpay.common.errors import (
    BookingNotFoundError,
    ConcurrentModificationError,
    ForbiddenError,
    InvalidTransitionError,
    RangeUnavailableError,
    SelfBookingForbiddenError,
    ValidationError,
)
from rentpay.common.logging import booking_id_ctx, logger
from rentpay.common.metrics import (
    booking_conflicts_total,
    booking_transitions_total,
    bookings_created_total,
    concurrent_modifications_total,
)
from rentpay.common.records import Booking, BookingStatus, PaymentStatus
from rentpay.common.state_machine import validate_payment_transition, validate_transition
from rentpay.services.bookings.availability import validate_range
from rentpay.storage.base import BookingStore

# Actor id used by schedulers that complete bookings after the rental period.
SYSTEM_ACTOR = "system"


class BookingService:
    """Creates bookings and applies validated status/payment transitions."""

    def __init__(self, store: BookingStore, catalog, service_name: str = "bookings") -> None:
        self.store = store
        self.catalog = catalog
        self.service_name = service_name

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.store.get_booking(booking_id)
        if booking is None:
            raise BookingNotFoundError(f"booking {booking_id} not found")
        return booking

    def reserved_ranges(self, item_id: str) -> list[tuple[date, date]]:
        """Inclusive ranges currently held by pending or confirmed bookings."""

        return sorted((b.start_date, b.end_date) for b in self.store.active_bookings(item_id))

    def list_bookings(self, user_id: str, role: str = "renter") -> list[Booking]:
        """Bookings the user requested (`renter`) or received on their items (`owner`), newest first."""

        if role == "owner":
            item_ids = [item.item_id for item in self.catalog.items_for_owner(user_id)]
            return self.store.bookings_for_items(item_ids)
        if role == "renter":
            return self.store.bookings_for_requester(user_id)
        raise ValidationError(f"unknown booking role {role}")

    def create_booking(self, item_id: str, requester_id: str, start: date, end: date) -> Booking:
        """Reserve `[start, end]` for the requester or fail without side effects."""

        validate_range(start, end)
        item = self.catalog.get_item(item_id)
        if item.owner_id == requester_id:
            raise SelfBookingForbiddenError("cannot book your own item")

        booking = Booking(
            booking_id=str(uuid4()),
            item_id=item_id,
            requester_id=requester_id,
            start_date=start,
            end_date=end,
        )
        if not self.store.reserve(booking):
            booking_conflicts_total.labels(service=self.service_name).inc()
            logger.info(
                "booking_rejected_overlap item_id=%s start=%s end=%s",
                item_id,
                start.isoformat(),
                end.isoformat(),
            )
            raise RangeUnavailableError("item is not available for selected dates")

        booking_id_ctx.set(booking.booking_id)
        bookings_created_total.labels(service=self.service_name).inc()
        logger.info("booking_created booking_id=%s item_id=%s", booking.booking_id, item_id)
        return booking

    def _authorize(self, booking: Booking, owner_id: str, actor_id: str, new_status: BookingStatus) -> None:
        """Check who may drive a given transition.

        pending -> confirmed/rejected: owner only.
        confirmed -> cancelled: owner or requester.
        confirmed -> completed: owner or the system actor.
        """

        is_owner = actor_id == owner_id
        if new_status in (BookingStatus.CONFIRMED, BookingStatus.REJECTED):
            allowed = is_owner
        elif new_status == BookingStatus.CANCELLED:
            allowed = is_owner or actor_id == booking.requester_id
        elif new_status == BookingStatus.COMPLETED:
            allowed = is_owner or actor_id == SYSTEM_ACTOR
        else:
            allowed = False
        if not allowed:
            raise ForbiddenError(f"actor {actor_id} may not move booking to {new_status.value}")

    def _write(
        self,
        booking: Booking,
        status: BookingStatus,
        payment_status: PaymentStatus,
        reason: str,
        actor_id: str | None,
    ) -> Booking:
        try:
            updated = self.store.compare_and_set(
                booking,
                status=status,
                payment_status=payment_status,
                reason=reason,
                actor_id=actor_id,
            )
        except ConcurrentModificationError:
            concurrent_modifications_total.labels(service=self.service_name, operation=reason).inc()
            logger.warning("booking_write_conflict booking_id=%s reason=%s", booking.booking_id, reason)
            raise
        booking_transitions_total.labels(
            service=self.service_name,
            from_status=booking.status.value,
            to_status=status.value,
        ).inc()
        return updated

    def transition_status(self, booking_id: str, actor_id: str, new_status: BookingStatus | str) -> Booking:
        """Apply one legal, authorized status change."""

        new_status = BookingStatus(new_status)
        booking = self.get_booking(booking_id)
        booking_id_ctx.set(booking_id)
        item = self.catalog.get_item(booking.item_id)
        if actor_id not in (item.owner_id, booking.requester_id, SYSTEM_ACTOR):
            raise ForbiddenError(f"actor {actor_id} is not a party to booking {booking_id}")

        validate_transition(booking.status.value, new_status.value)
        self._authorize(booking, item.owner_id, actor_id, new_status)
        updated = self._write(
            booking,
            new_status,
            booking.payment_status,
            reason=f"status_{new_status.value}",
            actor_id=actor_id,
        )
        logger.info(
            "booking_status_changed booking_id=%s from=%s to=%s actor_id=%s",
            booking_id,
            booking.status.value,
            new_status.value,
            actor_id,
        )
        return updated

    def mark_paid(self, booking_id: str) -> Booking:
        """Record a verified payment; a pending booking is confirmed in the same write.

        Duplicate gateway callbacks land here too, so an already-paid booking is
        returned unchanged.
        """

        booking = self.get_booking(booking_id)
        booking_id_ctx.set(booking_id)
        if booking.payment_status == PaymentStatus.PAID:
            logger.info("mark_paid_noop booking_id=%s already paid", booking_id)
            return booking

        validate_payment_transition(booking.payment_status.value, PaymentStatus.PAID.value)
        # Payment implies acceptance; an owner-confirmed booking stays confirmed.
        if booking.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED):
            new_status = BookingStatus.CONFIRMED
        else:
            raise InvalidTransitionError(
                f"cannot record payment for booking in status {booking.status.value}"
            )
        try:
            updated = self._write(booking, new_status, PaymentStatus.PAID, reason="payment_verified", actor_id=None)
        except ConcurrentModificationError:
            # A racing duplicate callback may have recorded the payment first.
            current = self.get_booking(booking_id)
            if current.payment_status == PaymentStatus.PAID:
                logger.info("mark_paid_noop booking_id=%s paid by concurrent callback", booking_id)
                return current
            raise
        logger.info("booking_paid booking_id=%s status=%s", booking_id, new_status.value)
        return updated
