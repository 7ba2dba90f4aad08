"""In-memory booking store used by tests and local runs."""

import threading
from collections import defaultdict

from rentpay.common.errors import BookingNotFoundError, ConcurrentModificationError
from rentpay.common.records import (
    Booking,
    BookingStatus,
    BookingTransition,
    PaymentOrder,
    PaymentStatus,
    utcnow,
)
from rentpay.services.bookings.availability import find_conflicts
from rentpay.storage.base import BookingStore


class InMemoryBookingStore(BookingStore):
    """Dict-backed store with a lock per item for reservations.

    Records are frozen pydantic models, so handing them out is safe.
    """

    def __init__(self) -> None:
        self._bookings: dict[str, Booking] = {}
        self._by_item: dict[str, list[str]] = defaultdict(list)
        self._transitions: dict[str, list[BookingTransition]] = defaultdict(list)
        self._orders: dict[str, PaymentOrder] = {}
        self._orders_by_booking: dict[str, list[str]] = defaultdict(list)
        self._item_locks: dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def _item_lock(self, item_id: str) -> threading.Lock:
        with self._guard:
            lock = self._item_locks.get(item_id)
            if lock is None:
                lock = self._item_locks[item_id] = threading.Lock()
            return lock

    def reserve(self, booking: Booking) -> bool:
        with self._item_lock(booking.item_id):
            if find_conflicts(self.active_bookings(booking.item_id), booking.start_date, booking.end_date):
                return False
            with self._guard:
                self._bookings[booking.booking_id] = booking
                self._by_item[booking.item_id].append(booking.booking_id)
                self._transitions[booking.booking_id].append(
                    BookingTransition(
                        booking_id=booking.booking_id,
                        from_status=None,
                        to_status=booking.status,
                        payment_status=booking.payment_status,
                        reason="booking_created",
                        actor_id=booking.requester_id,
                    )
                )
            return True

    def get_booking(self, booking_id: str) -> Booking | None:
        with self._guard:
            return self._bookings.get(booking_id)

    def active_bookings(self, item_id: str) -> list[Booking]:
        with self._guard:
            bookings = [self._bookings[booking_id] for booking_id in self._by_item.get(item_id, [])]
        return [b for b in bookings if b.status in (BookingStatus.PENDING, BookingStatus.CONFIRMED)]

    def bookings_for_requester(self, requester_id: str) -> list[Booking]:
        with self._guard:
            bookings = [b for b in self._bookings.values() if b.requester_id == requester_id]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    def bookings_for_items(self, item_ids: list[str]) -> list[Booking]:
        with self._guard:
            bookings = [
                self._bookings[booking_id] for item_id in item_ids for booking_id in self._by_item.get(item_id, [])
            ]
        return sorted(bookings, key=lambda b: b.created_at, reverse=True)

    def compare_and_set(
        self,
        current: Booking,
        *,
        status: BookingStatus,
        payment_status: PaymentStatus,
        reason: str,
        actor_id: str | None = None,
    ) -> Booking:
        with self._guard:
            stored = self._bookings.get(current.booking_id)
            if stored is None:
                raise BookingNotFoundError(f"booking {current.booking_id} not found")
            if stored.version != current.version:
                raise ConcurrentModificationError(
                    f"optimistic concurrency conflict for booking {current.booking_id} "
                    f"(expected version {current.version})"
                )
            updated = stored.model_copy(
                update={
                    "status": status,
                    "payment_status": payment_status,
                    "version": stored.version + 1,
                    "updated_at": utcnow(),
                }
            )
            self._bookings[updated.booking_id] = updated
            self._transitions[updated.booking_id].append(
                BookingTransition(
                    booking_id=updated.booking_id,
                    from_status=stored.status,
                    to_status=status,
                    payment_status=payment_status,
                    reason=reason,
                    actor_id=actor_id,
                )
            )
            return updated

    def transitions(self, booking_id: str) -> list[BookingTransition]:
        with self._guard:
            return list(self._transitions.get(booking_id, []))

    def add_order(self, order: PaymentOrder) -> PaymentOrder:
        with self._guard:
            for existing_id in self._orders_by_booking.get(order.booking_id, []):
                if self._orders[existing_id].attempt_number == order.attempt_number:
                    raise ConcurrentModificationError(
                        f"payment attempt {order.attempt_number} already recorded for booking {order.booking_id}"
                    )
            self._orders[order.order_id] = order
            self._orders_by_booking[order.booking_id].append(order.order_id)
            return order

    def get_order(self, order_id: str) -> PaymentOrder | None:
        with self._guard:
            return self._orders.get(order_id)

    def latest_order(self, booking_id: str) -> PaymentOrder | None:
        with self._guard:
            orders = [self._orders[order_id] for order_id in self._orders_by_booking.get(booking_id, [])]
        if not orders:
            return None
        return max(orders, key=lambda order: order.attempt_number)
