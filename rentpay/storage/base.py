"""Storage interface shared by the durable and in-memory booking stores."""

from abc import ABC, abstractmethod

from rentpay.common.records import Booking, BookingStatus, BookingTransition, PaymentOrder, PaymentStatus


class BookingStore(ABC):
    """Persistence contract for bookings, their audit trail and payment orders.

    Implementations must make `reserve` atomic per item and `compare_and_set`
    conditional on the booking version read by the caller.
    """

    @abstractmethod
    def reserve(self, booking: Booking) -> bool:
        """Insert `booking` unless it overlaps an active booking of the same item.

        Returns False when the range is taken. The overlap check and the insert
        run inside one critical section for the item.
        """

    @abstractmethod
    def get_booking(self, booking_id: str) -> Booking | None: ...

    @abstractmethod
    def active_bookings(self, item_id: str) -> list[Booking]:
        """Bookings of the item that still hold their range (pending/confirmed)."""

    @abstractmethod
    def bookings_for_requester(self, requester_id: str) -> list[Booking]:
        """All bookings a user requested, newest first."""

    @abstractmethod
    def bookings_for_items(self, item_ids: list[str]) -> list[Booking]:
        """All bookings of the given items, newest first."""

    @abstractmethod
    def compare_and_set(
        self,
        current: Booking,
        *,
        status: BookingStatus,
        payment_status: PaymentStatus,
        reason: str,
        actor_id: str | None = None,
    ) -> Booking:
        """Write new status fields only if the stored version still equals `current.version`.

        Raises `ConcurrentModificationError` when another writer got there first.
        """

    @abstractmethod
    def transitions(self, booking_id: str) -> list[BookingTransition]: ...

    @abstractmethod
    def add_order(self, order: PaymentOrder) -> PaymentOrder:
        """Persist an order; a duplicate `(booking_id, attempt_number)` is a concurrent conflict."""

    @abstractmethod
    def get_order(self, order_id: str) -> PaymentOrder | None: ...

    @abstractmethod
    def latest_order(self, booking_id: str) -> PaymentOrder | None:
        """The highest-attempt order of a booking; earlier attempts count as abandoned."""
