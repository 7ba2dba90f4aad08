"""Calendar overlap checks for item bookings.

Date ranges are inclusive on both ends: a booking ending on day D conflicts
with one starting on day D (same-day handover is not allowed).
"""

from datetime import date, datetime
from typing import Iterable

from rentpay.common.errors import InvalidRangeError
from rentpay.common.records import Booking
from rentpay.common.state_machine import ACTIVE_STATUSES


def validate_range(start: date, end: date) -> None:
    """Reject anything that is not a pair of calendar dates with start <= end."""

    for value in (start, end):
        # `datetime` subclasses `date`; bookings carry no time of day.
        if not isinstance(value, date) or isinstance(value, datetime):
            raise InvalidRangeError(f"expected calendar date, got {value!r}")
    if start > end:
        raise InvalidRangeError(f"start {start.isoformat()} is after end {end.isoformat()}")


def ranges_overlap(start_a: date, end_a: date, start_b: date, end_b: date) -> bool:
    return start_a <= end_b and start_b <= end_a


def find_conflicts(
    bookings: Iterable[Booking],
    start: date,
    end: date,
    exclude_booking_id: str | None = None,
) -> list[Booking]:
    """Return active bookings whose range shares at least one day with [start, end]."""

    return [
        booking
        for booking in bookings
        if booking.status.value in ACTIVE_STATUSES
        and booking.booking_id != exclude_booking_id
        and ranges_overlap(booking.start_date, booking.end_date, start, end)
    ]


def is_admissible(store, item_id: str, start: date, end: date, exclude_booking_id: str | None = None) -> bool:
    """Check a candidate range against the item's current active bookings.

    This is a read-only answer for callers such as availability calendars.
    Booking creation does not rely on it; the store repeats the same check
    inside its per-item critical section.
    """

    validate_range(start, end)
    return not find_conflicts(store.active_bookings(item_id), start, end, exclude_booking_id)
