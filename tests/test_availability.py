"""Overlap rules for inclusive calendar-date ranges."""

from datetime import date, datetime

import pytest

from rentpay.common.errors import InvalidRangeError
from rentpay.common.records import Booking, BookingStatus
from rentpay.services.bookings.availability import find_conflicts, is_admissible, ranges_overlap, validate_range


def _booking(booking_id, start, end, status=BookingStatus.PENDING, item_id="item-1"):
    return Booking(
        booking_id=booking_id,
        item_id=item_id,
        requester_id="renter-1",
        start_date=start,
        end_date=end,
        status=status,
    )


def test_shared_boundary_day_conflicts():
    assert ranges_overlap(date(2024, 5, 1), date(2024, 5, 5), date(2024, 5, 5), date(2024, 5, 10))


def test_adjacent_ranges_do_not_conflict():
    assert not ranges_overlap(date(2024, 5, 1), date(2024, 5, 5), date(2024, 5, 6), date(2024, 5, 10))


def test_containment_conflicts():
    assert ranges_overlap(date(2024, 5, 1), date(2024, 5, 31), date(2024, 5, 10), date(2024, 5, 12))


def test_only_pending_and_confirmed_bookings_block():
    existing = [
        _booking("a", date(2024, 5, 1), date(2024, 5, 5), BookingStatus.CANCELLED),
        _booking("b", date(2024, 5, 1), date(2024, 5, 5), BookingStatus.REJECTED),
        _booking("c", date(2024, 5, 1), date(2024, 5, 5), BookingStatus.COMPLETED),
        _booking("d", date(2024, 5, 4), date(2024, 5, 6), BookingStatus.CONFIRMED),
    ]
    conflicts = find_conflicts(existing, date(2024, 5, 2), date(2024, 5, 4))
    assert [b.booking_id for b in conflicts] == ["d"]


def test_excluded_booking_is_ignored():
    existing = [_booking("a", date(2024, 5, 1), date(2024, 5, 5))]
    assert find_conflicts(existing, date(2024, 5, 1), date(2024, 5, 5), exclude_booking_id="a") == []


def test_start_after_end_is_invalid():
    with pytest.raises(InvalidRangeError):
        validate_range(date(2024, 5, 3), date(2024, 5, 1))


def test_datetimes_are_not_calendar_dates():
    with pytest.raises(InvalidRangeError):
        validate_range(datetime(2024, 5, 1, 10), date(2024, 5, 3))


def test_is_admissible_reads_store(store):
    assert store.reserve(_booking("a", date(2024, 5, 1), date(2024, 5, 5)))
    assert not is_admissible(store, "item-1", date(2024, 5, 5), date(2024, 5, 10))
    assert is_admissible(store, "item-1", date(2024, 5, 6), date(2024, 5, 10))
    assert is_admissible(store, "item-2", date(2024, 5, 1), date(2024, 5, 5))
    assert is_admissible(store, "item-1", date(2024, 5, 1), date(2024, 5, 5), exclude_booking_id="a")
