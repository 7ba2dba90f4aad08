"""Durable store behavior against SQLite databases."""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from decimal import Decimal

import pytest

from rentpay.catalog import InMemoryCatalog
from rentpay.common.db import Base, make_engine, make_session_factory
from rentpay.common.errors import ConcurrentModificationError, RangeUnavailableError
from rentpay.common.records import Booking, BookingStatus, Breakdown, Item, PaymentOrder, PaymentStatus, PriceUnit
from rentpay.services.bookings.service import BookingService
from rentpay.storage.sql import SqlBookingStore


@pytest.fixture
def sql_store():
    engine = make_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield SqlBookingStore(make_session_factory(engine))
    engine.dispose()


def _booking(booking_id, start, end, item_id="item-1"):
    return Booking(booking_id=booking_id, item_id=item_id, requester_id="renter-1", start_date=start, end_date=end)


def _order(order_id, booking_id, attempt):
    return PaymentOrder(
        order_id=order_id,
        booking_id=booking_id,
        attempt_number=attempt,
        amount_minor_units=54500,
        currency="INR",
        breakdown=Breakdown(rent_payment=300, platform_fee=45, safety_deposit=200, total=545),
        receipt=f"bk_{booking_id}_{attempt}",
    )


def test_reserve_rejects_overlap(sql_store):
    assert sql_store.reserve(_booking("a", date(2024, 5, 1), date(2024, 5, 5)))
    assert not sql_store.reserve(_booking("b", date(2024, 5, 5), date(2024, 5, 10)))
    assert sql_store.reserve(_booking("c", date(2024, 5, 6), date(2024, 5, 10)))
    assert sql_store.reserve(_booking("d", date(2024, 5, 1), date(2024, 5, 5), item_id="item-2"))

    assert [b.booking_id for b in sql_store.active_bookings("item-1")] == ["a", "c"]


def test_round_trip_booking(sql_store):
    booking = _booking("a", date(2024, 5, 1), date(2024, 5, 5))
    sql_store.reserve(booking)

    stored = sql_store.get_booking("a")
    assert stored.start_date == date(2024, 5, 1)
    assert stored.status == BookingStatus.PENDING
    assert stored.payment_status == PaymentStatus.UNPAID
    assert sql_store.get_booking("missing") is None


def test_compare_and_set_bumps_version_and_records_transition(sql_store):
    booking = _booking("a", date(2024, 5, 1), date(2024, 5, 5))
    sql_store.reserve(booking)

    updated = sql_store.compare_and_set(
        booking, status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.PAID, reason="payment_verified"
    )

    assert updated.version == 1
    assert sql_store.get_booking("a").status == BookingStatus.CONFIRMED
    assert [t.reason for t in sql_store.transitions("a")] == ["booking_created", "payment_verified"]
    with pytest.raises(ConcurrentModificationError):
        sql_store.compare_and_set(
            booking, status=BookingStatus.REJECTED, payment_status=PaymentStatus.UNPAID, reason="stale"
        )


def test_cancelled_booking_releases_range(sql_store):
    booking = _booking("a", date(2024, 5, 1), date(2024, 5, 5))
    sql_store.reserve(booking)
    confirmed = sql_store.compare_and_set(
        booking, status=BookingStatus.CONFIRMED, payment_status=PaymentStatus.UNPAID, reason="status_confirmed"
    )
    sql_store.compare_and_set(
        confirmed, status=BookingStatus.CANCELLED, payment_status=PaymentStatus.UNPAID, reason="status_cancelled"
    )

    assert sql_store.reserve(_booking("b", date(2024, 5, 1), date(2024, 5, 5)))


def test_orders_latest_attempt_and_duplicates(sql_store):
    sql_store.reserve(_booking("a", date(2024, 5, 1), date(2024, 5, 5)))
    sql_store.add_order(_order("order_1", "a", 1))
    sql_store.add_order(_order("order_2", "a", 2))

    assert sql_store.latest_order("a").order_id == "order_2"
    assert sql_store.get_order("order_1").breakdown.total == 545
    assert sql_store.latest_order("b") is None
    with pytest.raises(ConcurrentModificationError):
        sql_store.add_order(_order("order_3", "a", 2))


def test_booking_service_on_sql_store(sql_store):
    catalog = InMemoryCatalog(
        [Item(item_id="item-1", owner_id="owner-1", unit_price=Decimal("100"), price_unit=PriceUnit.DAY)]
    )
    service = BookingService(sql_store, catalog)

    booking = service.create_booking("item-1", "renter-1", date(2024, 5, 1), date(2024, 5, 3))
    paid = service.mark_paid(booking.booking_id)

    assert paid.status == BookingStatus.CONFIRMED
    assert service.mark_paid(booking.booking_id).version == paid.version
    assert service.reserved_ranges("item-1") == [(date(2024, 5, 1), date(2024, 5, 3))]


def test_file_backed_store_admits_one_of_concurrent_overlapping_requests(tmp_path):
    engine = make_engine(f"sqlite+pysqlite:///{tmp_path / 'rentpay.db'}")
    Base.metadata.create_all(engine)
    catalog = InMemoryCatalog(
        [Item(item_id="item-1", owner_id="owner-1", unit_price=Decimal("100"), price_unit=PriceUnit.DAY)]
    )
    service = BookingService(SqlBookingStore(make_session_factory(engine)), catalog)
    workers = 8

    for round_number in range(3):
        start = date(2024, 5 + round_number, 1)
        barrier = threading.Barrier(workers)

        def attempt(i, start=start, barrier=barrier):
            barrier.wait()
            try:
                service.create_booking("item-1", f"renter-{i}", start, start.replace(day=5))
                return "ok"
            except RangeUnavailableError:
                return "conflict"

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(attempt, range(workers)))

        assert results.count("ok") == 1
        assert results.count("conflict") == workers - 1
    assert len(service.reserved_ranges("item-1")) == 3
    engine.dispose()


def test_lists_bookings_by_requester_and_items(sql_store):
    sql_store.reserve(_booking("a", date(2024, 5, 1), date(2024, 5, 5)))
    sql_store.reserve(_booking("b", date(2024, 5, 1), date(2024, 5, 5), item_id="item-2"))
    sql_store.reserve(
        Booking(
            booking_id="c",
            item_id="item-3",
            requester_id="renter-2",
            start_date=date(2024, 5, 1),
            end_date=date(2024, 5, 5),
        )
    )

    assert {b.booking_id for b in sql_store.bookings_for_requester("renter-1")} == {"a", "b"}
    assert {b.booking_id for b in sql_store.bookings_for_items(["item-2", "item-3"])} == {"b", "c"}
    assert sql_store.bookings_for_items([]) == []
