"""Payment order creation: server-side amounts, preconditions, gateway failures."""

import json
from datetime import date

import httpx
import pytest

from rentpay.common.errors import (
    AmountMismatchError,
    ForbiddenError,
    GatewayTimeoutError,
    GatewayUnavailableError,
    InvalidTransitionError,
    UnsupportedCurrencyError,
)

RENTER = "renter-1"


@pytest.fixture
def booking(bookings):
    return bookings.create_booking("item-1", RENTER, date(2024, 5, 1), date(2024, 5, 3))


def test_order_amount_is_recomputed_in_minor_units(payments, booking, gateway_server, store):
    order = payments.create_order(booking.booking_id, actor_id=RENTER)

    assert order.amount_minor_units == 54500
    assert order.breakdown.total == 545
    assert order.currency == "INR"
    assert order.attempt_number == 1
    assert store.latest_order(booking.booking_id) == order

    sent = json.loads(gateway_server.requests[0].content)
    assert sent["amount"] == 54500
    assert sent["notes"]["booking_id"] == booking.booking_id
    assert sent["notes"]["platform_fee"] == "45"
    assert len(sent["receipt"]) <= 40
    assert gateway_server.requests[0].headers["authorization"].startswith("Basic ")


def test_client_amount_must_match(payments, booking, gateway_server):
    with pytest.raises(AmountMismatchError):
        payments.create_order(booking.booking_id, amount_minor_units=100)
    assert gateway_server.requests == []

    order = payments.create_order(booking.booking_id, amount_minor_units=54500)
    assert order.amount_minor_units == 54500


def test_metadata_cannot_override_breakdown(payments, booking, gateway_server):
    payments.create_order(booking.booking_id, metadata={"rent_payment": "1", "channel": "web"})

    notes = json.loads(gateway_server.requests[0].content)["notes"]
    assert notes["rent_payment"] == "300"
    assert notes["channel"] == "web"


def test_only_settlement_currency(payments, booking):
    with pytest.raises(UnsupportedCurrencyError):
        payments.create_order(booking.booking_id, currency="USD")
    assert payments.create_order(booking.booking_id, currency="inr").currency == "INR"


def test_only_requester_may_pay(payments, booking):
    with pytest.raises(ForbiddenError):
        payments.create_order(booking.booking_id, actor_id="someone-else")


def test_paid_booking_cannot_open_new_order(payments, bookings, booking):
    bookings.mark_paid(booking.booking_id)
    with pytest.raises(InvalidTransitionError):
        payments.create_order(booking.booking_id)


def test_retry_after_abandoned_order_gets_next_attempt(payments, booking, store):
    first = payments.create_order(booking.booking_id)
    second = payments.create_order(booking.booking_id)

    assert (first.attempt_number, second.attempt_number) == (1, 2)
    assert first.receipt != second.receipt
    assert store.latest_order(booking.booking_id).order_id == second.order_id


def test_gateway_timeout(payments, booking, gateway_server, store):
    gateway_server.failure = httpx.ReadTimeout("read timed out")

    with pytest.raises(GatewayTimeoutError):
        payments.create_order(booking.booking_id)
    assert store.latest_order(booking.booking_id) is None


def test_gateway_connection_failure(payments, booking, gateway_server):
    gateway_server.failure = httpx.ConnectError("connection refused")

    with pytest.raises(GatewayUnavailableError):
        payments.create_order(booking.booking_id)
    assert len(gateway_server.requests) == 1


def test_gateway_error_status(payments, booking, gateway_server, store):
    gateway_server.status_code = 502

    with pytest.raises(GatewayUnavailableError):
        payments.create_order(booking.booking_id)
    assert store.latest_order(booking.booking_id) is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>ok</html>"),
        httpx.Response(200, json=[1]),
        httpx.Response(200, json={"entity": "order"}),
        httpx.Response(200, json={"id": "order_1", "amount": None}),
        httpx.Response(200, json={"id": "order_1", "amount": "many"}),
    ],
)
def test_malformed_gateway_response_is_unavailable(payments, booking, gateway_server, store, response):
    gateway_server.response = response

    with pytest.raises(GatewayUnavailableError):
        payments.create_order(booking.booking_id)
    assert store.latest_order(booking.booking_id) is None
