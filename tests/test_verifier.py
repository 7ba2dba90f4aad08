"""Callback signature verification and booking confirmation."""

import hashlib
import hmac
from datetime import date

import pytest

from rentpay.common.errors import InvalidSignatureError, OrderMismatchError
from rentpay.common.records import BookingStatus, PaymentStatus
from rentpay.services.payments.verifier import compute_signature, signature_matches

SECRET = "test-secret"
RENTER = "renter-1"


@pytest.fixture
def booking(bookings):
    return bookings.create_booking("item-1", RENTER, date(2024, 5, 1), date(2024, 5, 3))


@pytest.fixture
def order(payments, booking):
    return payments.create_order(booking.booking_id)


def test_signature_is_hmac_sha256_of_order_and_payment():
    expected = hmac.new(b"K", b"order_O|pay_P", hashlib.sha256).hexdigest()
    assert compute_signature("K", "order_O", "pay_P") == expected


def test_any_single_bit_flip_fails():
    signature = compute_signature(SECRET, "order_1", "pay_1")
    assert signature_matches(SECRET, "order_1", "pay_1", signature)
    for idx, char in enumerate(signature):
        for bit in (1, 2, 4):
            mutated = signature[:idx] + chr(ord(char) ^ bit) + signature[idx + 1 :]
            assert not signature_matches(SECRET, "order_1", "pay_1", mutated)


def test_valid_callback_confirms_and_pays(verifier, order, booking):
    signature = compute_signature(SECRET, order.order_id, "pay_1")

    confirmed = verifier.verify_and_confirm(order.order_id, "pay_1", signature, booking.booking_id)

    assert confirmed.status == BookingStatus.CONFIRMED
    assert confirmed.payment_status == PaymentStatus.PAID


def test_duplicate_callback_is_a_noop(verifier, order, booking):
    signature = compute_signature(SECRET, order.order_id, "pay_1")

    first = verifier.verify_and_confirm(order.order_id, "pay_1", signature, booking.booking_id)
    second = verifier.verify_and_confirm(order.order_id, "pay_1", signature, booking.booking_id)

    assert first == second


def test_bad_signature_leaves_booking_untouched(verifier, order, booking, store):
    signature = compute_signature("wrong-secret", order.order_id, "pay_1")

    with pytest.raises(InvalidSignatureError):
        verifier.verify_and_confirm(order.order_id, "pay_1", signature, booking.booking_id)

    assert store.get_booking(booking.booking_id) == booking
    assert len(store.transitions(booking.booking_id)) == 1


def test_signature_for_other_payment_id_fails(verifier, order, booking):
    signature = compute_signature(SECRET, order.order_id, "pay_1")
    with pytest.raises(InvalidSignatureError):
        verifier.verify_and_confirm(order.order_id, "pay_2", signature, booking.booking_id)


def test_stale_order_is_rejected(verifier, payments, order, booking):
    payments.create_order(booking.booking_id)
    signature = compute_signature(SECRET, order.order_id, "pay_1")

    with pytest.raises(OrderMismatchError):
        verifier.verify_and_confirm(order.order_id, "pay_1", signature, booking.booking_id)


def test_order_replayed_against_another_booking(verifier, bookings, order):
    other = bookings.create_booking("item-1", "renter-2", date(2024, 6, 1), date(2024, 6, 2))
    signature = compute_signature(SECRET, order.order_id, "pay_1")

    with pytest.raises(OrderMismatchError):
        verifier.verify_and_confirm(order.order_id, "pay_1", signature, other.booking_id)
    assert bookings.get_booking(other.booking_id).payment_status == PaymentStatus.UNPAID


def test_unknown_order(verifier, booking):
    signature = compute_signature(SECRET, "order_missing", "pay_1")
    with pytest.raises(OrderMismatchError):
        verifier.verify_and_confirm("order_missing", "pay_1", signature, booking.booking_id)
