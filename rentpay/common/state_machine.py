"""Booking state machine transitions enforced by the lifecycle manager."""

from rentpay.common.errors import InvalidTransitionError

ALLOWED_TRANSITIONS: dict[str, set[str]] = {
    "pending": {"confirmed", "rejected"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "rejected": set(),
    "cancelled": set(),
}

# Statuses that still hold their date range against new requests.
ACTIVE_STATUSES: frozenset[str] = frozenset({"pending", "confirmed"})

PAYMENT_TRANSITIONS: dict[str, set[str]] = {
    "unpaid": {"paid"},
    "paid": set(),
}


def validate_transition(current: str, new: str) -> None:
    """Raise when a status transition is not allowed by the state machine."""

    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Invalid transition: {current} -> {new}")


def validate_payment_transition(current: str, new: str) -> None:
    """Raise when a payment status would move backwards or sideways."""

    if new not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidTransitionError(f"Invalid payment transition: {current} -> {new}")
