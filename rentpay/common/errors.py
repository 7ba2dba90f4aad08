"""Typed failures raised by the booking and payment core.

Each category carries a `retryable` flag so callers can decide whether to
retry with fresh state or backoff.
"""


class RentPayError(Exception):
    """Base class for every failure surfaced by the core."""

    code = "internal_error"
    retryable = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(RentPayError):
    """Malformed or inadmissible input; never retried automatically."""

    code = "validation_error"


class InvalidRangeError(ValidationError):
    code = "invalid_range"


class AmountMismatchError(ValidationError):
    code = "amount_mismatch"


class UnsupportedCurrencyError(ValidationError):
    code = "unsupported_currency"


class NotFoundError(RentPayError):
    code = "not_found"


class ItemNotFoundError(NotFoundError):
    code = "item_not_found"


class BookingNotFoundError(NotFoundError):
    code = "booking_not_found"


class AuthorizationError(RentPayError):
    code = "forbidden"


class ForbiddenError(AuthorizationError):
    code = "forbidden"


class SelfBookingForbiddenError(AuthorizationError):
    code = "self_booking_forbidden"


class ConflictError(RentPayError):
    """State conflicts; the caller may retry after re-reading state."""

    code = "conflict"
    retryable = True


class RangeUnavailableError(ConflictError):
    code = "range_unavailable"


class InvalidTransitionError(ConflictError):
    code = "invalid_transition"
    retryable = False


class ConcurrentModificationError(ConflictError):
    code = "concurrent_modification"


class OrderMismatchError(ConflictError):
    code = "order_mismatch"
    retryable = False


class SecurityError(RentPayError):
    """Tamper signals; logged as security events and never retried as-is."""

    code = "security_error"


class InvalidSignatureError(SecurityError):
    code = "invalid_signature"


class TransientError(RentPayError):
    """Infrastructure failures with no partial state mutation."""

    code = "unavailable"
    retryable = True


class GatewayUnavailableError(TransientError):
    code = "gateway_unavailable"


class GatewayTimeoutError(TransientError):
    code = "gateway_timeout"


class CatalogUnavailableError(TransientError):
    code = "catalog_unavailable"


class StorageUnavailableError(TransientError):
    code = "storage_unavailable"
