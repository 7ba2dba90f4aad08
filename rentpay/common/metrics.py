"""Prometheus metric definitions for bookings and payments."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


bookings_created_total = Counter("bookings_created_total", "Total bookings created", ["service"])
booking_conflicts_total = Counter(
    "booking_conflicts_total",
    "Booking requests rejected because the range was already reserved",
    ["service"],
)
booking_transitions_total = Counter(
    "booking_transitions_total",
    "Booking status/payment transitions applied",
    ["service", "from_status", "to_status"],
)
concurrent_modifications_total = Counter(
    "concurrent_modifications_total",
    "Compare-and-swap writes lost to a concurrent writer",
    ["service", "operation"],
)
payment_orders_total = Counter(
    "payment_orders_total",
    "Payment order attempts by outcome",
    ["service", "result"],
)
payment_verifications_total = Counter(
    "payment_verifications_total",
    "Payment callback verifications by outcome",
    ["service", "result"],
)
gateway_latency_seconds = Histogram(
    "gateway_latency_seconds",
    "Latency of outbound payment gateway calls",
    ["service", "operation"],
)
http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
