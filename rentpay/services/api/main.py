"""HTTP surface for booking lifecycle and payment settlement.

Identity is resolved upstream; the authenticated user arrives in the
`x-user-id` header and is trusted as-is.
"""

from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from rentpay.catalog import build_catalog
from rentpay.common.config import settings
from rentpay.common.errors import (
    AuthorizationError,
    ConflictError,
    GatewayTimeoutError,
    NotFoundError,
    RentPayError,
    SecurityError,
    TransientError,
    ValidationError,
)
from rentpay.common.logging import configure_logging, logger, request_id_ctx
from rentpay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from rentpay.common.startup import log_startup_config
from rentpay.common.tracing import instrument_app, setup_tracing
from rentpay.services.api.schemas import (
    BookingCreateRequest,
    BookingListResponse,
    BookingResponse,
    BookingStatusRequest,
    DateRange,
    OrderCreateRequest,
    OrderResponse,
    PaymentCallback,
    ReservedRangesResponse,
)
from rentpay.services.bookings.service import BookingService
from rentpay.services.payments.gateway import RazorpayGateway
from rentpay.services.payments.service import PaymentOrderService
from rentpay.services.payments.verifier import PaymentVerifier
from rentpay.storage.factory import build_store

configure_logging()
setup_tracing(settings.service_name)
log_startup_config(
    settings.service_name,
    [
        "SERVICE_NAME",
        "STORAGE_BACKEND",
        "DATABASE_URL",
        "CATALOG_BACKEND",
        "CATALOG_URL",
        "GATEWAY_URL",
        "GATEWAY_KEY_SECRET",
        "SETTLEMENT_CURRENCY",
        "PLATFORM_FEE_RATE",
        "SAFETY_DEPOSIT",
    ],
)
if not settings.gateway_key_secret:
    logger.warning("GATEWAY_KEY_SECRET is empty; every payment callback will fail verification")

store = build_store(settings)
bookings = BookingService(store, build_catalog(settings), service_name=settings.service_name)
payments = PaymentOrderService(
    store,
    bookings,
    RazorpayGateway(
        settings.gateway_url,
        settings.gateway_key_id,
        settings.gateway_key_secret,
        timeout=settings.gateway_timeout_seconds,
        service_name=settings.service_name,
    ),
    currency=settings.settlement_currency,
    minor_units=settings.currency_minor_units,
    platform_fee_rate=settings.platform_fee_rate,
    safety_deposit=settings.safety_deposit,
    service_name=settings.service_name,
)
verifier = PaymentVerifier(store, bookings, settings.gateway_key_secret, service_name=settings.service_name)

app = FastAPI(title="RentPay Bookings")
app.state.bookings = bookings
app.state.payments = payments
app.state.verifier = verifier
app.state.gateway_key_id = settings.gateway_key_id
instrument_app(app)


def _status_for(exc: RentPayError) -> int:
    """Map core error categories to HTTP status codes."""

    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, AuthorizationError):
        return 403
    if isinstance(exc, ConflictError):
        return 409
    if isinstance(exc, SecurityError):
        return 400
    if isinstance(exc, GatewayTimeoutError):
        return 504
    if isinstance(exc, TransientError):
        return 503
    return 500


@app.exception_handler(RentPayError)
async def rentpay_error_handler(_: Request, exc: RentPayError):
    return JSONResponse(
        status_code=_status_for(exc),
        content={"error": exc.code, "detail": exc.message, "retryable": exc.retryable},
    )


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Record request count and latency; bind a request id for log correlation."""

    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    request_id_ctx.set(request.headers.get("x-request-id") or str(uuid4()))
    try:
        response = await call_next(request)
        status_code = response.status_code
        route_obj = request.scope.get("route")
        if route_obj is not None and getattr(route_obj, "path", None):
            route = route_obj.path
        return response
    finally:
        elapsed = max(0.0, perf_counter() - start)
        http_request_duration_seconds.labels(
            service=settings.service_name,
            route=route,
            method=method,
        ).observe(elapsed)
        http_requests_total.labels(
            service=settings.service_name,
            route=route,
            method=method,
            status_code=str(status_code),
        ).inc()


def require_user(x_user_id: str | None) -> str:
    """Reject calls that reach the core without an authenticated user."""

    if not x_user_id:
        raise HTTPException(status_code=401, detail="missing authenticated user")
    return x_user_id


@app.post("/bookings", response_model=BookingResponse, status_code=201)
def create_booking(req: BookingCreateRequest, request: Request, x_user_id: str | None = Header(default=None)):
    """Reserve an item for `[start_date, end_date]` as `pending/unpaid`."""

    user_id = require_user(x_user_id)
    booking = request.app.state.bookings.create_booking(req.item_id, user_id, req.start_date, req.end_date)
    return BookingResponse.from_record(booking)


@app.get("/bookings", response_model=BookingListResponse)
def list_bookings(
    request: Request,
    role: str = Query(default="renter", alias="type", pattern="^(renter|owner)$"),
    x_user_id: str | None = Header(default=None),
):
    """Bookings the caller made (`type=renter`) or received as item owner (`type=owner`)."""

    user_id = require_user(x_user_id)
    found = request.app.state.bookings.list_bookings(user_id, role)
    return BookingListResponse(role=role, bookings=[BookingResponse.from_record(b) for b in found])


@app.get("/bookings/{booking_id}", response_model=BookingResponse)
def get_booking(booking_id: str, request: Request, x_user_id: str | None = Header(default=None)):
    user_id = require_user(x_user_id)
    service = request.app.state.bookings
    booking = service.get_booking(booking_id)
    if user_id not in (booking.requester_id, service.catalog.get_item(booking.item_id).owner_id):
        raise HTTPException(status_code=403, detail="not a party to this booking")
    return BookingResponse.from_record(booking)


@app.post("/bookings/{booking_id}/status", response_model=BookingResponse)
def change_booking_status(
    booking_id: str,
    req: BookingStatusRequest,
    request: Request,
    x_user_id: str | None = Header(default=None),
):
    """Owner accept/reject, cancellation, or completion."""

    user_id = require_user(x_user_id)
    booking = request.app.state.bookings.transition_status(booking_id, user_id, req.status)
    return BookingResponse.from_record(booking)


@app.get("/items/{item_id}/reserved-ranges", response_model=ReservedRangesResponse)
def reserved_ranges(item_id: str, request: Request):
    """Date ranges an availability calendar should show as taken."""

    ranges = request.app.state.bookings.reserved_ranges(item_id)
    return ReservedRangesResponse(
        item_id=item_id,
        ranges=[DateRange(start_date=start, end_date=end) for start, end in ranges],
    )


@app.post("/payments/orders", response_model=OrderResponse)
def create_payment_order(req: OrderCreateRequest, request: Request, x_user_id: str | None = Header(default=None)):
    """Open a gateway order for the server-computed total of a pending booking."""

    user_id = require_user(x_user_id)
    order = request.app.state.payments.create_order(
        req.booking_id,
        amount_minor_units=req.amount,
        currency=req.currency,
        metadata=req.metadata,
        actor_id=user_id,
    )
    return OrderResponse.from_record(order, request.app.state.gateway_key_id)


@app.post("/payments/verify", response_model=BookingResponse)
def verify_payment(req: PaymentCallback, request: Request, x_user_id: str | None = Header(default=None)):
    """Client-relayed checkout callback."""

    require_user(x_user_id)
    booking = request.app.state.verifier.verify_and_confirm(
        req.order_id, req.payment_id, req.signature, req.booking_id
    )
    return BookingResponse.from_record(booking)


@app.post("/payments/webhook", response_model=BookingResponse)
def payment_webhook(req: PaymentCallback, request: Request):
    """Server-to-server callback from the gateway; the signature is the only credential."""

    booking = request.app.state.verifier.verify_and_confirm(
        req.order_id, req.payment_id, req.signature, req.booking_id
    )
    return BookingResponse.from_record(booking)


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}
