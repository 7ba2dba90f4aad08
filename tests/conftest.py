"""Shared fixtures: in-memory store/catalog and a mock gateway transport."""

import json
import os

os.environ.setdefault("STORAGE_BACKEND", "memory")
os.environ.setdefault("CATALOG_BACKEND", "memory")
os.environ.setdefault("GATEWAY_KEY_ID", "rzp_test_key")
os.environ.setdefault("GATEWAY_KEY_SECRET", "test-secret")

from decimal import Decimal  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402

from rentpay.catalog import InMemoryCatalog  # noqa: E402
from rentpay.common.records import Item, PriceUnit  # noqa: E402
from rentpay.services.bookings.service import BookingService  # noqa: E402
from rentpay.services.payments.gateway import RazorpayGateway  # noqa: E402
from rentpay.services.payments.service import PaymentOrderService  # noqa: E402
from rentpay.services.payments.verifier import PaymentVerifier  # noqa: E402
from rentpay.storage.memory import InMemoryBookingStore  # noqa: E402

SECRET = "test-secret"
OWNER = "owner-1"
RENTER = "renter-1"


class FakeGatewayServer:
    """Records order requests and answers like the gateway orders API."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.failure: Exception | None = None
        self.status_code = 200
        self.response: httpx.Response | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.failure is not None:
            raise self.failure
        if self.response is not None:
            return self.response
        if self.status_code >= 400:
            return httpx.Response(self.status_code, json={"error": {"code": "SERVER_ERROR"}})
        payload = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": f"order_{len(self.requests)}",
                "entity": "order",
                "amount": payload["amount"],
                "currency": payload["currency"],
                "receipt": payload["receipt"],
                "status": "created",
            },
        )


@pytest.fixture
def item():
    return Item(item_id="item-1", owner_id=OWNER, unit_price=Decimal("100"), price_unit=PriceUnit.DAY)


@pytest.fixture
def catalog(item):
    return InMemoryCatalog(
        [
            item,
            Item(item_id="item-hourly", owner_id=OWNER, unit_price=Decimal("10"), price_unit=PriceUnit.HOUR),
        ]
    )


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def bookings(store, catalog):
    return BookingService(store, catalog)


@pytest.fixture
def gateway_server():
    return FakeGatewayServer()


@pytest.fixture
def gateway(gateway_server):
    return RazorpayGateway(
        "https://gateway.test/v1",
        "rzp_test_key",
        SECRET,
        timeout=1.0,
        transport=httpx.MockTransport(gateway_server.handler),
    )


@pytest.fixture
def payments(store, bookings, gateway):
    return PaymentOrderService(store, bookings, gateway, currency="INR", minor_units=100)


@pytest.fixture
def verifier(store, bookings):
    return PaymentVerifier(store, bookings, SECRET)
