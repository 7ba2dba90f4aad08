"""Outbound client for the payment gateway orders API (Razorpay-compatible).

Create-order is not idempotent on the gateway side, so it is attempted once per
call; retries are the caller's decision.
"""

import time

import httpx
from pydantic import BaseModel

from rentpay.common.errors import GatewayTimeoutError, GatewayUnavailableError
from rentpay.common.logging import logger
from rentpay.common.metrics import gateway_latency_seconds
from rentpay.common.tracing import tracer


class GatewayOrder(BaseModel):
    """Subset of the gateway's order response the core relies on."""

    order_id: str
    amount: int
    currency: str
    status: str = "created"


class RazorpayGateway:
    """Opens orders with HTTP basic auth (key id / key secret) and a bounded timeout."""

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        service_name: str = "payments",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.key_id = key_id
        self.key_secret = key_secret
        self.timeout = timeout
        self.transport = transport
        self.service_name = service_name

    def create_order(self, amount: int, currency: str, receipt: str, notes: dict[str, str]) -> GatewayOrder:
        body = {"amount": amount, "currency": currency, "receipt": receipt, "notes": notes}
        started = time.perf_counter()
        try:
            with tracer.start_as_current_span("gateway.create_order"):
                with httpx.Client(
                    timeout=self.timeout,
                    auth=(self.key_id, self.key_secret),
                    transport=self.transport,
                ) as client:
                    resp = client.post(f"{self.base_url}/orders", json=body)
        except httpx.TimeoutException as exc:
            logger.warning("gateway_timeout receipt=%s timeout_s=%s", receipt, self.timeout)
            raise GatewayTimeoutError(f"gateway did not answer within {self.timeout}s") from exc
        except httpx.HTTPError as exc:
            logger.warning("gateway_request_failed receipt=%s error=%s", receipt, exc)
            raise GatewayUnavailableError(f"gateway request failed: {exc}") from exc
        finally:
            gateway_latency_seconds.labels(service=self.service_name, operation="create_order").observe(
                max(0.0, time.perf_counter() - started)
            )

        if resp.status_code >= 400:
            logger.error("gateway_rejected_order receipt=%s status=%s", receipt, resp.status_code)
            raise GatewayUnavailableError(f"gateway rejected order (status={resp.status_code})")
        try:
            payload = resp.json()
            if not isinstance(payload, dict):
                raise ValueError("expected a JSON object")
            order_id = payload.get("id")
            if not isinstance(order_id, str) or not order_id:
                raise ValueError("missing order id")
            return GatewayOrder(
                order_id=order_id,
                amount=int(payload.get("amount", amount)),
                currency=str(payload.get("currency", currency)),
                status=str(payload.get("status", "created")),
            )
        except (ValueError, TypeError) as exc:
            logger.error("gateway_response_malformed receipt=%s error=%s", receipt, exc)
            raise GatewayUnavailableError(f"gateway order response malformed: {exc}") from exc
