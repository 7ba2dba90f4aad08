"""Compute a gateway callback signature and optionally post it to the service.

Handy for exercising `/payments/verify` locally without a real checkout.
"""

import argparse
import json

import httpx

from rentpay.services.payments.verifier import compute_signature


def main() -> None:
    """CLI entrypoint for signing (and relaying) one payment callback."""

    parser = argparse.ArgumentParser(description="Sign a payment callback with the gateway key secret.")
    parser.add_argument("--secret", required=True)
    parser.add_argument("--order-id", required=True)
    parser.add_argument("--payment-id", required=True)
    parser.add_argument("--booking-id")
    parser.add_argument("--user-id", default="dev-user")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--send", action="store_true", help="POST the signed callback to /payments/verify")
    args = parser.parse_args()

    payload = {
        "razorpay_order_id": args.order_id,
        "razorpay_payment_id": args.payment_id,
        "razorpay_signature": compute_signature(args.secret, args.order_id, args.payment_id),
        "booking_id": args.booking_id,
    }
    if not args.send:
        print(json.dumps(payload, indent=2))
        return
    if not args.booking_id:
        parser.error("--booking-id is required with --send")

    resp = httpx.post(
        f"{args.base_url}/payments/verify",
        json=payload,
        headers={"x-user-id": args.user_id},
        timeout=10.0,
    )
    print(resp.status_code, json.dumps(resp.json(), indent=2))


if __name__ == "__main__":
    main()
