"""Post an activation webhook to a running deployment.

Useful for replaying a Mollie callback by hand or exercising the legacy
customer-flag contract.
"""

import argparse
import asyncio

import httpx

WEBHOOK_PATH = "/subscription/recurring/payments/webhook"


async def send(base_url: str, payment_id: str | None, customer_id: str | None, success: bool) -> httpx.Response:
    """Send one webhook as form data (`id=`) or as legacy JSON."""

    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        if payment_id:
            return await client.post(WEBHOOK_PATH, data={"id": payment_id})
        return await client.post(WEBHOOK_PATH, json={"customerId": customer_id, "success": success})


def main() -> None:
    """Parse CLI args and send one webhook."""

    parser = argparse.ArgumentParser(description="Send a recurring-payment activation webhook.")
    parser.add_argument("--base-url", default="http://localhost:8000")
    parser.add_argument("--payment-id", default=None, help="Mollie payment id, sent as form data")
    parser.add_argument("--customer-id", default=None, help="Mollie customer id, sent as legacy JSON")
    parser.add_argument("--failed", action="store_true", help="Legacy JSON only: send success=false")
    args = parser.parse_args()

    if bool(args.payment_id) == bool(args.customer_id):
        raise SystemExit("Provide exactly one of --payment-id or --customer-id")

    resp = asyncio.run(send(args.base_url, args.payment_id, args.customer_id, not args.failed))
    print(f"status={resp.status_code} body={resp.text}")


if __name__ == "__main__":
    main()
