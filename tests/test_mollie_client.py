"""Mollie client request shapes and error translation against a mock transport."""

import json

import httpx
import pytest

from conftest import make_settings
from subbridge.clients.mollie import MollieClient
from subbridge.common.errors import ConfigurationError, UpstreamError


def recording_transport(responses: dict[tuple[str, str], httpx.Response], seen: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return responses[(request.method, request.url.path)]

    return httpx.MockTransport(handler)


async def test_create_customer_posts_email_and_name():
    seen: list[httpx.Request] = []
    transport = recording_transport(
        {("POST", "/v2/customers"): httpx.Response(201, json={"resource": "customer", "id": "cst_8wmqcHMN4U"})},
        seen,
    )
    client = MollieClient(make_settings(), transport=transport)

    customer = await client.create_customer("jane@example.com", "jane")

    assert customer.id == "cst_8wmqcHMN4U"
    assert seen[0].headers["Authorization"] == "Bearer test_key"
    assert json.loads(seen[0].content) == {"email": "jane@example.com", "name": "jane"}


async def test_create_first_payment_exposes_checkout_url():
    seen: list[httpx.Request] = []
    body = {
        "id": "tr_WDqYK6vllg",
        "status": "open",
        "sequenceType": "first",
        "customerId": "cst_8wmqcHMN4U",
        "_links": {"checkout": {"href": "https://www.mollie.com/checkout/select-method/7UhSN1zuXS"}},
    }
    transport = recording_transport({("POST", "/v2/payments"): httpx.Response(201, json=body)}, seen)
    client = MollieClient(make_settings(), transport=transport)

    payment = await client.create_payment(
        "cst_8wmqcHMN4U",
        "0.01",
        description="Subscription sign-up",
        webhook_url="https://bridge.test/hook",
    )

    assert payment.checkout_url == "https://www.mollie.com/checkout/select-method/7UhSN1zuXS"
    assert json.loads(seen[0].content) == {
        "amount": {"currency": "EUR", "value": "0.01"},
        "description": "Subscription sign-up",
        "customerId": "cst_8wmqcHMN4U",
        "sequenceType": "first",
        "webhookUrl": "https://bridge.test/hook",
    }


async def test_get_payment_reads_status_and_customer():
    seen: list[httpx.Request] = []
    transport = recording_transport(
        {
            ("GET", "/v2/payments/tr_WDqYK6vllg"): httpx.Response(
                200, json={"id": "tr_WDqYK6vllg", "status": "paid", "customerId": "cst_8wmqcHMN4U"}
            )
        },
        seen,
    )
    client = MollieClient(make_settings(), transport=transport)

    payment = await client.get_payment("tr_WDqYK6vllg")

    assert payment.status == "paid"
    assert payment.customer_id == "cst_8wmqcHMN4U"
    assert payment.checkout_url is None


async def test_create_subscription_posts_schedule():
    seen: list[httpx.Request] = []
    transport = recording_transport(
        {
            ("POST", "/v2/customers/cst_8wmqcHMN4U/subscriptions"): httpx.Response(
                201,
                json={"id": "sub_rVKGtNd6s3", "status": "active", "startDate": "2024-03-01", "times": 12},
            )
        },
        seen,
    )
    client = MollieClient(make_settings(), transport=transport)

    subscription = await client.create_subscription(
        "cst_8wmqcHMN4U",
        amount="25.00",
        times=12,
        interval="1 days",
        start_date="2024-03-01",
        description="Recurring subscription",
        webhook_url="https://bridge.test/recurring",
    )

    assert subscription.status == "active"
    assert json.loads(seen[0].content) == {
        "amount": {"currency": "EUR", "value": "25.00"},
        "times": 12,
        "interval": "1 days",
        "startDate": "2024-03-01",
        "description": "Recurring subscription",
        "webhookUrl": "https://bridge.test/recurring",
    }


async def test_error_response_raises_with_status_and_detail():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(
            422,
            json={"status": 422, "title": "Unprocessable Entity", "detail": "The amount is higher than the maximum"},
        )
    )
    client = MollieClient(make_settings(), transport=transport)

    with pytest.raises(UpstreamError) as exc_info:
        await client.create_customer("jane@example.com", "jane")

    assert exc_info.value.status_code == 422
    assert exc_info.value.message == "The amount is higher than the maximum"
    assert exc_info.value.dependency == "mollie"


async def test_error_response_without_json_uses_text():
    transport = httpx.MockTransport(lambda request: httpx.Response(502, text="Bad Gateway"))
    client = MollieClient(make_settings(), transport=transport)

    with pytest.raises(UpstreamError) as exc_info:
        await client.get_payment("tr_x")

    assert exc_info.value.status_code == 502
    assert exc_info.value.message == "Bad Gateway"


async def test_missing_api_key_fails_before_any_request():
    seen: list[httpx.Request] = []
    client = MollieClient(make_settings(mollie_api_key=""), transport=recording_transport({}, seen))

    with pytest.raises(ConfigurationError):
        await client.get_payment("tr_x")

    assert seen == []
