"""Async client for the Mollie v2 payments API.

Only the four calls the subscription flows need are wrapped. Every call opens
its own `httpx.AsyncClient`, authenticates with the API key as a bearer token
and raises `UpstreamError` when Mollie answers with a non-2xx status.
"""

from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from subbridge.common.config import Settings
from subbridge.common.errors import ConfigurationError, UpstreamError
from subbridge.common.logging import logger

CURRENCY = "EUR"


class MollieResource(BaseModel):
    """Base for Mollie response bodies; unknown fields are ignored."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str
    links: dict[str, Any] = Field(default_factory=dict, alias="_links")

    def link(self, name: str) -> str | None:
        target = self.links.get(name) or {}
        return target.get("href")


class MollieCustomer(MollieResource):
    email: str | None = None
    name: str | None = None


class MolliePayment(MollieResource):
    status: str
    customer_id: str | None = Field(default=None, alias="customerId")

    @property
    def checkout_url(self) -> str | None:
        return self.link("checkout")


class MollieSubscription(MollieResource):
    status: str
    customer_id: str | None = Field(default=None, alias="customerId")
    start_date: str | None = Field(default=None, alias="startDate")
    times: int | None = None
    interval: str | None = None


def _error_detail(response: httpx.Response) -> str:
    """Pull the human-readable reason out of a Mollie error body."""

    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("detail") or body.get("title") or response.text
    return response.text


class MollieClient:
    """Thin wrapper over the customer, payment and subscription endpoints."""

    dependency = "mollie"

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.settings.mollie_api_key:
            raise ConfigurationError("MOLLIE_API_KEY is not configured")
        return httpx.AsyncClient(
            base_url=self.settings.mollie_api_url,
            headers={
                "Authorization": f"Bearer {self.settings.mollie_api_key}",
                "Content-Type": "application/json",
            },
            timeout=self.settings.http_timeout_seconds,
            transport=self.transport,
        )

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        async with self._client() as client:
            resp = await client.request(method, path, json=json)
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            logger.error("mollie rejected %s %s status=%s detail=%s", method, path, resp.status_code, detail)
            raise UpstreamError(detail, status_code=resp.status_code, dependency=self.dependency)
        return resp.json()

    async def create_customer(self, email: str, name: str) -> MollieCustomer:
        """Create a customer that later payments and subscriptions hang off."""

        body = await self._request("POST", "/customers", json={"email": email, "name": name})
        return MollieCustomer.model_validate(body)

    async def create_payment(
        self,
        customer_id: str,
        amount: str,
        description: str,
        webhook_url: str = "",
        redirect_url: str = "",
        sequence_type: str = "first",
    ) -> MolliePayment:
        """Create a payment; `first` marks the mandate-establishing payment of a recurring sequence."""

        payload: dict[str, Any] = {
            "amount": {"currency": CURRENCY, "value": amount},
            "description": description,
            "customerId": customer_id,
            "sequenceType": sequence_type,
        }
        if webhook_url:
            payload["webhookUrl"] = webhook_url
        if redirect_url:
            payload["redirectUrl"] = redirect_url
        body = await self._request("POST", "/payments", json=payload)
        return MolliePayment.model_validate(body)

    async def get_payment(self, payment_id: str) -> MolliePayment:
        body = await self._request("GET", f"/payments/{payment_id}")
        return MolliePayment.model_validate(body)

    async def create_subscription(
        self,
        customer_id: str,
        amount: str,
        times: int,
        interval: str,
        start_date: str,
        description: str,
        webhook_url: str = "",
    ) -> MollieSubscription:
        """Schedule `times` future charges of `amount` every `interval` from `start_date`."""

        payload: dict[str, Any] = {
            "amount": {"currency": CURRENCY, "value": amount},
            "times": times,
            "interval": interval,
            "startDate": start_date,
            "description": description,
        }
        if webhook_url:
            payload["webhookUrl"] = webhook_url
        body = await self._request("POST", f"/customers/{customer_id}/subscriptions", json=payload)
        return MollieSubscription.model_validate(body)
