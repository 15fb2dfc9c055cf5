"""Shared fixtures: explicit settings and in-memory stand-ins for Mollie and Dataverse."""

from datetime import date

import pytest

from subbridge.clients.mollie import MollieCustomer, MolliePayment, MollieSubscription
from subbridge.common.config import Settings
from subbridge.services.subscriptions.service import SubscriptionService

CHECKOUT_URL = "https://www.mollie.com/checkout/select-method/tr_first"


def make_settings(**overrides) -> Settings:
    values = {
        "service_name": "subscription-bridge-test",
        "mollie_api_key": "test_key",
        "mollie_api_url": "https://api.mollie.test/v2",
        "webhook_url": "https://bridge.test/first-payment/webhook",
        "checkout_redirect_url": "https://shop.test/thanks",
        "recurring_payment_amount": "25.00",
        "recurring_payment_webhook": "https://bridge.test/recurring/webhook",
        "tenant_id": "tenant-1",
        "application_id": "app-1",
        "client_secret": "s3cret",
        "dataverse_url": "https://org.crm.dynamics.test",
        "identity_authority_url": "https://login.identity.test",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeMollie:
    """Records every call; `errors[method]` makes that call raise."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.errors: dict[str, Exception] = {}
        self.payment_status = "paid"
        self.payment_customer_id: str | None = "cst_test"
        self.subscription_status = "active"

    def _call(self, method: str, **kwargs) -> None:
        self.calls.append((method, kwargs))
        if method in self.errors:
            raise self.errors[method]

    def called(self, name: str) -> list[dict]:
        return [kwargs for call, kwargs in self.calls if call == name]

    async def create_customer(self, email, name):
        self._call("create_customer", email=email, name=name)
        return MollieCustomer(id="cst_test", email=email, name=name)

    async def create_payment(self, customer_id, amount, description, webhook_url="", redirect_url="", sequence_type="first"):
        self._call(
            "create_payment",
            customer_id=customer_id,
            amount=amount,
            description=description,
            webhook_url=webhook_url,
            redirect_url=redirect_url,
            sequence_type=sequence_type,
        )
        return MolliePayment.model_validate(
            {
                "id": "tr_first",
                "status": "open",
                "customerId": customer_id,
                "sequenceType": sequence_type,
                "_links": {"checkout": {"href": CHECKOUT_URL}},
            }
        )

    async def get_payment(self, payment_id):
        self._call("get_payment", payment_id=payment_id)
        return MolliePayment.model_validate(
            {"id": payment_id, "status": self.payment_status, "customerId": self.payment_customer_id}
        )

    async def create_subscription(self, customer_id, **kwargs):
        self._call("create_subscription", customer_id=customer_id, **kwargs)
        return MollieSubscription.model_validate(
            {"id": "sub_test", "status": self.subscription_status, "customerId": customer_id}
        )


class FakeDataverse:
    def __init__(self) -> None:
        self.calls: list[tuple[str, dict]] = []
        self.errors: dict[str, Exception] = {}

    def _call(self, method: str, **kwargs) -> None:
        self.calls.append((method, kwargs))
        if method in self.errors:
            raise self.errors[method]

    async def create_customer_record(self, customer_id, email):
        self._call("create_customer_record", customer_id=customer_id, email=email)
        return "record-1"

    async def upsert_subscription_status(self, customer_id, active):
        self._call("upsert_subscription_status", customer_id=customer_id, active=active)
        return "record-1"


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def mollie() -> FakeMollie:
    return FakeMollie()


@pytest.fixture
def dataverse() -> FakeDataverse:
    return FakeDataverse()


@pytest.fixture
def service(settings, mollie, dataverse) -> SubscriptionService:
    return SubscriptionService(settings, mollie, dataverse, today=lambda: date(2024, 1, 31))
