"""Subscription orchestration.

Sequences the Mollie and Dataverse calls behind the two entry points:
sign-up (customer + first payment + best-effort CRM record) and activation
(paid first payment -> recurring subscription -> CRM status write-back).
Nothing is stored between calls and calls are never retried.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Callable

from subbridge.clients.dataverse import DataverseClient
from subbridge.clients.mollie import MollieClient
from subbridge.common.config import Settings
from subbridge.common.errors import InvalidRequestError, UpstreamError
from subbridge.common.logging import customer_id_ctx, logger, payment_id_ctx
from subbridge.common.metrics import (
    record_store_writes_skipped_total,
    subscription_activations_total,
    subscription_signups_total,
    upstream_failures_total,
)
from subbridge.services.subscriptions.schemas import (
    ActivationResult,
    CustomerActivationRequest,
    SubscriptionCreateRequest,
    SubscriptionCreateResponse,
)

RECURRING_TIMES = 12
RECURRING_INTERVAL = "1 days"
START_OFFSET_DAYS = 30
PAID = "paid"
ACTIVE = "active"


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def recurring_start_date(today: date) -> str:
    """First charge date of the recurring subscription as `YYYY-MM-DD`."""

    return (today + timedelta(days=START_OFFSET_DAYS)).isoformat()


def default_display_name(email: str) -> str:
    return email.split("@")[0]


class SubscriptionService:
    """Owns the sign-up and activation sequences."""

    def __init__(
        self,
        settings: Settings,
        payments: MollieClient,
        records: DataverseClient,
        today: Callable[[], date] = utc_today,
    ) -> None:
        self.settings = settings
        self.payments = payments
        self.records = records
        self.today = today
        self.service_name = settings.service_name

    def _record_upstream_failure(self, exc: Exception) -> None:
        if isinstance(exc, UpstreamError):
            upstream_failures_total.labels(
                service=self.service_name,
                dependency=exc.dependency or "unknown",
                status_code=str(exc.status_code),
            ).inc()

    async def create_subscription(self, req: SubscriptionCreateRequest) -> SubscriptionCreateResponse:
        """Create the customer and its first payment; return where to send the buyer.

        The CRM write in the middle is best-effort: any failure is logged and the
        payment is still created.
        """

        email = (req.email or "").strip()
        if not email:
            raise InvalidRequestError("Email address is required")

        try:
            logger.info("creating mollie customer")
            customer = await self.payments.create_customer(email, req.name or default_display_name(email))
            customer_id_ctx.set(customer.id)
            logger.info("mollie customer created customer_id=%s", customer.id)

            try:
                await self.records.create_customer_record(customer.id, email)
            except Exception as exc:
                record_store_writes_skipped_total.labels(service=self.service_name).inc()
                self._record_upstream_failure(exc)
                logger.exception("dataverse customer write failed, continuing with payment: %s", exc)

            payment = await self.payments.create_payment(
                customer.id,
                req.amount or self.settings.first_payment_amount,
                description=self.settings.first_payment_description,
                webhook_url=self.settings.webhook_url,
                redirect_url=self.settings.checkout_redirect_url,
                sequence_type="first",
            )
        except UpstreamError as exc:
            self._record_upstream_failure(exc)
            raise
        payment_id_ctx.set(payment.id)
        subscription_signups_total.labels(service=self.service_name).inc()
        logger.info("first payment created payment_id=%s status=%s", payment.id, payment.status)
        return SubscriptionCreateResponse(
            customer_id=customer.id,
            payment_id=payment.id,
            checkout_url=payment.checkout_url,
        )

    async def activate_from_payment(self, payment_id: str | None) -> ActivationResult:
        """Webhook path that trusts nothing but Mollie: look the payment up first."""

        payment_id = (payment_id or "").strip()
        if not payment_id:
            raise InvalidRequestError("Payment id is required")
        payment_id_ctx.set(payment_id)

        try:
            payment = await self.payments.get_payment(payment_id)
        except UpstreamError as exc:
            self._record_upstream_failure(exc)
            raise
        if payment.status != PAID:
            logger.info("payment not paid, nothing to activate status=%s", payment.status)
            subscription_activations_total.labels(service=self.service_name, outcome="not_paid").inc()
            return ActivationResult()
        if not payment.customer_id:
            raise InvalidRequestError("Payment is not linked to a customer")

        return await self._start_recurring(payment.customer_id)

    async def activate_customer(self, req: CustomerActivationRequest) -> ActivationResult:
        """Legacy webhook path: the caller's `success` flag is taken at face value."""

        if not req.success:
            raise InvalidRequestError("Payment was not successful")
        if not req.customer_id:
            raise InvalidRequestError("Customer id is required")
        return await self._start_recurring(req.customer_id)

    async def _start_recurring(self, customer_id: str) -> ActivationResult:
        customer_id_ctx.set(customer_id)
        logger.info("creating recurring payment")
        try:
            subscription = await self.payments.create_subscription(
                customer_id,
                amount=self.settings.recurring_payment_amount,
                times=RECURRING_TIMES,
                interval=RECURRING_INTERVAL,
                start_date=recurring_start_date(self.today()),
                description=self.settings.recurring_payment_description,
                webhook_url=self.settings.recurring_payment_webhook,
            )
            active = subscription.status == ACTIVE
            await self.records.upsert_subscription_status(customer_id, active)
        except UpstreamError as exc:
            self._record_upstream_failure(exc)
            raise
        outcome = "active" if active else "inactive"
        subscription_activations_total.labels(service=self.service_name, outcome=outcome).inc()
        logger.info("subscription created subscription_id=%s status=%s", subscription.id, subscription.status)
        return ActivationResult(subscription_created=True, active=active)
