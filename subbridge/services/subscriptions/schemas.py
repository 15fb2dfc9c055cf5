"""Request/response schemas for the subscription endpoints."""

from decimal import Decimal, InvalidOperation

from pydantic import BaseModel, Field, field_validator


class SubscriptionCreateRequest(BaseModel):
    """Sign-up payload; email presence is checked by the service so it can answer 400."""

    email: str | None = None
    name: str | None = None
    amount: str | None = None

    @field_validator("amount", mode="before")
    @classmethod
    def normalize_amount(cls, value):
        # Mollie wants amounts as strings with exactly two decimals.
        if value is None or value == "":
            return None
        if isinstance(value, bool):
            raise ValueError("amount must be a number or numeric string")
        try:
            amount = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError("amount must be a number or numeric string") from exc
        if not amount.is_finite() or amount <= 0:
            raise ValueError("amount must be greater than zero")
        if amount.as_tuple().exponent < -2:
            raise ValueError("amount must have at most two decimals")
        return f"{amount:.2f}"


class SubscriptionCreateResponse(BaseModel):
    success: bool = True
    customer_id: str = Field(serialization_alias="customerId")
    payment_id: str = Field(serialization_alias="paymentId")
    checkout_url: str | None = Field(serialization_alias="checkoutUrl")


class CustomerActivationRequest(BaseModel):
    """Legacy webhook body where the caller asserts the payment succeeded."""

    customer_id: str | None = Field(default=None, alias="customerId")
    success: bool = False


class ActivationResult(BaseModel):
    """Outcome of one activation webhook.

    Without `subscription_created` the payment was not final and nothing was created.
    """

    subscription_created: bool = False
    active: bool = False

    def body(self) -> dict:
        if not self.subscription_created:
            return {"received": True}
        return {"success": self.active}
