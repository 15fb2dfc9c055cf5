"""Environment-driven settings for the subscription bridge.

The process loads this once at startup and hands the instance to every client
and service explicitly. Variable names are documented in `.env.example`.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Typed view of runtime configuration from environment variables."""

    service_name: str = "subscription-bridge"
    log_level: str = "INFO"
    otel_exporter_otlp_endpoint: str = ""
    http_timeout_seconds: float = 10.0
    # Which webhook body the activation endpoint accepts in this deployment.
    activation_webhook_mode: Literal["payment_lookup", "customer_flag"] = "payment_lookup"

    mollie_api_key: str = ""
    mollie_api_url: str = "https://api.mollie.com/v2"
    webhook_url: str = ""
    checkout_redirect_url: str = ""
    first_payment_amount: str = "0.01"
    first_payment_description: str = "Subscription sign-up"
    recurring_payment_amount: str = "0.01"
    recurring_payment_webhook: str = ""
    recurring_payment_description: str = "Recurring subscription"

    tenant_id: str = ""
    application_id: str = ""
    client_secret: str = ""
    dataverse_url: str = ""
    dataverse_api_version: str = "9.2"
    identity_authority_url: str = "https://login.microsoftonline.com"
    entity_name: str = "contacts"
    client_id_field: str = "mollie_customer_id"
    email_field: str = "emailaddress1"
    status_field: str = "mollie_subscription_active"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
