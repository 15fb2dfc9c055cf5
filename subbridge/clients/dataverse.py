"""Async client for writing customer records to Dataverse.

Each write first exchanges the app registration's client secret for a bearer
token at the identity provider (OAuth2 client-credential grant), then issues a
single Web API call against the configured collection. Field names for the
customer id, email and subscription status come from settings.
"""

import re
from urllib.parse import urlsplit

import httpx

from subbridge.common.config import Settings
from subbridge.common.errors import ConfigurationError, UpstreamError
from subbridge.common.logging import logger

# OData-EntityId: https://org.crm.dynamics.com/api/data/v9.2/contacts(00000000-...)
ENTITY_ID_RE = re.compile(r"\(([^()]*)\)\s*$")


def normalize_dataverse_url(raw: str) -> str:
    """Prefix a missing scheme and reject anything that is not an absolute URL."""

    url = raw.strip()
    if not url.startswith(("https://", "http://")):
        url = f"https://{url}"
    url = url.rstrip("/")
    parts = urlsplit(url)
    if not parts.hostname or parts.hostname in ("http", "https") or " " in parts.netloc:
        raise ConfigurationError(
            f'Invalid Dataverse URL: {raw}. Please provide a valid URL like "https://yourorg.crm.dynamics.com"'
        )
    return url


def record_id_from_headers(headers: httpx.Headers) -> str | None:
    entity_id = headers.get("OData-EntityId")
    if not entity_id:
        return None
    match = ENTITY_ID_RE.search(entity_id)
    return match.group(1) if match else None


def _error_detail(response: httpx.Response) -> str:
    """Extract the message from a Web API or identity provider error body."""

    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if not isinstance(body, dict):
        return response.text
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message") or response.text
    return body.get("error_description") or error or response.text


class DataverseClient:
    """Create and upsert records keyed by the Mollie customer id."""

    dependency = "dataverse"

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.transport = transport

    def _base_url(self) -> str:
        missing = [
            name.upper()
            for name in ("tenant_id", "application_id", "client_secret", "dataverse_url")
            if not getattr(self.settings, name)
        ]
        if missing:
            raise ConfigurationError(
                "Missing required environment variables for Dataverse connection: " + ", ".join(missing)
            )
        return normalize_dataverse_url(self.settings.dataverse_url)

    def _collection_url(self, base_url: str) -> str:
        return f"{base_url}/api/data/v{self.settings.dataverse_api_version}/{self.settings.entity_name}"

    async def _acquire_token(self, client: httpx.AsyncClient, base_url: str) -> str:
        token_url = (
            f"{self.settings.identity_authority_url.rstrip('/')}/{self.settings.tenant_id}/oauth2/v2.0/token"
        )
        resp = await client.post(
            token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.settings.application_id,
                "client_secret": self.settings.client_secret,
                "scope": f"{base_url}/.default",
            },
        )
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            logger.error("dataverse token request failed status=%s detail=%s", resp.status_code, detail)
            raise UpstreamError(detail, status_code=resp.status_code, dependency=self.dependency)
        return resp.json()["access_token"]

    async def _write(self, method: str, path_suffix: str, record: dict) -> str | None:
        base_url = self._base_url()
        async with httpx.AsyncClient(timeout=self.settings.http_timeout_seconds, transport=self.transport) as client:
            token = await self._acquire_token(client, base_url)
            resp = await client.request(
                method,
                self._collection_url(base_url) + path_suffix,
                json=record,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Accept": "application/json",
                    "OData-MaxVersion": "4.0",
                    "OData-Version": "4.0",
                },
            )
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            logger.error("dataverse %s failed status=%s detail=%s", method, resp.status_code, detail)
            raise UpstreamError(detail, status_code=resp.status_code, dependency=self.dependency)
        return record_id_from_headers(resp.headers)

    async def create_customer_record(self, customer_id: str, email: str) -> str | None:
        """Insert a new record holding the customer id and email; returns its id."""

        record = {self.settings.client_id_field: customer_id, self.settings.email_field: email}
        record_id = await self._write("POST", "", record)
        logger.info("dataverse record created record_id=%s", record_id)
        return record_id

    async def upsert_subscription_status(self, customer_id: str, active: bool) -> str | None:
        """Set the status flag on the record whose id field equals `customer_id`, creating it if absent."""

        key = customer_id.replace("'", "''")
        record = {self.settings.status_field: active}
        record_id = await self._write("PATCH", f"({self.settings.client_id_field}='{key}')", record)
        logger.info("dataverse subscription status written record_id=%s active=%s", record_id, active)
        return record_id
