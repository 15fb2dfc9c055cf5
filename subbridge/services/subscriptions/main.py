"""HTTP surface for subscription sign-up and activation webhooks.

`create_app` takes its settings and orchestrator explicitly so tests and other
hosts can swap either; the module-level `app` is wired from the environment.
"""

import json
from time import perf_counter
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from subbridge.clients.dataverse import DataverseClient
from subbridge.clients.mollie import MollieClient
from subbridge.common.config import Settings, settings as default_settings
from subbridge.common.errors import InvalidRequestError, error_status_and_message
from subbridge.common.logging import configure_logging, logger, trace_id_ctx
from subbridge.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from subbridge.common.startup import log_startup_config
from subbridge.common.tracing import instrument_app, setup_tracing
from subbridge.services.subscriptions.schemas import CustomerActivationRequest, SubscriptionCreateRequest
from subbridge.services.subscriptions.service import SubscriptionService

STARTUP_FIELDS = [
    "activation_webhook_mode",
    "mollie_api_key",
    "mollie_api_url",
    "webhook_url",
    "recurring_payment_amount",
    "recurring_payment_webhook",
    "dataverse_url",
    "entity_name",
    "client_id_field",
    "email_field",
    "status_field",
    "client_secret",
]


def build_service(settings: Settings) -> SubscriptionService:
    return SubscriptionService(settings, MollieClient(settings), DataverseClient(settings))


def error_response(exc: Exception) -> JSONResponse:
    """Render any failure as `{success: false, error}` with the failing call's status."""

    status_code, message = error_status_and_message(exc)
    if status_code >= 500:
        logger.exception("error processing subscription request: %s", message)
    else:
        logger.warning("subscription request rejected status=%s error=%s", status_code, message)
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


async def _json_object(request: Request) -> dict:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidRequestError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return payload


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ()))
    return f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")


def create_app(settings: Settings, service: SubscriptionService | None = None) -> FastAPI:
    """Build the FastAPI app around one orchestrator instance."""

    service = service or build_service(settings)
    app = FastAPI(title="Subscription Bridge")
    app.state.settings = settings
    app.state.service = service
    instrument_app(app)

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        """Set the trace id and record request count and latency for every HTTP call."""

        trace_id = request.headers.get("x-correlation-id") or str(uuid4())
        trace_id_ctx.set(trace_id)
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["x-correlation-id"] = trace_id
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=settings.service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=settings.service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()

    @app.post("/subscription/creator")
    async def create_subscription(request: Request):
        """Create a Mollie customer and first payment; answer with the checkout URL."""

        logger.info("processing subscription initialization request")
        try:
            try:
                req = SubscriptionCreateRequest.model_validate(await _json_object(request))
            except ValidationError as exc:
                raise InvalidRequestError(_validation_message(exc)) from exc
            result = await service.create_subscription(req)
        except Exception as exc:
            return error_response(exc)
        return result.model_dump(by_alias=True)

    @app.post("/subscription/recurring/payments/webhook")
    async def recurring_payment_webhook(request: Request):
        """Start the recurring subscription once the first payment is confirmed."""

        try:
            if settings.activation_webhook_mode == "customer_flag":
                try:
                    req = CustomerActivationRequest.model_validate(await _json_object(request))
                except ValidationError as exc:
                    raise InvalidRequestError(_validation_message(exc)) from exc
                result = await service.activate_customer(req)
            else:
                form = await request.form()
                payment_id = form.get("id")
                result = await service.activate_from_payment(payment_id if isinstance(payment_id, str) else None)
        except Exception as exc:
            return error_response(exc)
        return result.body()

    @app.post("/subscription/validatortest")
    async def subscription_validator_test(request: Request):
        """Reachability check: log whatever arrived and say yes."""

        body = await request.body()
        logger.info("validator check body=%s", body.decode("utf-8", errors="replace"))
        return True

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.get("/health")
    def health():
        """Container health check endpoint."""

        return {"ok": True}

    return app


configure_logging(default_settings)
setup_tracing(default_settings)
log_startup_config(default_settings, STARTUP_FIELDS)
app = create_app(default_settings)
