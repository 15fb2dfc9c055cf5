"""Prometheus metric definitions."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["service", "route", "method", "status_code"],
)
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration seconds",
    ["service", "route", "method"],
)
subscription_signups_total = Counter(
    "subscription_signups_total",
    "Customers created with a first payment awaiting checkout",
    ["service"],
)
subscription_activations_total = Counter(
    "subscription_activations_total",
    "Activation webhook outcomes",
    ["service", "outcome"],
)
upstream_failures_total = Counter(
    "upstream_failures_total",
    "Calls rejected by an external dependency",
    ["service", "dependency", "status_code"],
)
record_store_writes_skipped_total = Counter(
    "record_store_writes_skipped_total",
    "Record store writes that failed and were ignored",
    ["service"],
)


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
