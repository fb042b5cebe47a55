"""Prometheus metric definitions for the relay process."""

from prometheus_client import Counter, Histogram, generate_latest
from starlette.responses import Response


relay_push_total = Counter(
    "relay_push_total",
    "Inbound bill-payment push requests by outcome",
    ["service", "outcome"],
)
token_fetch_total = Counter(
    "token_fetch_total",
    "Gateway token endpoint calls by outcome",
    ["service", "outcome"],
)
token_cache_hits_total = Counter(
    "token_cache_hits_total",
    "Push requests served with an already cached credential",
    ["service"],
)
token_invalidations_total = Counter(
    "token_invalidations_total",
    "Cached credentials dropped after the gateway rejected them",
    ["service"],
)
callback_forward_total = Counter(
    "callback_forward_total",
    "Gateway callbacks forwarded to the internal service by outcome",
    ["service", "environment", "outcome"],
)
upstream_latency_seconds = Histogram(
    "upstream_latency_seconds",
    "Outbound call latency seconds",
    ["service", "dependency"],
)
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


def metrics_response() -> Response:
    """Expose all registered Prometheus metrics in text format."""

    return Response(content=generate_latest(), media_type="text/plain")
