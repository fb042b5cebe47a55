"""Relay HTTP surface: bill-payment pushes out, gateway callbacks in.

`/MixByYasPushCallback` and its environment-prefixed aliases (for example
`/prod/MixByYasPushCallback`) share one handler; the path prefix becomes the
environment tag that selects the internal endpoint and labels logs/metrics.
"""

from time import perf_counter
from typing import Any

from fastapi import Body, Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse

from billrelay.common.config import DEFAULT_ENVIRONMENT, settings
from billrelay.common.logging import bind_request_context, configure_logging, logger
from billrelay.common.metrics import http_request_duration_seconds, http_requests_total, metrics_response
from billrelay.common.startup import log_startup_config
from billrelay.common.tracing import instrument_app, setup_tracing
from billrelay.services.relay.credentials import CredentialCache, CredentialProvider
from billrelay.services.relay.service import CallbackForwarder, PaymentRelay

configure_logging()
tracing_enabled = setup_tracing(settings)
log_startup_config(
    settings,
    [
        "gateway_base_url",
        "gateway_username",
        "gateway_password",
        "gateway_token_path",
        "gateway_push_path",
        "gateway_timeout_seconds",
        "gateway_verify_tls",
        "gateway_identity_headers",
        "token_validity_seconds",
        "token_single_flight",
        "internal_service_url",
        "internal_callback_path",
        "internal_callback_paths",
        "internal_timeout_seconds",
        "callback_environments",
    ],
)
if not settings.gateway_verify_tls:
    logger.warning("gateway TLS certificate verification is disabled")

credential_cache = CredentialCache()
credential_provider = CredentialProvider(settings, credential_cache)
payment_relay = PaymentRelay(settings, credential_provider)
callback_forwarder = CallbackForwarder(settings)

app = FastAPI(title="Bill Relay")
if tracing_enabled:
    instrument_app(app)


def get_payment_relay() -> PaymentRelay:
    return payment_relay


def get_callback_forwarder() -> CallbackForwarder:
    return callback_forwarder


@app.middleware("http")
async def context_and_metrics_middleware(request: Request, call_next):
    """Bind the correlation id and record request count and latency."""

    bind_request_context(request.headers.get("x-correlation-id"))
    start = perf_counter()
    route = request.url.path
    method = request.method
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
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


@app.post("/relay/push-billpay")
async def push_billpay(
    payload: dict[str, Any] = Body(...),
    relay: PaymentRelay = Depends(get_payment_relay),
):
    """Relay a bill payment to the gateway and return its answer."""

    reply = await relay.handle_push(payload)
    # Content type goes in as a raw header so Starlette does not append a charset.
    headers = {"content-type": reply.media_type} if reply.media_type else None
    return Response(content=reply.content, status_code=reply.status_code, headers=headers)


def callback_endpoint(environment: str):
    """Build the callback handler bound to one environment tag."""

    async def receive_callback(
        payload: dict[str, Any] = Body(...),
        forwarder: CallbackForwarder = Depends(get_callback_forwarder),
    ):
        status_code, envelope = await forwarder.handle_callback(payload, environment)
        return JSONResponse(content=envelope, status_code=status_code)

    return receive_callback


app.add_api_route(
    "/MixByYasPushCallback",
    callback_endpoint(DEFAULT_ENVIRONMENT),
    methods=["POST"],
    name=f"callback_{DEFAULT_ENVIRONMENT}",
)
for _environment in settings.callback_environments:
    app.add_api_route(
        f"/{_environment}/MixByYasPushCallback",
        callback_endpoint(_environment),
        methods=["POST"],
        name=f"callback_{_environment}",
    )


@app.get("/metrics")
def metrics():
    """Prometheus scrape endpoint."""

    return metrics_response()


@app.get("/health")
def health():
    """Container health probe endpoint."""

    return {"ok": True}


def run() -> None:
    """Serve the relay with uvicorn on the configured host/port."""

    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
