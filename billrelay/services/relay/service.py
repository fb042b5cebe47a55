"""Forwarding flows: caller pushes to the gateway, gateway callbacks inward.

Both flows make exactly one outbound attempt per inbound request and turn
every failure into a fixed envelope; nothing here raises to the route layer.
"""

from time import perf_counter
from typing import Any

import httpx

from billrelay.common.config import DEFAULT_ENVIRONMENT, RelaySettings
from billrelay.common.logging import bind_callback_context, logger, trace_id_ctx
from billrelay.common.metrics import (
    callback_forward_total,
    relay_push_total,
    token_invalidations_total,
    upstream_latency_seconds,
)
from billrelay.services.relay.credentials import CredentialProvider
from billrelay.services.relay.errors import ForwardFailure, RelayError, decode_body, transport_message
from billrelay.services.relay.schemas import CallbackAcknowledgement, RelayFailureEnvelope, RelayReply


class PaymentRelay:
    """Relays caller bill-payment pushes to the gateway with a bearer token."""

    def __init__(
        self,
        config: RelaySettings,
        provider: CredentialProvider,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.provider = provider
        self.transport = transport

    def _headers(self, token: str) -> dict[str, str]:
        headers = dict(self.config.gateway_identity_headers)
        headers["Authorization"] = f"Bearer {token}"
        headers["x-trace-id"] = trace_id_ctx.get()
        return headers

    async def handle_push(self, payload: dict[str, Any]) -> RelayReply:
        """Return the reply for the caller.

        A 2xx gateway answer passes through byte for byte with its status and
        content type. Token or push failures become a `RelayFailureEnvelope`
        with status 500.
        """

        try:
            token = await self.provider.obtain()
            reply = await self._push(payload, token)
        except RelayError as exc:
            relay_push_total.labels(service=self.config.service_name, outcome="failed").inc()
            logger.error(
                "push relay failed stage=%s upstream_status=%s error=%s",
                "push" if isinstance(exc, ForwardFailure) else "token",
                exc.status_code,
                exc,
            )
            envelope = RelayFailureEnvelope(Error=exc.detail)
            return RelayReply(500, envelope.model_dump_json().encode(), "application/json")
        relay_push_total.labels(service=self.config.service_name, outcome="relayed").inc()
        logger.info("push relayed upstream_status=%s", reply.status_code)
        return reply

    async def _push(self, payload: dict[str, Any], token: str) -> RelayReply:
        start = perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.config.gateway_timeout_seconds,
                verify=self.config.gateway_verify_tls,
                transport=self.transport,
            ) as client:
                resp = await client.post(self.config.push_url, json=payload, headers=self._headers(token))
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ForwardFailure(transport_message(exc)) from exc
        finally:
            upstream_latency_seconds.labels(
                service=self.config.service_name,
                dependency="gateway_push",
            ).observe(max(0.0, perf_counter() - start))

        if resp.status_code == 401 and self.provider.invalidate(token):
            token_invalidations_total.labels(service=self.config.service_name).inc()
            logger.warning("gateway rejected cached token, cache cleared")
        if not resp.is_success:
            raise ForwardFailure(
                f"push endpoint returned {resp.status_code}",
                status_code=resp.status_code,
                detail=decode_body(resp),
            )
        return RelayReply(resp.status_code, resp.content, resp.headers.get("content-type"))


class CallbackForwarder:
    """Hands gateway callbacks to the internal service and acknowledges them."""

    def __init__(self, config: RelaySettings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.config = config
        self.transport = transport

    async def handle_callback(
        self,
        payload: dict[str, Any],
        environment: str = DEFAULT_ENVIRONMENT,
    ) -> tuple[int, dict[str, Any]]:
        """Forward one callback and build the gateway acknowledgement.

        The acknowledgement depends only on whether the internal service
        accepted the forward, never on what it answered.
        """

        reference_id = payload.get("ReferenceID")
        bind_callback_context(reference_id, environment)
        logger.info("callback received fields=%s", sorted(payload))

        try:
            await self._forward(payload, environment)
        except ForwardFailure as exc:
            callback_forward_total.labels(
                service=self.config.service_name,
                environment=environment,
                outcome="failed",
            ).inc()
            logger.error("callback forward failed upstream_status=%s error=%s", exc.status_code, exc)
            return 500, CallbackAcknowledgement.failure(reference_id, exc.detail).body()

        callback_forward_total.labels(
            service=self.config.service_name,
            environment=environment,
            outcome="forwarded",
        ).inc()
        logger.info("callback forwarded")
        return 200, CallbackAcknowledgement.success(reference_id).body()

    async def _forward(self, payload: dict[str, Any], environment: str) -> None:
        start = perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.config.internal_timeout_seconds,
                transport=self.transport,
            ) as client:
                resp = await client.post(
                    self.config.internal_callback_url(environment),
                    json=payload,
                    headers={"x-trace-id": trace_id_ctx.get()},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise ForwardFailure(transport_message(exc)) from exc
        finally:
            upstream_latency_seconds.labels(
                service=self.config.service_name,
                dependency="internal_callback",
            ).observe(max(0.0, perf_counter() - start))

        if not resp.is_success:
            raise ForwardFailure(
                f"internal service returned {resp.status_code}",
                status_code=resp.status_code,
                detail=decode_body(resp),
            )
