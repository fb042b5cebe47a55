"""Gateway bearer credential: a single cached token and the fetch that fills it.

The cache holds at most one token. Expiry is evaluated lazily when the cache is
queried; nothing evicts it in the background. The provider refreshes the
cache from the gateway's password-grant token endpoint whenever the cached
token is absent or expired.
"""

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from time import perf_counter

import httpx

from billrelay.common.config import RelaySettings
from billrelay.common.logging import logger, trace_id_ctx
from billrelay.common.metrics import token_cache_hits_total, token_fetch_total, upstream_latency_seconds
from billrelay.services.relay.errors import CredentialFetchFailure, decode_body, transport_message


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CredentialCache:
    """Single-slot token store with an absolute expiry instant."""

    def __init__(self, clock: Clock = utc_now) -> None:
        self._clock = clock
        self._token: str | None = None
        self._expires_at: datetime | None = None

    @property
    def expires_at(self) -> datetime | None:
        return self._expires_at

    def is_valid(self) -> bool:
        """True while a token is held and the clock is strictly before expiry.

        An expired token is cleared as a side effect of asking.
        """

        if self._token is None or self._expires_at is None:
            return False
        if self._clock() < self._expires_at:
            return True
        self.clear()
        return False

    def get(self) -> str | None:
        return self._token

    def set(self, token: str, valid_for: timedelta) -> None:
        # Last writer wins.
        self._token = token
        self._expires_at = self._clock() + valid_for

    def clear(self) -> None:
        self._token = None
        self._expires_at = None


class CredentialProvider:
    """Returns a usable gateway token, fetching one when the cache is stale."""

    def __init__(
        self,
        config: RelaySettings,
        cache: CredentialCache,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self.cache = cache
        self.transport = transport
        self._inflight: asyncio.Task | None = None

    async def obtain(self) -> str:
        """Return the cached token or fetch a new one.

        With single-flight enabled, callers arriving while a fetch is running
        await that same fetch and share its token or its failure.
        Raises `CredentialFetchFailure` when the token endpoint fails.
        """

        if self.cache.is_valid():
            token_cache_hits_total.labels(service=self.config.service_name).inc()
            return self.cache.get()
        if not self.config.token_single_flight:
            return await self._fetch()
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._fetch())
            self._inflight.add_done_callback(self._forget_inflight)
        # Shielded so one cancelled caller does not cancel the shared fetch.
        return await asyncio.shield(self._inflight)

    def _forget_inflight(self, task: asyncio.Task) -> None:
        if self._inflight is task:
            self._inflight = None

    def invalidate(self, token: str) -> bool:
        """Drop `token` if it is still the cached one.

        A rejection of an older token must not evict a newer refresh.
        Returns whether the cache was cleared.
        """

        if self.cache.get() != token:
            return False
        self.cache.clear()
        return True

    async def _fetch(self) -> str:
        form = {
            "username": self.config.gateway_username,
            "password": self.config.gateway_password,
            "grant_type": "password",
        }
        start = perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.config.gateway_timeout_seconds,
                verify=self.config.gateway_verify_tls,
                transport=self.transport,
            ) as client:
                resp = await client.post(
                    self.config.token_url,
                    data=form,
                    headers={"x-trace-id": trace_id_ctx.get()},
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            token_fetch_total.labels(service=self.config.service_name, outcome="transport_error").inc()
            raise CredentialFetchFailure(transport_message(exc)) from exc
        finally:
            upstream_latency_seconds.labels(
                service=self.config.service_name,
                dependency="gateway_token",
            ).observe(max(0.0, perf_counter() - start))

        if not resp.is_success:
            token_fetch_total.labels(service=self.config.service_name, outcome="rejected").inc()
            raise CredentialFetchFailure(
                f"token endpoint returned {resp.status_code}",
                status_code=resp.status_code,
                detail=decode_body(resp),
            )
        body = decode_body(resp)
        token = body.get("access_token") if isinstance(body, dict) else None
        if not isinstance(token, str) or not token:
            token_fetch_total.labels(service=self.config.service_name, outcome="malformed").inc()
            raise CredentialFetchFailure("token response carried no access_token", status_code=resp.status_code)

        self.cache.set(token, timedelta(seconds=self.config.token_validity_seconds))
        token_fetch_total.labels(service=self.config.service_name, outcome="success").inc()
        logger.info("gateway token fetched expires_at=%s", self.cache.expires_at.isoformat())
        return token
