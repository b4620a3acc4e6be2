"""
Reachability probes for x402 endpoints.

A probe is a single HEAD request with a hard timeout. For x402 resources a
``402 Payment Required`` answer proves the endpoint is up and speaking the
protocol, so it counts as success alongside 2xx/3xx.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence, Union

import httpx
from opentelemetry import trace

from clarity import config
from clarity.metrics import (
    endpoints_deactivated_total,
    probe_latency_seconds,
    probes_total,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

PAYMENT_REQUIRED = 402


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of one probe, shaped like a Ping row."""
    endpoint_id: Any
    resource_url: str
    pinged_at: datetime
    success: bool
    status_code: Optional[int]
    latency_ms: int
    error_message: Optional[str]

    def as_ping_values(self) -> dict:
        return {
            "endpoint_id": self.endpoint_id,
            "pinged_at": self.pinged_at,
            "success": self.success,
            "status_code": self.status_code,
            "latency_ms": self.latency_ms,
            "error_message": self.error_message,
        }


def is_reachable_status(status_code: int) -> bool:
    """2xx, 3xx and 402 mean the endpoint answered correctly."""
    return 200 <= status_code < 400 or status_code == PAYMENT_REQUIRED


def should_mark_inactive(consecutive_failures: int, threshold: int = config.INACTIVITY_THRESHOLD) -> bool:
    return consecutive_failures >= threshold


def apply_probe_outcome(endpoint: Any, success: bool, now: Optional[datetime] = None,
                        threshold: int = config.INACTIVITY_THRESHOLD) -> bool:
    """
    Update an endpoint's liveness bookkeeping after a probe.

    Success resets the failure streak; failure extends it and deactivates the
    endpoint at ``threshold``. A success never re-activates an inactive
    endpoint; only re-ingestion does. Returns True when this call deactivated it.
    """
    now = now or datetime.now(timezone.utc)

    if success:
        endpoint.last_seen_at = now
        endpoint.consecutive_failures = 0
        return False

    endpoint.last_error_at = now
    endpoint.consecutive_failures = (endpoint.consecutive_failures or 0) + 1

    if endpoint.is_active and should_mark_inactive(endpoint.consecutive_failures, threshold):
        endpoint.is_active = False
        endpoints_deactivated_total.inc()
        logger.warning(
            "Endpoint %s marked inactive after %d consecutive failures",
            endpoint.resource_url,
            endpoint.consecutive_failures,
        )
        return True
    return False


class HealthProber:
    """Issues probes with bounded concurrency."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = config.PROBE_TIMEOUT_SECONDS,
        concurrency: int = config.PROBE_CONCURRENCY,
        user_agent: str = config.PROBE_USER_AGENT,
    ):
        self._client = client
        self.timeout = timeout
        self.concurrency = max(1, concurrency)
        self.user_agent = user_agent

    async def probe(self, endpoint: Any, client: Optional[httpx.AsyncClient] = None) -> ProbeResult:
        """
        Probe one endpoint. Transport failures become failed results; this
        never raises for network errors.
        """
        client = client or self._client
        if client is None:
            async with self._new_client() as owned:
                return await self._probe(endpoint, owned)
        return await self._probe(endpoint, client)

    async def _probe(self, endpoint: Any, client: httpx.AsyncClient) -> ProbeResult:
        with tracer.start_as_current_span("health.probe") as span:
            url = endpoint.resource_url
            span.set_attribute("endpoint.url", url)

            status_code: Optional[int] = None
            error_message: Optional[str] = None
            success = False

            start = time.monotonic()
            try:
                response = await asyncio.wait_for(
                    client.head(url, headers={"User-Agent": self.user_agent}),
                    timeout=self.timeout,
                )
                status_code = response.status_code
                success = is_reachable_status(status_code)
                if not success:
                    error_message = f"HTTP {status_code}"
            except (httpx.TimeoutException, asyncio.TimeoutError):
                error_message = "Timeout"
            except httpx.HTTPError as exc:
                error_message = str(exc) or type(exc).__name__
            except Exception as exc:
                # Malformed URLs surface as UnicodeError/ValueError from URL parsing.
                logger.warning("Unexpected error probing %s: %r", url, exc)
                error_message = str(exc) or type(exc).__name__
            latency_ms = int((time.monotonic() - start) * 1000)

            span.set_attribute("probe.success", success)
            span.set_attribute("probe.latency_ms", latency_ms)
            if status_code is not None:
                span.set_attribute("probe.status_code", status_code)

        probes_total.labels(outcome="success" if success else "failure").inc()
        probe_latency_seconds.observe(latency_ms / 1000.0)

        if success:
            logger.debug("HEAD %s returned %s in %dms", url, status_code, latency_ms)
        else:
            logger.info("Probe failed for %s: %s (%dms)", url, error_message, latency_ms)

        return ProbeResult(
            endpoint_id=endpoint.id,
            resource_url=url,
            pinged_at=datetime.now(timezone.utc),
            success=success,
            status_code=status_code,
            latency_ms=latency_ms,
            error_message=error_message,
        )

    def _new_client(self) -> httpx.AsyncClient:
        # Redirects are not followed: a 3xx already proves reachability.
        return httpx.AsyncClient(timeout=self.timeout, follow_redirects=False)

    async def probe_batch(self, endpoints: Sequence[Any]) -> List[Union[ProbeResult, BaseException]]:
        """
        Probe every endpoint concurrently (at most ``concurrency`` in flight)
        and wait for all of them. Results line up with ``endpoints``; an
        unexpected exception is returned in place of that endpoint's result.
        """
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _guarded(endpoint: Any, client: httpx.AsyncClient) -> ProbeResult:
            async with semaphore:
                return await self._probe(endpoint, client)

        with tracer.start_as_current_span("health.probe_batch") as span:
            span.set_attribute("batch.size", len(endpoints))
            if self._client is not None:
                return await asyncio.gather(
                    *(_guarded(e, self._client) for e in endpoints), return_exceptions=True
                )
            async with self._new_client() as client:
                return await asyncio.gather(
                    *(_guarded(e, client) for e in endpoints), return_exceptions=True
                )
