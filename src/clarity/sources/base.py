# src/clarity/sources/base.py
"""
Shared paging / backoff machinery for upstream x402 registries.

Subclasses describe how to build the first page request, how to find the
next one, and how to turn one upstream record into a ``SourceEndpoint``.
"""
from __future__ import annotations

import asyncio
import logging
import re
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Tuple

import httpx
from opentelemetry import trace
from pydantic import ValidationError

from clarity.metrics import (
    source_endpoints_fetched_total,
    source_fetch_failures_total,
    source_rate_limited_total,
)
from clarity.sources.types import SourceEndpoint

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Keys under which known registries nest their record list.
_ITEM_KEYS = ("resources", "data", "items", "providers")
_INTEGER = re.compile(r"^\s*\d+\s*$")


class SourceFetchError(Exception):
    """A registry page could not be fetched or decoded."""


class RateLimitedError(SourceFetchError):
    """The registry kept answering 429 after the retry budget was spent."""


def extract_page_items(payload: Any) -> Tuple[List[Dict[str, Any]], Optional[Dict[str, Any]]]:
    """
    Pull the record list (and pagination block, if any) out of a registry page.

    Accepts a bare list, ``{resources|data|items|providers: [...]}`` and an
    optional ``pagination`` dict. Anything else is an empty page.
    """
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)], None

    if not isinstance(payload, dict):
        return [], None

    for key in _ITEM_KEYS:
        value = payload.get(key)
        if isinstance(value, list):
            pagination = payload.get("pagination")
            return (
                [item for item in value if isinstance(item, dict)],
                pagination if isinstance(pagination, dict) else None,
            )

    return [], None


def _is_known_shape(payload: Any) -> bool:
    if isinstance(payload, list):
        return True
    return isinstance(payload, dict) and any(isinstance(payload.get(key), list) for key in _ITEM_KEYS)


def parse_price(value: Any) -> Optional[int]:
    """
    Parse an upstream amount into integer micro-units.

    Missing or non-numeric values give None, never 0.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and value >= 0 else None
    if isinstance(value, str) and _INTEGER.match(value):
        return int(value)
    return None


def text_or_none(value: Any) -> Optional[str]:
    """Return ``value`` when it is a non-empty string, otherwise None."""
    if isinstance(value, str) and value:
        return value
    return None


class RegistryAdapter:
    """Base class for paginated registry clients."""

    name = "registry"
    page_size = 100

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 30.0,
        max_attempts: int = 3,
        retry_base_delay: float = 2.0,
        retry_max_delay: float = 30.0,
        page_delay: float = 0.5,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.base_url = base_url
        self._client = client
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self.page_delay = page_delay
        self._sleep = sleep

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------
    def first_page_params(self) -> Dict[str, Any]:
        raise NotImplementedError

    def next_page_params(
        self,
        params: Dict[str, Any],
        payload: Any,
        items: List[Dict[str, Any]],
        pagination: Optional[Dict[str, Any]],
    ) -> Optional[Dict[str, Any]]:
        """Return the params for the following page, or None when done."""
        raise NotImplementedError

    def transform(self, record: Dict[str, Any]) -> Optional[SourceEndpoint]:
        raise NotImplementedError

    def _transform_record(self, record: Dict[str, Any]) -> Optional[SourceEndpoint]:
        try:
            return self.transform(record)
        except (ValidationError, TypeError, ValueError) as exc:
            logger.warning(
                "[%s] Skipping malformed record %r: %s",
                self.name,
                record.get("url") or record.get("resource"),
                exc,
            )
            return None

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------
    @asynccontextmanager
    async def _client_context(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(
            timeout=self.timeout,
            headers={"Accept": "application/json"},
            follow_redirects=True,
        ) as client:
            yield client

    async def fetch_endpoints(self, max_pages: int = 3) -> List[SourceEndpoint]:
        """
        Page through the registry until it runs out or ``max_pages`` is hit.

        Rate limiting and page errors stop paging but keep what was already
        fetched.
        """
        with tracer.start_as_current_span("source.fetch_endpoints") as span:
            span.set_attribute("source.name", self.name)
            span.set_attribute("source.max_pages", max_pages)

            endpoints: List[SourceEndpoint] = []
            params: Optional[Dict[str, Any]] = self.first_page_params()
            pages_loaded = 0

            async with self._client_context() as client:
                while params is not None and pages_loaded < max_pages:
                    try:
                        payload = await self._get_with_backoff(client, params)
                    except RateLimitedError:
                        logger.warning(
                            "[%s] Rate limit retries exhausted after %d page(s); keeping %d endpoints",
                            self.name,
                            pages_loaded,
                            len(endpoints),
                        )
                        break
                    except (SourceFetchError, httpx.HTTPError) as exc:
                        source_fetch_failures_total.labels(source=self.name).inc()
                        logger.error(
                            "[%s] Fetch error on page %d: %s; keeping %d endpoints",
                            self.name,
                            pages_loaded + 1,
                            exc,
                            len(endpoints),
                        )
                        break

                    items, pagination = extract_page_items(payload)
                    if not items and not _is_known_shape(payload):
                        logger.warning("[%s] Unexpected page shape: %s", self.name, type(payload).__name__)

                    for record in items:
                        endpoint = self._transform_record(record)
                        if endpoint is not None:
                            endpoints.append(endpoint)

                    pages_loaded += 1
                    try:
                        params = self.next_page_params(params, payload, items, pagination)
                    except (TypeError, ValueError) as exc:
                        logger.warning(
                            "[%s] Unreadable pagination after page %d: %s; stopping",
                            self.name,
                            pages_loaded,
                            exc,
                        )
                        params = None

                    if params is not None and pages_loaded < max_pages and self.page_delay > 0:
                        await self._sleep(self.page_delay)

            span.set_attribute("source.pages_loaded", pages_loaded)
            span.set_attribute("source.endpoint_count", len(endpoints))

        source_endpoints_fetched_total.labels(source=self.name).inc(len(endpoints))
        logger.info("[%s] Fetched %d endpoints from %d page(s)", self.name, len(endpoints), pages_loaded)
        return endpoints

    async def _get_with_backoff(self, client: httpx.AsyncClient, params: Dict[str, Any]) -> Any:
        """GET one page, retrying 429 responses with exponential backoff."""
        delay = self.retry_base_delay

        for attempt in range(1, self.max_attempts + 1):
            response = await client.get(self.base_url, params=params)

            if response.status_code == 429:
                source_rate_limited_total.labels(source=self.name).inc()
                if attempt == self.max_attempts:
                    raise RateLimitedError(f"{self.name} rate limited after {attempt} attempts")
                wait = min(delay, self.retry_max_delay)
                logger.warning(
                    "[%s] Rate limited (attempt %d/%d), retrying in %.1fs",
                    self.name,
                    attempt,
                    self.max_attempts,
                    wait,
                )
                await self._sleep(wait)
                delay *= 2
                continue

            if response.status_code >= 400:
                raise SourceFetchError(f"{self.name} API error: HTTP {response.status_code}")

            try:
                return response.json()
            except ValueError as exc:
                raise SourceFetchError(f"{self.name} returned invalid JSON: {exc}") from exc

        raise RateLimitedError(f"{self.name} rate limited")
