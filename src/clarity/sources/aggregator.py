# src/clarity/sources/aggregator.py
"""
Fetches endpoints from every configured registry and deduplicates them.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Tuple

from opentelemetry import trace

from clarity import config
from clarity.sources.bazaar import BazaarAdapter
from clarity.sources.types import DataSource, SourceEndpoint, SourceStats
from clarity.sources.x402apis import X402ApisAdapter
from clarity.utils.url_utils import normalize_resource_url

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


def deduplicate_endpoints(endpoints: Sequence[SourceEndpoint]) -> List[SourceEndpoint]:
    """
    Keep one record per normalized URL.

    A later duplicate replaces the kept one only if its completeness score is
    strictly higher, so ties keep the first-seen record. Records are selected,
    never merged.
    """
    by_url: Dict[str, SourceEndpoint] = {}

    for endpoint in endpoints:
        key = normalize_resource_url(endpoint.resource_url)
        existing = by_url.get(key)
        if existing is None or endpoint.completeness_score() > existing.completeness_score():
            by_url[key] = endpoint

    return list(by_url.values())


def _network_breakdown(endpoints: Sequence[SourceEndpoint]) -> Dict[str, int]:
    networks: Dict[str, int] = {}
    for endpoint in endpoints:
        network = endpoint.network or "unknown"
        networks[network] = networks.get(network, 0) + 1
    return networks


class EndpointAggregator:
    """Fan-out over all data sources with per-source fault isolation."""

    def __init__(self, sources: Optional[Sequence[DataSource]] = None, enable_x402apis: bool = False):
        if sources is not None:
            self.sources = list(sources)
        else:
            self.sources = [BazaarAdapter()]
            if enable_x402apis:
                self.sources.append(X402ApisAdapter())

    def get_sources(self) -> List[str]:
        return [source.name for source in self.sources]

    async def _fetch_source(self, source: DataSource, max_pages: int) -> Tuple[List[SourceEndpoint], SourceStats]:
        try:
            endpoints = await source.fetch_endpoints(max_pages)
        except Exception as exc:
            logger.error("[aggregator] Error fetching from %s: %s", source.name, exc, exc_info=True)
            return [], SourceStats(
                source=source.name,
                count=0,
                networks={},
                last_fetch=datetime.now(timezone.utc),
                error=str(exc) or type(exc).__name__,
            )

        return list(endpoints), SourceStats(
            source=source.name,
            count=len(endpoints),
            networks=_network_breakdown(endpoints),
            last_fetch=datetime.now(timezone.utc),
        )

    async def fetch_all(self, max_pages: int = 3) -> Dict[str, list]:
        """
        Fetch from all sources concurrently, then deduplicate.

        Returns ``{"endpoints": [...], "stats": [...]}``; stats keep source order.
        """
        with tracer.start_as_current_span("aggregator.fetch_all") as span:
            span.set_attribute("aggregator.sources", ",".join(self.get_sources()))

            results = await asyncio.gather(
                *(self._fetch_source(source, max_pages) for source in self.sources)
            )

            all_endpoints: List[SourceEndpoint] = []
            stats: List[SourceStats] = []
            for endpoints, source_stats in results:
                all_endpoints.extend(endpoints)
                stats.append(source_stats)

            deduplicated = deduplicate_endpoints(all_endpoints)
            span.set_attribute("aggregator.total", len(all_endpoints))
            span.set_attribute("aggregator.deduplicated", len(deduplicated))

        logger.info(
            "[aggregator] Total: %d, Deduplicated: %d",
            len(all_endpoints),
            len(deduplicated),
        )
        return {"endpoints": deduplicated, "stats": stats}


def create_aggregator(enable_x402apis: Optional[bool] = None) -> EndpointAggregator:
    """Factory with the environment's default source configuration."""
    if enable_x402apis is None:
        enable_x402apis = config.ENABLE_X402APIS
    return EndpointAggregator(enable_x402apis=enable_x402apis)
