"""
Ingestion of x402 endpoints from upstream registries.

Fetches every source through the aggregator, backfills descriptions,
classifies, and upserts each record by normalized URL. Finishes with the
daily price snapshot and a refresh of per-category endpoint counts.
"""

import logging
import time
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from opentelemetry import trace

from clarity import config
from clarity.metrics import ingestion_errors_total
from clarity.repositories.category_repository import CategoryRepository
from clarity.repositories.endpoint_repository import EndpointRepository
from clarity.repositories.price_history_repository import PriceHistoryRepository
from clarity.services.classifier import EndpointClassifier, generate_description_from_url
from clarity.sources.aggregator import EndpointAggregator, create_aggregator
from clarity.sources.types import SourceEndpoint
from clarity.utils.url_utils import normalize_resource_url

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_SAMPLE_ERRORS = 5


def clamp_max_pages(max_pages: Optional[int]) -> int:
    if not max_pages:
        return config.DEFAULT_MAX_PAGES
    return min(max(int(max_pages), 1), config.MAX_PAGES_LIMIT)


def _provider_name(raw_data: Any) -> Optional[str]:
    if isinstance(raw_data, dict):
        provider = raw_data.get("provider")
        if isinstance(provider, dict) and isinstance(provider.get("name"), str):
            return provider["name"]
    return None


class IngestionService:
    """Runs one ingestion pass."""

    def __init__(
        self,
        db: Session,
        aggregator: Optional[EndpointAggregator] = None,
        classifier: Optional[EndpointClassifier] = None,
    ):
        self.db = db
        self.aggregator = aggregator or create_aggregator()
        self.classifier = classifier or EndpointClassifier()

    def build_endpoint_values(self, endpoint: SourceEndpoint) -> Dict[str, Any]:
        """Shape one source record into endpoint column values."""
        normalized_url = normalize_resource_url(endpoint.resource_url)
        description = endpoint.description or generate_description_from_url(normalized_url)

        classification = self.classifier.classify(
            normalized_url,
            description=description,
            provider_name=_provider_name(endpoint.raw_data),
            metadata=endpoint.raw_data,
        )

        return {
            "resource_url": normalized_url,
            "raw_data": endpoint.raw_data,
            "description": description,
            "price_micro_usdc": endpoint.price_micro_usdc,
            "network": endpoint.network,
            "pay_to_address": endpoint.pay_to_address,
            "category": classification.category,
            "tags": sorted(classification.tags),
            "source": endpoint.source,
        }

    async def run_ingestion(self, max_pages: Optional[int] = None, today: Optional[date] = None) -> Dict[str, Any]:
        """
        Fetch, classify and upsert every endpoint the sources report.

        A failing record is counted and skipped; the run continues.
        """
        with tracer.start_as_current_span("ingestion.run") as span:
            start = time.monotonic()
            max_pages = clamp_max_pages(max_pages)
            span.set_attribute("ingestion.max_pages", max_pages)

            stats = {"fetched": 0, "inserted": 0, "updated": 0, "errors": 0}
            sample_errors: List[str] = []

            logger.info(
                "[Ingest] Fetching from sources: %s (max_pages: %d)",
                ", ".join(self.aggregator.get_sources()),
                max_pages,
            )
            fetched = await self.aggregator.fetch_all(max_pages)
            endpoints: List[SourceEndpoint] = fetched["endpoints"]
            source_stats = fetched["stats"]
            stats["fetched"] = len(endpoints)

            for endpoint in endpoints:
                try:
                    values = self.build_endpoint_values(endpoint)
                    _, created = EndpointRepository.upsert_from_source(
                        self.db, values["resource_url"], values
                    )
                    stats["inserted" if created else "updated"] += 1
                except (SQLAlchemyError, ValueError, TypeError) as exc:
                    self.db.rollback()
                    stats["errors"] += 1
                    ingestion_errors_total.inc()
                    logger.error("[Ingest] Error processing %s: %s", endpoint.resource_url, exc, exc_info=True)
                    if len(sample_errors) < MAX_SAMPLE_ERRORS:
                        sample_errors.append(f"{endpoint.resource_url}: {exc}")

            try:
                PriceHistoryRepository.record_snapshots(self.db, today or datetime.now(timezone.utc).date())
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("[Ingest] Error recording price snapshots: %s", exc, exc_info=True)

            try:
                CategoryRepository.refresh_counts(self.db)
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.error("[Ingest] Error refreshing category counts: %s", exc, exc_info=True)

            duration_ms = int((time.monotonic() - start) * 1000)
            span.set_attribute("ingestion.fetched", stats["fetched"])
            span.set_attribute("ingestion.errors", stats["errors"])

        logger.info("[Ingest] Completed in %dms: %s", duration_ms, stats)

        result: Dict[str, Any] = {
            **stats,
            "sources": [s.model_dump() for s in source_stats],
            "duration_ms": duration_ms,
        }
        if sample_errors:
            result["sample_errors"] = sample_errors
        return result


async def run_ingestion(db: Session, max_pages: Optional[int] = None) -> Dict[str, Any]:
    """Entry point for schedulers: one ingestion pass with default sources."""
    return await IngestionService(db).run_ingestion(max_pages)
