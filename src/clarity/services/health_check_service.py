"""
Periodic health-check batch.

Picks the least recently seen active endpoints, probes them, records a
ping per probe, and recomputes each checked endpoint's reliability metrics.
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from opentelemetry import trace

from clarity import config
from clarity.models.endpoint import Endpoint
from clarity.repositories.endpoint_repository import EndpointRepository
from clarity.repositories.ping_repository import PingRepository
from clarity.services.health_prober import HealthProber, ProbeResult, apply_probe_outcome
from clarity.services.metrics_calculator import METRICS_LOOKBACK, calculate_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class HealthCheckService:
    def __init__(self, db: Session, prober: Optional[HealthProber] = None):
        self.db = db
        self.prober = prober or HealthProber()

    def recompute_metrics(self, endpoint: Endpoint, now: Optional[datetime] = None) -> None:
        """Recalculate the reliability snapshot from the last 30 days of pings."""
        now = now or datetime.now(timezone.utc)
        pings = PingRepository.list_since(self.db, endpoint.id, now - METRICS_LOOKBACK)
        metrics = calculate_metrics(pings, now=now)
        EndpointRepository.update_metrics(self.db, endpoint, metrics.as_dict())

    async def run_health_check_batch(self, batch_size: int = config.HEALTH_CHECK_BATCH_SIZE) -> Dict[str, Any]:
        """
        Probe one batch and persist the outcome.

        Returns counts for checked, successful, failed, errors (probes that
        raised unexpectedly) and deactivated endpoints.
        """
        with tracer.start_as_current_span("health.run_batch") as span:
            start = time.monotonic()
            span.set_attribute("batch.size", batch_size)

            endpoints = EndpointRepository.list_for_health_check(self.db, batch_size)
            logger.info("[Health] Checking %d endpoints", len(endpoints))

            stats = {"checked": 0, "successful": 0, "failed": 0, "errors": 0, "deactivated": 0}
            if not endpoints:
                return {**stats, "duration_ms": int((time.monotonic() - start) * 1000)}

            results = await self.prober.probe_batch(endpoints)

            ping_rows: List[dict] = []
            checked: List[Endpoint] = []
            for endpoint, result in zip(endpoints, results):
                if not isinstance(result, ProbeResult):
                    stats["errors"] += 1
                    logger.error("[Health] Probe raised for %s: %r", endpoint.resource_url, result)
                    continue

                stats["checked"] += 1
                stats["successful" if result.success else "failed"] += 1
                ping_rows.append(result.as_ping_values())
                if apply_probe_outcome(endpoint, result.success, now=result.pinged_at):
                    stats["deactivated"] += 1
                checked.append(endpoint)

            PingRepository.add_many(self.db, ping_rows)

            now = datetime.now(timezone.utc)
            for endpoint in checked:
                try:
                    self.recompute_metrics(endpoint, now=now)
                except SQLAlchemyError as exc:
                    self.db.rollback()
                    logger.error(
                        "[Health] Failed to update metrics for %s: %s",
                        endpoint.resource_url,
                        exc,
                        exc_info=True,
                    )

            duration_ms = int((time.monotonic() - start) * 1000)
            span.set_attribute("batch.checked", stats["checked"])
            span.set_attribute("batch.failed", stats["failed"])

        logger.info(
            "[Health] Completed in %dms: %d checked, %d successful, %d failed, %d deactivated",
            duration_ms,
            stats["checked"],
            stats["successful"],
            stats["failed"],
            stats["deactivated"],
        )
        return {**stats, "duration_ms": duration_ms}
