# src/clarity/repositories/price_history_repository.py
from datetime import date
from typing import List

from sqlalchemy.orm import Session
import logging
from opentelemetry import trace

from clarity.db.database import dialect_insert
from clarity.repositories.endpoint_repository import EndpointRepository
from clarity.models.price_history import PriceHistory

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PriceHistoryRepository:
    @staticmethod
    def record_snapshots(db: Session, day: date) -> int:
        """
        Snapshot today's price for every active priced endpoint.

        Rows that already exist for (endpoint, day) are left untouched.
        Returns the number of snapshot rows submitted.
        """
        with tracer.start_as_current_span("db.record_price_snapshots") as span:
            span.set_attribute("day", day.isoformat())

            priced = EndpointRepository.list_priced_active(db)
            if not priced:
                return 0

            rows = [
                {"endpoint_id": endpoint.id, "recorded_at": day, "price_micro_usdc": endpoint.price_micro_usdc}
                for endpoint in priced
            ]
            statement = dialect_insert(db, PriceHistory).values(rows).on_conflict_do_nothing(
                index_elements=["endpoint_id", "recorded_at"]
            )
            db.execute(statement)
            db.commit()
            span.set_attribute("snapshot.count", len(rows))

        logger.info("Recorded %d price snapshots for %s", len(rows), day.isoformat())
        return len(rows)

    @staticmethod
    def list_for_endpoint(db: Session, endpoint_id, since: date) -> List[PriceHistory]:
        """Snapshots from ``since`` onwards, oldest first."""
        with tracer.start_as_current_span("db.list_price_history") as span:
            span.set_attribute("endpoint_id", str(endpoint_id))
            return (
                db.query(PriceHistory)
                .filter(PriceHistory.endpoint_id == endpoint_id, PriceHistory.recorded_at >= since)
                .order_by(PriceHistory.recorded_at.asc())
                .all()
            )
