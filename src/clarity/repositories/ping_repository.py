# src/clarity/repositories/ping_repository.py
from datetime import datetime
from typing import Iterable, List

from sqlalchemy.orm import Session
import logging
from opentelemetry import trace

from clarity.models.ping import Ping

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class PingRepository:
    @staticmethod
    def add_many(db: Session, rows: Iterable[dict]) -> int:
        """Append ping rows; pings are never updated afterwards."""
        with tracer.start_as_current_span("db.insert_pings") as span:
            pings = [Ping(**row) for row in rows]
            db.add_all(pings)
            db.commit()
            span.set_attribute("ping.count", len(pings))

        logger.debug("Inserted %d pings", len(pings))
        return len(pings)

    @staticmethod
    def list_since(db: Session, endpoint_id, since: datetime) -> List[Ping]:
        """Windowed range scan, newest first."""
        with tracer.start_as_current_span("db.list_pings_since") as span:
            span.set_attribute("endpoint_id", str(endpoint_id))
            return (
                db.query(Ping)
                .filter(Ping.endpoint_id == endpoint_id, Ping.pinged_at >= since)
                .order_by(Ping.pinged_at.desc())
                .all()
            )

    @staticmethod
    def recent(db: Session, endpoint_id, limit: int = 10) -> List[Ping]:
        return (
            db.query(Ping)
            .filter(Ping.endpoint_id == endpoint_id)
            .order_by(Ping.pinged_at.desc())
            .limit(limit)
            .all()
        )
