# src/clarity/repositories/endpoint_repository.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session
import logging
from opentelemetry import trace

from clarity.models.endpoint import Endpoint
from clarity.utils.url_utils import normalize_resource_url

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Fields an ingestion run owns. Reliability columns are never written here.
INGESTED_FIELDS = (
    "description",
    "category",
    "tags",
    "raw_data",
    "price_micro_usdc",
    "network",
    "pay_to_address",
    "source",
)

METRIC_FIELDS = (
    "uptime_24h",
    "uptime_7d",
    "uptime_30d",
    "avg_latency_ms",
    "p95_latency_ms",
    "error_rate",
)


class EndpointRepository:
    @staticmethod
    def get(db: Session, endpoint_id) -> Optional[Endpoint]:
        return db.query(Endpoint).filter(Endpoint.id == endpoint_id).first()

    @staticmethod
    def get_by_url(db: Session, resource_url: str) -> Optional[Endpoint]:
        """Point lookup by business key; the URL is normalized first."""
        with tracer.start_as_current_span("db.get_endpoint_by_url") as span:
            key = normalize_resource_url(resource_url)
            span.set_attribute("endpoint.url", key)
            return db.query(Endpoint).filter(Endpoint.resource_url == key).first()

    @staticmethod
    def upsert_from_source(db: Session, resource_url: str, values: Dict[str, Any]) -> Tuple[Endpoint, bool]:
        """
        Insert or update the endpoint keyed by normalized URL.

        An upsert always re-activates the endpoint and clears its failure
        streak. Returns ``(endpoint, created)``.
        """
        with tracer.start_as_current_span("db.upsert_endpoint") as span:
            key = normalize_resource_url(resource_url)
            span.set_attribute("endpoint.url", key)

            endpoint = db.query(Endpoint).filter(Endpoint.resource_url == key).first()
            created = endpoint is None
            if created:
                endpoint = Endpoint(resource_url=key)
                db.add(endpoint)

            for field in INGESTED_FIELDS:
                if field in values:
                    setattr(endpoint, field, values[field])

            endpoint.is_active = True
            endpoint.consecutive_failures = 0
            endpoint.updated_at = datetime.now(timezone.utc)

            db.commit()
            db.refresh(endpoint)
            span.set_attribute("endpoint.created", created)

        logger.debug("%s endpoint %s", "Inserted" if created else "Updated", key)
        return endpoint, created

    @staticmethod
    def list_for_health_check(db: Session, limit: int) -> List[Endpoint]:
        """Active endpoints, never-seen first, then least recently seen."""
        with tracer.start_as_current_span("db.list_endpoints_for_health_check") as span:
            span.set_attribute("limit", limit)
            return (
                db.query(Endpoint)
                .filter(Endpoint.is_active.is_(True))
                .order_by(Endpoint.last_seen_at.is_(None).desc(), Endpoint.last_seen_at.asc())
                .limit(limit)
                .all()
            )

    @staticmethod
    def update_metrics(db: Session, endpoint: Endpoint, metrics: Dict[str, Any]) -> Endpoint:
        """Overwrite the whole reliability snapshot."""
        for field in METRIC_FIELDS:
            setattr(endpoint, field, metrics.get(field))
        db.commit()
        return endpoint

    @staticmethod
    def list_active_in_category(db: Session, category: str) -> List[Endpoint]:
        """Active endpoints in ``category`` that have at least one uptime reading."""
        with tracer.start_as_current_span("db.list_active_in_category") as span:
            span.set_attribute("category", category)
            return (
                db.query(Endpoint)
                .filter(
                    Endpoint.category == category,
                    Endpoint.is_active.is_(True),
                    Endpoint.uptime_24h.isnot(None),
                )
                .order_by(Endpoint.resource_url.asc())
                .all()
            )

    @staticmethod
    def list_recommendation_candidates(
        db: Session,
        min_uptime: float,
        category: Optional[str] = None,
        budget: Optional[int] = None,
    ) -> List[Endpoint]:
        with tracer.start_as_current_span("db.list_recommendation_candidates") as span:
            span.set_attribute("min_uptime", min_uptime)
            query = db.query(Endpoint).filter(
                Endpoint.is_active.is_(True),
                Endpoint.uptime_24h >= min_uptime,
            )
            if category is not None:
                query = query.filter(Endpoint.category == category)
            if budget is not None:
                query = query.filter(Endpoint.price_micro_usdc <= budget)
            return query.order_by(Endpoint.resource_url.asc()).all()

    @staticmethod
    def list_priced_active(db: Session) -> List[Endpoint]:
        return (
            db.query(Endpoint)
            .filter(Endpoint.is_active.is_(True), Endpoint.price_micro_usdc.isnot(None))
            .all()
        )

    @staticmethod
    def search_active(
        db: Session,
        category: Optional[str] = None,
        min_uptime: Optional[float] = None,
        max_price: Optional[int] = None,
        search: Optional[str] = None,
        sort_column: str = "uptime_24h",
        ascending: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Endpoint], int]:
        """
        Filtered page of active endpoints plus the total match count.

        Rows with no value in ``sort_column`` always sort last.
        """
        with tracer.start_as_current_span("db.search_active_endpoints") as span:
            span.set_attribute("sort", sort_column)
            query = db.query(Endpoint).filter(Endpoint.is_active.is_(True))
            if category is not None:
                query = query.filter(Endpoint.category == category)
            if min_uptime is not None:
                query = query.filter(Endpoint.uptime_24h >= min_uptime)
            if max_price is not None:
                query = query.filter(Endpoint.price_micro_usdc <= max_price)
            if search:
                pattern = f"%{search}%"
                query = query.filter(or_(Endpoint.description.ilike(pattern), Endpoint.resource_url.ilike(pattern)))

            total = query.count()
            column = getattr(Endpoint, sort_column)
            rows = (
                query.order_by(
                    column.is_(None).asc(),
                    column.asc() if ascending else column.desc(),
                    Endpoint.resource_url.asc(),
                )
                .offset(offset)
                .limit(limit)
                .all()
            )
            span.set_attribute("total", total)
            return rows, total

    @staticmethod
    def count_active(db: Session, uncategorized: bool = False) -> int:
        query = db.query(Endpoint).filter(Endpoint.is_active.is_(True))
        if uncategorized:
            query = query.filter(Endpoint.category.is_(None))
        return query.count()
