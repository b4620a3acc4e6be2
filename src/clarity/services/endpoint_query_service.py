"""
Read paths over the endpoint index: listing and search, the category
directory, category comparison, task recommendation, per-endpoint health
and price history.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session
from opentelemetry import trace

from clarity.models.endpoint import Endpoint
from clarity.repositories.category_repository import CategoryRepository
from clarity.repositories.endpoint_repository import EndpointRepository
from clarity.repositories.ping_repository import PingRepository
from clarity.repositories.price_history_repository import PriceHistoryRepository
from clarity.services.metrics_calculator import RECENT_PING_COUNT, determine_status
from clarity.services.price_trends import calculate_price_stats
from clarity.services.scoring import SORT_OPTIONS, rank_for_comparison, select_recommendation

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MAX_COMPARE_LIMIT = 50
DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100
MAX_HISTORY_DAYS = 365
DEFAULT_HISTORY_DAYS = 30

NO_MATCH_SUGGESTIONS = [
    "Try a different task category",
    "Increase your budget",
    "Lower the minimum uptime requirement",
]

# Public sort names for listings -> endpoint columns; unknown names fall back to uptime.
LIST_SORT_COLUMNS = {
    "uptime": "uptime_24h",
    "price": "price_micro_usdc",
    "latency": "avg_latency_ms",
}


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def summarize_endpoint(endpoint: Endpoint) -> Dict[str, Any]:
    return {
        "id": str(endpoint.id),
        "resource_url": endpoint.resource_url,
        "description": endpoint.description,
        "category": endpoint.category,
        "tags": list(endpoint.tags or []),
        "price_micro_usdc": endpoint.price_micro_usdc,
        "network": endpoint.network,
        "uptime_24h": endpoint.uptime_24h,
        "avg_latency_ms": endpoint.avg_latency_ms,
    }


def matches_task(endpoint: Endpoint, task: str) -> bool:
    """Case-insensitive substring on description/category, or exact tag."""
    needle = task.casefold()
    if endpoint.description and needle in endpoint.description.casefold():
        return True
    if endpoint.category and needle in endpoint.category.casefold():
        return True
    return task in (endpoint.tags or [])


class EndpointQueryService:
    def __init__(self, db: Session):
        self.db = db

    def list_endpoints(
        self,
        category: Optional[str] = None,
        min_uptime: Optional[float] = None,
        max_price: Optional[int] = None,
        search: Optional[str] = None,
        sort: str = "uptime",
        order: str = "desc",
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> Dict[str, Any]:
        """Filtered, paginated listing of active endpoints."""
        limit = min(max(int(limit), 1), MAX_LIST_LIMIT)
        offset = max(int(offset), 0)

        with tracer.start_as_current_span("query.list_endpoints") as span:
            span.set_attribute("sort", sort)
            endpoints, total = EndpointRepository.search_active(
                self.db,
                category=category,
                min_uptime=min_uptime,
                max_price=max_price,
                search=search or None,
                sort_column=LIST_SORT_COLUMNS.get(sort, LIST_SORT_COLUMNS["uptime"]),
                ascending=order == "asc",
                limit=limit,
                offset=offset,
            )

        return {
            "endpoints": [
                {
                    **summarize_endpoint(e),
                    "uptime_7d": e.uptime_7d,
                    "p95_latency_ms": e.p95_latency_ms,
                    "last_seen_at": _iso(e.last_seen_at),
                    "is_active": e.is_active,
                    "updated_at": _iso(e.updated_at),
                }
                for e in endpoints
            ],
            "pagination": {
                "total": total,
                "limit": limit,
                "offset": offset,
                "has_more": offset + limit < total,
            },
        }

    def list_categories(self) -> Dict[str, Any]:
        categories = CategoryRepository.list_all(self.db)
        return {
            "categories": [
                {
                    "slug": c.slug,
                    "name": c.name,
                    "description": c.description,
                    "icon": c.icon,
                    "endpoint_count": c.endpoint_count,
                }
                for c in categories
            ],
            "summary": {
                "total_categories": len(categories),
                "total_endpoints": EndpointRepository.count_active(self.db),
                "uncategorized": EndpointRepository.count_active(self.db, uncategorized=True),
            },
        }

    def compare_category(self, category: str, sort: str = "score", limit: int = 10) -> Dict[str, Any]:
        with tracer.start_as_current_span("query.compare_category") as span:
            span.set_attribute("category", category)
            sort = sort if sort in SORT_OPTIONS else "score"
            limit = min(max(int(limit), 1), MAX_COMPARE_LIMIT)

            endpoints = EndpointRepository.list_active_in_category(self.db, category)
            ranked = rank_for_comparison(endpoints, sort=sort, limit=limit)

        result: Dict[str, Any] = {
            "category": category,
            "sorted_by": sort,
            "endpoints": [
                {**summarize_endpoint(item["endpoint"]), "score": item["score"], "rank": item["rank"]}
                for item in ranked
            ],
            "total_in_category": len(endpoints),
        }
        if not endpoints:
            result["message"] = f"No active endpoints with health data in category '{category}'"
        return result

    def recommend(self, task: str, budget: Optional[int] = None, min_uptime: float = 90) -> Dict[str, Any]:
        """
        Best endpoint for ``task`` plus up to three alternatives.

        ``task`` is treated as a category slug when one exists, otherwise
        as free text matched against descriptions, categories and tags.
        """
        with tracer.start_as_current_span("query.recommend") as span:
            span.set_attribute("task", task)
            is_category = CategoryRepository.exists(self.db, task)

            candidates = EndpointRepository.list_recommendation_candidates(
                self.db,
                min_uptime=min_uptime,
                category=task if is_category else None,
                budget=budget,
            )
            if not is_category:
                candidates = [c for c in candidates if matches_task(c, task)]

            span.set_attribute("candidates", len(candidates))
            selection = select_recommendation(candidates, task, budget)

        if selection is None:
            logger.info("No recommendation for task %r (budget=%s, min_uptime=%s)", task, budget, min_uptime)
            return {
                "recommendation": None,
                "alternatives": [],
                "total_matches": 0,
                "suggestions": list(NO_MATCH_SUGGESTIONS),
            }

        best = selection["recommendation"]
        return {
            "recommendation": {
                **summarize_endpoint(best["endpoint"]),
                "score": best["score"],
                "reasoning": best["reasoning"],
            },
            "alternatives": [
                {**summarize_endpoint(alt["endpoint"]), "rank": alt["rank"], "score": alt["score"]}
                for alt in selection["alternatives"]
            ],
            "total_matches": selection["total_matches"],
        }

    def endpoint_health(self, url: str) -> Optional[Dict[str, Any]]:
        endpoint = EndpointRepository.get_by_url(self.db, url)
        if endpoint is None:
            return None

        recent = PingRepository.recent(self.db, endpoint.id, limit=RECENT_PING_COUNT)
        return {
            "endpoint": summarize_endpoint(endpoint),
            "status": determine_status(endpoint, recent),
            "metrics": {
                "uptime_24h": endpoint.uptime_24h,
                "uptime_7d": endpoint.uptime_7d,
                "uptime_30d": endpoint.uptime_30d,
                "avg_latency_ms": endpoint.avg_latency_ms,
                "p95_latency_ms": endpoint.p95_latency_ms,
                "error_rate": endpoint.error_rate,
            },
            "last_seen_at": _iso(endpoint.last_seen_at),
            "last_error_at": _iso(endpoint.last_error_at),
            "consecutive_failures": endpoint.consecutive_failures,
            "is_active": endpoint.is_active,
            "recent_pings": [
                {
                    "pinged_at": _iso(p.pinged_at),
                    "success": p.success,
                    "status_code": p.status_code,
                    "latency_ms": p.latency_ms,
                    "error_message": p.error_message,
                }
                for p in recent
            ],
        }

    def price_history(self, endpoint_id, days: int = DEFAULT_HISTORY_DAYS) -> Optional[Dict[str, Any]]:
        endpoint = EndpointRepository.get(self.db, endpoint_id)
        if endpoint is None:
            return None

        days = min(max(int(days), 1), MAX_HISTORY_DAYS)
        end = datetime.now(timezone.utc).date()
        start = end - timedelta(days=days)

        history = PriceHistoryRepository.list_for_endpoint(self.db, endpoint.id, start)
        return {
            "endpoint": summarize_endpoint(endpoint),
            "history": [
                {"date": row.recorded_at.isoformat(), "price_micro_usdc": row.price_micro_usdc}
                for row in history
            ],
            "stats": calculate_price_stats(history, endpoint.price_micro_usdc),
            "period": {"days": days, "start": start.isoformat(), "end": end.isoformat()},
        }
