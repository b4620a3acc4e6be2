"""
Reliability metrics derived from ping history.

Everything here is pure: the caller loads at least 30 days of pings and
persists the result.
"""
from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, List, Optional, Sequence

from clarity.utils.number_utils import round_half_up

UPTIME_WINDOWS = {
    "uptime_24h": timedelta(hours=24),
    "uptime_7d": timedelta(days=7),
    "uptime_30d": timedelta(days=30),
}
METRICS_LOOKBACK = timedelta(days=30)
P95 = 95
RECENT_PING_COUNT = 10


@dataclass(frozen=True)
class MetricsResult:
    uptime_24h: Optional[float] = None
    uptime_7d: Optional[float] = None
    uptime_30d: Optional[float] = None
    avg_latency_ms: Optional[int] = None
    p95_latency_ms: Optional[int] = None
    error_rate: Optional[float] = None

    def as_dict(self) -> dict:
        return asdict(self)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def calculate_uptime(pings: Sequence[Any]) -> Optional[float]:
    """Percentage of successful pings, 2 dp; None when there are no pings."""
    if not pings:
        return None
    successful = sum(1 for p in pings if p.success)
    return round_half_up(successful / len(pings) * 100, 2)


def percentile(values: Sequence[float], p: float) -> float:
    """Nearest-rank percentile (no interpolation)."""
    ordered = sorted(values)
    index = math.ceil(p / 100 * len(ordered)) - 1
    return ordered[max(0, index)]


def calculate_metrics(pings: Sequence[Any], now: Optional[datetime] = None) -> MetricsResult:
    """
    Reduce a ping history into uptime / latency / error-rate aggregates.

    - Uptime windows roll back from ``now``
    - Latency uses successful pings that carry a latency
    - Error rate covers every ping passed in, not just a window
    """
    if not pings:
        return MetricsResult()

    now = _as_utc(now or datetime.now(timezone.utc))

    uptimes = {}
    for field_name, window in UPTIME_WINDOWS.items():
        cutoff = now - window
        in_window = [p for p in pings if _as_utc(p.pinged_at) >= cutoff]
        uptimes[field_name] = calculate_uptime(in_window)

    latencies = [p.latency_ms for p in pings if p.success and p.latency_ms is not None]
    avg_latency = int(round_half_up(sum(latencies) / len(latencies))) if latencies else None
    p95_latency = int(round_half_up(percentile(latencies, P95))) if latencies else None

    failed = sum(1 for p in pings if not p.success)
    error_rate = round_half_up(failed / len(pings) * 100, 4)

    return MetricsResult(
        avg_latency_ms=avg_latency,
        p95_latency_ms=p95_latency,
        error_rate=error_rate,
        **uptimes,
    )


def determine_status(endpoint: Any, recent_pings: List[Any]) -> str:
    """
    Summarize current health as operational / degraded / down / unknown.

    ``recent_pings`` is the latest handful of pings (newest first).
    """
    if not endpoint.is_active:
        return "down"

    if not recent_pings:
        return "unknown"

    recent_rate = sum(1 for p in recent_pings if p.success) / len(recent_pings)

    if recent_rate >= 0.9 and endpoint.consecutive_failures == 0:
        return "operational"

    if recent_rate >= 0.5 or (endpoint.uptime_24h is not None and endpoint.uptime_24h >= 90):
        return "degraded"

    return "down"
