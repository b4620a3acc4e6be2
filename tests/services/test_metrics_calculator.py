from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

from clarity.services.metrics_calculator import (
    calculate_metrics,
    calculate_uptime,
    determine_status,
    percentile,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _ping(success=True, latency_ms=100, hours_ago=1.0):
    return SimpleNamespace(
        success=success,
        latency_ms=latency_ms,
        pinged_at=NOW - timedelta(hours=hours_ago),
    )


def _endpoint(is_active=True, consecutive_failures=0, uptime_24h=None):
    return SimpleNamespace(
        is_active=is_active,
        consecutive_failures=consecutive_failures,
        uptime_24h=uptime_24h,
    )


class TestCalculateMetrics:

    def test_no_pings_gives_all_null(self):
        result = calculate_metrics([], now=NOW)

        assert result.as_dict() == {
            "uptime_24h": None,
            "uptime_7d": None,
            "uptime_30d": None,
            "avg_latency_ms": None,
            "p95_latency_ms": None,
            "error_rate": None,
        }

    def test_uptime_windows(self):
        recent = [_ping(success=i < 7, hours_ago=i + 1) for i in range(10)]
        older = [_ping(success=True, hours_ago=48 + i) for i in range(5)]

        result = calculate_metrics(recent + older, now=NOW)

        assert result.uptime_24h == 70.0
        assert result.uptime_7d == 80.0
        assert result.uptime_30d == 80.0
        assert result.error_rate == 20.0

    def test_empty_window_is_null(self):
        result = calculate_metrics([_ping(hours_ago=72)], now=NOW)

        assert result.uptime_24h is None
        assert result.uptime_7d == 100.0

    def test_latency_uses_successful_pings_only(self):
        pings = [
            _ping(latency_ms=100),
            _ping(latency_ms=201),
            _ping(success=False, latency_ms=5000),
            _ping(latency_ms=None),
        ]

        result = calculate_metrics(pings, now=NOW)

        # mean of 100 and 201 is 150.5, rounded half up
        assert result.avg_latency_ms == 151
        assert result.p95_latency_ms == 201
        assert result.error_rate == 25.0

    def test_latency_null_when_nothing_succeeded(self):
        result = calculate_metrics([_ping(success=False)], now=NOW)

        assert result.avg_latency_ms is None
        assert result.p95_latency_ms is None
        assert result.uptime_24h == 0.0
        assert result.error_rate == 100.0

    def test_error_rate_precision(self):
        pings = [_ping(success=False)] + [_ping() for _ in range(2)]

        assert calculate_metrics(pings, now=NOW).error_rate == 33.3333

    def test_error_rate_rounds_half_up(self):
        # 1/128 failed = 0.78125%
        pings = [_ping(success=False)] + [_ping() for _ in range(127)]

        assert calculate_metrics(pings, now=NOW).error_rate == 0.7813

    def test_naive_timestamps_are_treated_as_utc(self):
        ping = SimpleNamespace(success=True, latency_ms=50, pinged_at=(NOW - timedelta(hours=2)).replace(tzinfo=None))

        assert calculate_metrics([ping], now=NOW).uptime_24h == 100.0


class TestPercentile:

    def test_nearest_rank(self):
        latencies = [1000, 100, 300, 200, 500, 400, 700, 600, 900, 800]

        # ceil(0.95 * 10) - 1 = 9 -> largest sample
        assert percentile(latencies, 95) == 1000
        assert percentile(latencies, 50) == 500

    def test_single_value(self):
        assert percentile([42], 95) == 42

    def test_uptime_rounds_to_two_places(self):
        pings = [_ping(), _ping(), _ping(success=False)]
        assert calculate_uptime(pings) == 66.67

    def test_uptime_rounds_half_up(self):
        # 1/32 successful = 3.125%
        pings = [_ping()] + [_ping(success=False) for _ in range(31)]
        assert calculate_uptime(pings) == 3.13


class TestDetermineStatus:

    def test_inactive_is_down(self):
        assert determine_status(_endpoint(is_active=False), [_ping()]) == "down"

    def test_no_pings_is_unknown(self):
        assert determine_status(_endpoint(), []) == "unknown"

    def test_operational(self):
        pings = [_ping() for _ in range(9)] + [_ping(success=False)]
        assert determine_status(_endpoint(), pings) == "operational"

    def test_recent_failure_streak_is_degraded(self):
        pings = [_ping() for _ in range(10)]
        assert determine_status(_endpoint(consecutive_failures=1), pings) == "degraded"

    def test_high_daily_uptime_is_degraded(self):
        pings = [_ping(success=False) for _ in range(8)] + [_ping(), _ping()]
        assert determine_status(_endpoint(consecutive_failures=3, uptime_24h=92.0), pings) == "degraded"

    def test_mostly_failing_is_down(self):
        pings = [_ping(success=False) for _ in range(8)] + [_ping(), _ping()]
        assert determine_status(_endpoint(consecutive_failures=8, uptime_24h=40.0), pings) == "down"
