from datetime import date, datetime, timedelta, timezone

from clarity.models.endpoint import Endpoint
from clarity.models.price_history import PriceHistory
from clarity.repositories.category_repository import CategoryRepository
from clarity.repositories.endpoint_repository import EndpointRepository
from clarity.repositories.ping_repository import PingRepository
from clarity.repositories.price_history_repository import PriceHistoryRepository


def _values(**overrides):
    values = {
        "description": "Weather forecast",
        "category": "data-feeds",
        "tags": ["api"],
        "raw_data": {"resource": "https://api.weather.test/forecast"},
        "price_micro_usdc": 10_000,
        "network": "base",
        "pay_to_address": "0xabc",
        "source": "bazaar",
    }
    values.update(overrides)
    return values


class TestUpsert:

    def test_insert_then_update_by_normalized_url(self, db):
        endpoint, created = EndpointRepository.upsert_from_source(
            db, "https://API.Weather.test/forecast/", _values()
        )
        assert created is True
        assert endpoint.resource_url == "https://api.weather.test/forecast"
        assert endpoint.first_indexed_at is not None

        again, created = EndpointRepository.upsert_from_source(
            db, "https://api.weather.test/forecast", _values(price_micro_usdc=20_000)
        )

        assert created is False
        assert again.id == endpoint.id
        assert again.price_micro_usdc == 20_000
        assert db.query(Endpoint).count() == 1

    def test_upsert_reactivates_without_touching_metrics(self, db, make_endpoint):
        existing = make_endpoint(
            "https://api.weather.test/forecast",
            is_active=False,
            consecutive_failures=10,
            uptime_24h=42.0,
            avg_latency_ms=900,
        )

        endpoint, created = EndpointRepository.upsert_from_source(db, existing.resource_url, _values())

        assert created is False
        assert endpoint.is_active is True
        assert endpoint.consecutive_failures == 0
        assert endpoint.uptime_24h == 42.0
        assert endpoint.avg_latency_ms == 900

    def test_get_by_url_normalizes(self, db, make_endpoint):
        existing = make_endpoint("https://api.weather.test/forecast")

        assert EndpointRepository.get_by_url(db, "HTTPS://API.WEATHER.TEST/forecast/").id == existing.id
        assert EndpointRepository.get_by_url(db, "https://api.weather.test/other") is None


class TestQueries:

    def test_health_check_order(self, db, make_endpoint):
        now = datetime.now(timezone.utc)
        old = make_endpoint("https://a.test/old", last_seen_at=now - timedelta(hours=3))
        recent = make_endpoint("https://a.test/recent", last_seen_at=now - timedelta(minutes=5))
        never = make_endpoint("https://a.test/never")
        make_endpoint("https://a.test/inactive", is_active=False)

        batch = EndpointRepository.list_for_health_check(db, limit=10)

        assert [e.id for e in batch] == [never.id, old.id, recent.id]
        assert len(EndpointRepository.list_for_health_check(db, limit=1)) == 1

    def test_update_metrics_overwrites_snapshot(self, db, make_endpoint):
        endpoint = make_endpoint(uptime_24h=50.0, error_rate=50.0)

        EndpointRepository.update_metrics(db, endpoint, {"uptime_24h": 100.0, "avg_latency_ms": 120})
        db.refresh(endpoint)

        assert endpoint.uptime_24h == 100.0
        assert endpoint.avg_latency_ms == 120
        assert endpoint.error_rate is None

    def test_active_in_category_requires_uptime(self, db, make_endpoint):
        scored = make_endpoint(category="search", uptime_24h=99.0)
        make_endpoint(category="search")
        make_endpoint(category="search", uptime_24h=99.0, is_active=False)
        make_endpoint(category="defi", uptime_24h=99.0)

        result = EndpointRepository.list_active_in_category(db, "search")

        assert [e.id for e in result] == [scored.id]

    def test_budget_excludes_unknown_price(self, db, make_endpoint):
        cheap = make_endpoint(uptime_24h=99.0, price_micro_usdc=100)
        make_endpoint(uptime_24h=99.0, price_micro_usdc=None)
        make_endpoint(uptime_24h=99.0, price_micro_usdc=5_000)
        make_endpoint(uptime_24h=80.0, price_micro_usdc=100)

        result = EndpointRepository.list_recommendation_candidates(db, min_uptime=90, budget=1_000)

        assert [e.id for e in result] == [cheap.id]

    def test_priced_active_includes_free_and_skips_unknown(self, db, make_endpoint):
        paid = make_endpoint(price_micro_usdc=1_000)
        free = make_endpoint(price_micro_usdc=0)
        make_endpoint(price_micro_usdc=None)
        make_endpoint(price_micro_usdc=500, is_active=False)

        result = EndpointRepository.list_priced_active(db)

        assert {e.id for e in result} == {paid.id, free.id}


class TestPings:

    def test_recent_and_windowed_pings(self, db, make_endpoint, add_pings):
        endpoint = make_endpoint()
        now = datetime.now(timezone.utc)
        add_pings(endpoint, [(True, 100, 10), (False, 300, 5), (True, 200, 60 * 24 * 40)], now=now)

        recent = PingRepository.recent(db, endpoint.id, limit=2)
        since = PingRepository.list_since(db, endpoint.id, now - timedelta(days=30))

        assert [p.latency_ms for p in recent] == [300, 100]
        assert len(since) == 2


class TestPriceHistory:

    def test_snapshot_is_once_per_day(self, db, make_endpoint):
        priced = make_endpoint(price_micro_usdc=1_000)
        make_endpoint(price_micro_usdc=None)
        make_endpoint(price_micro_usdc=2_000, is_active=False)
        today = date(2026, 3, 1)

        assert PriceHistoryRepository.record_snapshots(db, today) == 1
        priced.price_micro_usdc = 1_500
        db.commit()
        PriceHistoryRepository.record_snapshots(db, today)
        PriceHistoryRepository.record_snapshots(db, today + timedelta(days=1))

        rows = PriceHistoryRepository.list_for_endpoint(db, priced.id, today)
        assert [(r.recorded_at, r.price_micro_usdc) for r in rows] == [
            (today, 1_000),
            (today + timedelta(days=1), 1_500),
        ]
        assert db.query(PriceHistory).count() == 2


class TestCategories:

    def test_seed_is_idempotent(self, db):
        assert CategoryRepository.seed(db) == 8
        assert CategoryRepository.seed(db) == 0
        assert CategoryRepository.exists(db, "llm-inference")
        assert not CategoryRepository.exists(db, "weather")
        assert len(CategoryRepository.list_all(db)) == 8

    def test_refresh_counts_uses_active_endpoints(self, db, make_endpoint):
        CategoryRepository.seed(db)
        make_endpoint(category="search")
        make_endpoint(category="search")
        make_endpoint(category="defi")
        make_endpoint(category="defi", is_active=False)
        make_endpoint(category=None)

        assert CategoryRepository.refresh_counts(db) == {"search": 2, "defi": 1}

        ordered = CategoryRepository.list_all(db)
        assert [(c.slug, c.endpoint_count) for c in ordered[:2]] == [("search", 2), ("defi", 1)]
        assert all(c.endpoint_count == 0 for c in ordered[2:])


class TestSearchActive:

    def test_filters_and_total(self, db, make_endpoint):
        match = make_endpoint("https://a.test/weather", category="data-feeds", description="Weather API",
                              uptime_24h=99.0, price_micro_usdc=100)
        make_endpoint("https://a.test/weather-pricey", category="data-feeds", description="Weather API",
                      uptime_24h=99.0, price_micro_usdc=9_000)
        make_endpoint("https://a.test/weather-flaky", category="data-feeds", description="Weather API",
                      uptime_24h=50.0, price_micro_usdc=100)
        make_endpoint("https://a.test/weather-off", category="data-feeds", description="Weather API",
                      uptime_24h=99.0, price_micro_usdc=100, is_active=False)

        rows, total = EndpointRepository.search_active(
            db, category="data-feeds", min_uptime=90, max_price=1_000, search="WEATHER",
        )

        assert total == 1
        assert [e.id for e in rows] == [match.id]

    def test_search_matches_url(self, db, make_endpoint):
        hit = make_endpoint("https://maps.test/geocode", description="Location lookup")
        make_endpoint("https://other.test/x", description="Something else")

        rows, total = EndpointRepository.search_active(db, search="geocode")

        assert total == 1
        assert rows[0].id == hit.id

    def test_sort_puts_missing_values_last(self, db, make_endpoint):
        cheap = make_endpoint("https://a.test/cheap", price_micro_usdc=10)
        pricey = make_endpoint("https://a.test/pricey", price_micro_usdc=500)
        unknown = make_endpoint("https://a.test/unknown")

        ascending, _ = EndpointRepository.search_active(db, sort_column="price_micro_usdc", ascending=True)
        descending, _ = EndpointRepository.search_active(db, sort_column="price_micro_usdc")

        assert [e.id for e in ascending] == [cheap.id, pricey.id, unknown.id]
        assert [e.id for e in descending] == [pricey.id, cheap.id, unknown.id]

    def test_offset_and_limit(self, db, make_endpoint):
        for i in range(5):
            make_endpoint(f"https://a.test/{i}", uptime_24h=90.0 + i)

        rows, total = EndpointRepository.search_active(db, limit=2, offset=1)

        assert total == 5
        assert [e.resource_url for e in rows] == ["https://a.test/3", "https://a.test/2"]

    def test_count_active(self, db, make_endpoint):
        make_endpoint(category="search")
        make_endpoint()
        make_endpoint(is_active=False)

        assert EndpointRepository.count_active(db) == 2
        assert EndpointRepository.count_active(db, uncategorized=True) == 1
