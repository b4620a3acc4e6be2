from types import SimpleNamespace

import pytest

from clarity.services.scoring import (
    comparison_score,
    format_usd,
    generate_reasoning,
    rank_for_comparison,
    recommendation_score,
    select_recommendation,
)


def _endpoint(name="e", uptime_24h=99.0, avg_latency_ms=100, price_micro_usdc=1000):
    return SimpleNamespace(
        name=name,
        uptime_24h=uptime_24h,
        avg_latency_ms=avg_latency_ms,
        price_micro_usdc=price_micro_usdc,
    )


class TestScores:

    def test_comparison_score_weights(self):
        # 0.4 * 0.99 + 0.3 * 0.95 + 0.3 * 0.999
        assert comparison_score(_endpoint()) == 0.98

    def test_missing_metrics_contribute_zero(self):
        assert comparison_score(_endpoint(uptime_24h=None, avg_latency_ms=None, price_micro_usdc=None)) == 0.0

    def test_comparison_score_bounds(self):
        assert comparison_score(_endpoint(uptime_24h=100.0, avg_latency_ms=0, price_micro_usdc=0)) == 1.0
        assert comparison_score(_endpoint(uptime_24h=0.0, avg_latency_ms=5000, price_micro_usdc=5_000_000)) == 0.0

    def test_scores_are_monotonic(self):
        base = _endpoint(uptime_24h=95.0, avg_latency_ms=400, price_micro_usdc=50_000)

        assert comparison_score(_endpoint(uptime_24h=99.0, avg_latency_ms=400, price_micro_usdc=50_000)) >= comparison_score(base)
        assert comparison_score(_endpoint(uptime_24h=95.0, avg_latency_ms=100, price_micro_usdc=50_000)) >= comparison_score(base)
        assert comparison_score(_endpoint(uptime_24h=95.0, avg_latency_ms=400, price_micro_usdc=10_000)) >= comparison_score(base)

    def test_recommendation_score_rewards_budget_headroom(self):
        endpoint = _endpoint(uptime_24h=100.0, avg_latency_ms=200, price_micro_usdc=50_000)

        # 0.5 * 1.0 + 0.25 * 0.9 + 0.25 * 0.5
        assert recommendation_score(endpoint, budget=100_000) == 0.85

        cheap = _endpoint(uptime_24h=100.0, avg_latency_ms=200, price_micro_usdc=10_000)
        assert recommendation_score(cheap, budget=100_000) > recommendation_score(endpoint, budget=100_000)

    def test_recommendation_score_without_budget_uses_fixed_anchor(self):
        endpoint = _endpoint(uptime_24h=100.0, avg_latency_ms=200, price_micro_usdc=50_000)
        # 0.5 + 0.225 + 0.25 * 0.95
        assert recommendation_score(endpoint) == pytest.approx(0.96)


class TestRanking:

    def test_rank_by_score(self):
        slow = _endpoint("slow", avg_latency_ms=1500)
        fast = _endpoint("fast", avg_latency_ms=50)

        ranked = rank_for_comparison([slow, fast])

        assert [item["endpoint"].name for item in ranked] == ["fast", "slow"]
        assert [item["rank"] for item in ranked] == [1, 2]

    def test_unknown_price_sorts_last(self):
        unpriced = _endpoint("unpriced", price_micro_usdc=None)
        pricey = _endpoint("pricey", price_micro_usdc=90_000)
        cheap = _endpoint("cheap", price_micro_usdc=10)

        ranked = rank_for_comparison([unpriced, pricey, cheap], sort="price")

        assert [item["endpoint"].name for item in ranked] == ["cheap", "pricey", "unpriced"]

    def test_uptime_and_latency_sorts(self):
        a = _endpoint("a", uptime_24h=None, avg_latency_ms=None)
        b = _endpoint("b", uptime_24h=90.0, avg_latency_ms=300)
        c = _endpoint("c", uptime_24h=99.0, avg_latency_ms=800)

        assert [i["endpoint"].name for i in rank_for_comparison([a, b, c], sort="uptime")] == ["c", "b", "a"]
        assert [i["endpoint"].name for i in rank_for_comparison([a, b, c], sort="latency")] == ["b", "c", "a"]

    def test_unknown_sort_falls_back_to_score_and_limit_applies(self):
        endpoints = [_endpoint(str(i), uptime_24h=50.0 + 10 * i) for i in range(5)]

        ranked = rank_for_comparison(endpoints, sort="popularity", limit=2)

        assert [item["endpoint"].name for item in ranked] == ["4", "3"]


class TestReasoning:

    def test_full_reasoning_order(self):
        best = _endpoint(uptime_24h=99.5, avg_latency_ms=150, price_micro_usdc=10_000)

        reasons = generate_reasoning(best, [_endpoint(), _endpoint()], "weather", budget=100_000)

        assert reasons == [
            'Best match for "weather" based on quality and value.',
            "Excellent reliability with 99.5% uptime.",
            "Fast response time (150ms average).",
            "Priced at $0.0100 per request.",
            "Well under your $0.1000 budget.",
            "2 alternatives available.",
        ]

    def test_minimal_reasoning(self):
        best = _endpoint(uptime_24h=96.0, avg_latency_ms=900, price_micro_usdc=80_000)

        reasons = generate_reasoning(best, [_endpoint()], "search", budget=100_000)

        assert reasons == [
            'Best match for "search" based on quality and value.',
            "Good reliability with 96% uptime.",
            "Priced at $0.0800 per request.",
            "1 alternative available.",
        ]

    def test_format_usd(self):
        assert format_usd(1_000_000) == "$1.0000"
        assert format_usd(1234) == "$0.0012"


class TestSelectRecommendation:

    def test_best_and_three_alternatives(self):
        candidates = [_endpoint(str(i), uptime_24h=50.0 + 10 * i) for i in range(5)]

        selection = select_recommendation(candidates, "data-feeds")

        assert selection["recommendation"]["endpoint"].name == "4"
        assert [alt["rank"] for alt in selection["alternatives"]] == [2, 3, 4]
        assert [alt["endpoint"].name for alt in selection["alternatives"]] == ["3", "2", "1"]
        assert selection["total_matches"] == 5
        assert selection["recommendation"]["reasoning"][-1] == "3 alternatives available."

    def test_no_candidates(self):
        assert select_recommendation([], "anything") is None
