"""
Quality scoring for comparing and recommending endpoints.

Both scores use fixed anchors (2000ms latency, $1 = 1,000,000 micro-units)
rather than the min/max of the candidate set, so a score does not change when
other endpoints are added.
"""
import math
from typing import Any, Callable, Dict, List, Optional, Sequence

from clarity.utils.number_utils import round_half_up

LATENCY_ANCHOR_MS = 2000
PRICE_ANCHOR_MICRO_USDC = 1_000_000
MICRO_UNITS_PER_USD = 1_000_000

COMPARISON_WEIGHTS = {"uptime": 0.4, "latency": 0.3, "price": 0.3}
RECOMMENDATION_WEIGHTS = {"uptime": 0.5, "latency": 0.25, "price": 0.25}

SORT_OPTIONS = ("score", "price", "uptime", "latency")
MAX_ALTERNATIVES = 3


def _uptime_term(uptime_24h: Optional[float]) -> float:
    return uptime_24h / 100 if uptime_24h is not None else 0.0


def _latency_term(avg_latency_ms: Optional[float]) -> float:
    if avg_latency_ms is None:
        return 0.0
    return max(0.0, 1 - avg_latency_ms / LATENCY_ANCHOR_MS)


def _price_term(price: Optional[float], anchor: float) -> float:
    if price is None or not anchor:
        return 0.0
    return max(0.0, 1 - price / anchor)


def comparison_score(endpoint: Any) -> float:
    """Weighted 40/30/30 uptime/latency/price score in [0, 1], 2 dp."""
    score = (
        COMPARISON_WEIGHTS["uptime"] * _uptime_term(endpoint.uptime_24h)
        + COMPARISON_WEIGHTS["latency"] * _latency_term(endpoint.avg_latency_ms)
        + COMPARISON_WEIGHTS["price"] * _price_term(endpoint.price_micro_usdc, PRICE_ANCHOR_MICRO_USDC)
    )
    return round_half_up(score, 2)


def recommendation_score(endpoint: Any, budget: Optional[int] = None) -> float:
    """
    Weighted 50/25/25 score. With a budget the price term rewards being well
    under it; without one it falls back to the fixed $1 anchor.
    """
    price_anchor = budget if budget else PRICE_ANCHOR_MICRO_USDC
    score = (
        RECOMMENDATION_WEIGHTS["uptime"] * _uptime_term(endpoint.uptime_24h)
        + RECOMMENDATION_WEIGHTS["latency"] * _latency_term(endpoint.avg_latency_ms)
        + RECOMMENDATION_WEIGHTS["price"] * _price_term(endpoint.price_micro_usdc, price_anchor)
    )
    return round_half_up(score, 2)


def _ascending_or_inf(value: Optional[float]) -> float:
    return value if value is not None else math.inf


_SORT_KEYS: Dict[str, Callable[[Dict[str, Any]], Any]] = {
    "score": lambda item: -item["score"],
    "price": lambda item: _ascending_or_inf(item["endpoint"].price_micro_usdc),
    "uptime": lambda item: -(item["endpoint"].uptime_24h or 0),
    "latency": lambda item: _ascending_or_inf(item["endpoint"].avg_latency_ms),
}


def rank_for_comparison(endpoints: Sequence[Any], sort: str = "score", limit: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Score, sort and rank endpoints. Missing price/latency sort last, missing
    uptime counts as 0. Python's stable sort keeps input order on ties.
    """
    if sort not in _SORT_KEYS:
        sort = "score"

    scored = [{"endpoint": e, "score": comparison_score(e)} for e in endpoints]
    scored.sort(key=_SORT_KEYS[sort])

    if limit is not None:
        scored = scored[:limit]

    for index, item in enumerate(scored):
        item["rank"] = index + 1
    return scored


def format_usd(micro_units: float) -> str:
    return f"${micro_units / MICRO_UNITS_PER_USD:.4f}"


def _format_percent(value: float) -> str:
    # 99.5 -> "99.5", 100.0 -> "100"
    return f"{value:g}"


def generate_reasoning(best: Any, alternatives: Sequence[Any], task: str, budget: Optional[int] = None) -> List[str]:
    """Explain the top pick as a fixed sequence of bullet strings."""
    reasons = [f'Best match for "{task}" based on quality and value.']

    uptime = best.uptime_24h
    if uptime is not None and uptime >= 99:
        reasons.append(f"Excellent reliability with {_format_percent(uptime)}% uptime.")
    elif uptime is not None and uptime >= 95:
        reasons.append(f"Good reliability with {_format_percent(uptime)}% uptime.")

    if best.avg_latency_ms is not None and best.avg_latency_ms < 200:
        reasons.append(f"Fast response time ({best.avg_latency_ms}ms average).")

    if best.price_micro_usdc is not None:
        reasons.append(f"Priced at {format_usd(best.price_micro_usdc)} per request.")
        if budget and best.price_micro_usdc < budget * 0.5:
            reasons.append(f"Well under your {format_usd(budget)} budget.")

    if alternatives:
        plural = "s" if len(alternatives) > 1 else ""
        reasons.append(f"{len(alternatives)} alternative{plural} available.")

    return reasons


def select_recommendation(candidates: Sequence[Any], task: str, budget: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """
    Pick the best candidate and up to three alternatives (ranks 2..4).

    Candidates must already satisfy the task filters. Returns None when empty.
    """
    if not candidates:
        return None

    scored = [{"endpoint": c, "score": recommendation_score(c, budget)} for c in candidates]
    scored.sort(key=lambda item: -item["score"])

    best = scored[0]
    alternatives = scored[1:1 + MAX_ALTERNATIVES]

    return {
        "recommendation": {
            "endpoint": best["endpoint"],
            "score": best["score"],
            "reasoning": generate_reasoning(
                best["endpoint"], [alt["endpoint"] for alt in alternatives], task, budget
            ),
        },
        "alternatives": [
            {"rank": index + 2, "endpoint": alt["endpoint"], "score": alt["score"]}
            for index, alt in enumerate(alternatives)
        ],
        "total_matches": len(candidates),
    }
