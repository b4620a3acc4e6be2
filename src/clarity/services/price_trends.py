"""Price trend statistics over daily price snapshots."""
from typing import Any, Dict, Optional, Sequence

from clarity.utils.number_utils import round_half_up

TREND_THRESHOLD_PERCENT = 5


def calculate_price_stats(history: Sequence[Any], current_price: Optional[int]) -> Dict[str, Any]:
    """
    Min / max / avg over ``history`` (oldest first) plus the change from the
    oldest snapshot to the current price (or newest snapshot when unpriced).
    """
    if not history:
        return {
            "min": current_price,
            "max": current_price,
            "avg": current_price,
            "change": None,
            "change_percent": None,
            "trend": "unknown",
        }

    prices = [row.price_micro_usdc for row in history]
    first_price = prices[0]
    last_price = current_price if current_price is not None else prices[-1]
    change = last_price - first_price

    change_percent = None
    if first_price != 0:
        change_percent = round_half_up(change / first_price * 100, 2)

    trend = "stable"
    if change_percent is not None:
        if change_percent > TREND_THRESHOLD_PERCENT:
            trend = "up"
        elif change_percent < -TREND_THRESHOLD_PERCENT:
            trend = "down"

    return {
        "min": min(prices),
        "max": max(prices),
        "avg": int(round_half_up(sum(prices) / len(prices))),
        "change": change,
        "change_percent": change_percent,
        "trend": trend,
    }
