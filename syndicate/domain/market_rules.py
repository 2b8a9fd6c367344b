import math
from typing import Tuple

from syndicate.domain.dice import RandomSource
from syndicate.models.dc_models import Trend


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def draw_price_change(rng: RandomSource, fluctuation_range: int) -> float:
    """Fraction in [-F/100, +F/100] by which a price moves this tick."""
    bound = fluctuation_range / 100
    return float(rng.uniform(-bound, bound))


def next_price(old_price: int, change: float, min_price: int, max_price: int) -> int:
    new_price = round_half_up(old_price * (1 + change))
    return max(min_price, min(max_price, new_price))


def classify_trend(change: float) -> Tuple[Trend, int]:
    """Trend label and its magnitude in whole percent."""
    if change > 0:
        trend = Trend.up
    elif change < 0:
        trend = Trend.down
    else:
        trend = Trend.stable
    return trend, round_half_up(abs(change) * 100)
