"""
Drink and champagne point accrual.

Drink points: every 5 S-units (S=1, M=2, L=3, shot=2) is one point; only
the day's final total is floored.

Champagne points: a bottle's points are split between the casts seated at
the bill. Each share is rounded half-up to one decimal per order, the
shares are summed over the day, and only the day's sum is floored:

    Cafe de Paris (4P) alone     -> 4.0
    Moet (8P) split five ways    -> 1.6
    day total 5.6                -> 5 points
"""

from __future__ import annotations

import math
from typing import Iterable

from .errors import InvalidInputError
from .types import DRINK_UNITS_BY_SIZE

S_UNITS_PER_POINT = 5


def drink_units_for_size(size: str) -> int:
    try:
        return DRINK_UNITS_BY_SIZE[size]
    except KeyError:
        raise InvalidInputError(f"Unknown drink size: {size}")


def drink_points(total_s_units: int) -> int:
    if total_s_units < 0:
        raise InvalidInputError("S-units must be zero or greater")
    return total_s_units // S_UNITS_PER_POINT


def _round_half_up_1dp(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


def champagne_share(bottle_points: float, num_consumers: int) -> float:
    # No assigned consumers is an upstream data gap; the attributed cast keeps the full points.
    if num_consumers <= 0:
        return float(bottle_points)
    return _round_half_up_1dp(bottle_points / num_consumers)


def daily_champagne_points(shares: Iterable[float]) -> int:
    # Shares are already one-decimal values; summing in tenths keeps 10 x 0.1 == 1.
    tenths = sum(int(round(share * 10)) for share in shares)
    return tenths // 10


def total_points(drink: int, champagne: int) -> int:
    return drink + champagne
