from __future__ import annotations

import math


def floor_to_nearest_10(amount: float) -> int:
    """Floor to the nearest 10 yen: floor(amount / 10) * 10."""
    return int(math.floor(amount / 10) * 10)


def ceil_to_nearest_100(amount: float) -> int:
    """Ceil to the nearest 100 yen: ceil(amount / 100) * 100."""
    return int(math.ceil(amount / 100) * 100)


def floor_yen(amount: float) -> int:
    return int(math.floor(amount))
