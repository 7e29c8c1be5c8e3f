"""
Daily store-sales bonus (大入り).

Weekday: sales >= 400,000 pays 200/point; every further 400,000 adds
200/point, capped at 600/point. Weekend/holiday uses a 500,000 threshold.
All figures come from SettingsMap.

A cast member who worked several stores in one day is evaluated against
each store separately. The reported rate is the best qualifying store's,
while the bonus amount is the SUM over every store where they qualified.
"""

from __future__ import annotations

from typing import Mapping

from .errors import InvalidInputError
from .types import BonusResult, CrossStoreBonus, SettingsMap


def bonus_threshold(is_weekend_or_holiday: bool, settings: SettingsMap) -> int:
    if is_weekend_or_holiday:
        return settings.bonus_threshold_weekend
    return settings.bonus_threshold_weekday


def daily_bonus(
    store_sales: int,
    cast_points: int,
    is_weekend_or_holiday: bool,
    settings: SettingsMap | None = None,
) -> BonusResult:
    settings = settings or SettingsMap()
    if settings.bonus_increment <= 0:
        raise InvalidInputError("bonus_increment must be positive")

    threshold = bonus_threshold(is_weekend_or_holiday, settings)
    if store_sales < threshold:
        return BonusResult(qualified=False, bonus_per_point=0, total_bonus=0, tier=0)

    tier = (store_sales - threshold) // settings.bonus_increment
    per_point = min(
        settings.bonus_base_per_point + tier * settings.bonus_base_per_point,
        settings.bonus_max_per_point,
    )
    return BonusResult(
        qualified=True,
        bonus_per_point=per_point,
        total_bonus=cast_points * per_point,
        tier=tier,
    )


def bonus_tier_label(store_sales: int, is_weekend_or_holiday: bool, settings: SettingsMap | None = None) -> int:
    """Tier number saved on the daily report: 0 when unqualified, 1 at the threshold."""
    result = daily_bonus(store_sales, 0, is_weekend_or_holiday, settings)
    return result.tier + 1 if result.qualified else 0


def cross_store_bonus(
    sales_by_store: Mapping[int, int],
    cast_points: int,
    is_weekend_or_holiday: bool,
    settings: SettingsMap | None = None,
) -> CrossStoreBonus:
    best_per_point = 0
    total_bonus = 0
    qualified = False
    total_sales = 0
    per_store = {}

    for store_id, sales in sales_by_store.items():
        total_sales += sales
        result = daily_bonus(sales, cast_points, is_weekend_or_holiday, settings)
        per_store[store_id] = result
        if not result.qualified:
            continue
        qualified = True
        best_per_point = max(best_per_point, result.bonus_per_point)
        total_bonus += result.total_bonus

    return CrossStoreBonus(
        qualified=qualified,
        bonus_per_point=best_per_point,
        total_bonus=total_bonus,
        total_store_sales=total_sales,
        per_store=per_store,
    )
