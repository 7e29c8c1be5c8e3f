# Overview: Pytest coverage for the daily store-sales bonus and holiday classification.

from datetime import date

import pytest

from fairy.engine import bonus_tier_label, cross_store_bonus, daily_bonus, is_weekend_or_holiday
from fairy.engine.errors import InvalidInputError
from fairy.engine.types import SettingsMap


class TestDailyBonus:
    def test_threshold_exactly_qualifies(self):
        result = daily_bonus(400_000, 10, False)
        assert result.qualified
        assert result.bonus_per_point == 200
        assert result.total_bonus == 2000

    def test_one_tier_above(self):
        result = daily_bonus(850_000, 10, False)
        assert result.tier == 1
        assert result.bonus_per_point == 400

    def test_rate_is_capped(self):
        result = daily_bonus(5_000_000, 1, False)
        assert result.bonus_per_point == 600

    def test_below_threshold(self):
        result = daily_bonus(399_990, 10, False)
        assert not result.qualified
        assert result.total_bonus == 0

    def test_weekend_threshold(self):
        assert not daily_bonus(450_000, 10, True).qualified
        assert daily_bonus(500_000, 10, True).qualified

    def test_settings_override_defaults(self):
        settings = SettingsMap(bonus_threshold_weekday=300_000, bonus_base_per_point=100)
        result = daily_bonus(300_000, 10, False, settings)
        assert result.bonus_per_point == 100

    def test_zero_increment_rejected(self):
        with pytest.raises(InvalidInputError):
            daily_bonus(400_000, 10, False, SettingsMap(bonus_increment=0))

    def test_tier_label(self):
        assert bonus_tier_label(399_000, False) == 0
        assert bonus_tier_label(400_000, False) == 1
        assert bonus_tier_label(850_000, False) == 2


class TestCrossStoreBonus:
    def test_qualifying_stores_are_summed_and_best_rate_reported(self):
        result = cross_store_bonus({1: 850_000, 2: 400_000, 3: 100_000}, 10, False)
        assert result.qualified
        assert result.total_bonus == 4000 + 2000
        assert result.bonus_per_point == 400
        assert result.total_store_sales == 1_350_000
        assert not result.per_store[3].qualified

    def test_no_stores(self):
        result = cross_store_bonus({}, 10, False)
        assert not result.qualified
        assert result.total_bonus == 0


class TestWeekendOrHoliday:
    @pytest.mark.parametrize("day, expected", [
        (date(2026, 10, 14), False),  # Wednesday
        (date(2026, 10, 16), True),   # Friday
        (date(2026, 10, 17), True),   # Saturday
        (date(2026, 10, 18), False),  # Sunday
        (date(2026, 11, 2), True),    # eve of 文化の日
        (date(2026, 11, 3), True),    # 文化の日 (Tuesday)
    ])
    def test_classification(self, day, expected):
        assert is_weekend_or_holiday(day) is expected
