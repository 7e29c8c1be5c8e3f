"""
Billing & payroll calculation engine.

Pure functions only: no database session, no Flask context. Services load
records, convert them to the value types in ``types`` and call in here.
"""

from .errors import EngineError, InvalidInputError, InvariantViolationError
from .rounding import floor_to_nearest_10, ceil_to_nearest_100
from .pricing import (
    line_charge,
    bill_total,
    apply_tax_service_and_round,
    is_card_surcharge_applicable,
    card_surcharge,
    payment_display_total,
    extension_preview,
    approximate_pre_tax_base,
)
from .session_time import (
    elapsed_minutes,
    remaining_minutes,
    extension_minutes_accrued,
    should_show_extension_preview,
    evaluate_designation_upgrade,
    build_bill_total_view,
)
from .commission import back_amount
from .points import drink_units_for_size, drink_points, champagne_share, daily_champagne_points, total_points
from .bonus import daily_bonus, cross_store_bonus, bonus_tier_label
from .holidays import is_weekend_or_holiday
from .payout import shift_time_pay, net_payout, referral_bonus, build_earnings_breakdown
from .display import format_jpy, format_minutes, format_work_time, format_start_time
from .types import SettingsMap

__all__ = [
    'EngineError', 'InvalidInputError', 'InvariantViolationError',
    'floor_to_nearest_10', 'ceil_to_nearest_100',
    'line_charge', 'bill_total', 'apply_tax_service_and_round',
    'is_card_surcharge_applicable', 'card_surcharge', 'payment_display_total',
    'extension_preview', 'approximate_pre_tax_base',
    'elapsed_minutes', 'remaining_minutes', 'extension_minutes_accrued',
    'should_show_extension_preview', 'evaluate_designation_upgrade', 'build_bill_total_view',
    'back_amount',
    'drink_units_for_size', 'drink_points', 'champagne_share', 'daily_champagne_points', 'total_points',
    'daily_bonus', 'cross_store_bonus', 'bonus_tier_label', 'is_weekend_or_holiday',
    'shift_time_pay', 'net_payout', 'referral_bonus', 'build_earnings_breakdown',
    'format_jpy', 'format_minutes', 'format_work_time', 'format_start_time',
    'SettingsMap',
]
