"""
Cast payroll.

    subtotal   = time pay (approved shifts, all stores) + backs + bonus
    after_tax  = subtotal x tax multiplier (flat withholding, default 0.9)
    net        = floor10(after_tax - welfare - transport), never below 0

subtotal/after_tax/tax deduction are floored to whole yen for display only;
the 10-yen floor on net is the only rounding that changes what is paid.
The referral bonus is reported beside net and never added into it.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable, Mapping

from .bonus import cross_store_bonus
from .errors import InvalidInputError, InvariantViolationError
from .points import daily_champagne_points, drink_points, total_points
from .rounding import floor_yen
from .types import (
    CATEGORIES,
    CastEarningsBreakdown,
    PayoutResult,
    SettingsMap,
    ShiftPay,
    ShiftRecord,
)


def _minutes_between(start: datetime, end: datetime) -> int:
    return int(math.floor((end - start).total_seconds() / 60))


def work_minutes(shift: ShiftRecord, now: datetime) -> int:
    end = shift.clock_out or now
    if end < shift.clock_in:
        raise InvariantViolationError("clock_out is earlier than clock_in")
    return _minutes_between(shift.clock_in, end)


def shift_time_pay(
    shift: ShiftRecord,
    hourly_rate: int,
    late_pickup_bonus: int = 500,
    now: datetime | None = None,
) -> ShiftPay:
    """
    Time pay for one shift. An open shift is paid up to ``now``.

    With late pickup, minutes before ``late_pickup_start`` are paid at the
    base rate and minutes after it at base + late_pickup_bonus.
    """
    if hourly_rate is None or hourly_rate < 0:
        raise InvalidInputError("hourly_rate must be zero or greater")
    if shift.clock_out is None and now is None:
        raise InvalidInputError("now is required for an open shift")

    end = shift.clock_out or now
    minutes = work_minutes(shift, end)
    effective_hourly = hourly_rate

    if shift.is_late_pickup and shift.late_pickup_start is not None:
        before = max(0, _minutes_between(shift.clock_in, shift.late_pickup_start))
        after = max(0, _minutes_between(shift.late_pickup_start, end))
        pay = (before / 60) * hourly_rate + (after / 60) * (hourly_rate + late_pickup_bonus)
        if minutes > 0:
            effective_hourly = floor_yen(pay / (minutes / 60))
    else:
        pay = (minutes / 60) * hourly_rate

    return ShiftPay(
        work_minutes=minutes,
        base_hourly=hourly_rate,
        effective_hourly=effective_hourly,
        time_pay=floor_yen(pay),
        is_late_pickup=bool(shift.is_late_pickup),
        clock_in=shift.clock_in,
        clock_out=shift.clock_out,
        late_pickup_start=shift.late_pickup_start,
    )


def net_payout(
    time_pay: float,
    total_backs: float,
    bonus_amount: float,
    welfare_fee: float = 1000,
    transport_fee: float = 0,
    tax_rate: float = 0.9,
) -> PayoutResult:
    if tax_rate < 0 or tax_rate > 1:
        raise InvalidInputError("tax_rate must be between 0 and 1")

    subtotal = time_pay + total_backs + bonus_amount
    after_tax = subtotal * tax_rate
    tax_deduction = subtotal - after_tax
    before_rounding = after_tax - welfare_fee - transport_fee
    net = math.floor(before_rounding / 10) * 10

    return PayoutResult(
        subtotal=floor_yen(subtotal),
        after_tax=floor_yen(after_tax),
        tax_deduction=floor_yen(tax_deduction),
        net=max(0, int(net)),
    )


def referral_bonus(referral_count: int, amount: int) -> int:
    return referral_count * amount


def build_earnings_breakdown(
    *,
    shifts: Iterable[ShiftRecord],
    hourly_rate: int,
    transport_fee: int,
    backs_by_category: Mapping[str, int],
    drink_s_units: int,
    champagne_shares: list[float],
    orders_count: int,
    sales_by_store: Mapping[int, int],
    is_weekend_or_holiday: bool,
    referral_count: int,
    settings: SettingsMap,
    now: datetime,
) -> CastEarningsBreakdown:
    """Assemble one cast member's day from already-filtered records."""
    shift_pays = [
        shift_time_pay(s, hourly_rate, settings.late_pickup_bonus, now)
        for s in shifts
    ]
    total_time_pay = sum(p.time_pay for p in shift_pays)

    backs = {category: 0 for category in CATEGORIES}
    for category, amount in backs_by_category.items():
        backs[category] = backs.get(category, 0) + amount
    total_backs = sum(backs.values())

    d_points = drink_points(drink_s_units)
    c_points = daily_champagne_points(champagne_shares)
    points = total_points(d_points, c_points)

    bonus = cross_store_bonus(sales_by_store, points, is_weekend_or_holiday, settings)

    payout = net_payout(
        total_time_pay,
        total_backs,
        bonus.total_bonus,
        settings.welfare_fee,
        transport_fee,
        settings.tax_multiplier,
    )

    return CastEarningsBreakdown(
        total_time_pay=total_time_pay,
        total_backs=total_backs,
        total_points=points,
        bonus_amount=bonus.total_bonus,
        bonus_qualified=bonus.qualified,
        subtotal=payout.subtotal,
        after_tax=payout.after_tax,
        welfare_fee=settings.welfare_fee,
        transport_fee=transport_fee,
        net_payout=payout.net,
        referral_bonus=referral_bonus(referral_count, settings.referral_bonus),
        shifts=shift_pays,
        total_work_minutes=sum(p.work_minutes for p in shift_pays),
        has_late_pickup=any(p.is_late_pickup for p in shift_pays),
        backs_by_category=backs,
        drink_s_units=drink_s_units,
        drink_points=d_points,
        champagne_shares=list(champagne_shares),
        champagne_points=c_points,
        orders_count=orders_count,
        store_sales=bonus.total_store_sales,
        bonus_per_point=bonus.bonus_per_point,
        tax_rate=settings.tax_multiplier,
        tax_deduction=payout.tax_deduction,
        referral_count=referral_count,
    )
