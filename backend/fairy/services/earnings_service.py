"""
Cast daily earnings (日払い).

One aggregation serves both the cast's own earnings page (every store the
cast worked that day) and a store's payroll sheet (the same computation
scoped to one store), so the two can never disagree.

Attribution:
- shifts: approved clock-ins starting inside the business day
- orders: non-cancelled orders attributed to the cast on non-cancelled
  bills whose session started inside the business day
- bonus: judged per store the cast worked, on that store's day sales
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime

import sqlalchemy as sa

from ..extensions import db
from ..models import Bill, CastMember, CastShift, CastTableAssignment, Order
from ..engine import champagne_share, format_jpy, format_work_time, is_weekend_or_holiday
from ..engine.payout import build_earnings_breakdown
from ..engine.types import (
    APPROVAL_APPROVED,
    CATEGORY_BOTTLES,
    CATEGORY_DRINKS,
    CastEarningsBreakdown,
    SettingsMap,
)
from fairy.time_utils import business_day_range, utcnow
from .reporting_service import store_sales
from .settings_service import load_settings


class EarningsError(ValueError):
    pass


def _approved_shifts(cast_id: int, business_date: date, store_id: int | None) -> list[CastShift]:
    start, end = business_day_range(business_date)
    query = db.session.query(CastShift).filter(
        CastShift.cast_id == cast_id,
        CastShift.clock_in >= start,
        CastShift.clock_in < end,
        CastShift.clock_in_status == APPROVAL_APPROVED,
    )
    if store_id is not None:
        query = query.filter(CastShift.store_id == store_id)
    return query.order_by(CastShift.clock_in.asc()).all()


def _attributed_orders(cast_id: int, business_date: date, store_id: int | None) -> list[Order]:
    start, end = business_day_range(business_date)
    query = (
        db.session.query(Order)
        .join(Bill, Bill.id == Order.bill_id)
        .filter(
            Order.cast_id == cast_id,
            Order.is_cancelled.is_(False),
            Bill.is_cancelled.is_(False),
            Bill.start_time >= start,
            Bill.start_time < end,
        )
    )
    if store_id is not None:
        query = query.filter(Bill.store_id == store_id)
    return query.order_by(Order.id.asc()).all()


def _seated_counts(bill_ids: set[int]) -> dict[int, int]:
    if not bill_ids:
        return {}
    rows = (
        db.session.query(CastTableAssignment.bill_id, sa.func.count(CastTableAssignment.id))
        .filter(
            CastTableAssignment.bill_id.in_(bill_ids),
            CastTableAssignment.is_active.is_(True),
        )
        .group_by(CastTableAssignment.bill_id)
        .all()
    )
    return {bill_id: int(n) for bill_id, n in rows}


def _referral_count(cast_id: int, business_date: date) -> int:
    """Referred casts with an approved clock-in on the day."""
    start, end = business_day_range(business_date)
    return (
        db.session.query(sa.func.count(sa.distinct(CastShift.cast_id)))
        .join(CastMember, CastMember.id == CastShift.cast_id)
        .filter(
            CastMember.referred_by_id == cast_id,
            CastShift.clock_in >= start,
            CastShift.clock_in < end,
            CastShift.clock_in_status == APPROVAL_APPROVED,
        )
        .scalar()
        or 0
    )


def cast_daily_earnings(
    cast_id: int,
    business_date: date,
    store_id: int | None = None,
    *,
    now: datetime | None = None,
    settings: SettingsMap | None = None,
) -> CastEarningsBreakdown:
    """
    Earnings for one cast member on one business day.

    With ``store_id`` only that store's shifts, orders and sales are used
    (payroll sheet); without it every store is included (cast view).
    """
    cast = db.session.query(CastMember).filter_by(id=cast_id).first()
    if not cast:
        raise EarningsError("Cast member not found")

    settings = settings or load_settings()
    shifts = _approved_shifts(cast_id, business_date, store_id)
    orders = _attributed_orders(cast_id, business_date, store_id)

    backs = defaultdict(int)
    drink_s_units = 0
    bottle_orders = []
    for order in orders:
        product = order.product
        backs[product.category] += (order.back_amount or 0) * order.quantity
        if product.category == CATEGORY_DRINKS:
            drink_s_units += (product.drink_units or 0) * order.quantity
        elif product.category == CATEGORY_BOTTLES and order.points_amount:
            bottle_orders.append(order)

    seated = _seated_counts({o.bill_id for o in bottle_orders})
    champagne_shares = [
        champagne_share(o.points_amount * o.quantity, seated.get(o.bill_id, 0))
        for o in bottle_orders
    ]

    worked_store_ids = sorted({s.store_id for s in shifts})
    sales_by_store = {sid: store_sales(sid, business_date) for sid in worked_store_ids}

    return build_earnings_breakdown(
        shifts=[s.to_record() for s in shifts],
        hourly_rate=cast.hourly_rate or 0,
        transport_fee=cast.transport_fee or 0,
        backs_by_category=dict(backs),
        drink_s_units=drink_s_units,
        champagne_shares=champagne_shares,
        orders_count=len(orders),
        sales_by_store=sales_by_store,
        is_weekend_or_holiday=is_weekend_or_holiday(business_date),
        referral_count=_referral_count(cast_id, business_date),
        settings=settings,
        now=now or utcnow(),
    )


def store_cast_earnings(
    store_id: int,
    business_date: date,
    *,
    now: datetime | None = None,
) -> list[dict]:
    """Payroll sheet: every cast with an approved shift at the store that day."""
    start, end = business_day_range(business_date)
    shifts = (
        db.session.query(CastShift)
        .filter(
            CastShift.store_id == store_id,
            CastShift.clock_in >= start,
            CastShift.clock_in < end,
            CastShift.clock_in_status == APPROVAL_APPROVED,
        )
        .order_by(CastShift.clock_in.asc())
        .all()
    )

    settings = load_settings()
    seen = []
    for shift in shifts:
        if shift.cast_id not in seen:
            seen.append(shift.cast_id)

    rows = []
    for cast_id in seen:
        cast = db.session.query(CastMember).filter_by(id=cast_id).first()
        breakdown = cast_daily_earnings(cast_id, business_date, store_id, now=now, settings=settings)
        rows.append({
            "cast_id": cast.id,
            "cast_name": cast.name,
            "work_time_label": format_work_time(breakdown.total_work_minutes),
            "net_payout_label": format_jpy(breakdown.net_payout),
            "earnings": breakdown.to_dict(),
        })
    return rows
