"""
Store reports for a business day (06:00 JST -> 06:00 JST).

A bill belongs to the business day its session started in. Cancelled
bills are excluded everywhere; open bills count with their running total.
"""

from __future__ import annotations

from datetime import date
from collections import defaultdict

from ..extensions import db
from ..models import Bill, DailyReport, Order, PriceAdjustment, Store
from ..engine import (
    bill_total,
    bonus_tier_label,
    daily_bonus,
    floor_to_nearest_10,
    format_jpy,
    format_start_time,
    is_weekend_or_holiday,
    line_charge,
)
from ..engine.types import (
    CATEGORY_EXTENSION,
    CATEGORY_SET,
    PAYMENT_CARD,
    PAYMENT_CONTACTLESS,
    PAYMENT_QR,
)
from fairy.time_utils import business_day_range, to_jst, to_utc_z, utcnow
from .settings_service import load_settings


CARD_LIKE_METHODS = {PAYMENT_CARD, PAYMENT_QR, PAYMENT_CONTACTLESS}


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _require_store(store_id: int) -> Store:
    store = db.session.query(Store).filter_by(id=store_id).first()
    if not store:
        raise ReportError("Store not found")
    return store


def _day_bills(store_id: int, business_date: date) -> list[Bill]:
    start, end = business_day_range(business_date)
    return (
        db.session.query(Bill)
        .filter(
            Bill.store_id == store_id,
            Bill.start_time >= start,
            Bill.start_time < end,
            Bill.is_cancelled.is_(False),
        )
        .order_by(Bill.start_time.asc(), Bill.id.asc())
        .all()
    )


def _orders_by_bill(bill_ids: list[int]) -> dict[int, list[Order]]:
    grouped = defaultdict(list)
    if not bill_ids:
        return grouped
    orders = (
        db.session.query(Order)
        .filter(Order.bill_id.in_(bill_ids), Order.is_cancelled.is_(False))
        .order_by(Order.id.asc())
        .all()
    )
    for order in orders:
        grouped[order.bill_id].append(order)
    return grouped


def _adjustments_by_bill(bill_ids: list[int]) -> dict[int, list[PriceAdjustment]]:
    grouped = defaultdict(list)
    if not bill_ids:
        return grouped
    for adj in db.session.query(PriceAdjustment).filter(PriceAdjustment.bill_id.in_(bill_ids)).all():
        grouped[adj.bill_id].append(adj)
    return grouped


def _sales_figures(bills: list[Bill]) -> dict:
    bill_ids = [b.id for b in bills]
    orders = _orders_by_bill(bill_ids)
    adjustments = _adjustments_by_bill(bill_ids)

    # Store sales floor the day's grand sum once, like a single bill.
    raw = 0
    card_sales = 0
    cash_sales = 0
    per_bill = {}
    for bill in bills:
        lines = [o.to_line() for o in orders[bill.id]]
        adjs = [a.to_line() for a in adjustments[bill.id]]
        raw += sum(line_charge(l.unit_price, l.quantity, l.tax_applicable) for l in lines)
        raw += sum(a.amount for a in adjs)

        total = bill_total(lines, adjs)
        per_bill[bill.id] = total
        if bill.payment_method in CARD_LIKE_METHODS:
            card_sales += total
        elif bill.payment_method is not None:
            cash_sales += total

    return {
        "sales": max(0, floor_to_nearest_10(raw)),
        "card_sales": card_sales,
        "cash_sales": cash_sales,
        "per_bill": per_bill,
        "orders": orders,
    }


def store_sales(store_id: int, business_date: date) -> int:
    """Tax-inclusive sales for the store's business day; the bonus is judged on this."""
    _require_store(store_id)
    return _sales_figures(_day_bills(store_id, business_date))["sales"]


def daily_report(*, store_id: int, business_date: date) -> dict:
    store = _require_store(store_id)
    bills = _day_bills(store_id, business_date)
    figures = _sales_figures(bills)

    hourly = defaultdict(int)
    for bill in bills:
        hourly[f"{to_jst(bill.start_time).hour}時"] += 1

    groups = len(bills)
    sales = figures["sales"]
    weekend = is_weekend_or_holiday(business_date)
    settings = load_settings()
    bonus = daily_bonus(sales, 0, weekend, settings)

    return {
        "store_id": store.id,
        "store_name": store.name,
        "business_date": business_date.isoformat(),
        "groups": groups,
        "avg_per_customer": sales // groups if groups else 0,
        "hourly_entries": dict(hourly),
        "sales": sales,
        "card_sales": figures["card_sales"],
        "cash_sales": figures["cash_sales"],
        "open_bills": sum(1 for b in bills if b.status == "open"),
        "is_weekend_holiday": weekend,
        "bonus_qualified": bonus.qualified,
        "bonus_tier": bonus_tier_label(sales, weekend, settings),
        "bonus_per_point": bonus.bonus_per_point,
    }


def session_log(*, store_id: int, business_date: date) -> list[dict]:
    """来店記録: one entry per session with its extensions and set charge."""
    _require_store(store_id)
    bills = _day_bills(store_id, business_date)
    figures = _sales_figures(bills)

    entries = []
    for bill in bills:
        orders = figures["orders"][bill.id]
        extensions = []
        base_charge = 0
        for order in orders:
            product = order.product
            if product.category == CATEGORY_EXTENSION:
                extensions.extend(
                    {"minutes": product.extension_minutes, "tier": product.extension_tier or "free"}
                    for _ in range(order.quantity)
                )
            elif product.category == CATEGORY_SET and not base_charge:
                base_charge = order.unit_price

        entries.append({
            "id": bill.id,
            "table_label": bill.table.label if bill.table else "-",
            "start_time": to_utc_z(bill.start_time),
            "close_time": to_utc_z(bill.close_time) if bill.close_time else None,
            "status": bill.status,
            "seating_type": bill.seating_type,
            "base_minutes": bill.base_minutes,
            "extensions": extensions,
            "base_charge": base_charge,
            "start_label": format_start_time(bill.start_time),
            "total": figures["per_bill"][bill.id],
            "total_label": format_jpy(figures["per_bill"][bill.id]),
            "payment_method": bill.payment_method,
            "notes": bill.notes,
        })
    return entries


def save_daily_report(*, store_id: int, business_date: date, staff_id: int | None = None) -> DailyReport:
    """日締め: snapshot the day's figures. Saving again for the same day overwrites."""
    report = daily_report(store_id=store_id, business_date=business_date)

    row = (
        db.session.query(DailyReport)
        .filter_by(store_id=store_id, report_date=business_date)
        .first()
    )
    if row is None:
        row = DailyReport(store_id=store_id, report_date=business_date)
        db.session.add(row)

    row.total_sales = report["sales"]
    row.card_sales = report["card_sales"]
    row.cash_sales = report["cash_sales"]
    row.total_bills = report["groups"]
    row.is_weekend_holiday = report["is_weekend_holiday"]
    row.bonus_tier = report["bonus_tier"]
    row.bonus_per_point = report["bonus_per_point"]
    row.saved_by_staff_id = staff_id
    row.updated_at = utcnow()

    db.session.commit()
    return row


def saved_reports(*, store_id: int, limit: int = 31) -> list[DailyReport]:
    _require_store(store_id)
    return (
        db.session.query(DailyReport)
        .filter_by(store_id=store_id)
        .order_by(DailyReport.report_date.desc())
        .limit(limit)
        .all()
    )
