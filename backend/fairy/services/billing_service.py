"""
Table sessions (bills), orders, adjustments and cast seating.

Every mutation of a bill runs under a row lock on the bill and is retried
on lock/optimistic-lock conflicts. Totals are never stored: they are
recomputed by the engine from the non-cancelled orders and adjustments.
"""

from __future__ import annotations

import secrets
from datetime import datetime

import sqlalchemy as sa
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import (
    Bill,
    BillDesignation,
    CastMember,
    CastTableAssignment,
    FloorTable,
    Order,
    PriceAdjustment,
    Product,
    Store,
)
from ..engine import (
    back_amount,
    bill_total,
    build_bill_total_view,
    evaluate_designation_upgrade,
    extension_minutes_accrued,
    format_minutes,
)
from ..engine.errors import EngineError
from ..engine.session_time import validate_base_minutes, validate_extension_minutes
from ..engine.types import (
    BillState,
    BillTotalView,
    CATEGORY_EXTENSION,
    PAYMENT_CARD,
    PAYMENT_CASH,
    PAYMENT_CONTACTLESS,
    PAYMENT_METHODS,
    PAYMENT_QR,
    SEATING_FREE,
    SEATING_TIERS,
)
from fairy.time_utils import utcnow, to_utc_z
from .activity_service import (
    ADJUSTMENT,
    CAST_ASSIGNED,
    CAST_UNASSIGNED,
    EXTENSION,
    ORDER_ADDED,
    ORDER_CANCELLED,
    PAYMENT_METHOD_SET,
    SESSION_CANCELLED,
    SESSION_CLOSED,
    SESSION_STARTED,
    TABLE_UPGRADED,
    append_activity,
)
from .concurrency import RETRYABLE_ERRORS, lock_for_update, run_with_retry


ADJUSTMENT_TYPES = {"discount", "surcharge", "price_change", "custom"}
CUSTOMER_PAYMENT_METHODS = [PAYMENT_CASH, PAYMENT_CARD, PAYMENT_QR, PAYMENT_CONTACTLESS]
CUSTOMER_FOOTER_NOTE = "別途 税・サ20%"


class BillingError(ValueError):
    """Raised for invalid billing operations."""
    pass


class BillNotFoundError(BillingError):
    pass


class BillConflictError(BillingError):
    """The table already has an open bill, or the bill is no longer open."""
    pass


def _new_read_token() -> str:
    return secrets.token_hex(16)


def _locked_bill(bill_id: int) -> Bill:
    bill = lock_for_update(db.session.query(Bill).filter_by(id=bill_id)).first()
    if not bill:
        raise BillNotFoundError("Bill not found")
    return bill


def _require_open(bill: Bill) -> None:
    if bill.status != "open":
        raise BillConflictError("Bill is not open")


def _active_orders(bill_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.bill_id == bill_id, Order.is_cancelled.is_(False))
        .order_by(Order.id.asc())
        .all()
    )


def _adjustments(bill_id: int) -> list[PriceAdjustment]:
    return (
        db.session.query(PriceAdjustment)
        .filter_by(bill_id=bill_id)
        .order_by(PriceAdjustment.id.asc())
        .all()
    )


def current_total(bill: Bill) -> int:
    """Tax-inclusive bill total (floored to 10 yen), excluding cancelled orders."""
    lines = [o.to_line() for o in _active_orders(bill.id)]
    adjustments = [a.to_line() for a in _adjustments(bill.id)]
    return bill_total(lines, adjustments)


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------

def start_session(
    *,
    table_id: int,
    seating_type: str = SEATING_FREE,
    base_minutes: int = 60,
    staff_id: int | None = None,
    notes: str | None = None,
    now: datetime | None = None,
) -> Bill:
    if seating_type not in SEATING_TIERS:
        raise BillingError(f"Invalid seating_type: {seating_type}")
    try:
        validate_base_minutes(base_minutes)
    except EngineError as e:
        raise BillingError(str(e))

    table = db.session.query(FloorTable).filter_by(id=table_id).first()
    if not table:
        raise BillNotFoundError("Table not found")

    open_bill = lock_for_update(
        db.session.query(Bill).filter_by(table_id=table_id, status="open")
    ).first()
    if open_bill:
        raise BillConflictError("Table already has an open bill")

    bill = Bill(
        store_id=table.store_id,
        table_id=table.id,
        status="open",
        start_time=now or utcnow(),
        base_minutes=base_minutes,
        seating_type=seating_type,
        read_token=_new_read_token(),
        notes=notes,
    )
    db.session.add(bill)
    try:
        db.session.flush()
    except IntegrityError:
        # Another tablet opened the same table between our check and insert.
        db.session.rollback()
        raise BillConflictError("Table already has an open bill")

    append_activity(
        store_id=bill.store_id,
        bill_id=bill.id,
        event_type=SESSION_STARTED,
        entity_type="bill",
        entity_id=bill.id,
        actor_staff_id=staff_id,
        label=table.label,
        detail=f"{seating_type} / {base_minutes}分",
        occurred_at=bill.start_time,
    )

    db.session.commit()
    return bill


def close_bill(
    *,
    bill_id: int,
    payment_method: str,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> Bill:
    """Close an open bill. close_time and payment_method are final."""
    if payment_method not in PAYMENT_METHODS:
        raise BillingError(f"Invalid payment_method: {payment_method}")

    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)

        total = current_total(bill)
        bill.status = "closed"
        bill.close_time = now or utcnow()
        bill.payment_method = payment_method

        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=SESSION_CLOSED,
            entity_type="bill",
            entity_id=bill.id,
            actor_staff_id=staff_id,
            detail=payment_method,
            amount=total,
            occurred_at=bill.close_time,
        )

        db.session.commit()
        return bill

    return run_with_retry(_op)


def set_payment_method(
    *,
    bill_id: int,
    payment_method: str,
    staff_id: int | None = None,
    cast_id: int | None = None,
    allowed: tuple | list = PAYMENT_METHODS,
    now: datetime | None = None,
) -> Bill:
    """
    Record the payment method chosen while the bill is still open, so the
    customer page and the floor show the card figure before closing.
    """
    if payment_method not in allowed:
        raise BillingError(f"Invalid payment_method: {payment_method}")

    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)

        bill.payment_method = payment_method
        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=PAYMENT_METHOD_SET,
            entity_type="bill",
            entity_id=bill.id,
            actor_staff_id=staff_id,
            actor_cast_id=cast_id,
            detail=payment_method,
            occurred_at=now or utcnow(),
        )

        db.session.commit()
        return bill

    return run_with_retry(_op)


def set_customer_payment_method(*, read_token: str, payment_method: str, now: datetime | None = None) -> Bill:
    """Payment method picked on the customer QR page; split is staff-only."""
    bill = db.session.query(Bill).filter_by(read_token=read_token, status="open").first()
    if not bill:
        raise BillNotFoundError("Bill not found")
    return set_payment_method(
        bill_id=bill.id,
        payment_method=payment_method,
        allowed=CUSTOMER_PAYMENT_METHODS,
        now=now,
    )


def cancel_session(
    *,
    bill_id: int,
    staff_id: int,
    reason: str | None = None,
    now: datetime | None = None,
) -> Bill:
    """
    Void a session opened by mistake: the bill is closed and flagged
    cancelled, every order is cancelled and seated casts are released.
    Cancelled bills never count towards sales or cast earnings.
    """
    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)
        at = now or utcnow()

        for order in _active_orders(bill.id):
            order.is_cancelled = True
            order.cancelled_by_staff_id = staff_id
            order.cancelled_at = at
            order.cancel_reason = reason or "session cancelled"

        for assignment in db.session.query(CastTableAssignment).filter_by(bill_id=bill.id, is_active=True).all():
            assignment.is_active = False
            assignment.removed_at = at

        bill.status = "closed"
        bill.close_time = at
        bill.is_cancelled = True

        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=SESSION_CANCELLED,
            entity_type="bill",
            entity_id=bill.id,
            actor_staff_id=staff_id,
            detail=reason,
            occurred_at=at,
        )

        db.session.commit()
        return bill

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

def _designation_for(bill_id: int, cast_id: int) -> BillDesignation:
    designation = (
        db.session.query(BillDesignation)
        .filter_by(bill_id=bill_id, cast_id=cast_id)
        .first()
    )
    if designation:
        return designation
    designation = BillDesignation(bill_id=bill_id, cast_id=cast_id, extension_count=0, is_designated=False)
    db.session.add(designation)
    # A concurrent first extension for the same pair raises IntegrityError here;
    # the caller's retry reloads the row the other request created.
    db.session.flush()
    return designation


def _advance_designation(bill: Bill, cast_id: int, quantity: int, at: datetime) -> bool:
    """
    Atomically add ``quantity`` to the pair's counter and apply the upgrade
    rule to the new value. Returns True when the bill was promoted.
    """
    designation = _designation_for(bill.id, cast_id)

    db.session.execute(
        sa.update(BillDesignation)
        .where(BillDesignation.id == designation.id)
        .values(extension_count=BillDesignation.extension_count + quantity)
        .execution_options(synchronize_session=False)
    )
    db.session.refresh(designation)

    decision = evaluate_designation_upgrade(
        bill.seating_type,
        designation.extension_count,
        bool(designation.is_designated),
    )
    if decision.designate_pair:
        designation.is_designated = True
        designation.designated_at = at
    if decision.upgrade_bill:
        bill.seating_type = decision.new_seating_tier
    return decision.upgrade_bill


def add_order(
    *,
    bill_id: int,
    product_id: int,
    quantity: int = 1,
    cast_id: int | None = None,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> tuple[Order, bool]:
    """
    Ring up a product on an open bill.

    Unit price, back and points are captured from the product and the bill's
    seating tier at this moment. Returns ``(order, upgraded)``; ``upgraded``
    is True when this order promoted the bill from free to designated. The
    promoting order itself keeps the pre-upgrade back.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise BillingError("quantity must be a positive integer")

    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)

        product = db.session.query(Product).filter_by(id=product_id).first()
        if not product:
            raise BillingError("Product not found")
        if not product.is_active:
            raise BillingError("Product is not active")

        if cast_id is not None:
            cast = db.session.query(CastMember).filter_by(id=cast_id).first()
            if not cast:
                raise BillingError("Cast member not found")

        if product.category == CATEGORY_EXTENSION:
            try:
                validate_extension_minutes(product.extension_minutes)
            except EngineError as e:
                raise BillingError(str(e))
        if product.advances_designation and cast_id is None:
            raise BillingError("Designation extensions must be attributed to a cast member")

        at = now or utcnow()
        order = Order(
            bill_id=bill.id,
            product_id=product.id,
            cast_id=cast_id,
            quantity=quantity,
            unit_price=product.price,
            back_amount=back_amount(product.terms(), bill.seating_type),
            points_amount=product.points or 0,
            created_at=at,
        )
        db.session.add(order)
        db.session.flush()

        upgraded = False
        if product.advances_designation:
            upgraded = _advance_designation(bill, cast_id, quantity, at)

        is_extension = product.category == CATEGORY_EXTENSION
        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=EXTENSION if is_extension else ORDER_ADDED,
            entity_type="order",
            entity_id=order.id,
            actor_staff_id=staff_id,
            actor_cast_id=cast_id,
            label=product.name_jp,
            detail=f"×{quantity}" if quantity > 1 else None,
            amount=order.unit_price * quantity,
            occurred_at=at,
        )
        if upgraded:
            append_activity(
                store_id=bill.store_id,
                bill_id=bill.id,
                event_type=TABLE_UPGRADED,
                entity_type="bill",
                entity_id=bill.id,
                actor_cast_id=cast_id,
                detail=f"{SEATING_FREE} -> {bill.seating_type}",
                occurred_at=at,
            )

        db.session.commit()
        return order, upgraded

    return run_with_retry(_op, retry_on=RETRYABLE_ERRORS + (IntegrityError,))


def cancel_order(
    *,
    order_id: int,
    staff_id: int,
    reason: str | None = None,
    now: datetime | None = None,
) -> Order:
    """
    Cancel an order on an open bill. The row stays for the audit trail.
    Designation counters and an earlier table upgrade are not rolled back.
    """
    def _op():
        order = lock_for_update(db.session.query(Order).filter_by(id=order_id)).first()
        if not order:
            raise BillingError("Order not found")
        if order.is_cancelled:
            raise BillingError("Order is already cancelled")

        bill = _locked_bill(order.bill_id)
        _require_open(bill)

        remaining = [o.to_line() for o in _active_orders(bill.id) if o.id != order.id]
        try:
            bill_total(remaining, [a.to_line() for a in _adjustments(bill.id)])
        except EngineError as e:
            raise BillingError(str(e))

        order.is_cancelled = True
        order.cancelled_by_staff_id = staff_id
        order.cancelled_at = now or utcnow()
        order.cancel_reason = reason

        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=ORDER_CANCELLED,
            entity_type="order",
            entity_id=order.id,
            actor_staff_id=staff_id,
            label=order.product.name_jp,
            detail=reason,
            amount=-(order.unit_price * order.quantity),
            occurred_at=order.cancelled_at,
        )

        db.session.commit()
        return order

    return run_with_retry(_op)


def add_adjustment(
    *,
    bill_id: int,
    staff_id: int,
    amount: int,
    reason: str,
    adjustment_type: str = "custom",
    order_id: int | None = None,
    now: datetime | None = None,
) -> PriceAdjustment:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount == 0:
        raise BillingError("amount must be a non-zero integer")
    if not reason or not reason.strip():
        raise BillingError("reason is required")
    if adjustment_type not in ADJUSTMENT_TYPES:
        raise BillingError(f"Invalid adjustment_type: {adjustment_type}")

    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)

        if order_id is not None:
            order = db.session.query(Order).filter_by(id=order_id, bill_id=bill.id).first()
            if not order:
                raise BillingError("Order not found on this bill")

        lines = [o.to_line() for o in _active_orders(bill.id)]
        existing = [a.to_line() for a in _adjustments(bill.id)]
        adj = PriceAdjustment(
            bill_id=bill.id,
            order_id=order_id,
            staff_id=staff_id,
            adjustment_type=adjustment_type,
            amount=amount,
            reason=reason.strip(),
            created_at=now or utcnow(),
        )
        try:
            bill_total(lines, existing + [adj.to_line()])
        except EngineError as e:
            raise BillingError(str(e))

        db.session.add(adj)
        db.session.flush()

        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=ADJUSTMENT,
            entity_type="price_adjustment",
            entity_id=adj.id,
            actor_staff_id=staff_id,
            label=adj.reason,
            detail=adjustment_type,
            amount=amount,
            occurred_at=adj.created_at,
        )

        db.session.commit()
        return adj

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Cast seating
# ---------------------------------------------------------------------------

def assign_cast(
    *,
    bill_id: int,
    cast_id: int,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> CastTableAssignment:
    """Seat a cast member at a bill. Re-assigning an already seated cast is a no-op."""
    def _op():
        bill = _locked_bill(bill_id)
        _require_open(bill)

        cast = db.session.query(CastMember).filter_by(id=cast_id).first()
        if not cast:
            raise BillingError("Cast member not found")

        existing = (
            db.session.query(CastTableAssignment)
            .filter_by(bill_id=bill.id, cast_id=cast_id, is_active=True)
            .first()
        )
        if existing:
            return existing

        assignment = CastTableAssignment(
            bill_id=bill.id,
            cast_id=cast_id,
            is_active=True,
            assigned_at=now or utcnow(),
        )
        db.session.add(assignment)
        db.session.flush()

        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=CAST_ASSIGNED,
            entity_type="cast_table_assignment",
            entity_id=assignment.id,
            actor_staff_id=staff_id,
            actor_cast_id=cast_id,
            label=cast.name,
            occurred_at=assignment.assigned_at,
        )

        db.session.commit()
        return assignment

    return run_with_retry(_op)


def unassign_cast(
    *,
    bill_id: int,
    cast_id: int,
    staff_id: int | None = None,
    now: datetime | None = None,
) -> CastTableAssignment:
    def _op():
        bill = _locked_bill(bill_id)

        assignment = (
            db.session.query(CastTableAssignment)
            .filter_by(bill_id=bill.id, cast_id=cast_id, is_active=True)
            .first()
        )
        if not assignment:
            raise BillingError("Cast member is not seated at this bill")

        assignment.is_active = False
        assignment.removed_at = now or utcnow()

        append_activity(
            store_id=bill.store_id,
            bill_id=bill.id,
            event_type=CAST_UNASSIGNED,
            entity_type="cast_table_assignment",
            entity_id=assignment.id,
            actor_staff_id=staff_id,
            actor_cast_id=cast_id,
            occurred_at=assignment.removed_at,
        )

        db.session.commit()
        return assignment

    return run_with_retry(_op)


# ---------------------------------------------------------------------------
# Read models
# ---------------------------------------------------------------------------

def get_bill(bill_id: int) -> Bill:
    bill = db.session.query(Bill).filter_by(id=bill_id).first()
    if not bill:
        raise BillNotFoundError("Bill not found")
    return bill


def bill_total_view(bill: Bill, now: datetime | None = None, extension_price: int | None = None) -> BillTotalView:
    """Derived total and clock for a bill. Read-only; safe to poll."""
    if extension_price is None:
        extension_price = current_app.config["EXTENSION_PREVIEW_PRICE"]

    orders = _active_orders(bill.id)
    lines = [o.to_line() for o in orders]
    state = BillState(
        start_time=bill.start_time,
        base_minutes=bill.base_minutes,
        extension_minutes_accrued=extension_minutes_accrued(lines),
        seating_tier=bill.seating_type,
        payment_method=bill.payment_method,
    )
    # A closed bill's clock stops at close_time.
    at = bill.close_time if bill.close_time else (now or utcnow())
    return build_bill_total_view(
        state,
        lines,
        [a.to_line() for a in _adjustments(bill.id)],
        at,
        extension_price,
    )


def bill_detail(bill: Bill, now: datetime | None = None) -> dict:
    """Staff view of one bill: header, totals, orders (incl. cancelled), adjustments, casts."""
    orders = (
        db.session.query(Order)
        .filter_by(bill_id=bill.id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    designations = db.session.query(BillDesignation).filter_by(bill_id=bill.id).all()
    assignments = (
        db.session.query(CastTableAssignment)
        .filter_by(bill_id=bill.id, is_active=True)
        .all()
    )
    return {
        "bill": bill.to_dict(),
        "totals": bill_total_view(bill, now=now).to_dict(),
        "orders": [o.to_dict() for o in orders],
        "adjustments": [a.to_dict() for a in _adjustments(bill.id)],
        "designations": [d.to_dict() for d in designations],
        "assignments": [a.to_dict() for a in assignments],
    }


def _customer_payload(bill: Bill, now: datetime | None = None) -> dict:
    at = now or utcnow()
    view = bill_total_view(bill, now=at)
    items = [
        {
            "name_jp": o.product.name_jp,
            "quantity": o.quantity,
            "unit_price": o.unit_price,
            "tax_applicable": o.product.tax_applicable,
            "category": o.product.category,
        }
        for o in _active_orders(bill.id)
    ]
    store = db.session.query(Store).filter_by(id=bill.store_id).first()
    return {
        "store_id": bill.store_id,
        "store_name": store.name if store else None,
        "table_id": bill.table_id,
        "table_label": bill.table.label if bill.table else "",
        "start_time": to_utc_z(bill.start_time),
        "base_minutes": bill.base_minutes,
        "seating_type": bill.seating_type,
        "elapsed_minutes": view.elapsed_minutes,
        "remaining_minutes": view.remaining_minutes,
        "current_total": view.current_total,
        "payment_method": bill.payment_method,
        "display_total": view.display_total,
        "show_extension_preview": view.show_extension_preview,
        "extension_preview_total": view.extension_preview_total,
        "accepted_payment_methods": list(CUSTOMER_PAYMENT_METHODS),
        "footer_note": CUSTOMER_FOOTER_NOTE,
        "last_updated": to_utc_z(at),
        "order_items": items,
    }


def customer_bill_by_token(read_token: str, now: datetime | None = None) -> dict:
    bill = db.session.query(Bill).filter_by(read_token=read_token, status="open").first()
    if not bill:
        raise BillNotFoundError("Bill not found")
    return _customer_payload(bill, now=now)


def customer_bill_by_table(table_id: int, now: datetime | None = None) -> dict | None:
    """Payload for the table's permanent QR code; None when the table is idle."""
    if not db.session.query(FloorTable).filter_by(id=table_id).first():
        raise BillNotFoundError("Table not found")
    bill = db.session.query(Bill).filter_by(table_id=table_id, status="open").first()
    if not bill:
        return None
    return _customer_payload(bill, now=now)


def floor_overview(store_id: int, now: datetime | None = None) -> list[dict]:
    """Every table of a store with its open bill summary (or None)."""
    at = now or utcnow()
    tables = (
        db.session.query(FloorTable)
        .filter_by(store_id=store_id)
        .order_by(FloorTable.label.asc())
        .all()
    )
    open_bills = {
        b.table_id: b
        for b in db.session.query(Bill).filter_by(store_id=store_id, status="open").all()
    }

    out = []
    for table in tables:
        row = table.to_dict()
        bill = open_bills.get(table.id)
        if not bill:
            row["bill"] = None
            out.append(row)
            continue

        view = bill_total_view(bill, now=at)
        orders = _active_orders(bill.id)
        assignments = (
            db.session.query(CastTableAssignment)
            .filter_by(bill_id=bill.id, is_active=True)
            .all()
        )
        row["bill"] = {
            **bill.to_dict(),
            "current_total": view.current_total,
            "display_total": view.display_total,
            "elapsed_minutes": view.elapsed_minutes,
            "remaining_minutes": view.remaining_minutes,
            "remaining_label": format_minutes(view.remaining_minutes),
            "show_extension_preview": view.show_extension_preview,
            "order_count": len(orders),
            "extension_count": sum(
                o.quantity for o in orders if o.product.category == CATEGORY_EXTENSION
            ),
            "casts": [a.to_dict() for a in assignments],
        }
        out.append(row)
    return out
