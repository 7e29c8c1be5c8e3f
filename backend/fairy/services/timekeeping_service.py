"""
Cast timekeeping (出退勤)

Casts clock in and out themselves; staff approve or reject each edge
separately. Only shifts with an approved clock-in are paid. Staff flag a
shift as late pickup (送り遅れ) when the cast waits past closing for a ride.
"""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa

from ..extensions import db
from ..models import CastMember, CastShift, Store
from ..engine.types import APPROVAL_APPROVED, APPROVAL_PENDING, APPROVAL_REJECTED
from fairy.time_utils import utcnow
from .activity_service import SHIFT_APPROVAL, SHIFT_CLOCK_IN, SHIFT_CLOCK_OUT, append_activity
from .concurrency import lock_for_update, run_with_retry


class TimekeepingError(ValueError):
    """Raised for invalid timekeeping operations."""
    pass


def _open_shift(cast_id: int) -> CastShift | None:
    """The cast's shift without a clock-out, ignoring rejected clock-ins."""
    return (
        db.session.query(CastShift)
        .filter(
            CastShift.cast_id == cast_id,
            CastShift.clock_out.is_(None),
            CastShift.clock_in_status != APPROVAL_REJECTED,
        )
        .order_by(CastShift.clock_in.desc())
        .first()
    )


def _locked_shift(shift_id: int) -> CastShift:
    shift = lock_for_update(db.session.query(CastShift).filter_by(id=shift_id)).first()
    if not shift:
        raise TimekeepingError("Shift not found")
    return shift


def current_shift(cast_id: int) -> CastShift | None:
    return _open_shift(cast_id)


def clock_in(*, cast_id: int, store_id: int, now: datetime | None = None) -> CastShift:
    cast = db.session.query(CastMember).filter_by(id=cast_id).first()
    if not cast:
        raise TimekeepingError("Cast member not found")
    if not cast.is_active:
        raise TimekeepingError("Cast member is not active")
    if not db.session.query(Store).filter_by(id=store_id).first():
        raise TimekeepingError("Store not found")
    if _open_shift(cast_id):
        raise TimekeepingError("Cast member is already clocked in")

    shift = CastShift(
        cast_id=cast_id,
        store_id=store_id,
        clock_in=now or utcnow(),
        clock_in_status=APPROVAL_PENDING,
    )
    db.session.add(shift)
    db.session.flush()

    append_activity(
        store_id=store_id,
        event_type=SHIFT_CLOCK_IN,
        entity_type="cast_shift",
        entity_id=shift.id,
        actor_cast_id=cast_id,
        label=cast.name,
        occurred_at=shift.clock_in,
    )

    db.session.commit()
    return shift


def clock_out(*, cast_id: int, now: datetime | None = None) -> CastShift:
    shift = _open_shift(cast_id)
    if not shift:
        raise TimekeepingError("Cast member is not clocked in")

    at = now or utcnow()
    if at < shift.clock_in:
        raise TimekeepingError("Clock-out cannot be earlier than clock-in")

    shift.clock_out = at
    shift.clock_out_status = APPROVAL_PENDING
    db.session.flush()

    append_activity(
        store_id=shift.store_id,
        event_type=SHIFT_CLOCK_OUT,
        entity_type="cast_shift",
        entity_id=shift.id,
        actor_cast_id=cast_id,
        label=shift.cast.name,
        occurred_at=at,
    )

    db.session.commit()
    return shift


def _decide(shift_id: int, staff_id: int, edge: str, decision: str) -> CastShift:
    def _op():
        shift = _locked_shift(shift_id)

        if edge == "clock_in":
            if shift.clock_in_status != APPROVAL_PENDING:
                raise TimekeepingError("Clock-in is not pending approval")
            shift.clock_in_status = decision
            shift.clock_in_approved_by_staff_id = staff_id
        else:
            if shift.clock_out is None or shift.clock_out_status != APPROVAL_PENDING:
                raise TimekeepingError("Clock-out is not pending approval")
            shift.clock_out_status = decision
            shift.clock_out_approved_by_staff_id = staff_id
            if decision == APPROVAL_REJECTED:
                # The cast has to clock out again.
                shift.clock_out = None

        append_activity(
            store_id=shift.store_id,
            event_type=SHIFT_APPROVAL,
            entity_type="cast_shift",
            entity_id=shift.id,
            actor_staff_id=staff_id,
            actor_cast_id=shift.cast_id,
            label=edge,
            detail=decision,
        )

        db.session.commit()
        return shift

    return run_with_retry(_op)


def approve_clock_in(*, shift_id: int, staff_id: int) -> CastShift:
    return _decide(shift_id, staff_id, "clock_in", APPROVAL_APPROVED)


def reject_clock_in(*, shift_id: int, staff_id: int) -> CastShift:
    return _decide(shift_id, staff_id, "clock_in", APPROVAL_REJECTED)


def approve_clock_out(*, shift_id: int, staff_id: int) -> CastShift:
    return _decide(shift_id, staff_id, "clock_out", APPROVAL_APPROVED)


def reject_clock_out(*, shift_id: int, staff_id: int) -> CastShift:
    return _decide(shift_id, staff_id, "clock_out", APPROVAL_REJECTED)


def mark_late_pickup(
    *,
    shift_id: int,
    staff_id: int,
    late_pickup_start: datetime | None = None,
    enabled: bool = True,
) -> CastShift:
    """Flag (or unflag) late pickup. The start defaults to now and must fall inside the shift."""
    def _op():
        shift = _locked_shift(shift_id)

        if not enabled:
            shift.is_late_pickup = False
            shift.late_pickup_start = None
            db.session.commit()
            return shift

        start = late_pickup_start or utcnow()
        if start < shift.clock_in:
            raise TimekeepingError("Late pickup cannot start before clock-in")
        if shift.clock_out is not None and start > shift.clock_out:
            raise TimekeepingError("Late pickup cannot start after clock-out")

        shift.is_late_pickup = True
        shift.late_pickup_start = start

        append_activity(
            store_id=shift.store_id,
            event_type=SHIFT_APPROVAL,
            entity_type="cast_shift",
            entity_id=shift.id,
            actor_staff_id=staff_id,
            actor_cast_id=shift.cast_id,
            label="late_pickup",
            occurred_at=start,
        )

        db.session.commit()
        return shift

    return run_with_retry(_op)


def pending_approvals(store_id: int | None = None) -> list[CastShift]:
    """Shifts with a pending clock-in, or a recorded clock-out still pending."""
    query = db.session.query(CastShift).filter(
        sa.or_(
            CastShift.clock_in_status == APPROVAL_PENDING,
            sa.and_(
                CastShift.clock_out.isnot(None),
                CastShift.clock_out_status == APPROVAL_PENDING,
            ),
        )
    )
    if store_id is not None:
        query = query.filter(CastShift.store_id == store_id)
    return query.order_by(CastShift.clock_in.asc()).all()
