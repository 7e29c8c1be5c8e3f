from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import ActivityEvent
"""
Activity log invariants

- Append-only: no updates or deletes of existing events.
- Events are written inside the same DB transaction as the change they record.
- occurred_at is business time; created_at is system time (DB default).
"""

ORDER_ADDED = "order_added"
EXTENSION = "extension"
ORDER_CANCELLED = "order_cancelled"
ADJUSTMENT = "adjustment"
SESSION_STARTED = "session_started"
SESSION_CLOSED = "session_closed"
SESSION_CANCELLED = "session_cancelled"
PAYMENT_METHOD_SET = "payment_method_set"
TABLE_UPGRADED = "table_upgraded"
CAST_ASSIGNED = "cast_assigned"
CAST_UNASSIGNED = "cast_unassigned"
SHIFT_CLOCK_IN = "shift_clock_in"
SHIFT_CLOCK_OUT = "shift_clock_out"
SHIFT_APPROVAL = "shift_approval"


def append_activity(
    *,
    store_id: int,
    event_type: str,
    entity_type: str,
    entity_id: int,
    bill_id: int | None = None,
    actor_staff_id: int | None = None,
    actor_cast_id: int | None = None,
    label: str | None = None,
    detail: str | None = None,
    amount: int | None = None,
    occurred_at: Optional[datetime] = None,
) -> ActivityEvent:
    ev = ActivityEvent(
        store_id=store_id,
        bill_id=bill_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_staff_id=actor_staff_id,
        actor_cast_id=actor_cast_id,
        label=label,
        detail=detail,
        amount=amount,
        occurred_at=occurred_at,  # if None, db default applies
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def bill_activity(bill_id: int) -> list[ActivityEvent]:
    """Newest first, as the floor timeline shows it."""
    return (
        db.session.query(ActivityEvent)
        .filter_by(bill_id=bill_id)
        .order_by(ActivityEvent.occurred_at.desc(), ActivityEvent.id.desc())
        .all()
    )
