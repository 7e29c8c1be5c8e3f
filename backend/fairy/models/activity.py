from __future__ import annotations

from ..extensions import db
from fairy.time_utils import to_utc_z


class ActivityEvent(db.Model):
    """
    Floor activity log: orders, cancellations, extensions, adjustments,
    session open/close, table upgrades and shift approvals.

    IMMUTABLE: Never update or delete. Written in the same transaction as
    the change it records.
    """
    __tablename__ = "activity_events"
    __table_args__ = (
        db.Index("ix_activity_events_bill_occurred", "bill_id", "occurred_at"),
        db.Index("ix_activity_events_store_occurred", "store_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=True, index=True)

    # order_added, extension, order_cancelled, adjustment, session_started, ...
    event_type = db.Column(db.String(32), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    actor_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True)
    actor_cast_id = db.Column(db.Integer, db.ForeignKey("cast_members.id"), nullable=True)

    label = db.Column(db.String(120), nullable=True)
    detail = db.Column(db.String(255), nullable=True)
    amount = db.Column(db.Integer, nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "bill_id": self.bill_id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_staff_id": self.actor_staff_id,
            "actor_cast_id": self.actor_cast_id,
            "label": self.label,
            "detail": self.detail,
            "amount": self.amount,
            "occurred_at": to_utc_z(self.occurred_at),
        }
