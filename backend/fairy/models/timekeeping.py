from __future__ import annotations

from ..extensions import db
from fairy.time_utils import to_utc_z
from fairy.engine.types import ShiftRecord


class CastShift(db.Model):
    """
    One cast member's shift at one store.

    LIFECYCLE:
    - clock_in recorded by the cast, clock_in_status pending until staff
      approves or rejects it
    - clock_out recorded later, with its own independent approval state

    Only shifts whose clock-in is approved count towards pay. A recorded
    clock-out ends paid time even while its approval is pending; a rejected
    clock-out is cleared so the cast clocks out again.
    Late pickup (送り遅れ) pays hourly + late_pickup_bonus from
    late_pickup_start onwards.
    """
    __tablename__ = "cast_shifts"
    __table_args__ = (
        db.Index("ix_cast_shifts_cast_clock_in", "cast_id", "clock_in"),
        db.Index("ix_cast_shifts_store_clock_in", "store_id", "clock_in"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    cast_id = db.Column(db.Integer, db.ForeignKey("cast_members.id"), nullable=False, index=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    clock_in = db.Column(db.DateTime(timezone=True), nullable=False)
    clock_out = db.Column(db.DateTime(timezone=True), nullable=True)

    # pending | approved | rejected
    clock_in_status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    clock_out_status = db.Column(db.String(16), nullable=True)

    clock_in_approved_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True)
    clock_out_approved_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True)

    is_late_pickup = db.Column(db.Boolean, nullable=False, default=False)
    late_pickup_start = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    cast = db.relationship("CastMember", backref=db.backref("shifts", lazy=True))
    store = db.relationship("Store")

    __mapper_args__ = {"version_id_col": version_id}

    def to_record(self) -> ShiftRecord:
        return ShiftRecord(
            clock_in=self.clock_in,
            clock_out=self.clock_out,
            is_late_pickup=bool(self.is_late_pickup),
            late_pickup_start=self.late_pickup_start,
            clock_in_status=self.clock_in_status,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "cast_id": self.cast_id,
            "cast_name": self.cast.name if self.cast else None,
            "store_id": self.store_id,
            "clock_in": to_utc_z(self.clock_in),
            "clock_out": to_utc_z(self.clock_out) if self.clock_out else None,
            "clock_in_status": self.clock_in_status,
            "clock_out_status": self.clock_out_status,
            "is_late_pickup": self.is_late_pickup,
            "late_pickup_start": to_utc_z(self.late_pickup_start) if self.late_pickup_start else None,
            "notes": self.notes,
            "version_id": self.version_id,
        }
