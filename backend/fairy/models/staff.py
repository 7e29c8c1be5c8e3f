from __future__ import annotations

from ..extensions import db
from fairy.time_utils import to_utc_z


class CastMember(db.Model):
    """
    Hostess on the floor. Pay terms live on the member, not the store:
    one hourly rate and one transport fee apply across every store worked.
    """
    __tablename__ = "cast_members"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), nullable=False)
    home_store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)

    hourly_rate = db.Column(db.Integer, nullable=False, default=0)
    transport_fee = db.Column(db.Integer, nullable=False, default=0)

    # Cast member who introduced this one; drives the referral bonus
    referred_by_id = db.Column(db.Integer, db.ForeignKey("cast_members.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    home_store = db.relationship("Store")
    referred_by = db.relationship("CastMember", remote_side=[id], backref=db.backref("referrals", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "home_store_id": self.home_store_id,
            "hourly_rate": self.hourly_rate,
            "transport_fee": self.transport_fee,
            "referred_by_id": self.referred_by_id,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class StaffMember(db.Model):
    """Floor staff / manager. Approves shifts and rings up orders."""
    __tablename__ = "staff_members"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(80), nullable=False)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=True, index=True)
    is_manager = db.Column(db.Boolean, nullable=False, default=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    store = db.relationship("Store")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "store_id": self.store_id,
            "is_manager": self.is_manager,
            "is_active": self.is_active,
        }
