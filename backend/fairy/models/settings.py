from __future__ import annotations

from ..extensions import db
from fairy.time_utils import to_utc_z


class StoreSetting(db.Model):
    """
    Store-wide numeric setting (bonus thresholds, fees, tax rate).

    Values are integers; tax_rate is stored x100 (90 == 0.9). A missing row
    means "use the default", never an error.
    """
    __tablename__ = "store_settings"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(64), nullable=False, unique=True)
    label = db.Column(db.String(120), nullable=False)
    value = db.Column(db.Integer, nullable=False)

    updated_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "label": self.label,
            "value": self.value,
            "updated_by_staff_id": self.updated_by_staff_id,
            "updated_at": to_utc_z(self.updated_at),
        }


class DailyReport(db.Model):
    """
    Persisted end-of-day snapshot, one row per (store, business date).

    Saving again for the same day overwrites the snapshot.
    """
    __tablename__ = "daily_reports"
    __table_args__ = (
        db.UniqueConstraint("store_id", "report_date", name="uq_daily_reports_store_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    report_date = db.Column(db.Date, nullable=False, index=True)

    total_sales = db.Column(db.Integer, nullable=False, default=0)
    card_sales = db.Column(db.Integer, nullable=False, default=0)
    cash_sales = db.Column(db.Integer, nullable=False, default=0)
    total_bills = db.Column(db.Integer, nullable=False, default=0)

    is_weekend_holiday = db.Column(db.Boolean, nullable=False, default=False)
    bonus_tier = db.Column(db.Integer, nullable=False, default=0)
    bonus_per_point = db.Column(db.Integer, nullable=False, default=0)

    saved_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    store = db.relationship("Store")

    def to_dict(self):
        return {
            "id": self.id,
            "store_id": self.store_id,
            "report_date": self.report_date.isoformat(),
            "total_sales": self.total_sales,
            "card_sales": self.card_sales,
            "cash_sales": self.cash_sales,
            "total_bills": self.total_bills,
            "is_weekend_holiday": self.is_weekend_holiday,
            "bonus_tier": self.bonus_tier,
            "bonus_per_point": self.bonus_per_point,
            "saved_by_staff_id": self.saved_by_staff_id,
            "updated_at": to_utc_z(self.updated_at),
        }
