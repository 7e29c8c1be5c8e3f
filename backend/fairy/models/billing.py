from __future__ import annotations

from ..extensions import db
from fairy.time_utils import to_utc_z
from fairy.engine.types import AdjustmentLine, OrderLine


class Bill(db.Model):
    """
    One open tab for one table (a table session).

    LIFECYCLE:
    - open: created when staff starts a session; extension orders and
      designation upgrades mutate seating_type
    - closed: close_time and payment_method are fixed permanently

    At most one open bill per table, enforced by a partial unique index and
    checked under a row lock when a session starts.
    """
    __tablename__ = "bills"
    __table_args__ = (
        db.Index(
            "uq_bills_one_open_per_table",
            "table_id",
            unique=True,
            sqlite_where=db.text("status = 'open'"),
            postgresql_where=db.text("status = 'open'"),
        ),
        db.Index("ix_bills_store_start", "store_id", "start_time"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    table_id = db.Column(db.Integer, db.ForeignKey("floor_tables.id"), nullable=False, index=True)

    status = db.Column(db.String(16), nullable=False, default="open", index=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    close_time = db.Column(db.DateTime(timezone=True), nullable=True)
    base_minutes = db.Column(db.Integer, nullable=False, default=60)

    # free | designated | inhouse
    seating_type = db.Column(db.String(16), nullable=False, default="free")

    # cash | card | qr | contactless | split, null until chosen
    payment_method = db.Column(db.String(16), nullable=True)
    is_cancelled = db.Column(db.Boolean, nullable=False, default=False)

    # Customer QR page lookup token
    read_token = db.Column(db.String(32), nullable=False, unique=True, index=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    store = db.relationship("Store", backref=db.backref("bills", lazy=True))
    table = db.relationship("FloorTable", backref=db.backref("bills", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "table_id": self.table_id,
            "table_label": self.table.label if self.table else None,
            "status": self.status,
            "start_time": to_utc_z(self.start_time),
            "close_time": to_utc_z(self.close_time) if self.close_time else None,
            "base_minutes": self.base_minutes,
            "seating_type": self.seating_type,
            "payment_method": self.payment_method,
            "is_cancelled": self.is_cancelled,
            "read_token": self.read_token,
            "notes": self.notes,
            "version_id": self.version_id,
        }


class Order(db.Model):
    """
    A line item on a bill.

    unit_price, back_amount and points_amount are captured when the order
    is rung up; later catalog edits or seating upgrades never rewrite them.
    Orders are never edited; cancellation keeps the row for the audit trail
    and removes it from every total.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_bill_cancelled", "bill_id", "is_cancelled"),
        db.Index("ix_orders_cast_created", "cast_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_orders_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    cast_id = db.Column(db.Integer, db.ForeignKey("cast_members.id"), nullable=True, index=True)

    quantity = db.Column(db.Integer, nullable=False, default=1)
    unit_price = db.Column(db.Integer, nullable=False)
    back_amount = db.Column(db.Integer, nullable=False, default=0)
    points_amount = db.Column(db.Integer, nullable=False, default=0)

    is_cancelled = db.Column(db.Boolean, nullable=False, default=False)
    cancelled_by_staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    bill = db.relationship("Bill", backref=db.backref("orders", lazy=True, order_by="Order.id"))
    product = db.relationship("Product")
    cast = db.relationship("CastMember")

    __mapper_args__ = {"version_id_col": version_id}

    def to_line(self) -> OrderLine:
        return OrderLine(
            unit_price=self.unit_price,
            quantity=self.quantity,
            tax_applicable=bool(self.product.tax_applicable),
            category=self.product.category,
            is_cancelled=bool(self.is_cancelled),
            extension_minutes=self.product.extension_minutes,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "product_id": self.product_id,
            "product_name": self.product.name_jp if self.product else None,
            "category": self.product.category if self.product else None,
            "cast_id": self.cast_id,
            "cast_name": self.cast.name if self.cast else None,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "back_amount": self.back_amount,
            "points_amount": self.points_amount,
            "is_cancelled": self.is_cancelled,
            "cancelled_by_staff_id": self.cancelled_by_staff_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
            "created_at": to_utc_z(self.created_at),
        }


class BillDesignation(db.Model):
    """
    Per (bill, cast) extension counter driving the auto-upgrade.

    extension_count only ever grows, via an atomic SQL increment.
    is_designated flips to true at count >= 3 and never resets.
    """
    __tablename__ = "bill_designations"
    __table_args__ = (
        db.UniqueConstraint("bill_id", "cast_id", name="uq_bill_designations_bill_cast"),
        db.CheckConstraint("extension_count >= 0", name="ck_bill_designations_count_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    cast_id = db.Column(db.Integer, db.ForeignKey("cast_members.id"), nullable=False, index=True)
    extension_count = db.Column(db.Integer, nullable=False, default=0)
    is_designated = db.Column(db.Boolean, nullable=False, default=False)
    designated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    bill = db.relationship("Bill", backref=db.backref("designations", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "cast_id": self.cast_id,
            "extension_count": self.extension_count,
            "is_designated": self.is_designated,
            "designated_at": to_utc_z(self.designated_at) if self.designated_at else None,
        }


class PriceAdjustment(db.Model):
    """
    Manual staff delta on a bill total (tax-inclusive yen).

    IMMUTABLE: append-only; a wrong adjustment is corrected with another one.
    """
    __tablename__ = "price_adjustments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id"), nullable=True)
    staff_id = db.Column(db.Integer, db.ForeignKey("staff_members.id"), nullable=False)

    # discount | surcharge | price_change | custom
    adjustment_type = db.Column(db.String(16), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(255), nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False)

    bill = db.relationship("Bill", backref=db.backref("adjustments", lazy=True, order_by="PriceAdjustment.id"))

    def to_line(self) -> AdjustmentLine:
        return AdjustmentLine(amount=self.amount)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "order_id": self.order_id,
            "staff_id": self.staff_id,
            "adjustment_type": self.adjustment_type,
            "amount": self.amount,
            "reason": self.reason,
            "created_at": to_utc_z(self.created_at),
        }


class CastTableAssignment(db.Model):
    """Which casts are seated at a bill; active assignments split champagne points."""
    __tablename__ = "cast_table_assignments"
    __table_args__ = (
        db.Index("ix_cast_assignments_bill_active", "bill_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    bill_id = db.Column(db.Integer, db.ForeignKey("bills.id"), nullable=False, index=True)
    cast_id = db.Column(db.Integer, db.ForeignKey("cast_members.id"), nullable=False, index=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=False)
    removed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    bill = db.relationship("Bill", backref=db.backref("assignments", lazy=True))
    cast = db.relationship("CastMember")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "bill_id": self.bill_id,
            "cast_id": self.cast_id,
            "cast_name": self.cast.name if self.cast else None,
            "is_active": self.is_active,
            "assigned_at": to_utc_z(self.assigned_at),
            "removed_at": to_utc_z(self.removed_at) if self.removed_at else None,
        }
