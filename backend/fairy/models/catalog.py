from __future__ import annotations

from ..extensions import db
from fairy.time_utils import to_utc_z
from fairy.engine.types import ProductTerms


class Store(db.Model):
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, unique=True)
    address = db.Column(db.String(255), nullable=True)
    timezone = db.Column(db.String(64), nullable=False, default="Asia/Tokyo")
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "address": self.address,
            "timezone": self.timezone,
            "created_at": to_utc_z(self.created_at),
        }


class FloorTable(db.Model):
    """A physical table on a store floor. Layout geometry lives in the frontend."""
    __tablename__ = "floor_tables"
    __table_args__ = (
        db.UniqueConstraint("store_id", "label", name="uq_floor_tables_store_label"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    store_id = db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)
    label = db.Column(db.String(32), nullable=False)
    seats = db.Column(db.Integer, nullable=False, default=4)

    store = db.relationship("Store", backref=db.backref("tables", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "store_id": self.store_id,
            "label": self.label,
            "seats": self.seats,
        }


class Product(db.Model):
    """
    Sellable menu item.

    back_free / back_designated differ only for bottles. Extension products
    carry their minute count (20/40) and tier (free/inhouse/designated) as
    columns; in-house and designated extensions advance the designation
    counter for the cast they are attributed to.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        db.CheckConstraint("price >= 0", name="ck_products_price_nonnegative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name_jp = db.Column(db.String(120), nullable=False)

    # set | extension | nomination | companion | drinks | bottles
    category = db.Column(db.String(16), nullable=False, index=True)

    price = db.Column(db.Integer, nullable=False)
    tax_applicable = db.Column(db.Boolean, nullable=False, default=True)

    back_free = db.Column(db.Integer, nullable=False, default=0)
    back_designated = db.Column(db.Integer, nullable=False, default=0)
    points = db.Column(db.Integer, nullable=False, default=0)

    # drinks only: S | M | L | shot, and its S-unit weight
    drink_size = db.Column(db.String(8), nullable=True)
    drink_units = db.Column(db.Integer, nullable=False, default=0)

    # extension only
    extension_minutes = db.Column(db.Integer, nullable=True)
    extension_tier = db.Column(db.String(16), nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    sort_order = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    @property
    def advances_designation(self) -> bool:
        return self.category == "extension" and self.extension_tier in ("inhouse", "designated")

    def terms(self) -> ProductTerms:
        return ProductTerms(
            category=self.category,
            back_free=self.back_free or 0,
            back_designated=self.back_designated or 0,
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name_jp": self.name_jp,
            "category": self.category,
            "price": self.price,
            "tax_applicable": self.tax_applicable,
            "back_free": self.back_free,
            "back_designated": self.back_designated,
            "points": self.points,
            "drink_size": self.drink_size,
            "drink_units": self.drink_units,
            "extension_minutes": self.extension_minutes,
            "extension_tier": self.extension_tier,
            "is_active": self.is_active,
            "sort_order": self.sort_order,
        }
