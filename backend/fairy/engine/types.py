"""
Value types crossing the engine boundary.

Inputs are built by the service layer from database rows; outputs are
serialized by the routes. All amounts are integer yen unless noted.
"""

from __future__ import annotations

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from typing import Any, Mapping

from ..time_utils import to_utc_z
from .errors import InvalidInputError


# Product categories
CATEGORY_SET = "set"
CATEGORY_EXTENSION = "extension"
CATEGORY_NOMINATION = "nomination"
CATEGORY_COMPANION = "companion"
CATEGORY_DRINKS = "drinks"
CATEGORY_BOTTLES = "bottles"
CATEGORIES = (
    CATEGORY_SET,
    CATEGORY_EXTENSION,
    CATEGORY_NOMINATION,
    CATEGORY_COMPANION,
    CATEGORY_DRINKS,
    CATEGORY_BOTTLES,
)

# Seating tiers (also used as extension tiers)
SEATING_FREE = "free"
SEATING_DESIGNATED = "designated"
SEATING_INHOUSE = "inhouse"
SEATING_TIERS = (SEATING_FREE, SEATING_DESIGNATED, SEATING_INHOUSE)

# Payment methods
PAYMENT_CASH = "cash"
PAYMENT_CARD = "card"
PAYMENT_QR = "qr"
PAYMENT_CONTACTLESS = "contactless"
PAYMENT_SPLIT = "split"
PAYMENT_METHODS = (PAYMENT_CASH, PAYMENT_CARD, PAYMENT_QR, PAYMENT_CONTACTLESS, PAYMENT_SPLIT)

# Shift edge approval states
APPROVAL_PENDING = "pending"
APPROVAL_APPROVED = "approved"
APPROVAL_REJECTED = "rejected"
APPROVAL_STATES = (APPROVAL_PENDING, APPROVAL_APPROVED, APPROVAL_REJECTED)

BASE_MINUTES_MENU = (40, 60, 90)
EXTENSION_MINUTES_MENU = (20, 40)

# Drink sizes in S-units
DRINK_UNITS_BY_SIZE = {"S": 1, "M": 2, "L": 3, "shot": 2}


@dataclass(frozen=True)
class ProductTerms:
    """The commission-relevant slice of a catalog product."""
    category: str
    back_free: int
    back_designated: int


@dataclass(frozen=True)
class OrderLine:
    unit_price: int
    quantity: int
    tax_applicable: bool = True
    category: str = CATEGORY_SET
    is_cancelled: bool = False
    extension_minutes: int | None = None


@dataclass(frozen=True)
class AdjustmentLine:
    """Signed tax-inclusive delta: negative is a discount, positive a surcharge."""
    amount: int


@dataclass(frozen=True)
class BillState:
    start_time: datetime
    base_minutes: int
    extension_minutes_accrued: int = 0
    seating_tier: str = SEATING_FREE
    payment_method: str | None = None


@dataclass(frozen=True)
class ShiftRecord:
    clock_in: datetime
    clock_out: datetime | None = None
    is_late_pickup: bool = False
    late_pickup_start: datetime | None = None
    clock_in_status: str = APPROVAL_PENDING


@dataclass(frozen=True)
class SettingsMap:
    """
    Store-wide numeric configuration.

    tax_rate is stored as a percentage x100 (90 means multiply by 0.9).
    """
    bonus_threshold_weekday: int = 400_000
    bonus_threshold_weekend: int = 500_000
    bonus_increment: int = 400_000
    bonus_base_per_point: int = 200
    bonus_max_per_point: int = 600
    welfare_fee: int = 1_000
    tax_rate: int = 90
    late_pickup_bonus: int = 500
    referral_bonus: int = 2_000

    @classmethod
    def keys(cls) -> list[str]:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None) -> "SettingsMap":
        """Build from a key/value mapping; absent or None keys fall back to defaults."""
        known = {}
        for key in cls.keys():
            if not values or values.get(key) is None:
                continue
            raw = values[key]
            if isinstance(raw, bool):
                raise InvalidInputError(f"Setting {key} must be an integer")
            try:
                known[key] = int(raw)
            except (TypeError, ValueError):
                raise InvalidInputError(f"Setting {key} must be an integer")
        return cls(**known)

    @property
    def tax_multiplier(self) -> float:
        return self.tax_rate / 100

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class BillTotalView:
    current_total: int
    remaining_minutes: int
    show_extension_preview: bool
    extension_preview_total: int
    elapsed_minutes: int = 0
    total_minutes: int = 0
    display_total: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class DesignationDecision:
    designate_pair: bool
    upgrade_bill: bool
    new_seating_tier: str


@dataclass(frozen=True)
class ShiftPay:
    work_minutes: int
    base_hourly: int
    effective_hourly: int
    time_pay: int
    is_late_pickup: bool = False
    clock_in: datetime | None = None
    clock_out: datetime | None = None
    late_pickup_start: datetime | None = None


@dataclass(frozen=True)
class BonusResult:
    qualified: bool
    bonus_per_point: int
    total_bonus: int
    tier: int = 0


@dataclass(frozen=True)
class CrossStoreBonus:
    qualified: bool
    bonus_per_point: int
    total_bonus: int
    total_store_sales: int
    per_store: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PayoutResult:
    subtotal: int
    after_tax: int
    tax_deduction: int
    net: int


@dataclass
class CastEarningsBreakdown:
    total_time_pay: int = 0
    total_backs: int = 0
    total_points: int = 0
    bonus_amount: int = 0
    bonus_qualified: bool = False
    subtotal: int = 0
    after_tax: int = 0
    welfare_fee: int = 0
    transport_fee: int = 0
    net_payout: int = 0
    referral_bonus: int = 0

    # detail
    shifts: list = field(default_factory=list)
    total_work_minutes: int = 0
    has_late_pickup: bool = False
    backs_by_category: dict = field(default_factory=dict)
    drink_s_units: int = 0
    drink_points: int = 0
    champagne_shares: list = field(default_factory=list)
    champagne_points: int = 0
    orders_count: int = 0
    store_sales: int = 0
    bonus_per_point: int = 0
    tax_rate: float = 0.9
    tax_deduction: int = 0
    referral_count: int = 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["shifts"] = [_shift_pay_dict(s) for s in self.shifts]
        return data


def _shift_pay_dict(pay: ShiftPay) -> dict:
    return {
        "clock_in": to_utc_z(pay.clock_in),
        "clock_out": to_utc_z(pay.clock_out),
        "is_late_pickup": pay.is_late_pickup,
        "late_pickup_start": to_utc_z(pay.late_pickup_start),
        "work_minutes": pay.work_minutes,
        "base_hourly": pay.base_hourly,
        "effective_hourly": pay.effective_hourly,
        "time_pay": pay.time_pay,
    }
