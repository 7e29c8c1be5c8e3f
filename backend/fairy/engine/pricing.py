"""
Customer-facing charge calculation.

Tax (10%) and service (20%) are applied as a single 1.20 multiplier on
taxable lines. Each line is floored to whole yen BEFORE lines are summed;
the grand total is then floored to 10 yen. Changing that order changes
the totals the floor staff quote to customers.

The card surcharge (x1.10, ceil to 100 yen) is a display transform for
non-cash tenders and is never stored as the bill total.
"""

from __future__ import annotations

import math
from typing import Iterable

from .errors import InvalidInputError, InvariantViolationError
from .rounding import ceil_to_nearest_100, floor_to_nearest_10
from .types import (
    AdjustmentLine,
    OrderLine,
    PAYMENT_CARD,
    PAYMENT_CONTACTLESS,
    PAYMENT_METHODS,
    PAYMENT_QR,
    PAYMENT_SPLIT,
)


TAX_SERVICE_MULTIPLIER = 1.20
CARD_SURCHARGE_MULTIPLIER = 1.10
CARD_SURCHARGE_METHODS = frozenset({PAYMENT_CARD, PAYMENT_QR, PAYMENT_CONTACTLESS, PAYMENT_SPLIT})


def line_charge(unit_price: float, quantity: int, tax_applicable: bool) -> int:
    if quantity is None or quantity < 0:
        raise InvalidInputError("quantity must be zero or greater")
    if unit_price is None or unit_price < 0:
        raise InvalidInputError("unit_price must be zero or greater")

    price = unit_price * quantity
    if tax_applicable:
        return int(math.floor(price * TAX_SERVICE_MULTIPLIER))
    return int(price)


def lines_subtotal(lines: Iterable[OrderLine]) -> int:
    """Sum of per-line charges over non-cancelled lines (no 10-yen rounding)."""
    return sum(
        line_charge(line.unit_price, line.quantity, line.tax_applicable)
        for line in lines
        if not line.is_cancelled
    )


def bill_total(lines: Iterable[OrderLine], adjustments: Iterable[AdjustmentLine] = ()) -> int:
    subtotal = lines_subtotal(lines)
    delta = sum(adj.amount for adj in adjustments)
    total = floor_to_nearest_10(subtotal + delta)
    if total < 0:
        raise InvariantViolationError(f"Bill total would be negative ({total}) after adjustments")
    return total


def apply_tax_service_and_round(base_amount: float) -> int:
    return floor_to_nearest_10(base_amount * TAX_SERVICE_MULTIPLIER)


def is_card_surcharge_applicable(method: str | None) -> bool:
    return method in CARD_SURCHARGE_METHODS


def card_surcharge(base_total: float) -> int:
    """Card/QR/contactless amount: x1.10 rounded UP to 100 yen (16500 -> 18200)."""
    return ceil_to_nearest_100(base_total * CARD_SURCHARGE_MULTIPLIER)


def payment_display_total(total: int, method: str | None) -> int:
    if method is not None and method not in PAYMENT_METHODS:
        raise InvalidInputError(f"Unknown payment method: {method}")
    if is_card_surcharge_applicable(method):
        return card_surcharge(total)
    return total


def extension_preview(current_base_amount: float, extension_price: float) -> int:
    """
    Projected total after one more extension.

    The multiplier applies to the pre-tax base sum, so callers must pass a
    pre-tax base, not the already-taxed running total.
    """
    return apply_tax_service_and_round(current_base_amount + extension_price)


def approximate_pre_tax_base(displayed_total: float) -> float:
    """
    Reverse-derive a pre-tax base from a displayed total.

    Approximate: per-line flooring and non-taxable lines are not recoverable
    from the total, so the preview built from this can drift by a few yen.
    """
    return displayed_total / TAX_SERVICE_MULTIPLIER
