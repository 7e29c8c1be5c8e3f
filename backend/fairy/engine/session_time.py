"""
Table session clock and the designation auto-upgrade rule.

Remaining time is signed: a negative value means the table is overdue and
is shown as such ("-12分"), never clamped to zero.

Auto-upgrade (テーブル昇格): every qualifying extension order advances the
(bill, cast) designation counter. When a pair reaches 3 the pair becomes
designated, and a FREE bill is promoted to DESIGNATED. The promotion is
one-way; orders already rung up keep the commission they were captured
with.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Iterable

from .errors import InvalidInputError
from .pricing import (
    approximate_pre_tax_base,
    bill_total,
    extension_preview,
    payment_display_total,
)
from .types import (
    AdjustmentLine,
    BASE_MINUTES_MENU,
    BillState,
    BillTotalView,
    CATEGORY_EXTENSION,
    DesignationDecision,
    EXTENSION_MINUTES_MENU,
    OrderLine,
    SEATING_DESIGNATED,
    SEATING_FREE,
    SEATING_TIERS,
)


DESIGNATION_THRESHOLD = 3
EXTENSION_PREVIEW_WINDOW_MINUTES = 5


def validate_base_minutes(base_minutes: int) -> int:
    if base_minutes not in BASE_MINUTES_MENU:
        raise InvalidInputError(f"base_minutes must be one of {BASE_MINUTES_MENU}")
    return base_minutes


def validate_extension_minutes(minutes: int) -> int:
    if minutes not in EXTENSION_MINUTES_MENU:
        raise InvalidInputError(f"extension minutes must be one of {EXTENSION_MINUTES_MENU}")
    return minutes


def elapsed_minutes(now: datetime, start_time: datetime) -> int:
    if not isinstance(now, datetime) or not isinstance(start_time, datetime):
        raise InvalidInputError("now and start_time must be datetimes")
    return int(math.floor((now - start_time).total_seconds() / 60))


def remaining_minutes(total_allotted_minutes: int, elapsed: int) -> int:
    return total_allotted_minutes - elapsed


def extension_minutes_accrued(lines: Iterable[OrderLine]) -> int:
    total = 0
    for line in lines:
        if line.is_cancelled or line.category != CATEGORY_EXTENSION:
            continue
        if line.extension_minutes is None:
            raise InvalidInputError("extension line is missing its minute count")
        total += validate_extension_minutes(line.extension_minutes) * line.quantity
    return total


def total_allotted_minutes(base_minutes: int, extension_minutes: int) -> int:
    return base_minutes + extension_minutes


def should_show_extension_preview(remaining: int) -> bool:
    return remaining <= EXTENSION_PREVIEW_WINDOW_MINUTES


def evaluate_designation_upgrade(
    seating_tier: str,
    extension_count: int,
    is_designated: bool,
) -> DesignationDecision:
    """
    Decide what the counter value implies. Safe to call repeatedly:
    an already-designated pair or bill yields no further change.
    """
    if seating_tier not in SEATING_TIERS:
        raise InvalidInputError(f"Unknown seating tier: {seating_tier}")
    if extension_count < 0:
        raise InvalidInputError("extension_count must be zero or greater")

    reached = extension_count >= DESIGNATION_THRESHOLD
    designate_pair = reached and not is_designated
    upgrade_bill = reached and seating_tier == SEATING_FREE
    return DesignationDecision(
        designate_pair=designate_pair,
        upgrade_bill=upgrade_bill,
        new_seating_tier=SEATING_DESIGNATED if upgrade_bill else seating_tier,
    )


def build_bill_total_view(
    bill: BillState,
    lines: list[OrderLine],
    adjustments: list[AdjustmentLine],
    now: datetime,
    extension_price: int,
) -> BillTotalView:
    current_total = bill_total(lines, adjustments)

    elapsed = elapsed_minutes(now, bill.start_time)
    total_minutes = total_allotted_minutes(bill.base_minutes, bill.extension_minutes_accrued)
    remaining = remaining_minutes(total_minutes, elapsed)

    preview = extension_preview(approximate_pre_tax_base(current_total), extension_price)

    return BillTotalView(
        current_total=current_total,
        remaining_minutes=remaining,
        show_extension_preview=should_show_extension_preview(remaining),
        extension_preview_total=preview,
        elapsed_minutes=elapsed,
        total_minutes=total_minutes,
        display_total=payment_display_total(current_total, bill.payment_method),
    )
