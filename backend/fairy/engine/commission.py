from __future__ import annotations

from .errors import InvalidInputError
from .types import ProductTerms, SEATING_DESIGNATED, SEATING_TIERS


def back_amount(product: ProductTerms, seating_tier: str) -> int:
    """
    Commission for one unit of ``product`` on a bill at ``seating_tier``.

    Only bottles carry different free/designated rates; for every other
    category the two columns hold the same value, so the same selection
    applies uniformly. The result is captured on the order when it is rung
    up and never recomputed after a later tier change.
    """
    if seating_tier not in SEATING_TIERS:
        raise InvalidInputError(f"Unknown seating tier: {seating_tier}")
    if seating_tier == SEATING_DESIGNATED:
        return int(product.back_designated or 0)
    return int(product.back_free or 0)
