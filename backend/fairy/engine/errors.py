from __future__ import annotations


class EngineError(ValueError):
    """Base class for calculation-engine failures."""


class InvalidInputError(EngineError):
    """Input outside the domain of a calculation (negative quantity, bad timestamp, unknown enum)."""


class InvariantViolationError(EngineError):
    """
    A computed result breaks a money/time invariant.

    Examples: a bill total that goes negative after adjustments, a shift
    whose clock-out precedes its clock-in.
    """
