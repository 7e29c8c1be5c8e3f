from __future__ import annotations

from datetime import datetime

from ..time_utils import to_jst


def format_jpy(amount: int) -> str:
    """18500 -> '¥18,500'"""
    return f"¥{amount:,}"


def format_minutes(minutes: int) -> str:
    """Signed minutes for staff/cast views: -10 -> '-10分'."""
    if minutes < 0:
        return f"-{abs(minutes)}分"
    return f"{minutes}分"


def format_work_time(minutes: int) -> str:
    """392 -> '6時間32分'"""
    hours, mins = divmod(minutes, 60)
    return f"{hours}時間{mins}分"


def format_start_time(value: datetime) -> str:
    """UTC-naive (or aware) timestamp -> 'HH:MM' in JST."""
    return to_jst(value).strftime("%H:%M")
