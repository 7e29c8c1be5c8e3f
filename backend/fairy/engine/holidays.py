from __future__ import annotations

from datetime import date, timedelta
from typing import Collection

# Japanese national holidays (including substitute holidays), 2025-2027.
JAPANESE_HOLIDAYS: frozenset[date] = frozenset(
    date.fromisoformat(d)
    for d in (
        "2025-01-01", "2025-01-02", "2025-01-03",
        "2025-01-13", "2025-02-11", "2025-02-23", "2025-02-24",
        "2025-03-20", "2025-04-29", "2025-05-03", "2025-05-04",
        "2025-05-05", "2025-05-06", "2025-07-21", "2025-08-11",
        "2025-09-15", "2025-09-23", "2025-10-13", "2025-11-03",
        "2025-11-23", "2025-11-24",
        "2026-01-01", "2026-01-02", "2026-01-03",
        "2026-01-12", "2026-02-11", "2026-02-23", "2026-03-20",
        "2026-04-29", "2026-05-03", "2026-05-04", "2026-05-05",
        "2026-05-06", "2026-07-20", "2026-08-11", "2026-09-21",
        "2026-09-22", "2026-09-23", "2026-10-12", "2026-11-03",
        "2026-11-23",
        "2027-01-01", "2027-01-02", "2027-01-03",
        "2027-01-11", "2027-02-11", "2027-02-23", "2027-03-21",
        "2027-03-22", "2027-04-29", "2027-05-03", "2027-05-04",
        "2027-05-05", "2027-07-19", "2027-08-11", "2027-09-20",
        "2027-09-23", "2027-10-11", "2027-11-03", "2027-11-23",
    )
)

FRIDAY = 4
SATURDAY = 5


def is_holiday(day: date, holidays: Collection[date] = JAPANESE_HOLIDAYS) -> bool:
    return day in holidays


def is_holiday_eve(day: date, holidays: Collection[date] = JAPANESE_HOLIDAYS) -> bool:
    return (day + timedelta(days=1)) in holidays


def is_weekend_or_holiday(day: date, holidays: Collection[date] = JAPANESE_HOLIDAYS) -> bool:
    """Friday, Saturday, the eve of a holiday, and holidays use the weekend threshold."""
    if day.weekday() in (FRIDAY, SATURDAY):
        return True
    return is_holiday_eve(day, holidays) or is_holiday(day, holidays)
