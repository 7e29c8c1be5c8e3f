from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


JST = timezone(timedelta(hours=9))

# The venue trades past midnight: a business day runs 06:00 JST -> 06:00 JST next day.
BUSINESS_DAY_START_HOUR = 6


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    # Normalize to UTC-naive
    if dt.tzinfo is None:
        # interpret naive as UTC
        return dt.replace(tzinfo=None)

    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def to_jst(dt: datetime) -> datetime:
    """Naive input is treated as UTC."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(JST)


def business_date(dt: Optional[datetime] = None) -> date:
    """
    Business date for a moment (defaults to now).
    Before 06:00 JST belongs to the previous calendar day.
    """
    jst = to_jst(dt or utcnow())
    if jst.hour < BUSINESS_DAY_START_HOUR:
        jst = jst - timedelta(days=1)
    return jst.date()


def business_day_range(day: date) -> tuple[datetime, datetime]:
    """UTC-naive [start, end) bounds of a business day, for query filters."""
    start_jst = datetime.combine(day, time(hour=BUSINESS_DAY_START_HOUR), tzinfo=JST)
    end_jst = start_jst + timedelta(days=1)
    return (
        start_jst.astimezone(timezone.utc).replace(tzinfo=None),
        end_jst.astimezone(timezone.utc).replace(tzinfo=None),
    )
