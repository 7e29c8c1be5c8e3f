"""
Cast roster (キャスト管理)

Pay terms (hourly rate, transport fee) and the referrer live on the cast
member. Casts with any history are deactivated, never deleted: their
orders, shifts and referrals keep pointing at the row.
"""

from __future__ import annotations

from ..extensions import db
from ..models import (
    ActivityEvent,
    BillDesignation,
    CastMember,
    CastShift,
    CastTableAssignment,
    Order,
    Store,
)


DEFAULT_HOURLY_RATE = 4000
EDITABLE_FIELDS = ("name", "hourly_rate", "transport_fee", "home_store_id", "referred_by_id")


class CastError(ValueError):
    """Raised for invalid cast roster operations."""
    pass


class CastNotFoundError(CastError):
    pass


def _require_cast(cast_id: int) -> CastMember:
    cast = db.session.query(CastMember).filter_by(id=cast_id).first()
    if not cast:
        raise CastNotFoundError("Cast member not found")
    return cast


def _yen(field: str, value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise CastError(f"{field} must be an integer")
    if value < 0:
        raise CastError(f"{field} must be zero or greater")
    return value


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise CastError("name is required")
    return name.strip()


def _check_home_store(store_id):
    if store_id is None:
        return None
    if not db.session.query(Store).filter_by(id=store_id).first():
        raise CastError("Store not found")
    return store_id


def _check_referrer(referred_by_id, cast_id: int | None = None):
    if referred_by_id is None:
        return None
    if cast_id is not None and referred_by_id == cast_id:
        raise CastError("A cast member cannot refer themselves")
    referrer = db.session.query(CastMember).filter_by(id=referred_by_id).first()
    if not referrer:
        raise CastError("Referrer not found")
    if not referrer.is_active:
        raise CastError("Referrer is not active")
    return referred_by_id


def list_casts(*, include_inactive: bool = True) -> list[CastMember]:
    query = db.session.query(CastMember)
    if not include_inactive:
        query = query.filter(CastMember.is_active.is_(True))
    return query.order_by(CastMember.is_active.desc(), CastMember.name.asc(), CastMember.id.asc()).all()


def get_cast(cast_id: int) -> CastMember:
    return _require_cast(cast_id)


def create_cast(
    *,
    name: str,
    hourly_rate: int = DEFAULT_HOURLY_RATE,
    transport_fee: int = 0,
    home_store_id: int | None = None,
    referred_by_id: int | None = None,
) -> CastMember:
    cast = CastMember(
        name=_clean_name(name),
        hourly_rate=_yen("hourly_rate", hourly_rate),
        transport_fee=_yen("transport_fee", transport_fee),
        home_store_id=_check_home_store(home_store_id),
        referred_by_id=_check_referrer(referred_by_id),
        is_active=True,
    )
    db.session.add(cast)
    db.session.commit()
    return cast


def update_cast(*, cast_id: int, changes: dict) -> CastMember:
    """Apply a partial update. Keys outside EDITABLE_FIELDS are rejected."""
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise CastError(f"Unknown field(s): {', '.join(sorted(unknown))}")

    cast = _require_cast(cast_id)
    if "name" in changes:
        cast.name = _clean_name(changes["name"])
    if "hourly_rate" in changes:
        cast.hourly_rate = _yen("hourly_rate", changes["hourly_rate"])
    if "transport_fee" in changes:
        cast.transport_fee = _yen("transport_fee", changes["transport_fee"])
    if "home_store_id" in changes:
        cast.home_store_id = _check_home_store(changes["home_store_id"])
    if "referred_by_id" in changes:
        cast.referred_by_id = _check_referrer(changes["referred_by_id"], cast_id=cast.id)

    db.session.commit()
    return cast


def set_cast_active(*, cast_id: int, is_active: bool) -> CastMember:
    cast = _require_cast(cast_id)
    cast.is_active = bool(is_active)
    db.session.commit()
    return cast


def _has_history(cast_id: int) -> bool:
    checks = (
        db.session.query(Order.id).filter(Order.cast_id == cast_id),
        db.session.query(CastShift.id).filter(CastShift.cast_id == cast_id),
        db.session.query(CastTableAssignment.id).filter(CastTableAssignment.cast_id == cast_id),
        db.session.query(BillDesignation.id).filter(BillDesignation.cast_id == cast_id),
        db.session.query(ActivityEvent.id).filter(ActivityEvent.actor_cast_id == cast_id),
        db.session.query(CastMember.id).filter(CastMember.referred_by_id == cast_id),
    )
    return any(q.first() is not None for q in checks)


def delete_cast(*, cast_id: int) -> None:
    """Delete a cast member registered by mistake. Anyone with history is deactivated instead."""
    cast = _require_cast(cast_id)
    if _has_history(cast.id):
        raise CastError("Cast member has history; deactivate instead")
    db.session.delete(cast)
    db.session.commit()
