# Overview: Request decorators resolving the acting staff/cast member for API routes.

from functools import wraps
from flask import request, jsonify, g

from .extensions import db
from .models import CastMember, StaffMember


def _header_id(name: str) -> int | None:
    raw = request.headers.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def require_staff(f):
    """
    Resolve the acting staff member from the X-Staff-Id header.

    Identity is established upstream (PIN login on the floor tablet); this
    layer only looks the member up. Sets g.staff.

    Returns 401 when the header is missing or malformed, 403 when the member
    is unknown or deactivated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        staff_id = _header_id("X-Staff-Id")
        if staff_id is None:
            return jsonify({"error": "Staff identity required"}), 401

        staff = db.session.query(StaffMember).filter_by(id=staff_id).first()
        if not staff or not staff.is_active:
            return jsonify({"error": "Unknown or inactive staff member"}), 403

        g.staff = staff
        return f(*args, **kwargs)

    return decorated_function


def require_cast(f):
    """Resolve the acting cast member from the X-Cast-Id header into g.cast."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        cast_id = _header_id("X-Cast-Id")
        if cast_id is None:
            return jsonify({"error": "Cast identity required"}), 401

        cast = db.session.query(CastMember).filter_by(id=cast_id).first()
        if not cast or not cast.is_active:
            return jsonify({"error": "Unknown or inactive cast member"}), 403

        g.cast = cast
        return f(*args, **kwargs)

    return decorated_function


def require_floor_actor(f):
    """
    Accept either a staff member or a cast member (orders are rung up from
    both the staff dashboard and cast phones). Sets g.staff or g.cast, the
    other is None.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.staff = None
        g.cast = None

        staff_id = _header_id("X-Staff-Id")
        if staff_id is not None:
            staff = db.session.query(StaffMember).filter_by(id=staff_id).first()
            if not staff or not staff.is_active:
                return jsonify({"error": "Unknown or inactive staff member"}), 403
            g.staff = staff
            return f(*args, **kwargs)

        cast_id = _header_id("X-Cast-Id")
        if cast_id is not None:
            cast = db.session.query(CastMember).filter_by(id=cast_id).first()
            if not cast or not cast.is_active:
                return jsonify({"error": "Unknown or inactive cast member"}), 403
            g.cast = cast
            return f(*args, **kwargs)

        return jsonify({"error": "Staff or cast identity required"}), 401

    return decorated_function
