# Overview: Flask API routes for cast timekeeping; parses input and returns JSON responses.

"""
Timekeeping Routes

- Clock in/out and the current-shift view act on the calling cast member.
- Approvals, rejections, late pickup and the pending list require staff.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_cast, require_staff
from ..services import timekeeping_service
from ..services.timekeeping_service import TimekeepingError
from fairy.time_utils import parse_iso_datetime


timekeeping_bp = Blueprint("timekeeping", __name__, url_prefix="/api/timekeeping")


@timekeeping_bp.post("/clock-in")
@require_cast
def clock_in_route():
    data = request.get_json(silent=True) or {}
    store_id = data.get("store_id")

    if not store_id:
        return jsonify({"error": "store_id is required"}), 400
    try:
        store_id = int(store_id)
    except (TypeError, ValueError):
        return jsonify({"error": "store_id must be an integer"}), 400

    try:
        shift = timekeeping_service.clock_in(cast_id=g.cast.id, store_id=store_id)
        return jsonify({"shift": shift.to_dict()}), 201
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400


@timekeeping_bp.post("/clock-out")
@require_cast
def clock_out_route():
    try:
        shift = timekeeping_service.clock_out(cast_id=g.cast.id)
        return jsonify({"shift": shift.to_dict()})
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400


@timekeeping_bp.get("/current")
@require_cast
def current_shift_route():
    shift = timekeeping_service.current_shift(g.cast.id)
    return jsonify({"shift": shift.to_dict() if shift else None})


@timekeeping_bp.get("/pending")
@require_staff
def pending_route():
    store_id = request.args.get("store_id", type=int)
    shifts = timekeeping_service.pending_approvals(store_id)
    return jsonify({"shifts": [s.to_dict() for s in shifts]})


_DECISIONS = {
    ("clock-in", "approve"): timekeeping_service.approve_clock_in,
    ("clock-in", "reject"): timekeeping_service.reject_clock_in,
    ("clock-out", "approve"): timekeeping_service.approve_clock_out,
    ("clock-out", "reject"): timekeeping_service.reject_clock_out,
}


@timekeeping_bp.post("/shifts/<int:shift_id>/<edge>/<decision>")
@require_staff
def decide_route(shift_id: int, edge: str, decision: str):
    action = _DECISIONS.get((edge, decision))
    if action is None:
        return jsonify({"error": "Not found"}), 404

    try:
        shift = action(shift_id=shift_id, staff_id=g.staff.id)
        return jsonify({"shift": shift.to_dict()})
    except TimekeepingError as e:
        if str(e) == "Shift not found":
            return jsonify({"error": str(e)}), 404
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to record shift decision")
        return jsonify({"error": "Internal server error"}), 500


@timekeeping_bp.post("/shifts/<int:shift_id>/late-pickup")
@require_staff
def late_pickup_route(shift_id: int):
    data = request.get_json(silent=True) or {}
    try:
        start = parse_iso_datetime(data.get("late_pickup_start"))
    except ValueError:
        return jsonify({"error": "late_pickup_start must be an ISO-8601 datetime"}), 400

    try:
        shift = timekeeping_service.mark_late_pickup(
            shift_id=shift_id,
            staff_id=g.staff.id,
            late_pickup_start=start,
            enabled=bool(data.get("enabled", True)),
        )
        return jsonify({"shift": shift.to_dict()})
    except TimekeepingError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to mark late pickup")
        return jsonify({"error": "Internal server error"}), 500
