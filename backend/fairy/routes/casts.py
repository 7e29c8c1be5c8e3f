# Overview: Flask API routes for the cast roster; parses input and returns JSON responses.

"""
Cast Routes

- Any staff member can read the roster.
- Adding casts, changing pay terms or the referrer, (de)activating and
  deleting require a manager.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import cast_service
from ..services.cast_service import CastError, CastNotFoundError


casts_bp = Blueprint("casts", __name__, url_prefix="/api/casts")


def _manager_only():
    if not g.staff.is_manager:
        return jsonify({"error": "Only managers can manage casts"}), 403
    return None


def _cast_error(e: CastError):
    if isinstance(e, CastNotFoundError):
        return jsonify({"error": str(e)}), 404
    return jsonify({"error": str(e)}), 400


@casts_bp.get("")
@require_staff
def list_casts_route():
    include_inactive = request.args.get("include_inactive", "true").lower() != "false"
    casts = cast_service.list_casts(include_inactive=include_inactive)
    return jsonify({"casts": [c.to_dict() for c in casts], "count": len(casts)})


@casts_bp.get("/<int:cast_id>")
@require_staff
def get_cast_route(cast_id: int):
    try:
        return jsonify({"cast": cast_service.get_cast(cast_id).to_dict()})
    except CastError as e:
        return _cast_error(e)


@casts_bp.post("")
@require_staff
def create_cast_route():
    denied = _manager_only()
    if denied:
        return denied

    data = request.get_json(silent=True) or {}
    try:
        cast = cast_service.create_cast(
            name=data.get("name"),
            hourly_rate=data.get("hourly_rate", cast_service.DEFAULT_HOURLY_RATE),
            transport_fee=data.get("transport_fee", 0),
            home_store_id=data.get("home_store_id"),
            referred_by_id=data.get("referred_by_id"),
        )
        current_app.logger.info("Cast %s (%s) added by staff %s", cast.id, cast.name, g.staff.id)
        return jsonify({"cast": cast.to_dict()}), 201
    except CastError as e:
        return _cast_error(e)
    except Exception:
        current_app.logger.exception("Failed to add cast")
        return jsonify({"error": "Internal server error"}), 500


@casts_bp.patch("/<int:cast_id>")
@require_staff
def update_cast_route(cast_id: int):
    denied = _manager_only()
    if denied:
        return denied

    data = request.get_json(silent=True) or {}
    if not data:
        return jsonify({"error": "No changes given"}), 400

    try:
        cast = cast_service.update_cast(cast_id=cast_id, changes=data)
        return jsonify({"cast": cast.to_dict()})
    except CastError as e:
        return _cast_error(e)
    except Exception:
        current_app.logger.exception("Failed to update cast")
        return jsonify({"error": "Internal server error"}), 500


@casts_bp.post("/<int:cast_id>/<action>")
@require_staff
def toggle_cast_route(cast_id: int, action: str):
    if action not in ("activate", "deactivate"):
        return jsonify({"error": "Not found"}), 404
    denied = _manager_only()
    if denied:
        return denied

    try:
        cast = cast_service.set_cast_active(cast_id=cast_id, is_active=action == "activate")
        return jsonify({"cast": cast.to_dict()})
    except CastError as e:
        return _cast_error(e)


@casts_bp.delete("/<int:cast_id>")
@require_staff
def delete_cast_route(cast_id: int):
    denied = _manager_only()
    if denied:
        return denied

    try:
        cast_service.delete_cast(cast_id=cast_id)
        return jsonify({"deleted": cast_id})
    except CastNotFoundError as e:
        return _cast_error(e)
    except CastError as e:
        return jsonify({"error": str(e)}), 409
