from __future__ import annotations

from flask import Blueprint, jsonify, request, g, current_app

from ..decorators import require_staff
from ..services import settings_service
from ..services.settings_service import SettingsValidationError


settings_bp = Blueprint("settings", __name__, url_prefix="/api")


def _parse_updates(payload: dict) -> list[dict]:
    if isinstance(payload.get("updates"), list):
        return payload["updates"]
    key = payload.get("key")
    if not key:
        return []
    return [{"key": key, "value": payload.get("value")}]


@settings_bp.get("/settings")
@require_staff
def list_settings_route():
    items = settings_service.list_settings()
    return jsonify({"items": items, "count": len(items)})


@settings_bp.get("/settings/effective")
@require_staff
def effective_settings_route():
    return jsonify({"settings": settings_service.load_settings().to_dict()})


@settings_bp.patch("/settings")
@require_staff
def update_settings_route():
    if not g.staff.is_manager:
        return jsonify({"error": "Only managers can change settings"}), 403

    updates = _parse_updates(request.get_json(silent=True) or {})
    if not updates:
        return jsonify({"error": "key/value or updates[] is required"}), 400

    saved = []
    try:
        for update in updates:
            row = settings_service.update_setting(
                key=update.get("key"),
                value=update.get("value"),
                staff_id=g.staff.id,
            )
            saved.append(row.to_dict())
    except SettingsValidationError as e:
        return jsonify({"error": str(e), "saved": saved}), 400
    except Exception:
        current_app.logger.exception("Failed to update settings")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({"items": saved})
