# Overview: Flask API routes for cast daily earnings and the store payroll sheet.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_cast, require_staff
from ..services import earnings_service
from ..services.earnings_service import EarningsError
from fairy.time_utils import business_date, parse_iso_date


earnings_bp = Blueprint("earnings", __name__, url_prefix="/api/earnings")


def _requested_date():
    """?date=YYYY-MM-DD, defaulting to the current business day."""
    return parse_iso_date(request.args.get("date")) or business_date()


@earnings_bp.get("/me")
@require_cast
def my_earnings_route():
    try:
        day = _requested_date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        breakdown = earnings_service.cast_daily_earnings(g.cast.id, day)
        return jsonify({
            "cast": g.cast.to_dict(),
            "business_date": day.isoformat(),
            "earnings": breakdown.to_dict(),
        })
    except EarningsError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to compute cast earnings")
        return jsonify({"error": "Internal server error"}), 500


@earnings_bp.get("/casts/<int:cast_id>")
@require_staff
def cast_earnings_route(cast_id: int):
    try:
        day = _requested_date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400
    store_id = request.args.get("store_id", type=int)

    try:
        breakdown = earnings_service.cast_daily_earnings(cast_id, day, store_id)
        return jsonify({
            "cast_id": cast_id,
            "store_id": store_id,
            "business_date": day.isoformat(),
            "earnings": breakdown.to_dict(),
        })
    except EarningsError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to compute cast earnings")
        return jsonify({"error": "Internal server error"}), 500


@earnings_bp.get("/stores/<int:store_id>")
@require_staff
def store_payroll_route(store_id: int):
    try:
        day = _requested_date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        rows = earnings_service.store_cast_earnings(store_id, day)
        return jsonify({"store_id": store_id, "business_date": day.isoformat(), "casts": rows})
    except Exception:
        current_app.logger.exception("Failed to compute payroll sheet")
        return jsonify({"error": "Internal server error"}), 500
