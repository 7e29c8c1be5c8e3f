# Overview: Flask API routes for store reports; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_staff
from ..services import reporting_service
from ..services.reporting_service import ReportError
from fairy.time_utils import business_date, parse_iso_date


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _requested_date(data=None):
    raw = (data or {}).get("date") or request.args.get("date")
    return parse_iso_date(raw) or business_date()


@reports_bp.get("/stores/<int:store_id>/daily")
@require_staff
def daily_report_route(store_id: int):
    try:
        day = _requested_date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        return jsonify(reporting_service.daily_report(store_id=store_id, business_date=day))
    except ReportError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to build daily report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/stores/<int:store_id>/sessions")
@require_staff
def session_log_route(store_id: int):
    try:
        day = _requested_date()
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        entries = reporting_service.session_log(store_id=store_id, business_date=day)
        return jsonify({"store_id": store_id, "business_date": day.isoformat(), "sessions": entries})
    except ReportError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to build session log")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.post("/stores/<int:store_id>/daily/save")
@require_staff
def save_daily_report_route(store_id: int):
    data = request.get_json(silent=True) or {}
    try:
        day = _requested_date(data)
    except ValueError:
        return jsonify({"error": "date must be YYYY-MM-DD"}), 400

    try:
        row = reporting_service.save_daily_report(
            store_id=store_id,
            business_date=day,
            staff_id=g.staff.id,
        )
        current_app.logger.info(
            "Daily report saved for store %s on %s: sales=%s tier=%s",
            store_id, day.isoformat(), row.total_sales, row.bonus_tier,
        )
        return jsonify({"report": row.to_dict()})
    except ReportError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to save daily report")
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/stores/<int:store_id>/daily/saved")
@require_staff
def saved_reports_route(store_id: int):
    try:
        rows = reporting_service.saved_reports(store_id=store_id)
        return jsonify({"reports": [r.to_dict() for r in rows]})
    except ReportError as e:
        return jsonify({"error": str(e)}), 404
