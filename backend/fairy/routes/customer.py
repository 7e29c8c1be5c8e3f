# Overview: Public bill endpoints polled by the customer QR page.

"""
Customer Routes

No identity headers: the read token (per-session QR) or the table id
(permanent table QR) is the only key. Responses never expose cast, back or
points data. The only write is the customer's choice of payment method.
"""

from flask import Blueprint, jsonify, request, current_app

from ..services import billing_service
from ..services.billing_service import BillingError, BillNotFoundError


customer_bp = Blueprint("customer", __name__, url_prefix="/api/customer")


@customer_bp.get("/bills/<read_token>")
def bill_by_token_route(read_token: str):
    try:
        return jsonify(billing_service.customer_bill_by_token(read_token))
    except BillNotFoundError:
        return jsonify({"error": "Bill not found"}), 404
    except Exception:
        current_app.logger.exception("Failed to load customer bill")
        return jsonify({"error": "Internal server error"}), 500


@customer_bp.get("/tables/<int:table_id>")
def bill_by_table_route(table_id: int):
    try:
        payload = billing_service.customer_bill_by_table(table_id)
    except BillNotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to load customer bill for table")
        return jsonify({"error": "Internal server error"}), 500

    if payload is None:
        return jsonify({"bill": None, "status": "no_session"})
    return jsonify({"bill": payload, "status": "open"})


@customer_bp.post("/bills/<read_token>/payment-method")
def set_payment_method_route(read_token: str):
    data = request.get_json(silent=True) or {}
    payment_method = data.get("payment_method")
    if not payment_method:
        return jsonify({"error": "payment_method is required"}), 400

    try:
        billing_service.set_customer_payment_method(read_token=read_token, payment_method=payment_method)
        return jsonify(billing_service.customer_bill_by_token(read_token))
    except BillNotFoundError:
        return jsonify({"error": "Bill not found"}), 404
    except BillingError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to set payment method from customer page")
        return jsonify({"error": "Internal server error"}), 500
