# Overview: Flask API routes for the floor (table sessions, orders, adjustments, seating).

"""
Floor Routes

- Starting, closing and cancelling sessions, cancelling orders, price
  adjustments and seating changes require a staff member.
- Orders can be rung up by staff or by a cast member from a phone; orders
  rung up by a cast member are attributed to that cast member.
- The payment method can be chosen by either while the bill is open; the
  close falls back to it when no method is given.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..extensions import db
from ..models import Product
from ..decorators import require_staff, require_floor_actor
from ..services import activity_service, billing_service
from ..services.billing_service import BillingError, BillConflictError, BillNotFoundError


floor_bp = Blueprint("floor", __name__, url_prefix="/api/floor")


def _billing_error(e: BillingError):
    if isinstance(e, BillNotFoundError):
        return jsonify({"error": str(e)}), 404
    if isinstance(e, BillConflictError):
        return jsonify({"error": str(e)}), 409
    return jsonify({"error": str(e)}), 400


def _int_or_none(value):
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("expected an integer")
    return int(value)


@floor_bp.get("/products")
@require_floor_actor
def list_products_route():
    products = (
        db.session.query(Product)
        .filter_by(is_active=True)
        .order_by(Product.category.asc(), Product.sort_order.asc(), Product.id.asc())
        .all()
    )
    return jsonify({"products": [p.to_dict() for p in products]})


@floor_bp.get("/stores/<int:store_id>/tables")
@require_floor_actor
def floor_overview_route(store_id: int):
    try:
        return jsonify({"tables": billing_service.floor_overview(store_id)})
    except Exception:
        current_app.logger.exception("Failed to load floor overview")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/tables/<int:table_id>/sessions")
@require_staff
def start_session_route(table_id: int):
    data = request.get_json(silent=True) or {}
    try:
        base_minutes = _int_or_none(data.get("base_minutes")) or 60
    except (TypeError, ValueError):
        return jsonify({"error": "base_minutes must be an integer"}), 400

    try:
        bill = billing_service.start_session(
            table_id=table_id,
            seating_type=data.get("seating_type") or "free",
            base_minutes=base_minutes,
            staff_id=g.staff.id,
            notes=data.get("notes"),
        )
        return jsonify({"bill": bill.to_dict()}), 201
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to start session")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.get("/bills/<int:bill_id>")
@require_floor_actor
def get_bill_route(bill_id: int):
    try:
        bill = billing_service.get_bill(bill_id)
        return jsonify(billing_service.bill_detail(bill))
    except BillingError as e:
        return _billing_error(e)


@floor_bp.get("/bills/<int:bill_id>/activity")
@require_floor_actor
def bill_activity_route(bill_id: int):
    try:
        billing_service.get_bill(bill_id)
    except BillingError as e:
        return _billing_error(e)
    events = activity_service.bill_activity(bill_id)
    return jsonify({"events": [e.to_dict() for e in events]})


@floor_bp.post("/bills/<int:bill_id>/orders")
@require_floor_actor
def add_order_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    try:
        product_id = _int_or_none(data.get("product_id"))
        quantity = _int_or_none(data.get("quantity"))
        cast_id = _int_or_none(data.get("cast_id"))
    except (TypeError, ValueError):
        return jsonify({"error": "product_id, quantity and cast_id must be integers"}), 400

    if not product_id:
        return jsonify({"error": "product_id is required"}), 400
    if quantity is None:
        quantity = 1

    if g.cast is not None:
        cast_id = g.cast.id

    try:
        order, upgraded = billing_service.add_order(
            bill_id=bill_id,
            product_id=product_id,
            quantity=quantity,
            cast_id=cast_id,
            staff_id=g.staff.id if g.staff else None,
        )
        if upgraded:
            current_app.logger.info("Bill %s upgraded free -> designated by order %s", bill_id, order.id)
        bill = billing_service.get_bill(bill_id)
        return jsonify({
            "order": order.to_dict(),
            "upgraded": upgraded,
            "bill": bill.to_dict(),
            "totals": billing_service.bill_total_view(bill).to_dict(),
        }), 201
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to add order")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/orders/<int:order_id>/cancel")
@require_staff
def cancel_order_route(order_id: int):
    data = request.get_json(silent=True) or {}
    try:
        order = billing_service.cancel_order(
            order_id=order_id,
            staff_id=g.staff.id,
            reason=data.get("reason"),
        )
        return jsonify({"order": order.to_dict()})
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel order")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/bills/<int:bill_id>/adjustments")
@require_staff
def add_adjustment_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    try:
        amount = _int_or_none(data.get("amount"))
        order_id = _int_or_none(data.get("order_id"))
    except (TypeError, ValueError):
        return jsonify({"error": "amount must be an integer"}), 400

    if amount is None:
        return jsonify({"error": "amount is required"}), 400

    try:
        adj = billing_service.add_adjustment(
            bill_id=bill_id,
            staff_id=g.staff.id,
            amount=amount,
            reason=data.get("reason") or "",
            adjustment_type=data.get("adjustment_type") or "custom",
            order_id=order_id,
        )
        return jsonify({"adjustment": adj.to_dict()}), 201
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to add price adjustment")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/bills/<int:bill_id>/assignments")
@require_staff
def assign_cast_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    try:
        cast_id = _int_or_none(data.get("cast_id"))
    except (TypeError, ValueError):
        return jsonify({"error": "cast_id must be an integer"}), 400
    if not cast_id:
        return jsonify({"error": "cast_id is required"}), 400

    try:
        assignment = billing_service.assign_cast(bill_id=bill_id, cast_id=cast_id, staff_id=g.staff.id)
        return jsonify({"assignment": assignment.to_dict()}), 201
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to assign cast")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.delete("/bills/<int:bill_id>/assignments/<int:cast_id>")
@require_staff
def unassign_cast_route(bill_id: int, cast_id: int):
    try:
        assignment = billing_service.unassign_cast(bill_id=bill_id, cast_id=cast_id, staff_id=g.staff.id)
        return jsonify({"assignment": assignment.to_dict()})
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to unassign cast")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/bills/<int:bill_id>/payment-method")
@require_floor_actor
def set_payment_method_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    payment_method = data.get("payment_method")
    if not payment_method:
        return jsonify({"error": "payment_method is required"}), 400

    try:
        bill = billing_service.set_payment_method(
            bill_id=bill_id,
            payment_method=payment_method,
            staff_id=g.staff.id if g.staff else None,
            cast_id=g.cast.id if g.cast else None,
        )
        return jsonify({
            "bill": bill.to_dict(),
            "totals": billing_service.bill_total_view(bill).to_dict(),
        })
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to set payment method")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/bills/<int:bill_id>/close")
@require_staff
def close_bill_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    payment_method = data.get("payment_method")
    if not payment_method:
        # Fall back to the method already chosen on the open bill
        try:
            payment_method = billing_service.get_bill(bill_id).payment_method
        except BillingError as e:
            return _billing_error(e)
    if not payment_method:
        return jsonify({"error": "payment_method is required"}), 400

    try:
        bill = billing_service.close_bill(
            bill_id=bill_id,
            payment_method=payment_method,
            staff_id=g.staff.id,
        )
        return jsonify({
            "bill": bill.to_dict(),
            "totals": billing_service.bill_total_view(bill).to_dict(),
        })
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to close bill")
        return jsonify({"error": "Internal server error"}), 500


@floor_bp.post("/bills/<int:bill_id>/cancel")
@require_staff
def cancel_session_route(bill_id: int):
    data = request.get_json(silent=True) or {}
    try:
        bill = billing_service.cancel_session(
            bill_id=bill_id,
            staff_id=g.staff.id,
            reason=data.get("reason"),
        )
        return jsonify({"bill": bill.to_dict()})
    except BillingError as e:
        return _billing_error(e)
    except Exception:
        current_app.logger.exception("Failed to cancel session")
        return jsonify({"error": "Internal server error"}), 500
