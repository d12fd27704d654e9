# Overview: Flask API routes for customer orders; parses input and returns JSON responses.

# backend/storefront/routes/orders.py
"""
Customer order routes.

POST /api/orders places a cash-on-delivery order for the caller. Prices are
taken from the catalog, not from the payload. The confirmation email is
queued after the order has been committed and never affects the response.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import order_service
from ..services.email_service import queue_order_confirmation
from ..services.order_service import OrderError
from ..validation import ValidationError
from ..decorators import require_auth


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Place an order.

    Request body:
    {
        "items": [{"product_id": 1, "variant_id": 3, "quantity": 2}, ...],
        "customer_name", "customer_email", "customer_phone",
        "shipping_address", "shipping_city", "shipping_state",
        "shipping_postal_code",
        "order_number": "ORD-20260101-0042"   // optional
    }

    A "user_id" in the body, if present, must be the caller's.
    """
    payload = request.get_json(silent=True) or {}
    user = g.current_user

    if payload.get("user_id") is not None and payload.get("user_id") != user.id:
        return jsonify({"error": "Cannot place an order for another user"}), 403

    try:
        order = order_service.create_order(user_id=user.id, payload=payload)
    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except OrderError as e:
        return jsonify({"error": str(e)}), e.status_code
    except Exception:
        current_app.logger.exception("Failed to process order for user %s", user.id)
        return jsonify({"error": "Failed to process order"}), 500

    queue_order_confirmation(order.id)

    return jsonify({
        "success": True,
        "order": order.to_dict(include_items=True),
    }), 201


@orders_bp.get("")
@require_auth
def list_orders_route():
    """
    The caller's orders with their items, newest first.

    Query params:
    - user_id: int (optional) - must match the caller
    """
    user_id = request.args.get("user_id", type=int)
    if user_id is not None and user_id != g.current_user.id:
        return jsonify({"error": "Cannot view another user's orders"}), 403

    try:
        orders = order_service.list_orders_for_user(g.current_user.id)
    except Exception:
        current_app.logger.exception("Failed to fetch orders for user %s", g.current_user.id)
        return jsonify({"error": "Failed to fetch orders"}), 500

    return jsonify({"success": True, "orders": orders}), 200


@orders_bp.get("/<order_number>")
@require_auth
def get_order_route(order_number: str):
    order = order_service.get_order_by_number(order_number)
    if order is None or order.user_id != g.current_user.id:
        return jsonify({"error": "Order not found"}), 404
    return jsonify({"success": True, "order": order.to_dict(include_items=True)}), 200
