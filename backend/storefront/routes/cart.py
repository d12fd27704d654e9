# Overview: Flask API routes for the signed-in user's server cart.

from flask import Blueprint, request, g, current_app

from ..services import cart_service
from ..validation import ValidationError
from ..decorators import require_auth

cart_bp = Blueprint("cart", __name__, url_prefix="/api/cart")


def _int_field(data: dict, key: str, *, required: bool = True, default: int | None = None) -> int | None:
    value = data.get(key, default)
    if value is None:
        if required:
            raise ValidationError(f"{key} is required")
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{key} must be an integer")
    return value


@cart_bp.get("")
@require_auth
def get_cart():
    return cart_service.cart_summary(g.current_user.id)


@cart_bp.post("")
@require_auth
def add_to_cart():
    """
    Add a line {product_id, variant_id, quantity}. An existing line for the
    same product and variant has its quantity increased instead.
    """
    data = request.get_json(silent=True) or {}
    try:
        cart_service.add_item(
            user_id=g.current_user.id,
            product_id=_int_field(data, "product_id"),
            variant_id=_int_field(data, "variant_id"),
            quantity=_int_field(data, "quantity", default=1),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except Exception:
        current_app.logger.exception("Failed to add cart item")
        return {"error": "Internal server error"}, 500

    return cart_service.cart_summary(g.current_user.id), 200


@cart_bp.put("/<int:item_id>")
@require_auth
def update_cart_item(item_id: int):
    """Set {quantity}; zero or less removes the line."""
    data = request.get_json(silent=True) or {}
    try:
        quantity = _int_field(data, "quantity")
    except ValidationError as e:
        return {"error": str(e)}, 400

    user_id = g.current_user.id
    if cart_service.get_item(user_id=user_id, item_id=item_id) is None:
        return {"error": "Cart item not found"}, 404

    cart_service.set_quantity(user_id=user_id, item_id=item_id, quantity=quantity)
    return cart_service.cart_summary(user_id), 200


@cart_bp.delete("/<int:item_id>")
@require_auth
def remove_cart_item(item_id: int):
    if not cart_service.remove_item(user_id=g.current_user.id, item_id=item_id):
        return {"error": "Cart item not found"}, 404
    return cart_service.cart_summary(g.current_user.id), 200


@cart_bp.delete("")
@require_auth
def clear_cart():
    cart_service.clear_cart(g.current_user.id)
    return cart_service.cart_summary(g.current_user.id), 200
