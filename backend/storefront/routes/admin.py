# Overview: Flask API routes for the admin dashboard; parses input and returns JSON responses.

# backend/storefront/routes/admin.py
"""
Admin dashboard routes.

SECURITY: everything except /api/admin/login requires a bearer token whose
user has an active AdminUser record (@require_admin).

PIN login is throttled per client IP: PIN_MAX_FAILED_ATTEMPTS failures
inside the window lock further attempts from that address.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..services import products_service
from ..services import order_service
from ..services import dashboard_service
from ..services.email_service import queue_status_update, send_generic_email
from ..models import Product, ProductVariant, ADMIN_ROLES
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_registration,
    enforce_rules_product,
    enforce_rules_variant,
    is_valid_email,
    ValidationError,
    ConflictError,
)
from ..decorators import require_admin
from .auth import session_payload


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "base_price_cents", "category", "image_url", "stock_quantity", "is_active"},
    required_on_create={"name", "base_price_cents", "category"},
)

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"color", "size", "stock_quantity", "price_adjustment_cents", "is_active"},
    required_on_create={"color", "size"},
)

INVALID_PIN_MESSAGE = "Invalid admin PIN. Access denied."

admin_bp = Blueprint("admin", __name__, url_prefix="/api")


# =============================================================================
# LOGIN
# =============================================================================

@admin_bp.post("/admin/login")
def admin_login_route():
    """
    Unlock the dashboard with the 4-digit PIN.

    Request body: {"pin": "1234"}

    Returns the system administrator identity and a session token, or 401.
    """
    try:
        data = request.get_json(silent=True) or {}
        pin = data.get("pin")
        ip_address = request.remote_addr
        user_agent = request.headers.get("User-Agent")
        identifier = login_throttle_service.pin_identifier(ip_address)

        locked, seconds_remaining = login_throttle_service.is_locked(
            identifier, max_attempts=login_throttle_service.PIN_MAX_FAILED_ATTEMPTS
        )
        if locked:
            return jsonify({
                "error": "Too many failed PIN attempts. Try again later.",
                "locked": True,
                "retry_after_seconds": seconds_remaining,
            }), 429

        if not auth_service.verify_admin_pin(pin):
            login_throttle_service.record_attempt(
                identifier,
                success=False,
                ip_address=ip_address,
                user_agent=user_agent,
                reason="Invalid PIN",
            )
            current_app.logger.warning("Rejected admin PIN from %s", ip_address)
            return jsonify({"error": INVALID_PIN_MESSAGE}), 401

        user, admin = auth_service.get_or_create_system_admin()
        login_throttle_service.record_attempt(
            identifier, success=True, user_id=user.id, ip_address=ip_address, user_agent=user_agent
        )
        session, token = session_service.create_session(
            user_id=user.id, user_agent=user_agent, ip_address=ip_address
        )

        payload = session_payload(user, admin, token, session)
        payload["success"] = True
        return jsonify(payload), 200

    except Exception:
        current_app.logger.exception("Admin login failed")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# ORDERS
# =============================================================================

@admin_bp.get("/admin/orders")
@require_admin
def admin_list_orders_route():
    """
    All orders with their items, newest first.

    Query params:
    - status: str (optional) - filter by status
    """
    try:
        orders = order_service.list_all_orders(status=request.args.get("status"))
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to fetch orders")
        return jsonify({"error": "Failed to fetch orders"}), 500

    return jsonify({"success": True, "orders": orders}), 200


@admin_bp.patch("/admin/orders")
@require_admin
def admin_update_order_route():
    """
    Partial update: {"id", "status"?, "tracking_number"?, "carrier"?}.

    A status change queues a status-update email to the customer.
    """
    data = request.get_json(silent=True) or {}
    order_id = data.get("id")
    if isinstance(order_id, bool) or not isinstance(order_id, int):
        return jsonify({"error": "Order id is required"}), 400

    patch = {k: data[k] for k in ("status", "tracking_number", "carrier") if k in data}

    try:
        order, status_changed = order_service.update_order(order_id=order_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to update order %s", order_id)
        return jsonify({"error": "Failed to update order"}), 500

    if order is None:
        return jsonify({"error": "Order not found"}), 404

    if status_changed:
        queue_status_update(order.id, order.status)

    return jsonify({"success": True, "order": order.to_dict(include_items=True)}), 200


# =============================================================================
# PRODUCTS
# =============================================================================

def _variant_patches(payload: dict) -> list[dict]:
    """
    Variants for a new product, either as a "variants" list or as one
    "color" plus a list of "sizes" (one variant per size, sharing the
    product's stock_quantity).
    """
    raw = payload.pop("variants", None)
    color = payload.pop("color", None)
    sizes = payload.pop("sizes", None)

    if raw is None and color:
        if not isinstance(sizes, list) or not sizes:
            raise ValidationError("sizes must be a non-empty list when color is given")
        stock = payload.get("stock_quantity") or 0
        raw = [{"color": str(color).strip().lower(), "size": s, "stock_quantity": stock} for s in sizes]

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ValidationError("variants must be a list")

    patches = []
    for item in raw:
        patch = validate_payload(model=ProductVariant, payload=item, policy=VARIANT_POLICY, partial=False)
        enforce_rules_variant(patch)
        patches.append(patch)
    return patches


@admin_bp.get("/admin/products")
@require_admin
def admin_list_products_route():
    """Every product, active or not, with variants, newest first."""
    products = products_service.list_all_products()
    return jsonify({"products": products, "count": len(products)}), 200


@admin_bp.post("/admin/products")
@require_admin
def admin_create_product_route():
    payload = request.get_json(silent=True) or {}
    if not isinstance(payload, dict):
        return jsonify({"error": "Invalid JSON payload"}), 400
    payload = dict(payload)

    try:
        variants = _variant_patches(payload)
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.create_product(patch=patch, variants=variants)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create product")
        return jsonify({"error": "Failed to create product"}), 500

    return jsonify({
        "success": True,
        "product": product.to_dict(include_variants=True),
        "message": "Product created successfully",
    }), 201


@admin_bp.get("/admin/products/<int:product_id>")
@require_admin
def admin_get_product_route(product_id: int):
    product = products_service.get_product(product_id, include_inactive=True)
    if product is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"product": product.to_dict(include_variants=True)}), 200


@admin_bp.put("/admin/products/<int:product_id>")
@require_admin
def admin_update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400

    try:
        product = products_service.update_product(product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        return jsonify({"error": "Failed to update product"}), 500

    if product is None:
        return jsonify({"error": "Product not found"}), 404

    return jsonify({
        "success": True,
        "product": product.to_dict(include_variants=True),
        "message": "Product updated successfully",
    }), 200


@admin_bp.delete("/admin/products/<int:product_id>")
@require_admin
def admin_delete_product_route(product_id: int):
    try:
        deleted = products_service.delete_product(product_id=product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return jsonify({"error": "Failed to delete product"}), 500

    if not deleted:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"success": True, "message": "Product deleted successfully"}), 200


@admin_bp.post("/admin/products/<int:product_id>/variants")
@require_admin
def admin_create_variant_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ProductVariant, payload=payload, policy=VARIANT_POLICY, partial=False)
        enforce_rules_variant(patch)
        variant = products_service.create_variant(product_id=product_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    if variant is None:
        return jsonify({"error": "Product not found"}), 404
    return jsonify({"success": True, "variant": variant.to_dict()}), 201


@admin_bp.put("/admin/products/<int:product_id>/variants/<int:variant_id>")
@require_admin
def admin_update_variant_route(product_id: int, variant_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=ProductVariant, payload=payload, policy=VARIANT_POLICY, partial=True)
        enforce_rules_variant(patch)
        variant = products_service.update_variant(product_id=product_id, variant_id=variant_id, patch=patch)
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409

    if variant is None:
        return jsonify({"error": "Variant not found"}), 404
    return jsonify({"success": True, "variant": variant.to_dict()}), 200


@admin_bp.delete("/admin/products/<int:product_id>/variants/<int:variant_id>")
@require_admin
def admin_delete_variant_route(product_id: int, variant_id: int):
    if not products_service.delete_variant(product_id=product_id, variant_id=variant_id):
        return jsonify({"error": "Variant not found"}), 404
    return jsonify({"success": True}), 200


# =============================================================================
# DASHBOARD / USERS / EMAIL
# =============================================================================

@admin_bp.get("/admin/dashboard")
@require_admin
def admin_dashboard_route():
    """Headline stats, customer summaries and low-stock products."""
    try:
        return jsonify(dashboard_service.get_dashboard()), 200
    except Exception:
        current_app.logger.exception("Failed to build dashboard")
        return jsonify({"error": "Failed to load dashboard"}), 500


@admin_bp.post("/admin/users")
@require_admin
def admin_create_user_route():
    """
    Create a customer account on someone's behalf. The account is marked
    verified. An optional "role" also grants admin access.
    """
    data = request.get_json(silent=True) or {}
    role = data.get("role")
    if role is not None and role not in ADMIN_ROLES:
        return jsonify({"error": f"role must be one of: {', '.join(sorted(ADMIN_ROLES))}"}), 400

    try:
        cleaned = validate_registration(data)
        user = auth_service.register_user(**cleaned)
        auth_service.confirm_email(user.email)
        admin = auth_service.grant_admin(user, role=role) if role else None
    except ValidationError as e:
        return jsonify({"error": str(e), "errors": e.errors}), 400
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to create user")
        return jsonify({"error": "Failed to create user"}), 500

    return jsonify({
        "success": True,
        "user": user.to_dict(),
        "admin": admin.to_dict() if admin else None,
    }), 201


@admin_bp.post("/send-email")
@require_admin
def send_email_route():
    """Send {to, subject, message} wrapped in the shop's email template."""
    data = request.get_json(silent=True) or {}
    to, subject, message = data.get("to"), data.get("subject"), data.get("message")

    if not to or not subject or not message:
        return jsonify({"error": "Missing required fields: to, subject, message"}), 400
    if not is_valid_email(to):
        return jsonify({"error": "Invalid recipient email"}), 400

    try:
        result = send_generic_email(to=to.strip(), subject=str(subject).strip(), message=str(message))
    except Exception:
        current_app.logger.exception("Failed to send email to %s", to)
        return jsonify({"error": "Failed to send email"}), 500

    return jsonify({"success": True, "message": "Email sent successfully", **result}), 200
