# Overview: Service-layer operations for orders; encapsulates business logic and database work.

"""
Order Service

PLACEMENT (create_order):
1. Validate the checkout form and the line payload.
2. Re-price every line from the catalog. Client-sent prices and names are
   ignored; the order item is a snapshot of the catalog row at this moment.
3. Write Order + OrderItems + StockAdjustment rows (PENDING) and delete the
   user's server cart in ONE transaction.
4. After commit, apply the stock decrements best-effort. A failure is
   logged and the adjustment stays PENDING; the order is never rolled back.

ORDER NUMBERS: ORD-YYYYMMDD-NNNN. A well-formed number sent by the client is
used on the first attempt; on a unique-constraint collision a fresh one is
generated and the insert retried.

STATUS: forward-only along STATUS_FLOW (skips allowed), cancelled from any
non-terminal state, delivered/cancelled are terminal.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import (
    Order,
    OrderItem,
    StockAdjustment,
    Product,
    ProductVariant,
    CartItem,
    STATUS_FLOW,
    STATUS_CANCELLED,
    ORDER_STATUSES,
    TERMINAL_STATUSES,
)
from ..validation import ValidationError, ConflictError, validate_checkout_form
from ..time_utils import utcnow
from ..order_numbers import generate_order_number, is_order_number
from .concurrency import insert_with_unique_retry


MAX_LINE_QUANTITY = 100

ADJUSTMENT_PENDING = "PENDING"
ADJUSTMENT_APPLIED = "APPLIED"


class OrderError(Exception):
    """Order could not be placed or changed; carries the HTTP status for the route."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


def can_transition(current: str, new: str) -> bool:
    """True if an admin may move an order from `current` to `new`."""
    if new not in ORDER_STATUSES:
        return False
    if current == new:
        return True
    if current in TERMINAL_STATUSES:
        return False
    if new == STATUS_CANCELLED:
        return True
    return STATUS_FLOW.index(new) > STATUS_FLOW.index(current)


def _parse_quantity(raw) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        raise ValidationError("quantity must be an integer")
    if raw < 1 or raw > MAX_LINE_QUANTITY:
        raise ValidationError(f"quantity must be between 1 and {MAX_LINE_QUANTITY}")
    return raw


def _parse_id(raw) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    return None


def _price_lines(items) -> list[dict]:
    """
    Resolve each requested line against the catalog.

    Returns plain dicts (not ORM objects) so a retried insert can rebuild
    its rows after a rollback.
    """
    if not isinstance(items, list) or not items:
        raise ValidationError("Order must contain at least one item")

    lines = []
    for raw in items:
        if not isinstance(raw, dict):
            raise ValidationError("Invalid order item")
        quantity = _parse_quantity(raw.get("quantity"))

        product_id = _parse_id(raw.get("product_id"))
        variant_id = _parse_id(raw.get("variant_id"))

        product = db.session.get(Product, product_id) if product_id else None
        if product is None or not product.is_active:
            raise OrderError(f"Product {raw.get('product_id')} is not available")

        variant = db.session.get(ProductVariant, variant_id) if variant_id else None
        if variant is None or variant.product_id != product.id or not variant.is_active:
            raise OrderError(f"Variant {raw.get('variant_id')} is not available for {product.name}")

        unit = variant.unit_price_cents
        if unit < 0:
            raise OrderError(f"{product.name} is not available at a valid price", 409)
        lines.append({
            "product_id": product.id,
            "variant_id": variant.id,
            "product_name": product.name,
            "variant_color": variant.color,
            "variant_size": variant.size,
            "image_url": product.image_url,
            "quantity": quantity,
            "unit_price_cents": unit,
            "total_price_cents": unit * quantity,
        })
    return lines


def create_order(*, user_id: int, payload: dict) -> Order:
    """
    Place a cash-on-delivery order for `user_id`.

    Raises ValidationError (bad form/lines), OrderError (unavailable product).
    Database failures propagate; nothing is faked on error.
    """
    payload = payload or {}
    form = validate_checkout_form(payload)
    lines = _price_lines(payload.get("items"))

    subtotal = sum(line["total_price_cents"] for line in lines)
    country = current_app.config.get("SHIPPING_COUNTRY", "India")

    requested = payload.get("order_number")
    numbers = iter([requested] if is_order_number(requested) else [])

    def _insert() -> Order:
        order = Order(
            user_id=user_id,
            order_number=next(numbers, None) or generate_order_number(),
            status=STATUS_FLOW[0],
            subtotal_cents=subtotal,
            tax_cents=0,
            shipping_cents=0,
            discount_cents=0,
            total_amount_cents=subtotal,
            payment_method="cash_on_delivery",
            payment_status="pending",
            shipping_country=country,
            **form,
        )
        for line in lines:
            order.items.append(OrderItem(**line))
        db.session.add(order)
        db.session.flush()

        for line in lines:
            db.session.add(StockAdjustment(
                order_id=order.id,
                variant_id=line["variant_id"],
                quantity=line["quantity"],
                status=ADJUSTMENT_PENDING,
                attempts=0,
            ))
        db.session.query(CartItem).filter(CartItem.user_id == user_id).delete(synchronize_session=False)
        db.session.commit()
        return order

    order = insert_with_unique_retry(_insert)
    current_app.logger.info(
        "Order placed: %s user=%s total_cents=%s lines=%s",
        order.order_number, user_id, order.total_amount_cents, len(lines),
    )

    try:
        apply_stock_adjustments(order_id=order.id)
    except Exception:
        # The order is committed; PENDING rows are left for reconcile-stock
        current_app.logger.exception("Stock adjustments not applied for order %s", order.order_number)
        db.session.rollback()
    return order


def _decrement_variant_stock(adjustment: StockAdjustment) -> None:
    variant = db.session.get(ProductVariant, adjustment.variant_id)
    if variant is None:
        raise LookupError(f"Variant {adjustment.variant_id} no longer exists")
    variant.stock_quantity = max(0, (variant.stock_quantity or 0) - adjustment.quantity)


def _apply_one(adjustment_id: int) -> bool:
    adjustment = db.session.get(StockAdjustment, adjustment_id)
    if adjustment is None or adjustment.status != ADJUSTMENT_PENDING:
        return True
    try:
        _decrement_variant_stock(adjustment)
        adjustment.status = ADJUSTMENT_APPLIED
        adjustment.attempts += 1
        adjustment.applied_at = utcnow()
        adjustment.last_error = None
        db.session.commit()
        return True
    except Exception as exc:
        db.session.rollback()
        current_app.logger.exception(
            "Stock decrement failed: adjustment=%s variant=%s", adjustment_id, getattr(adjustment, "variant_id", None)
        )
        _record_failure(adjustment_id, exc)
        return False


def _record_failure(adjustment_id: int, exc: Exception) -> None:
    try:
        adjustment = db.session.get(StockAdjustment, adjustment_id)
        if adjustment is not None:
            adjustment.attempts += 1
            adjustment.last_error = str(exc)[:255]
            db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Could not record stock adjustment failure %s", adjustment_id)


def apply_stock_adjustments(*, order_id: int | None = None) -> dict:
    """
    Apply PENDING stock decrements, one commit per row.

    order_id=None processes every pending row (reconciliation).
    Returns {"applied": n, "failed": m}.
    """
    query = db.session.query(StockAdjustment.id).filter(StockAdjustment.status == ADJUSTMENT_PENDING)
    if order_id is not None:
        query = query.filter(StockAdjustment.order_id == order_id)
    ids = [row[0] for row in query.order_by(StockAdjustment.id.asc()).all()]

    applied = failed = 0
    for adjustment_id in ids:
        if _apply_one(adjustment_id):
            applied += 1
        else:
            failed += 1
    return {"applied": applied, "failed": failed}


def get_order_by_number(order_number: str) -> Order | None:
    return db.session.query(Order).filter_by(order_number=order_number).first()


def list_orders_for_user(user_id: int) -> list[dict]:
    orders = (
        db.session.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )
    return [o.to_dict(include_items=True) for o in orders]


def list_all_orders(*, status: str | None = None) -> list[dict]:
    query = db.session.query(Order)
    if status:
        if status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(ORDER_STATUSES))}")
        query = query.filter(Order.status == status)
    orders = query.order_by(Order.created_at.desc(), Order.id.desc()).all()
    return [o.to_dict(include_items=True) for o in orders]


def update_order(*, order_id: int, patch: dict) -> tuple[Order | None, bool]:
    """
    Partial admin update of status / tracking_number / carrier.

    Returns (order, status_changed); order is None if not found.
    Raises ValidationError for an unknown status, ConflictError for an
    illegal transition.
    """
    order = db.session.get(Order, order_id)
    if order is None:
        return None, False

    status_changed = False
    new_status = patch.get("status")
    if new_status:
        if new_status not in ORDER_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(sorted(ORDER_STATUSES))}")
        if not can_transition(order.status, new_status):
            raise ConflictError(f"Cannot change order status from {order.status} to {new_status}")
        if new_status != order.status:
            current_app.logger.info(
                "Order %s status %s -> %s", order.order_number, order.status, new_status
            )
            order.status = new_status
            status_changed = True

    for field in ("tracking_number", "carrier"):
        if field in patch:
            value = patch[field]
            setattr(order, field, value.strip() if isinstance(value, str) and value.strip() else None)

    order.updated_at = utcnow()
    db.session.commit()
    return order, status_changed
