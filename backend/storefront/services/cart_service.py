# Overview: Server-side cart for signed-in users.

"""
Cart Service

One row per (user, product, variant). Adding an existing line merges the
quantity; setting a quantity <= 0 removes the line. Prices are never stored
here; the line serializes the current product/variant rows.
"""

from __future__ import annotations

from ..extensions import db
from ..models import CartItem, Product, ProductVariant
from ..validation import ValidationError


def _line_query(user_id: int):
    return db.session.query(CartItem).filter(CartItem.user_id == user_id)


def cart_summary(user_id: int) -> dict:
    items = _line_query(user_id).order_by(CartItem.id.asc()).all()
    total = 0
    count = 0
    for item in items:
        if item.variant is not None:
            total += item.variant.unit_price_cents * item.quantity
        count += item.quantity
    return {
        "items": [i.to_dict() for i in items],
        "cart_count": count,
        "cart_total_cents": total,
    }


def add_item(*, user_id: int, product_id: int, variant_id: int, quantity: int = 1) -> CartItem | None:
    """
    Add or merge a line. Returns the line, or None when quantity <= 0 and
    nothing existed to merge into.
    """
    product = db.session.get(Product, product_id)
    variant = db.session.get(ProductVariant, variant_id)
    if product is None or not product.is_active:
        raise ValidationError("Product is not available")
    if variant is None or variant.product_id != product.id or not variant.is_active:
        raise ValidationError("Variant is not available for this product")

    existing = _line_query(user_id).filter(
        CartItem.product_id == product_id,
        CartItem.variant_id == variant_id,
    ).first()

    if existing is not None:
        return set_quantity(user_id=user_id, item_id=existing.id, quantity=existing.quantity + quantity)

    if quantity <= 0:
        return None

    item = CartItem(user_id=user_id, product_id=product_id, variant_id=variant_id, quantity=quantity)
    db.session.add(item)
    db.session.commit()
    return item


def get_item(*, user_id: int, item_id: int) -> CartItem | None:
    return _line_query(user_id).filter(CartItem.id == item_id).first()


def set_quantity(*, user_id: int, item_id: int, quantity: int) -> CartItem | None:
    """Returns the updated line, or None when it was removed or does not exist."""
    item = get_item(user_id=user_id, item_id=item_id)
    if item is None:
        return None
    if quantity <= 0:
        db.session.delete(item)
        db.session.commit()
        return None

    item.quantity = quantity
    db.session.commit()
    return item


def remove_item(*, user_id: int, item_id: int) -> bool:
    deleted = _line_query(user_id).filter(CartItem.id == item_id).delete(synchronize_session=False)
    db.session.commit()
    return deleted > 0


def clear_cart(user_id: int) -> int:
    deleted = _line_query(user_id).delete(synchronize_session=False)
    db.session.commit()
    return deleted
