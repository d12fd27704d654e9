# backend/storefront/services/products_service.py
"""
Catalog Service

Storefront reads (active products only) and admin CRUD for products and
their color/size variants.

PRICING: base_price_cents on the product, price_adjustment_cents on the
variant. Nothing here recomputes order prices; see order_service.

Deleting a product is a hard delete: variants go with it (cascade) and any
server cart lines pointing at it are removed first. Order items keep their
own snapshot, so order history is unaffected.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import Product, ProductVariant, CartItem, slugify
from ..validation import ConflictError, check_sellable_price


DEFAULT_IMAGE_URL = "/api/placeholder/400/500"
RELATED_PRODUCTS_LIMIT = 3

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "base_price_cents", "category",
    "image_url", "stock_quantity", "is_active",
}
VARIANT_MUTABLE_FIELDS = {"color", "size", "stock_quantity", "price_adjustment_cents", "is_active"}

SORT_ORDERS = {
    "name": (Product.name.asc(), Product.id.asc()),
    "price-low": (Product.base_price_cents.asc(), Product.id.asc()),
    "price-high": (Product.base_price_cents.desc(), Product.id.asc()),
    "newest": (Product.created_at.desc(), Product.id.desc()),
}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)
    if "name" in patch:
        p.slug = slugify(p.name)


def _paginate(base_query, page: int | None, per_page: int | None, serialize) -> dict:
    if page is None:
        rows = base_query.all()
        return {"items": [serialize(r) for r in rows], "count": len(rows)}

    per_page = min(per_page or 20, 100)  # Default 20, max 100
    page = max(page, 1)

    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    rows = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [serialize(r) for r in rows],
        "count": len(rows),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def list_products(
    *,
    category: str | None = None,
    search: str | None = None,
    sort: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    include_inactive: bool = False,
) -> dict:
    """
    Catalog listing with optional pagination.

    search matches name or category, case-insensitive.
    sort is one of SORT_ORDERS; unknown values fall back to newest first.
    """
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        query = query.filter(db.func.lower(Product.category) == category.strip().lower())
    if search:
        term = f"%{search.strip().lower()}%"
        query = query.filter(or_(
            db.func.lower(Product.name).like(term),
            db.func.lower(Product.category).like(term),
        ))

    query = query.order_by(*SORT_ORDERS.get(sort or "newest", SORT_ORDERS["newest"]))
    return _paginate(query, page, per_page, lambda p: p.to_dict())


def list_all_products() -> list[dict]:
    """Admin view: every product, active or not, with all variants, newest first."""
    products = db.session.query(Product).order_by(*SORT_ORDERS["newest"]).all()
    return [p.to_dict(include_variants=True) for p in products]


def get_product(product_id: int, *, include_inactive: bool = False) -> Product | None:
    p = db.session.get(Product, product_id)
    if p is None or (not include_inactive and not p.is_active):
        return None
    return p


def get_product_detail(product_id: int) -> dict | None:
    """Active product with its active variants and a few related products."""
    p = get_product(product_id)
    if p is None:
        return None

    data = p.to_dict()
    data["variants"] = [v.to_dict() for v in p.variants if v.is_active]

    related = (
        db.session.query(Product)
        .filter(
            Product.is_active.is_(True),
            Product.category == p.category,
            Product.id != p.id,
        )
        .order_by(Product.created_at.desc(), Product.id.desc())
        .limit(RELATED_PRODUCTS_LIMIT)
        .all()
    )
    return {"product": data, "related_products": [r.to_dict() for r in related]}


def list_categories() -> list[str]:
    rows = (
        db.session.query(Product.category)
        .filter(Product.is_active.is_(True))
        .distinct()
        .order_by(Product.category.asc())
        .all()
    )
    return [r[0] for r in rows]


def create_product(*, patch: dict, variants: list[dict] | None = None) -> Product:
    """
    Create a product (and optional variants) from validated patches.

    Raises ConflictError on a duplicate color/size pair within `variants`,
    ValidationError when a variant would sell below zero.
    """
    for variant_patch in variants or []:
        check_sellable_price(patch.get("base_price_cents"), variant_patch.get("price_adjustment_cents"))

    p = Product(
        is_active=True,
        stock_quantity=0,
        description="",
        image_url=DEFAULT_IMAGE_URL,
    )
    apply_product_patch(p, patch)
    if not p.image_url:
        p.image_url = DEFAULT_IMAGE_URL

    db.session.add(p)
    db.session.flush()

    seen = set()
    for variant_patch in variants or []:
        key = (variant_patch.get("color"), variant_patch.get("size"))
        if key in seen:
            db.session.rollback()
            raise ConflictError(f"Duplicate variant {key[0]}/{key[1]}")
        seen.add(key)
        _add_variant(p, variant_patch)

    db.session.commit()
    return p


def update_product(*, product_id: int, patch: dict) -> Product | None:
    """
    Apply a validated patch. Returns None if not found. Renaming regenerates the slug.

    Lowering base_price_cents raises ValidationError if any variant's
    adjustment would then take it below zero.
    """
    p = db.session.get(Product, product_id)
    if not p:
        return None

    if patch.get("base_price_cents") is not None:
        for v in p.variants:
            check_sellable_price(patch["base_price_cents"], v.price_adjustment_cents)

    apply_product_patch(p, patch)
    db.session.commit()
    return p


def delete_product(*, product_id: int) -> bool:
    """Hard-delete a product and its variants. Returns False if not found."""
    p = db.session.get(Product, product_id)
    if not p:
        return False

    db.session.query(CartItem).filter(CartItem.product_id == p.id).delete(synchronize_session=False)
    db.session.delete(p)
    db.session.commit()
    return True


def _add_variant(p: Product, patch: dict) -> ProductVariant:
    v = ProductVariant(product_id=p.id, stock_quantity=0, price_adjustment_cents=0, is_active=True)
    for k, val in patch.items():
        if k in VARIANT_MUTABLE_FIELDS:
            setattr(v, k, val)
    db.session.add(v)
    p.variants.append(v)
    return v


def _variant_exists(product_id: int, color: str, size: str, exclude_id: int | None = None) -> bool:
    query = db.session.query(ProductVariant).filter(
        ProductVariant.product_id == product_id,
        ProductVariant.color == color,
        ProductVariant.size == size,
    )
    if exclude_id is not None:
        query = query.filter(ProductVariant.id != exclude_id)
    return query.first() is not None


def create_variant(*, product_id: int, patch: dict) -> ProductVariant | None:
    """Returns None if the product does not exist. Raises ConflictError on duplicate color/size."""
    p = db.session.get(Product, product_id)
    if not p:
        return None
    if _variant_exists(p.id, patch["color"], patch["size"]):
        raise ConflictError("A variant with this color and size already exists")
    check_sellable_price(p.base_price_cents, patch.get("price_adjustment_cents"))

    v = _add_variant(p, patch)
    db.session.commit()
    return v


def update_variant(*, product_id: int, variant_id: int, patch: dict) -> ProductVariant | None:
    v = db.session.get(ProductVariant, variant_id)
    if not v or v.product_id != product_id:
        return None

    color = patch.get("color", v.color)
    size = patch.get("size", v.size)
    if (color, size) != (v.color, v.size) and _variant_exists(product_id, color, size, exclude_id=v.id):
        raise ConflictError("A variant with this color and size already exists")
    if "price_adjustment_cents" in patch:
        check_sellable_price(v.product.base_price_cents, patch["price_adjustment_cents"])

    for k, val in patch.items():
        if k in VARIANT_MUTABLE_FIELDS:
            setattr(v, k, val)
    db.session.commit()
    return v


def delete_variant(*, product_id: int, variant_id: int) -> bool:
    v = db.session.get(ProductVariant, variant_id)
    if not v or v.product_id != product_id:
        return False

    db.session.query(CartItem).filter(CartItem.variant_id == v.id).delete(synchronize_session=False)
    db.session.delete(v)
    db.session.commit()
    return True
