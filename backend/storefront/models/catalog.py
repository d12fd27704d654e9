from __future__ import annotations

import re

from ..extensions import db
from ..time_utils import to_utc_z


def slugify(name: str) -> str:
    """Lowercase, spaces to dashes, drop everything outside [a-z0-9-]."""
    slug = re.sub(r"\s+", "-", (name or "").strip().lower())
    return re.sub(r"[^a-z0-9-]", "", slug)


class Product(db.Model):
    """
    Catalog product.

    PRICING: base_price_cents is in minor currency units (paise). The price a
    customer pays for a line is base_price_cents + variant.price_adjustment_cents.

    Only admins mutate products; the storefront reads active ones.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category_active", "category", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    slug = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)

    base_price_cents = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(64), nullable=False)
    image_url = db.Column(db.String(512), nullable=True)

    # Aggregate stock shown in the dashboard; sellable stock lives on variants
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    variants = db.relationship(
        "ProductVariant",
        back_populates="product",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="ProductVariant.id",
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} category={self.category!r}>"

    def to_dict(self, include_variants: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "base_price_cents": self.base_price_cents,
            "category": self.category,
            "image_url": self.image_url,
            "stock_quantity": self.stock_quantity,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_variants:
            data["variants"] = [v.to_dict() for v in self.variants]
        return data


class ProductVariant(db.Model):
    """A purchasable color/size combination of a product with its own stock and price delta."""
    __tablename__ = "product_variants"
    __table_args__ = (
        db.UniqueConstraint("product_id", "color", "size", name="uq_variants_product_color_size"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    color = db.Column(db.String(64), nullable=False)
    size = db.Column(db.String(32), nullable=False)
    stock_quantity = db.Column(db.Integer, nullable=False, default=0)
    price_adjustment_cents = db.Column(db.Integer, nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product", back_populates="variants")

    @property
    def unit_price_cents(self) -> int:
        return self.product.base_price_cents + (self.price_adjustment_cents or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "color": self.color,
            "size": self.size,
            "stock_quantity": self.stock_quantity,
            "price_adjustment_cents": self.price_adjustment_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }
