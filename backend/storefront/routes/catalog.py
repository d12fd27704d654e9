# Overview: Flask API routes for the public catalog; parses input and returns JSON responses.

# backend/storefront/routes/catalog.py
"""
Public product browsing. No authentication; inactive products are hidden.
"""
from flask import Blueprint, request

from ..services.products_service import (
    list_products as list_products_service,
    get_product_detail,
    list_categories,
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api")


@catalog_bp.get("/products")
def list_products():
    """
    List active products.

    Query params:
    - category: str (optional) - exact category, case-insensitive
    - search: str (optional) - matches name or category
    - sort: name | price-low | price-high | newest (default newest)
    - page: int (optional) - page number (1-indexed). If omitted, returns all items.
    - per_page: int (optional) - items per page (default 20, max 100)
    """
    return list_products_service(
        category=request.args.get("category"),
        search=request.args.get("search"),
        sort=request.args.get("sort"),
        page=request.args.get("page", type=int),
        per_page=request.args.get("per_page", type=int),
    )


@catalog_bp.get("/products/<int:product_id>")
def get_product(product_id: int):
    """Product with its active variants plus related products from the same category."""
    detail = get_product_detail(product_id)
    if detail is None:
        return {"error": "Product not found"}, 404
    return detail


@catalog_bp.get("/categories")
def categories():
    return {"categories": list_categories()}
