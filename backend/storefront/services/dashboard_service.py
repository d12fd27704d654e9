# Overview: Aggregates for the admin dashboard landing page.

from __future__ import annotations

from sqlalchemy import func

from ..extensions import db
from ..models import Product, Order, User, AdminUser, STATUS_CANCELLED


LOW_STOCK_THRESHOLD = 10


def get_stats() -> dict:
    """
    Headline numbers. Revenue excludes cancelled orders; every other order
    counts, paid or not (cash on delivery is collected later).
    """
    total_products = db.session.query(func.count(Product.id)).scalar() or 0
    active_products = (
        db.session.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar() or 0
    )
    low_stock = (
        db.session.query(func.count(Product.id))
        .filter(Product.stock_quantity < LOW_STOCK_THRESHOLD)
        .scalar() or 0
    )
    total_orders = db.session.query(func.count(Order.id)).scalar() or 0
    revenue = (
        db.session.query(func.coalesce(func.sum(Order.total_amount_cents), 0))
        .filter(Order.status != STATUS_CANCELLED)
        .scalar() or 0
    )

    return {
        "totalProducts": total_products,
        "activeProducts": active_products,
        "lowStockProducts": low_stock,
        "totalOrders": total_orders,
        "totalRevenue": revenue,
        "totalCustomers": len(_customer_ids()),
        "averageOrderValue": revenue // total_orders if total_orders else 0,
    }


def _customer_ids() -> list[int]:
    admin_ids = db.select(AdminUser.user_id)
    rows = db.session.query(User.id).filter(~User.id.in_(admin_ids)).all()
    return [r[0] for r in rows]


def list_customers() -> list[dict]:
    """Every non-admin account with its order count and spend, newest first."""
    per_user = (
        db.session.query(
            Order.user_id.label("user_id"),
            func.count(Order.id).label("total_orders"),
            func.coalesce(func.sum(Order.total_amount_cents), 0).label("total_spent"),
        )
        .filter(Order.status != STATUS_CANCELLED)
        .group_by(Order.user_id)
        .subquery()
    )

    admin_ids = db.select(AdminUser.user_id)
    rows = (
        db.session.query(User, per_user.c.total_orders, per_user.c.total_spent)
        .outerjoin(per_user, per_user.c.user_id == User.id)
        .filter(~User.id.in_(admin_ids))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )

    customers = []
    for user, total_orders, total_spent in rows:
        data = user.to_dict()
        data["is_active"] = user.is_active
        data["total_orders"] = total_orders or 0
        data["total_spent"] = total_spent or 0
        customers.append(data)
    return customers


def low_stock_products(limit: int = 20) -> list[dict]:
    products = (
        db.session.query(Product)
        .filter(Product.stock_quantity < LOW_STOCK_THRESHOLD)
        .order_by(Product.stock_quantity.asc(), Product.id.asc())
        .limit(limit)
        .all()
    )
    return [p.to_dict() for p in products]


def get_dashboard() -> dict:
    return {
        "stats": get_stats(),
        "customers": list_customers(),
        "low_stock_products": low_stock_products(),
    }
