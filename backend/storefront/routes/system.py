# backend/storefront/routes/system.py
"""
System health endpoint.

Checks database connectivity and reports the pending work that background
side effects may have left behind (unapplied stock decrements, OTP codes
waiting for verification).
"""

import time
from flask import Blueprint, current_app
from ..extensions import db
from ..models import Product, Order, StockAdjustment
from ..services.otp_service import get_otp_store
from ..time_utils import utcnow, to_utc_z

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_database_health() -> dict:
    """Run a couple of cheap queries; returns status plus latency."""
    start_time = time.time()
    try:
        product_count = db.session.query(Product).count()
        order_count = db.session.query(Order).count()
        pending_adjustments = db.session.query(StockAdjustment).filter_by(status="PENDING").count()

        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "products": product_count,
                "orders": order_count,
                "pending_stock_adjustments": pending_adjustments,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error"
        }


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: database reachable
    - 503: database unhealthy
    """
    database_health = check_database_health()
    http_status = 200 if database_health["status"] == "healthy" else 503

    return {
        "status": database_health["status"],
        "timestamp": to_utc_z(utcnow()),
        "checks": {
            "database": database_health,
            "otp_store": {"status": "healthy", "pending_codes": get_otp_store().pending_count()},
        }
    }, http_status
