# Overview: Admin dashboard loader with a slow-response fallback.

# backend/storefront/client/dashboard.py
"""
Dashboard loading.

The fetch runs on a worker thread. If it has not finished within `timeout`
seconds the caller gets loading=False plus a "Slow response" warning so the
page can render. The request keeps running; `pending` holds its future.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass, field

from .api import ApiError


log = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 8.0
SLOW_RESPONSE_WARNING = {
    "title": "Slow response",
    "message": "The dashboard is taking longer than expected. Try Refresh.",
}


@dataclass
class DashboardResult:
    loading: bool = False
    stats: dict = field(default_factory=dict)
    customers: list = field(default_factory=list)
    low_stock_products: list = field(default_factory=list)
    warning: dict | None = None
    error: str | None = None
    pending: Future | None = None


def _from_payload(data: dict) -> DashboardResult:
    return DashboardResult(
        stats=data.get("stats") or {},
        customers=data.get("customers") or [],
        low_stock_products=data.get("low_stock_products") or [],
    )


def load_dashboard(client, timeout: float = DEFAULT_TIMEOUT) -> DashboardResult:
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="dashboard")
    future = executor.submit(client.admin_dashboard)
    executor.shutdown(wait=False)

    try:
        data = future.result(timeout=timeout)
    except FutureTimeout:
        log.warning("Dashboard did not respond within %.1fs", timeout)
        return DashboardResult(warning=dict(SLOW_RESPONSE_WARNING), pending=future)
    except ApiError as e:
        log.warning("Dashboard request failed: %s", e)
        return DashboardResult(error=str(e))

    return _from_payload(data)
