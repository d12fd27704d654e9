# backend/storefront/order_numbers.py
"""
Order numbers: ORD-YYYYMMDD-NNNN.

Shared by the server (order placement) and the client checkout flow, so
this module imports nothing beyond the standard library.
"""
from __future__ import annotations

import re
import secrets
from datetime import datetime


ORDER_NUMBER_RE = re.compile(r"^ORD-\d{8}-\d{4}$")


def generate_order_number(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"ORD-{now:%Y%m%d}-{secrets.randbelow(10000):04d}"


def is_order_number(value) -> bool:
    return isinstance(value, str) and bool(ORDER_NUMBER_RE.match(value))
