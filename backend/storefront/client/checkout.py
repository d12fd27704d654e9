# Overview: Client checkout flow: validates the form, places the order, clears the cart.

# backend/storefront/client/checkout.py
"""
Checkout flow.

place_order() walks the checkout page through form -> processing -> success.
The gateway is anything with create_order(payload) -> dict (normally a
StorefrontClient). Prices sent along are informational; the server prices
the order from the catalog.

Stock decrements and the confirmation email happen server-side after the
order is committed and never affect the result here.
"""
from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime

from ..order_numbers import generate_order_number
from ..validation import ValidationError, validate_checkout_form
from .store import line_unit_price


log = logging.getLogger(__name__)

LOGIN_REDIRECT = "/auth/login?redirect=/checkout"
CART_REDIRECT = "/cart"
SUCCESS_PATH = "/order-success?order={order_number}"
SUCCESS_REDIRECT_DELAY = 1.5
FAILURE_MESSAGE = "Failed to place order. Please try again."


class CheckoutStep(str, enum.Enum):
    FORM = "form"
    PROCESSING = "processing"
    SUCCESS = "success"


@dataclass
class CheckoutResult:
    ok: bool
    step: CheckoutStep
    order_number: str | None = None
    order: dict | None = None
    errors: dict = field(default_factory=dict)
    message: str | None = None
    redirect: str | None = None


def _timer_schedule(delay: float, callback) -> threading.Timer:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class CheckoutFlow:
    def __init__(self, store, gateway, navigate=None, schedule=None, now=datetime.now):
        self.store = store
        self.gateway = gateway
        self.navigate = navigate
        self.schedule = schedule or _timer_schedule
        self._now = now
        self.step = CheckoutStep.FORM

    def build_payload(self, form: dict, order_number: str) -> dict:
        state = self.store.state
        items = []
        subtotal = 0
        for line in state.cart_items:
            unit = line_unit_price(line)
            quantity = int(line["quantity"])
            subtotal += unit * quantity
            items.append({
                "product_id": line["product_id"],
                "variant_id": line["variant_id"],
                "quantity": quantity,
                "unit_price_cents": unit,
                "total_price_cents": unit * quantity,
            })

        payload = dict(form)
        payload.update({
            "order_number": order_number,
            "user_id": (state.user or {}).get("id"),
            "items": items,
            "subtotal_cents": subtotal,
            "tax_cents": 0,
            "shipping_cents": 0,
            "total_cents": subtotal,
        })
        return payload

    def place_order(self, form: dict) -> CheckoutResult:
        if not self.store.state.cart_items:
            return CheckoutResult(ok=False, step=self.step, message="Your cart is empty", redirect=CART_REDIRECT)

        if not self.store.check_session_expiry() or not self.store.state.is_authenticated:
            return CheckoutResult(
                ok=False,
                step=self.step,
                message="Please sign in to place your order",
                redirect=LOGIN_REDIRECT,
            )

        try:
            cleaned = validate_checkout_form(form)
        except ValidationError as e:
            return CheckoutResult(ok=False, step=self.step, errors=e.errors, message=str(e))

        order_number = generate_order_number(self._now())
        payload = self.build_payload(cleaned, order_number)

        self.step = CheckoutStep.PROCESSING
        try:
            response = self.gateway.create_order(payload)
        except Exception:
            log.exception("Order placement failed for %s", order_number)
            self.step = CheckoutStep.FORM
            return CheckoutResult(ok=False, step=self.step, message=FAILURE_MESSAGE)

        order = (response or {}).get("order") or {}
        placed_number = order.get("order_number") or order_number

        self.store.clear_cart()
        self.step = CheckoutStep.SUCCESS

        if self.navigate is not None:
            target = SUCCESS_PATH.format(order_number=placed_number)
            self.schedule(SUCCESS_REDIRECT_DELAY, lambda: self.navigate(target))

        return CheckoutResult(
            ok=True,
            step=self.step,
            order_number=placed_number,
            order=order,
            redirect=SUCCESS_PATH.format(order_number=placed_number),
        )
