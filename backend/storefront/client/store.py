# Overview: Client state container for session, admin flag, cart and UI toggles.

# backend/storefront/client/store.py
"""
Client Store

Holds what the storefront UI needs between requests: the signed-in user and
its session expiry, the admin flag, the cart, and a few UI toggles.

Every mutation runs synchronously, persists the durable slice (see
storage.py) and then notifies subscribers. The store is single-threaded;
nothing here is locked.

SESSION: a non-null user always carries an expiry 7 days out. Once it has
passed, check_session_expiry() signs out, which drops user, admin and cart.

CART: at most one line per (product_id, variant_id). Quantities are always
>= 1; setting a quantity <= 0 removes the line. cart_count and cart_total
(paise) are recomputed from the lines on every cart change.
"""
from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field, asdict

from ..time_utils import now_ms
from .storage import (
    MemoryStorage,
    SESSION_DURATION_MS,
    load_persisted,
    save_persisted,
)


log = logging.getLogger(__name__)


@dataclass
class StoreState:
    user: dict | None = None
    is_authenticated: bool = False
    session_expiry: int | None = None
    admin_user: dict | None = None
    is_admin: bool = False
    cart_items: list = field(default_factory=list)
    cart_count: int = 0
    cart_total: int = 0
    is_mobile_menu_open: bool = False
    is_cart_open: bool = False
    is_search_open: bool = False


def line_unit_price(line: dict) -> int:
    product = line.get("product") or {}
    variant = line.get("variant") or {}
    unit = int(product.get("base_price_cents") or 0) + int(variant.get("price_adjustment_cents") or 0)
    return max(unit, 0)


class ClientStore:
    def __init__(self, storage=None, clock=time.time):
        self.storage = storage if storage is not None else MemoryStorage()
        self._clock = clock
        self._listeners = []

        persisted = load_persisted(self.storage)
        self.state = StoreState(**persisted)

    def _now_ms(self) -> int:
        return now_ms(self._clock)

    def _commit(self, **changes) -> None:
        for key, value in changes.items():
            setattr(self.state, key, value)

        save_persisted(self.storage, asdict(self.state))

        for listener in list(self._listeners):
            try:
                listener(self.state)
            except Exception:
                log.exception("Store listener failed")

    def subscribe(self, listener):
        """Call `listener(state)` after every change. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # Session

    def set_user(self, user: dict | None) -> None:
        expiry = self._now_ms() + SESSION_DURATION_MS if user else None
        self._commit(user=user, is_authenticated=bool(user), session_expiry=expiry)

    def set_admin_user(self, admin_user: dict | None) -> None:
        self._commit(
            admin_user=admin_user,
            is_admin=bool(admin_user) and bool(admin_user.get("is_active")),
        )

    def clear_session(self) -> None:
        """Forget user, admin and cart in memory. Device storage keeps other keys."""
        self._commit(
            user=None,
            is_authenticated=False,
            session_expiry=None,
            admin_user=None,
            is_admin=False,
            cart_items=[],
            cart_count=0,
            cart_total=0,
        )

    def sign_out(self) -> None:
        """Purge this app's device storage, then reset everything including UI flags."""
        try:
            self.storage.clear()
        except Exception:
            log.exception("Failed to clear device storage on sign out")

        self._commit(
            user=None,
            is_authenticated=False,
            session_expiry=None,
            admin_user=None,
            is_admin=False,
            cart_items=[],
            cart_count=0,
            cart_total=0,
            is_mobile_menu_open=False,
            is_cart_open=False,
            is_search_open=False,
        )

    def check_session_expiry(self) -> bool:
        """False (after signing out) once the session has expired; True otherwise."""
        expiry = self.state.session_expiry
        if expiry is not None and self._now_ms() > expiry:
            self.sign_out()
            return False
        return True

    # Cart

    def _cart_changes(self, items: list) -> dict:
        return {
            "cart_items": items,
            "cart_count": sum(int(i["quantity"]) for i in items),
            "cart_total": sum(line_unit_price(i) * int(i["quantity"]) for i in items),
        }

    def add_to_cart(self, item: dict) -> None:
        existing = next(
            (
                line for line in self.state.cart_items
                if line["product_id"] == item["product_id"] and line["variant_id"] == item["variant_id"]
            ),
            None,
        )
        quantity = int(item.get("quantity", 1))

        if existing is not None:
            self.update_cart_quantity(existing["id"], existing["quantity"] + quantity)
            return

        if quantity <= 0:
            return

        line = dict(item)
        line["quantity"] = quantity
        line.setdefault("id", None)
        if not line["id"]:
            line["id"] = uuid.uuid4().hex
        self._commit(**self._cart_changes(self.state.cart_items + [line]))

    def remove_from_cart(self, item_id: str) -> None:
        items = [line for line in self.state.cart_items if line["id"] != item_id]
        self._commit(**self._cart_changes(items))

    def update_cart_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_cart(item_id)
            return

        items = [
            dict(line, quantity=int(quantity)) if line["id"] == item_id else line
            for line in self.state.cart_items
        ]
        self._commit(**self._cart_changes(items))

    def clear_cart(self) -> None:
        self._commit(cart_items=[], cart_count=0, cart_total=0)

    def calculate_cart_total(self) -> int:
        """Recompute the cart total from the lines and store it."""
        total = sum(line_unit_price(i) * int(i["quantity"]) for i in self.state.cart_items)
        self._commit(cart_total=total)
        return total

    # UI

    def toggle_mobile_menu(self) -> None:
        self._commit(is_mobile_menu_open=not self.state.is_mobile_menu_open)

    def toggle_cart(self) -> None:
        self._commit(is_cart_open=not self.state.is_cart_open)

    def toggle_search(self) -> None:
        self._commit(is_search_open=not self.state.is_search_open)
