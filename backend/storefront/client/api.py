# Overview: httpx client for the storefront HTTP API.

# backend/storefront/client/api.py
"""
HTTP client for the storefront API.

Wraps httpx with bearer-token auth. The token survives restarts in device
storage under TOKEN_KEY, next to the client store, so sign-out's
storage.clear() drops it too.

Every helper returns the decoded JSON body. Non-2xx responses raise ApiError
carrying the status and body; transport failures raise ApiError with
status_code None.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import httpx

from .storage import MemoryStorage


TOKEN_KEY = "i1fashion-auth-token"


class ApiError(Exception):
    def __init__(self, status_code: Optional[int], payload: Optional[Dict] = None):
        self.status_code = status_code
        self.payload = payload or {}
        message = self.payload.get("error") or f"Request failed ({status_code})"
        super().__init__(message)

    @property
    def errors(self) -> Dict:
        return self.payload.get("errors") or {}


class StorefrontClient:
    """
    HTTP client wrapper with authentication and convenience methods.

    `transport` is passed straight to httpx; tests hand in
    httpx.WSGITransport(app=...) to talk to an in-process app.
    """

    def __init__(
        self,
        base_url: str = "http://127.0.0.1:5000",
        *,
        storage=None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = 30.0,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage = storage if storage is not None else MemoryStorage()
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    @property
    def token(self) -> Optional[str]:
        return self.storage.get_item(TOKEN_KEY)

    @token.setter
    def token(self, value: Optional[str]) -> None:
        if value:
            self.storage.set_item(TOKEN_KEY, value)
        else:
            self.storage.remove_item(TOKEN_KEY)

    def _headers(self, extra: Optional[Dict] = None) -> Dict:
        """Build request headers with optional auth."""
        headers = {"Content-Type": "application/json"}
        token = self.token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        if extra:
            headers.update(extra)
        return headers

    def request(self, method: str, path: str, *, json: Optional[Dict] = None, params: Optional[Dict] = None) -> Any:
        try:
            response = self.client.request(method, path, headers=self._headers(), json=json, params=params)
        except httpx.HTTPError as e:
            raise ApiError(None, {"error": str(e)}) from e

        try:
            body = response.json()
        except ValueError:
            body = {"error": response.text[:500]} if response.is_error else {}

        if response.is_error:
            raise ApiError(response.status_code, body if isinstance(body, dict) else {"error": str(body)})
        return body

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        return self.request("GET", path, params=params)

    def post(self, path: str, json: Optional[Dict] = None) -> Any:
        return self.request("POST", path, json=json or {})

    def put(self, path: str, json: Optional[Dict] = None) -> Any:
        return self.request("PUT", path, json=json or {})

    def patch(self, path: str, json: Optional[Dict] = None) -> Any:
        return self.request("PATCH", path, json=json or {})

    def delete(self, path: str) -> Any:
        return self.request("DELETE", path)

    # Auth and profile

    def register(self, *, email: str, password: str, full_name: str, phone: str) -> Dict:
        return self.post("/api/auth/register", json={
            "email": email, "password": password, "full_name": full_name, "phone": phone,
        })

    def login(self, email: str, password: str) -> Dict:
        """Authenticate and store the token."""
        data = self.post("/api/auth/login", json={"email": email, "password": password})
        self.token = data.get("token")
        return data

    def logout(self) -> None:
        """Revoke the server session if there is one. The local token is dropped either way."""
        try:
            if self.token:
                self.post("/api/auth/logout")
        finally:
            self.token = None

    def get_session(self) -> Dict:
        return self.get("/api/auth/session")

    def get_profile(self) -> Dict:
        return self.get("/api/profile")

    def update_profile(self, changes: Dict) -> Dict:
        return self.put("/api/profile", json=changes)

    # Email verification

    def send_otp(self, email: str) -> Dict:
        return self.post("/api/send-otp", json={"email": email})

    def verify_otp(self, email: str, otp: str) -> Dict:
        return self.put("/api/send-otp", json={"email": email, "otp": otp})

    def confirm_user(self, email: str) -> Dict:
        return self.post("/api/confirm-user", json={"email": email})

    # Catalog

    def list_products(self, **params) -> Dict:
        return self.get("/api/products", params={k: v for k, v in params.items() if v is not None})

    def get_product(self, product_id: int) -> Dict:
        return self.get(f"/api/products/{product_id}")

    def list_categories(self) -> list:
        return self.get("/api/categories").get("categories", [])

    # Server cart

    def get_cart(self) -> Dict:
        return self.get("/api/cart")

    def add_cart_item(self, product_id: int, variant_id: int, quantity: int = 1) -> Dict:
        return self.post("/api/cart", json={
            "product_id": product_id, "variant_id": variant_id, "quantity": quantity,
        })

    def update_cart_item(self, item_id: int, quantity: int) -> Dict:
        return self.put(f"/api/cart/{item_id}", json={"quantity": quantity})

    def remove_cart_item(self, item_id: int) -> Dict:
        return self.delete(f"/api/cart/{item_id}")

    def clear_cart(self) -> Dict:
        return self.delete("/api/cart")

    # Orders

    def create_order(self, payload: Dict) -> Dict:
        return self.post("/api/orders", json=payload)

    def list_orders(self) -> list:
        return self.get("/api/orders").get("orders", [])

    def get_order(self, order_number: str) -> Dict:
        return self.get(f"/api/orders/{order_number}").get("order")

    # Admin

    def admin_login(self, pin: str) -> Dict:
        data = self.post("/api/admin/login", json={"pin": pin})
        self.token = data.get("token")
        return data

    def admin_orders(self, status: Optional[str] = None) -> Dict:
        return self.get("/api/admin/orders", params={"status": status} if status else None)

    def admin_update_order(self, order_id: int, **changes) -> Dict:
        return self.patch("/api/admin/orders", json={"id": order_id, **changes})

    def admin_products(self) -> Dict:
        return self.get("/api/admin/products")

    def admin_create_product(self, payload: Dict) -> Dict:
        return self.post("/api/admin/products", json=payload)

    def admin_update_product(self, product_id: int, changes: Dict) -> Dict:
        return self.put(f"/api/admin/products/{product_id}", json=changes)

    def admin_delete_product(self, product_id: int) -> Dict:
        return self.delete(f"/api/admin/products/{product_id}")

    def admin_dashboard(self) -> Dict:
        return self.get("/api/admin/dashboard")

    def admin_create_user(self, payload: Dict) -> Dict:
        return self.post("/api/admin/users", json=payload)

    def send_email(self, *, to: str, subject: str, message: str) -> Dict:
        return self.post("/api/send-email", json={"to": to, "subject": subject, "message": message})

    def health(self) -> Dict:
        return self.get("/api/health")
