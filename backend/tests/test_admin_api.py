"""
Admin dashboard API tests.

Verifies:
- PIN login, its throttling, and that customer tokens get 403
- Order status transitions (forward only, terminal states, no-op resubmits)
- Product and variant CRUD, including hard delete
- Dashboard aggregates, account creation and the send-email endpoint
"""

import pytest

from storefront.models import CartItem, Order, Product, ProductVariant, STATUS_CANCELLED
from storefront.services import order_service, cart_service

from conftest import ADMIN_PIN, auth_headers


@pytest.fixture
def placed_order(customer, catalog, checkout_form):
    payload = dict(checkout_form)
    payload["items"] = [
        {"product_id": catalog["tee"].id, "variant_id": catalog["tee_m"].id, "quantity": 2},
        {"product_id": catalog["jeans"].id, "variant_id": catalog["jeans_32"].id, "quantity": 1},
    ]
    return order_service.create_order(user_id=customer.id, payload=payload)


def set_status(client, headers, order_id, status):
    return client.patch("/api/admin/orders", json={"id": order_id, "status": status}, headers=headers)


# =============================================================================
# PIN LOGIN
# =============================================================================


class TestAdminLogin:

    def test_valid_pin_returns_super_admin_session(self, client, db_session):
        resp = client.post("/api/admin/login", json={"pin": ADMIN_PIN})

        assert resp.status_code == 200
        assert resp.json["success"] is True
        assert resp.json["admin"]["role"] == "super_admin"
        assert resp.json["admin"]["is_active"] is True
        assert resp.json["token"]

    @pytest.mark.parametrize("pin", ["0000", "43210", "abcd", None, 4321])
    def test_invalid_pin_rejected(self, client, db_session, pin):
        resp = client.post("/api/admin/login", json={"pin": pin})

        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid admin PIN. Access denied."

    def test_repeated_failures_lock_out(self, client, db_session):
        for _ in range(5):
            assert client.post("/api/admin/login", json={"pin": "0000"}).status_code == 401

        resp = client.post("/api/admin/login", json={"pin": ADMIN_PIN})

        assert resp.status_code == 429
        assert resp.json["locked"] is True

    def test_customer_token_is_forbidden(self, client, customer_headers):
        assert client.get("/api/admin/orders", headers=customer_headers).status_code == 403

    def test_missing_token_is_unauthorized(self, client, db_session):
        assert client.get("/api/admin/dashboard").status_code == 401


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderStatus:

    def test_lists_all_orders(self, client, admin_headers, placed_order):
        resp = client.get("/api/admin/orders", headers=admin_headers)

        assert resp.status_code == 200
        assert [o["order_number"] for o in resp.json["orders"]] == [placed_order.order_number]

    def test_status_filter(self, client, admin_headers, placed_order):
        assert client.get("/api/admin/orders?status=shipped", headers=admin_headers).json["orders"] == []
        assert client.get("/api/admin/orders?status=bogus", headers=admin_headers).status_code == 400

    def test_forward_skip_is_allowed(self, client, outbox, admin_headers, placed_order):
        resp = set_status(client, admin_headers, placed_order.id, "shipped")

        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "shipped"
        assert len(outbox) == 1
        assert outbox[0]["Subject"] == f"Order Update - {placed_order.order_number} | i1Fashion"

    def test_backward_move_is_rejected(self, client, admin_headers, placed_order):
        set_status(client, admin_headers, placed_order.id, "shipped")

        resp = set_status(client, admin_headers, placed_order.id, "confirmed")

        assert resp.status_code == 409

    @pytest.mark.parametrize("terminal", ["delivered", "cancelled"])
    def test_terminal_states_are_final(self, client, admin_headers, placed_order, terminal):
        set_status(client, admin_headers, placed_order.id, terminal)

        resp = set_status(client, admin_headers, placed_order.id, "processing")

        assert resp.status_code == 409

    def test_cancel_from_non_terminal(self, client, admin_headers, placed_order):
        set_status(client, admin_headers, placed_order.id, "processing")

        resp = set_status(client, admin_headers, placed_order.id, STATUS_CANCELLED)

        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "cancelled"

    def test_same_status_is_a_noop(self, client, outbox, admin_headers, placed_order):
        resp = set_status(client, admin_headers, placed_order.id, "pending")

        assert resp.status_code == 200
        assert outbox == []

    def test_unknown_status_rejected(self, client, admin_headers, placed_order):
        assert set_status(client, admin_headers, placed_order.id, "lost").status_code == 400

    def test_tracking_details(self, client, admin_headers, placed_order):
        resp = client.patch("/api/admin/orders", json={
            "id": placed_order.id, "tracking_number": " TRK123 ", "carrier": "BlueDart",
        }, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["order"]["tracking_number"] == "TRK123"
        assert resp.json["order"]["carrier"] == "BlueDart"

        cleared = client.patch("/api/admin/orders", json={"id": placed_order.id, "carrier": "  "}, headers=admin_headers)
        assert cleared.json["order"]["carrier"] is None

    def test_unknown_order(self, client, admin_headers, db_session):
        assert set_status(client, admin_headers, 9999, "shipped").status_code == 404
        assert client.patch("/api/admin/orders", json={"status": "shipped"}, headers=admin_headers).status_code == 400


def test_transition_table():
    assert order_service.can_transition("pending", "delivered")
    assert order_service.can_transition("shipped", "shipped")
    assert order_service.can_transition("confirmed", "cancelled")
    assert not order_service.can_transition("processing", "confirmed")
    assert not order_service.can_transition("delivered", "cancelled")
    assert not order_service.can_transition("cancelled", "pending")
    assert not order_service.can_transition("pending", "returned")


# =============================================================================
# PRODUCTS
# =============================================================================


class TestAdminProducts:

    def test_create_with_color_and_sizes(self, client, admin_headers):
        resp = client.post("/api/admin/products", json={
            "name": "Linen Kurta",
            "description": "Breathable summer kurta",
            "base_price_cents": 159900,
            "category": "Kurtas",
            "stock_quantity": 12,
            "color": "Olive",
            "sizes": ["S", "M", "L"],
        }, headers=admin_headers)

        assert resp.status_code == 201, resp.json
        product = resp.json["product"]
        assert resp.json["message"] == "Product created successfully"
        assert product["slug"] == "linen-kurta"
        assert product["image_url"] == "/api/placeholder/400/500"
        assert sorted(v["size"] for v in product["variants"]) == ["L", "M", "S"]
        assert {v["color"] for v in product["variants"]} == {"olive"}
        assert {v["stock_quantity"] for v in product["variants"]} == {12}

    def test_create_requires_fields(self, client, admin_headers):
        resp = client.post("/api/admin/products", json={"name": "No price"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_duplicate_variants_conflict(self, client, db_session, admin_headers):
        resp = client.post("/api/admin/products", json={
            "name": "Tee", "base_price_cents": 50000, "category": "T-Shirts",
            "variants": [{"color": "red", "size": "M"}, {"color": "red", "size": "M"}],
        }, headers=admin_headers)

        assert resp.status_code == 409
        assert db_session.query(Product).filter_by(name="Tee").count() == 0

    def test_update_renames_slug(self, client, admin_headers, catalog):
        resp = client.put(f"/api/admin/products/{catalog['tee'].id}", json={
            "name": "Organic Cotton Tee", "base_price_cents": 11000,
        }, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["product"]["slug"] == "organic-cotton-tee"
        assert resp.json["product"]["base_price_cents"] == 11000

    def test_admin_sees_inactive_products(self, client, db_session, admin_headers, catalog):
        catalog["jeans"].is_active = False
        db_session.commit()

        resp = client.get("/api/admin/products", headers=admin_headers)

        assert resp.json["count"] == 2

    def test_delete_is_hard_and_removes_cart_lines(self, client, db_session, admin_headers, customer, catalog):
        product_id = catalog["tee"].id
        cart_service.add_item(
            user_id=customer.id, product_id=product_id, variant_id=catalog["tee_m"].id, quantity=1
        )

        resp = client.delete(f"/api/admin/products/{product_id}", headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["message"] == "Product deleted successfully"
        assert db_session.get(Product, product_id) is None
        assert db_session.query(ProductVariant).filter_by(product_id=product_id).count() == 0
        assert db_session.query(CartItem).count() == 0
        assert client.delete(f"/api/admin/products/{product_id}", headers=admin_headers).status_code == 404

    def test_delete_keeps_order_history(self, client, db_session, admin_headers, placed_order, catalog):
        number = placed_order.order_number
        client.delete(f"/api/admin/products/{catalog['tee'].id}", headers=admin_headers)

        orders = client.get("/api/admin/orders", headers=admin_headers).json["orders"]
        assert orders[0]["order_number"] == number
        assert len(orders[0]["order_items"]) == 2

    def test_variant_crud(self, client, admin_headers, catalog):
        product_id = catalog["jeans"].id
        base = f"/api/admin/products/{product_id}/variants"

        created = client.post(base, json={"color": "blue", "size": "34", "stock_quantity": 4}, headers=admin_headers)
        assert created.status_code == 201
        variant_id = created.json["variant"]["id"]

        assert client.post(base, json={"color": "blue", "size": "34"}, headers=admin_headers).status_code == 409

        updated = client.put(f"{base}/{variant_id}", json={"price_adjustment_cents": 1500}, headers=admin_headers)
        assert updated.json["variant"]["price_adjustment_cents"] == 1500

        assert client.delete(f"{base}/{variant_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"{base}/{variant_id}", headers=admin_headers).status_code == 404


class TestSellablePrice:
    """A variant's adjustment may discount it to zero but never below."""

    def test_create_rejects_variant_below_zero(self, client, db_session, admin_headers):
        resp = client.post("/api/admin/products", json={
            "name": "Clearance Tee", "base_price_cents": 10000, "category": "T-Shirts",
            "variants": [{"color": "red", "size": "M", "price_adjustment_cents": -20000}],
        }, headers=admin_headers)

        assert resp.status_code == 400
        assert db_session.query(Product).filter_by(name="Clearance Tee").count() == 0

    def test_discount_to_zero_is_allowed(self, client, admin_headers):
        resp = client.post("/api/admin/products", json={
            "name": "Free Socks", "base_price_cents": 10000, "category": "Socks",
            "variants": [{"color": "white", "size": "M", "price_adjustment_cents": -10000}],
        }, headers=admin_headers)

        assert resp.status_code == 201
        assert resp.json["product"]["variants"][0]["price_adjustment_cents"] == -10000

    def test_variant_create_and_update_checked(self, client, db_session, admin_headers, catalog):
        tee_id = catalog["tee"].id
        tee_xl_id = catalog["tee_xl"].id
        base = f"/api/admin/products/{tee_id}/variants"

        created = client.post(base, json={"color": "red", "size": "S", "price_adjustment_cents": -10001}, headers=admin_headers)
        assert created.status_code == 400

        updated = client.put(f"{base}/{tee_xl_id}", json={"price_adjustment_cents": -20000}, headers=admin_headers)
        assert updated.status_code == 400
        assert db_session.get(ProductVariant, tee_xl_id).price_adjustment_cents == 2500

    def test_lowering_base_price_rechecks_variants(self, client, db_session, admin_headers, catalog):
        tee_id = catalog["tee"].id
        tee_m_id = catalog["tee_m"].id
        discounted = client.put(
            f"/api/admin/products/{tee_id}/variants/{tee_m_id}",
            json={"price_adjustment_cents": -5000}, headers=admin_headers,
        )
        assert discounted.status_code == 200

        resp = client.put(f"/api/admin/products/{tee_id}", json={"base_price_cents": 4000}, headers=admin_headers)

        assert resp.status_code == 400
        assert db_session.get(Product, tee_id).base_price_cents == 10000
        assert client.put(
            f"/api/admin/products/{tee_id}", json={"base_price_cents": 5000}, headers=admin_headers
        ).status_code == 200

    def test_order_refuses_negative_unit_price(self, client, db_session, customer_headers, catalog, checkout_form):
        catalog["tee_m"].price_adjustment_cents = -20000
        db_session.commit()
        payload = dict(checkout_form)
        payload["items"] = [{"product_id": catalog["tee"].id, "variant_id": catalog["tee_m"].id, "quantity": 2}]

        resp = client.post("/api/orders", json=payload, headers=customer_headers)

        assert resp.status_code == 409
        assert "valid price" in resp.json["error"]
        assert db_session.query(Order).count() == 0


# =============================================================================
# DASHBOARD / USERS / EMAIL
# =============================================================================


class TestDashboard:

    def test_stats_exclude_cancelled_revenue(self, client, admin_headers, placed_order, customer, catalog, checkout_form):
        payload = dict(checkout_form)
        payload["items"] = [{"product_id": catalog["jeans"].id, "variant_id": catalog["jeans_32"].id, "quantity": 1}]
        second = order_service.create_order(user_id=customer.id, payload=payload)
        set_status(client, admin_headers, second.id, "cancelled")

        resp = client.get("/api/admin/dashboard", headers=admin_headers)

        assert resp.status_code == 200
        stats = resp.json["stats"]
        assert stats["totalOrders"] == 2
        assert stats["totalRevenue"] == 45000
        assert stats["totalProducts"] == 2
        assert stats["totalCustomers"] == 1

        customers = resp.json["customers"]
        assert customers[0]["email"] == "priya@example.com"
        assert customers[0]["total_orders"] == 1
        assert customers[0]["total_spent"] == 45000

    def test_low_stock_products(self, client, admin_headers, catalog):
        resp = client.get("/api/admin/dashboard", headers=admin_headers)
        assert [p["name"] for p in resp.json["low_stock_products"]] == ["Designer Jeans"]


class TestAdminUsersAndEmail:

    def test_create_verified_user(self, client, admin_headers):
        resp = client.post("/api/admin/users", json={
            "email": "Meera@Example.com", "password": "secret123",
            "full_name": "Meera Iyer", "phone": "9988776655", "role": "staff",
        }, headers=admin_headers)

        assert resp.status_code == 201, resp.json
        assert resp.json["user"]["email"] == "meera@example.com"
        assert resp.json["user"]["email_verified"] is True
        assert resp.json["admin"]["role"] == "staff"

        login = client.post("/api/auth/login", json={"email": "meera@example.com", "password": "secret123"})
        assert login.status_code == 200
        assert login.json["admin"]["role"] == "staff"

    def test_create_user_conflict(self, client, admin_headers, customer):
        resp = client.post("/api/admin/users", json={
            "email": customer.email, "password": "secret123", "full_name": "Dup", "phone": "9988776655",
        }, headers=admin_headers)
        assert resp.status_code == 409

    def test_send_email(self, client, outbox, admin_headers):
        resp = client.post("/api/send-email", json={
            "to": "priya@example.com", "subject": "Your order", "message": "Line one\nLine two",
        }, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.json["success"] is True
        assert resp.json["sent_at"].endswith("Z")
        assert outbox[0]["Subject"] == "[i1Fashion] Your order"

    def test_send_email_missing_fields(self, client, admin_headers):
        resp = client.post("/api/send-email", json={"to": "priya@example.com"}, headers=admin_headers)

        assert resp.status_code == 400
        assert resp.json["error"] == "Missing required fields: to, subject, message"

    def test_send_email_requires_admin(self, client, customer_headers):
        resp = client.post("/api/send-email", json={"to": "a@b.co", "subject": "x", "message": "y"}, headers=customer_headers)
        assert resp.status_code == 403
