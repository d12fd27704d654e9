"""
Public catalog and server cart tests.
"""

import pytest

from storefront.models import Product, ProductVariant


@pytest.fixture
def extra_tees(db_session, catalog):
    """Three more active tees and one hidden one, for related-product and listing checks."""
    for i, price in enumerate([5000, 7000, 9000, 11000], start=1):
        p = Product(
            name=f"Graphic Tee {i}", slug=f"graphic-tee-{i}", base_price_cents=price,
            category="T-Shirts", stock_quantity=20, is_active=(i != 4),
        )
        p.variants.append(ProductVariant(color="white", size="M", stock_quantity=20))
        db_session.add(p)
    db_session.commit()


class TestCatalog:

    def test_lists_only_active_products(self, client, extra_tees):
        resp = client.get("/api/products")

        assert resp.status_code == 200
        names = [p["name"] for p in resp.json["items"]]
        assert "Graphic Tee 4" not in names
        assert resp.json["count"] == 5

    def test_category_filter_is_case_insensitive(self, client, catalog):
        resp = client.get("/api/products?category=jeans")
        assert [p["name"] for p in resp.json["items"]] == ["Designer Jeans"]

    def test_search_matches_name_or_category(self, client, catalog):
        assert client.get("/api/products?search=DENIM").json["count"] == 0
        assert client.get("/api/products?search=designer").json["count"] == 1
        assert client.get("/api/products?search=t-shirt").json["count"] == 1

    @pytest.mark.parametrize("sort,first", [
        ("price-low", "Graphic Tee 1"),
        ("price-high", "Designer Jeans"),
        ("name", "Designer Jeans"),
    ])
    def test_sorting(self, client, extra_tees, sort, first):
        resp = client.get(f"/api/products?sort={sort}")
        assert resp.json["items"][0]["name"] == first

    def test_pagination(self, client, extra_tees):
        resp = client.get("/api/products?page=2&per_page=2&sort=price-low")

        assert resp.json["pagination"]["total"] == 5
        assert resp.json["pagination"]["total_pages"] == 3
        assert resp.json["pagination"]["has_prev"] is True
        assert [p["base_price_cents"] for p in resp.json["items"]] == [9000, 10000]

    def test_detail_with_variants_and_related(self, client, catalog, extra_tees):
        resp = client.get(f"/api/products/{catalog['tee'].id}")

        assert resp.status_code == 200
        assert {v["size"] for v in resp.json["product"]["variants"]} == {"M", "XL"}
        related = resp.json["related_products"]
        assert len(related) == 3
        assert all(p["category"] == "T-Shirts" for p in related)
        assert catalog["tee"].id not in [p["id"] for p in related]

    def test_inactive_variants_are_hidden(self, client, db_session, catalog):
        catalog["tee_xl"].is_active = False
        db_session.commit()

        resp = client.get(f"/api/products/{catalog['tee'].id}")

        assert [v["size"] for v in resp.json["product"]["variants"]] == ["M"]

    def test_missing_product(self, client, db_session):
        resp = client.get("/api/products/9999")
        assert resp.status_code == 404
        assert resp.json["error"] == "Product not found"

    def test_categories(self, client, catalog):
        assert client.get("/api/categories").json["categories"] == ["Jeans", "T-Shirts"]


class TestServerCart:

    def add(self, client, headers, product, variant, quantity=1):
        return client.post("/api/cart", json={
            "product_id": product.id, "variant_id": variant.id, "quantity": quantity,
        }, headers=headers)

    def test_add_merges_lines(self, client, customer_headers, catalog):
        self.add(client, customer_headers, catalog["tee"], catalog["tee_m"], 2)
        resp = self.add(client, customer_headers, catalog["tee"], catalog["tee_m"], 1)

        assert resp.status_code == 200
        assert len(resp.json["items"]) == 1
        assert resp.json["items"][0]["quantity"] == 3
        assert resp.json["cart_count"] == 3
        assert resp.json["cart_total_cents"] == 30000

    def test_totals_include_variant_adjustment(self, client, customer_headers, catalog):
        self.add(client, customer_headers, catalog["tee"], catalog["tee_xl"], 2)
        resp = self.add(client, customer_headers, catalog["jeans"], catalog["jeans_32"], 1)

        assert resp.json["cart_count"] == 3
        assert resp.json["cart_total_cents"] == 2 * 12500 + 25000

    def test_set_quantity_zero_removes(self, client, customer_headers, catalog):
        line_id = self.add(client, customer_headers, catalog["tee"], catalog["tee_m"]).json["items"][0]["id"]

        resp = client.put(f"/api/cart/{line_id}", json={"quantity": 0}, headers=customer_headers)

        assert resp.status_code == 200
        assert resp.json["items"] == []

    def test_update_unknown_line(self, client, customer_headers, catalog):
        resp = client.put("/api/cart/9999", json={"quantity": 2}, headers=customer_headers)
        assert resp.status_code == 404

    def test_remove_and_clear(self, client, customer_headers, catalog):
        line_id = self.add(client, customer_headers, catalog["tee"], catalog["tee_m"]).json["items"][0]["id"]
        self.add(client, customer_headers, catalog["jeans"], catalog["jeans_32"])

        after_remove = client.delete(f"/api/cart/{line_id}", headers=customer_headers)
        assert after_remove.json["cart_count"] == 1

        cleared = client.delete("/api/cart", headers=customer_headers)
        assert cleared.json["cart_count"] == 0

    def test_unavailable_variant(self, client, customer_headers, catalog):
        resp = self.add(client, customer_headers, catalog["tee"], catalog["jeans_32"])
        assert resp.status_code == 400

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/cart").status_code == 401


def test_health(client, db_session, catalog):
    resp = client.get("/api/health")

    assert resp.status_code == 200
    assert resp.json["status"] == "healthy"
