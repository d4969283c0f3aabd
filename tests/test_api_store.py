"""
Catalog, wishlist, order and content endpoint tests.
"""

import pytest

import orders
from schemas import OrderRequest
from tests.conftest import auth_header, register


class TestProducts:
    def test_list_all(self, client):
        products = client.get("/api/products").json()
        assert len(products) == 7
        assert {"id", "name", "price", "originalPrice", "inStock", "benefits", "tags"} <= set(products[0])

    def test_filter_category(self, client):
        products = client.get("/api/products", params={"category": "recovery"}).json()
        assert {p["id"] for p in products} == {"bpc-157", "tb-500"}

    def test_filter_featured(self, client):
        products = client.get("/api/products", params={"featured": "true"}).json()
        assert {p["id"] for p in products} == {"bpc-157", "tb-500", "semaglutide"}

    def test_search_name_case_insensitive(self, client):
        products = client.get("/api/products", params={"search": "bpc"}).json()
        assert [p["id"] for p in products] == ["bpc-157"]

    def test_search_tag(self, client):
        products = client.get("/api/products", params={"search": "best-seller"}).json()
        assert {p["id"] for p in products} == {"bpc-157", "semaglutide"}

    def test_search_is_literal(self, client):
        assert client.get("/api/products", params={"search": ".*"}).json() == []

    def test_sort_by_price(self, client):
        low = [p["price"] for p in client.get("/api/products", params={"sort": "price-low"}).json()]
        high = [p["price"] for p in client.get("/api/products", params={"sort": "price-high"}).json()]
        assert low == sorted(low)
        assert high == sorted(high, reverse=True)

    def test_unknown_sort(self, client):
        assert client.get("/api/products", params={"sort": "random"}).status_code == 400

    def test_get_one(self, client):
        product = client.get("/api/products/semaglutide").json()
        assert product["name"] == "Semaglutide"
        assert product["benefits"] == ["Appetite control", "Blood sugar support"]

    def test_get_missing(self, client):
        resp = client.get("/api/products/nope")
        assert resp.status_code == 404
        assert resp.json()["message"] == "Product not found"


class TestWishlist:
    def test_add_then_remove_restores_wishlist(self, client, alice_headers):
        client.post("/api/wishlist/tb-500", headers=alice_headers)
        before = client.get("/api/wishlist", headers=alice_headers).json()["wishlist"]

        added = client.post("/api/wishlist/bpc-157", headers=alice_headers)
        assert added.status_code == 200
        assert added.json()["wishlist"] == before + ["bpc-157"]

        removed = client.delete("/api/wishlist/bpc-157", headers=alice_headers)
        assert removed.status_code == 200
        assert removed.json()["wishlist"] == before

    def test_duplicate_add(self, client, alice_headers):
        client.post("/api/wishlist/bpc-157", headers=alice_headers)
        resp = client.post("/api/wishlist/bpc-157", headers=alice_headers)
        assert resp.status_code == 400
        assert resp.json()["message"] == "Product already in wishlist"

    def test_add_unknown_product(self, client, alice_headers):
        assert client.post("/api/wishlist/nope", headers=alice_headers).status_code == 404

    def test_remove_absent(self, client, alice_headers):
        assert client.delete("/api/wishlist/bpc-157", headers=alice_headers).status_code == 404

    def test_includes_products(self, client, alice_headers):
        client.post("/api/wishlist/ghk-cu", headers=alice_headers)
        body = client.get("/api/wishlist", headers=alice_headers).json()
        assert body["products"][0]["name"] == "GHK-Cu"

    def test_requires_auth(self, client):
        assert client.get("/api/wishlist").status_code == 401


class TestOrders:
    def _order(self, **extra):
        return {
            "items": [{"productId": "bpc-157", "quantity": 2}, {"productId": "bacteriostatic-water", "quantity": 1}],
            "customerName": "Alice",
            "customerEmail": "alice@gmail.com",
            "customerAddress": "Jl. Sudirman 1, Jakarta",
            **extra,
        }

    def test_total_is_items_minus_discount(self, client, alice_headers):
        resp = client.post("/api/orders", json=self._order(discountCode="welcome10"), headers=alice_headers)
        assert resp.status_code == 201
        order = resp.json()["order"]
        assert order["subtotal"] == 1_800_000
        assert order["discountCode"] == "WELCOME10"
        assert order["discountAmount"] == 180_000
        assert order["total"] == 1_620_000
        assert sum(i["price"] * i["quantity"] for i in order["items"]) - order["discountAmount"] == order["total"]

    def test_client_total_is_not_trusted(self, client, alice_headers):
        resp = client.post("/api/orders", json=self._order(total=1), headers=alice_headers)
        assert resp.json()["order"]["total"] == 1_800_000

    def test_discount_use_is_consumed(self, client, db, alice_headers):
        client.post("/api/orders", json=self._order(discountCode="FLASH25"), headers=alice_headers)
        assert db["discountcode"].find_one({"code": "FLASH25"})["used_count"] == 1

    def test_failed_insert_gives_discount_use_back(self, db, alice, monkeypatch):
        def fail(*args, **kwargs):
            raise RuntimeError("insert failed")

        monkeypatch.setattr(orders, "create_document", fail)
        user = db["user"].find_one({"email": "alice@gmail.com"})
        payload = OrderRequest.model_validate(self._order(discountCode="FLASH25"))

        with pytest.raises(RuntimeError):
            orders.place_order(db, user, payload)
        assert db["discountcode"].find_one({"code": "FLASH25"})["used_count"] == 0
        assert db["order"].count_documents({}) == 0

    def test_unknown_product(self, client, alice_headers):
        body = self._order()
        body["items"] = [{"productId": "nope", "quantity": 1}]
        assert client.post("/api/orders", json=body, headers=alice_headers).status_code == 404

    def test_out_of_stock(self, client, alice_headers):
        body = self._order()
        body["items"] = [{"productId": "ghk-cu", "quantity": 1}]
        assert client.post("/api/orders", json=body, headers=alice_headers).status_code == 400

    def test_empty_order(self, client, alice_headers):
        assert client.post("/api/orders", json=self._order(items=[]), headers=alice_headers).status_code == 400

    def test_history_is_per_user(self, client, alice_headers):
        client.post("/api/orders", json=self._order(), headers=alice_headers)
        bob = register(client, name="Bob", email="bob@gmail.com")

        mine = client.get("/api/orders", headers=alice_headers).json()
        theirs = client.get("/api/orders", headers=auth_header(bob["token"])).json()
        assert len(mine) == 1
        assert mine[0]["items"][0]["productName"] == "BPC-157"
        assert theirs == []


class TestTestimonials:
    def test_list(self, client):
        assert len(client.get("/api/testimonials").json()) == 3

    def test_create_anonymous(self, client):
        resp = client.post(
            "/api/testimonials",
            json={"name": "Dewi", "rating": 5, "text": "Great", "product": "BPC-157"},
        )
        assert resp.status_code == 201
        testimonial = resp.json()["testimonial"]
        assert testimonial["location"] == "Indonesia"
        assert testimonial["verified"] is False
        assert len(client.get("/api/testimonials").json()) == 4

    def test_create_signed_in_is_verified(self, client, alice, alice_headers):
        resp = client.post(
            "/api/testimonials",
            json={"name": "Alice", "location": "Bandung", "rating": 4, "text": "Good", "product": "TB-500"},
            headers=alice_headers,
        )
        testimonial = resp.json()["testimonial"]
        assert testimonial["verified"] is True
        assert testimonial["userId"] == alice["user"]["id"]

    def test_rating_range(self, client):
        resp = client.post("/api/testimonials", json={"name": "X", "rating": 6, "text": "t", "product": "p"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Rating must be between 1 and 5"

    def test_missing_fields(self, client):
        assert client.post("/api/testimonials", json={"name": "X"}).status_code == 400


class TestEbooks:
    def test_list_and_filter(self, client):
        assert len(client.get("/api/ebooks").json()) == 3
        featured = client.get("/api/ebooks", params={"featured": "true"}).json()
        assert [e["id"] for e in featured] == ["peptide-basics"]

    def test_download_counts(self, client):
        first = client.post("/api/ebooks/recovery-stacks/download").json()
        second = client.post("/api/ebooks/recovery-stacks/download").json()
        assert first["downloadUrl"] == "/ebooks/recovery-stacks.pdf"
        assert second["downloads"] == first["downloads"] + 1
        assert client.get("/api/ebooks/recovery-stacks").json()["downloads"] == 2

    def test_download_missing(self, client):
        assert client.post("/api/ebooks/nope/download").status_code == 404


class TestNewsletter:
    def test_subscribe(self, client, db):
        resp = client.post("/api/newsletter/subscribe", json={"email": "Reader@gmail.com", "name": "Reader"})
        assert resp.status_code == 201
        assert db["newslettersubscriber"].find_one({"email": "reader@gmail.com"})["active"] is True

    def test_duplicate(self, client):
        client.post("/api/newsletter/subscribe", json={"email": "reader@gmail.com"})
        resp = client.post("/api/newsletter/subscribe", json={"email": "reader@gmail.com"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "Email already subscribed"

    def test_unsubscribe_and_resubscribe(self, client, db):
        client.post("/api/newsletter/subscribe", json={"email": "reader@gmail.com"})
        assert client.post("/api/newsletter/unsubscribe", json={"email": "reader@gmail.com"}).status_code == 200
        doc = db["newslettersubscriber"].find_one({"email": "reader@gmail.com"})
        assert doc["active"] is False
        assert doc["unsubscribed_at"] is not None

        assert client.post("/api/newsletter/subscribe", json={"email": "reader@gmail.com"}).status_code == 201
        assert db["newslettersubscriber"].count_documents({"email": "reader@gmail.com", "active": True}) == 1

    def test_unsubscribe_unknown(self, client):
        assert client.post("/api/newsletter/unsubscribe", json={"email": "ghost@gmail.com"}).status_code == 404

    def test_email_required(self, client):
        assert client.post("/api/newsletter/subscribe", json={}).status_code == 400


class TestContact:
    def test_send(self, client, db):
        resp = client.post(
            "/api/contact",
            json={"name": "Sam", "email": "sam@gmail.com", "subject": "Shipping", "message": "Where is my order?"},
        )
        assert resp.status_code == 201
        assert db["contactmessage"].count_documents({"subject": "Shipping"}) == 1

    def test_missing_fields(self, client):
        resp = client.post("/api/contact", json={"name": "Sam", "email": "sam@gmail.com"})
        assert resp.status_code == 400
        assert resp.json()["message"] == "All fields are required"


class TestBlogAndHealth:
    def test_blog_newest_first(self, client):
        posts = client.get("/api/blog").json()
        assert posts[0]["id"] == "understanding-purity-reports"
        assert len(posts) == 4

    def test_blog_filters(self, client):
        assert len(client.get("/api/blog", params={"category": "guides"}).json()) == 2
        assert len(client.get("/api/blog", params={"featured": "true"}).json()) == 2
        assert len(client.get("/api/blog", params={"limit": 1}).json()) == 1

    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "OK"
        assert body["database"] == "connected"

    def test_unknown_route_has_message(self, client):
        resp = client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert "message" in resp.json()
