"""
Tests for the cart HTTP endpoints and app wiring.

Run with: pytest tests/test_cart_endpoints.py -v
"""

import pytest
from fastapi.testclient import TestClient

from storefront.api.server import create_app


@pytest.fixture
def seeded(add_product):
    add_product("p1", name="Kaju Katli", price=10.0, stock=5, images=["https://cdn.example.com/k.jpg"])
    add_product("p2", name="Besan Ladoo", price=4.0, stock=2)


class TestHealth:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "operational"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"service": "healthy", "database": "healthy"}


class TestAuth:
    @pytest.mark.parametrize("method,path", [
        ("get", "/api/cart"),
        ("post", "/api/cart/add"),
        ("put", "/api/cart/update"),
        ("delete", "/api/cart/clear"),
        ("delete", "/api/cart/p1"),
    ])
    def test_anonymous_requests_are_rejected(self, client, method, path):
        response = getattr(client, method)(path)
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}

    @pytest.mark.parametrize("user_id", ["undefined", "null"])
    def test_bogus_user_id_is_unauthorized(self, client, user_id):
        response = client.get("/api/cart", headers={"X-User-Id": user_id})
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}

    def test_carts_are_isolated_per_user(self, client, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers={"X-User-Id": "alice"})
        response = client.get("/api/cart", headers={"X-User-Id": "bob"})
        assert response.json()["cart"]["items"] == []


class TestCartFlow:
    def test_empty_cart(self, client, auth_headers):
        response = client.get("/api/cart", headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"cart": {"items": [], "totalAmount": 0, "itemCount": 0}}

    def test_add_then_get(self, client, auth_headers, seeded):
        response = client.post("/api/cart/add", json={"productId": "p1", "quantity": 2}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Item added to cart"
        assert data["cart"] == {
            "items": [{
                "productId": "p1",
                "name": "Kaju Katli",
                "price": 10.0,
                "image": "https://cdn.example.com/k.jpg",
                "quantity": 2,
            }],
            "totalAmount": 20.0,
            "itemCount": 2,
        }

        assert client.get("/api/cart", headers=auth_headers).json()["cart"] == data["cart"]

    def test_unified_post_adds_with_product(self, client, auth_headers, seeded):
        response = client.post("/api/cart", json={"productId": "p2", "quantity": 1}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Item added to cart"
        assert response.json()["cart"]["itemCount"] == 1

    def test_unified_post_without_product_reads(self, client, auth_headers, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        response = client.post("/api/cart", headers=auth_headers)
        assert response.status_code == 200
        assert "message" not in response.json()
        assert response.json()["cart"]["itemCount"] == 1

    @pytest.mark.parametrize("path", ["/api/cart", "/api/cart/update"])
    def test_update(self, client, auth_headers, seeded, path):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        response = client.put(path, json={"productId": "p1", "quantity": 3}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Cart updated"
        assert response.json()["cart"]["totalAmount"] == 30.0

    def test_update_to_zero_removes(self, client, auth_headers, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        response = client.put("/api/cart/update", json={"productId": "p1", "quantity": 0}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["cart"]["items"] == []

    def test_remove_by_path(self, client, auth_headers, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        client.post("/api/cart/add", json={"productId": "p2"}, headers=auth_headers)
        response = client.delete("/api/cart/p1", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Item removed from cart"
        assert [i["productId"] for i in response.json()["cart"]["items"]] == ["p2"]

    def test_remove_by_body(self, client, auth_headers, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        response = client.request("DELETE", "/api/cart/remove", json={"productId": "p1"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["cart"]["items"] == []

    def test_clear_is_not_a_product_id(self, client, auth_headers, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        response = client.delete("/api/cart/clear", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["message"] == "Cart cleared"
        assert response.json()["cart"]["itemCount"] == 0


class TestErrors:
    def test_missing_product_id(self, client, auth_headers):
        response = client.post("/api/cart/add", json={}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Product ID is required"}

    def test_non_positive_quantity(self, client, auth_headers, seeded):
        response = client.post("/api/cart/add", json={"productId": "p1", "quantity": 0}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Quantity must be greater than 0"}

    def test_insufficient_stock(self, client, auth_headers, seeded):
        response = client.post("/api/cart/add", json={"productId": "p2", "quantity": 3}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Insufficient stock"}

    def test_unknown_product(self, client, auth_headers):
        response = client.post("/api/cart/add", json={"productId": "ghost"}, headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Product not found"}

    def test_update_requires_quantity(self, client, auth_headers):
        response = client.put("/api/cart/update", json={"productId": "p1"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Quantity is required"}

    def test_clear_without_cart(self, client, auth_headers):
        response = client.delete("/api/cart/clear", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Cart not found"}

    def test_remove_missing_item(self, client, auth_headers, seeded):
        client.post("/api/cart/add", json={"productId": "p1"}, headers=auth_headers)
        response = client.delete("/api/cart/p2", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"message": "Item not found in cart"}

    def test_unknown_fields_are_rejected(self, client, auth_headers):
        response = client.post("/api/cart/add", json={"productId": "p1", "coupon": "FREE"}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Unknown field: coupon"}

    @pytest.mark.parametrize("body,message", [
        ({"productId": "p1", "quantity": "two"}, "Invalid value for quantity"),
        ({"productId": 42, "quantity": 1}, "Invalid value for productId"),
    ])
    def test_wrongly_typed_fields_are_bad_requests(self, client, auth_headers, seeded, body, message):
        response = client.post("/api/cart/add", json=body, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": message}

    def test_wrongly_typed_update_is_bad_request(self, client, auth_headers):
        response = client.put("/api/cart/update", json={"productId": "p1", "quantity": [3]}, headers=auth_headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Invalid value for quantity"}

    def test_malformed_json(self, client, auth_headers):
        headers = {**auth_headers, "Content-Type": "application/json"}
        response = client.post("/api/cart/add", content="{not json", headers=headers)
        assert response.status_code == 400
        assert response.json() == {"message": "Malformed JSON body"}

    @pytest.mark.parametrize("headers", [{}, {"X-User-Id": "undefined"}])
    def test_identity_is_checked_before_the_body(self, client, headers):
        response = client.post("/api/cart/add", json={"productId": "p1", "quantity": "x"}, headers=headers)
        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}

    def test_anonymous_malformed_json_is_unauthorized(self, client):
        response = client.post("/api/cart/add", content="{not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 401

    def test_unexpected_failure_returns_500(self, test_config, session_factory, auth_headers):
        def broken_service():
            raise RuntimeError("cart backend down")

        app = create_app(config=test_config, session_factory=session_factory, service_provider=broken_service)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/cart", headers=auth_headers)
        assert response.status_code == 500
        assert response.json() == {"message": "cart backend down", "type": "RuntimeError"}


class TestIdentityFromState:
    def test_request_state_user_wins(self, test_config, session_factory):
        app = create_app(config=test_config, session_factory=session_factory)

        @app.middleware("http")
        async def fake_auth(request, call_next):
            request.state.user = {"_id": "state-user"}
            return await call_next(request)

        client = TestClient(app)
        response = client.get("/api/cart")
        assert response.status_code == 200
        assert response.json()["cart"]["items"] == []
