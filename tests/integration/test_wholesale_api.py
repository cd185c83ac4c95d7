"""Integration tests for the cart, order and admin endpoints via TestClient."""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from protean import current_domain
from wholesale.api import admin_router, cart_router, order_router, register_exception_handlers
from wholesale.catalogue.product import Product
from wholesale.domain import wholesale

CUSTOMER = {"X-Customer-Id": "cust-api-001"}
ADMIN = {"X-Customer-Id": "staff-001", "X-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()

    @app.middleware("http")
    async def domain_context(request: Request, call_next):
        with wholesale.domain_context():
            return await call_next(request)

    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    register_exception_handlers(app)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def product(make_product):
    return make_product(name="Basmati Rice 25kg", sku="RICE-25", price=100.0, stock_quantity=5, max_order_quantity=10)


def _checkout_body(shipping_address, **overrides):
    body = {"paymentMethod": "cod", "shippingAddress": shipping_address}
    body.update(overrides)
    return body


def _place(client, product, shipping_address, quantity=3):
    client.post("/cart/add", json={"productId": str(product.id), "quantity": quantity}, headers=CUSTOMER)
    response = client.post("/orders", json=_checkout_body(shipping_address), headers=CUSTOMER)
    assert response.status_code == 201
    return response.json()["data"]["order"]


class TestIdentity:
    def test_missing_customer_is_unauthorized(self, client):
        response = client.get("/cart")
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_admin_routes_need_admin_role(self, client):
        response = client.get("/admin/orders", headers=CUSTOMER)
        assert response.status_code == 403


class TestCartEndpoints:
    def test_get_cart_creates_it(self, client):
        response = client.get("/cart", headers=CUSTOMER)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["cart"]["customerId"] == "cust-api-001"
        assert body["data"]["cart"]["items"] == []
        assert body["data"]["cart"]["status"] == "empty"

    def test_add_item(self, client, product):
        response = client.post("/cart/add", json={"productId": str(product.id), "quantity": 3}, headers=CUSTOMER)

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Item added to cart successfully"
        cart = body["data"]["cart"]
        assert cart["items"][0]["productId"] == str(product.id)
        assert cart["items"][0]["lineTotal"] == 300.0
        assert cart["subtotal"] == 300.0
        assert cart["status"] == "ready"

    def test_add_unknown_product(self, client):
        response = client.post("/cart/add", json={"productId": "prod-404", "quantity": 1}, headers=CUSTOMER)
        assert response.status_code == 404
        assert response.json()["reason"] == "ProductNotFound"

    def test_add_more_than_stock(self, client, product):
        response = client.post("/cart/add", json={"productId": str(product.id), "quantity": 6}, headers=CUSTOMER)
        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "InsufficientStock"
        assert body["available"] == 5
        assert body["productName"] == "Basmati Rice 25kg"
        assert body["requested"] == 6

    def test_top_up_past_stock(self, client, product):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 4}, headers=CUSTOMER)
        response = client.post("/cart/add", json={"productId": str(product.id), "quantity": 4}, headers=CUSTOMER)

        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "InsufficientStock"
        assert body["available"] == 5
        assert body["currentQuantity"] == 4
        cart = client.get("/cart", headers=CUSTOMER).json()["data"]["cart"]
        assert cart["items"][0]["quantity"] == 4

    def test_malformed_request(self, client):
        response = client.post("/cart/add", json={"quantity": 1}, headers=CUSTOMER)
        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "RequestValidationError"
        assert body["details"][0]["field"] == "productId"

    def test_update_item(self, client, product):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 2}, headers=CUSTOMER)
        response = client.put(f"/cart/update/{product.id}", json={"quantity": 4}, headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["data"]["cart"]["items"][0]["quantity"] == 4

    def test_update_to_zero_is_below_minimum(self, client, product):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 2}, headers=CUSTOMER)
        response = client.put(f"/cart/update/{product.id}", json={"quantity": 0}, headers=CUSTOMER)
        assert response.status_code == 400
        assert response.json()["reason"] == "BelowMinimumOrder"

    def test_update_absent_item(self, client, product):
        response = client.put(f"/cart/update/{product.id}", json={"quantity": 2}, headers=CUSTOMER)
        assert response.status_code == 404
        assert response.json()["reason"] == "ItemNotFound"

    def test_remove_and_clear(self, client, product, make_product):
        other = make_product()
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 2}, headers=CUSTOMER)
        client.post("/cart/add", json={"productId": str(other.id), "quantity": 2}, headers=CUSTOMER)

        response = client.delete(f"/cart/remove/{product.id}", headers=CUSTOMER)
        assert [item["productId"] for item in response.json()["data"]["cart"]["items"]] == [str(other.id)]

        response = client.delete("/cart/clear", headers=CUSTOMER)
        assert response.json()["data"]["cart"]["items"] == []
        assert response.json()["data"]["cart"]["total"] == 0.0

    def test_promo(self, client, product):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 5}, headers=CUSTOMER)
        response = client.post("/cart/promo", json={"code": "welcome10"}, headers=CUSTOMER)
        cart = response.json()["data"]["cart"]
        assert cart["promoCode"] == "WELCOME10"
        assert cart["discount"] == 50.0

        response = client.post("/cart/promo", json={"code": "BOGUS"}, headers=CUSTOMER)
        assert response.status_code == 400
        assert response.json()["reason"] == "InvalidPromoCode"

    def test_summary_includes_checkout_preview(self, client, product):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 3}, headers=CUSTOMER)
        data = client.get("/cart/summary", headers=CUSTOMER).json()["data"]

        assert data["summary"]["totalItems"] == 3
        assert data["checkout"] == {
            "subtotal": 300.0,
            "discount": 0.0,
            "shippingCost": 500.0,
            "tax": 54.0,
            "total": 854.0,
        }
        assert data["freeShippingThreshold"] == 10000.0
        assert data["amountToFreeShipping"] == 9700.0


class TestOrderEndpoints:
    def test_place_order(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)

        assert order["orderNumber"].startswith("ORD-")
        assert order["subtotal"] == 300.0
        assert order["tax"] == 54.0
        assert order["shippingCost"] == 500.0
        assert order["total"] == 854.0
        assert order["status"] == "pending"
        assert order["shippingAddress"]["pincode"] == "560001"
        assert order["orderSummary"] == {"totalItems": 3, "totalProducts": 1, "savings": 0.0}
        assert current_domain.repository_for(Product).get(product.id).stock_quantity == 2
        assert client.get("/cart", headers=CUSTOMER).json()["data"]["cart"]["items"] == []

    def test_place_order_with_empty_cart(self, client, shipping_address):
        response = client.post("/orders", json=_checkout_body(shipping_address), headers=CUSTOMER)
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["reason"] == "EmptyCart"
        assert body["message"] == "Cart is empty"

    def test_place_order_for_a_deleted_product(self, client, product, shipping_address):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 2}, headers=CUSTOMER)
        repo = current_domain.repository_for(Product)
        repo._dao.delete(repo.get(product.id))

        response = client.post("/orders", json=_checkout_body(shipping_address), headers=CUSTOMER)

        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "ProductNotFound"
        assert body["productName"] == "Basmati Rice 25kg"

    def test_place_order_with_bad_address(self, client, product, shipping_address):
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 1}, headers=CUSTOMER)
        response = client.post(
            "/orders",
            json=_checkout_body({**shipping_address, "phone": "12345"}),
            headers=CUSTOMER,
        )
        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "InvalidShippingAddress"
        assert "phone" in body["details"]

    def test_unexpected_failure_is_generic_500(self, client, product, shipping_address, monkeypatch):
        def unavailable(*args, **kwargs):
            raise RuntimeError("connection reset by peer")

        monkeypatch.setattr("wholesale.order.placement.increment_order_stats", unavailable)
        client.post("/cart/add", json={"productId": str(product.id), "quantity": 1}, headers=CUSTOMER)

        response = client.post("/orders", json=_checkout_body(shipping_address), headers=CUSTOMER)

        assert response.status_code == 500
        body = response.json()
        assert body["reason"] == "CheckoutFailed"
        assert "connection reset" not in response.text

    def test_list_orders_is_paginated_newest_first(self, client, product, shipping_address):
        first = _place(client, product, shipping_address, quantity=1)
        second = _place(client, product, shipping_address, quantity=1)

        data = client.get("/orders?limit=1", headers=CUSTOMER).json()["data"]

        assert [order["id"] for order in data["orders"]] == [second["id"]]
        assert data["pagination"] == {
            "currentPage": 1,
            "totalPages": 2,
            "totalOrders": 2,
            "hasNext": True,
            "hasPrev": False,
        }
        page_two = client.get("/orders?limit=1&page=2", headers=CUSTOMER).json()["data"]
        assert [order["id"] for order in page_two["orders"]] == [first["id"]]

    def test_limit_is_capped(self, client):
        response = client.get("/orders?limit=51", headers=CUSTOMER)
        assert response.status_code == 400

    def test_order_detail_is_owner_scoped(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)

        assert client.get(f"/orders/{order['id']}", headers=CUSTOMER).status_code == 200
        response = client.get(f"/orders/{order['id']}", headers={"X-Customer-Id": "cust-other"})
        assert response.status_code == 404
        assert response.json()["reason"] == "OrderNotFound"

    def test_tracking(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)
        data = client.get(f"/orders/{order['id']}/tracking", headers=CUSTOMER).json()["data"]

        assert data["order"]["orderNumber"] == order["orderNumber"]
        assert [event["status"] for event in data["trackingEvents"]] == [
            "pending",
            "confirmed",
            "processing",
            "shipped",
            "delivered",
        ]

    def test_cancel(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)

        response = client.put(f"/orders/{order['id']}/cancel", json={"reason": "Duplicate"}, headers=CUSTOMER)

        assert response.status_code == 200
        assert response.json()["data"]["order"]["status"] == "cancelled"
        assert response.json()["data"]["order"]["cancellationReason"] == "Duplicate"
        assert current_domain.repository_for(Product).get(product.id).stock_quantity == 5


class TestAdminEndpoints:
    def test_update_status_and_list(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)

        response = client.put(
            f"/admin/orders/{order['id']}/status",
            json={"status": "shipped", "trackingNumber": "BD123", "carrier": "BlueDart", "adminNotes": "Dispatched"},
            headers=ADMIN,
        )
        assert response.status_code == 200
        updated = response.json()["data"]["order"]
        assert updated["status"] == "shipped"
        assert updated["trackingNumber"] == "BD123"
        assert updated["adminNotes"].endswith("Dispatched")

        listing = client.get("/admin/orders?status=shipped", headers=ADMIN).json()["data"]
        assert [o["id"] for o in listing["orders"]] == [order["id"]]

    def test_customer_view_hides_admin_notes(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)
        client.put(
            f"/admin/orders/{order['id']}/status", json={"status": "confirmed", "adminNotes": "ok"}, headers=ADMIN
        )

        detail = client.get(f"/orders/{order['id']}", headers=CUSTOMER).json()["data"]["order"]
        assert detail["adminNotes"] is None

    def test_cancel_after_shipping_is_rejected(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)
        client.put(f"/admin/orders/{order['id']}/status", json={"status": "shipped"}, headers=ADMIN)

        response = client.put(f"/orders/{order['id']}/cancel", headers=CUSTOMER)

        assert response.status_code == 400
        body = response.json()
        assert body["reason"] == "InvalidTransition"
        assert body["currentStatus"] == "shipped"

    def test_unknown_status(self, client, product, shipping_address):
        order = _place(client, product, shipping_address)
        response = client.put(f"/admin/orders/{order['id']}/status", json={"status": "lost"}, headers=ADMIN)
        assert response.status_code == 400
        assert response.json()["reason"] == "ValidationError"
