"""Integration tests for Order API endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from ordering.api.routes import cart_router, order_router
from ordering.order.payment import ConfirmOrderPayment
from protean import current_domain
from protean.integrations.fastapi import register_exception_handlers


@pytest.fixture()
def client():
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(order_router)
    app.include_router(cart_router)
    return TestClient(app)


def _place_order(client):
    """Helper: POST /orders and return the order number."""
    response = client.post(
        "/orders",
        json={
            "buyer_id": "buyer-api-001",
            "items": [
                {"product_id": "prod-001", "partner_id": "partner-1", "name": "Shirt", "price": 25000, "quantity": 2},
                {"product_id": "prod-002", "partner_id": "partner-2", "name": "Tote", "price": 10000, "quantity": 1},
            ],
            "payment_method": "CARD",
        },
    )
    assert response.status_code == 201
    return response.json()["order_number"]


def _pay(order_number):
    current_domain.process(
        ConfirmOrderPayment(order_number=order_number, transaction_id="T-API-1"),
        asynchronous=False,
    )


class TestOrderEndpoints:
    def test_place_and_fetch(self, client):
        order_number = _place_order(client)
        response = client.get(f"/orders/{order_number}")
        assert response.status_code == 200
        body = response.json()
        assert body["total_amount"] == 60000
        assert body["status"] == "pending"
        assert body["payment_status"] == "pending"
        assert len(body["partner_orders"]) == 2
        assert sum(po["subtotal"] for po in body["partner_orders"]) == body["total_amount"]

    def test_unknown_order_is_404(self, client):
        assert client.get("/orders/ORD-NOPE").status_code == 404

    def test_empty_order_is_rejected(self, client):
        response = client.post("/orders", json={"buyer_id": "b", "items": []})
        assert response.status_code == 422

    def test_advance_requires_payment(self, client):
        order_number = _place_order(client)
        response = client.put(f"/orders/{order_number}/status", json={"status": "confirmed"})
        assert response.status_code == 400

    def test_advance_after_payment(self, client):
        order_number = _place_order(client)
        _pay(order_number)
        response = client.put(f"/orders/{order_number}/status", json={"status": "preparing"})
        assert response.status_code == 200
        assert client.get(f"/orders/{order_number}").json()["status"] == "preparing"

    def test_partner_ships_its_share(self, client):
        order_number = _place_order(client)
        _pay(order_number)
        client.put(f"/orders/{order_number}/partners/partner-1/status", json={"status": "preparing"})
        response = client.put(
            f"/orders/{order_number}/partners/partner-1/status",
            json={"status": "shipped", "tracking_number": "TRK-9"},
        )
        assert response.status_code == 200
        shares = {po["partner_id"]: po for po in client.get(f"/orders/{order_number}").json()["partner_orders"]}
        assert shares["partner-1"]["status"] == "shipped"
        assert shares["partner-1"]["tracking_number"] == "TRK-9"
        assert shares["partner-2"]["status"] == "confirmed"

    def test_cancel_unpaid_order(self, client):
        order_number = _place_order(client)
        response = client.put(f"/orders/{order_number}/cancel", json={"reason": "Changed my mind"})
        assert response.status_code == 200
        assert client.get(f"/orders/{order_number}").json()["status"] == "cancelled"

    def test_paid_order_is_not_cancelled_directly(self, client):
        order_number = _place_order(client)
        _pay(order_number)
        response = client.put(f"/orders/{order_number}/cancel", json={"reason": "Changed my mind"})
        assert response.status_code == 400

    def test_unknown_status_is_rejected(self, client):
        order_number = _place_order(client)
        _pay(order_number)
        response = client.put(f"/orders/{order_number}/status", json={"status": "teleported"})
        assert response.status_code == 400
