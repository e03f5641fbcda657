"""
Tests for the cart HTTP routes
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from storefront.main import create_app


@pytest.fixture
def client(database):
    with TestClient(create_app(database)) as test_client:
        yield test_client


def add(client, variation_id, quantity, **owner):
    return client.post("/carts/items", params=owner, json={"variation_id": variation_id, "quantity": quantity})


class TestCartRoutes:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_add_and_get(self, client, make_variation):
        variation_id = make_variation(stock=5, price="10.00")

        response = add(client, variation_id, 2, user_id="user-1")
        assert response.status_code == 200
        data = response.json()
        assert data["total_items"] == 2
        assert Decimal(data["total_amount"]) == Decimal("20.00")
        assert data["status"] == "ACTIVE"

        response = client.get("/carts", params={"user_id": "user-1"})
        assert response.status_code == 200
        assert response.json()["id"] == data["id"]

    def test_get_without_cart(self, client):
        response = client.get("/carts", params={"guest_id": "nobody"})
        assert response.status_code == 404

    def test_owner_must_be_unambiguous(self, client, make_variation):
        variation_id = make_variation(stock=5)

        assert add(client, variation_id, 1).status_code == 400
        assert add(client, variation_id, 1, user_id="u", guest_id="g").status_code == 400

    def test_insufficient_stock_conflict(self, client, make_variation):
        variation_id = make_variation(stock=1)

        response = add(client, variation_id, 2, user_id="user-1")

        assert response.status_code == 409
        assert "Insufficient stock" in response.json()["detail"]

    def test_unknown_variation(self, client):
        assert add(client, "missing", 1, user_id="user-1").status_code == 404

    def test_invalid_quantity_rejected_by_schema(self, client, make_variation):
        variation_id = make_variation(stock=5)
        assert add(client, variation_id, 0, user_id="user-1").status_code == 422

    def test_update_and_remove_item(self, client, make_variation):
        variation_id = make_variation(stock=5)
        item_id = add(client, variation_id, 1, user_id="user-1").json()["items"][0]["id"]

        response = client.patch(f"/carts/items/{item_id}", json={"quantity": 3})
        assert response.status_code == 200
        assert response.json()["total_items"] == 3

        response = client.delete(f"/carts/items/{item_id}")
        assert response.status_code == 200
        assert response.json()["items"] == []

        assert client.delete(f"/carts/items/{item_id}").status_code == 404

    def test_clear_cart(self, client, make_variation):
        variation_id = make_variation(stock=5)
        add(client, variation_id, 2, guest_id="guest-1")

        response = client.delete("/carts", params={"guest_id": "guest-1"})

        assert response.status_code == 200
        assert response.json()["total_items"] == 0
        assert client.delete("/carts", params={"guest_id": "guest-2"}).status_code == 404

    def test_guest_add_then_merge(self, client, make_variation):
        variation_id = make_variation(stock=5)

        response = client.post(
            "/carts/guest/items",
            json={"guest_id": "guest-1", "variation_id": variation_id, "quantity": 2},
        )
        assert response.status_code == 200
        assert response.json()["guest_id"] == "guest-1"

        response = client.post("/carts/merge", json={"guest_id": "guest-1", "user_id": "user-1"})
        assert response.status_code == 200
        merged = response.json()
        assert merged["user_id"] == "user-1"
        assert merged["total_items"] == 2

        assert client.get("/carts", params={"guest_id": "guest-1"}).status_code == 404
