"""
Tests for the HTTP API
"""

import httpx
import pytest
from fastapi.testclient import TestClient

from storefront_server import http_server


@pytest.fixture
def api(storefront_cart, monkeypatch):
    monkeypatch.setattr(http_server, "cart", storefront_cart, raising=False)
    # No context manager: the lifespan would replace the injected cart
    return TestClient(http_server.app)


def test_health(api):
    response = api.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "authenticated": True}


def test_get_cart_with_totals(api, fake_api):
    fake_api.seed("prod-a", 2)
    fake_api.seed("prod-b", 1, variant_id="var-b1")

    response = api.get("/cart")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "idle"
    assert len(data["items"]) == 2
    assert data["summary"]["item_count"] == 3
    assert data["summary"]["subtotal"] == "1848.00"
    assert data["summary"]["free_shipping"] is True


def test_get_cart_reports_stale_lines(api, fake_api):
    fake_api.seed("prod-c", 1)
    fake_api.seed("discontinued", 1)

    data = api.get("/cart").json()

    assert data["summary"]["subtotal"] == "25.00"
    assert [s["product_id"] for s in data["summary"]["stale"]] == ["discontinued"]


def test_add_update_remove(api, fake_api):
    response = api.post("/cart", json={"product_id": "prod-c", "quantity": 1})
    assert response.status_code == 201
    item_id = response.json()["item"]["id"]

    response = api.put(f"/cart/{item_id}", json={"quantity": 3})
    assert response.status_code == 200
    assert response.json()["cart"]["items"][0]["quantity"] == 3

    response = api.delete(f"/cart/{item_id}")
    assert response.status_code == 200
    assert response.json()["cart"]["items"] == []


def test_update_zero_is_bad_request(api):
    response = api.put("/cart/item-1", json={"quantity": 0})
    assert response.status_code == 400


def test_missing_item_keeps_remote_status(api):
    response = api.delete("/cart/missing")
    assert response.status_code == 404
    assert response.json()["detail"] == "Cart item not found"


def test_transport_failure_is_503(api, fake_api):
    fake_api.fail_next = httpx.ConnectError("down")
    response = api.post("/cart", json={"product_id": "prod-a"})
    assert response.status_code == 503


def test_requires_login(api, storefront_cart):
    storefront_cart.auth_manager.clear_session()

    assert api.get("/cart").status_code == 401
    assert api.post("/cart", json={"product_id": "prod-a"}).status_code == 401


def test_clear_is_local(api, fake_api):
    fake_api.seed("prod-a", 1)
    api.get("/cart")

    response = api.post("/cart/clear")

    assert response.json()["cart"]["items"] == []
    assert len(fake_api.items) == 1
    assert len(api.get("/cart").json()["items"]) == 1


def test_login_and_logout(api, storefront_cart):
    storefront_cart.auth_manager.clear_session()

    response = api.post("/auth/login", json={"email": "user@example.com", "password": "secret"})
    assert response.json()["success"] is True
    assert api.get("/auth/status").json() == {"authenticated": True, "email": "user@example.com"}

    api.post("/auth/logout")
    assert api.get("/auth/status").json()["authenticated"] is False


def test_list_products(api):
    data = api.get("/products").json()
    assert data["count"] == 3
    assert data["products"][0]["sale_price"] == "799.00"


def test_mutation_prices_against_catalog(api):
    response = api.post("/cart", json={"product_id": "prod-c", "quantity": 2})

    summary = response.json()["cart"]["summary"]
    assert summary["subtotal"] == "50.00"
    assert summary["stale"] == []
