"""Pytest configuration and fixtures"""
import json
import os
from typing import Any, Optional

import httpx
import pytest

from storefront_server.aggregator import Catalog
from storefront_server.auth import AuthManager
from storefront_server.cart import StorefrontCart
from storefront_server.config import StorefrontSettings
from storefront_server.models import Product
from storefront_server.storefront_client import StorefrontClient

# Keep tests away from the real session file
for var in list(os.environ):
    if var.startswith("STOREFRONT_"):
        del os.environ[var]

BASE_URL = "http://shop.test/api"
TOKEN = "test-token"


class FakeStorefrontApi:
    """In-memory storefront API served through httpx.MockTransport."""

    def __init__(self, products: list[dict], token: str = TOKEN) -> None:
        self.products = products
        self.token = token
        self.items: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.fail_next: Optional[Any] = None
        self.merge_duplicates = False
        self.users = {"user@example.com": "secret"}
        self._next_id = 1

    def seed(self, product_id: str, quantity: int, variant_id: Optional[str] = None) -> dict:
        item = {
            "id": f"item-{self._next_id}",
            "userId": "user-1",
            "productId": product_id,
            "variantId": variant_id,
            "quantity": quantity,
            "createdAt": "2025-01-01T00:00:00Z",
        }
        self._next_id += 1
        self.items.append(item)
        return item

    def cart_requests(self, method: Optional[str] = None) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.path.startswith("/api/cart") and (method is None or r.method == method)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if self.fail_next is not None:
            failure, self.fail_next = self.fail_next, None
            if isinstance(failure, Exception):
                raise failure
            return failure

        path = request.url.path
        body = json.loads(request.content) if request.content else {}

        if path == "/api/auth/login" and request.method == "POST":
            if self.users.get(body.get("email")) != body.get("password"):
                return httpx.Response(401, json={"message": "Invalid credentials"})
            return httpx.Response(
                200,
                json={"token": self.token, "user": {"id": "user-1", "email": body["email"]}},
            )

        if path == "/api/products" and request.method == "GET":
            return httpx.Response(200, json=self.products)

        auth = request.headers.get("Authorization")
        if auth is None:
            return httpx.Response(401, text="Unauthorized")
        if auth != f"Bearer {self.token}":
            return httpx.Response(403, text="Forbidden")

        if path == "/api/auth/user":
            return httpx.Response(200, json={"id": "user-1", "email": "user@example.com"})

        if path == "/api/cart" and request.method == "GET":
            return httpx.Response(200, json=self.items)

        if path == "/api/cart" and request.method == "POST":
            if body.get("productId") not in {p["id"] for p in self.products}:
                return httpx.Response(500, json={"message": "Failed to add to cart"})
            if self.merge_duplicates:
                for item in self.items:
                    if item["productId"] == body["productId"] and item["variantId"] == body.get("variantId"):
                        item["quantity"] += body["quantity"]
                        return httpx.Response(201, json=item)
            item = self.seed(body["productId"], body["quantity"], body.get("variantId"))
            return httpx.Response(201, json=item)

        if path.startswith("/api/cart/"):
            item_id = path.rsplit("/", 1)[-1]
            item = next((i for i in self.items if i["id"] == item_id), None)
            if item is None:
                return httpx.Response(404, json={"message": "Cart item not found"})
            if request.method == "PUT":
                item["quantity"] = body["quantity"]
                return httpx.Response(200, json=item)
            if request.method == "DELETE":
                self.items.remove(item)
                return httpx.Response(204)

        return httpx.Response(404, json={"message": "Not found"})


@pytest.fixture
def sample_products():
    """Catalog payload as served by GET /products"""
    return [
        {
            "id": "prod-a",
            "name": "Treadmill",
            "slug": "treadmill",
            "price": "999.00",
            "salePrice": "799.00",
            "images": ["/img/treadmill.png"],
            "isActive": True,
            "variants": [],
        },
        {
            "id": "prod-b",
            "name": "Whey Protein",
            "slug": "whey-protein",
            "price": "60.00",
            "salePrice": None,
            "images": [],
            "isActive": True,
            "variants": [
                {
                    "id": "var-b1",
                    "productId": "prod-b",
                    "size": "2.5",
                    "unit": "kg",
                    "flavor": "Chocolate",
                    "price": "250.00",
                    "salePrice": None,
                    "isActive": True,
                },
                {
                    "id": "var-b2",
                    "productId": "prod-b",
                    "size": "1",
                    "unit": "kg",
                    "flavor": None,
                    "price": "120.00",
                    "salePrice": "99.50",
                    "isActive": True,
                },
            ],
        },
        {
            "id": "prod-c",
            "name": "Yoga Mat",
            "slug": "yoga-mat",
            "price": "25.00",
            "salePrice": None,
            "images": None,
            "isActive": True,
            "variants": None,
        },
    ]


@pytest.fixture
def catalog(sample_products):
    """Catalog built from the sample products"""
    return Catalog(Product.model_validate(p) for p in sample_products)


@pytest.fixture
def fake_api(sample_products):
    """Fake storefront API"""
    return FakeStorefrontApi(sample_products)


@pytest.fixture
def session_file(tmp_path):
    return str(tmp_path / "session.json")


@pytest.fixture
def auth_manager(session_file):
    """Authenticated auth manager"""
    return AuthManager(session_file=session_file, token=TOKEN)


@pytest.fixture
def anonymous_auth_manager(session_file):
    """Auth manager with no token"""
    return AuthManager(session_file=session_file)


@pytest.fixture
def client(auth_manager, fake_api):
    """Storefront client wired to the fake API"""
    return StorefrontClient(auth_manager, base_url=BASE_URL, transport=httpx.MockTransport(fake_api))


@pytest.fixture
def storefront_cart(auth_manager, client):
    """Cart facade wired to the fake API"""
    return StorefrontCart(auth_manager, client, StorefrontSettings(api_url=BASE_URL))
