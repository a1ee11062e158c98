"""
Shared fixtures.

The cart service talks to a FakeDirectory instead of the product service, and
the product service runs against a throwaway sqlite file with a mocked image
uploader, so no test touches the network.
"""
import dataclasses
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from storefront.cart.directory import Product, ReservationResult
from storefront.cart.store import CartStore, cart_store
from storefront.config import settings
from storefront.db.sqlite import CatalogDB, new_object_id
from storefront.web import cart_api, product_api


class FakeDirectory:
    """In-memory Product Directory; reservations fail when stock is short."""

    def __init__(self):
        self.products = {}
        self.reserve_calls = []

    def set_product(self, product_id, **overrides):
        data = {"name": f"Product {product_id}", "price": 100, "currency": "USD", "available_stock": 10}
        data.update(overrides)
        self.products[product_id] = Product(id=product_id, **data)
        return self.products[product_id]

    def delete_product(self, product_id):
        self.products.pop(product_id, None)

    def get_product(self, product_id):
        return self.products.get(product_id)

    def reserve_product(self, product_id, quantity):
        self.reserve_calls.append((product_id, quantity))
        product = self.products.get(product_id)
        if product is None:
            return ReservationResult(success=False)
        if product.available_stock is not None and product.available_stock < quantity:
            return ReservationResult(success=False)
        return ReservationResult(success=True)


@pytest.fixture
def directory():
    return FakeDirectory()


@pytest.fixture
def store():
    return CartStore()


@pytest.fixture
def cart_client(directory):
    """Cart API client wired to the fake directory, with a clean shared store."""
    cart_store.reset()
    cart_api.app.dependency_overrides[cart_api.get_directory] = lambda: directory

    client = TestClient(cart_api.app)
    yield client

    cart_api.app.dependency_overrides.clear()
    cart_store.reset()


@pytest.fixture
def catalog_db(tmp_path):
    db = CatalogDB(str(tmp_path / "catalog.db"))
    db.init_db()
    return db


@pytest.fixture
def uploader():
    mock = Mock()
    mock.upload.return_value = {
        "url": "https://test.imagekit.io/fake-image.jpg",
        "thumbnail": "https://test.imagekit.io/fake-image-thumb.jpg",
        "id": "file_fake_123",
    }
    return mock


@pytest.fixture
def make_product_client(catalog_db, uploader):
    """Factory: product API client with settings overrides (auth, ownership)."""

    def _make(**overrides):
        s = dataclasses.replace(settings, auth_required=False, enforce_ownership=False)
        s = dataclasses.replace(s, **overrides)
        product_api.app.dependency_overrides[product_api.get_catalog_db] = lambda: catalog_db
        product_api.app.dependency_overrides[product_api.get_uploader] = lambda: uploader
        product_api.app.dependency_overrides[product_api.get_settings] = lambda: s
        return TestClient(product_api.app)

    yield _make
    product_api.app.dependency_overrides.clear()


@pytest.fixture
def product_client(make_product_client):
    return make_product_client()


@pytest.fixture
def seller_id():
    return new_object_id()


@pytest.fixture
def insert_product(catalog_db, seller_id):
    def _insert(title, amount=100, currency="INR", description=None, seller=None, stock=None):
        return catalog_db.insert_product(
            title=title,
            description=description,
            price={"amount": amount, "currency": currency},
            seller=seller or seller_id,
            stock=stock,
        )

    return _insert
