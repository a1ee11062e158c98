"""
Unit tests for CartService: re-pricing on read, stock checks and reservations.
"""
import math
import threading
from unittest.mock import Mock

import pytest

from storefront.cart.directory import ReservationResult
from storefront.cart.service import CartService
from storefront.errors import ErrorKind, ServiceError

CART = "cart-1"


@pytest.fixture
def service(store, directory):
    return CartService(store, directory)


class TestComputeCart:
    def test_empty_cart(self, service):
        assert service.compute_cart(CART) == {"items": [], "subtotal": 0}

    def test_reflects_current_price(self, service, directory):
        # Arrange
        directory.set_product("prod-1", price=50, available_stock=5)
        service.add_item(CART, "prod-1", 2)

        # Act
        directory.products["prod-1"].price = 75
        cart = service.compute_cart(CART)

        # Assert
        assert cart["items"][0]["unitPrice"] == 75
        assert cart["items"][0]["lineTotal"] == 150
        assert cart["subtotal"] == 150

    def test_line_items_shape_and_order(self, service, directory):
        directory.set_product("b", price=10, name="Bee", currency="INR")
        directory.set_product("a", price=2.5, name="Ay", currency="USD")
        service.add_item(CART, "b", 1)
        service.add_item(CART, "a", 4)

        cart = service.compute_cart(CART)

        assert [x["productId"] for x in cart["items"]] == ["b", "a"]
        assert cart["items"][1] == {
            "productId": "a",
            "quantity": 4,
            "unitPrice": 2.5,
            "lineTotal": 10.0,
            "name": "Ay",
            "currency": "USD",
        }
        assert cart["subtotal"] == 20.0

    def test_drops_items_whose_product_is_gone(self, service, store, directory):
        directory.set_product("keep")
        directory.set_product("gone")
        service.add_item(CART, "keep", 1)
        service.add_item(CART, "gone", 1)

        directory.delete_product("gone")
        cart = service.compute_cart(CART)

        assert [x["productId"] for x in cart["items"]] == ["keep"]
        assert store.find_item(CART, "gone") is None

    @pytest.mark.parametrize("price", [None, "abc", math.inf, math.nan])
    def test_unavailable_price_fails(self, service, store, directory, price):
        directory.set_product("p", price=price)
        store.upsert_item(CART, "p", 1)

        with pytest.raises(ServiceError) as exc:
            service.compute_cart(CART)

        assert exc.value.kind is ErrorKind.VALIDATION
        assert exc.value.message == "Product price is unavailable"

    def test_numeric_string_price_is_accepted(self, service, store, directory):
        directory.set_product("p", price="12.5")
        store.upsert_item(CART, "p", 2)

        assert service.compute_cart(CART)["subtotal"] == 25.0

    def test_carts_are_independent(self, service, directory):
        directory.set_product("p", price=10)
        service.add_item("a", "p", 1)

        assert service.compute_cart("b")["items"] == []
        assert service.compute_cart("a")["subtotal"] == 10


class TestAddItem:
    def test_accumulates_accepted_deltas(self, service, store, directory):
        directory.set_product("p", available_stock=None)

        service.add_item(CART, "p", 1)
        service.add_item(CART, "p", 2)
        cart = service.add_item(CART, "p", 3)

        assert store.find_item(CART, "p").quantity == 6
        assert cart["items"][0]["quantity"] == 6
        # only the delta is reserved each time
        assert directory.reserve_calls == [("p", 1), ("p", 2), ("p", 3)]

    def test_exceeding_stock_rejected_without_reservation(self, service, store, directory):
        directory.set_product("p", available_stock=3)
        service.add_item(CART, "p", 2)
        directory.reserve_calls.clear()

        with pytest.raises(ServiceError) as exc:
            service.add_item(CART, "p", 2)

        assert exc.value.kind is ErrorKind.VALIDATION
        assert exc.value.message == "Requested quantity exceeds available stock"
        assert directory.reserve_calls == []
        assert store.find_item(CART, "p").quantity == 2

    def test_failed_reservation_leaves_store_unchanged(self, store):
        directory = Mock()
        directory.get_product.return_value = Mock(available_stock=None, price=1, currency="USD")
        directory.reserve_product.return_value = ReservationResult(success=False)
        service = CartService(store, directory)

        with pytest.raises(ServiceError) as exc:
            service.add_item(CART, "p", 1)

        assert exc.value.message == "Unable to reserve stock for product"
        assert store.get_items(CART) == []

    def test_unknown_product(self, service, directory):
        with pytest.raises(ServiceError) as exc:
            service.add_item(CART, "missing", 1)

        assert exc.value.kind is ErrorKind.NOT_FOUND
        assert directory.reserve_calls == []

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "x", None, True])
    def test_invalid_quantity(self, service, directory, quantity):
        directory.set_product("p")

        with pytest.raises(ServiceError) as exc:
            service.add_item(CART, "p", quantity)

        assert exc.value.kind is ErrorKind.VALIDATION

    @pytest.mark.parametrize("product_id", ["", None, 123])
    def test_invalid_product_id(self, service, product_id):
        with pytest.raises(ServiceError) as exc:
            service.add_item(CART, product_id, 1)

        assert exc.value.message == "productId is required"

    def test_integral_string_quantity(self, service, directory):
        directory.set_product("p")

        cart = service.add_item(CART, "p", "2")

        assert cart["items"][0]["quantity"] == 2

    @pytest.mark.parametrize("quantity", [10**400, 2**63, "1e400", float("inf")])
    def test_oversized_quantity_is_a_validation_error(self, service, store, directory, quantity):
        directory.set_product("p", available_stock=None)

        with pytest.raises(ServiceError) as exc:
            service.add_item(CART, "p", quantity)

        assert exc.value.kind is ErrorKind.VALIDATION
        assert store.get_items(CART) == []
        assert directory.reserve_calls == []

    def test_wide_integer_quantity_is_kept_exactly(self, service, store, directory):
        directory.set_product("p", price=1, available_stock=None)

        cart = service.add_item(CART, "p", 2**53 + 1)

        assert cart["items"][0]["quantity"] == 9007199254740993
        assert store.find_item(CART, "p").quantity == 9007199254740993
        assert directory.reserve_calls == [("p", 9007199254740993)]


class TestUpdateItemQuantity:
    def test_not_in_cart(self, service, directory):
        directory.set_product("p")

        with pytest.raises(ServiceError) as exc:
            service.update_item_quantity(CART, "p", 1)

        assert exc.value.kind is ErrorKind.NOT_FOUND
        assert exc.value.message == "Product not found in cart"

    def test_zero_removes_without_directory_calls(self, store):
        directory = Mock()
        store.upsert_item(CART, "p", 3)
        service = CartService(store, directory)

        cart = service.update_item_quantity(CART, "p", 0)

        assert cart == {"items": [], "subtotal": 0}
        directory.get_product.assert_not_called()
        directory.reserve_product.assert_not_called()

    def test_increase_reserves_delta(self, service, store, directory):
        directory.set_product("p", available_stock=10)
        service.add_item(CART, "p", 2)
        directory.reserve_calls.clear()

        service.update_item_quantity(CART, "p", 5)

        assert directory.reserve_calls == [("p", 3)]
        assert store.find_item(CART, "p").quantity == 5

    def test_decrease_never_reserves(self, service, store, directory):
        directory.set_product("p", available_stock=10)
        service.add_item(CART, "p", 5)
        directory.reserve_calls.clear()

        cart = service.update_item_quantity(CART, "p", 1)

        assert directory.reserve_calls == []
        assert cart["items"][0]["quantity"] == 1

    def test_checks_absolute_quantity_against_stock(self, service, store, directory):
        directory.set_product("p", available_stock=4)
        service.add_item(CART, "p", 2)

        with pytest.raises(ServiceError) as exc:
            service.update_item_quantity(CART, "p", 5)

        assert exc.value.message == "Requested quantity exceeds available stock"
        assert store.find_item(CART, "p").quantity == 2

    def test_product_gone(self, service, store, directory):
        store.upsert_item(CART, "p", 1)

        with pytest.raises(ServiceError) as exc:
            service.update_item_quantity(CART, "p", 2)

        assert exc.value.kind is ErrorKind.NOT_FOUND
        assert exc.value.message == "Product not found"

    def test_negative_quantity(self, service, directory):
        directory.set_product("p")
        service.add_item(CART, "p", 1)

        with pytest.raises(ServiceError) as exc:
            service.update_item_quantity(CART, "p", -1)

        assert exc.value.message == "quantity must be zero or greater"


class TestRemoveAndClear:
    def test_remove_missing(self, service):
        with pytest.raises(ServiceError) as exc:
            service.remove_item(CART, "p")

        assert exc.value.kind is ErrorKind.NOT_FOUND
        assert exc.value.message == "Product not found in cart"

    def test_remove_matches_update_to_zero(self, service, directory):
        directory.set_product("a", price=10)
        directory.set_product("b", price=1)
        for cart_id in ("x", "y"):
            service.add_item(cart_id, "a", 2)
            service.add_item(cart_id, "b", 1)

        assert service.remove_item("x", "a") == service.update_item_quantity("y", "a", 0)

    def test_clear_always_succeeds(self, service, directory):
        directory.set_product("p")
        service.add_item(CART, "p", 1)

        assert service.clear_cart(CART) == {"items": [], "subtotal": 0}
        assert service.clear_cart("never-used") == {"items": [], "subtotal": 0}


def test_concurrent_adds_do_not_lose_updates(service, store, directory):
    directory.set_product("p", available_stock=None)

    def worker():
        for _ in range(25):
            service.add_item(CART, "p", 1)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert store.find_item(CART, "p").quantity == 200
    assert len(directory.reserve_calls) == 200


class TestStoreFootprint:
    def test_reads_and_clears_leave_nothing_behind(self, service, store):
        for i in range(100):
            service.compute_cart(f"visitor-{i}")
            service.clear_cart(f"visitor-{i}")

        assert len(store) == 0
        assert store._locks == {}

    def test_removing_last_item_drops_the_cart(self, service, store, directory):
        directory.set_product("a")
        directory.set_product("b")
        service.add_item(CART, "a", 1)
        service.add_item(CART, "b", 1)

        service.remove_item(CART, "a")
        assert len(store) == 1

        service.update_item_quantity(CART, "b", 0)
        assert len(store) == 0
        assert store._locks == {}

    def test_stale_items_dropped_on_read_release_the_cart(self, service, store, directory):
        directory.set_product("a")
        service.add_item(CART, "a", 1)
        directory.delete_product("a")

        assert service.compute_cart(CART) == {"items": [], "subtotal": 0}
        assert len(store) == 0

    def test_nested_locking_keeps_the_lock_until_outermost_exit(self, store):
        with store.locked(CART):
            with store.locked(CART):
                pass
            assert CART in store._locks

        assert store._locks == {}
