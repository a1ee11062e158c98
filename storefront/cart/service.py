from __future__ import annotations

import logging
from typing import Any, Dict, List

from storefront.cart.directory import Product, ProductDirectory
from storefront.cart.store import CartStore
from storefront.constants import (
    MSG_EXCEEDS_STOCK,
    MSG_NOT_IN_CART,
    MSG_PRICE_UNAVAILABLE,
    MSG_PRODUCT_NOT_FOUND,
    MSG_RESERVE_FAILED,
)
from storefront.errors import not_found, validation_error
from storefront.services.pricing import line_total, to_finite
from storefront.utils.validators import parse_quantity, require_product_id

logger = logging.getLogger(__name__)


def ensure_availability(product: Product, requested: int) -> None:
    if product.available_stock is None:
        return
    if requested > product.available_stock:
        raise validation_error(MSG_EXCEEDS_STOCK)


class CartService:
    """
    Cart operations over a CartStore, priced against a ProductDirectory.

    Stored items carry only product id and quantity. Prices, names and
    currencies are fetched again on every read, so a response never reflects
    a value the client could have tampered with or a stale catalog price.
    """

    def __init__(self, store: CartStore, directory: ProductDirectory) -> None:
        self.store = store
        self.directory = directory

    def _reserve_delta(self, product_id: str, delta: int) -> None:
        if delta <= 0:
            return
        result = self.directory.reserve_product(product_id, delta)
        if not result.success:
            logger.warning("reservation rejected product=%s qty=%s", product_id, delta)
            raise validation_error(MSG_RESERVE_FAILED)

    def compute_cart(self, cart_id: str) -> Dict[str, Any]:
        with self.store.locked(cart_id):
            items: List[Dict[str, Any]] = []
            for it in self.store.get_items(cart_id):
                product = self.directory.get_product(it.product_id)
                if product is None:
                    logger.warning("dropping stale cart item cart=%s product=%s", cart_id, it.product_id)
                    self.store.remove_item(cart_id, it.product_id)
                    continue

                unit_price = to_finite(product.price)
                if unit_price is None:
                    raise validation_error(MSG_PRICE_UNAVAILABLE)

                items.append(
                    {
                        "productId": it.product_id,
                        "quantity": it.quantity,
                        "unitPrice": unit_price,
                        "lineTotal": line_total(unit_price, it.quantity),
                        "name": product.name,
                        "currency": product.currency,
                    }
                )

            subtotal = sum(x["lineTotal"] for x in items)
            return {"items": items, "subtotal": subtotal}

    def add_item(self, cart_id: str, product_id: Any, quantity: Any) -> Dict[str, Any]:
        product_id = require_product_id(product_id)
        qty = parse_quantity(quantity)

        with self.store.locked(cart_id):
            product = self.directory.get_product(product_id)
            if product is None:
                raise not_found(MSG_PRODUCT_NOT_FOUND)

            existing = self.store.find_item(cart_id, product_id)
            target = existing.quantity + qty if existing else qty

            ensure_availability(product, target)
            self._reserve_delta(product_id, qty)

            self.store.upsert_item(cart_id, product_id, target)
            logger.info("cart=%s add product=%s qty=%s total_qty=%s", cart_id, product_id, qty, target)
            return self.compute_cart(cart_id)

    def update_item_quantity(self, cart_id: str, product_id: Any, quantity: Any) -> Dict[str, Any]:
        product_id = require_product_id(product_id)

        with self.store.locked(cart_id):
            existing = self.store.find_item(cart_id, product_id)
            if existing is None:
                raise not_found(MSG_NOT_IN_CART)

            qty = parse_quantity(quantity, allow_zero=True)
            if qty == 0:
                self.store.remove_item(cart_id, product_id)
                logger.info("cart=%s update product=%s qty=0 (removed)", cart_id, product_id)
                return self.compute_cart(cart_id)

            product = self.directory.get_product(product_id)
            if product is None:
                raise not_found(MSG_PRODUCT_NOT_FOUND)

            ensure_availability(product, qty)
            previous = existing.quantity
            self._reserve_delta(product_id, qty - previous)

            self.store.upsert_item(cart_id, product_id, qty)
            logger.info("cart=%s update product=%s qty=%s->%s", cart_id, product_id, previous, qty)
            return self.compute_cart(cart_id)

    def remove_item(self, cart_id: str, product_id: Any) -> Dict[str, Any]:
        product_id = require_product_id(product_id)
        with self.store.locked(cart_id):
            if not self.store.remove_item(cart_id, product_id):
                raise not_found(MSG_NOT_IN_CART)
            logger.info("cart=%s remove product=%s", cart_id, product_id)
            return self.compute_cart(cart_id)

    def clear_cart(self, cart_id: str) -> Dict[str, Any]:
        with self.store.locked(cart_id):
            self.store.clear(cart_id)
            logger.info("cart=%s cleared", cart_id)
            return self.compute_cart(cart_id)
