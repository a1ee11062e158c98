from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import Body, Depends, FastAPI, Header

from storefront.cart.directory import HttpProductDirectory, ProductDirectory
from storefront.cart.service import CartService
from storefront.cart.store import cart_store
from storefront.config import settings
from storefront.web.common import install_common

app = FastAPI(title="Cart Service")
install_common(app)


@lru_cache(maxsize=1)
def _default_directory() -> HttpProductDirectory:
    return HttpProductDirectory(settings.product_service_url, timeout=settings.directory_timeout)


def get_directory() -> ProductDirectory:
    return _default_directory()


def get_cart_service(directory: ProductDirectory = Depends(get_directory)) -> CartService:
    return CartService(cart_store, directory)


def get_cart_id(x_cart_id: Optional[str] = Header(None)) -> str:
    return (x_cart_id or "").strip() or settings.cart_default_id


@app.get("/cart")
def get_cart(
    cart_id: str = Depends(get_cart_id),
    service: CartService = Depends(get_cart_service),
):
    return service.compute_cart(cart_id)


@app.post("/cart/items", status_code=201)
def add_item(
    payload: Optional[Dict[str, Any]] = Body(None),
    cart_id: str = Depends(get_cart_id),
    service: CartService = Depends(get_cart_service),
):
    payload = payload or {}
    return service.add_item(cart_id, payload.get("productId"), payload.get("quantity"))


@app.patch("/cart/items/{product_id}")
def update_item(
    product_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    cart_id: str = Depends(get_cart_id),
    service: CartService = Depends(get_cart_service),
):
    payload = payload or {}
    return service.update_item_quantity(cart_id, product_id, payload.get("quantity"))


@app.delete("/cart/items/{product_id}")
def remove_item(
    product_id: str,
    cart_id: str = Depends(get_cart_id),
    service: CartService = Depends(get_cart_service),
):
    return service.remove_item(cart_id, product_id)


@app.delete("/cart")
def clear_cart(
    cart_id: str = Depends(get_cart_id),
    service: CartService = Depends(get_cart_service),
):
    return service.clear_cart(cart_id)
