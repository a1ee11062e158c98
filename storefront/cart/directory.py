from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol

import requests

from storefront.errors import ErrorKind, ServiceError

logger = logging.getLogger(__name__)


@dataclass
class Product:
    id: str
    name: Optional[str]
    price: Any  # validated by the pricing step, not here
    currency: Optional[str] = None
    available_stock: Optional[int] = None  # None -> unlimited


@dataclass
class ReservationResult:
    success: bool


class ProductDirectory(Protocol):
    def get_product(self, product_id: str) -> Optional[Product]: ...

    def reserve_product(self, product_id: str, quantity: int) -> ReservationResult: ...


class DirectoryError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.INTERNAL, message)


def product_from_payload(product_id: str, payload: Dict[str, Any]) -> Product:
    """
    Builds a Product from either a flat payload
    ({"id", "name", "price": 10, "currency", "availableStock"}) or the catalog's
    envelope ({"product": {"_id", "title", "price": {"amount", "currency"}, "stock"}}).
    """
    data = payload.get("product", payload)
    if not isinstance(data, dict):
        data = {}

    price = data.get("price")
    currency = data.get("currency")
    if isinstance(price, dict):
        currency = price.get("currency", currency)
        price = price.get("amount")

    stock = data.get("availableStock", data.get("stock"))
    return Product(
        id=str(data.get("id") or data.get("_id") or product_id),
        name=data.get("name") or data.get("title"),
        price=price,
        currency=currency,
        available_stock=None if stock is None else int(stock),
    )


class HttpProductDirectory:
    """Product Directory reached over HTTP. One attempt per call, no retries."""

    def __init__(self, base_url: str, timeout: float = 5.0, session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _json(self, resp: requests.Response) -> Dict[str, Any]:
        if resp.status_code == 204 or not resp.content:
            return {}
        try:
            body = resp.json()
        except ValueError:
            raise DirectoryError(f"Invalid JSON from product service: {resp.status_code}")
        return body if isinstance(body, dict) else {}

    def get_product(self, product_id: str) -> Optional[Product]:
        try:
            resp = self.session.get(self._url(f"/products/{product_id}"), timeout=self.timeout)
        except requests.RequestException as e:
            logger.error("product lookup failed product=%s: %s", product_id, e)
            raise DirectoryError("Failed to fetch product")

        # the catalog answers 400 for ids it cannot parse; such ids cannot exist
        if resp.status_code in (400, 404):
            return None
        if not resp.ok:
            raise DirectoryError(f"Failed to fetch product: {resp.status_code}")
        return product_from_payload(product_id, self._json(resp))

    def reserve_product(self, product_id: str, quantity: int) -> ReservationResult:
        try:
            resp = self.session.post(
                self._url(f"/products/{product_id}/reserve"),
                json={"quantity": quantity},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error("reservation failed product=%s qty=%s: %s", product_id, quantity, e)
            raise DirectoryError("Failed to reserve product")

        if resp.status_code in (404, 409):
            return ReservationResult(success=False)
        if not resp.ok:
            raise DirectoryError(f"Failed to reserve product: {resp.status_code}")

        payload = self._json(resp)
        return ReservationResult(success=bool(payload.get("success", True)))
