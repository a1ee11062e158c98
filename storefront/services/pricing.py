from __future__ import annotations

import json
import math
from typing import Any, Dict, Mapping, Optional

from storefront.config import settings
from storefront.constants import CURRENCIES, MSG_INVALID_PRICE_JSON, MSG_PRICE_REQUIRED
from storefront.errors import validation_error


def to_finite(v: Any) -> Optional[float]:
    if isinstance(v, bool) or v is None:
        return None
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def line_total(unit_price: float, quantity: int) -> float:
    return unit_price * quantity


def _price(amount: Any, currency: Any) -> Dict[str, Any]:
    value = to_finite(amount)
    if value is None or value < 0:
        raise validation_error("Price amount must be a non-negative number")
    cur = (str(currency).strip().upper() if currency else "") or settings.default_currency
    if cur not in CURRENCIES:
        raise validation_error(f"Currency must be one of {', '.join(CURRENCIES)}")
    return {"amount": value, "currency": cur}


def parse_price(fields: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Price from a create request: either ``price`` as a JSON string / object
    with amount and currency, or flat ``priceAmount`` / ``priceCurrency``.
    """
    raw = fields.get("price")
    if raw not in (None, ""):
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
            except ValueError:
                raise validation_error(MSG_INVALID_PRICE_JSON)
            if not isinstance(parsed, dict):
                raise validation_error(MSG_INVALID_PRICE_JSON)
            return _price(parsed.get("amount"), parsed.get("currency"))
        if isinstance(raw, dict):
            return _price(raw.get("amount"), raw.get("currency"))

    if fields.get("priceAmount") not in (None, ""):
        return _price(fields.get("priceAmount"), fields.get("priceCurrency"))

    raise validation_error(MSG_PRICE_REQUIRED)


def merge_price(current: Mapping[str, Any], patch: Any) -> Dict[str, Any]:
    """Applies amount and currency from an update independently."""
    if not isinstance(patch, dict):
        raise validation_error("price must be an object with amount and/or currency")
    amount = patch["amount"] if "amount" in patch else current.get("amount")
    currency = patch["currency"] if "currency" in patch else current.get("currency")
    return _price(amount, currency)
