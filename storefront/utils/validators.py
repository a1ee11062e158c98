from __future__ import annotations

import math
import re
from typing import Any, Optional

from storefront.constants import DEFAULT_LIMIT, MAX_LIMIT, MAX_QUANTITY, MAX_SKIP
from storefront.errors import validation_error

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def is_object_id(v: Any) -> bool:
    return isinstance(v, str) and bool(_OBJECT_ID_RE.match(v))


def require_product_id(product_id: Any) -> str:
    if not product_id or not isinstance(product_id, str):
        raise validation_error("productId is required")
    return product_id


def to_int(v: Any) -> Optional[int]:
    """Exact int value of v, or None when v is not an integral number.

    ints pass through untouched so values wider than a float keep every digit;
    floats and strings such as "3.0" are accepted only when integral.
    """
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, str):
        try:
            return int(v.strip())
        except ValueError:
            pass
        try:
            v = float(v)
        except ValueError:
            return None
    if isinstance(v, float):
        if not math.isfinite(v) or not v.is_integer():
            return None
        return int(v)
    return None


def parse_quantity(quantity: Any, allow_zero: bool = False) -> int:
    """Coerce a request quantity to int; accepts 3, 3.0 and "3"."""
    value = to_int(quantity)
    if value is None:
        raise validation_error("quantity must be an integer")
    if not allow_zero and value <= 0:
        raise validation_error("quantity must be greater than zero")
    if allow_zero and value < 0:
        raise validation_error("quantity must be zero or greater")
    if value > MAX_QUANTITY:
        raise validation_error(f"quantity must not exceed {MAX_QUANTITY}")
    return value


def parse_number(v: Any, name: str) -> Optional[float]:
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        parsed = float(v)
    except (TypeError, ValueError):
        raise validation_error(f"{name} must be a number")
    if not math.isfinite(parsed):
        raise validation_error(f"{name} must be a number")
    return parsed


def _parse_count(v: Any, name: str, default: int) -> int:
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return default
    value = to_int(v)
    if value is None:
        raise validation_error(f"{name} must be an integer")
    return value


def parse_skip_limit(skip: Any, limit: Any) -> tuple[int, int]:
    skip_v = _parse_count(skip, "skip", 0)
    limit_v = _parse_count(limit, "limit", DEFAULT_LIMIT)
    if not 0 <= skip_v <= MAX_SKIP:
        raise validation_error(f"skip must be between 0 and {MAX_SKIP}")
    if limit_v <= 0:
        raise validation_error("limit must be > 0")
    return skip_v, min(limit_v, MAX_LIMIT)
