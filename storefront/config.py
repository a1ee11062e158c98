from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]  # .../storefront repo
load_dotenv(dotenv_path=ROOT_DIR / ".env")


def _normalize(v: str) -> str:
    v = v.strip()
    if len(v) >= 2 and v[0] == v[-1] and v[0] in "'\"":
        v = v[1:-1].strip()
    return v


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and _normalize(v) != "":
            return _normalize(v)
    return default


def _get_int(*keys: str, default: int | None = None) -> int | None:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_bool(*keys: str, default: bool = False) -> bool:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


def _get_path(*keys: str, default: str) -> str:
    v = _get_env(*keys, default=default)
    return str(v)


@dataclass(frozen=True)
class Settings:
    product_service_url: str
    directory_timeout: float
    db_path: str
    default_currency: str
    cart_default_id: str
    auth_required: bool
    enforce_ownership: bool
    imagekit_public_key: str
    imagekit_private_key: str
    imagekit_url_endpoint: str
    cart_port: int
    product_port: int
    log_level: str


def load_settings() -> Settings:
    return Settings(
        product_service_url=_get_env("PRODUCT_SERVICE_URL", default="http://localhost:3001") or "",
        directory_timeout=_get_float("PRODUCT_SERVICE_TIMEOUT", default=5.0),
        db_path=_get_path("DB_PATH", "DATABASE_PATH", default=str(ROOT_DIR / "data" / "catalog.db")),
        default_currency=(_get_env("DEFAULT_CURRENCY", default="INR") or "INR").upper(),
        cart_default_id=_get_env("CART_DEFAULT_ID", default="default") or "default",
        auth_required=_get_bool("AUTH_REQUIRED", default=False),
        enforce_ownership=_get_bool("ENFORCE_OWNERSHIP", default=False),
        imagekit_public_key=_get_env("IMAGEKIT_PUBLIC_KEY", default="") or "",
        imagekit_private_key=_get_env("IMAGEKIT_PRIVATE_KEY", default="") or "",
        imagekit_url_endpoint=_get_env("IMAGEKIT_URL", "IMAGEKIT_URL_ENDPOINT", default="") or "",
        cart_port=_get_int("CART_PORT", default=3002) or 3002,
        product_port=_get_int("PRODUCT_PORT", default=3001) or 3001,
        log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
    )


settings = load_settings()
