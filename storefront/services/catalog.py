from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from storefront.config import Settings
from storefront.constants import (
    DESCRIPTION_MAX,
    MAX_IMAGES,
    MSG_INVALID_PRODUCT_ID,
    MSG_INVALID_SELLER_ID,
    MSG_PRODUCT_NOT_FOUND,
    MUTATING_ROLES,
    ROLE_ADMIN,
    TITLE_MAX,
    TITLE_MIN,
)
from storefront.db.sqlite import CatalogDB
from storefront.errors import ServiceError, conflict, forbidden, not_found, unauthorized, validation_error
from storefront.services.assets import AssetUploader
from storefront.services.pricing import merge_price, parse_price
from storefront.utils.validators import is_object_id, parse_number, parse_quantity, parse_skip_limit

logger = logging.getLogger(__name__)

# (content, file name) of an uploaded image
ImageFile = Tuple[bytes, str]


@dataclass(frozen=True)
class Caller:
    user_id: str
    role: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def clean_title(v: Any) -> str:
    title = str(v).strip() if v is not None else ""
    if not title:
        raise validation_error("Title is required")
    if not (TITLE_MIN <= len(title) <= TITLE_MAX):
        raise validation_error(f"Title must be between {TITLE_MIN} and {TITLE_MAX} characters")
    return title


def clean_description(v: Any) -> Optional[str]:
    if v is None:
        return None
    desc = str(v).strip()
    if len(desc) > DESCRIPTION_MAX:
        raise validation_error(f"Description must not exceed {DESCRIPTION_MAX} characters")
    return desc


def clean_stock(v: Any) -> Optional[int]:
    if v is None or (isinstance(v, str) and v.strip() == ""):
        return None
    try:
        return parse_quantity(v, allow_zero=True)
    except ServiceError:
        raise validation_error("stock must be a non-negative integer")


class CatalogService:
    def __init__(self, db: CatalogDB, uploader: AssetUploader, settings: Settings) -> None:
        self.db = db
        self.uploader = uploader
        self.settings = settings

    # ---------------- authorization ----------------

    def authorize_mutation(self, caller: Optional[Caller]) -> None:
        if not self.settings.auth_required:
            return
        if caller is None:
            raise unauthorized()
        if caller.role not in MUTATING_ROLES:
            raise forbidden("Forbidden: insufficient permissions")

    def _check_owner(self, product: Dict[str, Any], caller: Optional[Caller], action: str) -> None:
        if not self.settings.enforce_ownership:
            return
        if caller is not None and (caller.is_admin or caller.user_id == product["seller"]):
            return
        raise forbidden(f"Forbidden: you can only {action} your own products")

    def _resolve_seller(self, fields: Mapping[str, Any], caller: Optional[Caller]) -> str:
        if self.settings.auth_required:
            seller = caller.user_id if caller else None
        else:
            seller = fields.get("seller") or (caller.user_id if caller else None)
        if not seller:
            raise validation_error("Seller is required")
        if not is_object_id(seller):
            raise validation_error(MSG_INVALID_SELLER_ID)
        return seller

    def _existing(self, product_id: str) -> Dict[str, Any]:
        if not is_object_id(product_id):
            raise validation_error(MSG_INVALID_PRODUCT_ID)
        product = self.db.get_product(product_id)
        if product is None:
            raise not_found(MSG_PRODUCT_NOT_FOUND)
        return product

    # ---------------- operations ----------------

    def create(
        self,
        fields: Mapping[str, Any],
        images: Sequence[ImageFile] = (),
        caller: Optional[Caller] = None,
    ) -> Dict[str, Any]:
        self.authorize_mutation(caller)

        title = clean_title(fields.get("title"))
        description = clean_description(fields.get("description"))
        price = parse_price(fields)
        seller = self._resolve_seller(fields, caller)
        stock = clean_stock(fields.get("stock"))
        if len(images) > MAX_IMAGES:
            raise validation_error(f"Maximum {MAX_IMAGES} images allowed")

        uploaded: List[Dict[str, Any]] = [self.uploader.upload(data, name) for data, name in images]

        product = self.db.insert_product(title, description, price, seller, uploaded, stock)
        logger.info("product created id=%s seller=%s images=%s", product["_id"], seller, len(uploaded))
        return product

    def list_products(
        self,
        q: Optional[str] = None,
        minprice: Any = None,
        maxprice: Any = None,
        skip: Any = None,
        limit: Any = None,
    ) -> List[Dict[str, Any]]:
        min_price = parse_number(minprice, "minprice")
        max_price = parse_number(maxprice, "maxprice")
        skip_v, limit_v = parse_skip_limit(skip, limit)
        return self.db.list_products(q=q, min_price=min_price, max_price=max_price, skip=skip_v, limit=limit_v)

    def get(self, product_id: str) -> Dict[str, Any]:
        return self._existing(product_id)

    def update(self, product_id: str, body: Mapping[str, Any], caller: Optional[Caller] = None) -> Dict[str, Any]:
        self.authorize_mutation(caller)
        product = self._existing(product_id)
        self._check_owner(product, caller, "update")

        changes: Dict[str, Any] = {}
        if "title" in body:
            changes["title"] = clean_title(body["title"])
        if "description" in body:
            changes["description"] = clean_description(body["description"])
        if "price" in body:
            changes["price"] = merge_price(product["price"], body["price"])

        updated = self.db.update_product(product_id, changes)
        if updated is None:
            raise not_found(MSG_PRODUCT_NOT_FOUND)
        logger.info("product updated id=%s fields=%s", product_id, sorted(changes))
        return updated

    def delete(self, product_id: str, caller: Optional[Caller] = None) -> None:
        self.authorize_mutation(caller)
        product = self._existing(product_id)
        self._check_owner(product, caller, "delete")
        if not self.db.delete_product(product_id):
            raise not_found(MSG_PRODUCT_NOT_FOUND)
        logger.info("product deleted id=%s", product_id)

    def list_by_seller(self, seller: Optional[str], skip: Any = None, limit: Any = None) -> List[Dict[str, Any]]:
        if not seller or not is_object_id(seller):
            raise validation_error(MSG_INVALID_SELLER_ID)
        skip_v, limit_v = parse_skip_limit(skip, limit)
        return self.db.list_products(seller=seller, skip=skip_v, limit=limit_v)

    def reserve(self, product_id: str, quantity: Any) -> Dict[str, Any]:
        if not is_object_id(product_id):
            raise validation_error(MSG_INVALID_PRODUCT_ID)
        qty = parse_quantity(quantity)

        ok, err, remaining = self.db.reserve_stock(product_id, qty)
        if not ok:
            if err == MSG_PRODUCT_NOT_FOUND:
                raise not_found(err)
            logger.warning("reserve rejected id=%s qty=%s remaining=%s", product_id, qty, remaining)
            raise conflict(err, {"success": False, "available": remaining})

        logger.info("reserved id=%s qty=%s remaining=%s", product_id, qty, remaining)
        return {"success": True, "remaining": remaining}
