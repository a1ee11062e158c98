from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Body, Depends, FastAPI, File, Form, UploadFile

from storefront.config import Settings, settings
from storefront.db.sqlite import CatalogDB
from storefront.services.assets import AssetUploader, ImageKitUploader
from storefront.services.catalog import Caller, CatalogService
from storefront.web.common import get_caller, install_common

app = FastAPI(title="Product Service")
install_common(app)


@lru_cache(maxsize=1)
def _default_db() -> CatalogDB:
    db = CatalogDB(settings.db_path)
    db.init_db()
    return db


@lru_cache(maxsize=1)
def _default_uploader() -> ImageKitUploader:
    return ImageKitUploader.from_settings(settings)


def get_settings() -> Settings:
    return settings


def get_catalog_db() -> CatalogDB:
    return _default_db()


def get_uploader() -> AssetUploader:
    return _default_uploader()


def get_catalog_service(
    db: CatalogDB = Depends(get_catalog_db),
    uploader: AssetUploader = Depends(get_uploader),
    s: Settings = Depends(get_settings),
) -> CatalogService:
    return CatalogService(db, uploader, s)


# ---------------- create ----------------

@app.post("/products", status_code=201)
def create_product(
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    price: Optional[str] = Form(None),
    priceAmount: Optional[str] = Form(None),
    priceCurrency: Optional[str] = Form(None),
    seller: Optional[str] = Form(None),
    stock: Optional[str] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    caller: Optional[Caller] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    fields = {
        "title": title,
        "description": description,
        "price": price,
        "priceAmount": priceAmount,
        "priceCurrency": priceCurrency,
        "seller": seller,
        "stock": stock,
    }
    files = [(f.file.read(), f.filename) for f in (images or []) if f.filename]
    product = service.create(fields, files, caller)
    return {"message": "Product created successfully", "data": product}


# ---------------- read ----------------

@app.get("/products")
def list_products(
    q: Optional[str] = None,
    minprice: Optional[str] = None,
    maxprice: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    data = service.list_products(q=q, minprice=minprice, maxprice=maxprice, skip=skip, limit=limit)
    return {"success": True, "data": data}


# declared before /products/{product_id} so "seller" is not taken for an id
@app.get("/products/seller")
def list_by_seller(
    seller: Optional[str] = None,
    skip: Optional[str] = None,
    limit: Optional[str] = None,
    service: CatalogService = Depends(get_catalog_service),
):
    return {"success": True, "data": service.list_by_seller(seller, skip=skip, limit=limit)}


@app.get("/products/{product_id}")
def get_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    return {"product": service.get(product_id)}


# ---------------- update / delete ----------------

@app.patch("/products/{product_id}")
def update_product(
    product_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    caller: Optional[Caller] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    product = service.update(product_id, payload or {}, caller)
    return {"success": True, "data": product}


@app.delete("/products/{product_id}")
def delete_product(
    product_id: str,
    caller: Optional[Caller] = Depends(get_caller),
    service: CatalogService = Depends(get_catalog_service),
):
    service.delete(product_id, caller)
    return {"success": True, "message": "Product deleted"}


# ---------------- stock ----------------

@app.post("/products/{product_id}/reserve")
def reserve_product(
    product_id: str,
    payload: Optional[Dict[str, Any]] = Body(None),
    service: CatalogService = Depends(get_catalog_service),
):
    return service.reserve(product_id, (payload or {}).get("quantity"))
