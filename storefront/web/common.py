from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Header, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from storefront.errors import INTERNAL_MESSAGE, ErrorKind, ServiceError
from storefront.services.catalog import Caller

logger = logging.getLogger(__name__)


def get_caller(
    x_user_id: Optional[str] = Header(None),
    x_user_role: Optional[str] = Header(None),
) -> Optional[Caller]:
    # identity is established by the gateway in front of the service
    user_id = (x_user_id or "").strip()
    if not user_id:
        return None
    role = (x_user_role or "").strip().lower() or None
    return Caller(user_id=user_id, role=role)


def install_common(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def _service_error(request: Request, exc: ServiceError) -> JSONResponse:
        if exc.kind is ErrorKind.INTERNAL:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
            # upstream detail stays in the log
            return JSONResponse(status_code=exc.status_code, content={"message": INTERNAL_MESSAGE})
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def _request_invalid(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"message": "Validation failed", "details": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def _unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": INTERNAL_MESSAGE})

    @app.get("/health")
    def health():
        return {"status": "ok"}
