from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    UNAUTHORIZED = "unauthorized"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"


INTERNAL_MESSAGE = "Internal server error"

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class ServiceError(Exception):
    """Domain failure tagged with an ErrorKind; the web layer maps kind -> status."""

    def __init__(self, kind: ErrorKind, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.details = details

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"message": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body

    def __repr__(self) -> str:
        return f"ServiceError({self.kind.value!r}, {self.message!r})"


def validation_error(message: str, details: Optional[Any] = None) -> ServiceError:
    return ServiceError(ErrorKind.VALIDATION, message, details)


def unauthorized(message: str = "Unauthorized") -> ServiceError:
    return ServiceError(ErrorKind.UNAUTHORIZED, message)


def forbidden(message: str) -> ServiceError:
    return ServiceError(ErrorKind.AUTHORIZATION, message)


def not_found(message: str) -> ServiceError:
    return ServiceError(ErrorKind.NOT_FOUND, message)


def conflict(message: str, details: Optional[Any] = None) -> ServiceError:
    return ServiceError(ErrorKind.CONFLICT, message, details)


def internal_error(message: str = INTERNAL_MESSAGE) -> ServiceError:
    return ServiceError(ErrorKind.INTERNAL, message)
