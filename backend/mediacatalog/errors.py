"""Catalog error taxonomy and the FastAPI handlers that render it.

Every failure a core operation can report derives from ``CatalogError`` and
carries the HTTP status it maps to. Handlers render the body as
``{"error": <message>, "details": <details>}``; ``details`` is omitted when
there is nothing machine-readable to add.
"""
from __future__ import annotations
import logging
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)


class CatalogError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details


class CatalogValidationError(CatalogError):
    """A required field is missing or a field has the wrong type."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, fields: list[dict[str, str]] | None = None):
        super().__init__(message, fields or [])

    @property
    def fields(self) -> list[dict[str, str]]:
        return self.details

    @classmethod
    def from_pydantic(cls, exc: PydanticValidationError, message: str = "Validation failed.",
                      prefix: tuple = ()) -> "CatalogValidationError":
        return cls(message, field_errors(exc.errors(), prefix=prefix))


class NotFoundError(CatalogError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(CatalogError):
    status_code = status.HTTP_409_CONFLICT


class StoreError(CatalogError):
    """Connectivity or unexpected persistence failure. Never shown verbatim to clients."""


class PartialCascadeFailure(CatalogError):
    """The parent of a cascade was deleted but a child step failed."""

    def __init__(self, message: str, step: str, parent: dict[str, Any]):
        super().__init__(message, {"failedStep": step, "parent": parent, "rolledBack": True})
        self.step = step
        self.parent = parent


class RequestTimeout(CatalogError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT


def field_errors(errors: list[dict[str, Any]], prefix: tuple = ()) -> list[dict[str, str]]:
    """Flatten pydantic error dicts into ``[{field, message}]``."""
    out = []
    for err in errors:
        loc = [str(p) for p in (*prefix, *err.get("loc", ())) if p != "body"]
        out.append({"field": ".".join(loc) or "body", "message": err.get("msg", "invalid")})
    return out


def _body(message: str, details: Any = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": message}
    if details not in (None, [], {}):
        body["details"] = details
    return body


async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
    if isinstance(exc, StoreError):
        # Full detail stays in the server log.
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}", exc_info=exc.__cause__)
        return JSONResponse(status_code=exc.status_code, content=_body("Internal store error."))
    if isinstance(exc, PartialCascadeFailure):
        logger.error(f"{request.method} {request.url.path} cascade failed at {exc.step}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_body(exc.message, exc.details))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_body("Validation failed.", field_errors(list(exc.errors()))),
    )


def register_error_handlers(app) -> None:
    app.add_exception_handler(CatalogError, catalog_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
