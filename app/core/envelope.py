from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.responses import JSONResponse

logger = logging.getLogger(__name__)


class UTF8JSONResponse(JSONResponse):
    media_type = "application/json; charset=utf-8"


def failure(status_code: int, error: str, headers: dict | None = None) -> UTF8JSONResponse:
    return UTF8JSONResponse(status_code=status_code, content={"success": False, "error": error}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
        msg = err.get("msg", "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> UTF8JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return failure(exc.status_code, detail, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> UTF8JSONResponse:
    return failure(400, _validation_message(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> UTF8JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return failure(500, "Internal server error")


def install_envelope_handlers(app: FastAPI) -> None:
    """Every failure leaves the API as {"success": false, "error": ...}."""
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


__all__ = ["UTF8JSONResponse", "failure", "install_envelope_handlers"]
