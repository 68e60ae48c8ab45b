"""Global exception handlers: every failure leaves as the {status, message, data} envelope.

Layers, most specific first:
    - ShopfrontError -> its own status and message
    - HTTPException (Starlette) -> its status and detail
    - RequestValidationError -> 400 with field-level details
    - Exception -> 500, never leaks internal details
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopfront.core.errors import ShopfrontError
from shopfront.core.responses import envelope

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_shopfront_error_handler(app)
    _register_http_error_handler(app)
    _register_validation_error_handler(app)
    _register_generic_error_handler(app)


def _register_shopfront_error_handler(app: FastAPI) -> None:
    @app.exception_handler(ShopfrontError)
    async def shopfront_error_handler(request: Request, exc: ShopfrontError):
        log = logger.error if exc.status_code >= 500 else logger.info
        log(
            f"{exc.code}: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(status_code=exc.status_code, content=exc.to_response())


def _register_http_error_handler(app: FastAPI) -> None:
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=envelope([], message, status=exc.status_code),
            headers=getattr(exc, "headers", None),
        )


def _register_validation_error_handler(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error on {request.url.path}: {exc.errors()}")
        details = [
            {
                "field": ".".join(str(loc) for loc in e["loc"]),
                "message": e["msg"],
                "type": e["type"],
            }
            for e in exc.errors()
        ]
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=envelope(details, "Invalid request data", status=status.HTTP_400_BAD_REQUEST),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=envelope(
                [], "An unexpected error occurred", status=status.HTTP_500_INTERNAL_SERVER_ERROR
            ),
        )
