import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.middleware.base import BaseHTTPMiddleware

from shopfront.core.config import DEFAULT_JWT_SECRET, get_settings
from shopfront.core.error_handlers import register_error_handlers
from shopfront.core.observability import setup_logging
from shopfront.db.create_tables import create_all
from shopfront.routers import health as health_router
from shopfront.routers import inventories as inventories_router
from shopfront.routers import users as users_router

logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    if settings.app_env == "prod" and settings.jwt_secret == DEFAULT_JWT_SECRET:
        raise RuntimeError("JWT_SECRET must be set in production")
    if settings.app_env != "prod":
        create_all()
    logger.info("Shopfront API started")
    yield
    logger.info("Shopfront API shutting down")


def create_app() -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``uvicorn shopfront.app:create_app --factory``)."""
    settings = get_settings()
    app = FastAPI(title="Shopfront API", version="1.0.0", lifespan=lifespan)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.app_env == "prod")

    register_error_handlers(app)

    app.include_router(health_router.router)
    app.include_router(users_router.router)
    app.include_router(inventories_router.router)

    os.makedirs(settings.uploads_dir, exist_ok=True)
    app.mount("/static/uploads", StaticFiles(directory=settings.uploads_dir), name="uploads")
    return app


app = create_app()
