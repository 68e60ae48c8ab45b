"""
Configuration helpers for the Shopfront backend.

Settings is a frozen view of the environment (database, JWT, OTP windows,
SMTP, uploads, logging) so that routers/services never fetch os.environ
directly. Call get_settings.cache_clear() after changing the environment.
"""

from dataclasses import dataclass
from functools import lru_cache
import os

DEFAULT_JWT_SECRET = "change-me-in-production"


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    public_base_url: str
    database_url: str
    jwt_secret: str
    jwt_algorithm: str
    access_token_ttl_seconds: int
    otp_ttl_seconds: int
    otp_resend_window_seconds: int
    password_min_length: int
    smtp_host: str
    smtp_port: int
    smtp_user: str
    smtp_password: str
    smtp_from: str
    uploads_dir: str
    max_upload_bytes: int
    cors_origins: tuple[str, ...]
    log_level: str
    log_format: str


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _list(value: str | None) -> tuple[str, ...]:
        if not value:
            return ()
        return tuple(item.strip().rstrip("/") for item in value.split(",") if item.strip())

    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    default_uploads = os.path.join(base_dir, "..", "uploads")

    return Settings(
        app_env=(os.getenv("APP_ENV") or "dev").lower(),
        public_base_url=os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/"),
        database_url=os.getenv("DATABASE_URL", "sqlite:///./shopfront.db"),
        jwt_secret=os.getenv("JWT_SECRET", DEFAULT_JWT_SECRET),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        access_token_ttl_seconds=_int(os.getenv("ACCESS_TOKEN_TTL_SECONDS", "3600"), 3600),
        otp_ttl_seconds=_int(os.getenv("OTP_TTL_SECONDS", "300"), 300),
        otp_resend_window_seconds=_int(os.getenv("OTP_RESEND_WINDOW_SECONDS", "300"), 300),
        password_min_length=_int(os.getenv("PASSWORD_MIN_LENGTH", "8"), 8),
        smtp_host=os.getenv("SMTP_HOST", ""),
        smtp_port=_int(os.getenv("SMTP_PORT", "465"), 465),
        smtp_user=os.getenv("SMTP_USER", ""),
        smtp_password=os.getenv("SMTP_PASSWORD", ""),
        smtp_from=os.getenv("SMTP_FROM", os.getenv("SMTP_USER", "")),
        uploads_dir=os.path.abspath(os.getenv("UPLOADS_DIR", default_uploads)),
        max_upload_bytes=_int(os.getenv("MAX_UPLOAD_BYTES", str(2 * 1024 * 1024)), 2 * 1024 * 1024),
        cors_origins=_list(os.getenv("CORS_ORIGINS", "http://localhost:5173")),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        log_format=(os.getenv("LOG_FORMAT") or "json").lower(),
    )
