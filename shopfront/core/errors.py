"""Error taxonomy for the Shopfront API.

Every error carries a user-facing message, an HTTP status and a short code.
Routers and services raise these; the centralized responder in
error_handlers.py turns them into the standard envelope.
"""

from __future__ import annotations


class ShopfrontError(Exception):
    """Base exception for all domain failures surfaced over HTTP."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> dict:
        return {"status": self.status_code, "message": self.message, "data": []}


class NotFoundError(ShopfrontError):
    """Missing entity or email."""

    status_code = 404
    code = "NOT_FOUND"


class UnauthorizedError(ShopfrontError):
    """Bad password, missing/invalid/blacklisted session."""

    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(ShopfrontError):
    """Authenticated, but not allowed to act on this record."""

    status_code = 403
    code = "FORBIDDEN"


class BadRequestError(ShopfrontError):
    """Missing or mismatched fields, missing image, invalid OTP."""

    status_code = 400
    code = "BAD_REQUEST"


class RateLimitedError(ShopfrontError):
    """Request repeated too soon (OTP resend window, per-IP limiter)."""

    status_code = 429
    code = "RATE_LIMITED"


class ExpiredError(ShopfrontError):
    """One-time code used after its validity window."""

    status_code = 410
    code = "EXPIRED"


class DeliveryError(ShopfrontError):
    """Email transport failure."""

    status_code = 502
    code = "DELIVERY_FAILED"


class UnavailableError(ShopfrontError):
    """Temporary inability to complete the request."""

    status_code = 503
    code = "SERVICE_UNAVAILABLE"
