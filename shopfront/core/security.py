"""Security helpers (password hashing, access tokens, one-time codes)."""

from __future__ import annotations

import secrets
import uuid
from datetime import datetime, timedelta, timezone

import jwt
from argon2 import PasswordHasher, exceptions as argon_exc

from shopfront.core.config import get_settings

_ph = PasswordHasher()
OTP_LENGTH = 6


def hash_password(password: str) -> str:
    return _ph.hash(password)


def verify_password(password: str, stored_hash: str | None) -> bool:
    if not stored_hash:
        return False
    try:
        return _ph.verify(stored_hash, password or "")
    except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
        return False


def create_access_token(user_id: str, role: str, *, ttl_seconds: int | None = None) -> tuple[str, dict]:
    """Issue a signed token bound to {user id, role}. Returns (token, claims)."""
    settings = get_settings()
    ttl = ttl_seconds if ttl_seconds is not None else settings.access_token_ttl_seconds
    now = datetime.now(timezone.utc)
    claims = {
        "sub": str(user_id),
        "role": role,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(seconds=max(1, ttl)),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    return token, claims


def decode_access_token(token: str, *, verify_exp: bool = True) -> dict | None:
    """Return the claims of a well-signed token, or None."""
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"verify_exp": verify_exp, "require": ["sub", "jti", "exp"]},
        )
    except jwt.PyJWTError:
        return None


def generate_otp_code(length: int = OTP_LENGTH) -> str:
    upper_bound = 10**length
    return f"{secrets.randbelow(upper_bound):0{length}d}"
