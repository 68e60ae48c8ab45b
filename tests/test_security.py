from __future__ import annotations

import pytest

from shopfront.core.errors import RateLimitedError
from shopfront.core.rate_limiter import _RateLimiter
from shopfront.core.security import (
    create_access_token,
    decode_access_token,
    generate_otp_code,
    hash_password,
    verify_password,
)


def test_password_hash_roundtrip():
    stored = hash_password("s3cret-pass")
    assert stored != "s3cret-pass"
    assert verify_password("s3cret-pass", stored)
    assert not verify_password("other", stored)
    assert not verify_password("s3cret-pass", "not-a-hash")
    assert not verify_password("s3cret-pass", None)


def test_access_token_claims(db_env):
    token, claims = create_access_token("user-1", "admin")
    decoded = decode_access_token(token)
    assert decoded["sub"] == "user-1"
    assert decoded["role"] == "admin"
    assert decoded["jti"] == claims["jti"]
    assert decode_access_token(token + "x") is None
    assert decode_access_token("garbage") is None


def test_each_token_gets_its_own_id(db_env):
    _, first = create_access_token("user-1", "customer")
    _, second = create_access_token("user-1", "customer")
    assert first["jti"] != second["jti"]


def test_otp_code_shape():
    code = generate_otp_code()
    assert len(code) == 6 and code.isdigit()


def test_rate_limiter_blocks_after_limit():
    limiter = _RateLimiter()
    for _ in range(3):
        limiter.check("login:1.2.3.4", limit=3, window_seconds=60)
    with pytest.raises(RateLimitedError):
        limiter.check("login:1.2.3.4", limit=3, window_seconds=60)
    limiter.check("login:5.6.7.8", limit=3, window_seconds=60)
    limiter.reset()
    limiter.check("login:1.2.3.4", limit=3, window_seconds=60)
