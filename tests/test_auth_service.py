"""
AuthService flows: login/logout sessions, password change and OTP reset.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
import pytest

from shopfront.core.config import get_settings
from shopfront.core.errors import (
    BadRequestError,
    DeliveryError,
    ExpiredError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UnavailableError,
)
from shopfront.domain.lifecycle import SessionState
from shopfront.repositories.sql_repository import UserRepository
from shopfront.services import auth_service as auth_module
from shopfront.services.auth_service import AuthService

from conftest import TEST_PASSWORD


@pytest.fixture()
def outbox(monkeypatch):
    sent: list[tuple[str, str]] = []

    def _send(to_email, code):
        sent.append((to_email, code))
        return True

    monkeypatch.setattr(auth_module, "send_verification_code", _send)
    return sent


@pytest.fixture()
def codes(monkeypatch):
    queue = ["111111", "222222", "333333"]
    monkeypatch.setattr(auth_module, "generate_otp_code", lambda: queue.pop(0))
    return queue


def test_login_unknown_email_and_wrong_password(db_env, make_user):
    make_user()
    svc = AuthService()
    with pytest.raises(NotFoundError):
        svc.login("nobody@example.com", TEST_PASSWORD)
    with pytest.raises(UnauthorizedError):
        svc.login("ana@example.com", "wrong-password")


def test_login_then_logout(db_env, make_user):
    make_user()
    svc = AuthService()
    result = svc.login("ana@example.com", TEST_PASSWORD)
    token = result.access_token
    assert svc.session_state(token) is SessionState.LOGGED_IN
    assert svc.authenticate(token)["sub"] == result.user.id

    svc.logout(token)
    assert not svc.is_authenticated(token)
    # the signature is still valid; only the blacklist rejects it
    assert auth_module.decode_access_token(token) is not None
    with pytest.raises(UnauthorizedError):
        svc.authenticate(token)
    with pytest.raises(UnauthorizedError):
        svc.logout(token)


def test_logout_without_session(db_env):
    svc = AuthService()
    assert svc.session_state(None) is SessionState.LOGGED_OUT
    with pytest.raises(UnauthorizedError):
        svc.logout(None)
    with pytest.raises(UnauthorizedError):
        svc.logout("not-a-token")


def test_new_login_replaces_previous_session(db_env, make_user):
    make_user()
    svc = AuthService()
    first = svc.login("ana@example.com", TEST_PASSWORD).access_token
    second = svc.login("ana@example.com", TEST_PASSWORD).access_token
    assert not svc.is_authenticated(first)
    assert svc.is_authenticated(second)


def test_expired_token_reports_expired(db_env, make_user):
    user = make_user()
    svc = AuthService()
    settings = get_settings()
    past = datetime.now(timezone.utc) - timedelta(seconds=30)
    token = jwt.encode(
        {"sub": user.id, "role": user.role, "jti": "expired-session", "exp": past},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    svc.sessions.insert("expired-session", user.id, user.role, past)
    assert svc.session_state(token) is SessionState.EXPIRED
    with pytest.raises(UnauthorizedError, match="expired"):
        svc.authenticate(token)


def test_change_password_validation(db_env, make_user):
    user = make_user()
    svc = AuthService()
    with pytest.raises(BadRequestError, match="required"):
        svc.change_password(user.id, "", "")
    with pytest.raises(BadRequestError, match="do not match"):
        svc.change_password(user.id, "new-password-1", "new-password-2")
    with pytest.raises(BadRequestError, match="at least"):
        svc.change_password(user.id, "short", "short")
    with pytest.raises(NotFoundError):
        svc.change_password("missing", "new-password-1", "new-password-1")

    svc.change_password(user.id, "new-password-1", "new-password-1")
    with pytest.raises(UnauthorizedError):
        svc.login("ana@example.com", TEST_PASSWORD)
    assert svc.login("ana@example.com", "new-password-1").user.id == user.id


def test_request_otp_is_rate_limited_within_window(db_env, make_user, outbox, codes):
    make_user()
    svc = AuthService()
    user = svc.request_otp("ana@example.com")
    assert user.verification_code == "111111"
    assert outbox == [("ana@example.com", "111111")]

    with pytest.raises(RateLimitedError, match="5 minutes"):
        svc.request_otp("ana@example.com")
    assert UserRepository().get_by_id(user.id).verification_code == "111111"


def test_request_otp_after_window_overwrites_code(db_env, make_user, outbox, codes):
    user = make_user()
    repo = UserRepository()
    repo.set_verification_code(user.id, "999999", datetime.now(timezone.utc) - timedelta(minutes=6))

    updated = AuthService().request_otp("ana@example.com")
    assert updated.verification_code == "111111"
    assert repo.get_by_verification_code("999999") is None


def test_request_otp_unknown_email(db_env, outbox):
    with pytest.raises(NotFoundError):
        AuthService().request_otp("nobody@example.com")
    assert outbox == []


def test_request_otp_delivery_failure_rolls_back(db_env, make_user, codes, monkeypatch):
    user = make_user()

    def _fail(to_email, code):
        raise DeliveryError("Could not send the verification email")

    monkeypatch.setattr(auth_module, "send_verification_code", _fail)
    with pytest.raises(DeliveryError):
        AuthService().request_otp("ana@example.com")
    assert UserRepository().get_by_id(user.id).verification_code is None


def test_reset_password_with_valid_code(db_env, make_user, outbox, codes):
    make_user()
    svc = AuthService()
    svc.request_otp("ana@example.com")

    updated = svc.reset_password("111111", "brand-new-pass", "brand-new-pass")
    assert updated.verification_code is None
    assert svc.login("ana@example.com", "brand-new-pass").user.id == updated.id
    with pytest.raises(BadRequestError, match="Invalid verification code"):
        svc.reset_password("111111", "another-pass-1", "another-pass-1")


def test_reset_password_rejects_bad_input(db_env, make_user, outbox, codes):
    make_user()
    svc = AuthService()
    svc.request_otp("ana@example.com")
    with pytest.raises(BadRequestError, match="must match"):
        svc.reset_password("111111", "brand-new-pass", "other-pass")
    with pytest.raises(BadRequestError, match="Invalid verification code"):
        svc.reset_password("000000", "brand-new-pass", "brand-new-pass")
    with pytest.raises(BadRequestError, match="at least"):
        svc.reset_password("111111", "short", "short")


def test_expired_code_is_cleared(db_env, make_user):
    user = make_user()
    repo = UserRepository()
    repo.set_verification_code(user.id, "424242", datetime.now(timezone.utc) - timedelta(minutes=6))
    svc = AuthService()

    with pytest.raises(ExpiredError):
        svc.reset_password("424242", "brand-new-pass", "brand-new-pass")
    with pytest.raises(BadRequestError, match="Invalid verification code"):
        svc.reset_password("424242", "brand-new-pass", "brand-new-pass")
    assert repo.get_by_id(user.id).verification_code_created_at is None


def test_undelivered_code_fails_in_production(db_env, make_user, codes, monkeypatch):
    user = make_user()
    monkeypatch.setenv("APP_ENV", "prod")
    get_settings.cache_clear()
    monkeypatch.setattr(auth_module, "send_verification_code", lambda to_email, code: False)

    with pytest.raises(DeliveryError):
        AuthService().request_otp("ana@example.com")
    assert UserRepository().get_by_id(user.id).verification_code is None


def test_undelivered_code_is_kept_outside_production(db_env, make_user, codes, monkeypatch):
    user = make_user()
    monkeypatch.setattr(auth_module, "send_verification_code", lambda to_email, code: False)

    updated = AuthService().request_otp("ana@example.com")
    assert updated.verification_code == "111111"
    assert UserRepository().get_by_id(user.id).verification_code == "111111"


def test_code_collisions_report_unavailable(db_env, make_user, outbox, monkeypatch):
    holder = make_user("bob@example.com")
    make_user()
    UserRepository().set_verification_code(holder.id, "777777", datetime.now(timezone.utc))
    monkeypatch.setattr(auth_module, "generate_otp_code", lambda: "777777")

    with pytest.raises(UnavailableError) as excinfo:
        AuthService().request_otp("ana@example.com")
    assert excinfo.value.status_code == 503
    assert outbox == []
