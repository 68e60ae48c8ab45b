"""
Authentication and session use cases: login/logout, token checks, password
change and the two-phase OTP password reset.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from shopfront.core.config import Settings, get_settings
from shopfront.core.errors import (
    BadRequestError,
    DeliveryError,
    ExpiredError,
    NotFoundError,
    RateLimitedError,
    UnauthorizedError,
    UnavailableError,
)
from shopfront.core.mailer import send_verification_code
from shopfront.core.security import (
    create_access_token,
    decode_access_token,
    generate_otp_code,
    hash_password,
    verify_password,
)
from shopfront.core.utils import as_utc, utcnow
from shopfront.db.models import User
from shopfront.db.session import transaction
from shopfront.domain.lifecycle import SessionState
from shopfront.repositories.sql_repository import UserRepository
from shopfront.services.session_service import SessionStore

logger = logging.getLogger(__name__)

_CODE_ATTEMPTS = 5


@dataclass
class LoginResult:
    user: User
    access_token: str
    expires_at: datetime


@dataclass
class AuthService:
    """Handles login, logout, session checks, password change and OTP reset flows."""

    repository: UserRepository = field(default_factory=UserRepository)
    sessions: SessionStore = field(default_factory=SessionStore)
    settings: Settings = field(default_factory=get_settings)

    # -------------------------------------- helpers --------------------------------------
    def _now(self) -> datetime:
        return utcnow()

    def _window_elapsed(self, created_at: datetime | None, now: datetime, seconds: int) -> bool:
        created = as_utc(created_at)
        if created is None:
            return True
        return now - created > timedelta(seconds=seconds)

    def _validate_new_password(self, password: str) -> None:
        if len(password) < self.settings.password_min_length:
            raise BadRequestError(
                f"Password must be at least {self.settings.password_min_length} characters"
            )

    def _unique_code(self, session) -> str:
        for _ in range(_CODE_ATTEMPTS):
            code = generate_otp_code()
            if self.repository.get_by_verification_code(code, session=session) is None:
                return code
        raise UnavailableError("Could not issue a verification code, try again shortly")

    # -------------------------------------- login --------------------------------------
    def login(self, email: str, password: str) -> LoginResult:
        user = self.repository.get_by_email(email)
        if not user:
            raise NotFoundError("No User found")
        if not verify_password(password or "", user.password):
            raise UnauthorizedError("Password does not match")
        self.sessions.purge_expired()
        replaced = self.sessions.revoke_user(user.id)
        token, claims = create_access_token(user.id, user.role, ttl_seconds=self.settings.access_token_ttl_seconds)
        self.sessions.insert(claims["jti"], user.id, user.role, claims["exp"])
        logger.info("User logged in", extra={"user_id": user.id})
        if replaced:
            logger.info(f"Replaced {replaced} previous session(s)", extra={"user_id": user.id})
        return LoginResult(user=user, access_token=token, expires_at=claims["exp"])

    def session_state(self, token: str | None) -> SessionState:
        if not token:
            return SessionState.LOGGED_OUT
        claims = decode_access_token(token, verify_exp=False)
        if not claims:
            return SessionState.LOGGED_OUT
        if self.sessions.is_revoked(claims["jti"]):
            return SessionState.LOGGED_OUT
        if decode_access_token(token) is None:
            return SessionState.EXPIRED
        if self.sessions.get(claims["jti"]) is None:
            return SessionState.LOGGED_OUT
        return SessionState.LOGGED_IN

    def is_authenticated(self, token: str | None) -> bool:
        return self.session_state(token) is SessionState.LOGGED_IN

    def authenticate(self, token: str | None) -> dict:
        """Return the claims of a live session token or fail Unauthorized."""
        state = self.session_state(token)
        if state is SessionState.EXPIRED:
            raise UnauthorizedError("Session has expired, please log in again")
        if state is not SessionState.LOGGED_IN:
            raise UnauthorizedError("You are not logged in")
        return decode_access_token(token)

    def logout(self, token: str | None) -> None:
        if self.session_state(token) is not SessionState.LOGGED_IN:
            raise UnauthorizedError("You are not logged in")
        claims = decode_access_token(token)
        expires_at = datetime.fromtimestamp(claims["exp"], tz=timezone.utc)
        self.sessions.revoke(claims["jti"], expires_at)
        logger.info("User logged out", extra={"user_id": claims["sub"]})

    # -------------------------------------- password --------------------------------------
    def change_password(self, user_id: str, new_password: str | None, confirm_password: str | None) -> User:
        if not new_password or not confirm_password:
            raise BadRequestError("Both passwords are required")
        if new_password != confirm_password:
            raise BadRequestError("Passwords do not match")
        self._validate_new_password(new_password)
        if self.repository.get_active_by_id(user_id) is None:
            raise NotFoundError("No User found")
        user = self.repository.update_password(user_id, hash_password(new_password))
        logger.info("Password changed", extra={"user_id": user_id})
        return user

    # -------------------------------------- OTP reset --------------------------------------
    def request_otp(self, email: str) -> User:
        user = self.repository.get_by_email(email)
        if not user:
            raise NotFoundError("No User found")
        now = self._now()
        window = self.settings.otp_resend_window_seconds
        if user.verification_code and not self._window_elapsed(user.verification_code_created_at, now, window):
            minutes = max(1, window // 60)
            raise RateLimitedError(f"Please wait {minutes} minutes before requesting a new verification code")
        with transaction() as session:
            code = self._unique_code(session)
            updated = self.repository.set_verification_code(user.id, code, now, session=session)
            delivered = send_verification_code(user.email, code)
            if not delivered and self.settings.app_env == "prod":
                raise DeliveryError("Email delivery is not configured, try again later")
        if not delivered:
            logger.warning(f"Email delivery disabled; verification code for {user.email} is {code}")
        logger.info("Verification code issued", extra={"user_id": user.id})
        return updated

    def reset_password(self, code: str | None, new_password: str | None, confirm_password: str | None) -> User:
        if not new_password or not confirm_password or new_password != confirm_password:
            raise BadRequestError("Passwords are required and must match")
        user = self.repository.get_by_verification_code(code or "")
        if not user:
            raise BadRequestError("Invalid verification code")
        if self._window_elapsed(user.verification_code_created_at, self._now(), self.settings.otp_ttl_seconds):
            self.repository.clear_verification_code(user.id)
            logger.info("Expired verification code cleared", extra={"user_id": user.id})
            raise ExpiredError("Verification code has expired")
        self._validate_new_password(new_password)
        with transaction() as session:
            updated = self.repository.update_password(user.id, hash_password(new_password), session=session)
            self.repository.clear_verification_code(user.id, session=session)
        logger.info("Password reset with verification code", extra={"user_id": user.id})
        return updated
