"""Session store: live sessions keyed by token id, plus the revoked-token blacklist."""
from __future__ import annotations

from datetime import datetime

from fastapi import Request
from sqlalchemy import delete, select

from shopfront.core.utils import as_utc, utcnow
from shopfront.db.models import RevokedToken, UserSession
from shopfront.db.session import get_session


def bearer_token(request: Request) -> str | None:
    """Return the token from an ``Authorization: Bearer`` header, if any."""
    header = request.headers.get("authorization") or ""
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()


class SessionStore:
    """Database-backed session registry with TTL per entry."""

    def insert(self, token_id: str, user_id: str, role: str, expires_at: datetime) -> None:
        with get_session() as session:
            session.add(UserSession(token_id=token_id, user_id=user_id, role=role, expires_at=expires_at))
            session.commit()

    def get(self, token_id: str) -> UserSession | None:
        """Live session for the token id; expired entries are dropped on read."""
        if not token_id:
            return None
        with get_session() as session:
            entry = session.get(UserSession, token_id)
            if entry and as_utc(entry.expires_at) <= utcnow():
                session.delete(entry)
                session.commit()
                return None
            return entry

    def is_revoked(self, token_id: str) -> bool:
        if not token_id:
            return False
        with get_session() as session:
            return session.get(RevokedToken, token_id) is not None

    def revoke(self, token_id: str, expires_at: datetime) -> None:
        """Blacklist the token id and remove its session."""
        with get_session() as session:
            if session.get(RevokedToken, token_id) is None:
                session.add(RevokedToken(token_id=token_id, expires_at=expires_at))
            session.execute(delete(UserSession).where(UserSession.token_id == token_id))
            session.commit()

    def revoke_user(self, user_id: str) -> int:
        """Blacklist every live session of a user. Returns how many were revoked."""
        with get_session() as session:
            entries = session.execute(select(UserSession).where(UserSession.user_id == user_id)).scalars().all()
            for entry in entries:
                if session.get(RevokedToken, entry.token_id) is None:
                    session.add(RevokedToken(token_id=entry.token_id, expires_at=entry.expires_at))
                session.delete(entry)
            session.commit()
            return len(entries)

    def purge_expired(self) -> None:
        """Drop sessions and blacklist entries whose tokens can no longer decode."""
        now = utcnow()
        with get_session() as session:
            session.execute(delete(UserSession).where(UserSession.expires_at <= now))
            session.execute(delete(RevokedToken).where(RevokedToken.expires_at <= now))
            session.commit()
