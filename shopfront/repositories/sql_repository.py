"""High-level data access helpers backed by SQLAlchemy.

Every mutating helper accepts an optional ``session``. When one is given the
write is flushed into it and the caller owns the commit (see
``shopfront.db.transaction``); otherwise the helper opens and commits its own.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import ClassVar, Generic, Iterator, Optional, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from shopfront.core.errors import BadRequestError
from shopfront.db.models import Inventory, User
from shopfront.db.session import get_session

ModelT = TypeVar("ModelT", User, Inventory)


@contextmanager
def _scoped(session: Session | None) -> Iterator[Session]:
    if session is not None:
        yield session
        session.flush()
        return
    with get_session() as own:
        try:
            yield own
            own.commit()
        except BaseException:
            own.rollback()
            raise


class EntityRepository(Generic[ModelT]):
    """Lifecycle operations over one soft-deletable collection."""

    model: ClassVar[type]
    creatable_fields: ClassVar[frozenset[str]] = frozenset()
    updatable_fields: ClassVar[frozenset[str]] = frozenset()

    # -------------------------- reads --------------------------
    def list_active(self) -> list[ModelT]:
        return self._list(deleted=False)

    def list_deleted(self) -> list[ModelT]:
        return self._list(deleted=True)

    def _list(self, *, deleted: bool) -> list[ModelT]:
        with get_session() as session:
            stmt = select(self.model).where(self.model.deleted.is_(deleted)).order_by(self.model.created_at, self.model.id)
            return list(session.execute(stmt).scalars().all())

    def get_active_by_id(self, record_id: str) -> Optional[ModelT]:
        with get_session() as session:
            stmt = select(self.model).where(self.model.id == record_id, self.model.deleted.is_(False))
            return session.execute(stmt).scalar_one_or_none()

    def get_by_id(self, record_id: str, session: Session | None = None) -> Optional[ModelT]:
        if session is not None:
            return session.get(self.model, record_id)
        with get_session() as own:
            return own.get(self.model, record_id)

    # -------------------------- writes --------------------------
    def _check_fields(self, data: dict, allowed: frozenset[str]) -> None:
        unknown = sorted(set(data) - allowed)
        if unknown:
            raise BadRequestError(f"Unknown or read-only field(s): {', '.join(unknown)}")

    def create(self, data: dict, session: Session | None = None) -> ModelT:
        self._check_fields(data, self.creatable_fields)
        with _scoped(session) as db:
            entity = self.model(**data)
            db.add(entity)
            db.flush()
            db.refresh(entity)
        return entity

    def update(self, record_id: str, patch: dict, session: Session | None = None) -> Optional[ModelT]:
        self._check_fields(patch, self.updatable_fields)
        with _scoped(session) as db:
            entity = db.get(self.model, record_id)
            if entity is None:
                return None
            for key, value in patch.items():
                setattr(entity, key, value)
            db.flush()
            db.refresh(entity)
        return entity

    def _set_deleted(self, record_id: str, flag: bool, session: Session | None) -> Optional[ModelT]:
        """Flip the flag; returns a snapshot of the record as it was before."""
        with _scoped(session) as db:
            entity = db.get(self.model, record_id)
            if entity is None:
                return None
            before = entity.to_dict()
            if bool(entity.deleted) != flag:
                entity.deleted = flag
        return before

    def soft_delete(self, record_id: str, session: Session | None = None) -> Optional[dict]:
        return self._set_deleted(record_id, True, session)

    def restore(self, record_id: str, session: Session | None = None) -> Optional[dict]:
        return self._set_deleted(record_id, False, session)

    def hard_delete(self, record_id: str, session: Session | None = None) -> Optional[dict]:
        with _scoped(session) as db:
            entity = db.get(self.model, record_id)
            if entity is None:
                return None
            removed = entity.to_dict()
            db.delete(entity)
        return removed


class UserRepository(EntityRepository[User]):
    model = User
    creatable_fields = frozenset({"name", "email", "password", "role", "image"})
    updatable_fields = frozenset({"name", "email", "role", "image"})

    def get_by_email(self, email: str) -> Optional[User]:
        """Active user with this email."""
        value = (email or "").strip().lower()
        if not value:
            return None
        with get_session() as session:
            stmt = select(User).where(User.email == value, User.deleted.is_(False))
            return session.execute(stmt).scalar_one_or_none()

    def email_exists(self, email: str, *, exclude_id: str | None = None) -> bool:
        value = (email or "").strip().lower()
        if not value:
            return False
        with get_session() as session:
            stmt = select(User.id).where(User.email == value)
            if exclude_id:
                stmt = stmt.where(User.id != exclude_id)
            return session.execute(stmt.limit(1)).first() is not None

    def get_by_verification_code(self, code: str, session: Session | None = None) -> Optional[User]:
        value = (code or "").strip()
        if not value:
            return None
        stmt = select(User).where(User.verification_code == value, User.deleted.is_(False)).limit(1)
        if session is not None:
            return session.execute(stmt).scalar_one_or_none()
        with get_session() as own:
            return own.execute(stmt).scalar_one_or_none()

    def set_verification_code(self, user_id: str, code: str, created_at: datetime, session: Session | None = None) -> Optional[User]:
        with _scoped(session) as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            user.verification_code = code
            user.verification_code_created_at = created_at
            db.flush()
            db.refresh(user)
        return user

    def clear_verification_code(self, user_id: str, session: Session | None = None) -> None:
        with _scoped(session) as db:
            user = db.get(User, user_id)
            if user is not None:
                user.verification_code = None
                user.verification_code_created_at = None

    def update_password(self, user_id: str, password_hash: str, session: Session | None = None) -> Optional[User]:
        with _scoped(session) as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            user.password = password_hash
            db.flush()
            db.refresh(user)
        return user


class InventoryRepository(EntityRepository[Inventory]):
    model = Inventory
    creatable_fields = frozenset({"name", "description", "quantity", "price", "attributes", "image"})
    updatable_fields = creatable_fields
