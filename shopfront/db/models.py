"""SQLAlchemy models for users, inventory records and auth sessions."""
from __future__ import annotations

import math
import re
import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    JSON,
    func,
)
from sqlalchemy.orm import validates

from shopfront.core.errors import BadRequestError
from shopfront.core.utils import as_utc
from shopfront.domain.lifecycle import RecordState

from .session import Base

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USER_ROLES = {"customer", "admin"}


def _new_id() -> str:
    return uuid.uuid4().hex


def _isoformat(value) -> str | None:
    value = as_utc(value)
    return value.isoformat() if value else None


class SoftDeleteMixin:
    deleted = Column(Boolean, default=False, nullable=False, index=True)

    @property
    def state(self) -> RecordState:
        return RecordState.from_flag(self.deleted)

    @staticmethod
    def _images(value) -> list[dict]:
        if value is None:
            return []
        if not isinstance(value, list) or not all(
            isinstance(item, dict) and item.get("public_id") for item in value
        ):
            raise BadRequestError("image must be a list of {public_id, url}")
        return [{"public_id": item["public_id"], "url": item.get("url", "")} for item in value]


class User(SoftDeleteMixin, Base):
    __tablename__ = "users"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(120), nullable=False, default="")
    email = Column(String(255), unique=True, nullable=False, index=True)
    password = Column(Text, nullable=False)
    role = Column(String(32), nullable=False, default="customer")
    image = Column(JSON, nullable=False, default=list)
    verification_code = Column(String(16), nullable=True, index=True)
    verification_code_created_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @validates("email")
    def _validate_email(self, _key, value):
        email = (value or "").strip().lower()
        if not EMAIL_PATTERN.match(email):
            raise BadRequestError("A valid email is required")
        return email

    @validates("role")
    def _validate_role(self, _key, value):
        role = (value or "customer").strip().lower()
        if role not in USER_ROLES:
            raise BadRequestError(f"Role must be one of: {', '.join(sorted(USER_ROLES))}")
        return role

    @validates("name")
    def _validate_name(self, _key, value):
        return (value or "").strip()

    @validates("image")
    def _validate_image(self, _key, value):
        return self._images(value)

    @property
    def verification_record(self) -> dict | None:
        if not self.verification_code:
            return None
        return {"code": self.verification_code, "createdAt": as_utc(self.verification_code_created_at)}

    def to_dict(self) -> dict:
        """Public representation: never includes the password hash or the OTP."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "image": list(self.image or []),
            "deleted": bool(self.deleted),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class Inventory(SoftDeleteMixin, Base):
    __tablename__ = "inventories"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    quantity = Column(Integer, nullable=False, default=0)
    price = Column(Float, nullable=False, default=0.0)
    attributes = Column(JSON, nullable=False, default=dict)
    image = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    @validates("name")
    def _validate_name(self, _key, value):
        name = (value or "").strip()
        if not name:
            raise BadRequestError("Inventory name is required")
        return name

    @validates("description")
    def _validate_description(self, _key, value):
        return (value or "").strip()

    @validates("quantity")
    def _validate_quantity(self, _key, value):
        try:
            quantity = int(value if value is not None else 0)
        except (TypeError, ValueError):
            raise BadRequestError("Quantity must be an integer")
        if quantity < 0:
            raise BadRequestError("Quantity cannot be negative")
        return quantity

    @validates("price")
    def _validate_price(self, _key, value):
        try:
            price = float(value if value is not None else 0)
        except (TypeError, ValueError):
            raise BadRequestError("Price must be a number")
        if not math.isfinite(price):
            raise BadRequestError("Price must be a number")
        if price < 0:
            raise BadRequestError("Price cannot be negative")
        return price

    @validates("attributes")
    def _validate_attributes(self, _key, value):
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise BadRequestError("attributes must be an object")
        return value

    @validates("image")
    def _validate_image(self, _key, value):
        return self._images(value)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "quantity": self.quantity,
            "price": self.price,
            "attributes": dict(self.attributes or {}),
            "image": list(self.image or []),
            "deleted": bool(self.deleted),
            "created_at": _isoformat(self.created_at),
            "updated_at": _isoformat(self.updated_at),
        }


class UserSession(Base):
    __tablename__ = "sessions"

    token_id = Column(String(64), primary_key=True)
    user_id = Column(String(32), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(32), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class RevokedToken(Base):
    __tablename__ = "revoked_tokens"

    token_id = Column(String(64), primary_key=True)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    revoked_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
