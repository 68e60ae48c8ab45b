"""Record lifecycle states for soft-deletable entities."""
from __future__ import annotations

from enum import Enum


class RecordState(str, Enum):
    ACTIVE = "active"
    DELETED = "deleted"

    @classmethod
    def from_flag(cls, deleted: bool | None) -> "RecordState":
        return cls.DELETED if deleted else cls.ACTIVE


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"
    EXPIRED = "expired"
