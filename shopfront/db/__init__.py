"""Database helpers (engine/session export)."""

from .session import Base, get_engine, get_session, reset_engine, transaction

__all__ = ["Base", "get_engine", "get_session", "reset_engine", "transaction"]
