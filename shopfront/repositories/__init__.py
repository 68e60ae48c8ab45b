"""
Persistence adapters.

Services depend on these repositories rather than issuing SQLAlchemy queries
themselves.
"""

from .sql_repository import EntityRepository, InventoryRepository, UserRepository

__all__ = ["EntityRepository", "InventoryRepository", "UserRepository"]
