"""
User store implementations.
"""

from .user_repository import InMemoryUserRepository, SQLAlchemyUserRepository

__all__ = ["InMemoryUserRepository", "SQLAlchemyUserRepository"]
