"""Database package - all database-related code."""
from kpower.db.connection import Database
from kpower.db.models import Base, UserModel

__all__ = [
    "Database",
    "Base",
    "UserModel",
]
