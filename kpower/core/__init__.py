"""Core module containing interfaces."""

from kpower.core.interfaces import IUserRepository, UserListQuery

__all__ = ["IUserRepository", "UserListQuery"]
