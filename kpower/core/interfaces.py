"""
Core interfaces for the referral service.

The user store is the only persistence dependency. Implementations must
raise ServerError (never driver exceptions) on any storage failure.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from kpower.domain.entities import User
    from kpower.domain.value_objects import InviteCode, Username


@dataclass(frozen=True)
class UserListQuery:
    """
    Filter and window for listing users.

    auth_user is always excluded from results; username (if given) is a
    substring match.
    """
    auth_user: str
    username: Optional[str] = None
    skip: int = 0
    limit: int = 10


class IUserRepository(ABC):
    """
    Interface for user storage and retrieval.

    Implementations must handle:
    - Referral count derivation on every read
    - Unique usernames and invite codes
    - Translation of storage failures to ServerError
    """

    @abstractmethod
    async def get_by_username(self, username: 'Username') -> Optional['User']:
        """
        Get user by username.

        Returns:
            User if found, None otherwise
        """
        pass

    @abstractmethod
    async def get_by_invite_code(self, invite_code: 'InviteCode') -> Optional['User']:
        """
        Get the owner of an invite code.

        Returns:
            User if found, None otherwise
        """
        pass

    @abstractmethod
    async def invite_code_exists(self, invite_code: 'InviteCode') -> bool:
        """Check whether any user owns the invite code"""
        pass

    @abstractmethod
    async def create(
        self,
        username: 'Username',
        invite_code: 'InviteCode',
        referred_by: Optional['Username'] = None
    ) -> None:
        """
        Persist a new user.

        Raises:
            ServerError: On storage failure, including unique constraint violations
        """
        pass

    @abstractmethod
    async def list_users(self, query: UserListQuery) -> Tuple[List['User'], int]:
        """
        List users matching the query, newest first.

        Returns:
            (users in the requested window, total number of matching users)
        """
        pass
