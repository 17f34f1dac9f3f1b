"""
User Directory - paginated listing of other users.

Pages are 1-indexed. total_pages is count // limit + 1, which reports one
extra (empty) page when the count is an exact multiple of limit.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from kpower.core.interfaces import IUserRepository, UserListQuery
from kpower.domain.entities import User
from kpower.domain.errors import InputError

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass(frozen=True)
class Pagination:
    has_next: bool
    has_prev: bool
    current_page: int
    total_pages: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hasNext": self.has_next,
            "hasPrev": self.has_prev,
            "currentPage": self.current_page,
            "totalPages": self.total_pages,
        }


@dataclass(frozen=True)
class UserPage:
    users: List[User]
    pagination: Pagination

    def to_dict(self) -> Dict[str, Any]:
        return {
            "users": [user.to_dict() for user in self.users],
            **self.pagination.to_dict(),
        }


def paginate(page: int, limit: int, total: int) -> Pagination:
    """Build the pagination block for a page of a result set"""
    if page < 1 or limit < 1:
        raise InputError("page and limit must be positive")

    total_pages = total // limit + 1
    return Pagination(
        has_next=page < total_pages,
        has_prev=page > 1,
        current_page=page,
        total_pages=total_pages,
    )


class UserDirectory:
    """Lists users other than the requesting one"""

    def __init__(self, users: IUserRepository):
        self._users = users

    async def list_users(
        self,
        current_user: User,
        username: Optional[str] = None,
        page: int = DEFAULT_PAGE,
        limit: int = DEFAULT_LIMIT,
    ) -> UserPage:
        if page < 1 or limit < 1:
            raise InputError("page and limit must be positive")

        query = UserListQuery(
            auth_user=current_user.username.value,
            username=username or None,
            skip=(page - 1) * limit,
            limit=limit,
        )
        users, total = await self._users.list_users(query)
        return UserPage(users=users, pagination=paginate(page, limit, total))
