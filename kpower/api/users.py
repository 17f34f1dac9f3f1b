"""
User endpoints (bearer token required).

GET /users/me - the authenticated user, flattened
GET /users    - other users, substring search on username, 1-indexed pages
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional

from kpower.api.auth import require_user
from kpower.api.dependencies import get_user_directory
from kpower.application.user_directory import DEFAULT_LIMIT, DEFAULT_PAGE, UserDirectory
from kpower.domain.entities import User

router = APIRouter()


@router.get("/users/me")
async def get_authenticated_user(user: User = Depends(require_user)):
    """Return the user the bearer token resolves to"""
    return user.to_dict()


@router.get("/users")
async def get_users(
    username: Optional[str] = Query(None, max_length=100),
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    user: User = Depends(require_user),
    directory: UserDirectory = Depends(get_user_directory),
):
    """
    List users other than the caller, newest first.

    Response: {"users": [...], "hasNext", "hasPrev", "currentPage", "totalPages"}
    """
    result = await directory.list_users(user, username=username, page=page, limit=limit)
    return result.to_dict()
