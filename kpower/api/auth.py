"""
Authentication endpoint and the access guard for protected routes.

POST /authenticate logs a user in or registers them and returns a bearer token.
require_user verifies the bearer token and re-resolves the subject against
the user store on every protected request.
"""
from fastapi import APIRouter, Depends, Header, Request
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
import logging

from kpower.api.dependencies import (
    get_auth_service,
    get_database,
    get_token_service,
)
from kpower.application.auth_service import AuthService
from kpower.db.connection import Database
from kpower.domain.entities import User
from kpower.domain.errors import AuthenticationError, InputError
from kpower.domain.value_objects import Username
from kpower.repositories.user_repository import UserRepository
from kpower.services.token_service import TokenService

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Pydantic Models
# ============================================

class AuthenticateRequest(BaseModel):
    """Authenticate request payload"""
    model_config = ConfigDict(populate_by_name=True)

    username: str = Field(..., min_length=1, max_length=100)
    invitation_code: Optional[str] = Field(None, alias="invitationCode")


class AuthenticateResponse(BaseModel):
    """Authenticate response with bearer token"""
    token: str


# ============================================
# Routes
# ============================================

@router.post("/authenticate", response_model=AuthenticateResponse)
async def authenticate(
    payload: AuthenticateRequest,
    auth_service: AuthService = Depends(get_auth_service)
):
    """
    Log in an existing user or register a new one.

    - Known username: any invitationCode is ignored
    - New username with invitationCode: the code's owner becomes the referrer
      (400 if nobody owns the code, and no user is created)
    """
    token = await auth_service.authenticate(payload.username, payload.invitation_code)
    return AuthenticateResponse(token=token)


# ============================================
# Access Guard
# ============================================

def _extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("Request rejected: Missing or invalid Authorization header")
        raise AuthenticationError("Missing bearer token")

    token = authorization[7:].strip()  # Remove "Bearer " prefix
    if not token:
        logger.warning("Request rejected: Empty bearer token")
        raise AuthenticationError("Empty bearer token")
    return token


async def require_user(
    request: Request,
    authorization: Optional[str] = Header(None),
    tokens: TokenService = Depends(get_token_service),
    database: Database = Depends(get_database),
) -> User:
    """
    Verify the bearer token and resolve its subject to a current user.

    The store is only consulted after the token verifies. The lookup uses
    its own short-lived session so long-lived responses (/stream) do not
    hold a pooled connection.

    Returns:
        The resolved User (also attached to request.state.user)

    Raises:
        AuthenticationError: Token missing, invalid, expired, or subject unknown
        ServerError: If the store lookup fails
    """
    token = _extract_bearer_token(authorization)
    claims = tokens.verify(token)

    try:
        username = Username(claims.subject)
    except InputError:
        raise AuthenticationError("Token subject is not a username")

    async with database.session() as session:
        user = await UserRepository(session).get_by_username(username)

    if user is None:
        logger.warning(f"Request rejected: token subject {username} no longer exists")
        raise AuthenticationError("Token subject not found")

    request.state.user = user
    logger.debug(f"Request authenticated as {username}")
    return user
