"""
FastAPI dependencies wiring process-wide singletons into request handlers.

The singletons (Database, TokenService, EventBus, InviteCodeGenerator) are
built once in the application lifespan and stored on app.state; nothing
here reaches for module-level globals.
"""
from typing import AsyncIterator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from kpower.application.auth_service import AuthService
from kpower.application.user_directory import UserDirectory
from kpower.config import Settings
from kpower.db.connection import Database
from kpower.repositories.user_repository import UserRepository
from kpower.services.event_bus import EventBus
from kpower.services.invite_code_service import InviteCodeGenerator
from kpower.services.token_service import TokenService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_event_bus(request: Request) -> EventBus:
    return request.app.state.event_bus


def get_invite_code_generator(request: Request) -> InviteCodeGenerator:
    return request.app.state.invite_codes


async def get_db_session(database: Database = Depends(get_database)) -> AsyncIterator[AsyncSession]:
    """
    Get database session for dependency injection.

    Note: This session auto-commits on success and auto-rolls back on error.
    """
    async with database.session() as session:
        yield session


def get_user_repository(session: AsyncSession = Depends(get_db_session)) -> UserRepository:
    return UserRepository(session)


def get_auth_service(
    users: UserRepository = Depends(get_user_repository),
    invite_codes: InviteCodeGenerator = Depends(get_invite_code_generator),
    tokens: TokenService = Depends(get_token_service),
    events: EventBus = Depends(get_event_bus),
) -> AuthService:
    return AuthService(users=users, invite_codes=invite_codes, tokens=tokens, events=events)


def get_user_directory(users: UserRepository = Depends(get_user_repository)) -> UserDirectory:
    return UserDirectory(users)
