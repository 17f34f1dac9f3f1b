"""
User repository implementation using SQLAlchemy.

Handles conversion between:
- ORM rows (UserModel + derived referral count) → domain User
- Storage failures (SQLAlchemyError, pool timeouts, unique violations) → ServerError

Referral counts are computed by a correlated subquery on every read; they
are never cached or stored.
"""

from typing import List, Optional, Tuple
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
import logging

from kpower.core.interfaces import IUserRepository, UserListQuery
from kpower.db.models import UserModel
from kpower.domain.entities import User
from kpower.domain.errors import ServerError
from kpower.domain.value_objects import InviteCode, Username

logger = logging.getLogger(__name__)


def _referral_count():
    """Correlated count of users whose referred_by is the outer row's username"""
    referred = aliased(UserModel)
    return (
        select(func.count(referred.id))
        .where(referred.referred_by == UserModel.username)
        .correlate(UserModel)
        .scalar_subquery()
        .label("referrals")
    )


def _list_conditions(query: UserListQuery) -> list:
    conditions = [UserModel.username != query.auth_user]
    if query.username:
        conditions.append(UserModel.username.contains(query.username, autoescape=True))
    return conditions


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of IUserRepository"""

    def __init__(self, session: AsyncSession):
        self._db = session

    async def get_by_username(self, username: Username) -> Optional[User]:
        stmt = select(UserModel, _referral_count()).where(UserModel.username == username.value)
        return await self._fetch_one(stmt, f"get user by username {username}")

    async def get_by_invite_code(self, invite_code: InviteCode) -> Optional[User]:
        stmt = select(UserModel, _referral_count()).where(UserModel.invite_code == invite_code.value)
        return await self._fetch_one(stmt, f"get user by invite code {invite_code}")

    async def invite_code_exists(self, invite_code: InviteCode) -> bool:
        try:
            result = await self._db.execute(
                select(UserModel.id).where(UserModel.invite_code == invite_code.value)
            )
            return result.first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Invite code lookup failed for {invite_code}: {e}")
            raise ServerError("Invite code lookup failed") from e

    async def create(
        self,
        username: Username,
        invite_code: InviteCode,
        referred_by: Optional[Username] = None
    ) -> None:
        """
        Insert and commit a new user.

        A unique constraint violation (username or invite code taken by a
        concurrent registration) surfaces as ServerError; nothing is persisted.
        """
        user = UserModel(
            username=username.value,
            invite_code=invite_code.value,
            referred_by=referred_by.value if referred_by else None,
        )
        try:
            self._db.add(user)
            await self._db.commit()
        except IntegrityError as e:
            await self._db.rollback()
            logger.error(f"Creating user {username} violated a unique constraint: {e}")
            raise ServerError("User could not be created") from e
        except SQLAlchemyError as e:
            await self._db.rollback()
            logger.error(f"Creating user {username} failed: {e}")
            raise ServerError("User could not be created") from e

        logger.info(
            f"💾 Created user {username} (invite code: {invite_code}, "
            f"referred by: {referred_by or '-'})"
        )

    async def list_users(self, query: UserListQuery) -> Tuple[List[User], int]:
        logger.debug(f"Listing users: limit={query.limit} offset={query.skip}")
        conditions = _list_conditions(query)

        stmt = (
            select(UserModel, _referral_count())
            .where(*conditions)
            .order_by(UserModel.created_at.desc())
            .limit(query.limit)
            .offset(query.skip)
        )
        count_stmt = select(func.count()).select_from(UserModel).where(*conditions)

        try:
            rows = (await self._db.execute(stmt)).all()
            total = (await self._db.execute(count_stmt)).scalar_one()
        except SQLAlchemyError as e:
            logger.error(f"Listing users failed: {e}")
            raise ServerError("Listing users failed") from e

        return [self._to_domain(model, referrals) for model, referrals in rows], total

    async def _fetch_one(self, stmt, description: str) -> Optional[User]:
        try:
            row = (await self._db.execute(stmt)).first()
        except SQLAlchemyError as e:
            logger.error(f"{description} failed: {e}")
            raise ServerError("User lookup failed") from e

        if row is None:
            return None
        model, referrals = row
        return self._to_domain(model, referrals)

    @staticmethod
    def _to_domain(model: UserModel, referrals: Optional[int]) -> User:
        return User(
            username=Username(model.username),
            invite_code=InviteCode(model.invite_code),
            referred_by=Username(model.referred_by) if model.referred_by else None,
            referrals=referrals or 0,
        )
