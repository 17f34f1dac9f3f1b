"""
Auth Service - the authenticate-or-register decision flow.

A single pass per request, no state held between calls:
- Known username → login: publish NewLogin, issue token
- Unknown username → registration: resolve referrer from the invite code,
  generate a unique invite code, create the user, re-read it, publish
  NewReferral (when referred) and NewRegister, issue token

Events are published before the token is issued. Publishing is
fire-and-forget: a failing bus never fails the request.
"""

from typing import Optional
import logging

from kpower.core.interfaces import IUserRepository
from kpower.domain.entities import User
from kpower.domain.errors import InvalidInviteCode, ServerError
from kpower.domain.events import DomainEvent, NewLogin, NewReferral, NewRegister
from kpower.domain.value_objects import InviteCode, Username
from kpower.services.event_bus import EventBus
from kpower.services.invite_code_service import InviteCodeGenerator
from kpower.services.token_service import TokenService

logger = logging.getLogger(__name__)


class AuthService:
    """Orchestrates user store, invite codes, token service and event bus"""

    def __init__(
        self,
        users: IUserRepository,
        invite_codes: InviteCodeGenerator,
        tokens: TokenService,
        events: EventBus,
    ):
        self._users = users
        self._invite_codes = invite_codes
        self._tokens = tokens
        self._events = events

    async def authenticate(self, username: str, invitation_code: Optional[str] = None) -> str:
        """
        Log a user in, or register them if the username is new.

        Args:
            username: Submitted username
            invitation_code: Optional invite code of the referrer (ignored on login)

        Returns:
            Signed bearer token for the user

        Raises:
            InputError: If the username is empty, or too short to derive an invite code
            InvalidInviteCode: If the invite code has no owner (nothing is created)
            ServerError: If the store fails
            AuthenticationError: If the token cannot be issued
        """
        name = Username(username)
        logger.info(f"Authenticating user {name}")

        user = await self._users.get_by_username(name)
        if user is not None:
            return self._login(user)

        return await self._register(name, invitation_code)

    def _login(self, user: User) -> str:
        logger.info(f"Login for existing user {user.username}")
        self._publish(NewLogin(user))
        return self._tokens.issue(user.username.value)

    async def _register(self, username: Username, invitation_code: Optional[str]) -> str:
        referrer = await self._resolve_referrer(invitation_code)

        invite_code = await self._invite_codes.generate_unique(self._users, username)
        await self._users.create(username, invite_code, referrer)

        user = await self._users.get_by_username(username)
        if user is None:
            logger.error(f"User {username} missing right after creation")
            raise ServerError("Created user could not be read back")

        logger.info(f"Registered new user {username} (referred by: {referrer or '-'})")

        if user.was_referred:
            self._publish(NewReferral(referrer=user.referred_by, referred_user=user.username))
        self._publish(NewRegister(user))

        return self._tokens.issue(user.username.value)

    async def _resolve_referrer(self, invitation_code: Optional[str]) -> Optional[Username]:
        """Username of the invite code owner, None when no code was supplied"""
        if invitation_code is None or not invitation_code.strip():
            return None

        code = InviteCode(invitation_code.strip())
        owner = await self._users.get_by_invite_code(code)
        if owner is None:
            logger.warning(f"Registration rejected: unknown invite code {code}")
            raise InvalidInviteCode(code.value)
        return owner.username

    def _publish(self, event: DomainEvent) -> None:
        try:
            self._events.publish(event)
        except Exception as e:
            logger.error(f"Failed to publish {type(event).__name__}: {e}")
