"""
Invite Code Service - generates invite codes that no other user owns.

Codes are the first 3 characters of the username followed by a random
suffix drawn uniformly from 1001-9999. Uniqueness is checked against the
user store; the unique constraint on users.invite_code is the final guard
against two registrations racing for the same code.
"""
import logging
import random
from typing import Optional

from kpower.core.interfaces import IUserRepository
from kpower.domain.errors import InviteCodeExhaustedError
from kpower.domain.value_objects import (
    INVITE_CODE_SUFFIX_MAX,
    INVITE_CODE_SUFFIX_MIN,
    InviteCode,
    Username,
)

logger = logging.getLogger(__name__)


class InviteCodeGenerator:
    """Produces candidate invite codes and retries until the store confirms one is free"""

    def __init__(self, rng: Optional[random.Random] = None, max_attempts: Optional[int] = None):
        """
        Args:
            rng: Random source for suffixes (SystemRandom by default)
            max_attempts: Give up after this many collisions (None retries forever)
        """
        self._rng = rng or random.SystemRandom()
        self.max_attempts = max_attempts

    def generate(self, username: Username) -> InviteCode:
        """
        Produce a candidate code for a username.

        Raises:
            InputError: If the username is shorter than the code prefix
        """
        suffix = self._rng.randint(INVITE_CODE_SUFFIX_MIN, INVITE_CODE_SUFFIX_MAX)
        return InviteCode.for_username(username, suffix)

    async def generate_unique(self, users: IUserRepository, username: Username) -> InviteCode:
        """
        Generate candidates until one has no owner in the store.

        Raises:
            InputError: If the username is shorter than the code prefix
            InviteCodeExhaustedError: If max_attempts candidates all collided
            ServerError: If the store lookup fails
        """
        attempts = 0
        while True:
            code = self.generate(username)
            attempts += 1
            if not await users.invite_code_exists(code):
                if attempts > 1:
                    logger.info(f"Invite code for {username} found after {attempts} attempts")
                return code

            logger.debug(f"Invite code {code} already taken, regenerating")
            if self.max_attempts is not None and attempts >= self.max_attempts:
                logger.error(f"Gave up generating invite code for {username} after {attempts} attempts")
                raise InviteCodeExhaustedError(username.value, attempts)
