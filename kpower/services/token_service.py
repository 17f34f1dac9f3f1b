"""
Token Service - issues and verifies signed bearer tokens.

Tokens are JWTs carrying sub (username), iss (service identity) and exp.
There is no refresh or revocation: a token verifies until its exp passes.
"""
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional
import logging

import jwt

from kpower.domain.entities import Claims
from kpower.domain.errors import AuthenticationError

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Signs and validates identity tokens with a symmetric secret"""

    def __init__(
        self,
        secret: str,
        issuer: str,
        ttl: timedelta,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._secret = secret
        self.issuer = issuer
        self.ttl = ttl
        self.algorithm = algorithm
        self._clock = clock or _utcnow

    def issue(self, username: str) -> str:
        """
        Create a signed token for a username.

        Raises:
            AuthenticationError: If the token cannot be signed
        """
        expires_at = self._clock() + self.ttl
        payload = {
            "sub": username,
            "iss": self.issuer,
            "exp": expires_at,
        }

        try:
            return jwt.encode(payload, self._secret, algorithm=self.algorithm)
        except (jwt.PyJWTError, NotImplementedError, TypeError, ValueError) as e:
            logger.error(f"Auth token generation failed: {type(e).__name__}: {e}")
            raise AuthenticationError("Token generation failed") from e

    def verify(self, token: str) -> Claims:
        """
        Validate signature, issuer and expiry of a token.

        Raises:
            AuthenticationError: On any failure; the cause is only logged
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["sub", "iss", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Auth token rejected: expired")
            raise AuthenticationError("Invalid token")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Auth token rejected: {type(e).__name__}")
            raise AuthenticationError("Invalid token")

        return Claims(
            subject=payload["sub"],
            issuer=payload["iss"],
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
