"""
Domain Entities - identity records and token claims.

User is created exactly once at registration and never updated afterwards.
Claims are ephemeral: built per issued token, never stored.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from .value_objects import InviteCode, Username


@dataclass(frozen=True)
class User:
    """
    User identity record.

    Invariants:
    1. username and invite_code are unique and immutable
    2. referred_by is set only at creation (None when no invite code was used)
    3. referrals is derived on every read, never stored
    """

    username: Username
    invite_code: InviteCode
    referred_by: Optional[Username] = None
    referrals: int = 0

    @property
    def was_referred(self) -> bool:
        return self.referred_by is not None

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation (camelCase keys)"""
        return {
            "username": self.username.value,
            "inviteCode": self.invite_code.value,
            "referredBy": self.referred_by.value if self.referred_by else None,
            "referrals": self.referrals,
        }

    def __repr__(self) -> str:
        return (
            f"User(username={self.username}, invite_code={self.invite_code}, "
            f"referred_by={self.referred_by}, referrals={self.referrals})"
        )


@dataclass(frozen=True)
class Claims:
    """Verified identity claims carried by a bearer token"""

    subject: str
    issuer: str
    expires_at: datetime
