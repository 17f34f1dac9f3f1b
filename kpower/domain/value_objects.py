"""
Value Objects for user identity.

Value objects are immutable and self-validating. They keep usernames and
invite codes from being mixed up as plain strings across the service.
"""

from dataclasses import dataclass

from .errors import InputError

# Number of leading username characters copied into every invite code
INVITE_CODE_PREFIX_LENGTH = 3

# Inclusive bounds of the numeric invite code suffix
INVITE_CODE_SUFFIX_MIN = 1001
INVITE_CODE_SUFFIX_MAX = 9999


@dataclass(frozen=True)
class Username:
    """
    Unique user handle.

    Immutable once the user is created. Used as the token subject and as
    the referrer reference on referred users.
    """

    value: str

    def __post_init__(self):
        if not self.value or not self.value.strip():
            raise InputError("Username cannot be empty")

    @property
    def invite_prefix(self) -> str:
        """
        Leading characters used to build this user's invite codes.

        Raises:
            InputError: If the username is shorter than the prefix
        """
        if len(self.value) < INVITE_CODE_PREFIX_LENGTH:
            raise InputError(
                f"Username {self.value!r} is shorter than {INVITE_CODE_PREFIX_LENGTH} characters"
            )
        return self.value[:INVITE_CODE_PREFIX_LENGTH]

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"Username('{self.value}')"


@dataclass(frozen=True)
class InviteCode:
    """
    Invite code owned by exactly one user.

    Format: first 3 characters of the owner's username + 4-digit suffix
    Example: ali4821
    """

    value: str

    def __post_init__(self):
        if not self.value or not self.value.strip():
            raise InputError("InviteCode cannot be empty")

    @classmethod
    def for_username(cls, username: Username, suffix: int) -> "InviteCode":
        """Build a code from a username and a numeric suffix"""
        if not INVITE_CODE_SUFFIX_MIN <= suffix <= INVITE_CODE_SUFFIX_MAX:
            raise InputError(
                f"Invite code suffix {suffix} outside "
                f"{INVITE_CODE_SUFFIX_MIN}-{INVITE_CODE_SUFFIX_MAX}"
            )
        return cls(f"{username.invite_prefix}{suffix}")

    def __str__(self) -> str:
        return self.value

    def __repr__(self) -> str:
        return f"InviteCode('{self.value}')"
