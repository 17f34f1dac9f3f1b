"""
Error taxonomy for the referral service.

Every failure that can reach a client is one of these variants. How a variant
is rendered on the wire lives in app-facing code (kpower.api.errors), not here.
"""


class ApiError(Exception):
    """Base class for errors surfaced to API callers"""
    pass


class InputError(ApiError):
    """Raised when caller input cannot be processed (e.g. username too short)"""
    pass


class InvalidInviteCode(ApiError):
    """Raised when a registration names an invite code nobody owns"""

    def __init__(self, code: str):
        self.code = code
        super().__init__(f"Invite code {code!r} has no owner")


class AuthenticationError(ApiError):
    """
    Raised when a token cannot be issued or verified, or when the token
    subject no longer resolves to a user.

    Signature and expiry failures are deliberately folded into this one type.
    """
    pass


class ServerError(ApiError):
    """Raised for store failures and any other internal error"""
    pass


class InviteCodeExhaustedError(ServerError):
    """Raised when the invite code attempt guard trips before a free code is found"""

    def __init__(self, username: str, attempts: int):
        self.username = username
        self.attempts = attempts
        super().__init__(f"No free invite code for {username!r} after {attempts} attempts")
