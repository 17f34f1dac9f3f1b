"""kpower - username login/registration with invite-code referrals."""
from kpower.version import __version__

__all__ = ["__version__"]
