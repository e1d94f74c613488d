"""Authentication for the library backend."""

from .context import ANONYMOUS, AuthContext, CurrentUser
from .middleware import build_auth_context
from .tokens import InvalidToken, SessionIdentity, TokenService

__all__ = [
    "ANONYMOUS",
    "AuthContext",
    "CurrentUser",
    "InvalidToken",
    "SessionIdentity",
    "TokenService",
    "build_auth_context",
]
