"""Authentication context for request handling."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class CurrentUser:
    """User record resolved from a verified session token."""

    id: UUID
    username: str
    favorite_genre: str


@dataclass(frozen=True)
class AuthContext:
    """Runtime authentication context for a request."""

    user: CurrentUser | None = None
    token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        """Check if the request is authenticated."""
        return self.user is not None

    @property
    def user_id(self) -> UUID | None:
        return self.user.id if self.user else None


ANONYMOUS = AuthContext()
