"""Signed session tokens carrying the logged-in user's identity."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TypedDict

import jwt
from jwt.exceptions import InvalidTokenError

from ..config import Settings
from ..logging import get_logger

logger = get_logger(__name__)


class SessionIdentity(TypedDict):
    """Identity claim embedded in a session token."""

    username: str
    id: str


class InvalidToken(Exception):
    """Raised when a token is malformed, badly signed, expired or lacks identity claims."""

    pass


class TokenService:
    """Issues and verifies HMAC-signed JWTs for logged-in users."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str = "library-backend",
        audience: str = "library-api",
        token_expiry_hours: int = 1,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.token_expiry_hours = token_expiry_hours

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenService:
        return cls(
            secret_key=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
            audience=settings.jwt_audience,
            token_expiry_hours=settings.token_expiry_hours,
        )

    async def issue(self, identity: SessionIdentity) -> str:
        """Sign ``identity`` into a token that expires after the configured window."""
        now = datetime.now(UTC)

        payload = {
            "iss": self.issuer,
            "aud": self.audience,
            "iat": now,
            "nbf": now,
            "exp": now + timedelta(hours=self.token_expiry_hours),
            "sub": str(identity["id"]),
            "username": identity["username"],
            "id": str(identity["id"]),
        }

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    async def verify(self, token: str) -> SessionIdentity:
        """Verify a token and return the identity it carries."""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={
                    "require": ["exp", "iat"],
                    "verify_exp": True,
                    "verify_nbf": True,
                    "verify_iat": True,
                },
            )
        except InvalidTokenError as e:
            logger.warning("JWT token validation failed", error=str(e))
            raise InvalidToken("Invalid token") from e

        username = payload.get("username")
        user_id = payload.get("id") or payload.get("sub")
        if not username or not user_id:
            raise InvalidToken("Token is missing identity claims")

        return SessionIdentity(username=username, id=str(user_id))
