"""Per-request identity resolution from bearer credentials."""

from __future__ import annotations

from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from ..database.connection import get_async_session
from ..logging import get_logger, user_id_ctx
from ..users import repository as users_repo
from .context import ANONYMOUS, AuthContext, CurrentUser
from .tokens import InvalidToken, TokenService

logger = get_logger(__name__)

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]


async def build_auth_context(
    authorization: str | None,
    tokens: TokenService,
    session_factory: SessionFactory = get_async_session,
) -> AuthContext:
    """
    Resolve the caller's identity from an Authorization header value.

    This function:
    1. Extracts the Bearer token from the header
    2. Verifies it with the token service
    3. Loads the user named by the token's id claim

    A missing header, a non-bearer scheme, an invalid token or an unknown
    user all yield the anonymous context. Operations that need an identity
    enforce that themselves.

    Args:
        authorization: Raw Authorization header, if any
        tokens: Token service used for verification
        session_factory: Async session context manager factory

    Returns:
        AuthContext for the request
    """
    if not authorization:
        return ANONYMOUS

    if not authorization.startswith("Bearer "):
        logger.warning("Invalid authorization format received")
        return ANONYMOUS

    token = authorization[7:].strip()  # Remove "Bearer " prefix
    if not token:
        logger.warning("Empty token provided")
        return ANONYMOUS

    try:
        identity = await tokens.verify(token)
        user_id = UUID(identity["id"])
    except (InvalidToken, ValueError) as e:
        logger.info("Ignoring unusable bearer token", error=str(e))
        return ANONYMOUS

    async with session_factory() as session:
        user = await users_repo.find_user_by_id(session, user_id)

    if user is None:
        logger.info("Token refers to unknown user", user_id=str(user_id))
        return ANONYMOUS

    user_id_ctx.set(str(user.id))
    logger.debug("Request authenticated", username=user.username)

    return AuthContext(
        user=CurrentUser(id=user.id, username=user.username, favorite_genre=user.favorite_genre),
        token=token,
    )
