"""
Per-request GraphQL context: resolved identity, resolver engine and data loaders
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import strawberry
from starlette.requests import HTTPConnection

from ..auth.context import ANONYMOUS, AuthContext
from ..auth.middleware import build_auth_context
from ..auth.tokens import TokenService
from ..logging import get_logger
from .loaders import Loaders

if TYPE_CHECKING:
    from .resolvers.engine import ResolverEngine

logger = get_logger(__name__)


async def build_context(
    connection: HTTPConnection | None,
    engine: ResolverEngine,
    tokens: TokenService,
) -> dict[str, Any]:
    """Build the resolver context for one HTTP request or WebSocket connection."""
    if connection is None:
        auth = ANONYMOUS
    else:
        auth = await build_auth_context(
            connection.headers.get("authorization"),
            tokens,
            engine.session_factory,
        )

    return {
        "request": connection,
        "auth": auth,
        "engine": engine,
        "loaders": Loaders(engine),
    }


def get_auth(info: strawberry.Info) -> AuthContext:
    """Identity attached to the current request (anonymous if none)."""
    auth = info.context.get("auth")
    if auth is None:
        logger.error("Auth context not found in GraphQL context")
        return ANONYMOUS
    return auth


def get_engine(info: strawberry.Info) -> ResolverEngine:
    return info.context["engine"]


def get_loaders(info: strawberry.Info) -> Loaders:
    return info.context["loaders"]
