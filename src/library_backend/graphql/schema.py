"""
Main GraphQL schema definition using Strawberry
"""

from typing import Any

import strawberry
from graphql import get_introspection_query, graphql_sync
from graphql import validate_schema as gql_validate_schema
from starlette.requests import HTTPConnection
from strawberry.fastapi import GraphQLRouter

from ..auth.tokens import TokenService
from ..logging import get_logger
from .context import build_context
from .mutations.root import Mutation
from .queries.root import Query
from .resolvers.engine import ResolverEngine
from .subscriptions.root import Subscription

logger = get_logger(__name__)

# Create the GraphQL schema
schema = strawberry.Schema(
    query=Query,
    mutation=Mutation,
    subscription=Subscription,
)


def validate_schema() -> None:
    """Validate the GraphQL schema at startup.

    Raises:
        Exception: If the schema is invalid or has unresolved types
    """
    try:
        graphql_schema = schema._schema

        errors = gql_validate_schema(graphql_schema)
        if errors:
            error_messages = [str(e) for e in errors]
            raise Exception(f"GraphQL schema validation failed: {'; '.join(error_messages)}")

        result = graphql_sync(graphql_schema, get_introspection_query())
        if result.errors:
            error_messages = [str(e) for e in result.errors]
            raise Exception(f"GraphQL introspection failed: {'; '.join(error_messages)}")

        logger.info("GraphQL schema validation successful")

    except Exception as e:
        logger.error("GraphQL schema validation failed", error=str(e))
        raise


def create_graphql_router(
    engine: ResolverEngine,
    tokens: TokenService,
    graphiql: bool = True,
) -> GraphQLRouter[dict[str, Any], None]:
    """Create a GraphQL router (HTTP and WebSocket) for FastAPI."""

    async def get_context(connection: HTTPConnection) -> dict[str, Any]:
        """Resolve the caller's identity and assemble the resolver context."""
        return await build_context(connection, engine, tokens)

    return GraphQLRouter(
        schema,
        path="/graphql",
        graphql_ide="graphiql" if graphiql else None,
        context_getter=get_context,
    )
