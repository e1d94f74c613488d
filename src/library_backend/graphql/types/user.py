"""
User GraphQL type definitions
"""

import strawberry


@strawberry.type
class User:
    """User type for GraphQL API."""

    id: strawberry.ID
    username: str
    favorite_genre: str


@strawberry.type
class Token:
    """Signed session token returned by login."""

    value: str
