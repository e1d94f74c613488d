"""
Author GraphQL type definitions
"""

from uuid import UUID

import strawberry


@strawberry.type
class Author:
    """Author type for GraphQL API."""

    id: strawberry.ID
    name: str
    born: int | None

    @strawberry.field
    async def book_count(self, info: strawberry.Info) -> int:
        """Number of books referencing this author, batched per request."""
        from ..context import get_loaders

        return await get_loaders(info).book_count.load(UUID(str(self.id)))
