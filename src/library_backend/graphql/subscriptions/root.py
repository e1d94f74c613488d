"""
Root GraphQL subscription definitions
"""

from collections.abc import AsyncGenerator
from uuid import UUID

import strawberry

from ..context import get_engine, get_loaders
from ..types import Book


@strawberry.type
class Subscription:
    """Root GraphQL subscription type."""

    @strawberry.subscription(name="bookAdded")
    async def book_added(self, info: strawberry.Info) -> AsyncGenerator[Book, None]:
        """Every book added while the subscription is open."""
        stream = get_engine(info).book_added()
        try:
            async for book in stream:
                # the connection-scoped loader may hold a count from an earlier event
                get_loaders(info).forget_book_count(UUID(book.author.id))
                yield book
        finally:
            await stream.aclose()
