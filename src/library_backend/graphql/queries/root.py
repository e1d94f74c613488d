"""
Root GraphQL query definitions
"""

import strawberry

from ..context import get_auth, get_engine
from ..types import Author, Book, User


@strawberry.type
class Query:
    """Root GraphQL query type."""

    @strawberry.field
    async def book_count(self, info: strawberry.Info) -> int:
        """Total number of books."""
        return await get_engine(info).book_count()

    @strawberry.field
    async def author_count(self, info: strawberry.Info) -> int:
        """Total number of authors."""
        return await get_engine(info).author_count()

    @strawberry.field
    async def all_authors(self, info: strawberry.Info) -> list[Author]:
        """All authors in insertion order."""
        return await get_engine(info).all_authors()

    @strawberry.field
    async def all_books(
        self,
        info: strawberry.Info,
        author: str | None = None,
        genre: str | None = None,
    ) -> list[Book]:
        """Books, optionally filtered by author name and/or genre."""
        return await get_engine(info).all_books(author_name=author, genre=genre)

    @strawberry.field
    async def me(self, info: strawberry.Info) -> User | None:
        """Get the current authenticated user."""
        return await get_engine(info).me(get_auth(info))
