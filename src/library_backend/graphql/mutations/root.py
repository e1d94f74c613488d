"""
Root GraphQL mutation definitions
"""

from uuid import UUID

import strawberry

from ..context import get_auth, get_engine, get_loaders
from ..types import Author, Book, Token, User


@strawberry.type
class Mutation:
    """Root GraphQL mutation type."""

    # Catalog mutations
    @strawberry.mutation(name="addBook")
    async def add_book(
        self,
        info: strawberry.Info,
        title: str,
        author: str,
        published: int,
        genres: list[str],
    ) -> Book:
        """Add a book, creating the author if needed. Requires login."""
        book = await get_engine(info).add_book(
            get_auth(info),
            title=title,
            author=author,
            published=published,
            genres=genres,
        )
        get_loaders(info).forget_book_count(UUID(book.author.id))
        return book

    @strawberry.mutation(name="editAuthor")
    async def edit_author(
        self, info: strawberry.Info, name: str, set_born_to: int
    ) -> Author | None:
        """Set an author's birth year. Requires login."""
        return await get_engine(info).edit_author(
            get_auth(info), name=name, set_born_to=set_born_to
        )

    # Account mutations
    @strawberry.mutation(name="createUser")
    async def create_user(
        self, info: strawberry.Info, username: str, favorite_genre: str
    ) -> User:
        """Register a new user."""
        return await get_engine(info).create_user(
            username=username, favorite_genre=favorite_genre
        )

    @strawberry.mutation
    async def login(self, info: strawberry.Info, username: str, password: str) -> Token:
        """Exchange credentials for a session token."""
        return await get_engine(info).login(username=username, password=password)
