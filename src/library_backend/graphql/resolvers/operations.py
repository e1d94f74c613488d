"""Typed operation groups served by the resolver engine."""

from __future__ import annotations

from collections.abc import AsyncGenerator, Sequence
from typing import Protocol
from uuid import UUID

from ...auth.context import AuthContext
from ..types import Author, Book, Token, User


class QueryOps(Protocol):
    async def book_count(self) -> int: ...

    async def author_count(self) -> int: ...

    async def all_authors(self) -> list[Author]: ...

    async def all_books(
        self, author_name: str | None = None, genre: str | None = None
    ) -> list[Book]: ...

    async def author_book_count(self, author_id: UUID) -> int: ...

    async def author_book_counts(self, author_ids: Sequence[UUID]) -> list[int]: ...

    async def me(self, auth: AuthContext) -> User | None: ...


class MutationOps(Protocol):
    async def add_book(
        self,
        auth: AuthContext,
        *,
        title: str,
        author: str,
        published: int,
        genres: Sequence[str],
    ) -> Book: ...

    async def edit_author(
        self, auth: AuthContext, *, name: str, set_born_to: int
    ) -> Author | None: ...

    async def create_user(self, *, username: str, favorite_genre: str) -> User: ...

    async def login(self, *, username: str, password: str) -> Token: ...


class SubscriptionOps(Protocol):
    def book_added(self) -> AsyncGenerator[Book, None]: ...
