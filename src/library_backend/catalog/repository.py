"""Repository helpers for authors and books."""

from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..dbmodels import Authors, BookGenres, Books


def _books_query():
    return select(Books).options(
        selectinload(Books.author),
        selectinload(Books.genre_rows),
    )


async def find_author_by_name(session: AsyncSession, name: str) -> Authors | None:
    stmt = select(Authors).where(Authors.name == name)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def create_author(session: AsyncSession, name: str, born: int | None = None) -> Authors:
    author = Authors(name=name, born=born)
    session.add(author)
    await session.flush()
    return author


async def update_author_birth_year(
    session: AsyncSession, author_id: UUID, year: int
) -> Authors | None:
    author = await session.get(Authors, author_id)
    if author is None:
        return None
    author.born = year
    await session.flush()
    await session.refresh(author)
    return author


async def list_authors(session: AsyncSession) -> Sequence[Authors]:
    stmt = select(Authors).order_by(Authors.created_at, Authors.id)
    res = await session.execute(stmt)
    return res.scalars().all()


async def find_books_by_filter(
    session: AsyncSession,
    *,
    author_id: UUID | None = None,
    genre: str | None = None,
) -> Sequence[Books]:
    """Books matching every given filter, with author and genres loaded.

    ``genre`` matches on membership in the book's genre list.
    """
    stmt = _books_query()
    if author_id is not None:
        stmt = stmt.where(Books.author_id == author_id)
    if genre is not None:
        tagged = select(BookGenres.book_id).where(BookGenres.genre == genre)
        stmt = stmt.where(Books.id.in_(tagged))
    stmt = stmt.order_by(Books.created_at, Books.id)
    res = await session.execute(stmt)
    return res.scalars().all()


async def get_book(session: AsyncSession, book_id: UUID) -> Books | None:
    stmt = _books_query().where(Books.id == book_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def create_book(
    session: AsyncSession,
    *,
    title: str,
    published: int,
    genres: Sequence[str],
    author_id: UUID,
) -> Books:
    book = Books(title=title, published=published, author_id=author_id)
    book.genre_rows = [
        BookGenres(position=position, genre=genre) for position, genre in enumerate(genres)
    ]
    session.add(book)
    await session.flush()
    return book


async def count_authors(session: AsyncSession) -> int:
    res = await session.execute(select(func.count()).select_from(Authors))
    return res.scalar_one()


async def count_books(session: AsyncSession) -> int:
    res = await session.execute(select(func.count()).select_from(Books))
    return res.scalar_one()


async def count_books_by_authors(session: AsyncSession, author_ids: Sequence[UUID]) -> dict[UUID, int]:
    """Book counts keyed by author id; authors without books are absent."""
    if not author_ids:
        return {}
    stmt = (
        select(Books.author_id, func.count(Books.id))
        .where(Books.author_id.in_(author_ids))
        .group_by(Books.author_id)
    )
    res = await session.execute(stmt)
    return {author_id: count for author_id, count in res.all()}
