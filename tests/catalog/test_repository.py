"""Tests for the catalog and user repositories against a SQLite database."""

from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from library_backend.catalog import repository as catalog_repo
from library_backend.database.connection import get_async_session
from library_backend.users import repository as users_repo


async def _seed(session):
    herbert = await catalog_repo.create_author(session, "Frank Herbert")
    le_guin = await catalog_repo.create_author(session, "Ursula K. Le Guin", born=1929)
    await catalog_repo.create_book(
        session, title="Dune", published=1965, genres=["scifi", "classic"], author_id=herbert.id
    )
    await catalog_repo.create_book(
        session,
        title="The Left Hand of Darkness",
        published=1969,
        genres=["scifi"],
        author_id=le_guin.id,
    )
    await catalog_repo.create_book(
        session, title="A Wizard of Earthsea", published=1968, genres=["fantasy"], author_id=le_guin.id
    )
    return herbert, le_guin


@pytest.mark.integration
class TestCatalogRepository:
    @pytest.mark.asyncio
    async def test_author_lookup_is_exact(self, db_session):
        await catalog_repo.create_author(db_session, "Frank Herbert")

        assert (await catalog_repo.find_author_by_name(db_session, "Frank Herbert")) is not None
        assert (await catalog_repo.find_author_by_name(db_session, "frank herbert")) is None

    @pytest.mark.asyncio
    async def test_author_names_are_unique(self, database):
        async with get_async_session() as session:
            await catalog_repo.create_author(session, "Frank Herbert")

        with pytest.raises(IntegrityError):
            async with get_async_session() as session:
                await catalog_repo.create_author(session, "Frank Herbert")

    @pytest.mark.asyncio
    async def test_list_authors_in_insertion_order(self, db_session):
        herbert, le_guin = await _seed(db_session)

        authors = await catalog_repo.list_authors(db_session)

        assert [a.id for a in authors] == [herbert.id, le_guin.id]
        assert await catalog_repo.count_authors(db_session) == 2

    @pytest.mark.asyncio
    async def test_book_genres_keep_input_order(self, database):
        async with get_async_session() as session:
            herbert = await catalog_repo.create_author(session, "Frank Herbert")
            book = await catalog_repo.create_book(
                session,
                title="Dune",
                published=1965,
                genres=["scifi", "classic", "desert"],
                author_id=herbert.id,
            )

        async with get_async_session() as session:
            stored = await catalog_repo.get_book(session, book.id)

        assert stored is not None
        assert stored.genres == ["scifi", "classic", "desert"]
        assert stored.author.name == "Frank Herbert"

    @pytest.mark.asyncio
    async def test_find_books_by_filter(self, db_session):
        _, le_guin = await _seed(db_session)

        everything = await catalog_repo.find_books_by_filter(db_session)
        by_le_guin = await catalog_repo.find_books_by_filter(db_session, author_id=le_guin.id)
        scifi = await catalog_repo.find_books_by_filter(db_session, genre="scifi")
        both = await catalog_repo.find_books_by_filter(
            db_session, author_id=le_guin.id, genre="fantasy"
        )
        none = await catalog_repo.find_books_by_filter(db_session, genre="horror")

        assert len(everything) == 3
        assert {b.title for b in by_le_guin} == {"The Left Hand of Darkness", "A Wizard of Earthsea"}
        assert {b.title for b in scifi} == {"Dune", "The Left Hand of Darkness"}
        assert [b.title for b in both] == ["A Wizard of Earthsea"]
        assert none == []

    @pytest.mark.asyncio
    async def test_count_books_by_authors(self, db_session):
        herbert, le_guin = await _seed(db_session)
        lonely = await catalog_repo.create_author(db_session, "Nobody Yet")

        counts = await catalog_repo.count_books_by_authors(
            db_session, [herbert.id, le_guin.id, lonely.id]
        )

        assert counts == {herbert.id: 1, le_guin.id: 2}
        assert await catalog_repo.count_books_by_authors(db_session, []) == {}
        assert await catalog_repo.count_books(db_session) == 3

    @pytest.mark.asyncio
    async def test_update_author_birth_year(self, db_session):
        herbert = await catalog_repo.create_author(db_session, "Frank Herbert")

        updated = await catalog_repo.update_author_birth_year(db_session, herbert.id, 1920)

        assert updated is not None
        assert updated.born == 1920
        assert await catalog_repo.update_author_birth_year(db_session, uuid4(), 1920) is None


@pytest.mark.integration
class TestUsersRepository:
    @pytest.mark.asyncio
    async def test_create_and_find_user(self, db_session):
        user = await users_repo.create_user(db_session, username="alice", favorite_genre="scifi")

        assert (await users_repo.find_user_by_username(db_session, "alice")).id == user.id
        assert (await users_repo.find_user_by_id(db_session, user.id)).username == "alice"
        assert await users_repo.find_user_by_username(db_session, "bob") is None

    @pytest.mark.asyncio
    async def test_usernames_are_unique(self, database):
        async with get_async_session() as session:
            await users_repo.create_user(session, username="alice", favorite_genre="scifi")

        with pytest.raises(IntegrityError):
            async with get_async_session() as session:
                await users_repo.create_user(session, username="alice", favorite_genre="poetry")
