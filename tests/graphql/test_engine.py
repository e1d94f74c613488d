"""Tests for the resolver engine: queries, mutations and the bookAdded stream."""

import asyncio
from unittest.mock import patch
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import SQLAlchemyError

from library_backend.auth import ANONYMOUS, build_auth_context
from library_backend.catalog import repository as catalog_repo
from library_backend.database.connection import get_async_session
from library_backend.graphql.errors import (
    AuthenticationError,
    AuthorizationError,
    UserInputError,
)
from library_backend.notifier import AuthorPayload, BookPayload


async def _add(engine, auth, title, author, published=1965, genres=("scifi",)):
    return await engine.add_book(
        auth, title=title, author=author, published=published, genres=list(genres)
    )


@pytest.mark.integration
class TestQueries:
    @pytest.mark.asyncio
    async def test_empty_catalog(self, engine):
        assert await engine.book_count() == 0
        assert await engine.author_count() == 0
        assert await engine.all_authors() == []
        assert await engine.all_books() == []

    @pytest.mark.asyncio
    async def test_all_books_filters(self, engine, alice_auth):
        await _add(engine, alice_auth, "Dune", "Frank Herbert", genres=["scifi", "classic"])
        await _add(engine, alice_auth, "Earthsea", "Ursula K. Le Guin", 1968, ["fantasy"])
        await _add(engine, alice_auth, "The Dispossessed", "Ursula K. Le Guin", 1974, ["scifi"])

        everything = await engine.all_books()
        by_author = await engine.all_books(author_name="Ursula K. Le Guin")
        by_genre = await engine.all_books(genre="scifi")
        both = await engine.all_books(author_name="Ursula K. Le Guin", genre="scifi")

        assert [b.title for b in everything] == ["Dune", "Earthsea", "The Dispossessed"]
        assert [b.title for b in by_author] == ["Earthsea", "The Dispossessed"]
        assert [b.title for b in by_genre] == ["Dune", "The Dispossessed"]
        assert [b.title for b in both] == ["The Dispossessed"]

    @pytest.mark.asyncio
    async def test_unknown_author_filter_is_empty(self, engine, alice_auth):
        await _add(engine, alice_auth, "Dune", "Frank Herbert")

        assert await engine.all_books(author_name="Nobody") == []
        assert await engine.all_books(author_name="Nobody", genre="scifi") == []

    @pytest.mark.asyncio
    async def test_empty_string_filters_are_ignored(self, engine, alice_auth):
        await _add(engine, alice_auth, "Dune", "Frank Herbert", genres=["scifi"])
        await _add(engine, alice_auth, "Earthsea", "Ursula K. Le Guin", 1968, ["fantasy"])

        assert [b.title for b in await engine.all_books(author_name="")] == ["Dune", "Earthsea"]
        assert [b.title for b in await engine.all_books(genre="")] == ["Dune", "Earthsea"]
        assert [b.title for b in await engine.all_books(author_name="", genre="fantasy")] == [
            "Earthsea"
        ]

    @pytest.mark.asyncio
    async def test_author_book_counts_include_zero(self, engine, alice_auth, database):
        await _add(engine, alice_auth, "Dune", "Frank Herbert")
        await _add(engine, alice_auth, "Dune Messiah", "Frank Herbert", 1969)

        async with get_async_session() as session:
            lonely = await catalog_repo.create_author(session, "Nobody Yet")

        authors = {a.name: UUID(a.id) for a in await engine.all_authors()}
        counts = await engine.author_book_counts([authors["Frank Herbert"], lonely.id])

        assert counts == [2, 0]
        assert await engine.author_book_count(authors["Frank Herbert"]) == 2

    @pytest.mark.asyncio
    async def test_me(self, engine, alice_auth):
        me = await engine.me(alice_auth)

        assert me is not None
        assert me.username == "alice"
        assert me.favorite_genre == "scifi"
        assert await engine.me(ANONYMOUS) is None


@pytest.mark.integration
class TestAddBook:
    @pytest.mark.asyncio
    async def test_requires_login(self, engine):
        with pytest.raises(AuthorizationError) as exc_info:
            await _add(engine, ANONYMOUS, "Dune", "Frank Herbert")

        assert exc_info.value.extensions["code"] == "UNAUTHENTICATED"
        assert await engine.book_count() == 0
        assert await engine.author_count() == 0

    @pytest.mark.asyncio
    async def test_creates_author_then_reuses_it(self, engine, alice_auth):
        dune = await _add(engine, alice_auth, "Dune", "Frank Herbert", genres=["scifi", "classic"])
        messiah = await _add(engine, alice_auth, "Dune Messiah", "Frank Herbert", 1969)

        assert dune.title == "Dune"
        assert dune.genres == ["scifi", "classic"]
        assert dune.author.name == "Frank Herbert"
        assert dune.author.born is None
        assert messiah.author.id == dune.author.id
        assert await engine.author_count() == 1
        assert await engine.book_count() == 2

    @pytest.mark.asyncio
    async def test_author_created_concurrently_is_reused(self, engine, alice_auth, database):
        async with get_async_session() as session:
            existing = await catalog_repo.create_author(session, "Frank Herbert")

        real_lookup = catalog_repo.find_author_by_name
        calls = []

        async def miss_first_lookup(session, name):
            calls.append(name)
            if len(calls) == 1:
                return None
            return await real_lookup(session, name)

        with patch.object(catalog_repo, "find_author_by_name", new=miss_first_lookup):
            book = await _add(engine, alice_auth, "Dune", "Frank Herbert")

        assert book.author.id == str(existing.id)
        assert await engine.author_count() == 1

    @pytest.mark.asyncio
    async def test_store_failure_is_user_input_error(self, engine, alice_auth):
        async def broken_create_book(session, **kwargs):
            _ = session, kwargs
            raise SQLAlchemyError("disk full")

        with patch.object(catalog_repo, "create_book", new=broken_create_book):
            with pytest.raises(UserInputError) as exc_info:
                await _add(engine, alice_auth, "Dune", "Frank Herbert")

        assert exc_info.value.extensions == {
            "code": "BAD_USER_INPUT",
            "invalidArgs": "Frank Herbert",
        }
        assert await engine.book_count() == 0


@pytest.mark.integration
class TestEditAuthor:
    @pytest.mark.asyncio
    async def test_requires_login(self, engine, alice_auth):
        await _add(engine, alice_auth, "Dune", "Frank Herbert")

        with pytest.raises(AuthorizationError):
            await engine.edit_author(ANONYMOUS, name="Frank Herbert", set_born_to=1920)

        (author,) = await engine.all_authors()
        assert author.born is None

    @pytest.mark.asyncio
    async def test_sets_birth_year(self, engine, alice_auth):
        await _add(engine, alice_auth, "Dune", "Frank Herbert")

        edited = await engine.edit_author(alice_auth, name="Frank Herbert", set_born_to=1920)

        assert edited is not None
        assert edited.born == 1920
        (author,) = await engine.all_authors()
        assert author.born == 1920

    @pytest.mark.asyncio
    async def test_unknown_author_returns_none(self, engine, alice_auth):
        assert await engine.edit_author(alice_auth, name="Nobody", set_born_to=1900) is None
        assert await engine.author_count() == 0


@pytest.mark.integration
class TestAccounts:
    @pytest.mark.asyncio
    async def test_create_user(self, engine):
        user = await engine.create_user(username="bob", favorite_genre="poetry")

        assert user.username == "bob"
        assert user.favorite_genre == "poetry"
        assert UUID(user.id)

    @pytest.mark.asyncio
    async def test_duplicate_username(self, engine, alice):
        with pytest.raises(UserInputError) as exc_info:
            await engine.create_user(username="alice", favorite_genre="poetry")

        assert exc_info.value.invalid_args == "alice"
        assert exc_info.value.extensions["code"] == "BAD_USER_INPUT"

    @pytest.mark.asyncio
    async def test_login_issues_token_for_user(self, engine, alice, tokens):
        token = await engine.login(username="alice", password="secret")

        identity = await tokens.verify(token.value)
        assert identity == {"username": "alice", "id": str(alice.id)}

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, engine, alice):
        with pytest.raises(AuthenticationError) as exc_info:
            await engine.login(username="alice", password="hunter2")

        assert str(exc_info.value) == "wrong credentials"
        assert exc_info.value.extensions["code"] == "BAD_CREDENTIALS"

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, engine, database):
        with pytest.raises(AuthenticationError):
            await engine.login(username="nobody", password="secret")


@pytest.mark.integration
class TestBookAdded:
    @pytest.mark.asyncio
    async def test_subscriber_receives_added_book(self, engine, notifier, alice_auth):
        stream = engine.book_added()
        next_book = asyncio.create_task(stream.__anext__())
        # let the generator register before publishing
        while notifier.subscriber_count("book-added") == 0:
            await asyncio.sleep(0)

        added = await _add(engine, alice_auth, "Dune", "Frank Herbert", genres=["scifi"])
        received = await asyncio.wait_for(next_book, timeout=2)
        await stream.aclose()

        assert received.id == added.id
        assert received.title == "Dune"
        assert received.genres == ["scifi"]
        assert received.author.id == added.author.id
        assert received.author.name == "Frank Herbert"
        assert notifier.subscriber_count("book-added") == 0

    @pytest.mark.asyncio
    async def test_failed_mutation_publishes_nothing(self, engine, notifier):
        stream = notifier.subscribe("book-added")

        with pytest.raises(AuthorizationError):
            await _add(engine, ANONYMOUS, "Dune", "Frank Herbert")

        assert await notifier.publish("book-added", _marker_payload()) == 1
        assert (await stream.__anext__()).title == "marker"
        await stream.aclose()


def _marker_payload():
    return BookPayload(
        id=uuid4(), title="marker", published=2000, author=AuthorPayload(id=uuid4(), name="X")
    )


@pytest.mark.integration
class TestFullScenario:
    @pytest.mark.asyncio
    async def test_register_login_add_and_query(self, engine, tokens):
        await engine.create_user(username="alice", favorite_genre="scifi")
        token = await engine.login(username="alice", password="secret")
        auth = await build_auth_context(f"Bearer {token.value}", tokens)

        me = await engine.me(auth)
        assert me is not None and me.username == "alice"

        await _add(engine, auth, "Dune", "Herbert", genres=["scifi"])
        await engine.edit_author(auth, name="Herbert", set_born_to=1920)

        (author,) = await engine.all_authors()
        assert author.name == "Herbert"
        assert author.born == 1920
        assert await engine.author_book_count(UUID(author.id)) == 1
        assert [b.title for b in await engine.all_books(author_name="Herbert")] == ["Dune"]
        assert [b.title for b in await engine.all_books(genre="scifi")] == ["Dune"]
