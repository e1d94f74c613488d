from __future__ import annotations

import secrets
from collections.abc import AsyncGenerator, Sequence
from uuid import UUID

import strawberry
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ...auth.context import AuthContext, CurrentUser
from ...auth.middleware import SessionFactory
from ...auth.tokens import SessionIdentity, TokenService
from ...catalog import repository as catalog_repo
from ...config import Settings
from ...database.connection import get_async_session
from ...dbmodels import Authors, Books, Users
from ...logging import get_logger
from ...notifier import BOOK_ADDED, AuthorPayload, BookPayload, ChangeNotifier
from ...users import repository as users_repo
from ..errors import AuthenticationError, AuthorizationError, UserInputError
from ..types import Author, Book, Token, User
from .operations import MutationOps, QueryOps, SubscriptionOps

logger = get_logger(__name__)


def author_from_row(row: Authors) -> Author:
    return Author(id=strawberry.ID(str(row.id)), name=row.name, born=row.born)


def book_from_row(row: Books) -> Book:
    return Book(
        id=strawberry.ID(str(row.id)),
        title=row.title,
        published=row.published,
        genres=row.genres,
        author=author_from_row(row.author),
    )


def user_from_row(row: Users | CurrentUser) -> User:
    return User(
        id=strawberry.ID(str(row.id)),
        username=row.username,
        favorite_genre=row.favorite_genre,
    )


def payload_from_row(row: Books) -> BookPayload:
    return BookPayload(
        id=row.id,
        title=row.title,
        published=row.published,
        genres=row.genres,
        author=AuthorPayload(id=row.author.id, name=row.author.name, born=row.author.born),
    )


def book_from_payload(payload: BookPayload) -> Book:
    return Book(
        id=strawberry.ID(str(payload.id)),
        title=payload.title,
        published=payload.published,
        genres=list(payload.genres),
        author=Author(
            id=strawberry.ID(str(payload.author.id)),
            name=payload.author.name,
            born=payload.author.born,
        ),
    )


class ResolverEngine(QueryOps, MutationOps, SubscriptionOps):
    """
    Implements every catalog query, mutation and subscription.

    Collaborators are injected once per process: the session factory used
    by the repositories, the token service used by ``login`` and the
    notifier that carries ``book-added`` events.
    """

    def __init__(
        self,
        *,
        tokens: TokenService,
        notifier: ChangeNotifier,
        settings: Settings,
        session_factory: SessionFactory = get_async_session,
    ):
        self.tokens = tokens
        self.notifier = notifier
        self.settings = settings
        self.session_factory = session_factory

    # Query resolvers
    async def book_count(self) -> int:
        async with self.session_factory() as session:
            return await catalog_repo.count_books(session)

    async def author_count(self) -> int:
        async with self.session_factory() as session:
            return await catalog_repo.count_authors(session)

    async def all_authors(self) -> list[Author]:
        async with self.session_factory() as session:
            rows = await catalog_repo.list_authors(session)
            return [author_from_row(row) for row in rows]

    async def all_books(
        self, author_name: str | None = None, genre: str | None = None
    ) -> list[Book]:
        """
        Books matching the combined author-name and genre filter.

        An empty string counts as an absent filter. An author name that
        matches no author yields an empty list.
        """
        author_name = author_name or None
        genre = genre or None

        async with self.session_factory() as session:
            author_id = None
            if author_name is not None:
                author = await catalog_repo.find_author_by_name(session, author_name)
                if author is None:
                    logger.debug("allBooks filter names unknown author", author=author_name)
                    return []
                author_id = author.id

            rows = await catalog_repo.find_books_by_filter(
                session, author_id=author_id, genre=genre
            )
            return [book_from_row(row) for row in rows]

    async def author_book_count(self, author_id: UUID) -> int:
        (count,) = await self.author_book_counts([author_id])
        return count

    async def author_book_counts(self, author_ids: Sequence[UUID]) -> list[int]:
        async with self.session_factory() as session:
            counts = await catalog_repo.count_books_by_authors(session, author_ids)
        return [counts.get(author_id, 0) for author_id in author_ids]

    async def me(self, auth: AuthContext) -> User | None:
        if auth.user is None:
            return None
        return user_from_row(auth.user)

    # Mutation resolvers
    async def add_book(
        self,
        auth: AuthContext,
        *,
        title: str,
        author: str,
        published: int,
        genres: Sequence[str],
    ) -> Book:
        """
        Add a book, creating its author first if no author has that name.

        The author is committed before the book is inserted. The stored book
        is re-read with its author and published on ``book-added``.
        """
        current_user = self._require_user(auth, "addBook")

        try:
            author_row = await self._find_or_create_author(author)
            async with self.session_factory() as session:
                book = await catalog_repo.create_book(
                    session,
                    title=title,
                    published=published,
                    genres=list(genres),
                    author_id=author_row.id,
                )
                book_id = book.id
        except SQLAlchemyError as e:
            logger.error("Saving book failed", author=author, title=title, error=str(e))
            raise UserInputError(
                "Saving book failed", invalid_args=author, original_error=e
            ) from e

        async with self.session_factory() as session:
            saved = await catalog_repo.get_book(session, book_id)
            if saved is None:
                raise RuntimeError("Book vanished after insert")
            result = book_from_row(saved)
            payload = payload_from_row(saved)

        logger.info(
            "Book added",
            book_id=str(book_id),
            author=author,
            user_id=str(current_user.id),
        )

        await self.notifier.publish(BOOK_ADDED, payload)
        return result

    async def edit_author(
        self, auth: AuthContext, *, name: str, set_born_to: int
    ) -> Author | None:
        """Set an author's birth year. Unknown names return None."""
        self._require_user(auth, "editAuthor")

        async with self.session_factory() as session:
            author = await catalog_repo.find_author_by_name(session, name)
            if author is None:
                logger.info("editAuthor target not found", author=name)
                return None

            try:
                updated = await catalog_repo.update_author_birth_year(
                    session, author.id, set_born_to
                )
                await session.commit()
            except SQLAlchemyError as e:
                logger.error("Saving birth year failed", author=name, born=set_born_to, error=str(e))
                raise UserInputError(
                    "Saving birth year failed", invalid_args=set_born_to, original_error=e
                ) from e

            if updated is None:
                return None

            logger.info("Author updated", author_id=str(updated.id), born=set_born_to)
            return author_from_row(updated)

    async def create_user(self, *, username: str, favorite_genre: str) -> User:
        try:
            async with self.session_factory() as session:
                user = await users_repo.create_user(
                    session, username=username, favorite_genre=favorite_genre
                )
                result = user_from_row(user)
        except SQLAlchemyError as e:
            logger.warning("Creating the user failed", username=username, error=str(e))
            raise UserInputError(
                "Creating the user failed", invalid_args=username, original_error=e
            ) from e

        logger.info("User created", user_id=str(result.id), username=username)
        return result

    async def login(self, *, username: str, password: str) -> Token:
        """
        Issue a session token.

        All users share one configured password (``login_shared_secret``);
        the user table stores none.
        """
        async with self.session_factory() as session:
            user = await users_repo.find_user_by_username(session, username)

        password_ok = secrets.compare_digest(
            password.encode(), self.settings.login_shared_secret.encode()
        )
        if user is None or not password_ok:
            logger.info("Login rejected", username=username, known_user=user is not None)
            raise AuthenticationError("wrong credentials")

        value = await self.tokens.issue(SessionIdentity(username=user.username, id=str(user.id)))
        logger.info("User logged in", user_id=str(user.id))
        return Token(value=value)

    # Subscription resolvers
    async def book_added(self) -> AsyncGenerator[Book, None]:
        stream = self.notifier.subscribe(BOOK_ADDED)
        try:
            async for payload in stream:
                yield book_from_payload(payload)
        finally:
            await stream.aclose()

    def _require_user(self, auth: AuthContext | None, operation: str) -> CurrentUser:
        if auth is None or auth.user is None:
            logger.info("Unauthenticated mutation rejected", operation=operation)
            raise AuthorizationError("not authenticated")
        return auth.user

    async def _find_or_create_author(self, name: str) -> Authors:
        """Look up an author by exact name, creating it if absent.

        The unique constraint on ``authors.name`` decides concurrent creates;
        the loser re-reads the winner's row.
        """
        async with self.session_factory() as session:
            existing = await catalog_repo.find_author_by_name(session, name)
        if existing is not None:
            return existing

        try:
            async with self.session_factory() as session:
                created = await catalog_repo.create_author(session, name)
        except IntegrityError:
            async with self.session_factory() as session:
                existing = await catalog_repo.find_author_by_name(session, name)
            if existing is None:
                raise
            logger.info("Author created concurrently, reusing it", author=name)
            return existing

        logger.info("Author created", author_id=str(created.id), author=name)
        return created
