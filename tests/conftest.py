"""
Shared pytest fixtures and configuration for all tests.
"""

import os
from collections.abc import AsyncGenerator, Generator
from typing import Any

import pytest
import pytest_asyncio

from library_backend.auth.context import AuthContext, CurrentUser
from library_backend.auth.tokens import TokenService
from library_backend.config import Settings
from library_backend.database.connection import (
    create_schema,
    dispose_database,
    get_async_session,
    init_database,
    reset_database,
)
from library_backend.graphql.resolvers.engine import ResolverEngine
from library_backend.notifier import InProcessNotifier
from library_backend.users import repository as users_repo


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url="sqlite://",
        jwt_secret="test-secret-key-for-testing-only",
        jwt_issuer="test-library",
        jwt_audience="test-api",
        login_shared_secret="secret",
        environment="test",
    )


@pytest.fixture
def tokens(test_settings: Settings) -> TokenService:
    return TokenService.from_settings(test_settings)


@pytest.fixture
def notifier() -> InProcessNotifier:
    return InProcessNotifier(queue_size=10)


@pytest_asyncio.fixture(scope="function")
async def database(tmp_path) -> AsyncGenerator[str, None]:
    """Fresh SQLite database file with the schema created from the ORM models."""
    url = f"sqlite+aiosqlite:///{tmp_path}/library-test.db"
    reset_database()
    init_database(url, force_reinit=True)
    await create_schema()
    yield url
    await dispose_database()


@pytest_asyncio.fixture(scope="function")
async def db_session(database: str) -> AsyncGenerator[Any, None]:
    """Provide an async SQLAlchemy session bound to the test database."""
    _ = database
    async with get_async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def engine(
    database: str, tokens: TokenService, notifier: InProcessNotifier, test_settings: Settings
) -> ResolverEngine:
    _ = database
    return ResolverEngine(tokens=tokens, notifier=notifier, settings=test_settings)


@pytest_asyncio.fixture(scope="function")
async def alice(database: str) -> CurrentUser:
    """A stored user named alice."""
    _ = database
    async with get_async_session() as session:
        user = await users_repo.create_user(session, username="alice", favorite_genre="scifi")
    return CurrentUser(id=user.id, username=user.username, favorite_genre=user.favorite_genre)


@pytest.fixture
def alice_auth(alice: CurrentUser) -> AuthContext:
    return AuthContext(user=alice, token="alice-token")


@pytest.fixture(autouse=True)
def reset_environment() -> Generator[None, None, None]:
    """Reset environment variables for each test."""
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Test markers
def pytest_configure(config: Any) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: mark test as integration test")  # type: ignore[reportUnknownMemberType]
    config.addinivalue_line("markers", "unit: mark test as unit test")  # type: ignore[reportUnknownMemberType]
