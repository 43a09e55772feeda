"""Shared fixtures for integration tests.

Every test gets its own SQLite database file under ``tmp_path``; the process
wide engine is reset before and disposed after each test so no state leaks
between them.
"""

from collections.abc import AsyncGenerator, Awaitable, Callable, Generator
from contextlib import AsyncExitStack
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.main import create_app, lifespan
from src.core.config import get_settings
from src.core.context import RequestContext
from src.infrastructure.database.session import (
    _db_manager,
    close_database,
    create_schema,
    get_async_session,
)

ClientFactoryType = Callable[..., Awaitable[AsyncClient]]


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    """URL of a fresh SQLite database file."""
    return f"sqlite+aiosqlite:///{tmp_path / 'tax_records.db'}"


@pytest.fixture(autouse=True)
def isolated_database(
    monkeypatch: pytest.MonkeyPatch, database_url: str
) -> Generator[None]:
    """Point the application at the per-test database."""
    monkeypatch.setenv("DATABASE_CONFIG__DATABASE_URL", database_url)
    get_settings.cache_clear()
    _db_manager.reset()
    RequestContext.clear()
    yield
    get_settings.cache_clear()
    RequestContext.clear()


@pytest.fixture(autouse=True)
async def dispose_engine() -> AsyncGenerator[None]:
    """Dispose of the engine created during the test."""
    yield
    await close_database()


@pytest.fixture
async def client_factory(
    monkeypatch: pytest.MonkeyPatch,
) -> AsyncGenerator[ClientFactoryType]:
    """Build clients for a fresh app whose lifespan has run.

    Keyword arguments are set as environment variables before the app is
    created, e.g. ``await client_factory(DATABASE_CONFIG__SEED_ON_STARTUP="false")``.
    """
    async with AsyncExitStack() as stack:

        async def _create_client(**env: str) -> AsyncClient:
            for key, value in env.items():
                monkeypatch.setenv(key, value)
            get_settings.cache_clear()

            app = create_app()
            await stack.enter_async_context(lifespan(app))
            return await stack.enter_async_context(
                AsyncClient(transport=ASGITransport(app=app), base_url="http://test")
            )

        yield _create_client


@pytest.fixture
async def client(client_factory: ClientFactoryType) -> AsyncClient:
    """Client for an app started with the initial records loaded."""
    return await client_factory()


@pytest.fixture
async def empty_client(client_factory: ClientFactoryType) -> AsyncClient:
    """Client for an app started without the initial records."""
    return await client_factory(DATABASE_CONFIG__SEED_ON_STARTUP="false")


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession]:
    """Session on a database with the schema created and no rows."""
    await create_schema()
    async with get_async_session() as session:
        yield session
