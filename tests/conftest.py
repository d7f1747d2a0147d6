"""Pytest fixtures for testing."""
import os

# Must be set before any app imports that trigger Settings validation.
# Tests run in dev mode (bypasses auth) regardless of local .env.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DEV_MODE"] = "true"

from collections.abc import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
from fastapi import Request  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from db.session import build_engine  # noqa: E402
from db.unit_of_work import UnitOfWork  # noqa: E402
from models.base import Base  # noqa: E402

DEV_USER_ID = "dev|local-development-user"
OTHER_USER_ID = "auth0|other-user-456"

# Header the test auth override reads to decide who is calling
TEST_USER_HEADER = "X-Test-User"


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create a fresh in-memory SQLite database for each test.

    StaticPool keeps the single connection (and so the database) alive for
    the engine's lifetime.
    """
    engine = build_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create an async session for the test database."""
    session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_factory() as session:
        yield session


@pytest.fixture
def uow(db_session: AsyncSession) -> UnitOfWork:
    """Unit of work over the test session."""
    return UnitOfWork(db_session)


@pytest.fixture
async def client(
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """
    Create a test client with database session and auth overrides.

    Requests act as the dev user unless they send the X-Test-User header.
    """
    # Clear the settings cache so it picks up DATABASE_URL from environment
    from core.config import get_settings

    get_settings.cache_clear()

    from api.main import app
    from core.auth import get_current_user_id
    from db.session import get_async_session

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    async def override_get_current_user_id(request: Request) -> str:
        return request.headers.get(TEST_USER_HEADER, DEV_USER_ID)

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_current_user_id] = override_get_current_user_id

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
async def other_client(client: AsyncClient) -> AsyncGenerator[AsyncClient]:
    """A client for a second user, sharing the app and database with `client`."""
    from api.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={TEST_USER_HEADER: OTHER_USER_ID},
    ) as test_client:
        yield test_client
