"""Shared test fixtures.

Tests run against in-memory SQLite (aiosqlite) with the schema created from
the ORM metadata; Redis is not initialised, so the rate limiter fails open
unless a test installs a fake.
"""

from __future__ import annotations

import os

os.environ["SNIP_DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["SNIP_LOG_FORMAT"] = "console"
os.environ["SNIP_JWT_SECRET"] = "test-secret-for-pytest-only-" + "x" * 40
os.environ["SNIP_SSE_HEARTBEAT_INTERVAL_SECONDS"] = "0.05"

from collections.abc import AsyncGenerator, Awaitable, Callable  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy import BigInteger  # noqa: E402
from sqlalchemy.dialects.postgresql import JSONB  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402
from sqlalchemy.ext.compiler import compiles  # noqa: E402

from snipstream.achievements.catalog import get_catalog  # noqa: E402
from snipstream.auth.jwt import create_access_token  # noqa: E402
from snipstream.config import get_settings  # noqa: E402
from snipstream.database import close_db, get_engine, get_session_factory, init_db  # noqa: E402
from snipstream.db.base import Base  # noqa: E402
from snipstream.db.models import User  # noqa: E402
from snipstream.main import create_app  # noqa: E402
from snipstream.realtime.hub import NotificationHub  # noqa: E402

get_settings.cache_clear()
get_catalog.cache_clear()


# SQLite has no JSONB, and only INTEGER PRIMARY KEY autoincrements.
@compiles(JSONB, "sqlite")
def _compile_jsonb_as_text(type_, compiler, **kw):
    return "TEXT"


@compiles(BigInteger, "sqlite")
def _compile_bigint_as_integer(type_, compiler, **kw):
    return "INTEGER"


@pytest_asyncio.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    """A session on a fresh in-memory database with all tables created."""
    await init_db(get_settings().database_url)
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with get_session_factory()() as session:
        yield session

    await close_db()


@pytest_asyncio.fixture
async def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory: ``await make_user("alice")`` inserts and commits a user."""

    async def _make(username: str, profile_url: str | None = None) -> User:
        user = User(username=username, profile_url=profile_url)
        db.add(user)
        await db.commit()
        return user

    return _make


@pytest.fixture
def hub() -> NotificationHub:
    return NotificationHub(queue_size=10, max_connections_per_user=3)


@pytest.fixture
def app(hub: NotificationHub) -> FastAPI:
    """A fresh app whose hub is the test's ``hub`` fixture."""
    application = create_app()
    application.state.hub = hub
    return application


@pytest_asyncio.fixture
async def client(db: AsyncSession, app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, sharing the test database."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    """``auth_headers(user)`` -> bearer header for that user."""

    def _headers(user: User) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user.id)}"}

    return _headers
