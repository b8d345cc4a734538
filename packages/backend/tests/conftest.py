"""Test fixtures — a fresh in-memory SQLite database per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Environment is set BEFORE taskapi is imported, so the module-level
   settings and app see a test secret and a SQLite URL.
2. Each test gets its own engine on `sqlite+aiosqlite://` with a
   StaticPool (one shared connection = one in-memory database), and
   the tables are created from ORM metadata.
3. get_db is overridden with a session factory bound to that engine,
   so every HTTP request gets its own session, like in production.

Auth is NOT mocked: tests register users and send real Bearer tokens.
"""

import os
import uuid

os.environ.setdefault("TASKAPI_JWT_SECRET", "test-secret-0123456789abcdef0123456789abcdef")
os.environ.setdefault("TASKAPI_DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("TASKAPI_BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402

from taskapi.db.engine import get_db  # noqa: E402
from taskapi.db.models import Base  # noqa: E402
from taskapi.main import app  # noqa: E402

PASSWORD = "password_123"


@pytest_asyncio.fixture()
async def db_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture()
async def db_session(session_factory):
    """Session for service-level tests that talk to the store directly."""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(session_factory):
    """HTTP client with get_db pointed at the per-test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


def user_params(**overrides) -> dict:
    """Valid registration fields with a unique email."""
    params = {
        "name": "Test User",
        "email": f"user-{uuid.uuid4().hex[:8]}@example.com",
        "password": PASSWORD,
        "password_confirmation": PASSWORD,
    }
    params.update(overrides)
    return params


async def register(client: AsyncClient, **overrides) -> dict:
    """Register through the API; returns the token body plus the email used."""
    params = user_params(**overrides)
    r = await client.post("/api/v1/users", json={"user": params})
    assert r.status_code == 201, r.text
    return {**r.json(), "email": params["email"]}


def bearer(tokens: dict) -> dict:
    return {"Authorization": f"Bearer {tokens['access_token']}"}


@pytest_asyncio.fixture()
async def user_tokens(client):
    return await register(client, name="Alice")


@pytest_asyncio.fixture()
async def auth_headers(user_tokens):
    return bearer(user_tokens)
