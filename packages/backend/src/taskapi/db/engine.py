"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.

PostgreSQL (asyncpg) gets a real pool. SQLite (aiosqlite) is for local
development and tests and gets no pool tuning; its tables come straight
from ORM metadata via init_models().
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from taskapi.config import settings
from taskapi.db.models import Base


def is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    """Create an engine with pool settings suited to the dialect."""
    if is_sqlite(url):
        return create_async_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
    # Connection pool: min 5, max 20 connections.
    return create_async_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=15,
        pool_pre_ping=True,
    )


engine = build_engine(settings.database_url, echo=settings.debug)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def init_models(target: AsyncEngine = engine) -> None:
    """Create all tables from ORM metadata (no-op for existing tables)."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def get_db() -> AsyncSession:
    """FastAPI dependency — yields a session per request, auto-closes."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
