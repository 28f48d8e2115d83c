from sqlalchemy import URL, make_url
from sqlalchemy.pool import NullPool
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from .config import settings
from .models import Base


def async_database_url(raw_url: str) -> URL:
    """Map a configured database URL onto its async driver.

    SQLite goes through aiosqlite, everything else is treated as PostgreSQL
    and served by asyncpg.
    """
    parsed = make_url(raw_url)
    if parsed.drivername.startswith("sqlite"):
        return parsed.set(drivername="sqlite+aiosqlite")
    return parsed.set(drivername="postgresql+asyncpg")


def sync_database_url(raw_url: str) -> URL:
    """Synchronous counterpart used by Alembic migrations."""
    parsed = make_url(raw_url)
    if parsed.drivername.startswith("sqlite"):
        return parsed.set(drivername="sqlite+pysqlite")
    return parsed.set(drivername="postgresql+psycopg")


_url = async_database_url(settings.database_url)
_engine_options = {}
if _url.drivername.startswith("sqlite"):
    # aiosqlite connections are bound to the event loop that opened them
    _engine_options = {"connect_args": {"check_same_thread": False}, "poolclass": NullPool}

engine = create_async_engine(
    _url,
    echo=settings.debug,  # Only echo SQL in debug mode
    **_engine_options,
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


async def get_db():
    """Dependency to get database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
