"""
Async engine and session factory.

One engine per process. Request handlers get a session through ``get_db``
and pass it to the services, which own their commits.
"""

from typing import AsyncIterator

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import declarative_base

from fleet_rental.app.core.config import settings


def engine_options(database_url: str) -> dict:
    """Pool sizing applies to server databases only; SQLite brings its own pool."""
    options = {"echo": settings.db_echo, "pool_pre_ping": True}
    if make_url(database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return options


engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))

# Services keep using loaded rows after commit, so nothing is expired on commit
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncIterator[AsyncSession]:
    """Request-scoped session; closing it rolls back anything left uncommitted."""
    async with AsyncSessionLocal() as session:
        yield session
