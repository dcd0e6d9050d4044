"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode: create_async_engine for connection
pooling, async_sessionmaker for short-lived sessions.

The pool is wrapped in a Database handle that the app factory (or the
CLI) creates and passes to whoever needs it. There is no module-level
engine: tests build their own Database against a throwaway file.
"""

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from keygate.db.models import Base


class Database:
    """Pooled connection handle: one engine, one session factory."""

    def __init__(self, url: str, echo: bool = False):
        pool_args = {}
        if not url.startswith("sqlite"):
            # Connection pool: 5 steady, up to 20 under load.
            pool_args = {"pool_size": 5, "max_overflow": 15}

        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, echo=echo, **pool_args)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    async def create_tables(self) -> None:
        """Create missing tables. Safe to call on every startup."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_database(request: Request) -> Database:
    """FastAPI dependency: the app's Database handle."""
    return request.app.state.database
