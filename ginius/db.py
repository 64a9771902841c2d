from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ginius.settings import Settings


log = logging.getLogger("uvicorn.error")


class DatabaseError(RuntimeError):
    pass


class Database:
    """Process-wide database handle: an async engine plus its session factory."""

    def __init__(self, engine: AsyncEngine) -> None:
        self.engine = engine
        self.sessionmaker: async_sessionmaker[AsyncSession] = async_sessionmaker(engine, expire_on_commit=False)

    @asynccontextmanager
    async def session_scope(self) -> AsyncIterator[AsyncSession]:
        async with self.sessionmaker() as session:
            yield session

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def dispose(self) -> None:
        await self.engine.dispose()


def _ensure_sqlite_dir(url: str) -> None:
    u = make_url(url)
    if u.get_backend_name() != "sqlite":
        return
    path = u.database
    if not path or path == ":memory:" or path.startswith("file:"):
        return
    parent = os.path.dirname(path)
    if parent:
        os.makedirs(parent, exist_ok=True)


def create_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        echo=settings.database_echo,
        pool_pre_ping=True,
    )


async def _verify(db: Database) -> None:
    try:
        await db.ping()
    finally:
        # connections are bound to this loop; the server loop opens its own
        await db.dispose()


def setup(settings: Settings) -> Database:
    """
    Create the database handle and check that it is reachable.

    Raises DatabaseError for a bad URL, a missing driver or a failed connection.
    """
    try:
        _ensure_sqlite_dir(settings.database_url)
        engine = create_engine(settings)
    except (SQLAlchemyError, ImportError, OSError) as e:
        raise DatabaseError(f"cannot create engine for {_safe_url(settings.database_url)}: {e}") from e

    db = Database(engine)
    try:
        asyncio.run(_verify(db))
    except (SQLAlchemyError, OSError) as e:
        raise DatabaseError(f"cannot connect to {_safe_url(settings.database_url)}: {e}") from e
    log.info("database ready url=%s", _safe_url(settings.database_url))
    return db


def _safe_url(url: str) -> str:
    try:
        return make_url(url).render_as_string(hide_password=True)
    except ArgumentError:
        return "<invalid url>"
