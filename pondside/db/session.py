"""
Database engine lifecycle and per-request sessions.

The engine is opened once by the application lifespan and stored on
`app.state.database`; nothing in the service layer reaches for a global
handle. Each request gets its own AsyncSession through `get_db`.

SQLite is supported for tests and local runs. Its default deferred
transactions let two writers read the same row and then collide, so the
engine is switched to `BEGIN IMMEDIATE`: writers queue on the database lock
instead, which gives the serialisable behaviour the booking and check-in
paths rely on.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from pondside.core.config import Settings, get_settings
from pondside.core.logging import get_logger

logger = get_logger(__name__)


def _install_sqlite_locking(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Take over transaction control from the driver
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_engine_from_settings(url: str, settings: Optional[Settings] = None) -> AsyncEngine:
    settings = settings or get_settings()

    if url.startswith("sqlite"):
        engine = create_async_engine(
            url,
            echo=False,
            connect_args={"timeout": settings.SQLITE_BUSY_TIMEOUT},
        )
        _install_sqlite_locking(engine)
        return engine

    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


class Database:
    """Owns the engine and the session factory for one process."""

    def __init__(self, url: str, settings: Optional[Settings] = None):
        self.url = url
        self.engine = create_engine_from_settings(url, settings)
        self.sessionmaker = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    def session(self) -> AsyncSession:
        return self.sessionmaker()

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("database_disposed")


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session bound to the app's database."""
    database: Database = request.app.state.database
    async with database.session() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block as one transaction: commit on success, roll back on any error.

    Read-only paths go through here too so the transaction (and on SQLite
    the write lock) is released before the caller moves on.
    """
    try:
        yield session
        await session.commit()
    except BaseException:
        await session.rollback()
        raise
