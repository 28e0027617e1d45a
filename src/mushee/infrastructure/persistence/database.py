"""Database engine and session management."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from mushee.config import Settings

logger = logging.getLogger(__name__)


class Database:
    """Database connection and session manager."""

    def __init__(self, settings: Settings) -> None:
        """Initialize database with settings."""
        self.settings = settings
        url = settings.database.url

        engine_kwargs: dict[str, Any] = {
            "echo": settings.database.echo,
            "pool_pre_ping": settings.database.pool_pre_ping,
        }

        if "postgresql" in url:
            engine_kwargs.update(
                {
                    "pool_size": settings.database.pool_size,
                    "max_overflow": settings.database.max_overflow,
                    "pool_timeout": settings.database.pool_timeout,
                    "pool_recycle": settings.database.pool_recycle,
                }
            )
        elif "sqlite" in url:
            engine_kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": 30,  # Wait up to 30s for the write lock
            }
            # Hey future me - an in-memory SQLite DB lives and dies with ONE connection.
            # StaticPool makes every session share it, otherwise each session sees an empty DB.
            if ":memory:" in url:
                engine_kwargs["poolclass"] = StaticPool

        self._engine = create_async_engine(url, **engine_kwargs)

        if "sqlite" in url:
            self._configure_sqlite()

        self._session_factory = async_sessionmaker(
            self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    def _configure_sqlite(self) -> None:
        """Foreign keys + real transaction control for every SQLite connection.

        Hey future me - the sqlite driver does its own implicit BEGIN handling, which
        breaks SAVEPOINT (the repositories use begin_nested() for the unique-constraint
        fallback). We switch the driver to autocommit and emit BEGIN ourselves, as the
        SQLAlchemy docs recommend for aiosqlite. foreign_keys=ON is needed for
        user_songs -> songs ON DELETE CASCADE.

        It has to be BEGIN IMMEDIATE. An upload reads (reconcile) before it writes, and
        two deferred transactions that both hold a read lock and then want to write
        deadlock - SQLite fails one of them straight away with "database is locked",
        busy timeout or not. IMMEDIATE takes the write lock up front, so concurrent
        uploads queue on the busy timeout and the second one reconciles against the
        committed row.
        """

        @event.listens_for(self._engine.sync_engine, "connect")
        def set_sqlite_pragma(dbapi_conn: Any, _connection_record: Any) -> None:
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
            logger.debug("Enabled foreign keys for SQLite connection")

        @event.listens_for(self._engine.sync_engine, "begin")
        def emit_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for database operations.

        Commits when the block finishes, rolls back on ANY exception and re-raises.
        Domain errors like SongAlreadyInLibraryError also roll back - the upload use
        case never leaves partial rows behind on a conflict.
        """
        async with self._session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True

    async def close(self) -> None:
        """Close database connection."""
        await self._engine.dispose()

    async def create_tables(self) -> None:
        """Create all tables (tests and the seeding CLI; production uses Alembic)."""
        from mushee.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_tables(self) -> None:
        """Drop all tables (for testing only)."""
        from mushee.infrastructure.persistence.models import Base

        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
