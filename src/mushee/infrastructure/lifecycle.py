"""Application lifecycle management for startup and shutdown tasks."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mushee.config import Settings, get_settings
from mushee.domain.exceptions import ConfigurationError
from mushee.infrastructure.observability import configure_logging
from mushee.infrastructure.persistence import Database
from mushee.infrastructure.storage import LocalBlobStore

logger = logging.getLogger(__name__)


# Hey future me, this validates the SQLite path BEFORE the engine exists. SQLite also needs
# to create -journal/-wal files next to the .db, so we test that the directory is writable.
# Don't pre-create the .db file itself - SQLite initializes it properly on first connect.
# Returns early for PostgreSQL and in-memory URLs.
def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


# Listen future me - everything before `yield` runs at STARTUP, everything after at SHUTDOWN.
# Settings come from app.state when the app factory was given explicit settings (tests do this),
# otherwise from the cached environment settings.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - Storage directory creation
    - Database initialization (and optional table creation)
    - Resource cleanup
    """
    settings: Settings = getattr(app.state, "settings", None) or get_settings()
    app.state.settings = settings

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    db: Database | None = None
    try:
        settings.ensure_directories()
        blob_store = LocalBlobStore(settings.storage.blob_path)
        blob_store.ensure_root()
        app.state.blob_store = blob_store
        logger.info("Blob store ready at %s", blob_store.root)

        _validate_sqlite_path(settings)

        db = Database(settings)
        app.state.db = db
        if settings.database.create_tables:
            await db.create_tables()
            logger.info("Database tables created")
        logger.info("Database initialized: %s", settings.database.url)

        yield
    finally:
        logger.info("Shutting down application")
        if db is not None:
            await db.close()
            logger.info("Database connections closed")
