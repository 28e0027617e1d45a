"""Shared fixtures: MusicXML documents, actors and a throwaway app environment."""

import uuid
from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio

from musicxml_samples import make_musicxml
from mushee.config import Settings
from mushee.config.settings import (
    DatabaseSettings,
    StorageSettings,
    UploadSettings,
)
from mushee.domain.value_objects import ActorId
from mushee.infrastructure.persistence import Database
from mushee.infrastructure.storage import LocalBlobStore


@pytest.fixture
def musicxml_bytes() -> bytes:
    """A valid uncompressed score."""
    return make_musicxml().encode("utf-8")


@pytest.fixture
def actor_a() -> ActorId:
    return ActorId(uuid.uuid4())


@pytest.fixture
def actor_b() -> ActorId:
    return ActorId(uuid.uuid4())


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a file-backed SQLite DB and blob dir below tmp_path."""
    return Settings(
        app_name="mushee-test",
        log_level="DEBUG",
        database=DatabaseSettings(
            url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
            create_tables=True,
        ),
        storage=StorageSettings(
            blob_path=tmp_path / "blobs",
            scores_path=tmp_path / "scores",
        ),
        upload=UploadSettings(),
    )


@pytest.fixture
def blob_store(tmp_path: Path) -> LocalBlobStore:
    store = LocalBlobStore(tmp_path / "blobs")
    store.ensure_root()
    return store


@pytest_asyncio.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database, None]:
    """A fresh database with all tables created."""
    db = Database(test_settings)
    await db.create_tables()
    try:
        yield db
    finally:
        await db.close()
