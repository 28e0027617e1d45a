"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator
from typing import cast

from fastapi import Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mushee.application.services import (
    ContainerExtractor,
    FileValidator,
    LibraryService,
    MetadataExtractor,
)
from mushee.application.use_cases import UploadSongUseCase
from mushee.config import Settings, get_settings
from mushee.domain.exceptions import UnauthenticatedError
from mushee.domain.value_objects import ActorId
from mushee.infrastructure.identity import HeaderIdentityProvider
from mushee.infrastructure.persistence import Database, LibraryRepository, SongRepository
from mushee.infrastructure.storage import LocalBlobStore

logger = logging.getLogger(__name__)


def get_app_settings(request: Request) -> Settings:
    """Settings the app was started with (falls back to the environment)."""
    settings = getattr(request.app.state, "settings", None)
    return cast(Settings, settings) if settings is not None else get_settings()


# Hey future me - ONE session per request, shared by every repository the endpoint uses.
# session_scope() commits when the endpoint returns normally and rolls back on any
# exception, so an upload that ends in a 409 leaves no half-written rows behind.
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db: Database = request.app.state.db
    async with db.session_scope() as session:
        yield session


def get_blob_store(request: Request) -> LocalBlobStore:
    """Get the blob store created at startup.

    Raises:
        HTTPException: 503 if storage isn't initialized yet
    """
    if not hasattr(request.app.state, "blob_store"):
        raise HTTPException(status_code=503, detail="Blob storage not initialized")
    return cast(LocalBlobStore, request.app.state.blob_store)


async def get_current_actor(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> ActorId | None:
    """Resolve the caller, None when unauthenticated."""
    provider = HeaderIdentityProvider(request.headers, settings.auth.actor_header)
    return await provider.get_current_actor()


async def require_actor(actor_id: ActorId | None = Depends(get_current_actor)) -> ActorId:
    """Resolve the caller or fail with 401."""
    if actor_id is None:
        raise UnauthenticatedError()
    return actor_id


def get_song_repository(session: AsyncSession = Depends(get_db_session)) -> SongRepository:
    """Get catalog repository bound to the request session."""
    return SongRepository(session)


def get_library_repository(
    session: AsyncSession = Depends(get_db_session),
) -> LibraryRepository:
    """Get library repository bound to the request session."""
    return LibraryRepository(session)


def get_upload_song_use_case(
    settings: Settings = Depends(get_app_settings),
    song_repository: SongRepository = Depends(get_song_repository),
    library_repository: LibraryRepository = Depends(get_library_repository),
    blob_store: LocalBlobStore = Depends(get_blob_store),
) -> UploadSongUseCase:
    """Build the upload pipeline from settings."""
    return UploadSongUseCase(
        song_repository=song_repository,
        library_repository=library_repository,
        blob_store=blob_store,
        file_validator=FileValidator(max_file_size_bytes=settings.upload.max_file_size_bytes),
        container_extractor=ContainerExtractor(),
        metadata_extractor=MetadataExtractor(
            parse_timeout_seconds=settings.upload.parse_timeout_seconds,
            max_field_length=settings.upload.max_field_length,
        ),
        blob_extension=settings.storage.blob_extension,
    )


def get_library_service(
    settings: Settings = Depends(get_app_settings),
    song_repository: SongRepository = Depends(get_song_repository),
    library_repository: LibraryRepository = Depends(get_library_repository),
    blob_store: LocalBlobStore = Depends(get_blob_store),
) -> LibraryService:
    """Get library service bound to the request session."""
    return LibraryService(
        song_repository=song_repository,
        library_repository=library_repository,
        blob_store=blob_store,
        blob_extension=settings.storage.blob_extension,
    )
