"""Use case for uploading a MusicXML file into the actor's library.

Hey future me - this is THE upload pipeline! Every song that enters the catalog
through a user goes through here. Strict step order, each step feeds the next:

1. Authenticate   - no actor -> UnauthenticatedError
2. Validate       - extension -> size -> type (FileValidator, no content read)
3. Hash           - MD5 over the raw uploaded bytes = content fingerprint
4. Extract+verify - unzip .mxl if needed, cheap structural pre-check
5. Parse metadata - title/composer/subtitle under a timeout
6. Reconcile      - ONE query: does the entry exist, does the actor own it?
   A) exists + owned     -> SongAlreadyInLibraryError (409), no writes
   B) exists + not owned -> membership only, was_already_known=True
   C) unknown            -> 7. store blob, 8. insert song, 9. insert membership

Races: two actors uploading identical bytes at the same time both land in
branch C. The songs.file_hash UNIQUE constraint lets exactly one insert win;
the loser gets CatalogEntryExistsError from the repository and we re-run the
reconcile, which now lands in branch B. No app-level locking.

Partial failure: if 8 or 9 blow up after the blob was written we do NOT delete
the blob. It's content-addressed, so the next upload of the same bytes simply
reuses it. We log the key at ERROR and re-raise.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime

from mushee.application.services.catalog_reconciler import CatalogReconciler
from mushee.application.services.container_extractor import ContainerExtractor
from mushee.application.services.content_hasher import ContentHasher
from mushee.application.services.file_validator import FileValidator
from mushee.application.services.metadata_extractor import (
    MetadataExtractor,
    has_score_structure,
)
from mushee.application.use_cases import UseCase
from mushee.domain.entities import ExtractedMetadata, RawUpload, Song
from mushee.domain.exceptions import (
    CatalogEntryExistsError,
    InvalidMusicXmlError,
    SongAlreadyInLibraryError,
    UnauthenticatedError,
    ValidationError,
)
from mushee.domain.ports import IBlobStore, ILibraryRepository, ISongRepository
from mushee.domain.value_objects import ActorId, ContentFingerprint, SongId

logger = logging.getLogger(__name__)


@dataclass
class UploadSongRequest:
    """Request to upload one score file.

    actor_id is resolved upstream (identity provider); None means the
    caller is not authenticated.
    """

    upload: RawUpload
    actor_id: ActorId | None


@dataclass
class UploadSongResponse:
    """Result of a successful upload."""

    entry_id: SongId
    metadata: ExtractedMetadata
    fingerprint: ContentFingerprint
    created_at: datetime
    library_joined_at: datetime
    was_already_known: bool


class UploadSongUseCase(UseCase[UploadSongRequest, UploadSongResponse]):
    """Upload a score, deduplicating by content fingerprint.

    All collaborators are passed in explicitly. The repositories share one
    database session, so the whole call commits or rolls back together
    (except the blob write, see module docstring).
    """

    def __init__(
        self,
        song_repository: ISongRepository,
        library_repository: ILibraryRepository,
        blob_store: IBlobStore,
        file_validator: FileValidator | None = None,
        content_hasher: ContentHasher | None = None,
        container_extractor: ContainerExtractor | None = None,
        metadata_extractor: MetadataExtractor | None = None,
        blob_extension: str = ".musicxml",
    ) -> None:
        """Initialize the use case.

        Args:
            song_repository: Catalog entry persistence
            library_repository: Library membership persistence
            blob_store: Content-addressed score storage
            file_validator: Upload gate (defaults: 10 MiB, MusicXML types)
            content_hasher: Fingerprint calculator
            container_extractor: .mxl unpacker
            metadata_extractor: MusicXML metadata parser (carries the parse timeout)
            blob_extension: Fixed extension appended to blob keys
        """
        self._song_repository = song_repository
        self._library_repository = library_repository
        self._blob_store = blob_store
        self._file_validator = file_validator or FileValidator()
        self._content_hasher = content_hasher or ContentHasher()
        self._container_extractor = container_extractor or ContainerExtractor()
        self._metadata_extractor = metadata_extractor or MetadataExtractor()
        self._reconciler = CatalogReconciler(song_repository)
        self._blob_extension = blob_extension

    async def execute(self, request: UploadSongRequest) -> UploadSongResponse:
        """Run the upload pipeline.

        Raises:
            UnauthenticatedError: no actor
            InvalidFileFormatError: bad extension or content type
            FileTooLargeError: declared size over the limit
            InvalidMusicXmlError: unusable MusicXML payload
            SongAlreadyInLibraryError: actor already has this content
        """
        # 1. Authenticate
        actor_id = request.actor_id
        if actor_id is None:
            raise UnauthenticatedError()

        upload = request.upload
        try:
            fingerprint, metadata = await self._prepare(upload)
        except ValidationError as e:
            logger.warning(
                "Rejected upload %r from actor %s: %s (%s)",
                upload.filename,
                actor_id,
                e.message,
                e.error_code,
            )
            raise

        # 6. Reconcile
        reconciliation = await self._reconciler.reconcile(fingerprint, actor_id)
        existing = reconciliation.existing_song
        if existing is not None:
            if reconciliation.already_owned_by_actor:
                logger.info(
                    "Upload conflict: actor %s already has song %s (%s)",
                    actor_id,
                    existing.id,
                    fingerprint,
                )
                raise SongAlreadyInLibraryError(existing.id)
            return await self._attach_existing(existing, actor_id)

        return await self._create_new(upload, fingerprint, metadata, actor_id)

    async def _prepare(
        self, upload: RawUpload
    ) -> tuple[ContentFingerprint, ExtractedMetadata]:
        # 2. Validate
        self._file_validator.validate(
            upload.filename, upload.declared_size, upload.content_type
        )

        # 3. Hash the full buffer
        fingerprint = self._content_hasher.hash(upload.data)
        logger.debug("Upload %r fingerprint %s", upload.filename, fingerprint)

        # 4. Extract + structural pre-check (unzipping is CPU-bound)
        xml_string = await asyncio.to_thread(
            self._container_extractor.extract_xml, upload.data
        )
        if not has_score_structure(xml_string):
            raise InvalidMusicXmlError(
                "Invalid MusicXML format. Please ensure the file is valid."
            )

        # 5. Parse metadata under the deadline
        metadata = await self._metadata_extractor.extract(xml_string)
        return fingerprint, metadata

    async def _attach_existing(self, song: Song, actor_id: ActorId) -> UploadSongResponse:
        """Branch B - content already catalogued, just link it to the actor."""
        membership = await self._library_repository.add(actor_id, song.id)
        logger.info(
            "Attached existing song %s (%s) to actor %s",
            song.id,
            song.file_hash,
            actor_id,
        )
        return UploadSongResponse(
            entry_id=song.id,
            metadata=song.metadata,
            fingerprint=song.file_hash,
            created_at=song.created_at,
            library_joined_at=membership.created_at,
            was_already_known=True,
        )

    async def _create_new(
        self,
        upload: RawUpload,
        fingerprint: ContentFingerprint,
        metadata: ExtractedMetadata,
        actor_id: ActorId,
    ) -> UploadSongResponse:
        """Branch C - store blob, create catalog entry and membership."""
        blob_key = fingerprint.blob_key(self._blob_extension)

        # 7. Store blob (create-if-absent, an existing key is fine)
        written = await self._blob_store.put(blob_key, upload.data)
        if not written:
            logger.debug("Blob %s already present, reusing it", blob_key)

        # 8. Create catalog entry
        song = Song.create(metadata=metadata, file_hash=fingerprint, uploader_id=actor_id)
        try:
            song = await self._song_repository.add(song)
        except CatalogEntryExistsError:
            # Lost the first-upload race - the winner's entry is there now
            logger.info(
                "Concurrent upload created %s first, falling back to attach", fingerprint
            )
            return await self._resolve_lost_race(fingerprint, actor_id)
        except Exception:
            logger.error(
                "Catalog insert failed after storing blob %s (blob left in place)",
                blob_key,
                exc_info=True,
            )
            raise

        # 9. Create library membership
        try:
            membership = await self._library_repository.add(actor_id, song.id)
        except Exception:
            logger.error(
                "Library membership insert failed for song %s after storing blob %s "
                "(blob left in place)",
                song.id,
                blob_key,
                exc_info=True,
            )
            raise

        logger.info(
            "Created song %s (%s) for actor %s: %r by %r",
            song.id,
            fingerprint,
            actor_id,
            song.title,
            song.composer,
        )
        return UploadSongResponse(
            entry_id=song.id,
            metadata=song.metadata,
            fingerprint=fingerprint,
            created_at=song.created_at,
            library_joined_at=membership.created_at,
            was_already_known=False,
        )

    async def _resolve_lost_race(
        self, fingerprint: ContentFingerprint, actor_id: ActorId
    ) -> UploadSongResponse:
        reconciliation = await self._reconciler.reconcile(fingerprint, actor_id)
        existing = reconciliation.existing_song
        if existing is None:
            # Constraint fired but the row isn't visible to us - let the caller retry
            raise CatalogEntryExistsError(fingerprint)
        if reconciliation.already_owned_by_actor:
            raise SongAlreadyInLibraryError(existing.id)
        return await self._attach_existing(existing, actor_id)
