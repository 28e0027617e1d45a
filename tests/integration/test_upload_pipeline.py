"""End-to-end upload scenarios through the use case with real storage."""

import asyncio
import hashlib
import uuid

import pytest
from sqlalchemy import func, select

from musicxml_samples import make_musicxml, make_mxl
from mushee.application.use_cases import (
    UploadSongRequest,
    UploadSongResponse,
    UploadSongUseCase,
)
from mushee.domain.entities import RawUpload
from mushee.domain.exceptions import SongAlreadyInLibraryError
from mushee.domain.value_objects import ActorId
from mushee.infrastructure.persistence import Database, LibraryRepository, SongRepository
from mushee.infrastructure.persistence.models import SongModel
from mushee.infrastructure.storage import LocalBlobStore

pytestmark = pytest.mark.integration

MOONLIGHT = make_musicxml(work_title="Moonlight Sonata", composer="Beethoven").encode()


async def _upload(
    database: Database,
    blob_store: LocalBlobStore,
    actor_id: ActorId,
    data: bytes,
    filename: str = "moonlight.musicxml",
    content_type: str = "application/vnd.recordare.musicxml+xml",
) -> UploadSongResponse:
    async with database.session_scope() as session:
        use_case = UploadSongUseCase(
            song_repository=SongRepository(session),
            library_repository=LibraryRepository(session),
            blob_store=blob_store,
        )
        return await use_case.execute(
            UploadSongRequest(
                upload=RawUpload.from_bytes(data, filename, content_type),
                actor_id=actor_id,
            )
        )


class TestUploadPipeline:
    """The four reference scenarios, run in order on one database."""

    @pytest.mark.asyncio
    async def test_first_upload_then_dedup_then_conflict(
        self,
        database: Database,
        blob_store: LocalBlobStore,
        actor_a: ActorId,
        actor_b: ActorId,
    ) -> None:
        # 1. new content
        first = await _upload(database, blob_store, actor_a, MOONLIGHT)

        assert first.was_already_known is False
        assert first.metadata.title == "Moonlight Sonata"
        assert first.metadata.composer == "Beethoven"
        async with database.session_scope() as session:
            assert await LibraryRepository(session).count_for_actor(actor_a) == 1

        blob_key = f"{hashlib.md5(MOONLIGHT).hexdigest()}.musicxml"
        assert await blob_store.list_keys() == [blob_key]
        assert await blob_store.get(blob_key) == MOONLIGHT

        # 2. identical bytes from another actor
        second = await _upload(database, blob_store, actor_b, MOONLIGHT)

        assert second.was_already_known is True
        assert second.entry_id == first.entry_id
        assert second.fingerprint == first.fingerprint
        assert await blob_store.list_keys() == [blob_key]
        async with database.session_scope() as session:
            assert await LibraryRepository(session).exists(actor_b, first.entry_id)

        # 3. same actor again
        with pytest.raises(SongAlreadyInLibraryError):
            await _upload(database, blob_store, actor_a, MOONLIGHT)

        async with database.session_scope() as session:
            assert await LibraryRepository(session).count_for_actor(actor_a) == 1
            assert await SongRepository(session).get_by_fingerprint(first.fingerprint) is not None

    @pytest.mark.asyncio
    async def test_compressed_upload_reads_manifest_target(
        self, database: Database, blob_store: LocalBlobStore, actor_a: ActorId
    ) -> None:
        """4. .mxl container whose manifest points at a nested entry."""
        data = make_mxl(
            make_musicxml(work_title="Nested Score", composer="Clara Schumann"),
            entry_name="musicxml/score.xml",
            manifest_path="musicxml/score.xml",
        )

        result = await _upload(
            database, blob_store, actor_a, data, "nested.mxl", "application/octet-stream"
        )

        assert result.metadata.title == "Nested Score"
        assert result.metadata.composer == "Clara Schumann"
        assert await blob_store.get(f"{result.fingerprint.value}.musicxml") == data

    @pytest.mark.asyncio
    async def test_removed_song_can_be_uploaded_again(
        self, database: Database, blob_store: LocalBlobStore, actor_a: ActorId
    ) -> None:
        """After removal the catalog entry is reused instead of duplicated."""
        first = await _upload(database, blob_store, actor_a, MOONLIGHT)
        async with database.session_scope() as session:
            await LibraryRepository(session).remove(actor_a, first.entry_id)

        again = await _upload(database, blob_store, actor_a, MOONLIGHT)

        assert again.was_already_known is True
        assert again.entry_id == first.entry_id

    @pytest.mark.asyncio
    async def test_orphaned_blob_is_reused(
        self, database: Database, blob_store: LocalBlobStore, actor_a: ActorId
    ) -> None:
        """A blob left behind by a failed upload doesn't block the next one."""
        key = f"{hashlib.md5(MOONLIGHT).hexdigest()}.musicxml"
        await blob_store.put(key, MOONLIGHT)

        result = await _upload(database, blob_store, actor_a, MOONLIGHT)

        assert result.was_already_known is False
        assert await blob_store.list_keys() == [key]


class TestConcurrentUploads:
    """Parallel uploads, each in its own session, on a file-backed SQLite database."""

    @pytest.mark.asyncio
    async def test_identical_content_from_many_actors(
        self, database: Database, blob_store: LocalBlobStore
    ) -> None:
        actors = [ActorId(uuid.uuid4()) for _ in range(4)]

        results = await asyncio.gather(
            *(_upload(database, blob_store, actor, MOONLIGHT) for actor in actors)
        )

        assert sorted(result.was_already_known for result in results) == [
            False,
            True,
            True,
            True,
        ]
        assert len({result.entry_id for result in results}) == 1
        assert await blob_store.list_keys() == [f"{hashlib.md5(MOONLIGHT).hexdigest()}.musicxml"]
        async with database.session_scope() as session:
            song_count = await session.scalar(select(func.count()).select_from(SongModel))
            library = LibraryRepository(session)
            for actor in actors:
                assert await library.exists(actor, results[0].entry_id)
        assert song_count == 1

    @pytest.mark.asyncio
    async def test_distinct_content_in_parallel(
        self, database: Database, blob_store: LocalBlobStore, actor_a: ActorId
    ) -> None:
        documents = [
            make_musicxml(work_title=f"Prelude No. {number}", composer="Chopin").encode()
            for number in range(1, 5)
        ]

        results = await asyncio.gather(
            *(
                _upload(database, blob_store, actor_a, data, filename=f"prelude{i}.musicxml")
                for i, data in enumerate(documents)
            )
        )

        assert all(result.was_already_known is False for result in results)
        assert len(await blob_store.list_keys()) == 4
        async with database.session_scope() as session:
            assert await LibraryRepository(session).count_for_actor(actor_a) == 4
