"""Integration tests for the SQLAlchemy repositories on a real SQLite database."""

import uuid

import pytest

from mushee.domain.entities import ExtractedMetadata, Song
from mushee.domain.exceptions import CatalogEntryExistsError, SongAlreadyInLibraryError
from mushee.domain.value_objects import ActorId, ContentFingerprint
from mushee.infrastructure.persistence import Database, LibraryRepository, SongRepository

pytestmark = pytest.mark.integration


def _fingerprint(seed: str) -> ContentFingerprint:
    return ContentFingerprint(uuid.uuid5(uuid.NAMESPACE_URL, seed).hex)


def _song(
    title: str,
    composer: str = "Anonymous",
    uploader: ActorId | None = None,
    seed: str | None = None,
) -> Song:
    return Song.create(
        ExtractedMetadata(title=title, composer=composer),
        _fingerprint(seed or title),
        uploader_id=uploader,
    )


class TestSongRepository:
    """Catalog entry persistence."""

    @pytest.mark.asyncio
    async def test_add_and_lookup(self, database: Database, actor_a: ActorId) -> None:
        song = _song("Träumerei", "Robert Schumann", uploader=actor_a)

        async with database.session_scope() as session:
            await SongRepository(session).add(song)

        async with database.session_scope() as session:
            repo = SongRepository(session)
            by_id = await repo.get_by_id(song.id)
            by_hash = await repo.get_by_fingerprint(song.file_hash)

        assert by_id == by_hash
        assert by_id is not None
        assert by_id.title == "Träumerei"
        assert by_id.uploader_id == actor_a
        assert by_id.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_duplicate_fingerprint_raises_and_session_survives(
        self, database: Database, actor_a: ActorId, actor_b: ActorId
    ) -> None:
        """The unique constraint fires inside a savepoint, the session stays usable."""
        first = _song("Original", uploader=actor_a, seed="same-bytes")
        second = _song("Copy", uploader=actor_b, seed="same-bytes")

        async with database.session_scope() as session:
            await SongRepository(session).add(first)

        async with database.session_scope() as session:
            repo = SongRepository(session)
            with pytest.raises(CatalogEntryExistsError):
                await repo.add(second)

            # Same transaction keeps working after the failed insert
            existing = await repo.get_by_fingerprint(second.file_hash)
            assert existing is not None
            assert existing.id == first.id
            await LibraryRepository(session).add(actor_b, existing.id)

        async with database.session_scope() as session:
            assert await LibraryRepository(session).exists(actor_b, first.id)

    @pytest.mark.asyncio
    async def test_reconcile_lookup(
        self, database: Database, actor_a: ActorId, actor_b: ActorId
    ) -> None:
        song = _song("Nocturne", uploader=actor_a)
        async with database.session_scope() as session:
            await SongRepository(session).add(song)
            await LibraryRepository(session).add(actor_a, song.id)

        async with database.session_scope() as session:
            repo = SongRepository(session)
            owned = await repo.find_by_fingerprint_with_membership(song.file_hash, actor_a)
            other = await repo.find_by_fingerprint_with_membership(song.file_hash, actor_b)
            unknown = await repo.find_by_fingerprint_with_membership(
                _fingerprint("unknown"), actor_a
            )

        assert owned.existing_song is not None
        assert owned.already_owned_by_actor is True
        assert other.existing_song is not None
        assert other.already_owned_by_actor is False
        assert unknown.is_new_content

    @pytest.mark.asyncio
    async def test_list_public_with_search(self, database: Database, actor_a: ActorId) -> None:
        async with database.session_scope() as session:
            repo = SongRepository(session)
            await repo.add(_song("Goldberg Variations", "J. S. Bach"))
            await repo.add(_song("air on the g string", "J. S. Bach"))
            await repo.add(_song("Für Elise", "Ludwig van Beethoven"))
            await repo.add(_song("100% Private", "J. S. Bach", uploader=actor_a))

        async with database.session_scope() as session:
            repo = SongRepository(session)
            everything = await repo.list_public()
            bach = await repo.list_public(search="bach")
            bach_count = await repo.count_public("BACH")
            percent = await repo.count_public("100%")

        assert [song.title for song in everything] == [
            "air on the g string",
            "Für Elise",
            "Goldberg Variations",
        ]
        assert {song.title for song in bach} == {"Goldberg Variations", "air on the g string"}
        assert bach_count == 2
        assert percent == 0


class TestLibraryRepository:
    """Membership persistence."""

    @pytest.mark.asyncio
    async def test_duplicate_membership_raises(self, database: Database, actor_a: ActorId) -> None:
        song = _song("Prelude")
        async with database.session_scope() as session:
            await SongRepository(session).add(song)
            library = LibraryRepository(session)
            await library.add(actor_a, song.id)
            with pytest.raises(SongAlreadyInLibraryError):
                await library.add(actor_a, song.id)
            assert await library.count_for_actor(actor_a) == 1

    @pytest.mark.asyncio
    async def test_remove_keeps_catalog_entry(self, database: Database, actor_a: ActorId) -> None:
        song = _song("Etude", uploader=actor_a)
        async with database.session_scope() as session:
            await SongRepository(session).add(song)
            await LibraryRepository(session).add(actor_a, song.id)

        async with database.session_scope() as session:
            library = LibraryRepository(session)
            assert await library.remove(actor_a, song.id) is True
            assert await library.remove(actor_a, song.id) is False

        async with database.session_scope() as session:
            assert await SongRepository(session).get_by_id(song.id) is not None

    @pytest.mark.asyncio
    async def test_list_for_actor_sorting(
        self, database: Database, actor_a: ActorId, actor_b: ActorId
    ) -> None:
        songs = [
            _song("b-title", "Zelenka"),
            _song("A-title", "mozart"),
            _song("c-title", "Albéniz"),
        ]
        async with database.session_scope() as session:
            song_repo = SongRepository(session)
            library = LibraryRepository(session)
            for song in songs:
                await song_repo.add(song)
            for song in songs:
                membership = await library.add(actor_a, song.id)
                assert membership.user_id == actor_a
            await library.add(actor_b, songs[0].id)

        async with database.session_scope() as session:
            library = LibraryRepository(session)
            by_title = await library.list_for_actor(actor_a, sort="title", descending=False)
            by_composer = await library.list_for_actor(actor_a, sort="composer", descending=True)
            page_two = await library.list_for_actor(
                actor_a, limit=2, offset=2, sort="title", descending=False
            )
            newest_first = await library.list_for_actor(actor_a)
            total = await library.count_for_actor(actor_a)

        assert [item.song.title for item in by_title] == ["A-title", "b-title", "c-title"]
        assert [item.song.composer for item in by_composer] == ["Zelenka", "mozart", "Albéniz"]
        assert [item.song.title for item in page_two] == ["c-title"]
        assert newest_first[0].added_at >= newest_first[-1].added_at
        assert total == 3

    @pytest.mark.asyncio
    async def test_unknown_sort_field(self, database: Database, actor_a: ActorId) -> None:
        async with database.session_scope() as session:
            with pytest.raises(ValueError):
                await LibraryRepository(session).list_for_actor(actor_a, sort="file_hash")
