"""Tests for catalog entities and value objects."""

import uuid

import pytest

from mushee.domain.entities import (
    ExtractedMetadata,
    RawUpload,
    ReconciliationResult,
    Song,
)
from mushee.domain.exceptions import (
    CatalogEntryExistsError,
    DuplicateEntityException,
    SongAlreadyInLibraryError,
    UnauthenticatedError,
    ValidationError,
)
from mushee.domain.value_objects import ActorId, ContentFingerprint, SongId

FINGERPRINT = "0123456789abcdef0123456789abcdef"


class TestContentFingerprint:
    """ContentFingerprint only accepts 32 lowercase hex characters."""

    def test_valid_fingerprint(self) -> None:
        assert ContentFingerprint(FINGERPRINT).value == FINGERPRINT

    @pytest.mark.parametrize(
        "value",
        ["", "abc", FINGERPRINT.upper(), FINGERPRINT + "0", "g" * 32],
    )
    def test_invalid_fingerprint_raises(self, value: str) -> None:
        with pytest.raises(ValidationError):
            ContentFingerprint(value)

    def test_blob_key_appends_extension(self) -> None:
        assert ContentFingerprint(FINGERPRINT).blob_key(".musicxml") == f"{FINGERPRINT}.musicxml"


class TestIds:
    """SongId / ActorId parsing."""

    def test_song_id_from_string_round_trip(self) -> None:
        raw = uuid.uuid4()
        assert SongId.from_string(f"  {raw}  ").value == raw

    def test_actor_id_rejects_garbage(self) -> None:
        with pytest.raises(ValidationError, match="Invalid actor id"):
            ActorId.from_string("not-a-uuid")

    def test_ids_of_same_uuid_are_equal(self) -> None:
        raw = uuid.uuid4()
        assert ActorId(raw) == ActorId(raw)
        assert str(SongId(raw)) == str(raw)


class TestExtractedMetadata:
    """Metadata value object limits."""

    def test_is_usable_with_title_only(self) -> None:
        assert ExtractedMetadata(title="Prelude", composer="").is_usable

    def test_not_usable_without_title_and_composer(self) -> None:
        assert not ExtractedMetadata(title="", composer="").is_usable

    def test_field_longer_than_column_raises(self) -> None:
        with pytest.raises(ValidationError, match="title"):
            ExtractedMetadata(title="x" * 201, composer="Bach")


class TestSong:
    """Song catalog entry."""

    def test_create_generates_id_and_copies_metadata(self) -> None:
        metadata = ExtractedMetadata(title="Gymnopédie", composer="Satie", subtitle="No. 1")
        owner = ActorId(uuid.uuid4())

        song = Song.create(metadata, ContentFingerprint(FINGERPRINT), uploader_id=owner)

        assert isinstance(song.id, SongId)
        assert song.metadata == metadata
        assert song.uploader_id == owner
        assert not song.is_public
        assert song.created_at.tzinfo is not None

    def test_song_without_uploader_is_public(self) -> None:
        song = Song.create(
            ExtractedMetadata(title="Air", composer="Bach"),
            ContentFingerprint(FINGERPRINT),
            uploader_id=None,
        )
        assert song.is_public


class TestRawUpload:
    """RawUpload helpers."""

    def test_from_bytes_uses_real_length(self) -> None:
        upload = RawUpload.from_bytes(b"<xml/>", "a.xml", "text/xml")
        assert upload.declared_size == 6
        assert upload.content_type == "text/xml"


class TestReconciliationResult:
    """ReconciliationResult flags."""

    def test_missing_entry_is_new_content(self) -> None:
        assert ReconciliationResult(existing_song=None).is_new_content


class TestUploadExceptions:
    """Error kinds carry stable machine-readable codes."""

    def test_song_already_in_library_is_a_duplicate(self) -> None:
        error = SongAlreadyInLibraryError("song-1")
        assert isinstance(error, DuplicateEntityException)
        assert error.error_code == "SONG_ALREADY_IN_LIBRARY"
        assert error.message == "This song is already in your library"

    def test_catalog_entry_exists_keeps_fingerprint(self) -> None:
        error = CatalogEntryExistsError(FINGERPRINT)
        assert error.fingerprint == FINGERPRINT
        assert FINGERPRINT in error.message

    def test_unauthenticated_default_message(self) -> None:
        assert UnauthenticatedError().message == "Authentication required"
