"""Domain entities."""

from dataclasses import dataclass, field
from datetime import UTC, datetime

from mushee.domain.exceptions import ValidationError
from mushee.domain.value_objects import ActorId, ContentFingerprint, SongId

# Matches the varchar(200) columns on the songs table
MAX_METADATA_FIELD_LENGTH = 200


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class RawUpload:
    """One uploaded file as the caller received it.

    Hey future me - this NEVER gets persisted! It lives for exactly one upload
    call. declared_size and content_type come from the client and can lie;
    the validator only uses them as a cheap first gate before we touch the bytes.
    """

    data: bytes
    filename: str
    declared_size: int
    content_type: str | None = None

    @classmethod
    def from_bytes(
        cls, data: bytes, filename: str, content_type: str | None = None
    ) -> "RawUpload":
        """Build an upload whose declared size is the real byte length."""
        return cls(
            data=data,
            filename=filename,
            declared_size=len(data),
            content_type=content_type,
        )


@dataclass(frozen=True)
class ExtractedMetadata:
    """Sanitized title/composer/subtitle derived from a MusicXML document."""

    title: str
    composer: str
    subtitle: str | None = None

    def __post_init__(self) -> None:
        for name in ("title", "composer", "subtitle"):
            value = getattr(self, name)
            if value is not None and len(value) > MAX_METADATA_FIELD_LENGTH:
                raise ValidationError(
                    f"Metadata field '{name}' exceeds {MAX_METADATA_FIELD_LENGTH} characters"
                )

    @property
    def is_usable(self) -> bool:
        """At least one of title or composer is present."""
        return bool(self.title or self.composer)


# Listen up, Song is the CATALOG ENTRY - one row per unique file content! Two users uploading
# byte-identical files share ONE Song. uploader_id is None for public-domain entries created by
# the seeding script; those are visible to every user. A Song is never mutated after creation
# and the upload pipeline never deletes one.
@dataclass
class Song:
    """Catalog entry for one unique piece of score content."""

    id: SongId
    title: str
    composer: str
    file_hash: ContentFingerprint
    subtitle: str | None = None
    uploader_id: ActorId | None = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def create(
        cls,
        metadata: ExtractedMetadata,
        file_hash: ContentFingerprint,
        uploader_id: ActorId | None,
    ) -> "Song":
        """Create a new catalog entry from extracted metadata."""
        return cls(
            id=SongId.generate(),
            title=metadata.title,
            composer=metadata.composer,
            subtitle=metadata.subtitle,
            file_hash=file_hash,
            uploader_id=uploader_id,
        )

    @property
    def is_public(self) -> bool:
        """Public-domain entries have no uploader."""
        return self.uploader_id is None

    @property
    def metadata(self) -> ExtractedMetadata:
        """Metadata view of this entry."""
        return ExtractedMetadata(
            title=self.title, composer=self.composer, subtitle=self.subtitle
        )


@dataclass
class LibraryMembership:
    """An actor having one catalog entry in their personal library.

    (user_id, song_id) is unique - the table's composite primary key enforces it.
    """

    user_id: ActorId
    song_id: SongId
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of looking up a fingerprint for a given actor."""

    existing_song: Song | None
    already_owned_by_actor: bool = False

    @property
    def is_new_content(self) -> bool:
        return self.existing_song is None


@dataclass(frozen=True)
class LibraryItem:
    """One song in an actor's library listing."""

    song: Song
    added_at: datetime


__all__ = [
    "MAX_METADATA_FIELD_LENGTH",
    "ExtractedMetadata",
    "LibraryItem",
    "LibraryMembership",
    "RawUpload",
    "ReconciliationResult",
    "Song",
    "utc_now",
]
