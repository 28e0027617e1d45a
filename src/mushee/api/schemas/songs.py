"""API schemas for songs and the personal library."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field

from mushee.application.services import LibraryPage, Pagination, SongPage
from mushee.application.use_cases import UploadSongResponse
from mushee.domain.entities import LibraryItem, Song


class SortFieldEnum(str, Enum):
    """Library sort fields."""

    TITLE = "title"
    COMPOSER = "composer"
    CREATED_AT = "created_at"


class SortOrderEnum(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


class SongMetadataSchema(BaseModel):
    """Metadata extracted from a MusicXML file."""

    title: str = Field(..., description="Work or movement title")
    composer: str = Field(..., description="Composer (or first creator)")
    subtitle: str | None = Field(default=None, description="Optional subtitle")


class SongSchema(BaseModel):
    """Catalog entry."""

    id: UUID = Field(..., description="Song ID")
    title: str
    composer: str
    subtitle: str | None = None
    file_hash: str = Field(..., description="Content fingerprint (MD5 hex)")
    is_public: bool = Field(..., description="Public-domain entry visible to everyone")
    created_at: datetime

    @classmethod
    def from_entity(cls, song: Song) -> "SongSchema":
        return cls(
            id=song.id.value,
            title=song.title,
            composer=song.composer,
            subtitle=song.subtitle,
            file_hash=song.file_hash.value,
            is_public=song.is_public,
            created_at=song.created_at,
        )


class UploadSongResultSchema(BaseModel):
    """Response of POST /songs."""

    entry_id: UUID = Field(..., description="Catalog entry ID")
    metadata: SongMetadataSchema
    fingerprint: str = Field(..., description="Content fingerprint (MD5 hex)")
    created_at: datetime = Field(..., description="When the catalog entry was created")
    library_joined_at: datetime = Field(
        ..., description="When the song was added to the caller's library"
    )
    was_already_known: bool = Field(
        ..., description="True if identical content was already in the catalog"
    )

    @classmethod
    def from_response(cls, response: UploadSongResponse) -> "UploadSongResultSchema":
        return cls(
            entry_id=response.entry_id.value,
            metadata=SongMetadataSchema(
                title=response.metadata.title,
                composer=response.metadata.composer,
                subtitle=response.metadata.subtitle,
            ),
            fingerprint=response.fingerprint.value,
            created_at=response.created_at,
            library_joined_at=response.library_joined_at,
            was_already_known=response.was_already_known,
        )


class PaginationSchema(BaseModel):
    """Pagination metadata."""

    page: int
    limit: int
    total_items: int
    total_pages: int

    @classmethod
    def from_pagination(cls, pagination: Pagination) -> "PaginationSchema":
        return cls(
            page=pagination.page,
            limit=pagination.limit,
            total_items=pagination.total_items,
            total_pages=pagination.total_pages,
        )


class LibraryItemSchema(BaseModel):
    """One song in the caller's library."""

    song: SongSchema
    added_at: datetime

    @classmethod
    def from_entity(cls, item: LibraryItem) -> "LibraryItemSchema":
        return cls(song=SongSchema.from_entity(item.song), added_at=item.added_at)


class LibraryPageSchema(BaseModel):
    """Response of GET /library."""

    items: list[LibraryItemSchema]
    pagination: PaginationSchema

    @classmethod
    def from_page(cls, page: LibraryPage) -> "LibraryPageSchema":
        return cls(
            items=[LibraryItemSchema.from_entity(item) for item in page.items],
            pagination=PaginationSchema.from_pagination(page.pagination),
        )


class SongPageSchema(BaseModel):
    """Response of GET /songs/public."""

    items: list[SongSchema]
    pagination: PaginationSchema

    @classmethod
    def from_page(cls, page: SongPage) -> "SongPageSchema":
        return cls(
            items=[SongSchema.from_entity(song) for song in page.items],
            pagination=PaginationSchema.from_pagination(page.pagination),
        )


class AddToLibraryRequest(BaseModel):
    """Request body of POST /library."""

    song_id: UUID = Field(..., description="Catalog entry to add")


class LibraryMembershipSchema(BaseModel):
    """Response of POST /library."""

    song_id: UUID
    added_at: datetime
