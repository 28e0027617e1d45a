"""Personal library and catalog browsing operations.

Hey future me - this is everything AROUND the upload pipeline: adding an
existing catalog entry, listing/removing library items, and reading score
files. Removal only ever deletes the membership row. Catalog entries and
blobs are shared across actors and stay forever.

Visibility rule (add + file access):
- public entries (uploader_id is None) are visible to everyone
- private entries only to their uploader or to actors that have them in their library
Hidden entries are reported as "not found", never as "forbidden".
"""

import logging
import math
from dataclasses import dataclass

from mushee.domain.entities import LibraryItem, LibraryMembership, Song
from mushee.domain.exceptions import EntityNotFoundException, ValidationError
from mushee.domain.ports import IBlobStore, ILibraryRepository, ISongRepository
from mushee.domain.value_objects import ActorId, SongId

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100
DEFAULT_PAGE_LIMIT = 50
SORT_FIELDS = frozenset({"title", "composer", "created_at"})
SORT_ORDERS = frozenset({"asc", "desc"})


@dataclass(frozen=True)
class Pagination:
    """Pagination metadata for a listing."""

    page: int
    limit: int
    total_items: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_items / self.limit) if self.total_items else 0


@dataclass
class LibraryPage:
    """One page of an actor's library."""

    items: list[LibraryItem]
    pagination: Pagination


@dataclass
class SongPage:
    """One page of catalog entries."""

    items: list[Song]
    pagination: Pagination


def validate_pagination(page: int, limit: int) -> None:
    """Raise ValidationError for out-of-range paging parameters."""
    if page < 1:
        raise ValidationError("Page must be an integer greater than or equal to 1")
    if limit < 1 or limit > MAX_PAGE_LIMIT:
        raise ValidationError(f"Limit must be an integer between 1 and {MAX_PAGE_LIMIT}")


class LibraryService:
    """Library membership and catalog read operations."""

    def __init__(
        self,
        song_repository: ISongRepository,
        library_repository: ILibraryRepository,
        blob_store: IBlobStore,
        blob_extension: str = ".musicxml",
    ) -> None:
        self._song_repository = song_repository
        self._library_repository = library_repository
        self._blob_store = blob_store
        self._blob_extension = blob_extension

    async def add_to_library(self, actor_id: ActorId, song_id: SongId) -> LibraryMembership:
        """Add an existing catalog entry to the actor's library.

        Raises:
            EntityNotFoundException: song missing or not visible to the actor
            SongAlreadyInLibraryError: actor already has it
        """
        song = await self._get_visible_song(actor_id, song_id)
        membership = await self._library_repository.add(actor_id, song.id)
        logger.info("Actor %s added song %s to library", actor_id, song.id)
        return membership

    async def list_library(
        self,
        actor_id: ActorId,
        page: int = 1,
        limit: int = DEFAULT_PAGE_LIMIT,
        sort: str = "created_at",
        order: str = "desc",
    ) -> LibraryPage:
        """List the actor's library, newest first by default.

        Raises:
            ValidationError: invalid page, limit, sort field or order
        """
        validate_pagination(page, limit)
        if sort not in SORT_FIELDS:
            raise ValidationError(
                f"Sort field must be one of: {', '.join(sorted(SORT_FIELDS))}"
            )
        if order not in SORT_ORDERS:
            raise ValidationError("Sort order must be 'asc' or 'desc'")

        total = await self._library_repository.count_for_actor(actor_id)
        items = await self._library_repository.list_for_actor(
            actor_id,
            limit=limit,
            offset=(page - 1) * limit,
            sort=sort,
            descending=order == "desc",
        )
        return LibraryPage(
            items=items, pagination=Pagination(page=page, limit=limit, total_items=total)
        )

    async def remove_from_library(self, actor_id: ActorId, song_id: SongId) -> None:
        """Remove a song from the actor's library (membership only).

        Raises:
            EntityNotFoundException: the actor does not have this song
        """
        removed = await self._library_repository.remove(actor_id, song_id)
        if not removed:
            raise EntityNotFoundException(
                "Song", song_id, message="Song not found in your library"
            )
        logger.info("Actor %s removed song %s from library", actor_id, song_id)

    async def get_song_file(
        self, actor_id: ActorId | None, song_id: SongId
    ) -> tuple[Song, bytes]:
        """Return a catalog entry together with its stored score bytes.

        Raises:
            EntityNotFoundException: song missing, hidden, or its blob is gone
        """
        song = await self._get_visible_song(actor_id, song_id)
        key = song.file_hash.blob_key(self._blob_extension)
        data = await self._blob_store.get(key)
        if data is None:
            logger.error("Blob %s missing for catalog entry %s", key, song.id)
            raise EntityNotFoundException("Song file", song.id)
        return song, data

    async def list_public_songs(
        self, page: int = 1, limit: int = DEFAULT_PAGE_LIMIT, search: str | None = None
    ) -> SongPage:
        """List public-domain catalog entries, optionally filtered by title/composer."""
        validate_pagination(page, limit)
        search = (search or "").strip() or None
        total = await self._song_repository.count_public(search)
        songs = await self._song_repository.list_public(
            limit=limit, offset=(page - 1) * limit, search=search
        )
        return SongPage(
            items=songs, pagination=Pagination(page=page, limit=limit, total_items=total)
        )

    async def _get_visible_song(self, actor_id: ActorId | None, song_id: SongId) -> Song:
        song = await self._song_repository.get_by_id(song_id)
        if song is None:
            raise EntityNotFoundException("Song", song_id)
        if song.is_public:
            return song
        if actor_id is not None:
            if song.uploader_id == actor_id:
                return song
            if await self._library_repository.exists(actor_id, song.id):
                return song
        # Don't leak the existence of someone else's private upload
        raise EntityNotFoundException("Song", song_id)
