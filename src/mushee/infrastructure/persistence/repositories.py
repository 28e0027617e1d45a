"""SQLAlchemy repository implementations."""

import logging
from typing import Any

from sqlalchemy import Select, and_, delete, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mushee.domain.entities import (
    LibraryItem,
    LibraryMembership,
    ReconciliationResult,
    Song,
)
from mushee.domain.exceptions import CatalogEntryExistsError, SongAlreadyInLibraryError
from mushee.domain.ports import ILibraryRepository, ISongRepository
from mushee.domain.value_objects import ActorId, ContentFingerprint, SongId
from mushee.infrastructure.persistence.models import (
    SongModel,
    UserSongModel,
    ensure_utc_aware,
)

logger = logging.getLogger(__name__)


def _song_from_model(model: SongModel) -> Song:
    return Song(
        id=SongId.from_string(model.id),
        title=model.title,
        composer=model.composer,
        subtitle=model.subtitle,
        file_hash=ContentFingerprint(model.file_hash),
        uploader_id=ActorId.from_string(model.uploader_id) if model.uploader_id else None,
        created_at=ensure_utc_aware(model.created_at),
    )


class SongRepository(ISongRepository):
    """SQLAlchemy implementation of the catalog repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    # Hey future me - the SAVEPOINT is what makes the race fallback work! Without it a unique
    # violation would poison the whole session and the use case couldn't run the attach-existing
    # query afterwards. We only translate the error if the fingerprint row really exists now,
    # any other IntegrityError is a bug and must propagate as-is.
    async def add(self, song: Song) -> Song:
        """Insert a catalog entry.

        Raises:
            CatalogEntryExistsError: the fingerprint is already catalogued
        """
        model = SongModel(
            id=str(song.id),
            title=song.title,
            composer=song.composer,
            subtitle=song.subtitle,
            file_hash=song.file_hash.value,
            uploader_id=str(song.uploader_id) if song.uploader_id else None,
            created_at=song.created_at,
        )
        try:
            async with self.session.begin_nested():
                self.session.add(model)
                await self.session.flush()
        except IntegrityError as e:
            if await self.get_by_fingerprint(song.file_hash) is not None:
                raise CatalogEntryExistsError(song.file_hash) from e
            raise
        return song

    async def get_by_id(self, song_id: SongId) -> Song | None:
        """Get a catalog entry by ID."""
        stmt = select(SongModel).where(SongModel.id == str(song_id))
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _song_from_model(model) if model else None

    async def get_by_fingerprint(self, fingerprint: ContentFingerprint) -> Song | None:
        """Get a catalog entry by content fingerprint."""
        stmt = select(SongModel).where(SongModel.file_hash == fingerprint.value)
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return _song_from_model(model) if model else None

    async def find_by_fingerprint_with_membership(
        self, fingerprint: ContentFingerprint, actor_id: ActorId
    ) -> ReconciliationResult:
        """Look up entry + actor membership as ONE LEFT OUTER JOIN.

        The join condition (not the WHERE clause) filters memberships to this
        actor, so a song owned only by other actors still comes back with a
        NULL membership column.
        """
        stmt = (
            select(SongModel, UserSongModel.user_id)
            .outerjoin(
                UserSongModel,
                and_(
                    UserSongModel.song_id == SongModel.id,
                    UserSongModel.user_id == str(actor_id),
                ),
            )
            .where(SongModel.file_hash == fingerprint.value)
        )
        result = await self.session.execute(stmt)
        row = result.first()
        if row is None:
            return ReconciliationResult(existing_song=None)

        model, member_id = row
        return ReconciliationResult(
            existing_song=_song_from_model(model),
            already_owned_by_actor=member_id is not None,
        )

    async def list_public(
        self, limit: int = 50, offset: int = 0, search: str | None = None
    ) -> list[Song]:
        """List public-domain entries ordered by title."""
        stmt = (
            self._public_filter(select(SongModel), search)
            .order_by(func.lower(SongModel.title), SongModel.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [_song_from_model(model) for model in result.scalars().all()]

    async def count_public(self, search: str | None = None) -> int:
        """Count public-domain entries."""
        stmt = self._public_filter(select(func.count(SongModel.id)), search)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    @staticmethod
    def _public_filter(stmt: Select[Any], search: str | None) -> Select[Any]:
        stmt = stmt.where(SongModel.uploader_id.is_(None))
        if search:
            stmt = stmt.where(
                or_(
                    SongModel.title.icontains(search, autoescape=True),
                    SongModel.composer.icontains(search, autoescape=True),
                )
            )
        return stmt


class LibraryRepository(ILibraryRepository):
    """SQLAlchemy implementation of the library membership repository."""

    _SORT_COLUMNS = {
        "title": func.lower(SongModel.title),
        "composer": func.lower(SongModel.composer),
        "created_at": UserSongModel.created_at,
    }

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, user_id: ActorId, song_id: SongId) -> LibraryMembership:
        """Insert a membership.

        Raises:
            SongAlreadyInLibraryError: the composite key already exists
        """
        membership = LibraryMembership(user_id=user_id, song_id=song_id)
        # Core INSERT, not session.add(): a second ORM object with the same composite key
        # would trip the identity map before the database ever sees the row.
        stmt = insert(UserSongModel).values(
            user_id=str(user_id),
            song_id=str(song_id),
            created_at=membership.created_at,
        )
        try:
            async with self.session.begin_nested():
                await self.session.execute(stmt)
        except IntegrityError as e:
            # Same actor racing themselves (double-click upload) - report it as the conflict
            if await self.exists(user_id, song_id):
                raise SongAlreadyInLibraryError(song_id) from e
            raise
        return membership

    async def exists(self, user_id: ActorId, song_id: SongId) -> bool:
        """Check whether the membership exists."""
        stmt = select(UserSongModel.song_id).where(
            UserSongModel.user_id == str(user_id),
            UserSongModel.song_id == str(song_id),
        )
        result = await self.session.execute(stmt)
        return result.first() is not None

    async def remove(self, user_id: ActorId, song_id: SongId) -> bool:
        """Delete a membership. The catalog entry is never touched."""
        stmt = delete(UserSongModel).where(
            UserSongModel.user_id == str(user_id),
            UserSongModel.song_id == str(song_id),
        )
        result = await self.session.execute(stmt)
        return bool(result.rowcount)  # type: ignore[attr-defined]

    async def list_for_actor(
        self,
        user_id: ActorId,
        limit: int = 50,
        offset: int = 0,
        sort: str = "created_at",
        descending: bool = True,
    ) -> list[LibraryItem]:
        """List the actor's library joined with the catalog."""
        sort_column = self._SORT_COLUMNS.get(sort)
        if sort_column is None:
            raise ValueError(f"Unsupported sort field: {sort}")

        order = sort_column.desc() if descending else sort_column.asc()
        stmt = (
            select(SongModel, UserSongModel.created_at)
            .join(UserSongModel, UserSongModel.song_id == SongModel.id)
            .where(UserSongModel.user_id == str(user_id))
            .order_by(order, SongModel.id)
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return [
            LibraryItem(song=_song_from_model(model), added_at=ensure_utc_aware(added_at))
            for model, added_at in result.all()
        ]

    async def count_for_actor(self, user_id: ActorId) -> int:
        """Count the actor's library entries."""
        stmt = select(func.count()).select_from(UserSongModel).where(
            UserSongModel.user_id == str(user_id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()
