"""SQLAlchemy ORM models for MuShee."""

import uuid
from datetime import UTC, datetime

from sqlalchemy import ForeignKey, Index, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


# Hey future me - SQLite doesn't preserve timezone info! UTC datetimes come back naive.
# Use this whenever converting a model to an entity so comparisons with
# datetime.now(UTC) don't blow up with "can't compare offset-naive and offset-aware".
def ensure_utc_aware(dt: datetime) -> datetime:
    """Ensure datetime is UTC-aware, assuming naive datetimes are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Listen up, SongModel is the CATALOG - one row per unique file content! file_hash is UNIQUE
# and that constraint is what resolves concurrent first-uploads of the same bytes: only one
# INSERT can win. uploader_id is NULL for public-domain entries (seeding CLI). Rows are never
# updated or deleted by the app; user_songs rows point here.
class SongModel(Base):
    """SQLAlchemy model for a catalog entry."""

    __tablename__ = "songs"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    composer: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    subtitle: Mapped[str | None] = mapped_column(String(200), nullable=True)
    # MD5 hex digest of the uploaded bytes - also the blob key stem
    file_hash: Mapped[str] = mapped_column(String(32), nullable=False, unique=True)
    uploader_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_songs_uploader_id", "uploader_id"),
        Index("ix_songs_title_lower", func.lower(title)),
        Index("ix_songs_composer_lower", func.lower(composer)),
    )


class UserSongModel(Base):
    """Association table for an actor's library (actor <-> catalog entry)."""

    __tablename__ = "user_songs"

    # Composite PK = "an actor can't have the same song twice"
    user_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    song_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("songs.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(default=utc_now, nullable=False)

    __table_args__ = (Index("ix_user_songs_user_created", "user_id", "created_at"),)
