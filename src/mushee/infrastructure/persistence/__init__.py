"""Infrastructure persistence layer."""

from .database import Database
from .models import Base, SongModel, UserSongModel
from .repositories import LibraryRepository, SongRepository

__all__ = [
    "Base",
    "Database",
    "LibraryRepository",
    "SongModel",
    "SongRepository",
    "UserSongModel",
]
