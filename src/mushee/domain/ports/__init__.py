"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod

from mushee.domain.entities import (
    LibraryItem,
    LibraryMembership,
    ReconciliationResult,
    Song,
)
from mushee.domain.value_objects import ActorId, ContentFingerprint, SongId


# Hey future me, ISongRepository is a PORT (Hexagonal Architecture)! The catalog's uniqueness rule
# (one Song per fingerprint) is enforced by the STORAGE behind this interface, not by callers -
# add() must raise CatalogEntryExistsError when the unique constraint fires so the upload use case
# can fall back to attaching the existing entry.
class ISongRepository(ABC):
    """Repository interface for catalog entries."""

    @abstractmethod
    async def add(self, song: Song) -> Song:
        """Insert a new catalog entry.

        Raises:
            CatalogEntryExistsError: an entry with the same fingerprint exists
        """
        pass

    @abstractmethod
    async def get_by_id(self, song_id: SongId) -> Song | None:
        """Get a catalog entry by ID."""
        pass

    @abstractmethod
    async def get_by_fingerprint(self, fingerprint: ContentFingerprint) -> Song | None:
        """Get a catalog entry by content fingerprint."""
        pass

    @abstractmethod
    async def find_by_fingerprint_with_membership(
        self, fingerprint: ContentFingerprint, actor_id: ActorId
    ) -> ReconciliationResult:
        """Look up an entry and the actor's membership in ONE round-trip."""
        pass

    @abstractmethod
    async def list_public(
        self, limit: int = 50, offset: int = 0, search: str | None = None
    ) -> list[Song]:
        """List public-domain entries."""
        pass

    @abstractmethod
    async def count_public(self, search: str | None = None) -> int:
        """Count public-domain entries."""
        pass


class ILibraryRepository(ABC):
    """Repository interface for library memberships."""

    @abstractmethod
    async def add(self, user_id: ActorId, song_id: SongId) -> LibraryMembership:
        """Insert a membership.

        Raises:
            SongAlreadyInLibraryError: the membership already exists
        """
        pass

    @abstractmethod
    async def exists(self, user_id: ActorId, song_id: SongId) -> bool:
        """Check whether the actor has the song in their library."""
        pass

    @abstractmethod
    async def remove(self, user_id: ActorId, song_id: SongId) -> bool:
        """Delete a membership. Returns False when there was none."""
        pass

    @abstractmethod
    async def list_for_actor(
        self,
        user_id: ActorId,
        limit: int = 50,
        offset: int = 0,
        sort: str = "created_at",
        descending: bool = True,
    ) -> list[LibraryItem]:
        """List the actor's library joined with catalog entries."""
        pass

    @abstractmethod
    async def count_for_actor(self, user_id: ActorId) -> int:
        """Count the actor's library entries."""
        pass


# Yo, IBlobStore is the object store! Keys are content-addressed (fingerprint + extension),
# so put() is CREATE-IF-ABSENT: an existing key means identical bytes are already there and
# the call is a successful no-op. Never overwrite.
class IBlobStore(ABC):
    """Content-addressed object storage."""

    @abstractmethod
    async def put(self, key: str, data: bytes) -> bool:
        """Store bytes under key if absent.

        Returns:
            True if the blob was written, False if it already existed
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a blob exists."""
        pass

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Read a blob, None if missing."""
        pass

    @abstractmethod
    async def list_keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix."""
        pass


class IIdentityProvider(ABC):
    """Resolves the actor behind the current request."""

    @abstractmethod
    async def get_current_actor(self) -> ActorId | None:
        """Return the current actor, or None if unauthenticated."""
        pass


__all__ = [
    "IBlobStore",
    "IIdentityProvider",
    "ILibraryRepository",
    "ISongRepository",
]
