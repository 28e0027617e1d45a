"""Domain value objects.

Hey future me - IDs and fingerprints are VALUE OBJECTS, not raw strings!
Passing a SongId where an ActorId is expected is a type error mypy will catch,
and every constructor validates its input once so the rest of the code can trust it.
"""

import re
import uuid
from dataclasses import dataclass

from mushee.domain.exceptions import ValidationError

# 128-bit digest rendered as lowercase hex
_FINGERPRINT_PATTERN = re.compile(r"^[0-9a-f]{32}$")


@dataclass(frozen=True)
class SongId:
    """Catalog entry identifier (UUID)."""

    value: uuid.UUID

    @classmethod
    def generate(cls) -> "SongId":
        """Generate a new random song ID."""
        return cls(uuid.uuid4())

    @classmethod
    def from_string(cls, value: str) -> "SongId":
        """Parse a song ID, raising ValidationError for non-UUID input."""
        try:
            return cls(uuid.UUID(str(value).strip()))
        except (ValueError, AttributeError) as e:
            raise ValidationError(f"Invalid song id: {value!r}") from e

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ActorId:
    """Identity of the authenticated user performing an operation."""

    value: uuid.UUID

    @classmethod
    def from_string(cls, value: str) -> "ActorId":
        """Parse an actor ID, raising ValidationError for non-UUID input."""
        try:
            return cls(uuid.UUID(str(value).strip()))
        except (ValueError, AttributeError) as e:
            raise ValidationError(f"Invalid actor id: {value!r}") from e

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class ContentFingerprint:
    """Hex-encoded 128-bit content digest used as the deduplication key.

    The same fingerprint addresses the catalog entry AND the stored blob, so
    it must never be built from anything but ContentHasher output or a value
    read back from storage.
    """

    value: str

    def __post_init__(self) -> None:
        if not _FINGERPRINT_PATTERN.match(self.value):
            raise ValidationError(f"Invalid content fingerprint: {self.value!r}")

    def blob_key(self, extension: str) -> str:
        """Object-store key for this fingerprint."""
        return f"{self.value}{extension}"

    def __str__(self) -> str:
        return self.value


__all__ = ["ActorId", "ContentFingerprint", "SongId"]
