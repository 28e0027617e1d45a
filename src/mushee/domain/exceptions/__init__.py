"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # error_code is the MACHINE-READABLE kind the API hands to clients - the UI maps it to its own
    # wording ("only .xml/.musicxml/.mxl files are supported" etc). Don't raise this base class
    # directly! Always use a specific subclass so callers can catch precisely.
    error_code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    error_code = "NOT_FOUND"

    # We store entity_type and entity_id separately so error handlers can log them structured.
    # Use this only where "not found" is exceptional - repository lookups return None instead.
    def __init__(self, entity_type: str, entity_id: Any, message: str | None = None) -> None:
        super().__init__(message or f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class DuplicateEntityException(DomainException):
    """Raised when trying to create a duplicate entity."""

    error_code = "DUPLICATE_ENTITY"

    def __init__(
        self, entity_type: str, entity_id: Any, message: str | None = None
    ) -> None:
        super().__init__(message or f"{entity_type} with id {entity_id} already exists")
        self.entity_type = entity_type
        self.entity_id = entity_id


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422

    Example:
        raise ValidationError("Limit must be an integer between 1 and 100")
    """

    error_code = "INVALID_PARAMETERS"


class AuthenticationError(DomainException):
    """User is not authenticated.

    HTTP Status: 401
    """

    error_code = "UNAUTHENTICATED"


class ConfigurationError(DomainException):
    """Application misconfiguration.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("Unable to create blob storage directory")
    """

    error_code = "CONFIGURATION_ERROR"


# =============================================================================
# Upload pipeline errors
# Each one is a distinct, user-correctable kind. None of them is retried.
# =============================================================================


class UnauthenticatedError(AuthenticationError):
    """No actor identity could be resolved for the request."""

    error_code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidFileFormatError(ValidationError):
    """Wrong file extension or unacceptable declared content type.

    HTTP Status: 422
    """

    error_code = "INVALID_FILE_FORMAT"


class FileTooLargeError(ValidationError):
    """Declared upload size exceeds the configured ceiling.

    HTTP Status: 413
    """

    error_code = "FILE_TOO_LARGE"

    def __init__(self, message: str, size_bytes: int, limit_bytes: int) -> None:
        super().__init__(message)
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class InvalidMusicXmlError(ValidationError):
    """Payload is not usable MusicXML.

    Covers container extraction failures, structural pre-check failures, parse
    errors, parse timeouts and documents without title AND composer.

    HTTP Status: 422
    """

    error_code = "INVALID_MUSICXML"


class SongAlreadyInLibraryError(DuplicateEntityException):
    """The actor already has this catalog entry in their library.

    Expected state, not a system failure - the UI shows a friendly
    "already have this" message for it.

    HTTP Status: 409 (Conflict)
    """

    error_code = "SONG_ALREADY_IN_LIBRARY"

    def __init__(self, song_id: Any) -> None:
        super().__init__(
            "Song", song_id, message="This song is already in your library"
        )


class CatalogEntryExistsError(DuplicateEntityException):
    """A catalog entry with this content fingerprint already exists.

    Raised by the persistence layer when the unique fingerprint constraint
    rejects an insert. The upload use case turns it into the attach-existing
    branch, so it should never reach an API client.
    """

    error_code = "SONG_ALREADY_EXISTS"

    def __init__(self, fingerprint: Any) -> None:
        super().__init__("Song", fingerprint, message=f"Song with content {fingerprint} already exists")
        self.fingerprint = fingerprint


__all__ = [
    # Base
    "DomainException",
    # Entity exceptions
    "EntityNotFoundException",
    "DuplicateEntityException",
    "CatalogEntryExistsError",
    "SongAlreadyInLibraryError",
    # Validation exceptions
    "ValidationError",
    "InvalidFileFormatError",
    "FileTooLargeError",
    "InvalidMusicXmlError",
    # Auth exceptions
    "AuthenticationError",
    "UnauthenticatedError",
    # Configuration
    "ConfigurationError",
]
