"""Cheap upload gate: extension, declared size and declared content type.

Hey future me - nothing here reads the file content! These checks run BEFORE
we hash or unzip anything, in the order extension -> size -> type. Extension
first because it is the cheapest check and gives the most useful message.
"""

import logging
from pathlib import PurePosixPath

from mushee.domain.exceptions import FileTooLargeError, InvalidFileFormatError

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024

PLAIN_EXTENSIONS = frozenset({".xml", ".musicxml"})
CONTAINER_EXTENSIONS = frozenset({".mxl"})
ALLOWED_EXTENSIONS = PLAIN_EXTENSIONS | CONTAINER_EXTENSIONS

ALLOWED_MIME_TYPES = frozenset(
    {
        "application/xml",
        "text/xml",
        "application/vnd.recordare.musicxml+xml",
        "application/vnd.recordare.musicxml",
        "application/zip",
        "application/x-zip-compressed",
    }
)

# Browsers report compressed containers as almost anything. For .mxl we only
# reject types that are clearly something else.
_GENERIC_MIME_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream"})


def get_file_extension(filename: str) -> str:
    """Return the lowercase suffix including the dot, or '' if none."""
    # Windows clients sometimes send the full path
    name = filename.replace("\\", "/")
    return PurePosixPath(name).suffix.lower()


def format_size_limit(limit_bytes: int) -> str:
    """Human-readable size limit, e.g. '10MB'."""
    megabytes = limit_bytes / (1024 * 1024)
    if megabytes >= 1:
        return f"{megabytes:g}MB"
    return f"{limit_bytes / 1024:g}KB"


class FileValidator:
    """Validates upload metadata before any content processing."""

    def __init__(
        self,
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
        allowed_mime_types: frozenset[str] = ALLOWED_MIME_TYPES,
    ) -> None:
        self.max_file_size_bytes = max_file_size_bytes
        self.allowed_mime_types = allowed_mime_types

    def validate(
        self, filename: str, declared_size: int, declared_mime_type: str | None
    ) -> None:
        """Run all checks in order.

        Raises:
            InvalidFileFormatError: bad extension or content type
            FileTooLargeError: declared size over the limit
        """
        extension = self.validate_extension(filename)
        self.validate_size(declared_size)
        self.validate_mime_type(declared_mime_type, extension)

    def validate_extension(self, filename: str) -> str:
        """Check the filename suffix against the allow-list and return it."""
        extension = get_file_extension(filename or "")
        if extension not in ALLOWED_EXTENSIONS:
            logger.debug("Rejected upload extension %r for %r", extension, filename)
            raise InvalidFileFormatError(
                "Only MusicXML files (.xml, .musicxml, .mxl) are supported. "
                f"Got: {filename or 'unnamed file'}"
            )
        return extension

    def validate_size(self, declared_size: int) -> None:
        """Check the declared size against the ceiling (inclusive)."""
        if declared_size > self.max_file_size_bytes:
            raise FileTooLargeError(
                "File size exceeds maximum allowed size of "
                f"{format_size_limit(self.max_file_size_bytes)}",
                size_bytes=declared_size,
                limit_bytes=self.max_file_size_bytes,
            )

    def validate_mime_type(self, declared_mime_type: str | None, extension: str) -> None:
        """Check the declared content type.

        Compressed containers get a soft pass: generic or missing types are
        accepted because the extension check already succeeded.
        """
        mime_type = (declared_mime_type or "").split(";", 1)[0].strip().lower()
        if mime_type in self.allowed_mime_types:
            return
        if extension in CONTAINER_EXTENSIONS and (
            mime_type in _GENERIC_MIME_TYPES or "zip" in mime_type
        ):
            logger.debug("Soft-passing content type %r for container upload", mime_type)
            return
        raise InvalidFileFormatError(
            f"Invalid file type: {mime_type or 'unknown'}. "
            "Expected MusicXML (XML/ZIP) content."
        )
