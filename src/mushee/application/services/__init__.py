"""Application services - one module per upload pipeline component."""

from mushee.application.services.catalog_reconciler import CatalogReconciler
from mushee.application.services.container_extractor import ContainerExtractor
from mushee.application.services.content_hasher import ContentHasher
from mushee.application.services.file_validator import FileValidator
from mushee.application.services.library_service import (
    LibraryPage,
    LibraryService,
    Pagination,
    SongPage,
)
from mushee.application.services.metadata_extractor import MetadataExtractor

__all__ = [
    "CatalogReconciler",
    "ContainerExtractor",
    "ContentHasher",
    "FileValidator",
    "LibraryPage",
    "LibraryService",
    "MetadataExtractor",
    "Pagination",
    "SongPage",
]
