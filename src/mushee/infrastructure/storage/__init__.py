"""Object storage adapters."""

from mushee.infrastructure.storage.blob_store import LocalBlobStore

__all__ = ["LocalBlobStore"]
