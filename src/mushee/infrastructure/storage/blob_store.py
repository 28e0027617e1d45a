"""Filesystem-backed content-addressed blob store."""

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from mushee.domain.exceptions import ConfigurationError, ValidationError
from mushee.domain.ports import IBlobStore

logger = logging.getLogger(__name__)


class LocalBlobStore(IBlobStore):
    """Stores score blobs as flat files below one root directory.

    Hey future me - keys are "<md5>.musicxml", so two writers of the same key
    always carry identical bytes. put() therefore never overwrites: the blob is
    written to a temp file and hard-linked into place. os.link fails with
    FileExistsError if someone got there first, which we treat as success.
    Readers never see a half-written blob.
    """

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        """Create the root directory.

        Raises:
            ConfigurationError: directory can't be created
        """
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigurationError(
                f"Unable to create blob storage directory {self.root}: {e}"
            ) from e

    def _path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise ValidationError(f"Invalid blob key: {key!r}")
        path = (self.root / key).resolve()
        if path.parent != self.root:
            raise ValidationError(f"Invalid blob key: {key!r}")
        return path

    async def put(self, key: str, data: bytes) -> bool:
        """Store data under key unless it already exists."""
        path = self._path_for(key)
        written = await asyncio.to_thread(self._write_if_absent, path, data)
        if written:
            logger.debug("Stored blob %s (%d bytes)", key, len(data))
        else:
            logger.debug("Blob %s already exists, skipping write", key)
        return written

    def _write_if_absent(self, path: Path, data: bytes) -> bool:
        if path.exists():
            return False

        self.ensure_root()
        fd, tmp_name = tempfile.mkstemp(dir=self.root, prefix=".upload-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp_file:
                tmp_file.write(data)
                tmp_file.flush()
                os.fsync(tmp_file.fileno())
            try:
                os.link(tmp_name, path)
            except FileExistsError:
                return False
            return True
        finally:
            os.unlink(tmp_name)

    async def exists(self, key: str) -> bool:
        """Check if a blob exists."""
        path = self._path_for(key)
        return await asyncio.to_thread(path.is_file)

    async def get(self, key: str) -> bytes | None:
        """Read a blob, None if missing."""
        path = self._path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None

    async def list_keys(self, prefix: str = "") -> list[str]:
        """List stored keys starting with prefix (temp files excluded)."""

        def _scan() -> list[str]:
            if not self.root.is_dir():
                return []
            return sorted(
                entry.name
                for entry in self.root.iterdir()
                if entry.is_file()
                and not entry.name.startswith(".")
                and entry.name.startswith(prefix)
            )

        return await asyncio.to_thread(_scan)
