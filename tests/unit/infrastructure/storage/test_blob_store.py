"""Tests for the filesystem blob store."""

import asyncio
from pathlib import Path

import pytest

from mushee.domain.exceptions import ConfigurationError, ValidationError
from mushee.infrastructure.storage import LocalBlobStore

KEY = "0123456789abcdef0123456789abcdef.musicxml"


class TestLocalBlobStore:
    """Create-if-absent semantics and key validation."""

    @pytest.mark.asyncio
    async def test_put_then_get(self, blob_store: LocalBlobStore) -> None:
        assert await blob_store.put(KEY, b"<score/>") is True
        assert await blob_store.get(KEY) == b"<score/>"
        assert await blob_store.exists(KEY)

    @pytest.mark.asyncio
    async def test_put_never_overwrites(self, blob_store: LocalBlobStore) -> None:
        await blob_store.put(KEY, b"first")

        assert await blob_store.put(KEY, b"second") is False
        assert await blob_store.get(KEY) == b"first"

    @pytest.mark.asyncio
    async def test_concurrent_puts_write_once(self, blob_store: LocalBlobStore) -> None:
        results = await asyncio.gather(*(blob_store.put(KEY, b"same") for _ in range(5)))

        assert results.count(True) == 1
        assert await blob_store.list_keys() == [KEY]

    @pytest.mark.asyncio
    async def test_no_temp_files_left_behind(self, blob_store: LocalBlobStore) -> None:
        await blob_store.put(KEY, b"data")
        await blob_store.put(KEY, b"data")

        assert sorted(p.name for p in blob_store.root.iterdir()) == [KEY]

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, blob_store: LocalBlobStore) -> None:
        assert await blob_store.get(KEY) is None
        assert not await blob_store.exists(KEY)

    @pytest.mark.asyncio
    async def test_list_keys_with_prefix(self, blob_store: LocalBlobStore) -> None:
        await blob_store.put("aaa.musicxml", b"a")
        await blob_store.put("bbb.musicxml", b"b")

        assert await blob_store.list_keys("a") == ["aaa.musicxml"]
        assert await blob_store.list_keys() == ["aaa.musicxml", "bbb.musicxml"]

    @pytest.mark.asyncio
    async def test_list_keys_of_missing_root(self, tmp_path: Path) -> None:
        assert await LocalBlobStore(tmp_path / "missing").list_keys() == []

    @pytest.mark.asyncio
    async def test_put_creates_root(self, tmp_path: Path) -> None:
        store = LocalBlobStore(tmp_path / "lazy" / "blobs")
        assert await store.put(KEY, b"x")
        assert (tmp_path / "lazy" / "blobs" / KEY).is_file()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key", ["", ".", "..", "../escape.musicxml", "a/b.musicxml", "a\\b"])
    async def test_rejects_path_like_keys(self, blob_store: LocalBlobStore, key: str) -> None:
        with pytest.raises(ValidationError, match="Invalid blob key"):
            await blob_store.put(key, b"x")

    def test_ensure_root_failure_is_configuration_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(ConfigurationError):
            LocalBlobStore(blocker / "blobs").ensure_root()
