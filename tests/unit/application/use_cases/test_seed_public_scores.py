"""Tests for SeedPublicScoresUseCase."""

from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from musicxml_samples import make_musicxml, make_mxl
from mushee.application.use_cases import SeedPublicScoresRequest, SeedPublicScoresUseCase
from mushee.application.use_cases.seed_public_scores import SeedReport, find_score_files
from mushee.domain.entities import Song
from mushee.domain.exceptions import CatalogEntryExistsError
from mushee.domain.ports import ISongRepository
from mushee.infrastructure.storage import LocalBlobStore


@pytest.fixture
def scores_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "scores"
    (directory / "baroque").mkdir(parents=True)
    (directory / "bach_air.musicxml").write_text(
        make_musicxml(work_title="Air on the G String", composer="J. S. Bach")
    )
    (directory / "baroque" / "canon.mxl").write_bytes(
        make_mxl(make_musicxml(work_title="Canon in D", composer="Johann Pachelbel"))
    )
    (directory / "notes.txt").write_text("not a score")
    return directory


@pytest.fixture
def song_repository() -> AsyncMock:
    repo = AsyncMock(spec=ISongRepository)
    repo.get_by_fingerprint.return_value = None
    repo.add.side_effect = lambda song: song
    return repo


@pytest.fixture
def use_case(song_repository: AsyncMock, blob_store: LocalBlobStore) -> SeedPublicScoresUseCase:
    return SeedPublicScoresUseCase(song_repository=song_repository, blob_store=blob_store)


class TestFindScoreFiles:
    def test_recursive_and_filtered(self, scores_dir: Path) -> None:
        names = [path.name for path in find_score_files(scores_dir)]
        assert names == ["bach_air.musicxml", "canon.mxl"]


class TestSeedReport:
    def test_success_and_total(self) -> None:
        report = SeedReport(seeded=["a"], skipped=["b"], failed={"c": "broken"})
        assert report.total == 3
        assert report.success is False
        assert SeedReport().success is True


class TestSeedPublicScoresUseCase:
    """Public-domain seeding."""

    @pytest.mark.asyncio
    async def test_seeds_public_entries(
        self,
        use_case: SeedPublicScoresUseCase,
        song_repository: AsyncMock,
        blob_store: LocalBlobStore,
        scores_dir: Path,
    ) -> None:
        report = await use_case.execute(SeedPublicScoresRequest(scores_dir=scores_dir))

        assert sorted(report.seeded) == ["bach_air.musicxml", str(Path("baroque/canon.mxl"))]
        assert report.failed == {}
        assert song_repository.add.await_count == 2

        songs: list[Song] = [call.args[0] for call in song_repository.add.await_args_list]
        assert all(song.is_public for song in songs)
        assert {song.composer for song in songs} == {"J. S. Bach", "Johann Pachelbel"}
        assert len(await blob_store.list_keys()) == 2

    @pytest.mark.asyncio
    async def test_known_content_is_skipped(
        self,
        use_case: SeedPublicScoresUseCase,
        song_repository: AsyncMock,
        scores_dir: Path,
    ) -> None:
        song_repository.get_by_fingerprint.return_value = object()

        report = await use_case.execute(SeedPublicScoresRequest(scores_dir=scores_dir))

        assert len(report.skipped) == 2
        song_repository.add.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_files_in_directory_are_skipped(
        self,
        use_case: SeedPublicScoresUseCase,
        song_repository: AsyncMock,
        scores_dir: Path,
    ) -> None:
        song_repository.add.side_effect = CatalogEntryExistsError("x")

        report = await use_case.execute(SeedPublicScoresRequest(scores_dir=scores_dir))

        assert report.seeded == []
        assert len(report.skipped) == 2
        assert report.success

    @pytest.mark.asyncio
    async def test_bad_files_are_reported_and_run_continues(
        self, use_case: SeedPublicScoresUseCase, scores_dir: Path
    ) -> None:
        (scores_dir / "broken.xml").write_text("<score-partwise><work>")
        (scores_dir / "anonymous.xml").write_text(make_musicxml(composer=None))

        report = await use_case.execute(SeedPublicScoresRequest(scores_dir=scores_dir))

        assert len(report.seeded) == 2
        assert set(report.failed) == {"broken.xml", "anonymous.xml"}
        assert "title and composer" in report.failed["anonymous.xml"]
        assert not report.success

    @pytest.mark.asyncio
    async def test_missing_directory(
        self, use_case: SeedPublicScoresUseCase, tmp_path: Path
    ) -> None:
        with pytest.raises(FileNotFoundError):
            await use_case.execute(SeedPublicScoresRequest(scores_dir=tmp_path / "nope"))
