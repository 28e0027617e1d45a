"""Use case for seeding the catalog with public-domain scores.

Hey future me - public-domain entries are catalog rows with uploader_id = None.
Every actor can see them and add them to their library without uploading.
They go through the SAME hashing/extraction as user uploads so the fingerprint
matches if someone later uploads the identical file (they then hit branch B).

Seeding is stricter than uploading: a public entry needs BOTH title and
composer, otherwise the catalog listing is useless. One bad file never aborts
the run - it is recorded in the report and we move on.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path

from mushee.application.services.container_extractor import ContainerExtractor
from mushee.application.services.content_hasher import ContentHasher
from mushee.application.services.file_validator import ALLOWED_EXTENSIONS
from mushee.application.services.metadata_extractor import MetadataExtractor
from mushee.application.use_cases import UseCase
from mushee.domain.entities import Song
from mushee.domain.exceptions import (
    CatalogEntryExistsError,
    DomainException,
    InvalidMusicXmlError,
)
from mushee.domain.ports import IBlobStore, ISongRepository

logger = logging.getLogger(__name__)


@dataclass
class SeedPublicScoresRequest:
    """Request to seed every score file below a directory."""

    scores_dir: Path


@dataclass
class SeedReport:
    """Outcome of a seeding run."""

    seeded: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        """True if no file failed."""
        return not self.failed

    @property
    def total(self) -> int:
        return len(self.seeded) + len(self.skipped) + len(self.failed)


def find_score_files(scores_dir: Path) -> list[Path]:
    """All MusicXML files below scores_dir, sorted for stable runs."""
    return sorted(
        path
        for path in scores_dir.rglob("*")
        if path.is_file() and path.suffix.lower() in ALLOWED_EXTENSIONS
    )


class SeedPublicScoresUseCase(UseCase[SeedPublicScoresRequest, SeedReport]):
    """Load public-domain scores from disk into the catalog."""

    def __init__(
        self,
        song_repository: ISongRepository,
        blob_store: IBlobStore,
        content_hasher: ContentHasher | None = None,
        container_extractor: ContainerExtractor | None = None,
        metadata_extractor: MetadataExtractor | None = None,
        blob_extension: str = ".musicxml",
    ) -> None:
        self._song_repository = song_repository
        self._blob_store = blob_store
        self._content_hasher = content_hasher or ContentHasher()
        self._container_extractor = container_extractor or ContainerExtractor()
        self._metadata_extractor = metadata_extractor or MetadataExtractor()
        self._blob_extension = blob_extension

    async def execute(self, request: SeedPublicScoresRequest) -> SeedReport:
        """Seed all score files below request.scores_dir.

        Raises:
            FileNotFoundError: scores_dir does not exist
        """
        scores_dir = request.scores_dir
        if not scores_dir.is_dir():
            raise FileNotFoundError(f"Scores directory not found: {scores_dir}")

        report = SeedReport()
        files = find_score_files(scores_dir)
        logger.info("Seeding %d score files from %s", len(files), scores_dir)

        for path in files:
            name = str(path.relative_to(scores_dir))
            try:
                seeded = await self._seed_file(path)
            except (DomainException, OSError) as e:
                message = e.message if isinstance(e, DomainException) else str(e)
                logger.warning("Failed to seed %s: %s", name, message)
                report.failed[name] = message
                continue

            if seeded:
                report.seeded.append(name)
            else:
                report.skipped.append(name)

        logger.info(
            "Seeding finished: %d seeded, %d skipped, %d failed",
            len(report.seeded),
            len(report.skipped),
            len(report.failed),
        )
        return report

    async def _seed_file(self, path: Path) -> bool:
        """Seed one file. Returns False if its content is already catalogued."""
        data = await asyncio.to_thread(path.read_bytes)
        fingerprint = self._content_hasher.hash(data)

        if await self._song_repository.get_by_fingerprint(fingerprint) is not None:
            logger.debug("Skipping %s: %s already catalogued", path.name, fingerprint)
            return False

        xml_string = await asyncio.to_thread(self._container_extractor.extract_xml, data)
        metadata = await self._metadata_extractor.extract(xml_string)
        if not metadata.title or not metadata.composer:
            raise InvalidMusicXmlError(
                "Public scores need both title and composer information"
            )

        await self._blob_store.put(fingerprint.blob_key(self._blob_extension), data)
        song = Song.create(metadata=metadata, file_hash=fingerprint, uploader_id=None)
        try:
            await self._song_repository.add(song)
        except CatalogEntryExistsError:
            # Two files in the seed dir with identical bytes
            logger.debug("Skipping %s: %s catalogued meanwhile", path.name, fingerprint)
            return False

        logger.info("Seeded %r by %r from %s", song.title, song.composer, path.name)
        return True
