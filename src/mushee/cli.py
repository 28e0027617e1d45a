"""Command line entry points.

Usage:
    mushee-seed-scores --scores-dir ./data/scores

    # Fresh SQLite database without running Alembic first:
    DATABASE_URL=sqlite+aiosqlite:///./dev.db mushee-seed-scores --create-tables
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from mushee.application.services import ContainerExtractor, MetadataExtractor
from mushee.application.use_cases import (
    SeedPublicScoresRequest,
    SeedPublicScoresUseCase,
    SeedReport,
)
from mushee.config import Settings, get_settings
from mushee.infrastructure.observability import configure_logging
from mushee.infrastructure.persistence import Database, SongRepository
from mushee.infrastructure.storage import LocalBlobStore

logger = logging.getLogger(__name__)


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mushee-seed-scores",
        description="Load public-domain MusicXML scores into the catalog.",
    )
    parser.add_argument(
        "--scores-dir",
        type=Path,
        default=settings.storage.scores_path,
        help=f"Directory searched recursively for scores (default: {settings.storage.scores_path})",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing database tables before seeding",
    )
    return parser


async def seed_scores(settings: Settings, scores_dir: Path, create_tables: bool = False) -> SeedReport:
    """Run the seeding use case against the configured database and blob store."""
    settings.ensure_directories()
    blob_store = LocalBlobStore(settings.storage.blob_path)
    blob_store.ensure_root()

    db = Database(settings)
    try:
        if create_tables:
            await db.create_tables()
        async with db.session_scope() as session:
            use_case = SeedPublicScoresUseCase(
                song_repository=SongRepository(session),
                blob_store=blob_store,
                container_extractor=ContainerExtractor(),
                metadata_extractor=MetadataExtractor(
                    parse_timeout_seconds=settings.upload.parse_timeout_seconds,
                    max_field_length=settings.upload.max_field_length,
                ),
                blob_extension=settings.storage.blob_extension,
            )
            return await use_case.execute(SeedPublicScoresRequest(scores_dir=scores_dir))
    finally:
        await db.close()


def seed_scores_main(argv: Sequence[str] | None = None) -> int:
    """Entry point of mushee-seed-scores. Returns the process exit code."""
    settings = get_settings()
    args = _build_parser(settings).parse_args(argv)

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )

    try:
        report = asyncio.run(seed_scores(settings, args.scores_dir, args.create_tables))
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 2

    for name, error in sorted(report.failed.items()):
        logger.error("FAILED %s: %s", name, error)
    logger.info(
        "Seeded %d, skipped %d, failed %d of %d files",
        len(report.seeded),
        len(report.skipped),
        len(report.failed),
        report.total,
    )
    return 0 if report.success else 1


if __name__ == "__main__":
    sys.exit(seed_scores_main())
