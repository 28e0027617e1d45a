"""Song upload and catalog endpoints."""

import logging
import re
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status

from mushee.api.dependencies import (
    get_app_settings,
    get_current_actor,
    get_library_service,
    get_upload_song_use_case,
)
from mushee.api.schemas.songs import SongPageSchema, UploadSongResultSchema
from mushee.application.services import LibraryService
from mushee.application.services.container_extractor import is_compressed_container
from mushee.application.use_cases import UploadSongRequest, UploadSongUseCase
from mushee.config import Settings
from mushee.domain.entities import RawUpload
from mushee.domain.value_objects import ActorId, SongId

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/songs")

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def _download_filename(title: str, compressed: bool) -> str:
    stem = _UNSAFE_FILENAME_CHARS.sub("", title).strip() or "score"
    return f"{stem}{'.mxl' if compressed else '.musicxml'}"


# Hey future me - this is THE upload endpoint. The use case does all the work; we only
# turn the multipart file into a RawUpload. We read at most limit+1 bytes so a 2 GB
# upload can't blow up memory - the validator rejects it by its reported size anyway.
# Status: 201 when the content was new, 200 when it was attached from the catalog.
@router.post(
    "",
    response_model=UploadSongResultSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a MusicXML score",
)
async def upload_song(
    response: Response,
    file: UploadFile = File(..., description="MusicXML file (.xml, .musicxml, .mxl)"),
    actor_id: ActorId | None = Depends(get_current_actor),
    settings: Settings = Depends(get_app_settings),
    use_case: UploadSongUseCase = Depends(get_upload_song_use_case),
) -> UploadSongResultSchema:
    """Upload a score into the caller's library, deduplicated by content."""
    data = await file.read(settings.upload.max_file_size_bytes + 1)
    upload = RawUpload(
        data=data,
        filename=file.filename or "",
        declared_size=file.size if file.size is not None else len(data),
        content_type=file.content_type,
    )

    result = await use_case.execute(UploadSongRequest(upload=upload, actor_id=actor_id))

    if result.was_already_known:
        response.status_code = status.HTTP_200_OK
    return UploadSongResultSchema.from_response(result)


@router.get(
    "/public",
    response_model=SongPageSchema,
    summary="List public-domain songs",
)
async def list_public_songs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    service: LibraryService = Depends(get_library_service),
) -> SongPageSchema:
    """Browse the public-domain catalog, optionally filtered by title or composer."""
    result = await service.list_public_songs(page=page, limit=limit, search=search)
    return SongPageSchema.from_page(result)


@router.get(
    "/{song_id}/file",
    summary="Download a score file",
    responses={200: {"content": {"application/vnd.recordare.musicxml+xml": {}}}},
)
async def get_song_file(
    song_id: UUID,
    actor_id: ActorId | None = Depends(get_current_actor),
    service: LibraryService = Depends(get_library_service),
) -> Response:
    """Return the stored score bytes.

    Public songs are readable by anyone; private uploads only by their uploader
    and actors that have them in their library.
    """
    song, data = await service.get_song_file(actor_id, SongId(song_id))
    compressed = is_compressed_container(data)
    media_type = (
        "application/vnd.recordare.musicxml"
        if compressed
        else "application/vnd.recordare.musicxml+xml"
    )
    filename = _download_filename(song.title, compressed)
    return Response(
        content=data,
        media_type=media_type,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "ETag": f'"{song.file_hash.value}"',
        },
    )
