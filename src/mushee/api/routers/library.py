"""Personal library endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from mushee.api.dependencies import get_library_service, require_actor
from mushee.api.schemas.songs import (
    AddToLibraryRequest,
    LibraryMembershipSchema,
    LibraryPageSchema,
    SortFieldEnum,
    SortOrderEnum,
)
from mushee.application.services import LibraryService
from mushee.domain.value_objects import ActorId, SongId

router = APIRouter(prefix="/library")


@router.get("", response_model=LibraryPageSchema, summary="List my library")
async def list_library(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    sort: SortFieldEnum = Query(SortFieldEnum.CREATED_AT),
    order: SortOrderEnum = Query(SortOrderEnum.DESC),
    actor_id: ActorId = Depends(require_actor),
    service: LibraryService = Depends(get_library_service),
) -> LibraryPageSchema:
    """List the caller's songs, newest additions first by default."""
    result = await service.list_library(
        actor_id, page=page, limit=limit, sort=sort.value, order=order.value
    )
    return LibraryPageSchema.from_page(result)


@router.post(
    "",
    response_model=LibraryMembershipSchema,
    status_code=status.HTTP_201_CREATED,
    summary="Add an existing song to my library",
)
async def add_to_library(
    request: AddToLibraryRequest,
    actor_id: ActorId = Depends(require_actor),
    service: LibraryService = Depends(get_library_service),
) -> LibraryMembershipSchema:
    """Add a catalog entry (e.g. a public-domain score) without uploading it."""
    membership = await service.add_to_library(actor_id, SongId(request.song_id))
    return LibraryMembershipSchema(
        song_id=membership.song_id.value, added_at=membership.created_at
    )


@router.delete(
    "/{song_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove a song from my library",
)
async def remove_from_library(
    song_id: UUID,
    actor_id: ActorId = Depends(require_actor),
    service: LibraryService = Depends(get_library_service),
) -> Response:
    """Remove the song from the caller's library. The catalog entry stays."""
    await service.remove_from_library(actor_id, SongId(song_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
