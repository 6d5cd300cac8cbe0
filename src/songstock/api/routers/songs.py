"""Song API endpoints."""

from fastapi import APIRouter, Depends, Query, status

from songstock.api.dependencies import (
    get_catalog_service,
    get_page_request,
    require_admin,
    require_provider_or_admin,
)
from songstock.api.schemas.catalog import SongIn, SongOut, SongUpdate
from songstock.api.schemas.common import PageResponse
from songstock.application.services import CatalogService
from songstock.domain.entities import Song
from songstock.domain.value_objects import PageRequest

router = APIRouter(prefix="/songs", tags=["Songs"])


def _out(song: Song) -> SongOut:
    return SongOut.model_validate(song, from_attributes=True)


@router.get("", response_model=PageResponse[SongOut])
async def list_songs(
    page_request: PageRequest = Depends(get_page_request),
    service: CatalogService = Depends(get_catalog_service),
) -> PageResponse[SongOut]:
    page = await service.list_songs(page_request)
    return PageResponse[SongOut].from_page(page, _out)


@router.get("/search", response_model=list[SongOut])
async def search_songs(
    q: str = Query(min_length=1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[SongOut]:
    return [_out(s) for s in await service.search_songs(q)]


@router.get("/{song_id}", response_model=SongOut)
async def get_song(
    song_id: int, service: CatalogService = Depends(get_catalog_service)
) -> SongOut:
    return _out(await service.get_song(song_id))


@router.post(
    "",
    response_model=SongOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_provider_or_admin)],
)
async def create_song(
    payload: SongIn, service: CatalogService = Depends(get_catalog_service)
) -> SongOut:
    return _out(await service.create_song(Song(**payload.model_dump())))


@router.patch(
    "/{song_id}",
    response_model=SongOut,
    dependencies=[Depends(require_provider_or_admin)],
)
async def update_song(
    song_id: int,
    payload: SongUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> SongOut:
    return _out(await service.update_song(song_id, payload.model_dump(exclude_unset=True)))


@router.delete(
    "/{song_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_song(
    song_id: int, service: CatalogService = Depends(get_catalog_service)
) -> None:
    await service.delete_song(song_id)
