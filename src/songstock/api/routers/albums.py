"""Album API endpoints."""

from fastapi import APIRouter, Depends, Query, status

from songstock.api.dependencies import (
    get_catalog_service,
    get_page_request,
    require_admin,
    require_provider_or_admin,
)
from songstock.api.schemas.catalog import AlbumIn, AlbumOut, AlbumUpdate, SongOut
from songstock.api.schemas.common import PageResponse
from songstock.application.services import CatalogService
from songstock.domain.entities import Album
from songstock.domain.value_objects import PageRequest

router = APIRouter(prefix="/albums", tags=["Albums"])


def _out(album: Album) -> AlbumOut:
    return AlbumOut.model_validate(album, from_attributes=True)


@router.get("", response_model=PageResponse[AlbumOut])
async def list_albums(
    page_request: PageRequest = Depends(get_page_request),
    service: CatalogService = Depends(get_catalog_service),
) -> PageResponse[AlbumOut]:
    page = await service.list_albums(page_request)
    return PageResponse[AlbumOut].from_page(page, _out)


@router.get("/search", response_model=list[AlbumOut])
async def search_albums(
    q: str = Query(min_length=1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[AlbumOut]:
    return [_out(a) for a in await service.search_albums(q)]


@router.get("/{album_id}", response_model=AlbumOut)
async def get_album(
    album_id: int, service: CatalogService = Depends(get_catalog_service)
) -> AlbumOut:
    return _out(await service.get_album(album_id))


@router.get("/{album_id}/songs", response_model=list[SongOut])
async def album_songs(
    album_id: int, service: CatalogService = Depends(get_catalog_service)
) -> list[SongOut]:
    songs = await service.list_songs_by_album(album_id)
    return [SongOut.model_validate(s, from_attributes=True) for s in songs]


@router.post(
    "",
    response_model=AlbumOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_provider_or_admin)],
)
async def create_album(
    payload: AlbumIn, service: CatalogService = Depends(get_catalog_service)
) -> AlbumOut:
    return _out(await service.create_album(Album(**payload.model_dump())))


@router.patch(
    "/{album_id}",
    response_model=AlbumOut,
    dependencies=[Depends(require_provider_or_admin)],
)
async def update_album(
    album_id: int,
    payload: AlbumUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> AlbumOut:
    return _out(await service.update_album(album_id, payload.model_dump(exclude_unset=True)))


@router.delete(
    "/{album_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_album(
    album_id: int, service: CatalogService = Depends(get_catalog_service)
) -> None:
    await service.delete_album(album_id)
