"""Artist API endpoints."""

from fastapi import APIRouter, Depends, Query, status

from songstock.api.dependencies import (
    get_catalog_service,
    get_page_request,
    require_admin,
    require_provider_or_admin,
)
from songstock.api.schemas.catalog import AlbumOut, ArtistIn, ArtistOut, ArtistUpdate
from songstock.api.schemas.common import PageResponse
from songstock.application.services import CatalogService
from songstock.domain.entities import Artist
from songstock.domain.value_objects import PageRequest

router = APIRouter(prefix="/artists", tags=["Artists"])


def _out(artist: Artist) -> ArtistOut:
    return ArtistOut.model_validate(artist, from_attributes=True)


@router.get("", response_model=PageResponse[ArtistOut])
async def list_artists(
    page_request: PageRequest = Depends(get_page_request),
    service: CatalogService = Depends(get_catalog_service),
) -> PageResponse[ArtistOut]:
    page = await service.list_artists(page_request)
    return PageResponse[ArtistOut].from_page(page, _out)


@router.get("/search", response_model=list[ArtistOut])
async def search_artists(
    q: str = Query(min_length=1),
    service: CatalogService = Depends(get_catalog_service),
) -> list[ArtistOut]:
    return [_out(a) for a in await service.search_artists(q)]


@router.get("/{artist_id}", response_model=ArtistOut)
async def get_artist(
    artist_id: int, service: CatalogService = Depends(get_catalog_service)
) -> ArtistOut:
    return _out(await service.get_artist(artist_id))


@router.get("/{artist_id}/albums", response_model=list[AlbumOut])
async def artist_albums(
    artist_id: int, service: CatalogService = Depends(get_catalog_service)
) -> list[AlbumOut]:
    albums = await service.list_albums_by_artist(artist_id)
    return [AlbumOut.model_validate(a, from_attributes=True) for a in albums]


@router.post(
    "",
    response_model=ArtistOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_provider_or_admin)],
)
async def create_artist(
    payload: ArtistIn, service: CatalogService = Depends(get_catalog_service)
) -> ArtistOut:
    return _out(await service.create_artist(Artist(**payload.model_dump())))


@router.patch(
    "/{artist_id}",
    response_model=ArtistOut,
    dependencies=[Depends(require_provider_or_admin)],
)
async def update_artist(
    artist_id: int,
    payload: ArtistUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> ArtistOut:
    changes = payload.model_dump(exclude_unset=True)
    return _out(await service.update_artist(artist_id, changes))


@router.delete(
    "/{artist_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_artist(
    artist_id: int, service: CatalogService = Depends(get_catalog_service)
) -> None:
    await service.delete_artist(artist_id)
