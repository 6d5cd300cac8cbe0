"""Genre and category API endpoints.

Both are admin-managed lookup tables with unique names, so they share this
module; each gets its own router.
"""

from fastapi import APIRouter, Depends, status

from songstock.api.dependencies import get_catalog_service, get_page_request, require_admin
from songstock.api.schemas.catalog import (
    AlbumOut,
    CategoryOut,
    GenreOut,
    NamedIn,
    NamedUpdate,
)
from songstock.api.schemas.common import PageResponse
from songstock.application.services import CatalogService
from songstock.domain.entities import Category, Genre
from songstock.domain.value_objects import PageRequest

router = APIRouter(prefix="/genres", tags=["Genres"])
categories_router = APIRouter(prefix="/categories", tags=["Categories"])


def _genre_out(genre: Genre) -> GenreOut:
    return GenreOut.model_validate(genre, from_attributes=True)


def _category_out(category: Category) -> CategoryOut:
    return CategoryOut.model_validate(category, from_attributes=True)


# =============================================================================
# GENRES
# =============================================================================


@router.get("", response_model=PageResponse[GenreOut])
async def list_genres(
    page_request: PageRequest = Depends(get_page_request),
    service: CatalogService = Depends(get_catalog_service),
) -> PageResponse[GenreOut]:
    return PageResponse[GenreOut].from_page(
        await service.list_genres(page_request), _genre_out
    )


@router.get("/{genre_id}", response_model=GenreOut)
async def get_genre(
    genre_id: int, service: CatalogService = Depends(get_catalog_service)
) -> GenreOut:
    return _genre_out(await service.get_genre(genre_id))


@router.get("/{genre_id}/albums", response_model=list[AlbumOut])
async def genre_albums(
    genre_id: int, service: CatalogService = Depends(get_catalog_service)
) -> list[AlbumOut]:
    albums = await service.list_albums_by_genre(genre_id)
    return [AlbumOut.model_validate(a, from_attributes=True) for a in albums]


@router.post(
    "",
    response_model=GenreOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_genre(
    payload: NamedIn, service: CatalogService = Depends(get_catalog_service)
) -> GenreOut:
    return _genre_out(await service.create_genre(Genre(**payload.model_dump())))


@router.patch("/{genre_id}", response_model=GenreOut, dependencies=[Depends(require_admin)])
async def update_genre(
    genre_id: int,
    payload: NamedUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> GenreOut:
    return _genre_out(
        await service.update_genre(genre_id, payload.model_dump(exclude_unset=True))
    )


@router.delete(
    "/{genre_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_genre(
    genre_id: int, service: CatalogService = Depends(get_catalog_service)
) -> None:
    await service.delete_genre(genre_id)


# =============================================================================
# CATEGORIES
# =============================================================================


@categories_router.get("", response_model=PageResponse[CategoryOut])
async def list_categories(
    page_request: PageRequest = Depends(get_page_request),
    service: CatalogService = Depends(get_catalog_service),
) -> PageResponse[CategoryOut]:
    return PageResponse[CategoryOut].from_page(
        await service.list_categories(page_request), _category_out
    )


@categories_router.get("/{category_id}", response_model=CategoryOut)
async def get_category(
    category_id: int, service: CatalogService = Depends(get_catalog_service)
) -> CategoryOut:
    return _category_out(await service.get_category(category_id))


@categories_router.post(
    "",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_category(
    payload: NamedIn, service: CatalogService = Depends(get_catalog_service)
) -> CategoryOut:
    return _category_out(await service.create_category(Category(**payload.model_dump())))


@categories_router.patch(
    "/{category_id}",
    response_model=CategoryOut,
    dependencies=[Depends(require_admin)],
)
async def update_category(
    category_id: int,
    payload: NamedUpdate,
    service: CatalogService = Depends(get_catalog_service),
) -> CategoryOut:
    return _category_out(
        await service.update_category(category_id, payload.model_dump(exclude_unset=True))
    )


@categories_router.delete(
    "/{category_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_category(
    category_id: int, service: CatalogService = Depends(get_catalog_service)
) -> None:
    await service.delete_category(category_id)
