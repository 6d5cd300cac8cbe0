"""Product API endpoints."""

from decimal import Decimal

from fastapi import APIRouter, Depends, Query, status

from songstock.api.dependencies import (
    get_page_request,
    get_product_service,
    require_admin,
    require_provider_or_admin,
)
from songstock.api.schemas.common import PageResponse
from songstock.api.schemas.products import (
    AlternativeFormatOut,
    ProductImageIn,
    ProductImageOut,
    ProductIn,
    ProductOut,
    ProductStatisticsOut,
    ProductUpdate,
    StockUpdate,
)
from songstock.application.services import ProductService
from songstock.domain.entities import Product, ProductImage, ProductType, User
from songstock.domain.value_objects import PageRequest
from songstock.infrastructure.persistence.repositories import ProductFilter

router = APIRouter(prefix="/products", tags=["Products"])


def _out(product: Product) -> ProductOut:
    return ProductOut.model_validate(product, from_attributes=True)


@router.get("", response_model=PageResponse[ProductOut])
async def list_products(
    provider_id: int | None = None,
    album_id: int | None = None,
    category_id: int | None = None,
    product_type: ProductType | None = None,
    featured: bool | None = None,
    in_stock: bool | None = None,
    page_request: PageRequest = Depends(get_page_request),
    service: ProductService = Depends(get_product_service),
) -> PageResponse[ProductOut]:
    """Public product listing; only active products are returned."""
    product_filter = ProductFilter(
        provider_id=provider_id,
        album_id=album_id,
        category_id=category_id,
        product_type=product_type,
        featured=featured,
        in_stock=in_stock,
    )
    page = await service.list_products(product_filter, page_request)
    return PageResponse[ProductOut].from_page(page, _out)


@router.get("/me", response_model=PageResponse[ProductOut])
async def my_products(
    page_request: PageRequest = Depends(get_page_request),
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> PageResponse[ProductOut]:
    page = await service.list_my_products(caller, page_request)
    return PageResponse[ProductOut].from_page(page, _out)


@router.get("/low-stock", response_model=list[ProductOut])
async def low_stock(
    threshold: int | None = Query(default=None, ge=0),
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> list[ProductOut]:
    return [_out(p) for p in await service.list_low_stock(caller, threshold)]


@router.get(
    "/statistics",
    response_model=ProductStatisticsOut,
    dependencies=[Depends(require_admin)],
)
async def product_statistics(
    service: ProductService = Depends(get_product_service),
) -> ProductStatisticsOut:
    return ProductStatisticsOut.model_validate(await service.get_statistics())


@router.get("/sku/{sku}", response_model=ProductOut)
async def get_by_sku(
    sku: str, service: ProductService = Depends(get_product_service)
) -> ProductOut:
    return _out(await service.get_by_sku(sku))


@router.get("/price-range", response_model=list[ProductOut])
async def price_range(
    min_price: Decimal = Query(ge=0),
    max_price: Decimal = Query(ge=0),
    service: ProductService = Depends(get_product_service),
) -> list[ProductOut]:
    return [_out(p) for p in await service.list_by_price_range(min_price, max_price)]


@router.get("/digital-with-vinyl", response_model=list[ProductOut])
async def digital_with_vinyl(
    service: ProductService = Depends(get_product_service),
) -> list[ProductOut]:
    return [_out(p) for p in await service.list_digital_with_vinyl()]


@router.get("/vinyl-with-digital", response_model=list[ProductOut])
async def vinyl_with_digital(
    service: ProductService = Depends(get_product_service),
) -> list[ProductOut]:
    return [_out(p) for p in await service.list_vinyl_with_digital()]


@router.get("/album/{album_id}/all-formats", response_model=list[ProductOut])
async def album_formats(
    album_id: int, service: ProductService = Depends(get_product_service)
) -> list[ProductOut]:
    return [_out(p) for p in await service.list_album_formats(album_id)]


@router.get("/{product_id}", response_model=ProductOut)
async def get_product(
    product_id: int, service: ProductService = Depends(get_product_service)
) -> ProductOut:
    return _out(await service.get_product(product_id))


@router.post("", response_model=ProductOut, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductIn,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> ProductOut:
    data = payload.model_dump(exclude={"provider_id"})
    data["sku"] = data["sku"] or ""
    # provider_id is filled in by the service from the caller or the payload
    product = Product(provider_id=0, **data)
    return _out(await service.create_product(caller, product, payload.provider_id))


@router.patch("/{product_id}", response_model=ProductOut)
async def update_product(
    product_id: int,
    payload: ProductUpdate,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> ProductOut:
    changes = payload.model_dump(exclude_unset=True)
    return _out(await service.update_product(caller, product_id, changes))


@router.patch("/{product_id}/stock", response_model=ProductOut)
async def update_stock(
    product_id: int,
    payload: StockUpdate,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> ProductOut:
    return _out(await service.update_stock(caller, product_id, payload.stock_quantity))


@router.patch(
    "/{product_id}/featured",
    response_model=ProductOut,
    dependencies=[Depends(require_admin)],
)
async def toggle_featured(
    product_id: int, service: ProductService = Depends(get_product_service)
) -> ProductOut:
    return _out(await service.toggle_featured(product_id))


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> None:
    await service.delete_product(caller, product_id)


@router.get("/{product_id}/alternative-formats", response_model=list[ProductOut])
async def alternative_formats(
    product_id: int, service: ProductService = Depends(get_product_service)
) -> list[ProductOut]:
    return [_out(p) for p in await service.list_alternative_formats(product_id)]


@router.get("/{product_id}/has-alternative", response_model=AlternativeFormatOut)
async def has_alternative(
    product_id: int, service: ProductService = Depends(get_product_service)
) -> AlternativeFormatOut:
    return AlternativeFormatOut(
        has_alternative=await service.has_alternative_format(product_id)
    )


def _image_out(image: ProductImage) -> ProductImageOut:
    return ProductImageOut.model_validate(image, from_attributes=True)


@router.get("/{product_id}/images", response_model=list[ProductImageOut])
async def list_images(
    product_id: int, service: ProductService = Depends(get_product_service)
) -> list[ProductImageOut]:
    return [_image_out(i) for i in await service.list_images(product_id)]


@router.post(
    "/{product_id}/images",
    response_model=ProductImageOut,
    status_code=status.HTTP_201_CREATED,
)
async def add_image(
    product_id: int,
    payload: ProductImageIn,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> ProductImageOut:
    image = ProductImage(product_id=product_id, **payload.model_dump())
    return _image_out(await service.add_image(caller, product_id, image))


@router.patch("/{product_id}/images/{image_id}/primary", response_model=ProductImageOut)
async def set_primary_image(
    product_id: int,
    image_id: int,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> ProductImageOut:
    return _image_out(await service.set_primary_image(caller, product_id, image_id))


@router.delete(
    "/{product_id}/images/{image_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def delete_image(
    product_id: int,
    image_id: int,
    caller: User = Depends(require_provider_or_admin),
    service: ProductService = Depends(get_product_service),
) -> None:
    await service.delete_image(caller, product_id, image_id)
