"""Tests for ProductService catalogue lookups and product images."""

from decimal import Decimal

import pytest

from songstock.application.services.product_service import ProductService
from songstock.domain.entities import Album, Product, ProductImage, ProductType
from songstock.domain.exceptions import (
    AuthorizationError,
    EntityNotFoundException,
    ValidationException,
)
from songstock.infrastructure.persistence.repositories import (
    AlbumRepository,
    ProductRepository,
)


@pytest.fixture
def service(session) -> ProductService:
    return ProductService(session)


@pytest.fixture
async def formats(session, catalog, provider_factory, product_factory):
    """Album 1 on vinyl and download (plus a retired download); album 2 vinyl only."""
    seller, provider = await provider_factory("seller")
    vinyl = await product_factory(provider, sku="PIPA-LP", price=Decimal("45.00"))
    digital = await product_factory(
        provider,
        sku="PIPA-FLAC",
        product_type=ProductType.DIGITAL,
        price=Decimal("9.99"),
        stock_quantity=0,
    )
    await product_factory(
        provider,
        sku="PIPA-MP3",
        product_type=ProductType.DIGITAL,
        price=Decimal("5.00"),
        stock_quantity=0,
        is_active=False,
    )
    other_album = await AlbumRepository(session).add(
        Album(title="El Dorado", artist_id=catalog["artist"].id, release_year=1995)
    )
    lone_vinyl = await ProductRepository(session).add(
        Product(
            album_id=other_album.id,
            provider_id=provider.id,
            category_id=catalog["category"].id,
            sku="DORADO-LP",
            product_type=ProductType.PHYSICAL,
            price=Decimal("20.00"),
            stock_quantity=4,
        )
    )
    return {
        "seller": seller,
        "vinyl": vinyl,
        "digital": digital,
        "lone_vinyl": lone_vinyl,
        "album": catalog["album"],
        "other_album": other_album,
    }


def _skus(products: list[Product]) -> list[str]:
    return [p.sku for p in products]


class TestLookups:
    async def test_by_sku_only_finds_active(self, service, formats) -> None:
        assert (await service.get_by_sku(" PIPA-LP ")).id == formats["vinyl"].id
        with pytest.raises(EntityNotFoundException):
            await service.get_by_sku("PIPA-MP3")
        with pytest.raises(EntityNotFoundException):
            await service.get_by_sku("NOPE")

    async def test_price_range_is_inclusive_and_sorted(self, service, formats) -> None:
        found = await service.list_by_price_range(Decimal("5.00"), Decimal("20.00"))
        assert _skus(found) == ["PIPA-FLAC", "DORADO-LP"]

    @pytest.mark.parametrize(
        ("low", "high"), [(Decimal("10"), Decimal("5")), (Decimal("-1"), Decimal("5"))]
    )
    async def test_price_range_bounds_are_validated(self, service, low, high) -> None:
        with pytest.raises(ValidationException):
            await service.list_by_price_range(low, high)

    async def test_alternative_formats(self, service, formats) -> None:
        assert _skus(await service.list_alternative_formats(formats["vinyl"].id)) == [
            "PIPA-FLAC"
        ]
        assert await service.has_alternative_format(formats["vinyl"].id) is True
        assert await service.has_alternative_format(formats["lone_vinyl"].id) is False
        with pytest.raises(EntityNotFoundException):
            await service.list_alternative_formats(404)

    async def test_album_formats_group_by_type_then_price(self, service, formats) -> None:
        found = await service.list_album_formats(formats["album"].id)
        assert _skus(found) == ["PIPA-FLAC", "PIPA-LP"]
        with pytest.raises(EntityNotFoundException):
            await service.list_album_formats(404)

    async def test_cross_format_listings(self, service, formats) -> None:
        assert _skus(await service.list_digital_with_vinyl()) == ["PIPA-FLAC"]
        assert _skus(await service.list_vinyl_with_digital()) == ["PIPA-LP"]


def _image(url: str, **fields) -> ProductImage:
    return ProductImage(product_id=0, image_url=url, **fields)


class TestImages:
    async def test_first_image_becomes_primary(self, service, formats) -> None:
        product_id = formats["vinyl"].id
        first = await service.add_image(formats["seller"], product_id, _image("a.jpg"))
        second = await service.add_image(
            formats["seller"], product_id, _image("b.jpg", display_order=1)
        )
        assert first.is_primary is True
        assert second.is_primary is False
        assert second.product_id == product_id

    async def test_only_one_primary(self, service, formats) -> None:
        seller, product_id = formats["seller"], formats["vinyl"].id
        await service.add_image(seller, product_id, _image("a.jpg"))
        b = await service.add_image(seller, product_id, _image("b.jpg", display_order=1))
        c = await service.add_image(
            seller, product_id, _image("c.jpg", display_order=2, is_primary=True)
        )

        images = await service.list_images(product_id)
        assert [i.image_url for i in images if i.is_primary] == ["c.jpg"]

        await service.set_primary_image(seller, product_id, b.id)
        images = await service.list_images(product_id)
        assert [i.id for i in images if i.is_primary] == [b.id]
        assert c.id in [i.id for i in images]

    async def test_deleting_primary_promotes_next(self, service, formats) -> None:
        seller, product_id = formats["seller"], formats["vinyl"].id
        a = await service.add_image(seller, product_id, _image("a.jpg"))
        await service.add_image(seller, product_id, _image("c.jpg", display_order=5))
        await service.add_image(seller, product_id, _image("b.jpg", display_order=1))

        await service.delete_image(seller, product_id, a.id)
        images = await service.list_images(product_id)
        assert [(i.image_url, i.is_primary) for i in images] == [
            ("b.jpg", True),
            ("c.jpg", False),
        ]

    async def test_image_rules(self, service, formats, provider_factory) -> None:
        stranger, _ = await provider_factory("stranger")
        product_id = formats["vinyl"].id
        with pytest.raises(AuthorizationError):
            await service.add_image(stranger, product_id, _image("x.jpg"))
        with pytest.raises(ValidationException):
            await service.add_image(formats["seller"], product_id, _image("  "))

        elsewhere = await service.add_image(
            formats["seller"], formats["digital"].id, _image("cover.png")
        )
        with pytest.raises(EntityNotFoundException):
            await service.delete_image(formats["seller"], product_id, elsewhere.id)
        with pytest.raises(EntityNotFoundException):
            await service.list_images(404)
