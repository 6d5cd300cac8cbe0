"""Product service: provider inventory, catalogue lookups and product images.

Mutations are allowed for admins and for the provider that owns the product.
Providers always act on their own provider record; admins have to name the
provider explicitly when creating a product.
"""

import dataclasses
import logging
import secrets
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.domain.dtos import ProductStatistics
from songstock.domain.entities import (
    Product,
    ProductImage,
    ProductType,
    Provider,
    User,
    UserRole,
    VerificationStatus,
    utc_now,
)
from songstock.domain.exceptions import (
    AuthorizationError,
    BusinessRuleViolation,
    DuplicateEntityException,
    EntityNotFoundException,
    ValidationException,
)
from songstock.domain.value_objects import Page, PageRequest
from songstock.infrastructure.persistence.repositories import (
    AlbumRepository,
    CategoryRepository,
    ProductFilter,
    ProductImageRepository,
    ProductRepository,
    ProviderRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

_IMMUTABLE_FIELDS = frozenset({"id", "provider_id", "sku", "created_at", "updated_at"})


def generate_sku(product_type: ProductType, album_id: int) -> str:
    """SKU like ``PHY-000042-9F3A1C``."""
    return f"{product_type.value[:3]}-{album_id:06d}-{secrets.token_hex(3).upper()}"


def _validate_product(product: Product) -> None:
    if product.price < 0:
        raise ValidationException("Price cannot be negative")
    if product.stock_quantity < 0:
        raise ValidationException("Stock quantity cannot be negative")
    if product.low_stock_threshold < 0:
        raise ValidationException("Low stock threshold cannot be negative")
    if product.product_type == ProductType.DIGITAL and (
        product.vinyl_size is not None or product.vinyl_speed is not None
    ):
        raise ValidationException("Digital products cannot have vinyl attributes")


class ProductService:
    """Product CRUD, stock handling and ownership checks."""

    def __init__(self, session: AsyncSession) -> None:
        self._products = ProductRepository(session)
        self._providers = ProviderRepository(session)
        self._users = UserRepository(session)
        self._albums = AlbumRepository(session)
        self._categories = CategoryRepository(session)
        self._images = ProductImageRepository(session)

    # =========================================================================
    # OWNERSHIP
    # =========================================================================

    async def _provider_of(self, user: User) -> Provider:
        assert user.id is not None
        provider = await self._providers.get_by_user_id(user.id)
        if provider is None:
            raise AuthorizationError("Caller has no provider account")
        return provider

    async def is_owner(self, username: str, product_id: int) -> bool:
        """True iff the user's provider owns the product."""
        user = await self._users.get_by_username(username)
        if user is None or user.id is None:
            return False
        provider = await self._providers.get_by_user_id(user.id)
        product = await self._products.get_by_id(product_id)
        return provider is not None and product is not None and (
            product.provider_id == provider.id
        )

    async def _require_can_modify(self, caller: User, product: Product) -> None:
        if caller.role == UserRole.ADMIN:
            return
        if caller.role == UserRole.PROVIDER and await self.is_owner(
            caller.username, product.id or 0
        ):
            return
        raise AuthorizationError("Only the owning provider or an admin can modify this product")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_product(self, product_id: int) -> Product:
        product = await self._products.get_by_id(product_id)
        if product is None:
            raise EntityNotFoundException("Product", product_id)
        return product

    async def list_products(
        self, product_filter: ProductFilter, page_request: PageRequest
    ) -> Page[Product]:
        return await self._products.list_filtered(product_filter, page_request)

    async def list_my_products(
        self, caller: User, page_request: PageRequest
    ) -> Page[Product]:
        provider = await self._provider_of(caller)
        return await self._products.list_filtered(
            ProductFilter(provider_id=provider.id, active_only=False), page_request
        )

    async def get_by_sku(self, sku: str) -> Product:
        product = await self._products.get_by_sku(sku.strip())
        if product is None or not product.is_active:
            raise EntityNotFoundException("Product", sku)
        return product

    async def list_by_price_range(
        self, min_price: Decimal, max_price: Decimal
    ) -> list[Product]:
        if min_price < 0 or max_price < 0:
            raise ValidationException("Prices cannot be negative")
        if min_price > max_price:
            raise ValidationException("min_price must not exceed max_price")
        return await self._products.list_by_price_range(min_price, max_price)

    async def list_alternative_formats(self, product_id: int) -> list[Product]:
        """The same album offered in the other format (vinyl vs digital)."""
        product = await self.get_product(product_id)
        return await self._products.list_alternative_formats(product)

    async def has_alternative_format(self, product_id: int) -> bool:
        return bool(await self.list_alternative_formats(product_id))

    async def list_album_formats(self, album_id: int) -> list[Product]:
        if await self._albums.get_by_id(album_id) is None:
            raise EntityNotFoundException("Album", album_id)
        return await self._products.list_by_album(album_id)

    async def list_digital_with_vinyl(self) -> list[Product]:
        """Digital products whose album is also sold on vinyl."""
        return await self._products.list_with_counterpart(
            ProductType.DIGITAL, ProductType.PHYSICAL
        )

    async def list_vinyl_with_digital(self) -> list[Product]:
        """Vinyl products whose album is also sold as a download."""
        return await self._products.list_with_counterpart(
            ProductType.PHYSICAL, ProductType.DIGITAL
        )

    async def list_low_stock(
        self, caller: User, threshold: int | None = None
    ) -> list[Product]:
        """Low-stock physical products; providers only see their own."""
        products = await self._products.list_low_stock(threshold)
        if caller.role == UserRole.ADMIN:
            return products
        provider = await self._provider_of(caller)
        return [p for p in products if p.provider_id == provider.id]

    async def get_statistics(self) -> ProductStatistics:
        return await self._products.get_statistics()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_product(
        self, caller: User, product: Product, provider_id: int | None = None
    ) -> Product:
        """Create a product for the caller's provider (or, for admins, provider_id)."""
        if caller.role == UserRole.PROVIDER:
            provider = await self._provider_of(caller)
        elif caller.role == UserRole.ADMIN:
            if provider_id is None:
                raise ValidationException("provider_id is required")
            found = await self._providers.get_by_id(provider_id)
            if found is None:
                raise EntityNotFoundException("Provider", provider_id)
            provider = found
        else:
            raise AuthorizationError("Only providers and admins can create products")

        if provider.verification_status == VerificationStatus.REJECTED:
            raise BusinessRuleViolation("Rejected providers cannot list products")

        assert provider.id is not None
        product.provider_id = provider.id
        if await self._albums.get_by_id(product.album_id) is None:
            raise EntityNotFoundException("Album", product.album_id)
        if await self._categories.get_by_id(product.category_id) is None:
            raise EntityNotFoundException("Category", product.category_id)

        product.sku = (product.sku or "").strip() or generate_sku(
            product.product_type, product.album_id
        )
        if await self._products.exists_by_sku(product.sku):
            raise DuplicateEntityException("Product", "sku", product.sku)
        _validate_product(product)

        created = await self._products.add(product)
        logger.info(
            "Product created: %s",
            created.sku,
            extra={"product_id": created.id, "provider_id": provider.id},
        )
        return created

    async def update_product(
        self, caller: User, product_id: int, changes: dict[str, Any]
    ) -> Product:
        """Apply a partial update (only keys present in changes)."""
        product = await self.get_product(product_id)
        await self._require_can_modify(caller, product)

        allowed = {f.name for f in dataclasses.fields(Product)} - _IMMUTABLE_FIELDS
        unknown = set(changes) - allowed
        if unknown:
            raise ValidationException(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")
        for key, value in changes.items():
            setattr(product, key, value)

        if "album_id" in changes and await self._albums.get_by_id(product.album_id) is None:
            raise EntityNotFoundException("Album", product.album_id)
        if (
            "category_id" in changes
            and await self._categories.get_by_id(product.category_id) is None
        ):
            raise EntityNotFoundException("Category", product.category_id)
        _validate_product(product)

        product.updated_at = utc_now()
        await self._products.update(product)
        return product

    async def update_stock(self, caller: User, product_id: int, quantity: int) -> Product:
        if quantity < 0:
            raise ValidationException("Stock quantity cannot be negative")
        product = await self.get_product(product_id)
        await self._require_can_modify(caller, product)
        if product.product_type == ProductType.DIGITAL:
            raise BusinessRuleViolation("Digital products have no stock")
        product.stock_quantity = quantity
        product.updated_at = utc_now()
        await self._products.update(product)
        if product.is_low_stock:
            logger.info("Product %s is low on stock (%d)", product.sku, quantity)
        return product

    async def toggle_featured(self, product_id: int) -> Product:
        product = await self.get_product(product_id)
        product.featured = not product.featured
        product.updated_at = utc_now()
        await self._products.update(product)
        return product

    async def delete_product(self, caller: User, product_id: int) -> None:
        """Soft delete (is_active=False); the row stays for order history."""
        product = await self.get_product(product_id)
        await self._require_can_modify(caller, product)
        product.is_active = False
        product.updated_at = utc_now()
        await self._products.update(product)
        logger.info("Product %s deactivated", product_id)

    # =========================================================================
    # IMAGES
    # =========================================================================

    async def list_images(self, product_id: int) -> list[ProductImage]:
        await self.get_product(product_id)
        return await self._images.list_by_product(product_id)

    # Listen up, a product has at most one primary image. The first image added
    # becomes primary on its own; later ones only when asked to.
    async def add_image(
        self, caller: User, product_id: int, image: ProductImage
    ) -> ProductImage:
        product = await self.get_product(product_id)
        await self._require_can_modify(caller, product)
        image.image_url = image.image_url.strip()
        if not image.image_url:
            raise ValidationException("Image URL is required")
        if image.display_order < 0:
            raise ValidationException("Display order cannot be negative")
        image.product_id = product_id
        make_primary = image.is_primary or (
            await self._images.count_by_product(product_id) == 0
        )
        image.is_primary = False
        await self._images.add(image)
        assert image.id is not None
        if make_primary:
            await self._images.set_primary(product_id, image.id)
            image.is_primary = True
        return image

    async def set_primary_image(
        self, caller: User, product_id: int, image_id: int
    ) -> ProductImage:
        product = await self.get_product(product_id)
        await self._require_can_modify(caller, product)
        image = await self._own_image(product_id, image_id)
        await self._images.set_primary(product_id, image_id)
        image.is_primary = True
        return image

    async def delete_image(self, caller: User, product_id: int, image_id: int) -> None:
        """Delete an image; the next one in display order inherits primary."""
        product = await self.get_product(product_id)
        await self._require_can_modify(caller, product)
        image = await self._own_image(product_id, image_id)
        await self._images.delete(image_id)
        if image.is_primary:
            remaining = await self._images.list_by_product(product_id)
            if remaining and remaining[0].id is not None:
                await self._images.set_primary(product_id, remaining[0].id)
        logger.info("Image %s removed from product %s", image_id, product_id)

    async def _own_image(self, product_id: int, image_id: int) -> ProductImage:
        image = await self._images.get_by_id(image_id)
        if image is None or image.product_id != product_id:
            raise EntityNotFoundException("ProductImage", image_id)
        return image
