"""Product, provider and order schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from songstock.domain.entities import (
    ConditionType,
    InvitationStatus,
    OrderItemStatus,
    OrderStatus,
    ProductType,
    VerificationStatus,
    VinylSize,
    VinylSpeed,
)


class ProductIn(BaseModel):
    album_id: int
    category_id: int
    product_type: ProductType
    price: Decimal = Field(ge=0)
    sku: str | None = Field(default=None, max_length=64)
    provider_id: int | None = Field(default=None, description="Admins only")
    condition_type: ConditionType = ConditionType.NEW
    stock_quantity: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)
    vinyl_size: VinylSize | None = None
    vinyl_speed: VinylSpeed | None = None
    weight_grams: int | None = Field(default=None, ge=0)
    file_format: str | None = Field(default=None, max_length=20)
    file_size_mb: int | None = Field(default=None, ge=0)
    featured: bool = False


class ProductUpdate(BaseModel):
    album_id: int | None = None
    category_id: int | None = None
    price: Decimal | None = Field(default=None, ge=0)
    condition_type: ConditionType | None = None
    low_stock_threshold: int | None = Field(default=None, ge=0)
    vinyl_size: VinylSize | None = None
    vinyl_speed: VinylSpeed | None = None
    weight_grams: int | None = Field(default=None, ge=0)
    file_format: str | None = Field(default=None, max_length=20)
    file_size_mb: int | None = Field(default=None, ge=0)
    is_active: bool | None = None


class StockUpdate(BaseModel):
    stock_quantity: int = Field(ge=0)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    album_id: int
    provider_id: int
    category_id: int
    sku: str
    product_type: ProductType
    condition_type: ConditionType
    price: Decimal
    stock_quantity: int
    low_stock_threshold: int
    in_stock: bool
    is_low_stock: bool
    vinyl_size: VinylSize | None
    vinyl_speed: VinylSpeed | None
    weight_grams: int | None
    file_format: str | None
    file_size_mb: int | None
    is_active: bool
    featured: bool
    created_at: datetime
    updated_at: datetime


class ProductImageIn(BaseModel):
    image_url: str = Field(min_length=1, max_length=500)
    alt_text: str | None = Field(default=None, max_length=200)
    is_primary: bool = False
    display_order: int = Field(default=0, ge=0)


class ProductImageOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    image_url: str
    alt_text: str | None
    is_primary: bool
    display_order: int
    created_at: datetime


class AlternativeFormatOut(BaseModel):
    has_alternative: bool


class ProductStatisticsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_products: int
    active_products: int
    digital_products: int
    physical_products: int
    in_stock_products: int
    out_of_stock_products: int


class ProviderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    business_name: str
    tax_id: str | None
    address: str | None
    city: str | None
    state: str | None
    postal_code: str | None
    country: str
    verification_status: VerificationStatus
    verification_date: datetime | None
    commission_rate: Decimal
    created_at: datetime
    updated_at: datetime


class InvitationIn(BaseModel):
    email: EmailStr
    business_name: str = Field(min_length=1, max_length=100)
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    message: str | None = None


class InvitationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    business_name: str
    first_name: str | None
    last_name: str | None
    invitation_token: str
    status: InvitationStatus
    expires_at: datetime
    message: str | None
    created_at: datetime


class OrderLineIn(BaseModel):
    product_id: int
    quantity: int = Field(ge=1)


class OrderIn(BaseModel):
    items: list[OrderLineIn] = Field(min_length=1)
    shipping_address: str | None = None
    notes: str | None = None


class OrderItemOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int | None
    product_id: int
    quantity: int
    unit_price: Decimal
    subtotal: Decimal
    provider_id: int | None
    status: OrderItemStatus
    rejection_reason: str | None
    shipped_at: datetime | None
    delivered_at: datetime | None


class OrderOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    status: OrderStatus
    total_amount: Decimal
    shipping_address: str | None
    notes: str | None
    items: list[OrderItemOut]
    shipped_at: datetime | None
    delivered_at: datetime | None
    created_at: datetime
    updated_at: datetime


class OrderStatusIn(BaseModel):
    status: OrderStatus


class ItemRejectIn(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class ItemShipIn(BaseModel):
    shipped_at: datetime | None = None


class ReviewIn(BaseModel):
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=2000)


class ReviewOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    user_id: int
    rating: int
    comment: str | None
    created_at: datetime
