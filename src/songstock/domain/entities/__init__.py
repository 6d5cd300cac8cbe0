"""Domain entities.

Plain dataclasses with no persistence or framework dependencies. Repositories
in ``songstock.infrastructure.persistence`` convert ORM rows to and from these.
Ids are ``None`` until the row has been flushed.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class UserRole(str, Enum):
    """Role of a user account."""

    ADMIN = "ADMIN"
    PROVIDER = "PROVIDER"
    CUSTOMER = "CUSTOMER"


class VerificationStatus(str, Enum):
    """Admin approval state of a provider."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class InvitationStatus(str, Enum):
    """Lifecycle of a provider invitation."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class ProductType(str, Enum):
    """Physical vinyl vs digital download."""

    PHYSICAL = "PHYSICAL"
    DIGITAL = "DIGITAL"


class ConditionType(str, Enum):
    """Physical condition of a vinyl product."""

    NEW = "NEW"
    LIKE_NEW = "LIKE_NEW"
    VERY_GOOD = "VERY_GOOD"
    GOOD = "GOOD"
    ACCEPTABLE = "ACCEPTABLE"


class VinylSize(str, Enum):
    """Vinyl record diameter."""

    SEVEN_INCH = "SEVEN_INCH"
    TEN_INCH = "TEN_INCH"
    TWELVE_INCH = "TWELVE_INCH"


class VinylSpeed(str, Enum):
    """Vinyl playback speed."""

    RPM_33 = "RPM_33"
    RPM_45 = "RPM_45"
    RPM_78 = "RPM_78"


# Hey future me - the allowed transitions live in Order.can_transition_to, not here.
# CANCELLED, REJECTED and RECEIVED are terminal. REJECTED is only ever reached when
# providers reject every line; RECEIVED is the customer confirming delivery.
class OrderStatus(str, Enum):
    """Status of a customer order."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"
    REJECTED = "REJECTED"


class OrderItemStatus(str, Enum):
    """Fulfilment state of one order line, driven by its provider."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"


@dataclass
class User:
    """User account (admin, provider or customer)."""

    username: str
    email: str
    first_name: str
    last_name: str
    password_hash: str = ""
    phone: str | None = None
    role: UserRole = UserRole.CUSTOMER
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        """First and last name joined by a space."""
        return f"{self.first_name} {self.last_name}".strip()

    def touch(self) -> None:
        """Bump updated_at."""
        self.updated_at = utc_now()


@dataclass
class Provider:
    """Seller account, linked 1:1 to a User."""

    user_id: int
    business_name: str
    tax_id: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str = "Colombia"
    verification_status: VerificationStatus = VerificationStatus.PENDING
    verification_date: datetime | None = None
    commission_rate: Decimal = Decimal("10.00")
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    # Listen, verification_date is stamped for both VERIFIED and REJECTED, and left
    # alone when an admin moves a provider back to PENDING.
    def set_verification_status(self, status: VerificationStatus) -> None:
        """Change verification status, stamping the decision date."""
        self.verification_status = status
        if status in (VerificationStatus.VERIFIED, VerificationStatus.REJECTED):
            self.verification_date = utc_now()
        self.updated_at = utc_now()


@dataclass
class ProviderInvitation:
    """Invitation sent by an admin to onboard a provider."""

    email: str
    business_name: str
    invitation_token: str
    expires_at: datetime
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    status: InvitationStatus = InvitationStatus.PENDING
    invited_by: int | None = None
    completed_by: int | None = None
    message: str | None = None
    completed_at: datetime | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_expired(self, now: datetime | None = None) -> bool:
        """True once expires_at has passed."""
        return (now or utc_now()) >= self.expires_at

    def is_usable(self, now: datetime | None = None) -> bool:
        """Pending and not yet expired."""
        return self.status == InvitationStatus.PENDING and not self.is_expired(now)


@dataclass
class UserSession:
    """A login session identified by an opaque bearer token."""

    user_id: int
    session_token: str
    expires_at: datetime
    refresh_token: str | None = None
    is_active: bool = True
    ip_address: str | None = None
    user_agent: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def is_valid(self, now: datetime | None = None) -> bool:
        """Active and not expired."""
        return self.is_active and (now or utc_now()) < self.expires_at


@dataclass
class PasswordResetToken:
    """Single-use password reset token."""

    user_id: int
    token: str
    expires_at: datetime
    used: bool = False
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class Artist:
    """Recording artist or band."""

    name: str
    bio: str | None = None
    country: str | None = None
    formed_year: int | None = None
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class Genre:
    """Music genre."""

    name: str
    description: str | None = None
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class Album:
    """Album released by an artist."""

    title: str
    artist_id: int
    genre_id: int | None = None
    release_year: int | None = None
    label: str | None = None
    catalog_number: str | None = None
    description: str | None = None
    duration_minutes: int | None = None
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class Song:
    """Track on an album, optionally sold individually."""

    title: str
    album_id: int
    track_number: int | None = None
    duration_seconds: int | None = None
    price: Decimal | None = None
    format: str | None = None
    available: bool = True
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class Category:
    """Product category (e.g. "Vinyl LP", "Digital Album")."""

    name: str
    description: str | None = None
    is_active: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class Product:
    """Sellable item: one album format offered by one provider."""

    album_id: int
    provider_id: int
    category_id: int
    sku: str
    product_type: ProductType
    price: Decimal
    condition_type: ConditionType = ConditionType.NEW
    stock_quantity: int = 0
    low_stock_threshold: int = 5
    vinyl_size: VinylSize | None = None
    vinyl_speed: VinylSpeed | None = None
    weight_grams: int | None = None
    file_format: str | None = None
    file_size_mb: int | None = None
    is_active: bool = True
    featured: bool = False
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def in_stock(self) -> bool:
        """Digital products are always in stock."""
        return self.product_type == ProductType.DIGITAL or self.stock_quantity > 0

    @property
    def is_low_stock(self) -> bool:
        """Physical product at or below its low-stock threshold."""
        return (
            self.product_type == ProductType.PHYSICAL
            and self.stock_quantity <= self.low_stock_threshold
        )


@dataclass
class ProductImage:
    """Picture of a product; at most one per product is primary."""

    product_id: int
    image_url: str
    alt_text: str | None = None
    is_primary: bool = False
    display_order: int = 0
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)


_ITEM_TRANSITIONS: dict[OrderItemStatus, set[OrderItemStatus]] = {
    OrderItemStatus.PENDING: {OrderItemStatus.ACCEPTED, OrderItemStatus.REJECTED},
    OrderItemStatus.ACCEPTED: {OrderItemStatus.SHIPPED, OrderItemStatus.REJECTED},
    OrderItemStatus.SHIPPED: {OrderItemStatus.DELIVERED},
    OrderItemStatus.REJECTED: set(),
    OrderItemStatus.DELIVERED: set(),
}


@dataclass
class OrderItem:
    """Line of an order."""

    product_id: int
    quantity: int
    unit_price: Decimal
    provider_id: int | None = None
    status: OrderItemStatus = OrderItemStatus.PENDING
    rejection_reason: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    id: int | None = None
    order_id: int | None = None

    @property
    def subtotal(self) -> Decimal:
        """unit_price * quantity."""
        return self.unit_price * self.quantity

    def can_transition_to(self, new_status: OrderItemStatus) -> bool:
        return new_status in _ITEM_TRANSITIONS[self.status]


_ORDER_TRANSITIONS: dict[OrderStatus, set[OrderStatus]] = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: {OrderStatus.RECEIVED},
    OrderStatus.RECEIVED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.REJECTED: set(),
}

_SENT_ITEM_STATUSES = frozenset({OrderItemStatus.SHIPPED, OrderItemStatus.DELIVERED})

_CLOSED_ORDER_STATUSES = frozenset(
    {
        OrderStatus.DELIVERED,
        OrderStatus.RECEIVED,
        OrderStatus.CANCELLED,
        OrderStatus.REJECTED,
    }
)


@dataclass
class Order:
    """Customer order."""

    user_id: int
    items: list[OrderItem] = field(default_factory=list)
    status: OrderStatus = OrderStatus.PENDING
    shipping_address: str | None = None
    notes: str | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def live_items(self) -> list[OrderItem]:
        """Lines that were not rejected by their provider."""
        return [i for i in self.items if i.status != OrderItemStatus.REJECTED]

    @property
    def total_amount(self) -> Decimal:
        """Sum of subtotals of the lines still being fulfilled."""
        return sum((item.subtotal for item in self.live_items), Decimal("0"))

    @property
    def is_open(self) -> bool:
        """Providers can still act on the lines of an open order."""
        return self.status not in _CLOSED_ORDER_STATUSES

    def can_transition_to(self, new_status: OrderStatus) -> bool:
        """Check whether the status change is allowed."""
        return new_status in _ORDER_TRANSITIONS[self.status]

    def find_item(self, item_id: int) -> OrderItem | None:
        return next((i for i in self.items if i.id == item_id), None)

    # Hey future me - provider actions on single lines roll up to the order here.
    # Rejected lines are ignored. The order ships once every remaining line shipped
    # and is delivered once every remaining line arrived. No lines left: REJECTED.
    def sync_status_from_items(self, now: datetime | None = None) -> bool:
        """Derive the order status from its lines; True if it changed."""
        now = now or utc_now()
        live = self.live_items
        previous = self.status
        if not live:
            self.status = OrderStatus.REJECTED
        elif all(i.status == OrderItemStatus.DELIVERED for i in live):
            self.status = OrderStatus.DELIVERED
            self.delivered_at = now
            if self.shipped_at is None:
                self.shipped_at = max(i.shipped_at or now for i in live)
        elif self.status != OrderStatus.SHIPPED and all(
            i.status in _SENT_ITEM_STATUSES for i in live
        ):
            self.status = OrderStatus.SHIPPED
            self.shipped_at = max(i.shipped_at or now for i in live)
        if self.status != previous:
            self.updated_at = now
            return True
        return False


@dataclass
class OrderReview:
    """Customer rating of a delivered order, one per order."""

    order_id: int
    user_id: int
    rating: int
    comment: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=utc_now)


__all__ = [
    "Album",
    "Artist",
    "Category",
    "ConditionType",
    "Genre",
    "InvitationStatus",
    "Order",
    "OrderItem",
    "OrderItemStatus",
    "OrderReview",
    "OrderStatus",
    "PasswordResetToken",
    "Product",
    "ProductImage",
    "ProductType",
    "Provider",
    "ProviderInvitation",
    "Song",
    "User",
    "UserRole",
    "UserSession",
    "VerificationStatus",
    "VinylSize",
    "VinylSpeed",
    "utc_now",
]
