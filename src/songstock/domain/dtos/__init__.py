"""Data transfer objects shared between services, mappers and the API layer.

DTOs are dumb data carriers. Edit DTOs are mutable on purpose: the mapper
normalizes them in place before validation and uniqueness checks run.
"""

from dataclasses import asdict, dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from songstock.domain.entities import UserRole, VerificationStatus


@dataclass
class UserEditDTO:
    """Admin edit of a user account."""

    first_name: str | None
    last_name: str | None
    username: str | None
    email: str | None
    role: UserRole | None
    phone: str | None = None
    is_active: bool | None = None
    update_reason: str | None = None


@dataclass
class ProviderManagementDTO:
    """Admin change to a provider's verification and business data.

    Only non-None fields are applied.
    """

    verification_status: VerificationStatus | None = None
    business_name: str | None = None
    tax_id: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    commission_rate: Decimal | None = None
    change_reason: str | None = None


@dataclass
class UserManagementResponse:
    """User as shown in the admin console, enriched with provider data."""

    id: int
    first_name: str
    last_name: str
    username: str
    email: str
    phone: str | None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    provider_id: int | None = None
    business_name: str | None = None
    verification_status: VerificationStatus | None = None
    verification_date: datetime | None = None
    total_products: int = 0

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass(frozen=True)
class UserStatistics:
    """Role and activity breakdown of the users table."""

    total_users: int = 0
    total_admins: int = 0
    total_providers: int = 0
    total_customers: int = 0
    active_users: int = 0
    inactive_users: int = 0


@dataclass(frozen=True)
class ProviderStatistics:
    """Verification breakdown of the providers table."""

    verified_providers: int = 0
    pending_providers: int = 0
    rejected_providers: int = 0


@dataclass(frozen=True)
class ProductStatistics:
    """Product counters for dashboards."""

    total_products: int = 0
    active_products: int = 0
    digital_products: int = 0
    physical_products: int = 0
    in_stock_products: int = 0
    out_of_stock_products: int = 0


# Hey future me - every counter here is a plain int that defaults to 0. A category
# with no rows reports 0, never None, so the frontend can render it blindly.
@dataclass(frozen=True)
class AdminDashboardStats:
    """Fixed-shape aggregate for the admin dashboard."""

    total_users: int = 0
    total_admins: int = 0
    total_providers: int = 0
    total_customers: int = 0
    active_users: int = 0
    inactive_users: int = 0
    verified_providers: int = 0
    pending_providers: int = 0
    rejected_providers: int = 0
    total_products: int = 0
    active_products: int = 0
    digital_products: int = 0
    physical_products: int = 0
    users_registered_this_month: int = 0
    providers_verified_this_month: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class QuickMetrics:
    """Small set of counters for the admin header bar."""

    total_users: int = 0
    active_users: int = 0
    pending_providers: int = 0
    new_users_last_7_days: int = 0


__all__ = [
    "AdminDashboardStats",
    "ProductStatistics",
    "ProviderManagementDTO",
    "ProviderStatistics",
    "QuickMetrics",
    "UserEditDTO",
    "UserManagementResponse",
    "UserStatistics",
]
