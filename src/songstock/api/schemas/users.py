"""Admin user management schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from songstock.domain.dtos import ProviderManagementDTO, UserEditDTO
from songstock.domain.entities import UserRole, VerificationStatus


class UserManagementOut(BaseModel):
    """User as shown in the admin console."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    first_name: str
    last_name: str
    full_name: str
    username: str
    email: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime
    updated_at: datetime
    provider_id: int | None = None
    business_name: str | None = None
    verification_status: VerificationStatus | None = None
    verification_date: datetime | None = None
    total_products: int = 0


class UserEditIn(BaseModel):
    """Admin edit. Required fields are checked after trimming, so blank strings
    pass schema validation and are rejected with 400 by the service."""

    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None
    email: str | None = None
    role: UserRole | None = None
    phone: str | None = None
    is_active: bool | None = None
    update_reason: str | None = Field(default=None, max_length=500)

    def to_dto(self) -> UserEditDTO:
        return UserEditDTO(**self.model_dump())


class ProviderManagementIn(BaseModel):
    verification_status: VerificationStatus | None = None
    business_name: str | None = Field(default=None, max_length=100)
    tax_id: str | None = Field(default=None, max_length=50)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    country: str | None = None
    postal_code: str | None = None
    commission_rate: Decimal | None = Field(default=None, ge=0, le=100)
    change_reason: str | None = Field(default=None, max_length=500)

    def to_dto(self) -> ProviderManagementDTO:
        return ProviderManagementDTO(**self.model_dump())


class StatusChangeIn(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class AdminDashboardOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    total_admins: int
    total_providers: int
    total_customers: int
    active_users: int
    inactive_users: int
    verified_providers: int
    pending_providers: int
    rejected_providers: int
    total_products: int
    active_products: int
    digital_products: int
    physical_products: int
    users_registered_this_month: int
    providers_verified_this_month: int


class QuickMetricsOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_users: int
    active_users: int
    pending_providers: int
    new_users_last_7_days: int


class UserOut(BaseModel):
    """Public view of the current user."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: UserRole
    is_active: bool
    created_at: datetime
