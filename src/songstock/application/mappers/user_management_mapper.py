"""Conversion between user/provider entities and admin transfer objects.

Also owns the normalization that must happen to an edit before it reaches the
uniqueness checks: identity fields are compared case-insensitively, so they
are lower-cased here first.
"""

import logging
from datetime import datetime

from songstock.domain.dtos import (
    AdminDashboardStats,
    ProductStatistics,
    ProviderManagementDTO,
    ProviderStatistics,
    UserEditDTO,
    UserManagementResponse,
    UserStatistics,
)
from songstock.domain.entities import Provider, User, utc_now
from songstock.domain.exceptions import ValidationException
from songstock.domain.value_objects import (
    PageRequest,
    SortDirection,
    UserSearchFilter,
    parse_user_role,
    parse_verification_status,
)

logger = logging.getLogger(__name__)

DEFAULT_SORT_BY = "createdAt"
DEFAULT_PAGE_SIZE = 20


def to_management_response(
    user: User, provider: Provider | None = None, total_products: int = 0
) -> UserManagementResponse:
    """Build the admin view of a user, enriched with provider data when present."""
    assert user.id is not None
    response = UserManagementResponse(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        username=user.username,
        email=user.email,
        phone=user.phone,
        role=user.role,
        is_active=user.is_active,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
    if provider is not None:
        response.provider_id = provider.id
        response.business_name = provider.business_name
        response.verification_status = provider.verification_status
        response.verification_date = provider.verification_date
        response.total_products = total_products
    return response


def _strip(value: str | None) -> str | None:
    return value.strip() if value is not None else None


def sanitize_edit_dto(dto: UserEditDTO) -> UserEditDTO:
    """Trim free text and lower-case username/email, in place."""
    dto.first_name = _strip(dto.first_name)
    dto.last_name = _strip(dto.last_name)
    dto.phone = _strip(dto.phone)
    dto.update_reason = _strip(dto.update_reason)
    if dto.username is not None:
        dto.username = dto.username.strip().lower()
    if dto.email is not None:
        dto.email = dto.email.strip().lower()
    return dto


def _missing_edit_fields(dto: UserEditDTO) -> list[str]:
    missing = [
        name
        for name in ("first_name", "last_name", "username", "email")
        if not (getattr(dto, name) or "").strip()
    ]
    if dto.role is None:
        missing.append("role")
    return missing


def is_valid_edit_dto(dto: UserEditDTO) -> bool:
    """True when every required field is present and non-blank."""
    return not _missing_edit_fields(dto)


def validate_edit_dto(dto: UserEditDTO) -> None:
    """Raise ValidationException naming the first missing required field."""
    missing = _missing_edit_fields(dto)
    if missing:
        raise ValidationException(f"Field '{missing[0]}' is required")


# Hey future me, invalid role/status strings don't blow up here: the parse helpers
# return None and the filter is simply omitted. That's the documented behaviour of the
# admin list, see DESIGN.md before changing it to a 400.
def to_filter(
    search_query: str | None = None,
    role: str | None = None,
    is_active: bool | None = None,
    verification_status: str | None = None,
    created_after: datetime | None = None,
    created_before: datetime | None = None,
    page: int | None = None,
    size: int | None = None,
    sort_by: str | None = None,
    sort_direction: str | None = None,
) -> UserSearchFilter:
    """Build a UserSearchFilter from raw request values, applying defaults."""
    page_request = PageRequest(
        page=page if page is not None else 0,
        size=size if size is not None else DEFAULT_PAGE_SIZE,
        sort_by=sort_by.strip() if sort_by and sort_by.strip() else DEFAULT_SORT_BY,
        sort_direction=SortDirection.parse(sort_direction, SortDirection.DESC),
    )
    return UserSearchFilter(
        search_query=search_query,
        role=parse_user_role(role),
        is_active=is_active,
        verification_status=parse_verification_status(verification_status),
        created_after=created_after,
        created_before=created_before,
        page_request=page_request,
    )


def create_default_filter() -> UserSearchFilter:
    """Unfiltered first page, newest users first."""
    return UserSearchFilter()


def update_provider_from_management_dto(
    provider: Provider, dto: ProviderManagementDTO
) -> Provider:
    """Apply the non-None fields of dto to provider, in place."""
    if dto.business_name is not None and dto.business_name.strip():
        provider.business_name = dto.business_name.strip()
    if dto.tax_id is not None:
        provider.tax_id = dto.tax_id.strip()
    if dto.address is not None:
        provider.address = dto.address.strip()
    if dto.city is not None:
        provider.city = dto.city.strip()
    if dto.state is not None:
        provider.state = dto.state.strip()
    if dto.country is not None and dto.country.strip():
        provider.country = dto.country.strip()
    if dto.postal_code is not None:
        provider.postal_code = dto.postal_code.strip()
    if dto.commission_rate is not None:
        provider.commission_rate = dto.commission_rate
    if dto.verification_status is not None:
        provider.set_verification_status(dto.verification_status)
    provider.updated_at = utc_now()
    return provider


def to_dashboard(
    users: UserStatistics,
    providers: ProviderStatistics,
    products: ProductStatistics,
    users_registered_this_month: int = 0,
    providers_verified_this_month: int = 0,
) -> AdminDashboardStats:
    """Flatten the partial statistics into the dashboard record."""
    return AdminDashboardStats(
        total_users=users.total_users,
        total_admins=users.total_admins,
        total_providers=users.total_providers,
        total_customers=users.total_customers,
        active_users=users.active_users,
        inactive_users=users.inactive_users,
        verified_providers=providers.verified_providers,
        pending_providers=providers.pending_providers,
        rejected_providers=providers.rejected_providers,
        total_products=products.total_products,
        active_products=products.active_products,
        digital_products=products.digital_products,
        physical_products=products.physical_products,
        users_registered_this_month=users_registered_this_month,
        providers_verified_this_month=providers_verified_this_month,
    )
