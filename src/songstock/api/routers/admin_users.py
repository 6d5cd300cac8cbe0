"""Admin user management API endpoints.

Hey future me - every endpoint here requires an ADMIN session (router-level
dependency). The list endpoint takes raw strings for role/verification_status
on purpose: unknown values are ignored (filter omitted) instead of 422, see
user_management_mapper.to_filter.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status

from songstock.api.dependencies import (
    get_admin_user_service,
    get_page_request,
    require_admin,
)
from songstock.api.schemas.common import PageResponse
from songstock.api.schemas.users import (
    AdminDashboardOut,
    ProviderManagementIn,
    QuickMetricsOut,
    StatusChangeIn,
    UserEditIn,
    UserManagementOut,
)
from songstock.application.mappers import user_management_mapper as mapper
from songstock.application.services import AdminUserService
from songstock.domain.dtos import UserManagementResponse
from songstock.domain.entities import UserRole
from songstock.domain.value_objects import PageRequest

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/users",
    tags=["Admin Users"],
    dependencies=[Depends(require_admin)],
)


def _out(response: UserManagementResponse) -> UserManagementOut:
    return UserManagementOut.model_validate(response, from_attributes=True)


@router.get("", response_model=PageResponse[UserManagementOut])
async def list_users(
    search: str | None = Query(default=None, description="Free text (names, username, email, business name)"),
    role: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    verification_status: str | None = Query(default=None),
    created_after: datetime | None = Query(default=None),
    created_before: datetime | None = Query(default=None),
    sort_by: str | None = Query(default=None),
    sort_direction: str | None = Query(default=None),
    page_request: PageRequest = Depends(get_page_request),
    service: AdminUserService = Depends(get_admin_user_service),
) -> PageResponse[UserManagementOut]:
    """Filtered, sorted, paginated user list."""
    user_filter = mapper.to_filter(
        search_query=search,
        role=role,
        is_active=is_active,
        verification_status=verification_status,
        created_after=created_after,
        created_before=created_before,
        page=page_request.page,
        size=page_request.size,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    result = await service.get_all_users(user_filter)
    return PageResponse[UserManagementOut].from_page(result, _out)


@router.get("/statistics", response_model=AdminDashboardOut)
async def dashboard_statistics(
    service: AdminUserService = Depends(get_admin_user_service),
) -> AdminDashboardOut:
    stats = await service.get_dashboard_statistics()
    return AdminDashboardOut.model_validate(stats, from_attributes=True)


@router.get("/quick-metrics", response_model=QuickMetricsOut)
async def quick_metrics(
    service: AdminUserService = Depends(get_admin_user_service),
) -> QuickMetricsOut:
    metrics = await service.get_quick_metrics()
    return QuickMetricsOut.model_validate(metrics, from_attributes=True)


@router.get("/pending-providers", response_model=list[UserManagementOut])
async def pending_providers(
    service: AdminUserService = Depends(get_admin_user_service),
) -> list[UserManagementOut]:
    return [_out(r) for r in await service.get_pending_providers()]


@router.get("/search", response_model=list[UserManagementOut])
async def search_users(
    q: str = Query(default="", description="Also matches phone and tax id"),
    service: AdminUserService = Depends(get_admin_user_service),
) -> list[UserManagementOut]:
    return [_out(r) for r in await service.search_users(q)]


@router.get("/recent", response_model=list[UserManagementOut])
async def recent_users(
    days: int = Query(default=7, ge=1, le=365),
    service: AdminUserService = Depends(get_admin_user_service),
) -> list[UserManagementOut]:
    return [_out(r) for r in await service.get_recent_users(days)]


@router.get("/top-providers", response_model=list[UserManagementOut])
async def top_providers(
    limit: int = Query(default=10, ge=1, le=100),
    service: AdminUserService = Depends(get_admin_user_service),
) -> list[UserManagementOut]:
    return [_out(r) for r in await service.get_top_providers(limit)]


@router.get("/by-role/{role}", response_model=list[UserManagementOut])
async def users_by_role(
    role: UserRole,
    service: AdminUserService = Depends(get_admin_user_service),
) -> list[UserManagementOut]:
    return [_out(r) for r in await service.get_users_by_role(role)]


@router.get("/{user_id}", response_model=UserManagementOut)
async def get_user(
    user_id: int,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserManagementOut:
    return _out(await service.get_user_by_id(user_id))


@router.put("/{user_id}", response_model=UserManagementOut)
async def update_user(
    user_id: int,
    payload: UserEditIn,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserManagementOut:
    return _out(await service.update_user(user_id, payload.to_dto()))


@router.patch("/{user_id}/toggle-status", response_model=UserManagementOut)
async def toggle_status(
    user_id: int,
    payload: StatusChangeIn | None = None,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserManagementOut:
    reason = payload.reason if payload else None
    return _out(await service.toggle_user_status(user_id, reason))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(
    user_id: int,
    reason: str | None = Query(default=None, max_length=500),
    service: AdminUserService = Depends(get_admin_user_service),
) -> None:
    """Soft delete. 400 while products still trace to the user's provider."""
    await service.delete_user(user_id, reason)


@router.put("/{user_id}/provider-verification", response_model=UserManagementOut)
async def update_provider_verification(
    user_id: int,
    payload: ProviderManagementIn,
    service: AdminUserService = Depends(get_admin_user_service),
) -> UserManagementOut:
    return _out(await service.update_provider_verification(user_id, payload.to_dto()))
