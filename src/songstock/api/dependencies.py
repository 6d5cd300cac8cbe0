"""Dependency injection for API endpoints."""

import logging
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import cast

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from songstock.application.services import (
    AdminUserService,
    AuthService,
    CatalogService,
    OrderService,
    PasswordResetService,
    ProductService,
    ProviderService,
    StatsService,
)
from songstock.config import Settings
from songstock.domain.entities import User, UserRole
from songstock.domain.exceptions import AuthenticationError, AuthorizationError
from songstock.domain.value_objects import PageRequest
from songstock.infrastructure.persistence.database import Database

logger = logging.getLogger(__name__)


# Hey future me - settings live on app.state (set by create_app), NOT the lru_cached
# get_settings(). That way tests can build an app with an in-memory database without
# touching environment variables.
def get_app_settings(request: Request) -> Settings:
    return cast(Settings, request.app.state.settings)


# One session per request; session_scope() commits when the endpoint returns normally
# and rolls back on any exception. FastAPI caches this per request, so every service
# dependency of one endpoint shares the same session (and transaction).
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Get database session from app state."""
    db: Database = request.app.state.db
    async with db.session_scope() as session:
        yield session


def get_page_request(
    request: Request,
    page: int = 0,
    size: int | None = None,
) -> PageRequest:
    """Page/size query parameters clamped to the configured limits."""
    settings = get_app_settings(request)
    effective = size if size is not None else settings.api.default_page_size
    effective = max(1, min(effective, settings.api.max_page_size))
    return PageRequest(page=max(page, 0), size=effective)


# =============================================================================
# SERVICES
# =============================================================================


def get_auth_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> AuthService:
    return AuthService(session, settings.auth)


def get_password_reset_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> PasswordResetService:
    return PasswordResetService(session, settings.auth)


def get_admin_user_service(
    session: AsyncSession = Depends(get_db_session),
) -> AdminUserService:
    return AdminUserService(session)


def get_stats_service(session: AsyncSession = Depends(get_db_session)) -> StatsService:
    return StatsService(session)


def get_catalog_service(session: AsyncSession = Depends(get_db_session)) -> CatalogService:
    return CatalogService(session)


def get_product_service(session: AsyncSession = Depends(get_db_session)) -> ProductService:
    return ProductService(session)


def get_provider_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> ProviderService:
    return ProviderService(session, settings.auth)


def get_order_service(session: AsyncSession = Depends(get_db_session)) -> OrderService:
    return OrderService(session)


# =============================================================================
# AUTHENTICATION / RBAC
# =============================================================================


def get_bearer_token(authorization: str | None = Header(default=None)) -> str:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        raise AuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise AuthenticationError("Authorization header must be 'Bearer <token>'")
    return token.strip()


async def get_current_user(
    token: str = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> User:
    return await auth_service.validate_token(token)


def require_roles(*roles: UserRole) -> Callable[..., Awaitable[User]]:
    """Dependency factory: the current user must have one of roles (403 otherwise).

    Usage: ``admin: User = Depends(require_roles(UserRole.ADMIN))``
    """
    allowed = frozenset(roles)

    async def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in allowed:
            logger.info(
                "Forbidden: user %s with role %s", user.id, user.role.value,
                extra={"required": sorted(r.value for r in allowed)},
            )
            raise AuthorizationError("Insufficient permissions")
        return user

    return _checker


require_admin = require_roles(UserRole.ADMIN)
require_provider_or_admin = require_roles(UserRole.PROVIDER, UserRole.ADMIN)
require_customer = require_roles(UserRole.CUSTOMER)
