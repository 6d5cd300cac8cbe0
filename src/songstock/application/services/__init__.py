"""Application services."""

from songstock.application.services.admin_user_service import AdminUserService
from songstock.application.services.auth_service import (
    AuthService,
    LoginResult,
    ProviderRegistrationData,
    RegistrationData,
)
from songstock.application.services.catalog_service import CatalogService
from songstock.application.services.order_service import OrderLine, OrderService
from songstock.application.services.password_reset_service import PasswordResetService
from songstock.application.services.product_service import ProductService
from songstock.application.services.provider_service import ProviderService
from songstock.application.services.stats_service import StatsService, start_of_month

__all__ = [
    "AdminUserService",
    "AuthService",
    "CatalogService",
    "LoginResult",
    "OrderLine",
    "OrderService",
    "PasswordResetService",
    "ProductService",
    "ProviderRegistrationData",
    "ProviderService",
    "RegistrationData",
    "StatsService",
    "start_of_month",
]
