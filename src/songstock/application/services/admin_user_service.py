"""Admin user management service.

Hey future me - this is the admin console's entry point for everything about
user accounts and provider verification. Every method works on the request's
session; nothing is committed here, the session scope commits once the request
succeeded (and rolls back everything on any exception).

Order matters in update_user: sanitize -> validate -> load -> uniqueness ->
apply. The uniqueness checks compare case-insensitively against the already
lower-cased values, so normalization has to run first.
"""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.application.mappers import user_management_mapper as mapper
from songstock.application.services.stats_service import StatsService
from songstock.domain.dtos import (
    AdminDashboardStats,
    ProviderManagementDTO,
    QuickMetrics,
    UserEditDTO,
    UserManagementResponse,
)
from songstock.domain.entities import Provider, User, UserRole
from songstock.domain.exceptions import (
    BusinessRuleViolation,
    DuplicateEntityException,
    EntityNotFoundException,
)
from songstock.domain.value_objects import Page, UserSearchFilter
from songstock.infrastructure.persistence.repositories import (
    ProductRepository,
    ProviderRepository,
    UserRepository,
    UserSessionRepository,
)

logger = logging.getLogger(__name__)


class AdminUserService:
    """User/provider administration for the admin console."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._users = UserRepository(session)
        self._providers = ProviderRepository(session)
        self._products = ProductRepository(session)
        self._sessions = UserSessionRepository(session)
        self._stats = StatsService(session)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _to_response(
        self, user: User, provider: Provider | None
    ) -> UserManagementResponse:
        product_count = 0
        if provider is not None and provider.id is not None:
            product_count = await self._products.count_active_by_provider(provider.id)
        return mapper.to_management_response(user, provider, product_count)

    async def _require_user(self, user_id: int) -> User:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise EntityNotFoundException("User", user_id)
        return user

    async def _ensure_not_last_active_admin(self, user: User) -> None:
        if user.role != UserRole.ADMIN or not user.is_active:
            return
        if await self._users.count_active_by_role(UserRole.ADMIN) <= 1:
            raise BusinessRuleViolation("Cannot deactivate the last active administrator")

    # =========================================================================
    # QUERIES
    # =========================================================================

    async def get_all_users(
        self, user_filter: UserSearchFilter | None = None
    ) -> Page[UserManagementResponse]:
        """Filtered, paginated admin user list."""
        user_filter = user_filter or mapper.create_default_filter()
        page = await self._users.find_users_with_filters(user_filter)
        items = [await self._to_response(user, provider) for user, provider in page.items]
        logger.debug(
            "Admin user list: %d of %d (page %d)",
            len(items),
            page.total,
            page.page,
        )
        return Page(items=items, total=page.total, page=page.page, size=page.size)

    async def get_user_by_id(self, user_id: int) -> UserManagementResponse:
        row = await self._users.find_user_with_provider(user_id)
        if row is None:
            raise EntityNotFoundException("User", user_id)
        return await self._to_response(*row)

    async def search_users(self, query: str) -> list[UserManagementResponse]:
        """Free-text search, also matching phone and provider tax id."""
        if not query or not query.strip():
            return []
        rows = await self._users.search_users(query)
        return [await self._to_response(user, provider) for user, provider in rows]

    async def get_recent_users(self, days: int = 7) -> list[UserManagementResponse]:
        """Users registered within the last `days` days, newest first."""
        if days < 1:
            raise BusinessRuleViolation("days must be at least 1")
        cutoff = datetime.now(UTC) - timedelta(days=days)
        users = await self._users.find_recent_users(cutoff)
        return [mapper.to_management_response(user) for user in users]

    async def get_top_providers(self, limit: int = 10) -> list[UserManagementResponse]:
        """Providers ranked by number of active products."""
        if limit < 1:
            raise BusinessRuleViolation("limit must be at least 1")
        rows = await self._users.get_top_providers_by_product_count(limit)
        return [
            mapper.to_management_response(user, provider, count)
            for user, provider, count in rows
        ]

    async def get_users_by_role(self, role: UserRole) -> list[UserManagementResponse]:
        users = await self._users.find_by_role(role)
        result = []
        for user in users:
            provider = None
            if role == UserRole.PROVIDER and user.id is not None:
                provider = await self._providers.get_by_user_id(user.id)
            result.append(await self._to_response(user, provider))
        return result

    async def get_pending_providers(self) -> list[UserManagementResponse]:
        """Providers awaiting verification, oldest application first."""
        rows = await self._users.find_pending_providers()
        return [await self._to_response(user, provider) for user, provider in rows]

    async def get_dashboard_statistics(
        self, month_start: datetime | None = None
    ) -> AdminDashboardStats:
        return await self._stats.get_dashboard_statistics(month_start)

    async def get_quick_metrics(self) -> QuickMetrics:
        return await self._stats.get_quick_metrics()

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def update_user(
        self, user_id: int, edit: UserEditDTO
    ) -> UserManagementResponse:
        """Apply an admin edit to a user account.

        Raises:
            ValidationException: a required field is blank (before any lookup)
            EntityNotFoundException: no user with user_id
            DuplicateEntityException: username/email taken by another user
        """
        mapper.sanitize_edit_dto(edit)
        mapper.validate_edit_dto(edit)
        # validate_edit_dto guarantees these are set
        assert edit.username and edit.email and edit.first_name and edit.last_name
        assert edit.role is not None

        user = await self._require_user(user_id)

        if not await self._users.is_username_available_for_update(edit.username, user_id):
            raise DuplicateEntityException("User", "username", edit.username)
        if not await self._users.is_email_available_for_update(edit.email, user_id):
            raise DuplicateEntityException("User", "email", edit.email)

        if edit.is_active is False and user.is_active:
            await self._ensure_not_last_active_admin(user)
        if edit.role != UserRole.ADMIN and user.role == UserRole.ADMIN:
            await self._ensure_not_last_active_admin(user)

        user.first_name = edit.first_name
        user.last_name = edit.last_name
        user.username = edit.username
        user.email = edit.email
        user.role = edit.role
        if edit.phone is not None:
            user.phone = edit.phone or None
        if edit.is_active is not None:
            user.is_active = edit.is_active
        user.touch()
        await self._users.update(user)

        logger.info(
            "User %s updated by admin",
            user_id,
            extra={"user_id": user_id, "reason": edit.update_reason},
        )
        return await self.get_user_by_id(user_id)

    async def toggle_user_status(
        self, user_id: int, reason: str | None = None
    ) -> UserManagementResponse:
        """Flip is_active. Deactivating also ends all of the user's sessions."""
        user = await self._require_user(user_id)
        if user.is_active:
            await self._ensure_not_last_active_admin(user)

        previous = user.is_active
        user.is_active = not previous
        user.touch()
        await self._users.update(user)
        if not user.is_active:
            await self._sessions.deactivate_all_user_sessions(user_id)

        logger.info(
            "User %s status changed %s -> %s",
            user_id,
            previous,
            user.is_active,
            extra={"user_id": user_id, "reason": reason},
        )
        return await self.get_user_by_id(user_id)

    async def delete_user(self, user_id: int, reason: str | None = None) -> None:
        """Soft delete: blocked while any product traces to the user's provider."""
        user = await self._require_user(user_id)
        if not await self._users.can_user_be_deleted(user_id):
            raise BusinessRuleViolation(
                "User cannot be deleted because they have associated products"
            )
        await self._ensure_not_last_active_admin(user)

        user.is_active = False
        user.touch()
        await self._users.update(user)
        await self._sessions.deactivate_all_user_sessions(user_id)
        logger.info(
            "User %s soft-deleted",
            user_id,
            extra={"user_id": user_id, "reason": reason},
        )

    async def update_provider_verification(
        self, user_id: int, dto: ProviderManagementDTO
    ) -> UserManagementResponse:
        """Change a provider's verification status and business data."""
        user = await self._require_user(user_id)
        if user.role != UserRole.PROVIDER:
            raise BusinessRuleViolation(f"User {user_id} is not a provider")

        provider = await self._providers.get_by_user_id(user_id)
        if provider is None:
            raise EntityNotFoundException("Provider", f"user_id={user_id}")

        previous = provider.verification_status
        mapper.update_provider_from_management_dto(provider, dto)
        await self._providers.update(provider)

        logger.info(
            "Provider %s verification %s -> %s",
            provider.id,
            previous.value,
            provider.verification_status.value,
            extra={"user_id": user_id, "reason": dto.change_reason},
        )
        return await self._to_response(user, provider)
