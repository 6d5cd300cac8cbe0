"""Stats Service - dashboard statistics for the admin console.

Hey future me - routers never run count queries themselves, they call this
service. The heavy lifting is in UserRepository/ProductRepository (one
aggregate statement each); this service only stitches the partial results
into the fixed-shape AdminDashboardStats record.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.application.mappers import user_management_mapper as mapper
from songstock.domain.dtos import AdminDashboardStats, ProductStatistics, QuickMetrics
from songstock.infrastructure.persistence.repositories import (
    ProductRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)

QUICK_METRICS_WINDOW_DAYS = 7


def start_of_month(now: datetime | None = None) -> datetime:
    """Day 1, 00:00:00 UTC of the month containing now."""
    current = (now or datetime.now(UTC)).astimezone(UTC)
    return current.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


class StatsService:
    """Service for admin dashboard counters."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize stats service.

        Args:
            session: Database session
        """
        self._session = session
        self._users = UserRepository(session)
        self._products = ProductRepository(session)

    async def get_dashboard_statistics(
        self, month_start: datetime | None = None
    ) -> AdminDashboardStats:
        """Aggregate user, provider and product counters.

        Args:
            month_start: Inclusive lower bound for the "this month" counters.
                Defaults to the start of the current UTC month.
        """
        since = month_start or start_of_month()

        user_stats = await self._users.get_user_statistics()
        provider_stats = await self._users.get_provider_statistics()
        product_stats = await self._products.get_statistics()
        registered = await self._users.count_users_registered_since(since)
        verified = await self._users.count_providers_verified_since(since)

        stats = mapper.to_dashboard(
            user_stats,
            provider_stats,
            product_stats,
            users_registered_this_month=registered,
            providers_verified_this_month=verified,
        )
        logger.debug(
            "Dashboard statistics computed",
            extra={"total_users": stats.total_users, "since": since.isoformat()},
        )
        return stats

    async def get_quick_metrics(self, now: datetime | None = None) -> QuickMetrics:
        """Header-bar counters: totals plus new users in the last week."""
        current = now or datetime.now(UTC)
        user_stats = await self._users.get_user_statistics()
        provider_stats = await self._users.get_provider_statistics()
        new_users = await self._users.count_users_registered_since(
            current - timedelta(days=QUICK_METRICS_WINDOW_DAYS)
        )
        return QuickMetrics(
            total_users=user_stats.total_users,
            active_users=user_stats.active_users,
            pending_providers=provider_stats.pending_providers,
            new_users_last_7_days=new_users,
        )

    async def get_product_statistics(self) -> ProductStatistics:
        """Product counters (total, active, type and stock breakdown)."""
        return await self._products.get_statistics()
