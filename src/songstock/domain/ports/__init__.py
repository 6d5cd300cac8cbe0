"""Domain ports (interfaces) for dependency inversion.

Services depend on these ABCs; the SQLAlchemy implementations live in
``songstock.infrastructure.persistence.repositories``. Tests can substitute
in-memory fakes or ``AsyncMock(spec=...)``.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from songstock.domain.dtos import ProviderStatistics, UserStatistics
from songstock.domain.entities import (
    Provider,
    User,
    UserRole,
    UserSession,
    VerificationStatus,
)
from songstock.domain.value_objects import Page, UserSearchFilter


# Hey future me, IUserRepository carries the whole admin query surface: the filtered
# page, the two aggregate statements and the validators. If you add a method here the
# SQLAlchemy UserRepository must implement it too.
class IUserRepository(ABC):
    """Repository interface for User entities."""

    @abstractmethod
    async def add(self, user: User) -> User:
        """Stage a new user and return it with its id assigned."""

    @abstractmethod
    async def update(self, user: User) -> None:
        """Persist all fields of an existing user."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> User | None:
        """Get a user by id."""

    @abstractmethod
    async def get_by_username_or_email(self, value: str) -> User | None:
        """Case-insensitive lookup by username or email."""

    @abstractmethod
    async def find_users_with_filters(
        self, user_filter: UserSearchFilter
    ) -> Page[tuple[User, Provider | None]]:
        """Filtered, sorted, paginated users joined with their provider."""

    @abstractmethod
    async def find_user_with_provider(
        self, user_id: int
    ) -> tuple[User, Provider | None] | None:
        """User plus provider (if any) by user id."""

    @abstractmethod
    async def find_by_role(self, role: UserRole) -> list[User]:
        """All users with the given role."""

    @abstractmethod
    async def get_user_statistics(self) -> UserStatistics:
        """Role and activity counters in one aggregate query."""

    @abstractmethod
    async def get_provider_statistics(self) -> ProviderStatistics:
        """Verification counters in one aggregate query."""

    @abstractmethod
    async def count_users_registered_since(self, start: datetime) -> int:
        """Users with created_at >= start."""

    @abstractmethod
    async def count_providers_verified_since(self, start: datetime) -> int:
        """VERIFIED providers with verification_date >= start."""

    @abstractmethod
    async def can_user_be_deleted(self, user_id: int) -> bool:
        """True iff no product traces to the user's provider."""

    @abstractmethod
    async def is_username_available_for_update(
        self, username: str, exclude_user_id: int
    ) -> bool:
        """No other user has this username (case-insensitive)."""

    @abstractmethod
    async def is_email_available_for_update(
        self, email: str, exclude_user_id: int
    ) -> bool:
        """No other user has this email (case-insensitive)."""


class IProviderRepository(ABC):
    """Repository interface for Provider entities."""

    @abstractmethod
    async def add(self, provider: Provider) -> Provider:
        """Stage a new provider and return it with its id assigned."""

    @abstractmethod
    async def update(self, provider: Provider) -> None:
        """Persist all fields of an existing provider."""

    @abstractmethod
    async def get_by_id(self, provider_id: int) -> Provider | None:
        """Get a provider by id."""

    @abstractmethod
    async def get_by_user_id(self, user_id: int) -> Provider | None:
        """Get the provider linked to a user."""

    @abstractmethod
    async def list_by_status(self, status: VerificationStatus) -> list[Provider]:
        """Providers in the given verification state."""


class IUserSessionRepository(ABC):
    """Repository interface for login sessions."""

    @abstractmethod
    async def add(self, user_session: UserSession) -> UserSession:
        """Stage a new session."""

    @abstractmethod
    async def get_by_token(self, session_token: str) -> UserSession | None:
        """Look up a session by its bearer token."""

    @abstractmethod
    async def deactivate_session(self, session_token: str) -> bool:
        """Flip is_active off for one session. False if nothing changed."""

    @abstractmethod
    async def deactivate_all_user_sessions(self, user_id: int) -> int:
        """Flip is_active off for every session of a user, return row count."""


__all__ = [
    "IProviderRepository",
    "IUserRepository",
    "IUserSessionRepository",
]
