"""Repository implementations for domain entities."""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Generic, TypeVar

from sqlalchemy import case, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload
from sqlalchemy.sql import ColumnElement

from songstock.domain.dtos import ProductStatistics, ProviderStatistics, UserStatistics
from songstock.domain.entities import (
    Album,
    Artist,
    Category,
    ConditionType,
    Genre,
    InvitationStatus,
    Order,
    OrderItem,
    OrderItemStatus,
    OrderReview,
    OrderStatus,
    PasswordResetToken,
    Product,
    ProductImage,
    ProductType,
    Provider,
    ProviderInvitation,
    Song,
    User,
    UserRole,
    UserSession,
    VerificationStatus,
    VinylSize,
    VinylSpeed,
)
from songstock.domain.exceptions import EntityNotFoundException
from songstock.domain.ports import (
    IProviderRepository,
    IUserRepository,
    IUserSessionRepository,
)
from songstock.domain.value_objects import (
    Page,
    PageRequest,
    SortDirection,
    UserSearchFilter,
)

from .models import (
    AlbumModel,
    ArtistModel,
    Base,
    CategoryModel,
    GenreModel,
    OrderItemModel,
    OrderModel,
    OrderReviewModel,
    PasswordResetTokenModel,
    ProductImageModel,
    ProductModel,
    ProviderInvitationModel,
    ProviderModel,
    SongModel,
    UserModel,
    UserSessionModel,
    ensure_utc_aware,
    ensure_utc_aware_or_none,
)

EntityT = TypeVar("EntityT")
ModelT = TypeVar("ModelT", bound=Base)


def _escape_like(value: str) -> str:
    """Escape LIKE wildcards so user text matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _contains_pattern(text: str) -> str:
    return f"%{_escape_like(text)}%"


# Hey future me - SQLite stores DateTime(timezone=True) without the offset, so every
# bound parameter is converted to UTC first or comparisons silently drift by hours.
def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _to_user(model: UserModel) -> User:
    return User(
        id=model.id,
        username=model.username,
        email=model.email,
        password_hash=model.password_hash,
        first_name=model.first_name,
        last_name=model.last_name,
        phone=model.phone,
        role=UserRole(model.role),
        is_active=model.is_active,
        created_at=ensure_utc_aware(model.created_at),
        updated_at=ensure_utc_aware(model.updated_at),
    )


def _to_provider(model: ProviderModel) -> Provider:
    return Provider(
        id=model.id,
        user_id=model.user_id,
        business_name=model.business_name,
        tax_id=model.tax_id,
        address=model.address,
        city=model.city,
        state=model.state,
        postal_code=model.postal_code,
        country=model.country,
        verification_status=VerificationStatus(model.verification_status),
        verification_date=ensure_utc_aware_or_none(model.verification_date),
        commission_rate=Decimal(model.commission_rate),
        created_at=ensure_utc_aware(model.created_at),
        updated_at=ensure_utc_aware(model.updated_at),
    )


def _to_product(model: ProductModel) -> Product:
    return Product(
        id=model.id,
        album_id=model.album_id,
        provider_id=model.provider_id,
        category_id=model.category_id,
        sku=model.sku,
        product_type=ProductType(model.product_type),
        condition_type=ConditionType(model.condition_type),
        price=Decimal(model.price),
        stock_quantity=model.stock_quantity,
        low_stock_threshold=model.low_stock_threshold,
        vinyl_size=VinylSize(model.vinyl_size) if model.vinyl_size else None,
        vinyl_speed=VinylSpeed(model.vinyl_speed) if model.vinyl_speed else None,
        weight_grams=model.weight_grams,
        file_format=model.file_format,
        file_size_mb=model.file_size_mb,
        is_active=model.is_active,
        featured=model.featured,
        created_at=ensure_utc_aware(model.created_at),
        updated_at=ensure_utc_aware(model.updated_at),
    )


def _enum_value(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


# =============================================================================
# USERS
# =============================================================================

# Listen up, every public sort key maps to a real column here. Anything else (typos,
# injection attempts) falls back to created_at, which is also the default.
_USER_SORT_COLUMNS: dict[str, Any] = {
    "id": UserModel.id,
    "createdAt": UserModel.created_at,
    "created_at": UserModel.created_at,
    "updatedAt": UserModel.updated_at,
    "updated_at": UserModel.updated_at,
    "username": UserModel.username,
    "email": UserModel.email,
    "firstName": UserModel.first_name,
    "first_name": UserModel.first_name,
    "lastName": UserModel.last_name,
    "last_name": UserModel.last_name,
    "role": UserModel.role,
    "isActive": UserModel.is_active,
    "is_active": UserModel.is_active,
}


def _user_filter_conditions(user_filter: UserSearchFilter) -> list[ColumnElement[bool]]:
    """Build the AND-combined WHERE clauses for the admin user list."""
    conditions: list[ColumnElement[bool]] = []

    query = user_filter.normalized_query
    if query is not None:
        pattern = _contains_pattern(query)
        conditions.append(
            or_(
                UserModel.first_name.ilike(pattern, escape="\\"),
                UserModel.last_name.ilike(pattern, escape="\\"),
                UserModel.username.ilike(pattern, escape="\\"),
                UserModel.email.ilike(pattern, escape="\\"),
                ProviderModel.business_name.ilike(pattern, escape="\\"),
            )
        )
    if user_filter.role is not None:
        conditions.append(UserModel.role == user_filter.role.value)
    if user_filter.is_active is not None:
        conditions.append(UserModel.is_active.is_(user_filter.is_active))
    if user_filter.verification_status is not None:
        conditions.append(
            ProviderModel.verification_status == user_filter.verification_status.value
        )
    if user_filter.created_after is not None:
        conditions.append(UserModel.created_at >= _as_utc(user_filter.created_after))
    if user_filter.created_before is not None:
        conditions.append(UserModel.created_at <= _as_utc(user_filter.created_before))
    return conditions


class UserRepository(IUserRepository):
    """SQLAlchemy implementation of User repository."""

    # Hey future me, repos never commit. The session comes from the request scope and
    # session_scope() commits once the whole request succeeded.
    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, user: User) -> User:
        """Add a new user and flush to get its id."""
        model = UserModel(
            username=user.username,
            email=user.email,
            password_hash=user.password_hash,
            first_name=user.first_name,
            last_name=user.last_name,
            phone=user.phone,
            role=user.role.value,
            is_active=user.is_active,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )
        self.session.add(model)
        await self.session.flush()
        user.id = model.id
        return user

    async def update(self, user: User) -> None:
        """Update an existing user."""
        model = await self.session.get(UserModel, user.id)
        if model is None:
            raise EntityNotFoundException("User", user.id)

        model.username = user.username
        model.email = user.email
        model.password_hash = user.password_hash
        model.first_name = user.first_name
        model.last_name = user.last_name
        model.phone = user.phone
        model.role = user.role.value
        model.is_active = user.is_active
        model.updated_at = user.updated_at
        await self.session.flush()

    async def get_by_id(self, user_id: int) -> User | None:
        """Get a user by id."""
        model = await self.session.get(UserModel, user_id)
        return _to_user(model) if model else None

    async def get_by_username(self, username: str) -> User | None:
        """Get a user by username (case-insensitive)."""
        stmt = select(UserModel).where(
            func.lower(UserModel.username) == username.strip().lower()
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return _to_user(model) if model else None

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by email (case-insensitive)."""
        stmt = select(UserModel).where(
            func.lower(UserModel.email) == email.strip().lower()
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return _to_user(model) if model else None

    async def get_by_username_or_email(self, value: str) -> User | None:
        """Get a user whose username or email equals value (case-insensitive).

        A username match wins over another account whose email happens to equal
        the same string.
        """
        needle = value.strip().lower()
        username_match = func.lower(UserModel.username) == needle
        stmt = (
            select(UserModel)
            .where(or_(username_match, func.lower(UserModel.email) == needle))
            .order_by(case((username_match, 0), else_=1), UserModel.id.asc())
            .limit(1)
        )
        model = (await self.session.execute(stmt)).scalars().first()
        return _to_user(model) if model else None

    async def exists_by_username(self, username: str) -> bool:
        """True if any user has this username (case-insensitive)."""
        stmt = select(func.count(UserModel.id)).where(
            func.lower(UserModel.username) == username.strip().lower()
        )
        return ((await self.session.execute(stmt)).scalar() or 0) > 0

    async def exists_by_email(self, email: str) -> bool:
        """True if any user has this email (case-insensitive)."""
        stmt = select(func.count(UserModel.id)).where(
            func.lower(UserModel.email) == email.strip().lower()
        )
        return ((await self.session.execute(stmt)).scalar() or 0) > 0

    async def find_by_role(self, role: UserRole) -> list[User]:
        """All users with the given role, newest first."""
        stmt = (
            select(UserModel)
            .where(UserModel.role == role.value)
            .order_by(UserModel.created_at.desc(), UserModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return [_to_user(m) for m in result.scalars().all()]

    # =========================================================================
    # ADMIN FILTER QUERY
    # =========================================================================

    # Yo, this is THE admin list query. One LEFT OUTER JOIN so users without a provider
    # still show up, one page SELECT and one COUNT over the same WHERE clause. A
    # verification_status filter compares against the joined provider column, which is
    # NULL for non-providers, so those users drop out as soon as that filter is set.
    async def find_users_with_filters(
        self, user_filter: UserSearchFilter
    ) -> Page[tuple[User, Provider | None]]:
        """Filtered, sorted, paginated users joined with their provider."""
        page_request = user_filter.page_request
        conditions = _user_filter_conditions(user_filter)
        join_on = ProviderModel.user_id == UserModel.id

        count_stmt = (
            select(func.count(UserModel.id))
            .select_from(UserModel)
            .outerjoin(ProviderModel, join_on)
            .where(*conditions)
        )
        total = (await self.session.execute(count_stmt)).scalar() or 0

        sort_column = _USER_SORT_COLUMNS.get(page_request.sort_by, UserModel.created_at)
        if page_request.sort_direction == SortDirection.DESC:
            order_by = [sort_column.desc(), UserModel.id.desc()]
        else:
            order_by = [sort_column.asc(), UserModel.id.asc()]

        stmt = (
            select(UserModel, ProviderModel)
            .outerjoin(ProviderModel, join_on)
            .where(*conditions)
            .order_by(*order_by)
            .offset(page_request.offset)
            .limit(page_request.size)
        )
        result = await self.session.execute(stmt)
        items = [
            (_to_user(user_model), _to_provider(provider_model) if provider_model else None)
            for user_model, provider_model in result.all()
        ]
        return Page(
            items=items,
            total=total,
            page=page_request.page,
            size=page_request.size,
        )

    async def find_user_with_provider(
        self, user_id: int
    ) -> tuple[User, Provider | None] | None:
        """User plus provider (if any) by user id."""
        stmt = (
            select(UserModel, ProviderModel)
            .outerjoin(ProviderModel, ProviderModel.user_id == UserModel.id)
            .where(UserModel.id == user_id)
        )
        row = (await self.session.execute(stmt)).first()
        if row is None:
            return None
        user_model, provider_model = row
        return _to_user(user_model), (
            _to_provider(provider_model) if provider_model else None
        )

    async def search_users(self, query: str) -> list[tuple[User, Provider | None]]:
        """Free-text search across user and provider fields (incl. phone, tax id)."""
        pattern = _contains_pattern(query.strip())
        stmt = (
            select(UserModel, ProviderModel)
            .outerjoin(ProviderModel, ProviderModel.user_id == UserModel.id)
            .where(
                or_(
                    UserModel.first_name.ilike(pattern, escape="\\"),
                    UserModel.last_name.ilike(pattern, escape="\\"),
                    UserModel.username.ilike(pattern, escape="\\"),
                    UserModel.email.ilike(pattern, escape="\\"),
                    UserModel.phone.ilike(pattern, escape="\\"),
                    ProviderModel.business_name.ilike(pattern, escape="\\"),
                    ProviderModel.tax_id.ilike(pattern, escape="\\"),
                )
            )
            .order_by(UserModel.created_at.desc(), UserModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return [
            (_to_user(u), _to_provider(p) if p else None) for u, p in result.all()
        ]

    async def find_pending_providers(self) -> list[tuple[User, Provider]]:
        """PENDING providers, oldest application first."""
        stmt = (
            select(UserModel, ProviderModel)
            .join(ProviderModel, ProviderModel.user_id == UserModel.id)
            .where(ProviderModel.verification_status == VerificationStatus.PENDING.value)
            .order_by(ProviderModel.created_at.asc(), ProviderModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [(_to_user(u), _to_provider(p)) for u, p in result.all()]

    async def find_recent_users(self, cutoff: datetime) -> list[User]:
        """Users created at or after cutoff, newest first."""
        stmt = (
            select(UserModel)
            .where(UserModel.created_at >= _as_utc(cutoff))
            .order_by(UserModel.created_at.desc(), UserModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return [_to_user(m) for m in result.scalars().all()]

    async def get_top_providers_by_product_count(
        self, limit: int
    ) -> list[tuple[User, Provider, int]]:
        """Providers ranked by number of active products."""
        product_count = func.count(ProductModel.id).label("product_count")
        stmt = (
            select(UserModel, ProviderModel, product_count)
            .join(ProviderModel, ProviderModel.user_id == UserModel.id)
            .join(ProductModel, ProductModel.provider_id == ProviderModel.id)
            .where(ProductModel.is_active.is_(True))
            .group_by(UserModel.id, ProviderModel.id)
            .order_by(product_count.desc(), UserModel.id.asc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [
            (_to_user(u), _to_provider(p), int(count)) for u, p, count in result.all()
        ]

    # =========================================================================
    # STATISTICS
    # =========================================================================

    async def count_active_by_role(self, role: UserRole) -> int:
        stmt = select(func.count(UserModel.id)).where(
            UserModel.role == role.value, UserModel.is_active.is_(True)
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def count_users_registered_since(self, start: datetime) -> int:
        """Users with created_at >= start (no upper bound)."""
        stmt = select(func.count(UserModel.id)).where(
            UserModel.created_at >= _as_utc(start)
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def count_providers_verified_since(self, start: datetime) -> int:
        """VERIFIED providers with verification_date >= start (no upper bound)."""
        stmt = select(func.count(ProviderModel.id)).where(
            ProviderModel.verification_status == VerificationStatus.VERIFIED.value,
            ProviderModel.verification_date >= _as_utc(start),
        )
        return (await self.session.execute(stmt)).scalar() or 0

    # Hey future me - SUM over an empty table is NULL, not 0. The coalesce keeps every
    # counter an int so "no admins" reads as 0 instead of missing.
    async def get_user_statistics(self) -> UserStatistics:
        """Role and activity counters in one aggregate query."""

        def _sum_when(condition: ColumnElement[bool]) -> Any:
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            func.count(UserModel.id),
            _sum_when(UserModel.role == UserRole.ADMIN.value),
            _sum_when(UserModel.role == UserRole.PROVIDER.value),
            _sum_when(UserModel.role == UserRole.CUSTOMER.value),
            _sum_when(UserModel.is_active.is_(True)),
            _sum_when(UserModel.is_active.is_(False)),
        )
        row = (await self.session.execute(stmt)).one()
        return UserStatistics(
            total_users=int(row[0] or 0),
            total_admins=int(row[1] or 0),
            total_providers=int(row[2] or 0),
            total_customers=int(row[3] or 0),
            active_users=int(row[4] or 0),
            inactive_users=int(row[5] or 0),
        )

    async def get_provider_statistics(self) -> ProviderStatistics:
        """Verification counters in one aggregate query."""

        def _sum_status(status: VerificationStatus) -> Any:
            return func.coalesce(
                func.sum(
                    case((ProviderModel.verification_status == status.value, 1), else_=0)
                ),
                0,
            )

        stmt = select(
            _sum_status(VerificationStatus.VERIFIED),
            _sum_status(VerificationStatus.PENDING),
            _sum_status(VerificationStatus.REJECTED),
        )
        row = (await self.session.execute(stmt)).one()
        return ProviderStatistics(
            verified_providers=int(row[0] or 0),
            pending_providers=int(row[1] or 0),
            rejected_providers=int(row[2] or 0),
        )

    # =========================================================================
    # VALIDATION
    # =========================================================================

    async def can_user_be_deleted(self, user_id: int) -> bool:
        """True iff zero products trace to the user's provider."""
        stmt = (
            select(func.count(ProductModel.id))
            .join(ProviderModel, ProductModel.provider_id == ProviderModel.id)
            .where(ProviderModel.user_id == user_id)
        )
        count = (await self.session.execute(stmt)).scalar() or 0
        return count == 0

    async def is_username_available_for_update(
        self, username: str, exclude_user_id: int
    ) -> bool:
        """No user other than exclude_user_id has this username (case-insensitive)."""
        stmt = select(func.count(UserModel.id)).where(
            func.lower(UserModel.username) == username.lower(),
            UserModel.id != exclude_user_id,
        )
        return ((await self.session.execute(stmt)).scalar() or 0) == 0

    async def is_email_available_for_update(
        self, email: str, exclude_user_id: int
    ) -> bool:
        """No user other than exclude_user_id has this email (case-insensitive)."""
        stmt = select(func.count(UserModel.id)).where(
            func.lower(UserModel.email) == email.lower(),
            UserModel.id != exclude_user_id,
        )
        return ((await self.session.execute(stmt)).scalar() or 0) == 0


# =============================================================================
# PROVIDERS
# =============================================================================


class ProviderRepository(IProviderRepository):
    """SQLAlchemy implementation of Provider repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, provider: Provider) -> Provider:
        """Add a new provider and flush to get its id."""
        model = ProviderModel(
            user_id=provider.user_id,
            business_name=provider.business_name,
            tax_id=provider.tax_id,
            address=provider.address,
            city=provider.city,
            state=provider.state,
            postal_code=provider.postal_code,
            country=provider.country,
            verification_status=provider.verification_status.value,
            verification_date=provider.verification_date,
            commission_rate=provider.commission_rate,
            created_at=provider.created_at,
            updated_at=provider.updated_at,
        )
        self.session.add(model)
        await self.session.flush()
        provider.id = model.id
        return provider

    async def update(self, provider: Provider) -> None:
        """Update an existing provider."""
        model = await self.session.get(ProviderModel, provider.id)
        if model is None:
            raise EntityNotFoundException("Provider", provider.id)

        model.business_name = provider.business_name
        model.tax_id = provider.tax_id
        model.address = provider.address
        model.city = provider.city
        model.state = provider.state
        model.postal_code = provider.postal_code
        model.country = provider.country
        model.verification_status = provider.verification_status.value
        model.verification_date = provider.verification_date
        model.commission_rate = provider.commission_rate
        model.updated_at = provider.updated_at
        await self.session.flush()

    async def get_by_id(self, provider_id: int) -> Provider | None:
        model = await self.session.get(ProviderModel, provider_id)
        return _to_provider(model) if model else None

    async def get_by_user_id(self, user_id: int) -> Provider | None:
        stmt = select(ProviderModel).where(ProviderModel.user_id == user_id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return _to_provider(model) if model else None

    async def list_all(self) -> list[Provider]:
        stmt = select(ProviderModel).order_by(ProviderModel.created_at.desc())
        result = await self.session.execute(stmt)
        return [_to_provider(m) for m in result.scalars().all()]

    async def list_by_status(self, status: VerificationStatus) -> list[Provider]:
        stmt = (
            select(ProviderModel)
            .where(ProviderModel.verification_status == status.value)
            .order_by(ProviderModel.created_at.asc())
        )
        result = await self.session.execute(stmt)
        return [_to_provider(m) for m in result.scalars().all()]

    async def count_by_status(self, status: VerificationStatus) -> int:
        stmt = select(func.count(ProviderModel.id)).where(
            ProviderModel.verification_status == status.value
        )
        return (await self.session.execute(stmt)).scalar() or 0


class ProviderInvitationRepository:
    """SQLAlchemy repository for provider invitations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _to_entity(model: ProviderInvitationModel) -> ProviderInvitation:
        return ProviderInvitation(
            id=model.id,
            email=model.email,
            business_name=model.business_name,
            first_name=model.first_name,
            last_name=model.last_name,
            phone=model.phone,
            invitation_token=model.invitation_token,
            expires_at=ensure_utc_aware(model.expires_at),
            status=InvitationStatus(model.status),
            invited_by=model.invited_by,
            completed_by=model.completed_by,
            message=model.message,
            completed_at=ensure_utc_aware_or_none(model.completed_at),
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    async def add(self, invitation: ProviderInvitation) -> ProviderInvitation:
        model = ProviderInvitationModel(
            email=invitation.email,
            business_name=invitation.business_name,
            first_name=invitation.first_name,
            last_name=invitation.last_name,
            phone=invitation.phone,
            invitation_token=invitation.invitation_token,
            expires_at=invitation.expires_at,
            status=invitation.status.value,
            invited_by=invitation.invited_by,
            message=invitation.message,
            created_at=invitation.created_at,
            updated_at=invitation.updated_at,
        )
        self.session.add(model)
        await self.session.flush()
        invitation.id = model.id
        return invitation

    async def update(self, invitation: ProviderInvitation) -> None:
        model = await self.session.get(ProviderInvitationModel, invitation.id)
        if model is None:
            raise EntityNotFoundException("ProviderInvitation", invitation.id)
        model.status = invitation.status.value
        model.completed_by = invitation.completed_by
        model.completed_at = invitation.completed_at
        model.updated_at = invitation.updated_at
        await self.session.flush()

    async def get_by_token(self, token: str) -> ProviderInvitation | None:
        stmt = select(ProviderInvitationModel).where(
            ProviderInvitationModel.invitation_token == token
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_by_status(self, status: InvitationStatus) -> list[ProviderInvitation]:
        stmt = (
            select(ProviderInvitationModel)
            .where(ProviderInvitationModel.status == status.value)
            .order_by(ProviderInvitationModel.created_at.desc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


# =============================================================================
# SESSIONS & PASSWORD RESET
# =============================================================================


class UserSessionRepository(IUserSessionRepository):
    """SQLAlchemy repository for login sessions."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, user_session: UserSession) -> UserSession:
        model = UserSessionModel(
            user_id=user_session.user_id,
            session_token=user_session.session_token,
            refresh_token=user_session.refresh_token,
            expires_at=user_session.expires_at,
            is_active=user_session.is_active,
            ip_address=user_session.ip_address,
            user_agent=user_session.user_agent,
            created_at=user_session.created_at,
            updated_at=user_session.updated_at,
        )
        self.session.add(model)
        await self.session.flush()
        user_session.id = model.id
        return user_session

    async def get_by_token(self, session_token: str) -> UserSession | None:
        stmt = select(UserSessionModel).where(
            UserSessionModel.session_token == session_token
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if model is None:
            return None
        return UserSession(
            id=model.id,
            user_id=model.user_id,
            session_token=model.session_token,
            refresh_token=model.refresh_token,
            expires_at=ensure_utc_aware(model.expires_at),
            is_active=model.is_active,
            ip_address=model.ip_address,
            user_agent=model.user_agent,
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    # Hey future me - logout is a state flip on the row, not a delete. The very next
    # get_by_token in any request sees is_active=False.
    async def deactivate_session(self, session_token: str) -> bool:
        stmt = (
            update(UserSessionModel)
            .where(
                UserSessionModel.session_token == session_token,
                UserSessionModel.is_active.is_(True),
            )
            .values(is_active=False, updated_at=datetime.now(UTC))
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0  # type: ignore[attr-defined]

    async def deactivate_all_user_sessions(self, user_id: int) -> int:
        stmt = (
            update(UserSessionModel)
            .where(
                UserSessionModel.user_id == user_id,
                UserSessionModel.is_active.is_(True),
            )
            .values(is_active=False, updated_at=datetime.now(UTC))
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def count_active_for_user(self, user_id: int) -> int:
        stmt = select(func.count(UserSessionModel.id)).where(
            UserSessionModel.user_id == user_id,
            UserSessionModel.is_active.is_(True),
        )
        return (await self.session.execute(stmt)).scalar() or 0


class PasswordResetTokenRepository:
    """SQLAlchemy repository for password reset tokens."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    async def add(self, token: PasswordResetToken) -> PasswordResetToken:
        model = PasswordResetTokenModel(
            user_id=token.user_id,
            token=token.token,
            expires_at=token.expires_at,
            used=token.used,
            created_at=token.created_at,
        )
        self.session.add(model)
        await self.session.flush()
        token.id = model.id
        return token

    async def get_by_token(self, token: str) -> PasswordResetToken | None:
        stmt = select(PasswordResetTokenModel).where(
            PasswordResetTokenModel.token == token
        )
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if model is None:
            return None
        return PasswordResetToken(
            id=model.id,
            user_id=model.user_id,
            token=model.token,
            expires_at=ensure_utc_aware(model.expires_at),
            used=model.used,
            created_at=ensure_utc_aware(model.created_at),
        )

    async def mark_used(self, token_id: int) -> None:
        await self.session.execute(
            update(PasswordResetTokenModel)
            .where(PasswordResetTokenModel.id == token_id)
            .values(used=True)
        )

    async def invalidate_user_tokens(self, user_id: int) -> int:
        """Mark every unused token of a user as used."""
        result = await self.session.execute(
            update(PasswordResetTokenModel)
            .where(
                PasswordResetTokenModel.user_id == user_id,
                PasswordResetTokenModel.used.is_(False),
            )
            .values(used=True)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]

    async def delete_expired(self, now: datetime) -> int:
        """Mark expired tokens as used; returns number of rows touched."""
        result = await self.session.execute(
            update(PasswordResetTokenModel)
            .where(
                PasswordResetTokenModel.expires_at < _as_utc(now),
                PasswordResetTokenModel.used.is_(False),
            )
            .values(used=True)
        )
        return result.rowcount or 0  # type: ignore[attr-defined]


# =============================================================================
# CATALOG (artists, genres, categories, albums, songs)
# =============================================================================


# Yo, the catalog tables have no enums and their column names match the dataclass
# fields one to one, so one generic base covers add/get/update/list for all five.
class _CatalogRepository(Generic[EntityT, ModelT]):
    """Generic repository for plain catalog entities."""

    entity_cls: type[Any]
    model_cls: type[Any]
    entity_name: str
    search_column: str = "name"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    def _to_entity(self, model: Any) -> EntityT:
        values: dict[str, Any] = {}
        for f in dataclasses.fields(self.entity_cls):
            value = getattr(model, f.name)
            if isinstance(value, datetime):
                value = ensure_utc_aware(value)
            values[f.name] = value
        return self.entity_cls(**values)  # type: ignore[no-any-return]

    def _column_values(self, entity: EntityT) -> dict[str, Any]:
        return {
            f.name: _enum_value(getattr(entity, f.name))
            for f in dataclasses.fields(self.entity_cls)  # type: ignore[arg-type]
            if f.name != "id"
        }

    def _active_filter(self, active_only: bool) -> list[ColumnElement[bool]]:
        return [self.model_cls.is_active.is_(True)] if active_only else []

    async def add(self, entity: EntityT) -> EntityT:
        model = self.model_cls(**self._column_values(entity))
        self.session.add(model)
        await self.session.flush()
        entity.id = model.id  # type: ignore[attr-defined]
        return entity

    async def update(self, entity: EntityT) -> None:
        entity_id = entity.id  # type: ignore[attr-defined]
        model = await self.session.get(self.model_cls, entity_id)
        if model is None:
            raise EntityNotFoundException(self.entity_name, entity_id)
        for key, value in self._column_values(entity).items():
            if key == "created_at":
                continue
            setattr(model, key, value)
        await self.session.flush()

    async def get_by_id(self, entity_id: int) -> EntityT | None:
        model = await self.session.get(self.model_cls, entity_id)
        return self._to_entity(model) if model else None

    async def list_page(
        self, page_request: PageRequest, active_only: bool = True
    ) -> Page[EntityT]:
        """Page ordered by the search column (name/title) ascending."""
        conditions = self._active_filter(active_only)
        total = (
            await self.session.execute(
                select(func.count(self.model_cls.id)).where(*conditions)
            )
        ).scalar() or 0
        order_column = getattr(self.model_cls, self.search_column)
        stmt = (
            select(self.model_cls)
            .where(*conditions)
            .order_by(order_column.asc(), self.model_cls.id.asc())
            .offset(page_request.offset)
            .limit(page_request.size)
        )
        result = await self.session.execute(stmt)
        return Page(
            items=[self._to_entity(m) for m in result.scalars().all()],
            total=total,
            page=page_request.page,
            size=page_request.size,
        )

    async def search(self, text: str, active_only: bool = True) -> list[EntityT]:
        """Case-insensitive substring match on the search column."""
        column = getattr(self.model_cls, self.search_column)
        stmt = (
            select(self.model_cls)
            .where(column.ilike(_contains_pattern(text.strip()), escape="\\"))
            .where(*self._active_filter(active_only))
            .order_by(column.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def exists_by_name(self, name: str, exclude_id: int | None = None) -> bool:
        """Case-insensitive equality on the search column."""
        column = getattr(self.model_cls, self.search_column)
        stmt = select(func.count(self.model_cls.id)).where(
            func.lower(column) == name.strip().lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(self.model_cls.id != exclude_id)
        return ((await self.session.execute(stmt)).scalar() or 0) > 0

    async def count(self, active_only: bool = False) -> int:
        stmt = select(func.count(self.model_cls.id)).where(
            *self._active_filter(active_only)
        )
        return (await self.session.execute(stmt)).scalar() or 0


class ArtistRepository(_CatalogRepository[Artist, ArtistModel]):
    """SQLAlchemy implementation of Artist repository."""

    entity_cls = Artist
    model_cls = ArtistModel
    entity_name = "Artist"

    async def list_by_country(self, country: str) -> list[Artist]:
        stmt = (
            select(ArtistModel)
            .where(func.lower(ArtistModel.country) == country.strip().lower())
            .where(ArtistModel.is_active.is_(True))
            .order_by(ArtistModel.name.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


class GenreRepository(_CatalogRepository[Genre, GenreModel]):
    """SQLAlchemy implementation of Genre repository."""

    entity_cls = Genre
    model_cls = GenreModel
    entity_name = "Genre"


class CategoryRepository(_CatalogRepository[Category, CategoryModel]):
    """SQLAlchemy implementation of Category repository."""

    entity_cls = Category
    model_cls = CategoryModel
    entity_name = "Category"


class AlbumRepository(_CatalogRepository[Album, AlbumModel]):
    """SQLAlchemy implementation of Album repository."""

    entity_cls = Album
    model_cls = AlbumModel
    entity_name = "Album"
    search_column = "title"

    async def list_by_artist(self, artist_id: int) -> list[Album]:
        stmt = (
            select(AlbumModel)
            .where(AlbumModel.artist_id == artist_id, AlbumModel.is_active.is_(True))
            .order_by(AlbumModel.release_year.asc(), AlbumModel.title.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def list_by_genre(self, genre_id: int) -> list[Album]:
        stmt = (
            select(AlbumModel)
            .where(AlbumModel.genre_id == genre_id, AlbumModel.is_active.is_(True))
            .order_by(AlbumModel.title.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count_active_by_artist(self, artist_id: int) -> int:
        stmt = select(func.count(AlbumModel.id)).where(
            AlbumModel.artist_id == artist_id, AlbumModel.is_active.is_(True)
        )
        return (await self.session.execute(stmt)).scalar() or 0


class SongRepository(_CatalogRepository[Song, SongModel]):
    """SQLAlchemy implementation of Song repository."""

    entity_cls = Song
    model_cls = SongModel
    entity_name = "Song"
    search_column = "title"

    async def list_by_album(self, album_id: int) -> list[Song]:
        stmt = (
            select(SongModel)
            .where(SongModel.album_id == album_id, SongModel.is_active.is_(True))
            .order_by(SongModel.track_number.asc(), SongModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


# =============================================================================
# PRODUCTS
# =============================================================================


@dataclasses.dataclass
class ProductFilter:
    """Optional product list criteria; None means not applied."""

    provider_id: int | None = None
    album_id: int | None = None
    category_id: int | None = None
    product_type: ProductType | None = None
    featured: bool | None = None
    in_stock: bool | None = None
    active_only: bool = True


class ProductRepository:
    """SQLAlchemy implementation of Product repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _columns(product: Product) -> dict[str, Any]:
        return {
            "album_id": product.album_id,
            "provider_id": product.provider_id,
            "category_id": product.category_id,
            "sku": product.sku,
            "product_type": product.product_type.value,
            "condition_type": product.condition_type.value,
            "price": product.price,
            "stock_quantity": product.stock_quantity,
            "low_stock_threshold": product.low_stock_threshold,
            "vinyl_size": product.vinyl_size.value if product.vinyl_size else None,
            "vinyl_speed": product.vinyl_speed.value if product.vinyl_speed else None,
            "weight_grams": product.weight_grams,
            "file_format": product.file_format,
            "file_size_mb": product.file_size_mb,
            "is_active": product.is_active,
            "featured": product.featured,
            "updated_at": product.updated_at,
        }

    async def add(self, product: Product) -> Product:
        model = ProductModel(created_at=product.created_at, **self._columns(product))
        self.session.add(model)
        await self.session.flush()
        product.id = model.id
        return product

    async def update(self, product: Product) -> None:
        model = await self.session.get(ProductModel, product.id)
        if model is None:
            raise EntityNotFoundException("Product", product.id)
        for key, value in self._columns(product).items():
            setattr(model, key, value)
        await self.session.flush()

    async def get_by_id(self, product_id: int) -> Product | None:
        model = await self.session.get(ProductModel, product_id)
        return _to_product(model) if model else None

    async def get_by_sku(self, sku: str) -> Product | None:
        stmt = select(ProductModel).where(ProductModel.sku == sku)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return _to_product(model) if model else None

    async def exists_by_sku(self, sku: str, exclude_id: int | None = None) -> bool:
        stmt = select(func.count(ProductModel.id)).where(ProductModel.sku == sku)
        if exclude_id is not None:
            stmt = stmt.where(ProductModel.id != exclude_id)
        return ((await self.session.execute(stmt)).scalar() or 0) > 0

    async def list_filtered(
        self, product_filter: ProductFilter, page_request: PageRequest
    ) -> Page[Product]:
        """Products matching every non-None criterion, newest first."""
        conditions: list[ColumnElement[bool]] = []
        if product_filter.active_only:
            conditions.append(ProductModel.is_active.is_(True))
        if product_filter.provider_id is not None:
            conditions.append(ProductModel.provider_id == product_filter.provider_id)
        if product_filter.album_id is not None:
            conditions.append(ProductModel.album_id == product_filter.album_id)
        if product_filter.category_id is not None:
            conditions.append(ProductModel.category_id == product_filter.category_id)
        if product_filter.product_type is not None:
            conditions.append(
                ProductModel.product_type == product_filter.product_type.value
            )
        if product_filter.featured is not None:
            conditions.append(ProductModel.featured.is_(product_filter.featured))
        if product_filter.in_stock is True:
            conditions.append(
                or_(
                    ProductModel.product_type == ProductType.DIGITAL.value,
                    ProductModel.stock_quantity > 0,
                )
            )
        elif product_filter.in_stock is False:
            conditions.append(
                (ProductModel.product_type == ProductType.PHYSICAL.value)
                & (ProductModel.stock_quantity <= 0)
            )

        total = (
            await self.session.execute(
                select(func.count(ProductModel.id)).where(*conditions)
            )
        ).scalar() or 0
        stmt = (
            select(ProductModel)
            .where(*conditions)
            .order_by(ProductModel.created_at.desc(), ProductModel.id.desc())
            .offset(page_request.offset)
            .limit(page_request.size)
        )
        result = await self.session.execute(stmt)
        return Page(
            items=[_to_product(m) for m in result.scalars().all()],
            total=total,
            page=page_request.page,
            size=page_request.size,
        )

    async def list_low_stock(self, threshold: int | None = None) -> list[Product]:
        """Active physical products at or below threshold (or their own threshold)."""
        limit_expr = (
            threshold if threshold is not None else ProductModel.low_stock_threshold
        )
        stmt = (
            select(ProductModel)
            .where(
                ProductModel.is_active.is_(True),
                ProductModel.product_type == ProductType.PHYSICAL.value,
                ProductModel.stock_quantity <= limit_expr,
            )
            .order_by(ProductModel.stock_quantity.asc(), ProductModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [_to_product(m) for m in result.scalars().all()]

    async def count_active_by_provider(self, provider_id: int) -> int:
        stmt = select(func.count(ProductModel.id)).where(
            ProductModel.provider_id == provider_id, ProductModel.is_active.is_(True)
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def get_statistics(self) -> ProductStatistics:
        """Product counters in one aggregate query."""

        def _sum_when(condition: ColumnElement[bool]) -> Any:
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        in_stock = or_(
            ProductModel.product_type == ProductType.DIGITAL.value,
            ProductModel.stock_quantity > 0,
        )
        stmt = select(
            func.count(ProductModel.id),
            _sum_when(ProductModel.is_active.is_(True)),
            _sum_when(ProductModel.product_type == ProductType.DIGITAL.value),
            _sum_when(ProductModel.product_type == ProductType.PHYSICAL.value),
            _sum_when(in_stock),
        )
        row = (await self.session.execute(stmt)).one()
        total = int(row[0] or 0)
        in_stock_count = int(row[4] or 0)
        return ProductStatistics(
            total_products=total,
            active_products=int(row[1] or 0),
            digital_products=int(row[2] or 0),
            physical_products=int(row[3] or 0),
            in_stock_products=in_stock_count,
            out_of_stock_products=total - in_stock_count,
        )

    async def list_by_price_range(
        self, min_price: Decimal, max_price: Decimal
    ) -> list[Product]:
        """Active products priced within [min_price, max_price], cheapest first."""
        stmt = (
            select(ProductModel)
            .where(
                ProductModel.is_active.is_(True),
                ProductModel.price.between(min_price, max_price),
            )
            .order_by(ProductModel.price.asc(), ProductModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [_to_product(m) for m in result.scalars().all()]

    async def list_by_album(
        self, album_id: int, active_only: bool = True
    ) -> list[Product]:
        """Every format of an album, grouped by type then cheapest first."""
        stmt = select(ProductModel).where(ProductModel.album_id == album_id)
        if active_only:
            stmt = stmt.where(ProductModel.is_active.is_(True))
        stmt = stmt.order_by(
            ProductModel.product_type.asc(), ProductModel.price.asc(), ProductModel.id
        )
        result = await self.session.execute(stmt)
        return [_to_product(m) for m in result.scalars().all()]

    async def list_alternative_formats(self, product: Product) -> list[Product]:
        """Active products of the same album in the other format."""
        stmt = (
            select(ProductModel)
            .where(
                ProductModel.album_id == product.album_id,
                ProductModel.product_type != product.product_type.value,
                ProductModel.is_active.is_(True),
            )
            .order_by(ProductModel.price.asc(), ProductModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [_to_product(m) for m in result.scalars().all()]

    # Listen up, "counterpart" is an active product of the same album in the other
    # format. Correlated EXISTS so the outer query stays one row per product.
    async def list_with_counterpart(
        self, product_type: ProductType, counterpart_type: ProductType
    ) -> list[Product]:
        """Active products of product_type whose album also sells counterpart_type."""
        other = aliased(ProductModel)
        counterpart = (
            select(other.id)
            .where(
                other.album_id == ProductModel.album_id,
                other.product_type == counterpart_type.value,
                other.is_active.is_(True),
            )
            .exists()
        )
        stmt = (
            select(ProductModel)
            .where(
                ProductModel.product_type == product_type.value,
                ProductModel.is_active.is_(True),
                counterpart,
            )
            .order_by(ProductModel.album_id.asc(), ProductModel.price.asc())
        )
        result = await self.session.execute(stmt)
        return [_to_product(m) for m in result.scalars().all()]

    # Hey future me - this is an atomic "UPDATE ... WHERE stock >= qty" so two orders
    # can't both take the last copy. Returns False when there isn't enough stock.
    async def decrement_stock(self, product_id: int, quantity: int) -> bool:
        stmt = (
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.stock_quantity >= quantity,
            )
            .values(stock_quantity=ProductModel.stock_quantity - quantity)
        )
        result = await self.session.execute(stmt)
        return (result.rowcount or 0) > 0  # type: ignore[attr-defined]

    async def increment_stock(self, product_id: int, quantity: int) -> None:
        await self.session.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock_quantity=ProductModel.stock_quantity + quantity)
        )


# =============================================================================
# ORDERS
# =============================================================================


def _to_order_item(model: OrderItemModel) -> OrderItem:
    return OrderItem(
        id=model.id,
        order_id=model.order_id,
        product_id=model.product_id,
        provider_id=model.provider_id,
        quantity=model.quantity,
        unit_price=Decimal(model.unit_price),
        status=OrderItemStatus(model.status),
        rejection_reason=model.rejection_reason,
        shipped_at=ensure_utc_aware_or_none(model.shipped_at),
        delivered_at=ensure_utc_aware_or_none(model.delivered_at),
    )


class OrderRepository:
    """SQLAlchemy implementation of Order repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _to_entity(model: OrderModel) -> Order:
        return Order(
            id=model.id,
            user_id=model.user_id,
            status=OrderStatus(model.status),
            shipping_address=model.shipping_address,
            notes=model.notes,
            items=[_to_order_item(item) for item in model.items],
            shipped_at=ensure_utc_aware_or_none(model.shipped_at),
            delivered_at=ensure_utc_aware_or_none(model.delivered_at),
            created_at=ensure_utc_aware(model.created_at),
            updated_at=ensure_utc_aware(model.updated_at),
        )

    def _base_query(self) -> Any:
        return select(OrderModel).options(selectinload(OrderModel.items))

    async def add(self, order: Order) -> Order:
        model = OrderModel(
            user_id=order.user_id,
            status=order.status.value,
            total_amount=order.total_amount,
            shipping_address=order.shipping_address,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            items=[
                OrderItemModel(
                    product_id=item.product_id,
                    provider_id=item.provider_id,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    subtotal=item.subtotal,
                    status=item.status.value,
                )
                for item in order.items
            ],
        )
        self.session.add(model)
        await self.session.flush()
        order.id = model.id
        for item, item_model in zip(order.items, model.items, strict=True):
            item.id = item_model.id
            item.order_id = model.id
        return order

    # Listen, this writes the header and every line back. Lines are matched by id;
    # adding or removing lines after checkout is not supported.
    async def update(self, order: Order) -> None:
        stmt = self._base_query().where(OrderModel.id == order.id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        if model is None:
            raise EntityNotFoundException("Order", order.id)
        model.status = order.status.value
        model.total_amount = order.total_amount
        model.shipped_at = order.shipped_at
        model.delivered_at = order.delivered_at
        model.updated_at = order.updated_at
        items_by_id = {item.id: item for item in order.items}
        for item_model in model.items:
            item = items_by_id.get(item_model.id)
            if item is None:
                continue
            item_model.status = item.status.value
            item_model.rejection_reason = item.rejection_reason
            item_model.shipped_at = item.shipped_at
            item_model.delivered_at = item.delivered_at
        await self.session.flush()

    async def get_by_id(self, order_id: int) -> Order | None:
        stmt = self._base_query().where(OrderModel.id == order_id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_item_id(self, item_id: int) -> Order | None:
        """Order owning the given line."""
        order_id = select(OrderItemModel.order_id).where(OrderItemModel.id == item_id)
        stmt = self._base_query().where(OrderModel.id.in_(order_id))
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_by_user(self, user_id: int) -> list[Order]:
        stmt = (
            self._base_query()
            .where(OrderModel.user_id == user_id)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def list_by_provider(
        self, provider_id: int, item_status: OrderItemStatus | None = None
    ) -> list[Order]:
        """Orders containing at least one line of the provider.

        With ``item_status`` only orders where one of the provider's own lines is
        in that state are returned.
        """
        order_ids = select(OrderItemModel.order_id).where(
            OrderItemModel.provider_id == provider_id
        )
        if item_status is not None:
            order_ids = order_ids.where(OrderItemModel.status == item_status.value)
        stmt = (
            self._base_query()
            .where(OrderModel.id.in_(order_ids))
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]


class OrderReviewRepository:
    """SQLAlchemy implementation of OrderReview repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _to_entity(model: OrderReviewModel) -> OrderReview:
        return OrderReview(
            id=model.id,
            order_id=model.order_id,
            user_id=model.user_id,
            rating=model.rating,
            comment=model.comment,
            created_at=ensure_utc_aware(model.created_at),
        )

    async def add(self, review: OrderReview) -> OrderReview:
        model = OrderReviewModel(
            order_id=review.order_id,
            user_id=review.user_id,
            rating=review.rating,
            comment=review.comment,
            created_at=review.created_at,
        )
        self.session.add(model)
        await self.session.flush()
        review.id = model.id
        return review

    async def get_by_order_id(self, order_id: int) -> OrderReview | None:
        stmt = select(OrderReviewModel).where(OrderReviewModel.order_id == order_id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def exists_for_order(self, order_id: int) -> bool:
        stmt = select(func.count(OrderReviewModel.id)).where(
            OrderReviewModel.order_id == order_id
        )
        return ((await self.session.execute(stmt)).scalar() or 0) > 0


# =============================================================================
# PRODUCT IMAGES
# =============================================================================


class ProductImageRepository:
    """SQLAlchemy implementation of ProductImage repository."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with session."""
        self.session = session

    @staticmethod
    def _to_entity(model: ProductImageModel) -> ProductImage:
        return ProductImage(
            id=model.id,
            product_id=model.product_id,
            image_url=model.image_url,
            alt_text=model.alt_text,
            is_primary=model.is_primary,
            display_order=model.display_order,
            created_at=ensure_utc_aware(model.created_at),
        )

    async def add(self, image: ProductImage) -> ProductImage:
        model = ProductImageModel(
            product_id=image.product_id,
            image_url=image.image_url,
            alt_text=image.alt_text,
            is_primary=image.is_primary,
            display_order=image.display_order,
            created_at=image.created_at,
        )
        self.session.add(model)
        await self.session.flush()
        image.id = model.id
        return image

    # Listen, set_primary expires is_primary on loaded rows, so reads go through a
    # SELECT (which reloads them) instead of session.get.
    async def get_by_id(self, image_id: int) -> ProductImage | None:
        stmt = select(ProductImageModel).where(ProductImageModel.id == image_id)
        model = (await self.session.execute(stmt)).scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_by_product(self, product_id: int) -> list[ProductImage]:
        stmt = (
            select(ProductImageModel)
            .where(ProductImageModel.product_id == product_id)
            .order_by(ProductImageModel.display_order.asc(), ProductImageModel.id.asc())
        )
        result = await self.session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count_by_product(self, product_id: int) -> int:
        stmt = select(func.count(ProductImageModel.id)).where(
            ProductImageModel.product_id == product_id
        )
        return (await self.session.execute(stmt)).scalar() or 0

    async def set_primary(self, product_id: int, image_id: int) -> None:
        """Make image_id the only primary image of the product."""
        await self.session.execute(
            update(ProductImageModel)
            .where(ProductImageModel.product_id == product_id)
            .values(
                is_primary=case((ProductImageModel.id == image_id, True), else_=False)
            )
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()

    async def delete(self, image_id: int) -> None:
        result = await self.session.execute(
            delete(ProductImageModel).where(ProductImageModel.id == image_id)
        )
        if not result.rowcount:  # type: ignore[attr-defined]
            raise EntityNotFoundException("ProductImage", image_id)
