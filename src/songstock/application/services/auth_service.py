"""Authentication service: registration, login and session tokens.

Hey future me - sessions are opaque random tokens stored in user_sessions, not
JWTs. Validation is a row lookup, so logout/password-reset take effect on the
very next request. Every failure a client could probe (unknown user, wrong
password, inactive account) raises the same AuthenticationError message.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.config import AuthSettings
from songstock.domain.entities import (
    InvitationStatus,
    Provider,
    User,
    UserRole,
    UserSession,
    utc_now,
)
from songstock.domain.exceptions import (
    AuthenticationError,
    DuplicateEntityException,
    ValidationException,
)
from songstock.infrastructure.persistence.repositories import (
    ProviderInvitationRepository,
    ProviderRepository,
    UserRepository,
    UserSessionRepository,
)
from songstock.infrastructure.security import PasswordHasher, generate_token

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid username/email or password"


@dataclass
class RegistrationData:
    """Fields common to every self-service registration."""

    username: str
    email: str
    password: str
    first_name: str
    last_name: str
    phone: str | None = None


@dataclass
class ProviderRegistrationData(RegistrationData):
    """Registration of a seller account."""

    business_name: str = ""
    tax_id: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    invitation_token: str | None = None


@dataclass
class LoginResult:
    user: User
    session: UserSession


class AuthService:
    """Registration, login/logout and session validation."""

    def __init__(self, session: AsyncSession, settings: AuthSettings) -> None:
        self._settings = settings
        self._users = UserRepository(session)
        self._providers = ProviderRepository(session)
        self._invitations = ProviderInvitationRepository(session)
        self._sessions = UserSessionRepository(session)
        self._hasher = PasswordHasher(settings.password_hash_iterations)

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    async def _create_user(self, data: RegistrationData, role: UserRole) -> User:
        username = data.username.strip().lower()
        email = data.email.strip().lower()
        if not username or not email:
            raise ValidationException("Username and email are required")
        if not data.first_name.strip() or not data.last_name.strip():
            raise ValidationException("First and last name are required")
        if len(data.password) < self._settings.min_password_length:
            raise ValidationException(
                f"Password must be at least {self._settings.min_password_length} characters"
            )
        if await self._users.exists_by_username(username):
            raise DuplicateEntityException("User", "username", username)
        if await self._users.exists_by_email(email):
            raise DuplicateEntityException("User", "email", email)

        user = User(
            username=username,
            email=email,
            first_name=data.first_name.strip(),
            last_name=data.last_name.strip(),
            phone=data.phone.strip() if data.phone else None,
            password_hash=self._hasher.hash(data.password),
            role=role,
        )
        return await self._users.add(user)

    async def register_customer(self, data: RegistrationData) -> User:
        user = await self._create_user(data, UserRole.CUSTOMER)
        logger.info("Customer registered: %s", user.username, extra={"user_id": user.id})
        return user

    async def register_provider(
        self, data: ProviderRegistrationData
    ) -> tuple[User, Provider]:
        """Create a PROVIDER user plus a PENDING provider record.

        When an invitation token is given it must be usable; it is completed by
        the new user.
        """
        invitation = None
        if data.invitation_token:
            invitation = await self._invitations.get_by_token(data.invitation_token)
            if invitation is None or not invitation.is_usable():
                raise ValidationException("Invitation is invalid or has expired")

        business_name = (data.business_name or "").strip()
        if not business_name and invitation is not None:
            business_name = invitation.business_name
        if not business_name:
            raise ValidationException("Business name is required")

        user = await self._create_user(data, UserRole.PROVIDER)
        assert user.id is not None
        provider = Provider(
            user_id=user.id,
            business_name=business_name,
            tax_id=data.tax_id,
            address=data.address,
            city=data.city,
            state=data.state,
            postal_code=data.postal_code,
        )
        if data.country:
            provider.country = data.country
        provider = await self._providers.add(provider)

        if invitation is not None:
            invitation.status = InvitationStatus.COMPLETED
            invitation.completed_by = user.id
            invitation.completed_at = utc_now()
            invitation.updated_at = utc_now()
            await self._invitations.update(invitation)

        logger.info(
            "Provider registered: %s (%s)",
            user.username,
            business_name,
            extra={"user_id": user.id, "provider_id": provider.id},
        )
        return user, provider

    # =========================================================================
    # SESSIONS
    # =========================================================================

    async def login(
        self,
        username_or_email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> LoginResult:
        user = await self._users.get_by_username_or_email(username_or_email)
        if user is None or not self._hasher.verify(password, user.password_hash):
            logger.info("Failed login for %r", username_or_email)
            raise AuthenticationError(INVALID_CREDENTIALS)
        if not user.is_active:
            logger.info("Login attempt for inactive user %s", user.id)
            raise AuthenticationError("Account is deactivated")

        assert user.id is not None
        session = UserSession(
            user_id=user.id,
            session_token=generate_token(),
            refresh_token=generate_token(),
            expires_at=utc_now() + timedelta(seconds=self._settings.session_ttl_seconds),
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        await self._sessions.add(session)
        logger.info("User %s logged in", user.id, extra={"user_id": user.id})
        return LoginResult(user=user, session=session)

    async def validate_token(self, session_token: str) -> User:
        """Return the user of an active, unexpired session; else AuthenticationError."""
        session = await self._sessions.get_by_token(session_token)
        if session is None or not session.is_valid():
            raise AuthenticationError("Invalid or expired session")
        user = await self._users.get_by_id(session.user_id)
        if user is None or not user.is_active:
            raise AuthenticationError("Invalid or expired session")
        return user

    async def logout(self, session_token: str) -> bool:
        ended = await self._sessions.deactivate_session(session_token)
        logger.debug("Logout (session ended: %s)", ended)
        return ended

    async def logout_all_sessions(self, user_id: int) -> int:
        count = await self._sessions.deactivate_all_user_sessions(user_id)
        logger.info("Ended %d sessions of user %s", count, user_id)
        return count

    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> None:
        if not self._hasher.verify(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")
        if len(new_password) < self._settings.min_password_length:
            raise ValidationException(
                f"Password must be at least {self._settings.min_password_length} characters"
            )
        user.password_hash = self._hasher.hash(new_password)
        user.touch()
        await self._users.update(user)
