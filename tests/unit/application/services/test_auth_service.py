"""Tests for AuthService: registration, login, sessions and password changes."""

from datetime import UTC, datetime, timedelta

import pytest

from songstock.application.services.auth_service import (
    INVALID_CREDENTIALS,
    AuthService,
    ProviderRegistrationData,
    RegistrationData,
)
from songstock.application.services.provider_service import ProviderService
from songstock.config import AuthSettings
from songstock.domain.entities import InvitationStatus, UserRole, VerificationStatus
from songstock.domain.exceptions import (
    AuthenticationError,
    DuplicateEntityException,
    ValidationException,
)
from songstock.infrastructure.persistence.repositories import ProviderInvitationRepository

from conftest import TEST_HASH_ITERATIONS, TEST_PASSWORD


@pytest.fixture
def auth_settings() -> AuthSettings:
    return AuthSettings(password_hash_iterations=TEST_HASH_ITERATIONS)


@pytest.fixture
def service(session, auth_settings) -> AuthService:
    return AuthService(session, auth_settings)


def _registration(**overrides) -> RegistrationData:
    values = {
        "username": "Nina",
        "email": "Nina@Example.com",
        "password": "longenough",
        "first_name": "Nina",
        "last_name": "Simone",
    }
    values.update(overrides)
    return RegistrationData(**values)


class TestRegistration:
    async def test_customer_registration_normalizes_identity(self, service) -> None:
        user = await service.register_customer(_registration())
        assert user.id is not None
        assert user.username == "nina"
        assert user.email == "nina@example.com"
        assert user.role == UserRole.CUSTOMER
        assert user.password_hash != "longenough"

    async def test_duplicate_username_is_case_insensitive(self, service, user_factory) -> None:
        await user_factory("nina")
        with pytest.raises(DuplicateEntityException, match="username"):
            await service.register_customer(_registration(email="other@example.com"))

    async def test_duplicate_email(self, service, user_factory) -> None:
        await user_factory("someone", email="nina@example.com")
        with pytest.raises(DuplicateEntityException, match="email"):
            await service.register_customer(_registration())

    async def test_short_password(self, service) -> None:
        with pytest.raises(ValidationException, match="at least 6"):
            await service.register_customer(_registration(password="abc"))

    async def test_blank_name(self, service) -> None:
        with pytest.raises(ValidationException):
            await service.register_customer(_registration(first_name="  "))

    async def test_provider_registration_creates_pending_provider(self, service) -> None:
        user, provider = await service.register_provider(
            ProviderRegistrationData(
                username="shop",
                email="shop@example.com",
                password="longenough",
                first_name="Shop",
                last_name="Owner",
                business_name="Discos Shop",
            )
        )
        assert user.role == UserRole.PROVIDER
        assert provider.user_id == user.id
        assert provider.verification_status == VerificationStatus.PENDING
        assert provider.country == "Colombia"

    async def test_provider_registration_requires_business_name(self, service) -> None:
        with pytest.raises(ValidationException, match="Business name"):
            await service.register_provider(
                ProviderRegistrationData(
                    username="shop",
                    email="shop@example.com",
                    password="longenough",
                    first_name="Shop",
                    last_name="Owner",
                )
            )

    async def test_invitation_is_completed_on_registration(
        self, service, session, auth_settings, user_factory
    ) -> None:
        admin = await user_factory("root", role=UserRole.ADMIN)
        invitation = await ProviderService(session, auth_settings).create_invitation(
            admin, "invited@example.com", "Invited Records"
        )

        user, provider = await service.register_provider(
            ProviderRegistrationData(
                username="invited",
                email="invited@example.com",
                password="longenough",
                first_name="In",
                last_name="Vited",
                invitation_token=invitation.invitation_token,
            )
        )
        assert provider.business_name == "Invited Records"
        stored = await ProviderInvitationRepository(session).get_by_token(
            invitation.invitation_token
        )
        assert stored.status == InvitationStatus.COMPLETED
        assert stored.completed_by == user.id

    async def test_unknown_invitation_token(self, service) -> None:
        with pytest.raises(ValidationException, match="Invitation"):
            await service.register_provider(
                ProviderRegistrationData(
                    username="shop",
                    email="shop@example.com",
                    password="longenough",
                    first_name="Shop",
                    last_name="Owner",
                    business_name="Shop",
                    invitation_token="nope",
                )
            )


class TestLogin:
    async def test_login_by_username_or_email(self, service, user_factory) -> None:
        user = await user_factory("nina")

        by_name = await service.login("NINA", TEST_PASSWORD)
        by_mail = await service.login("nina@example.com", TEST_PASSWORD, user_agent="pytest")
        assert by_name.user.id == user.id == by_mail.user.id
        assert by_name.session.session_token != by_mail.session.session_token
        assert by_mail.session.user_agent == "pytest"

    async def test_wrong_password_and_unknown_user_look_the_same(
        self, service, user_factory
    ) -> None:
        await user_factory("nina")
        with pytest.raises(AuthenticationError) as wrong:
            await service.login("nina", "not-the-password")
        with pytest.raises(AuthenticationError) as unknown:
            await service.login("ghost", TEST_PASSWORD)
        assert str(wrong.value) == str(unknown.value) == INVALID_CREDENTIALS

    async def test_inactive_user_cannot_log_in(self, service, user_factory) -> None:
        await user_factory("nina", is_active=False)
        with pytest.raises(AuthenticationError, match="deactivated"):
            await service.login("nina", TEST_PASSWORD)

    async def test_validate_token_and_logout(self, service, user_factory) -> None:
        user = await user_factory("nina")
        result = await service.login("nina", TEST_PASSWORD)

        assert (await service.validate_token(result.session.session_token)).id == user.id
        assert await service.logout(result.session.session_token)
        with pytest.raises(AuthenticationError):
            await service.validate_token(result.session.session_token)

    async def test_logout_unknown_token(self, service) -> None:
        assert not await service.logout("missing")

    async def test_logout_all_sessions(self, service, user_factory) -> None:
        user = await user_factory("nina")
        await service.login("nina", TEST_PASSWORD)
        await service.login("nina", TEST_PASSWORD)

        assert await service.logout_all_sessions(user.id) == 2

    async def test_expired_session_is_rejected(self, session, user_factory) -> None:
        short = AuthService(
            session,
            AuthSettings(password_hash_iterations=TEST_HASH_ITERATIONS, session_ttl_seconds=60),
        )
        await user_factory("nina")
        result = await short.login("nina", TEST_PASSWORD)
        assert result.session.expires_at < datetime.now(UTC) + timedelta(minutes=2)
        assert not result.session.is_valid(now=datetime.now(UTC) + timedelta(minutes=5))


class TestChangePassword:
    async def test_change_password(self, service, user_factory) -> None:
        user = await user_factory("nina")
        await service.change_password(user, TEST_PASSWORD, "brand-new-pass")

        assert (await service.login("nina", "brand-new-pass")).user.id == user.id
        with pytest.raises(AuthenticationError):
            await service.login("nina", TEST_PASSWORD)

    async def test_wrong_current_password(self, service, user_factory) -> None:
        user = await user_factory("nina")
        with pytest.raises(AuthenticationError, match="Current password"):
            await service.change_password(user, "wrong", "brand-new-pass")
