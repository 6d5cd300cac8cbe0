"""Provider service: seller records, verification and invitations."""

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.application.mappers import user_management_mapper as mapper
from songstock.config import AuthSettings
from songstock.domain.dtos import ProviderManagementDTO
from songstock.domain.entities import (
    InvitationStatus,
    Provider,
    ProviderInvitation,
    User,
    VerificationStatus,
    utc_now,
)
from songstock.domain.exceptions import (
    DuplicateEntityException,
    EntityNotFoundException,
    InvalidStateException,
    ValidationException,
)
from songstock.infrastructure.persistence.repositories import (
    ProviderInvitationRepository,
    ProviderRepository,
    UserRepository,
)
from songstock.infrastructure.security import generate_token

logger = logging.getLogger(__name__)


class ProviderService:
    """Provider lookups, verification decisions and onboarding invitations."""

    def __init__(self, session: AsyncSession, settings: AuthSettings) -> None:
        self._settings = settings
        self._providers = ProviderRepository(session)
        self._invitations = ProviderInvitationRepository(session)
        self._users = UserRepository(session)

    # =========================================================================
    # PROVIDERS
    # =========================================================================

    async def list_providers(
        self, status: VerificationStatus | None = None
    ) -> list[Provider]:
        if status is None:
            return await self._providers.list_all()
        return await self._providers.list_by_status(status)

    async def get_provider(self, provider_id: int) -> Provider:
        provider = await self._providers.get_by_id(provider_id)
        if provider is None:
            raise EntityNotFoundException("Provider", provider_id)
        return provider

    async def get_by_user(self, user: User) -> Provider:
        assert user.id is not None
        provider = await self._providers.get_by_user_id(user.id)
        if provider is None:
            raise EntityNotFoundException("Provider", f"user_id={user.id}")
        return provider

    async def update_provider(
        self, provider_id: int, dto: ProviderManagementDTO
    ) -> Provider:
        """Apply non-None fields; verification changes go through verify/reject."""
        provider = await self.get_provider(provider_id)
        dto.verification_status = None
        if dto.commission_rate is not None and not (0 <= dto.commission_rate <= 100):
            raise ValidationException("Commission rate must be between 0 and 100")
        mapper.update_provider_from_management_dto(provider, dto)
        await self._providers.update(provider)
        return provider

    async def _set_status(
        self, provider_id: int, status: VerificationStatus, reason: str | None
    ) -> Provider:
        provider = await self.get_provider(provider_id)
        previous = provider.verification_status
        provider.set_verification_status(status)
        await self._providers.update(provider)
        logger.info(
            "Provider %s: %s -> %s",
            provider_id,
            previous.value,
            status.value,
            extra={"provider_id": provider_id, "reason": reason},
        )
        return provider

    async def verify_provider(self, provider_id: int, reason: str | None = None) -> Provider:
        return await self._set_status(provider_id, VerificationStatus.VERIFIED, reason)

    async def reject_provider(self, provider_id: int, reason: str | None = None) -> Provider:
        return await self._set_status(provider_id, VerificationStatus.REJECTED, reason)

    # =========================================================================
    # INVITATIONS
    # =========================================================================

    async def create_invitation(
        self,
        inviter: User,
        email: str,
        business_name: str,
        first_name: str | None = None,
        last_name: str | None = None,
        phone: str | None = None,
        message: str | None = None,
    ) -> ProviderInvitation:
        """Issue an invitation token (returned to the caller, no mail is sent)."""
        email = email.strip().lower()
        if not business_name.strip():
            raise ValidationException("Business name is required")
        if await self._users.exists_by_email(email):
            raise DuplicateEntityException("User", "email", email)

        invitation = ProviderInvitation(
            email=email,
            business_name=business_name.strip(),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            message=message,
            invited_by=inviter.id,
            invitation_token=generate_token(),
            expires_at=utc_now() + timedelta(days=self._settings.invitation_ttl_days),
        )
        await self._invitations.add(invitation)
        logger.info(
            "Provider invitation created for %s",
            email,
            extra={"invitation_id": invitation.id, "invited_by": inviter.id},
        )
        return invitation

    # Hey future me - expiry is lazy: a PENDING invitation past expires_at is flipped
    # to EXPIRED the first time somebody reads it. There is no background sweeper.
    async def get_invitation(self, token: str) -> ProviderInvitation:
        invitation = await self._invitations.get_by_token(token)
        if invitation is None:
            raise EntityNotFoundException("ProviderInvitation", token)
        if invitation.status == InvitationStatus.PENDING and invitation.is_expired():
            invitation.status = InvitationStatus.EXPIRED
            invitation.updated_at = utc_now()
            await self._invitations.update(invitation)
        return invitation

    async def list_invitations(
        self, status: InvitationStatus = InvitationStatus.PENDING
    ) -> list[ProviderInvitation]:
        return await self._invitations.list_by_status(status)

    async def cancel_invitation(self, token: str) -> ProviderInvitation:
        invitation = await self.get_invitation(token)
        if invitation.status != InvitationStatus.PENDING:
            raise InvalidStateException(
                f"Invitation is {invitation.status.value}, only PENDING can be cancelled"
            )
        invitation.status = InvitationStatus.CANCELLED
        invitation.updated_at = utc_now()
        await self._invitations.update(invitation)
        return invitation
