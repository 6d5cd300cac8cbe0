"""Provider and provider-invitation API endpoints."""

from fastapi import APIRouter, Depends, Query, status

from songstock.api.dependencies import (
    get_provider_service,
    require_admin,
    require_roles,
)
from songstock.api.schemas.products import InvitationIn, InvitationOut, ProviderOut
from songstock.api.schemas.users import ProviderManagementIn, StatusChangeIn
from songstock.application.services import ProviderService
from songstock.domain.entities import (
    InvitationStatus,
    Provider,
    User,
    UserRole,
    VerificationStatus,
)

router = APIRouter(prefix="/providers", tags=["Providers"])


def _out(provider: Provider) -> ProviderOut:
    return ProviderOut.model_validate(provider, from_attributes=True)


@router.get("/me", response_model=ProviderOut)
async def my_provider(
    caller: User = Depends(require_roles(UserRole.PROVIDER)),
    service: ProviderService = Depends(get_provider_service),
) -> ProviderOut:
    return _out(await service.get_by_user(caller))


# =============================================================================
# INVITATIONS
# =============================================================================
# Declared before /{provider_id} so "invitations" is never parsed as an id.


@router.post(
    "/invitations",
    response_model=InvitationOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_invitation(
    payload: InvitationIn,
    admin: User = Depends(require_admin),
    service: ProviderService = Depends(get_provider_service),
) -> InvitationOut:
    invitation = await service.create_invitation(
        admin,
        email=str(payload.email),
        business_name=payload.business_name,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        message=payload.message,
    )
    return InvitationOut.model_validate(invitation, from_attributes=True)


@router.get(
    "/invitations",
    response_model=list[InvitationOut],
    dependencies=[Depends(require_admin)],
)
async def list_invitations(
    status_filter: InvitationStatus = Query(default=InvitationStatus.PENDING, alias="status"),
    service: ProviderService = Depends(get_provider_service),
) -> list[InvitationOut]:
    invitations = await service.list_invitations(status_filter)
    return [InvitationOut.model_validate(i, from_attributes=True) for i in invitations]


# Public on purpose: the invitee opens the link before having an account.
@router.get("/invitations/{token}", response_model=InvitationOut)
async def get_invitation(
    token: str, service: ProviderService = Depends(get_provider_service)
) -> InvitationOut:
    return InvitationOut.model_validate(
        await service.get_invitation(token), from_attributes=True
    )


@router.delete(
    "/invitations/{token}",
    response_model=InvitationOut,
    dependencies=[Depends(require_admin)],
)
async def cancel_invitation(
    token: str, service: ProviderService = Depends(get_provider_service)
) -> InvitationOut:
    return InvitationOut.model_validate(
        await service.cancel_invitation(token), from_attributes=True
    )


# =============================================================================
# ADMIN
# =============================================================================


@router.get("", response_model=list[ProviderOut], dependencies=[Depends(require_admin)])
async def list_providers(
    verification_status: VerificationStatus | None = None,
    service: ProviderService = Depends(get_provider_service),
) -> list[ProviderOut]:
    return [_out(p) for p in await service.list_providers(verification_status)]


@router.get(
    "/{provider_id}", response_model=ProviderOut, dependencies=[Depends(require_admin)]
)
async def get_provider(
    provider_id: int, service: ProviderService = Depends(get_provider_service)
) -> ProviderOut:
    return _out(await service.get_provider(provider_id))


@router.put(
    "/{provider_id}", response_model=ProviderOut, dependencies=[Depends(require_admin)]
)
async def update_provider(
    provider_id: int,
    payload: ProviderManagementIn,
    service: ProviderService = Depends(get_provider_service),
) -> ProviderOut:
    return _out(await service.update_provider(provider_id, payload.to_dto()))


@router.post(
    "/{provider_id}/verify",
    response_model=ProviderOut,
    dependencies=[Depends(require_admin)],
)
async def verify_provider(
    provider_id: int,
    payload: StatusChangeIn | None = None,
    service: ProviderService = Depends(get_provider_service),
) -> ProviderOut:
    reason = payload.reason if payload else None
    return _out(await service.verify_provider(provider_id, reason))


@router.post(
    "/{provider_id}/reject",
    response_model=ProviderOut,
    dependencies=[Depends(require_admin)],
)
async def reject_provider(
    provider_id: int,
    payload: StatusChangeIn | None = None,
    service: ProviderService = Depends(get_provider_service),
) -> ProviderOut:
    reason = payload.reason if payload else None
    return _out(await service.reject_provider(provider_id, reason))
