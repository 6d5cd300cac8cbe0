"""Authentication API endpoints: registration, login, logout, password reset."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Request, status
from pydantic import BaseModel, EmailStr, Field

from songstock.api.dependencies import (
    get_app_settings,
    get_auth_service,
    get_bearer_token,
    get_current_user,
    get_password_reset_service,
)
from songstock.api.schemas.common import MessageResponse
from songstock.api.schemas.products import ProviderOut
from songstock.api.schemas.users import UserOut
from songstock.application.services import (
    AuthService,
    PasswordResetService,
    ProviderRegistrationData,
    RegistrationData,
)
from songstock.config import Settings
from songstock.domain.entities import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.\-]+$")
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)
    first_name: str = Field(min_length=1, max_length=50)
    last_name: str = Field(min_length=1, max_length=50)
    phone: str | None = Field(default=None, max_length=20)


class ProviderRegisterRequest(RegisterRequest):
    business_name: str = Field(default="", max_length=100)
    tax_id: str | None = Field(default=None, max_length=50)
    address: str | None = None
    city: str | None = None
    state: str | None = None
    postal_code: str | None = None
    country: str | None = None
    invitation_token: str | None = None


class ProviderRegisterResponse(BaseModel):
    user: UserOut
    provider: ProviderOut


class LoginRequest(BaseModel):
    username_or_email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginResponse(BaseModel):
    session_token: str
    refresh_token: str | None
    token_type: str = "bearer"
    expires_at: datetime
    user: UserOut


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ForgotPasswordResponse(BaseModel):
    message: str
    reset_token: str | None = None
    expires_at: datetime | None = None


class ResetPasswordRequest(BaseModel):
    token: str = Field(min_length=1)
    new_password: str


class LogoutAllResponse(BaseModel):
    sessions_ended: int


def _user_out(user: User) -> UserOut:
    return UserOut.model_validate(user, from_attributes=True)


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> UserOut:
    user = await service.register_customer(RegistrationData(**payload.model_dump()))
    return _user_out(user)


@router.post(
    "/register-provider",
    response_model=ProviderRegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register_provider(
    payload: ProviderRegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> ProviderRegisterResponse:
    user, provider = await service.register_provider(
        ProviderRegistrationData(**payload.model_dump())
    )
    return ProviderRegisterResponse(
        user=_user_out(user),
        provider=ProviderOut.model_validate(provider, from_attributes=True),
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
) -> LoginResponse:
    result = await service.login(
        payload.username_or_email,
        payload.password,
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    return LoginResponse(
        session_token=result.session.session_token,
        refresh_token=result.session.refresh_token,
        expires_at=result.session.expires_at,
        user=_user_out(result.user),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await service.logout(token)
    return MessageResponse(message="Logged out")


@router.post("/logout-all", response_model=LogoutAllResponse)
async def logout_all(
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> LogoutAllResponse:
    assert user.id is not None
    return LogoutAllResponse(sessions_ended=await service.logout_all_sessions(user.id))


@router.get("/me", response_model=UserOut)
async def me(user: User = Depends(get_current_user)) -> UserOut:
    return _user_out(user)


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    payload: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    await service.change_password(user, payload.current_password, payload.new_password)
    return MessageResponse(message="Password changed")


@router.post("/forgot-password", response_model=ForgotPasswordResponse)
async def forgot_password(
    payload: ForgotPasswordRequest,
    settings: Settings = Depends(get_app_settings),
    service: PasswordResetService = Depends(get_password_reset_service),
) -> ForgotPasswordResponse:
    """Same response for known and unknown emails.

    Outside production the token is echoed back so it can be used without mail.
    """
    token = await service.forgot_password(payload.email)
    if settings.app_env == "production":
        token = None
    return ForgotPasswordResponse(
        message="If the email exists, a reset token has been issued",
        reset_token=token.token if token else None,
        expires_at=token.expires_at if token else None,
    )


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest,
    service: PasswordResetService = Depends(get_password_reset_service),
) -> MessageResponse:
    await service.reset_password(payload.token, payload.new_password)
    return MessageResponse(message="Password has been reset")
