"""Password reset via single-use tokens."""

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from songstock.config import AuthSettings
from songstock.domain.entities import PasswordResetToken, utc_now
from songstock.domain.exceptions import ValidationException
from songstock.infrastructure.persistence.repositories import (
    PasswordResetTokenRepository,
    UserRepository,
    UserSessionRepository,
)
from songstock.infrastructure.security import PasswordHasher, generate_token

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Issues and consumes password reset tokens."""

    def __init__(self, session: AsyncSession, settings: AuthSettings) -> None:
        self._settings = settings
        self._users = UserRepository(session)
        self._tokens = PasswordResetTokenRepository(session)
        self._sessions = UserSessionRepository(session)
        self._hasher = PasswordHasher(settings.password_hash_iterations)

    # Hey future me - unknown or inactive emails return None and look exactly like
    # success to the caller, so this endpoint can't be used to enumerate accounts.
    # There is no mail delivery; the token is returned to the caller and logged at DEBUG.
    async def forgot_password(self, email: str) -> PasswordResetToken | None:
        user = await self._users.get_by_email(email)
        if user is None or not user.is_active:
            logger.info("Password reset requested for unknown/inactive email")
            return None

        assert user.id is not None
        await self._tokens.invalidate_user_tokens(user.id)
        token = PasswordResetToken(
            user_id=user.id,
            token=generate_token(),
            expires_at=utc_now()
            + timedelta(seconds=self._settings.password_reset_ttl_seconds),
        )
        await self._tokens.add(token)
        logger.info("Password reset token issued", extra={"user_id": user.id})
        return token

    async def validate_reset_token(self, token: str) -> PasswordResetToken:
        record = await self._tokens.get_by_token(token)
        if record is None or record.used or utc_now() >= record.expires_at:
            raise ValidationException("Reset token is invalid or has expired")
        return record

    async def reset_password(self, token: str, new_password: str) -> None:
        """Consume the token, set the new hash and end every session of the user."""
        record = await self.validate_reset_token(token)
        if len(new_password) < self._settings.min_password_length:
            raise ValidationException(
                f"Password must be at least {self._settings.min_password_length} characters"
            )
        user = await self._users.get_by_id(record.user_id)
        if user is None or not user.is_active:
            raise ValidationException("Reset token is invalid or has expired")

        user.password_hash = self._hasher.hash(new_password)
        user.touch()
        await self._users.update(user)
        assert record.id is not None
        await self._tokens.mark_used(record.id)
        ended = await self._sessions.deactivate_all_user_sessions(record.user_id)
        logger.info(
            "Password reset completed, %d sessions ended",
            ended,
            extra={"user_id": record.user_id},
        )
