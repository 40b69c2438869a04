"""
Email OTP verification flow.

An OTP record exists per email from the first request until the account is
created. It moves pending → verified; a resend puts it back to pending with
a new code. The code itself is only ever stored as a SHA-256 digest.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from config import AccountSettings
from errors import ConflictError, InvalidOrExpiredError, NotVerifiedError, UnknownEmailError
from infrastructure.email.protocol import NotificationGateway
from repositories.otp_repository import OtpRepository
from repositories.user_repository import UserRepository
from schemas.models.otp import OtpDoc
from shared.crypto import hash_token, token_matches
from shared.datetime_utils import expires_in, is_expired, utcnow
from shared.generators import generate_otp_code
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class OtpDispatch:
    status: Literal["sent", "pending"]
    notification_sent: bool


class OtpService:
    def __init__(
        self,
        otps: OtpRepository,
        users: UserRepository,
        notifications: NotificationGateway,
        settings: AccountSettings,
    ) -> None:
        self._otps = otps
        self._users = users
        self._notifications = notifications
        self._settings = settings

    async def request_otp(self, email: str) -> OtpDispatch:
        """Start verification for *email*.

        An outstanding record is left untouched and no mail is sent, so two
        quick requests cannot leave the user holding a stale code.
        """
        if await self._users.email_exists(email):
            raise ConflictError("User with the same email already exists!", field="email")

        if await self._otps.get(email) is not None:
            log.info("otp_request_pending", email=email)
            return OtpDispatch(status="pending", notification_sent=False)

        code = generate_otp_code()
        now = utcnow()
        created = await self._otps.create(
            OtpDoc(
                email=email,
                otp_hash=hash_token(code),
                otp_expires=expires_in(self._settings.otp_ttl_seconds, now),
                otp_verified=False,
                created_at=now,
            )
        )
        if not created:
            log.info("otp_request_pending", email=email, reason="concurrent_request")
            return OtpDispatch(status="pending", notification_sent=False)

        sent = await self._notifications.send_otp_mail(email, code)
        log.info("otp_sent", email=email, notification_sent=sent)
        return OtpDispatch(status="sent", notification_sent=sent)

    async def verify_otp(self, email: str, code: str) -> None:
        record = await self._otps.get(email)
        if (
            record is None
            or not token_matches(code, record.otp_hash)
            or is_expired(record.otp_expires)
        ):
            log.warning("otp_verification_failed", email=email, record_found=record is not None)
            raise InvalidOrExpiredError("Invalid or expired OTP.", field="otp")

        if not await self._otps.mark_verified(email, record.otp_hash):
            # A resend replaced the code between the read and the write
            raise InvalidOrExpiredError("Invalid or expired OTP.", field="otp")
        log.info("otp_verified", email=email)

    async def resend_otp(self, email: str) -> OtpDispatch:
        code = generate_otp_code()
        record = await self._otps.replace_code(
            email, hash_token(code), expires_in(self._settings.otp_ttl_seconds)
        )
        if record is None:
            raise UnknownEmailError("User not found. Please sign up first.", field="email")

        sent = await self._notifications.send_otp_mail(email, code)
        log.info("otp_resent", email=email, notification_sent=sent)
        return OtpDispatch(status="sent", notification_sent=sent)

    async def require_verified(self, email: str) -> None:
        """Raise NotVerifiedError unless *email* has a confirmed OTP record."""
        record = await self._otps.get(email)
        if record is None or not record.otp_verified:
            raise NotVerifiedError(
                "Email not verified. Please verify your email before signing up.",
                field="email",
            )

    async def consume(self, email: str) -> None:
        await self._otps.delete(email)
