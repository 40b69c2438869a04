"""
Account lifecycle — sign-up, sub-accounts, sign-in, password reset, profile
updates and deletion.

Per email the flow is: OTP pending → OTP verified → account created (the OTP
record is consumed) → is_verified False for self sign-ups, True for
sub-accounts created by an existing account.
"""

from __future__ import annotations

from typing import Optional

from bson import ObjectId

from config import AccountSettings
from errors import (
    AuthenticationError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    NotFoundError,
    UnknownEmailError,
    ValidationError,
)
from infrastructure.email.protocol import NotificationGateway
from repositories.user_repository import UserRepository
from schemas.dto.requests.account import (
    AddUserRequest,
    SignUpForm,
    UpdateAddedUserRequest,
    UpdateUserForm,
)
from schemas.models.user import USER_TYPE_ADDED, Certificate, UserDoc
from services.otp_service import OtpService
from services.token_service import TokenPair, TokenService
from shared.crypto import (
    hash_password,
    hash_token,
    needs_rehash,
    verify_dummy_password,
    verify_password,
)
from shared.datetime_utils import expires_in, utcnow
from shared.generators import generate_reset_token
from shared.logging import get_logger
from shared.validators import validate_password

log = get_logger(__name__)

INVALID_CREDENTIALS = "Invalid email or password."
USER_NOT_FOUND = "User not found!"


class AccountService:
    def __init__(
        self,
        users: UserRepository,
        otp: OtpService,
        tokens: TokenService,
        notifications: NotificationGateway,
        settings: AccountSettings,
    ) -> None:
        self._users = users
        self._otp = otp
        self._tokens = tokens
        self._notifications = notifications
        self._settings = settings

    # ── helpers ──────────────────────────────────────────────────────────────

    def _check_password(self, password: str, field: str = "password") -> None:
        if not validate_password(password, self._settings.password_min_length):
            raise ValidationError(
                f"Password must be at least {self._settings.password_min_length} characters.",
                field=field,
            )

    def _check_certificate(self, certificate: Certificate) -> None:
        if not certificate.data:
            raise ValidationError("Certificate file is empty.", field="certificate")
        if len(certificate.data) > self._settings.max_certificate_bytes:
            raise ValidationError(
                "Certificate file is too large.",
                field="certificate",
                details={"max_bytes": self._settings.max_certificate_bytes},
            )

    async def _ensure_email_free(self, email: str) -> None:
        if await self._users.email_exists(email):
            raise ConflictError("User with the same email already exists!", field="email")

    async def _require_user(self, user_id: ObjectId) -> UserDoc:
        user = await self._users.get_by_id(user_id)
        if user is None:
            raise NotFoundError(USER_NOT_FOUND)
        return user

    async def _ensure_email_change_allowed(self, user: UserDoc, email: Optional[str]) -> None:
        if email is not None and email != user.email:
            await self._ensure_email_free(email)

    # ── sign-up and sub-accounts ─────────────────────────────────────────────

    async def sign_up(self, form: SignUpForm, certificate: Optional[Certificate]) -> UserDoc:
        await self._ensure_email_free(form.email)
        await self._otp.require_verified(form.email)
        self._check_password(form.password)
        if certificate is None:
            raise ValidationError("Certificate file is required.", field="certificate")
        self._check_certificate(certificate)

        user = await self._users.insert(
            UserDoc(
                email=form.email,
                name=form.name,
                phone_no=form.phone_no,
                password_hash=hash_password(form.password),
                user_type=form.user_type,
                package=form.package,
                type=form.type,
                gstin=form.gstin,
                is_verified=False,
                certificate=certificate,
                date=utcnow(),
            )
        )
        await self._otp.consume(form.email)
        log.info("user_signed_up", user_id=str(user.id), user_type=user.user_type)
        return user

    async def add_user(self, request: AddUserRequest) -> UserDoc:
        """Create a sub-account under ``request.added_by``.

        The child copies the parent's certificate and company link and is
        considered verified: the parent vouches for it.
        """
        await self._ensure_email_free(request.email)
        await self._otp.require_verified(request.email)
        self._check_password(request.password)

        parent = await self._users.get_by_id(request.added_by)
        if parent is None:
            raise NotFoundError("Admin user not found.", field="addedBy")
        if parent.user_type == USER_TYPE_ADDED:
            raise ValidationError("Sub-accounts cannot add users.", field="addedBy")

        child = await self._users.create_added_user(
            UserDoc(
                email=request.email,
                name=request.name,
                phone_no=request.phone_no,
                password_hash=hash_password(request.password),
                user_type=USER_TYPE_ADDED,
                package=request.package,
                type=request.type,
                gstin=request.gstin,
                is_verified=True,
                certificate=parent.certificate,
                company_id=parent.company_id,
                added_by=parent.id,
                date=utcnow(),
            ),
            parent.id,
        )
        await self._otp.consume(request.email)
        log.info("added_user_created", user_id=str(child.id), added_by=str(parent.id))
        return child

    async def update_added_user(
        self, user_id: ObjectId, request: UpdateAddedUserRequest
    ) -> UserDoc:
        user = await self._require_user(user_id)
        changes = request.model_dump(exclude_none=True)
        await self._ensure_email_change_allowed(user, changes.get("email"))
        if not changes:
            return user
        updated = await self._users.update_fields(user_id, changes)
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        log.info("added_user_updated", user_id=str(user_id), fields=sorted(changes))
        return updated

    async def list_added_users(self, added_by: ObjectId) -> list[UserDoc]:
        return await self._users.list_added_users(added_by)

    async def delete_added_user(
        self, added_user_id: ObjectId, parent_id: Optional[ObjectId] = None
    ) -> None:
        deleted = await self._users.delete_added_user(added_user_id, parent_id)
        if deleted is None:
            raise NotFoundError(USER_NOT_FOUND)
        log.info(
            "added_user_deleted",
            user_id=str(added_user_id),
            added_by=str(deleted.added_by),
        )

    # ── authentication ───────────────────────────────────────────────────────

    async def sign_in(self, email: str, password: str) -> tuple[UserDoc, TokenPair]:
        """Check credentials and issue a token pair.

        Unknown email and wrong password fail identically.
        """
        user = await self._users.get_by_email(email)
        if user is None:
            verify_dummy_password(password)
        elif verify_password(password, user.password_hash):
            if needs_rehash(user.password_hash):
                await self._rehash(user, password)
            log.info("sign_in_success", user_id=str(user.id))
            return user, self._tokens.issue(str(user.id))

        log.warning("sign_in_failed", reason="invalid_credentials", email_exists=user is not None)
        raise InvalidCredentialsError(INVALID_CREDENTIALS)

    async def _rehash(self, user: UserDoc, password: str) -> None:
        await self._users.update_fields(user.id, {"password_hash": hash_password(password)})
        log.info("password_rehashed", user_id=str(user.id))

    async def refresh(self, refresh_token: str) -> TokenPair:
        user_id = self._tokens.verify_refresh(refresh_token)
        if not ObjectId.is_valid(user_id) or not await self._users.get_by_id(ObjectId(user_id)):
            # Account deleted after the token was issued
            raise AuthenticationError("Invalid token.")
        log.info("token_refreshed", user_id=user_id)
        return self._tokens.issue(user_id)

    # ── password reset ───────────────────────────────────────────────────────

    async def forget_password(self, email: str) -> bool:
        """Store a one-hour reset token and mail the link.

        Returns whether the mail provider accepted the message.
        """
        user = await self._users.get_by_email(email)
        if user is None:
            raise UnknownEmailError("User with this email does not exist!", field="email")

        token = generate_reset_token()
        await self._users.set_reset_token(
            user.id, hash_token(token), expires_in(self._settings.reset_token_ttl_seconds)
        )
        reset_url = f"{self._settings.reset_password_url.rstrip('/')}/{token}"
        sent = await self._notifications.send_reset_password_mail(email, reset_url)
        log.info("password_reset_requested", user_id=str(user.id), notification_sent=sent)
        return sent

    async def reset_password(self, token: str, new_password: str) -> None:
        self._check_password(new_password, field="newPassword")
        user = await self._users.consume_reset_token(
            hash_token(token), hash_password(new_password), utcnow()
        )
        if user is None:
            log.warning("password_reset_failed", reason="invalid_or_expired")
            raise InvalidOrExpiredError("Invalid or expired reset token.")
        log.info("password_reset", user_id=str(user.id))

    # ── profile ──────────────────────────────────────────────────────────────

    async def get_user(self, user_id: ObjectId) -> UserDoc:
        return await self._require_user(user_id)

    async def list_users(self) -> list[UserDoc]:
        return await self._users.list_all()

    async def update_user(
        self,
        user_id: ObjectId,
        form: UpdateUserForm,
        certificate: Optional[Certificate] = None,
    ) -> UserDoc:
        user = await self._require_user(user_id)
        changes = form.changes()
        new_type = changes.get("user_type")
        if user.user_type == USER_TYPE_ADDED and new_type not in (None, USER_TYPE_ADDED):
            raise ValidationError("A sub-account cannot change its user type.", field="userType")
        await self._ensure_email_change_allowed(user, changes.get("email"))
        if certificate is not None:
            self._check_certificate(certificate)
            changes["certificate"] = certificate.model_dump(by_alias=True)
        if not changes:
            return user
        updated = await self._users.update_fields(user_id, changes)
        if updated is None:
            raise NotFoundError(USER_NOT_FOUND)
        log.info("user_updated", user_id=str(user_id), fields=sorted(changes))
        return updated

    async def delete_user(self, user_id: ObjectId) -> None:
        # Hard delete only: addedBy/addedUsers/companyId links pointing at
        # this user are left in place.
        if not await self._users.delete(user_id):
            raise NotFoundError(USER_NOT_FOUND)
        log.info("user_deleted", user_id=str(user_id))
