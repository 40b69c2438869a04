"""Unit tests for AccountService."""

from datetime import timedelta

import bcrypt
import pytest
from bson import ObjectId

from errors import (
    AuthenticationError,
    ConflictError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    NotFoundError,
    NotVerifiedError,
    UnknownEmailError,
    ValidationError,
)
from schemas.dto.requests.account import (
    AddUserRequest,
    SignUpForm,
    UpdateAddedUserRequest,
    UpdateUserForm,
)
from schemas.models.user import Certificate
from shared.crypto import hash_token, verify_password
from shared.datetime_utils import utcnow

EMAIL = "owner@acme.in"


def sign_up_form(**overrides) -> SignUpForm:
    data = {
        "name": "Acme Traders",
        "email": EMAIL,
        "password": "secret-pass",
        "phoneNo": "9876543210",
        "userType": "admin",
        "gstin": "27AAPFU0939F1ZV",
    }
    data.update(overrides)
    return SignUpForm.model_validate(data)


def add_user_request(parent_id, **overrides) -> AddUserRequest:
    data = {
        "name": "Buyer One",
        "email": "buyer1@acme.in",
        "password": "child-pass",
        "phoneNo": "9123456789",
        "addedBy": str(parent_id),
    }
    data.update(overrides)
    return AddUserRequest.model_validate(data)


async def verify_email(otp_service, gateway, email):
    await otp_service.request_otp(email)
    await otp_service.verify_otp(email, gateway.last_otp(email))


# ── sign-up ───────────────────────────────────────────────────────────────────


class TestSignUp:
    async def test_requires_verified_email(self, account_service, users, certificate):
        with pytest.raises(NotVerifiedError):
            await account_service.sign_up(sign_up_form(), certificate)
        assert users.docs == {}

    async def test_pending_otp_is_not_enough(self, account_service, otp_service, users, certificate):
        await otp_service.request_otp(EMAIL)
        with pytest.raises(NotVerifiedError):
            await account_service.sign_up(sign_up_form(), certificate)
        assert users.docs == {}

    async def test_creates_user_and_consumes_otp(
        self, account_service, otp_service, gateway, users, otps, certificate
    ):
        await verify_email(otp_service, gateway, EMAIL)

        user = await account_service.sign_up(sign_up_form(), certificate)

        assert user.id in users.docs
        stored = users.docs[user.id]
        assert stored["userType"] == "admin"
        assert stored["isVerified"] is False
        assert stored["certificate"] == {"data": certificate.data, "contentType": "application/pdf"}
        assert stored["password"] != "secret-pass"
        assert verify_password("secret-pass", stored["password"])
        assert EMAIL not in otps.docs

    async def test_second_sign_up_conflicts(
        self, account_service, otp_service, gateway, users, certificate
    ):
        await verify_email(otp_service, gateway, EMAIL)
        await account_service.sign_up(sign_up_form(), certificate)

        with pytest.raises(ConflictError):
            await account_service.sign_up(sign_up_form(name="Someone Else"), certificate)
        assert len(users.docs) == 1

    async def test_short_password(self, account_service, otp_service, gateway, certificate):
        await verify_email(otp_service, gateway, EMAIL)
        with pytest.raises(ValidationError) as exc:
            await account_service.sign_up(sign_up_form(password="12345"), certificate)
        assert exc.value.field == "password"

    async def test_certificate_required(self, account_service, otp_service, gateway, otps):
        await verify_email(otp_service, gateway, EMAIL)
        with pytest.raises(ValidationError) as exc:
            await account_service.sign_up(sign_up_form(), None)
        assert exc.value.field == "certificate"
        # A failed sign-up leaves the verification usable
        assert otps.docs[EMAIL]["otpVerified"] is True

    @pytest.mark.parametrize("data", [b"", b"x" * 1025], ids=["empty", "too_large"])
    async def test_certificate_size(self, account_service, otp_service, gateway, data):
        await verify_email(otp_service, gateway, EMAIL)
        with pytest.raises(ValidationError):
            await account_service.sign_up(
                sign_up_form(), Certificate(data=data, content_type="application/pdf")
            )


# ── sub-accounts ──────────────────────────────────────────────────────────────


class TestAddedUsers:
    async def test_add_user_links_parent(self, account_service, otp_service, gateway, users, otps):
        company = ObjectId()
        parent = users.add(
            certificate={"data": b"cert", "contentType": "image/png"}, companyId=company
        )
        await verify_email(otp_service, gateway, "buyer1@acme.in")

        child = await account_service.add_user(add_user_request(parent.id))

        assert child.user_type == "added"
        assert child.is_verified is True
        assert child.added_by == parent.id
        assert child.company_id == company
        assert child.certificate == Certificate(data=b"cert", content_type="image/png")
        assert child.package == 1
        assert users.docs[parent.id]["addedUsers"] == [child.id]
        assert "buyer1@acme.in" not in otps.docs

    async def test_add_user_requires_verified_email(self, account_service, users):
        parent = users.add()
        with pytest.raises(NotVerifiedError):
            await account_service.add_user(add_user_request(parent.id))

    async def test_add_user_unknown_parent(self, account_service, otp_service, gateway, users):
        await verify_email(otp_service, gateway, "buyer1@acme.in")
        with pytest.raises(NotFoundError):
            await account_service.add_user(add_user_request(ObjectId()))
        assert users.docs == {}

    async def test_add_user_existing_email(self, account_service, users):
        parent = users.add()
        users.add(email="buyer1@acme.in")
        with pytest.raises(ConflictError):
            await account_service.add_user(add_user_request(parent.id))

    async def test_list_and_delete(self, account_service, otp_service, gateway, users):
        parent = users.add()
        await verify_email(otp_service, gateway, "buyer1@acme.in")
        child = await account_service.add_user(add_user_request(parent.id))

        listed = await account_service.list_added_users(parent.id)
        assert [u.id for u in listed] == [child.id]

        await account_service.delete_added_user(child.id)

        assert child.id not in users.docs
        assert users.docs[parent.id]["addedUsers"] == []
        assert await account_service.list_added_users(parent.id) == []

    async def test_delete_unknown(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.delete_added_user(ObjectId())

    async def test_sub_account_cannot_add_users(self, account_service, otp_service, gateway, users):
        parent = users.add()
        await verify_email(otp_service, gateway, "buyer1@acme.in")
        child = await account_service.add_user(add_user_request(parent.id))
        await verify_email(otp_service, gateway, "buyer2@acme.in")

        with pytest.raises(ValidationError) as exc:
            await account_service.add_user(add_user_request(child.id, email="buyer2@acme.in"))

        assert exc.value.field == "addedBy"
        assert users.docs[child.id].get("addedUsers", []) == []
        assert await users.get_by_email("buyer2@acme.in") is None

    async def test_delete_under_wrong_parent_keeps_links(
        self, account_service, otp_service, gateway, users
    ):
        parent = users.add()
        other = users.add(email="other@acme.in")
        await verify_email(otp_service, gateway, "buyer1@acme.in")
        child = await account_service.add_user(add_user_request(parent.id))

        with pytest.raises(NotFoundError):
            await account_service.delete_added_user(child.id, other.id)

        assert child.id in users.docs
        assert users.docs[parent.id]["addedUsers"] == [child.id]

        await account_service.delete_added_user(child.id, parent.id)
        assert users.docs[parent.id]["addedUsers"] == []

    async def test_update_added_user_partial(self, account_service, users):
        child = users.add(email="buyer1@acme.in", name="Old", userType="added")
        updated = await account_service.update_added_user(
            child.id, UpdateAddedUserRequest.model_validate({"name": "New", "phoneNo": "null"})
        )
        assert updated.name == "New"
        assert updated.phone_no == "9876543210"

    async def test_update_added_user_email_taken(self, account_service, users):
        users.add(email="taken@acme.in")
        child = users.add(email="buyer1@acme.in")
        with pytest.raises(ConflictError):
            await account_service.update_added_user(
                child.id, UpdateAddedUserRequest(email="taken@acme.in")
            )

    async def test_update_added_user_unknown(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.update_added_user(ObjectId(), UpdateAddedUserRequest(name="x"))


# ── sign-in / refresh ─────────────────────────────────────────────────────────


class TestSignIn:
    async def test_success_issues_tokens(self, account_service, users, token_service):
        owner = users.add()
        user, tokens = await account_service.sign_in(EMAIL, "secret-pass")
        assert user.id == owner.id
        assert token_service.verify_access(tokens.access_token) == str(owner.id)

    async def test_unknown_email_and_wrong_password_fail_identically(self, account_service, users):
        owner = users.add()
        assert (await users.get_by_email(EMAIL)).id == owner.id
        with pytest.raises(InvalidCredentialsError) as unknown:
            await account_service.sign_in("nobody@acme.in", "secret-pass")
        with pytest.raises(InvalidCredentialsError) as wrong:
            await account_service.sign_in(EMAIL, "wrong-pass")
        assert unknown.value.to_dict() == wrong.value.to_dict()

    async def test_unknown_email_still_checks_a_password(self, account_service, mocker):
        dummy = mocker.patch("services.account_service.verify_dummy_password")
        with pytest.raises(InvalidCredentialsError):
            await account_service.sign_in("nobody@acme.in", "secret-pass")
        dummy.assert_called_once_with("secret-pass")

    async def test_legacy_bcrypt_password_is_upgraded(self, account_service, users):
        legacy = bcrypt.hashpw(b"secret-pass", bcrypt.gensalt(rounds=4, prefix=b"2a")).decode()
        owner = users.add(password=legacy)

        user, _ = await account_service.sign_in(EMAIL, "secret-pass")

        assert user.id == owner.id
        stored = users.docs[owner.id]["password"]
        assert stored.startswith("$argon2")
        assert verify_password("secret-pass", stored)
        await account_service.sign_in(EMAIL, "secret-pass")

    async def test_refresh_rotates(self, account_service, users, token_service):
        owner = users.add()
        _, tokens = await account_service.sign_in(EMAIL, "secret-pass")
        fresh = await account_service.refresh(tokens.refresh_token)
        assert token_service.verify_refresh(fresh.refresh_token) == str(owner.id)

    async def test_refresh_for_deleted_user(self, account_service, users):
        owner = users.add()
        _, tokens = await account_service.sign_in(EMAIL, "secret-pass")
        await account_service.delete_user(owner.id)
        with pytest.raises(AuthenticationError):
            await account_service.refresh(tokens.refresh_token)

    async def test_refresh_rejects_access_token(self, account_service, users):
        users.add()
        _, tokens = await account_service.sign_in(EMAIL, "secret-pass")
        with pytest.raises(AuthenticationError):
            await account_service.refresh(tokens.access_token)


# ── password reset ────────────────────────────────────────────────────────────


def _token_from(gateway) -> str:
    _, url = gateway.reset_urls[-1]
    return url.rsplit("/", 1)[1]


class TestPasswordReset:
    async def test_forget_password_mails_link(self, account_service, users, gateway):
        owner = users.add()
        sent = await account_service.forget_password(EMAIL)

        assert sent is True
        to, url = gateway.reset_urls[-1]
        assert to == EMAIL
        assert url.startswith("https://beonbusiness.com/resetPassword/")
        token = _token_from(gateway)
        stored = users.docs[owner.id]
        assert stored["resetPasswordToken"] == hash_token(token)
        assert stored["resetPasswordExpires"] > utcnow() + timedelta(minutes=59)

    async def test_forget_password_unknown_email(self, account_service, gateway):
        with pytest.raises(UnknownEmailError):
            await account_service.forget_password("nobody@acme.in")
        assert gateway.reset_urls == []

    async def test_forget_password_reports_mail_failure(self, account_service, users, gateway):
        owner = users.add()
        gateway.succeed = False
        assert await account_service.forget_password(EMAIL) is False
        assert users.docs[owner.id]["resetPasswordToken"]

    async def test_reset_changes_password_once(self, account_service, users, gateway):
        owner = users.add()
        await account_service.forget_password(EMAIL)
        token = _token_from(gateway)

        await account_service.reset_password(token, "brand-new-pass")

        stored = users.docs[owner.id]
        assert verify_password("brand-new-pass", stored["password"])
        assert "resetPasswordToken" not in stored
        with pytest.raises(InvalidOrExpiredError):
            await account_service.reset_password(token, "another-pass")

    async def test_expired_token_leaves_password(self, account_service, users, gateway):
        owner = users.add()
        await account_service.forget_password(EMAIL)
        token = _token_from(gateway)
        users.docs[owner.id]["resetPasswordExpires"] = utcnow() - timedelta(seconds=1)
        before = users.docs[owner.id]["password"]

        with pytest.raises(InvalidOrExpiredError):
            await account_service.reset_password(token, "brand-new-pass")
        assert users.docs[owner.id]["password"] == before

    async def test_unknown_token(self, account_service):
        with pytest.raises(InvalidOrExpiredError):
            await account_service.reset_password("f" * 64, "brand-new-pass")

    async def test_short_new_password(self, account_service, users, gateway):
        users.add()
        await account_service.forget_password(EMAIL)
        with pytest.raises(ValidationError) as exc:
            await account_service.reset_password(_token_from(gateway), "123")
        assert exc.value.field == "newPassword"


# ── profile ───────────────────────────────────────────────────────────────────


class TestProfile:
    async def test_update_user_fields_and_certificate(self, account_service, users):
        owner = users.add()
        form = UpdateUserForm.model_validate({"package": "3", "gstin": "null", "isVerified": "true"})
        cert = Certificate(data=b"new-cert", content_type="image/jpeg")

        updated = await account_service.update_user(owner.id, form, cert)

        assert updated.package == 3
        assert updated.is_verified is True
        assert updated.certificate == cert
        assert users.docs[owner.id]["certificate"] == {"data": b"new-cert", "contentType": "image/jpeg"}

    async def test_update_user_no_changes(self, account_service, users):
        owner = users.add()
        assert (await account_service.update_user(owner.id, UpdateUserForm())).id == owner.id

    async def test_sub_account_keeps_its_user_type(self, account_service, users):
        parent = users.add()
        child = users.add(email="buyer1@acme.in", userType="added", addedBy=parent.id)

        with pytest.raises(ValidationError) as exc:
            await account_service.update_user(child.id, UpdateUserForm(userType="admin"))

        assert exc.value.field == "userType"
        assert users.docs[child.id]["userType"] == "added"

    async def test_primary_account_can_switch_type(self, account_service, users):
        owner = users.add(userType="user")
        updated = await account_service.update_user(owner.id, UpdateUserForm(userType="admin"))
        assert updated.user_type == "admin"
        assert updated.added_by is None

    async def test_update_unknown_user(self, account_service):
        with pytest.raises(NotFoundError):
            await account_service.update_user(ObjectId(), UpdateUserForm(name="x"))

    async def test_delete_user(self, account_service, users):
        owner = users.add()
        await account_service.delete_user(owner.id)
        assert users.docs == {}
        with pytest.raises(NotFoundError):
            await account_service.delete_user(owner.id)

    async def test_get_and_list(self, account_service, users):
        owner = users.add()
        assert (await account_service.get_user(owner.id)).email == EMAIL
        assert [u.id for u in await account_service.list_users()] == [owner.id]
