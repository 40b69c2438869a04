"""
Shared test fixtures.

In-memory stand-ins for the two repositories and the notification gateway.
The repository fakes store raw camelCase dicts and go through the real
to_mongo()/from_mongo() conversions, so alias mistakes surface here too.
"""

from __future__ import annotations

import os
from typing import Any, Optional

import pytest
from bson import ObjectId

from config import AccountSettings, JWTSettings
from errors import ConflictError, NotFoundError
from repositories.user_repository import _stored_key
from schemas.models.otp import OtpDoc
from schemas.models.user import Certificate, UserDoc
from services.account_service import AccountService
from services.otp_service import OtpService
from services.token_service import TokenService
from shared.crypto import hash_password
from shared.datetime_utils import ensure_utc, utcnow

# Ensure a MONGODB_URI is present so AppSettings can be instantiated
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017/")


class FakeUserRepository:
    def __init__(self) -> None:
        self.docs: dict[ObjectId, dict] = {}

    def _find(self, **match: Any) -> Optional[dict]:
        for doc in self.docs.values():
            if all(doc.get(k) == v for k, v in match.items()):
                return doc
        return None

    async def get_by_id(self, user_id):
        return UserDoc.from_mongo(self.docs.get(user_id))

    async def get_by_email(self, email):
        return UserDoc.from_mongo(self._find(email=email))

    async def email_exists(self, email):
        return self._find(email=email) is not None

    async def list_added_users(self, added_by):
        return [UserDoc.from_mongo(d) for d in self.docs.values() if d.get("addedBy") == added_by]

    async def list_all(self):
        return [UserDoc.from_mongo(d) for d in self.docs.values()]

    async def insert(self, user):
        if self._find(email=user.email):
            raise ConflictError("User with the same email already exists!", field="email")
        doc = user.to_mongo()
        doc["_id"] = ObjectId()
        self.docs[doc["_id"]] = doc
        return UserDoc.from_mongo(doc)

    async def update_fields(self, user_id, changes):
        doc = self.docs.get(user_id)
        if doc is None:
            return None
        update = {_stored_key(attr): value for attr, value in changes.items()}
        if "email" in update:
            other = self._find(email=update["email"])
            if other is not None and other["_id"] != user_id:
                raise ConflictError("User with the same email already exists!", field="email")
        doc.update(update, updatedAt=utcnow())
        return UserDoc.from_mongo(doc)

    async def set_reset_token(self, user_id, token_hash, expires_at):
        self.docs[user_id].update(resetPasswordToken=token_hash, resetPasswordExpires=expires_at)

    async def consume_reset_token(self, token_hash, password_hash, now):
        doc = self._find(resetPasswordToken=token_hash)
        if doc is None or ensure_utc(doc.get("resetPasswordExpires")) <= now:
            return None
        doc["password"] = password_hash
        doc.pop("resetPasswordToken", None)
        doc.pop("resetPasswordExpires", None)
        return UserDoc.from_mongo(doc)

    async def delete(self, user_id):
        return self.docs.pop(user_id, None) is not None

    async def create_added_user(self, child, parent_id):
        if parent_id not in self.docs:
            raise NotFoundError("Admin user not found.", field="addedBy")
        created = await self.insert(child)
        added = self.docs[parent_id].setdefault("addedUsers", [])
        if created.id not in added:
            added.append(created.id)
        return created

    async def delete_added_user(self, child_id, parent_id):
        doc = self.docs.get(child_id)
        if doc is None:
            return None
        if parent_id is not None and doc.get("addedBy") != parent_id:
            return None
        del self.docs[child_id]
        owner = self.docs.get(doc.get("addedBy"))
        if owner is not None:
            owner["addedUsers"] = [uid for uid in owner.get("addedUsers", []) if uid != child_id]
        return UserDoc.from_mongo(doc)

    # test helper
    def add(self, **fields: Any) -> UserDoc:
        base = {
            "_id": ObjectId(),
            "email": "owner@acme.in",
            "name": "Owner",
            "phoneNo": "9876543210",
            "password": hash_password("secret-pass"),
            "userType": "admin",
            "isVerified": True,
            "date": utcnow(),
        }
        base.update(fields)
        self.docs[base["_id"]] = base
        return UserDoc.from_mongo(base)


class FakeOtpRepository:
    def __init__(self) -> None:
        self.docs: dict[str, dict] = {}

    async def get(self, email):
        return OtpDoc.from_mongo(self.docs.get(email))

    async def create(self, record):
        if record.email in self.docs:
            return False
        self.docs[record.email] = record.to_mongo()
        return True

    async def replace_code(self, email, otp_hash, otp_expires):
        doc = self.docs.get(email)
        if doc is None:
            return None
        doc.update(otpHash=otp_hash, otpExpires=otp_expires, otpVerified=False)
        return OtpDoc.from_mongo(doc)

    async def mark_verified(self, email, otp_hash):
        doc = self.docs.get(email)
        if doc is None or doc.get("otpHash") not in (otp_hash, None):
            return False
        doc.update(otpHash=otp_hash, otpVerified=True)
        return True

    async def delete(self, email):
        return self.docs.pop(email, None) is not None


class RecordingGateway:
    """NotificationGateway double that remembers what it was asked to send."""

    def __init__(self, succeed: bool = True) -> None:
        self.succeed = succeed
        self.otps: list[tuple[str, str]] = []
        self.reset_urls: list[tuple[str, str]] = []

    async def send_otp_mail(self, email, otp):
        self.otps.append((email, otp))
        return self.succeed

    async def send_reset_password_mail(self, email, reset_url):
        self.reset_urls.append((email, reset_url))
        return self.succeed

    def last_otp(self, email: str) -> str:
        return [code for to, code in self.otps if to == email][-1]


@pytest.fixture
def users():
    return FakeUserRepository()


@pytest.fixture
def otps():
    return FakeOtpRepository()


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def account_settings():
    return AccountSettings(
        otp_ttl_seconds=600,
        reset_token_ttl_seconds=3600,
        reset_password_url="https://beonbusiness.com/resetPassword",
        password_min_length=6,
        max_certificate_bytes=1024,
    )


@pytest.fixture
def jwt_settings():
    return JWTSettings(
        jwt_secret="test-secret",
        jwt_private_key="",
        jwt_public_key="",
        access_token_ttl_seconds=900,
        refresh_token_ttl_seconds=3600,
    )


@pytest.fixture
def token_service(jwt_settings):
    return TokenService(jwt_settings)


@pytest.fixture
def otp_service(otps, users, gateway, account_settings):
    return OtpService(otps, users, gateway, account_settings)


@pytest.fixture
def account_service(users, otp_service, token_service, gateway, account_settings):
    return AccountService(users, otp_service, token_service, gateway, account_settings)


@pytest.fixture
def certificate():
    return Certificate(data=b"%PDF-1.4 registration", content_type="application/pdf")
