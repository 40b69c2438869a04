"""Unit tests for MongoDB document models."""

from datetime import datetime, timezone

import pytest
from bson import ObjectId

from schemas.models.base import MongoBaseModel, PyObjectId
from schemas.models.otp import OtpDoc
from schemas.models.user import Certificate, UserDoc
from shared.crypto import hash_token


# ── Helpers ───────────────────────────────────────────────────────────────────

def now():
    return datetime.now(timezone.utc)


def oid():
    return ObjectId()


def user_doc(**overrides):
    doc = {
        "_id": oid(),
        "email": "buyer@example.com",
        "name": "Buyer",
        "phoneNo": "9876543210",
        "password": "$argon2id$hash",
        "userType": "admin",
        "package": 2,
        "type": 1,
        "gstin": "27AAPFU0939F1ZV",
        "isVerified": False,
        "certificate": {"data": b"%PDF", "contentType": "application/pdf"},
        "date": now(),
    }
    doc.update(overrides)
    return doc


# ── PyObjectId ────────────────────────────────────────────────────────────────

class TestPyObjectId:
    def test_accepts_objectid_instance(self):
        o = oid()
        assert PyObjectId._validate(o) == o

    def test_accepts_valid_string(self):
        s = str(oid())
        result = PyObjectId._validate(s)
        assert isinstance(result, ObjectId)
        assert str(result) == s

    def test_rejects_invalid_string(self):
        with pytest.raises(ValueError):
            PyObjectId._validate("not-an-objectid")

    def test_rejects_none(self):
        with pytest.raises(ValueError):
            PyObjectId._validate(None)


# ── MongoBaseModel ─────────────────────────────────────────────────────────────

class TestMongoBaseModel:
    def test_from_mongo_returns_none_for_none(self):
        assert MongoBaseModel.from_mongo(None) is None

    def test_id_alias(self):
        o = oid()
        m = MongoBaseModel.model_validate({"_id": o})
        assert m.id == o

    def test_to_mongo_drops_none_id(self):
        assert "_id" not in MongoBaseModel().to_mongo()

    def test_id_serialized_as_string_in_json_mode_only(self):
        o = oid()
        m = MongoBaseModel(_id=o)
        assert m.model_dump(by_alias=True)["_id"] == o
        assert m.model_dump(by_alias=True, mode="json")["_id"] == str(o)


# ── UserDoc ────────────────────────────────────────────────────────────────────

class TestUserDoc:
    def test_from_mongo_reads_camel_case(self):
        doc = user_doc()
        user = UserDoc.from_mongo(doc)
        assert user.id == doc["_id"]
        assert user.phone_no == "9876543210"
        assert user.password_hash == "$argon2id$hash"
        assert user.user_type == "admin"
        assert user.is_verified is False
        assert user.certificate == Certificate(data=b"%PDF", content_type="application/pdf")

    def test_defaults_for_sparse_document(self):
        user = UserDoc.from_mongo(
            {
                "_id": oid(),
                "email": "a@b.co",
                "name": "A",
                "phoneNo": "9876543210",
                "password": "h",
            }
        )
        assert user.user_type == "user"
        assert user.package == 0
        assert user.type == 0
        assert user.added_users == []
        assert user.certificate is None
        assert user.added_by is None

    def test_to_mongo_uses_stored_keys(self):
        parent = oid()
        user = UserDoc(
            email="child@example.com",
            name="Child",
            phone_no="9876543210",
            password_hash="h",
            user_type="added",
            added_by=parent,
        )
        data = user.to_mongo()
        assert "_id" not in data
        assert data["phoneNo"] == "9876543210"
        assert data["password"] == "h"
        assert data["userType"] == "added"
        assert data["addedBy"] == parent
        assert isinstance(data["addedBy"], ObjectId)

    def test_rejects_unknown_user_type(self):
        with pytest.raises(ValueError):
            UserDoc.from_mongo(user_doc(userType="superuser"))

    def test_certificate_bytes_stay_native(self):
        data = UserDoc.from_mongo(user_doc()).to_mongo()
        assert data["certificate"] == {"data": b"%PDF", "contentType": "application/pdf"}


# ── OtpDoc ─────────────────────────────────────────────────────────────────────

class TestOtpDoc:
    def test_roundtrip_keys(self):
        expires = now()
        record = OtpDoc(email="a@b.co", otp_hash="abc", otp_expires=expires)
        data = record.to_mongo()
        assert data["otpHash"] == "abc"
        assert data["otpExpires"] == expires
        assert data["otpVerified"] is False
        assert OtpDoc.from_mongo(data).otp_hash == "abc"

    def test_no_plain_code_field(self):
        record = OtpDoc(email="a@b.co", otp_hash="abc", otp_expires=now())
        assert "otp" not in record.to_mongo()

    def test_legacy_plain_code_is_hashed_on_load(self):
        record = OtpDoc.from_mongo(
            {"_id": oid(), "email": "a@b.co", "otp": "123456", "otpExpires": now(), "otpVerified": False}
        )
        assert record.otp_hash == hash_token("123456")
        assert "otp" not in record.to_mongo()
