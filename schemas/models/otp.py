"""
OTP record document model.

Maps to the `otps` MongoDB collection, one document per email.

otp_hash stores SHA-256(otp_code) — the plain OTP is never stored.
otp_verified flips to True once the code is confirmed; a verified record is
the only thing that lets an account be created for that email, and it is
deleted when the account is created.

Records written by the previous service carry the plain code under `otp`;
they load with the code hashed in place and gain an `otpHash` on the next
write.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pydantic import Field, model_validator

from schemas.models.base import MongoBaseModel
from shared.crypto import hash_token


class OtpDoc(MongoBaseModel):
    """Document model for the `otps` collection."""

    email: str
    otp_hash: str = Field(alias="otpHash")
    otp_expires: datetime = Field(alias="otpExpires")
    otp_verified: bool = Field(default=False, alias="otpVerified")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @model_validator(mode="before")
    @classmethod
    def _hash_legacy_code(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "otp" not in data:
            return data
        if "otpHash" in data or "otp_hash" in data:
            return data
        legacy = dict(data)
        legacy["otpHash"] = hash_token(str(legacy.pop("otp")))
        return legacy
