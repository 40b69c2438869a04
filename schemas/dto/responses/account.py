"""
Response DTOs for the account endpoints.

CertificatePayload — Base64 certificate embedded in UserResponse
UserResponse       — public user shape (never includes password or reset token)
SignInResponse     — POST /api/signin (200): UserResponse plus tokens
TokenResponse      — POST /api/refreshToken (200)
AddUserResponse    — POST /api/addUsers (200)
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.user import UserDoc
from shared.attachments import encode_attachment


class CertificatePayload(BaseModel):
    """Certificate as it travels over JSON."""

    model_config = ConfigDict(populate_by_name=True)

    data: str
    content_type: str = Field(alias="contentType")


class UserResponse(BaseModel):
    """Public representation of a user document."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(alias="_id")
    email: str
    name: str
    phone_no: str = Field(alias="phoneNo")
    user_type: str = Field(alias="userType")
    package: int
    type: int
    gstin: Optional[str] = None
    is_verified: bool = Field(alias="isVerified")
    certificate: Optional[CertificatePayload] = None
    company_id: Optional[str] = Field(default=None, alias="companyId")
    added_by: Optional[str] = Field(default=None, alias="addedBy")
    added_users: list[str] = Field(default_factory=list, alias="addedUsers")
    date: Optional[datetime] = None
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @classmethod
    def from_doc(cls, user: UserDoc) -> "UserResponse":
        return cls.model_validate(_public_fields(user))


class SignInResponse(UserResponse):
    """Response body for POST /api/signin (200).

    The user fields sit at the top level next to the tokens, the shape the
    existing clients read.
    """

    token: str
    refresh_token: str = Field(alias="refreshToken")
    expires_in: int = Field(alias="expiresIn")

    @classmethod
    def build(
        cls, user: UserDoc, token: str, refresh_token: str, expires_in: int
    ) -> "SignInResponse":
        return cls.model_validate(
            {
                **_public_fields(user),
                "token": token,
                "refreshToken": refresh_token,
                "expiresIn": expires_in,
            }
        )


class TokenResponse(BaseModel):
    """Response body for POST /api/refreshToken (200)."""

    model_config = ConfigDict(populate_by_name=True)

    token: str
    refresh_token: str = Field(alias="refreshToken")
    expires_in: int = Field(alias="expiresIn")


class AddUserResponse(BaseModel):
    """Response body for POST /api/addUsers (200)."""

    model_config = ConfigDict(populate_by_name=True)

    msg: str
    user: UserResponse


def _public_fields(user: UserDoc) -> dict:
    return {
        "_id": str(user.id),
        "email": user.email,
        "name": user.name,
        "phoneNo": user.phone_no,
        "userType": user.user_type,
        "package": user.package,
        "type": user.type,
        "gstin": user.gstin,
        "isVerified": user.is_verified,
        "certificate": encode_attachment(user.certificate),
        "companyId": str(user.company_id) if user.company_id else None,
        "addedBy": str(user.added_by) if user.added_by else None,
        "addedUsers": [str(uid) for uid in user.added_users],
        "date": user.date,
        "updatedAt": user.updated_at,
    }
