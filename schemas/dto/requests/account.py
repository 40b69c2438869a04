"""
Request DTOs for the account endpoints.

SignUpForm               — POST /api/signUp            (multipart)
AddUserRequest           — POST /api/addUsers
UpdateAddedUserRequest   — PATCH /api/updateAddedUser/{userId}
DeleteAddedUserRequest   — DELETE /api/deleteAddedUser/{addedUserId}
SignInRequest            — POST /api/signin
RefreshTokenRequest      — POST /api/refreshToken
ForgetPasswordRequest    — POST /api/forgetPassword
ResetPasswordRequest     — POST /api/resetPassword/{resetToken}
UpdateUserForm           — PUT /api/updateUser/{id}      (multipart)
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from schemas.dto.requests.fields import (
    Email,
    NonBlankStr,
    OptionalBool,
    OptionalEmail,
    OptionalInt,
    OptionalPhoneNo,
    OptionalStr,
    PhoneNo,
    blank_to_none,
)
from schemas.models.base import PyObjectId
from shared.validators import normalize_email

OptionalObjectId = Annotated[Optional[PyObjectId], BeforeValidator(blank_to_none)]


class SignUpForm(BaseModel):
    """Multipart fields for POST /api/signUp (the file part is handled separately).

    ``userType`` is limited to primary account types; sub-accounts are only
    created through /api/addUsers.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: NonBlankStr
    email: Email
    password: str
    phone_no: PhoneNo = Field(alias="phoneNo")
    user_type: Annotated[
        Literal["user", "admin"], BeforeValidator(lambda v: blank_to_none(v) or "user")
    ] = Field(default="user", alias="userType")
    package: Annotated[int, BeforeValidator(lambda v: blank_to_none(v) or 0)] = 0
    type: Annotated[int, BeforeValidator(lambda v: blank_to_none(v) or 0)] = 0
    gstin: OptionalStr = None


class AddUserRequest(BaseModel):
    """Request body for POST /api/addUsers.

    The new account is always created as ``userType="added"``; any userType
    sent by the client is ignored.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: NonBlankStr
    email: Email
    password: str
    phone_no: PhoneNo = Field(alias="phoneNo")
    package: Annotated[int, BeforeValidator(lambda v: blank_to_none(v) or 1)] = 1
    type: Annotated[int, BeforeValidator(lambda v: blank_to_none(v) or 0)] = 0
    gstin: OptionalStr = None
    added_by: PyObjectId = Field(alias="addedBy")


class UpdateAddedUserRequest(BaseModel):
    """Request body for PATCH /api/updateAddedUser/{userId}.

    Fields left out, null or blank keep their stored value.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: OptionalStr = None
    phone_no: OptionalPhoneNo = Field(default=None, alias="phoneNo")
    email: OptionalEmail = None


class DeleteAddedUserRequest(BaseModel):
    """Optional body for DELETE /api/deleteAddedUser/{addedUserId}.

    ``userId`` names the parent account; when absent the child's own
    ``addedBy`` is used.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    user_id: OptionalObjectId = Field(default=None, alias="userId")


class SignInRequest(BaseModel):
    """Request body for POST /api/signin.

    The email is only normalised here, not format-checked: an unknown or
    malformed address must fail exactly like a wrong password.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Annotated[str, BeforeValidator(lambda v: normalize_email(v) if isinstance(v, str) else v)]
    password: str


class RefreshTokenRequest(BaseModel):
    """Request body for POST /api/refreshToken."""

    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(alias="refreshToken", min_length=1)


class ForgetPasswordRequest(BaseModel):
    """Request body for POST /api/forgetPassword."""

    model_config = ConfigDict(populate_by_name=True)

    email: Email


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/resetPassword/{resetToken}."""

    model_config = ConfigDict(populate_by_name=True)

    new_password: str = Field(alias="newPassword")


class UpdateUserForm(BaseModel):
    """Multipart fields for PUT /api/updateUser/{id}.

    Partial update: only supplied fields change. ``"null"`` and blank values
    count as not supplied.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: OptionalStr = None
    email: OptionalEmail = None
    phone_no: OptionalPhoneNo = Field(default=None, alias="phoneNo")
    user_type: Annotated[
        Optional[Literal["user", "admin"]], BeforeValidator(blank_to_none)
    ] = Field(default=None, alias="userType")
    package: OptionalInt = None
    gstin: OptionalStr = None
    is_verified: OptionalBool = Field(default=None, alias="isVerified")
    company_id: OptionalObjectId = Field(default=None, alias="companyId")

    def changes(self) -> dict:
        """Return the supplied fields keyed by attribute name."""
        return self.model_dump(exclude_none=True)
