"""
User document model.

Maps to the `users` MongoDB collection. Stored keys are camelCase (the
documents are shared with the web and mobile clients); attributes are
snake_case with aliases.

Two creation paths produce slightly different shapes:
- Sign-up: user_type "user"/"admin", is_verified False, own certificate
- Added user: user_type "added", is_verified True, certificate and
  company_id copied from the parent, added_by set
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from schemas.models.base import MongoBaseModel, PyObjectId

UserType = Literal["user", "admin", "added"]

USER_TYPE_USER = "user"
USER_TYPE_ADMIN = "admin"
USER_TYPE_ADDED = "added"


class Certificate(BaseModel):
    """Uploaded document (business registration proof and similar)."""

    model_config = ConfigDict(populate_by_name=True)

    data: bytes
    content_type: str = Field(alias="contentType")


class UserDoc(MongoBaseModel):
    """Document model for the `users` collection."""

    email: str
    name: str
    phone_no: str = Field(alias="phoneNo")
    password_hash: str = Field(alias="password")
    user_type: UserType = Field(default=USER_TYPE_USER, alias="userType")
    package: int = 0
    type: int = 0
    gstin: Optional[str] = None
    is_verified: bool = Field(default=False, alias="isVerified")
    certificate: Optional[Certificate] = None
    company_id: Optional[PyObjectId] = Field(default=None, alias="companyId")
    added_by: Optional[PyObjectId] = Field(default=None, alias="addedBy")
    added_users: list[PyObjectId] = Field(default_factory=list, alias="addedUsers")
    reset_password_token: Optional[str] = Field(default=None, alias="resetPasswordToken")
    reset_password_expires: Optional[datetime] = Field(
        default=None, alias="resetPasswordExpires"
    )
    date: Optional[datetime] = None
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")
