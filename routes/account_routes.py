"""
Account endpoints.

POST   /api/signUp                          — create a primary account (multipart)
POST   /api/addUsers                        — create a sub-account under an existing user
PATCH  /api/updateAddedUser/{userId}        — partial update of a sub-account
GET    /api/addUser?addedBy=                — list sub-accounts (bearer token)
DELETE /api/deleteAddedUser/{addedUserId}   — delete a sub-account (bearer token)
POST   /api/signin                          — authenticate, returns tokens
POST   /api/refreshToken                    — rotate the token pair
POST   /api/forgetPassword                  — mail a password reset link
POST   /api/resetPassword/{resetToken}      — set a new password
GET    /api/user                            — list users (bearer token)
GET    /api/me                              — the authenticated user
PUT    /api/updateUser/{id}                 — partial update + optional certificate (multipart)
DELETE /api/deleteUser/{id}                 — hard delete
"""

from __future__ import annotations

from typing import Annotated, Optional, TypeVar

from bson import ObjectId
from fastapi import APIRouter, Body, Depends, File, Form, Query, UploadFile
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from dependencies import get_account_service, get_current_user_id
from errors import NotFoundError, ValidationError
from schemas.dto.requests.account import (
    AddUserRequest,
    DeleteAddedUserRequest,
    ForgetPasswordRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    SignInRequest,
    SignUpForm,
    UpdateAddedUserRequest,
    UpdateUserForm,
)
from schemas.dto.responses.account import (
    AddUserResponse,
    SignInResponse,
    TokenResponse,
    UserResponse,
)
from schemas.dto.responses.common import MessageResponse, NotificationResponse
from schemas.models.user import Certificate
from services.account_service import USER_NOT_FOUND, AccountService

router = APIRouter(prefix="/api", tags=["accounts"])

M = TypeVar("M", bound=BaseModel)

FormStr = Optional[str]


def _parse_form(model: type[M], fields: dict) -> M:
    """Validate multipart fields, reporting failures like JSON body errors."""
    try:
        return model.model_validate({k: v for k, v in fields.items() if v is not None})
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err["loc"]) or None, "message": err["msg"]}
            for err in e.errors()
        ]
        field = details[0]["field"] if len(details) == 1 else None
        raise ValidationError("Invalid request.", field=field, details=details)


def _user_id(value: str) -> ObjectId:
    # A malformed id cannot match any document
    if not ObjectId.is_valid(value):
        raise NotFoundError(USER_NOT_FOUND)
    return ObjectId(value)


async def _read_certificate(upload: Optional[UploadFile]) -> Optional[Certificate]:
    if upload is None:
        return None
    data = await upload.read()
    return Certificate(
        data=data, content_type=upload.content_type or "application/octet-stream"
    )


# ── sign-up and sub-accounts ────────────────────────────────────────────────


@router.post("/signUp", response_model=UserResponse)
async def sign_up(
    name: Annotated[FormStr, Form()] = None,
    email: Annotated[FormStr, Form()] = None,
    password: Annotated[FormStr, Form()] = None,
    phone_no: Annotated[FormStr, Form(alias="phoneNo")] = None,
    user_type: Annotated[FormStr, Form(alias="userType")] = None,
    package: Annotated[FormStr, Form()] = None,
    gstin: Annotated[FormStr, Form()] = None,
    type_: Annotated[FormStr, Form(alias="type")] = None,
    certificate: Annotated[Optional[UploadFile], File()] = None,
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    form = _parse_form(
        SignUpForm,
        {
            "name": name,
            "email": email,
            "password": password,
            "phoneNo": phone_no,
            "userType": user_type,
            "package": package,
            "gstin": gstin,
            "type": type_,
        },
    )
    user = await service.sign_up(form, await _read_certificate(certificate))
    return UserResponse.from_doc(user)


@router.post("/addUsers", response_model=AddUserResponse)
async def add_users(
    body: AddUserRequest, service: AccountService = Depends(get_account_service)
) -> AddUserResponse:
    user = await service.add_user(body)
    return AddUserResponse(msg="User Created", user=UserResponse.from_doc(user))


@router.patch("/updateAddedUser/{user_id}", response_model=MessageResponse)
async def update_added_user(
    user_id: str,
    body: UpdateAddedUserRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await service.update_added_user(_user_id(user_id), body)
    return MessageResponse(msg="User updated successfully")


@router.get("/addUser", response_model=list[UserResponse])
async def list_added_users(
    added_by: Annotated[str, Query(alias="addedBy")],
    _: ObjectId = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> list[UserResponse]:
    if not ObjectId.is_valid(added_by):
        raise ValidationError("Invalid addedBy id.", field="addedBy")
    users = await service.list_added_users(ObjectId(added_by))
    return [UserResponse.from_doc(u) for u in users]


@router.delete("/deleteAddedUser/{added_user_id}", response_model=MessageResponse)
async def delete_added_user(
    added_user_id: str,
    body: Annotated[Optional[DeleteAddedUserRequest], Body()] = None,
    _: ObjectId = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    parent_id = body.user_id if body is not None else None
    await service.delete_added_user(_user_id(added_user_id), parent_id)
    return MessageResponse(msg="User deleted successfully!")


# ── authentication ──────────────────────────────────────────────────────────


@router.post("/signin", response_model=SignInResponse)
async def sign_in(
    body: SignInRequest, service: AccountService = Depends(get_account_service)
) -> SignInResponse:
    user, tokens = await service.sign_in(body.email, body.password)
    return SignInResponse.build(
        user, tokens.access_token, tokens.refresh_token, tokens.expires_in
    )


@router.post("/refreshToken", response_model=TokenResponse)
async def refresh_token(
    body: RefreshTokenRequest, service: AccountService = Depends(get_account_service)
) -> TokenResponse:
    tokens = await service.refresh(body.refresh_token)
    return TokenResponse(
        token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
    )


@router.post("/forgetPassword", response_model=NotificationResponse)
async def forget_password(
    body: ForgetPasswordRequest, service: AccountService = Depends(get_account_service)
) -> NotificationResponse:
    sent = await service.forget_password(body.email)
    msg = (
        "Password reset token sent to your email."
        if sent
        else "Password reset requested, but the email could not be sent. Please try again."
    )
    return NotificationResponse(msg=msg, notification_sent=sent)


@router.post("/resetPassword/{reset_token}", response_model=MessageResponse)
async def reset_password(
    reset_token: str,
    body: ResetPasswordRequest,
    service: AccountService = Depends(get_account_service),
) -> MessageResponse:
    await service.reset_password(reset_token, body.new_password)
    return MessageResponse(msg="Password reset successfully.")


# ── profile ─────────────────────────────────────────────────────────────────


@router.get("/user", response_model=list[UserResponse])
async def list_users(
    _: ObjectId = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> list[UserResponse]:
    return [UserResponse.from_doc(u) for u in await service.list_users()]


@router.get("/me", response_model=UserResponse)
async def me(
    user_id: ObjectId = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    return UserResponse.from_doc(await service.get_user(user_id))


@router.put("/updateUser/{user_id}", response_model=UserResponse)
async def update_user(
    user_id: str,
    name: Annotated[FormStr, Form()] = None,
    email: Annotated[FormStr, Form()] = None,
    phone_no: Annotated[FormStr, Form(alias="phoneNo")] = None,
    user_type: Annotated[FormStr, Form(alias="userType")] = None,
    package: Annotated[FormStr, Form()] = None,
    gstin: Annotated[FormStr, Form()] = None,
    is_verified: Annotated[FormStr, Form(alias="isVerified")] = None,
    company_id: Annotated[FormStr, Form(alias="companyId")] = None,
    certificate: Annotated[Optional[UploadFile], File()] = None,
    service: AccountService = Depends(get_account_service),
) -> UserResponse:
    form = _parse_form(
        UpdateUserForm,
        {
            "name": name,
            "email": email,
            "phoneNo": phone_no,
            "userType": user_type,
            "package": package,
            "gstin": gstin,
            "isVerified": is_verified,
            "companyId": company_id,
        },
    )
    user = await service.update_user(
        _user_id(user_id), form, await _read_certificate(certificate)
    )
    return UserResponse.from_doc(user)


@router.delete("/deleteUser/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str, service: AccountService = Depends(get_account_service)
) -> MessageResponse:
    await service.delete_user(_user_id(user_id))
    return MessageResponse(msg="User deleted successfully!")
