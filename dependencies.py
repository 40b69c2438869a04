"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Long-lived collaborators (database handle, mail
gateway, token service) live on app.state and are created once in the
lifespan; repositories and services are cheap wrappers built per request.
"""

from __future__ import annotations

from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request

from config import AppSettings
from errors import AuthenticationError
from infrastructure.email.protocol import NotificationGateway
from repositories.otp_repository import OtpRepository
from repositories.user_repository import UserRepository
from services.account_service import AccountService
from services.otp_service import OtpService
from services.token_service import TokenService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


async def get_db(request: Request):
    """Return the async MongoDB database from app.state."""
    return request.app.state.db


def get_notification_gateway(request: Request) -> NotificationGateway:
    return request.app.state.notifications


def get_token_service(request: Request) -> TokenService:
    return request.app.state.tokens


async def get_user_repository(
    db=Depends(get_db), settings: AppSettings = Depends(get_settings)
) -> UserRepository:
    return UserRepository(db, use_transactions=settings.db.mongodb_transactions)


async def get_otp_repository(db=Depends(get_db)) -> OtpRepository:
    return OtpRepository(db)


async def get_otp_service(
    otps: OtpRepository = Depends(get_otp_repository),
    users: UserRepository = Depends(get_user_repository),
    notifications: NotificationGateway = Depends(get_notification_gateway),
    settings: AppSettings = Depends(get_settings),
) -> OtpService:
    return OtpService(otps, users, notifications, settings.account)


async def get_account_service(
    users: UserRepository = Depends(get_user_repository),
    otp: OtpService = Depends(get_otp_service),
    tokens: TokenService = Depends(get_token_service),
    notifications: NotificationGateway = Depends(get_notification_gateway),
    settings: AppSettings = Depends(get_settings),
) -> AccountService:
    return AccountService(users, otp, tokens, notifications, settings.account)


def _bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.lower().startswith("bearer "):
        return None
    return auth_header.split(" ", 1)[1].strip() or None


async def get_current_user_id(
    request: Request, tokens: TokenService = Depends(get_token_service)
) -> ObjectId:
    """Resolve the authenticated user id from the request's access token."""
    token = _bearer_token(request)
    if not token:
        raise AuthenticationError("Missing access token.")
    user_id = tokens.verify_access(token)
    if not ObjectId.is_valid(user_id):
        raise AuthenticationError("Invalid token.")
    return ObjectId(user_id)
