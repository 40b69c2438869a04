"""
Common response DTOs shared across multiple endpoints.

ErrorResponse         — standard error shape from AppError.to_dict()
HealthResponse        — GET /health
MessageResponse       — generic {msg} shape used by most mutating endpoints
NotificationResponse  — {msg, notificationSent} for endpoints that send mail
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponse(BaseModel):
    """Standard error JSON body produced by the AppError exception handler."""

    model_config = ConfigDict(populate_by_name=True)

    error: str
    code: str
    field: Optional[str] = None
    details: Optional[Any] = None


class HealthResponse(BaseModel):
    """Response body for GET /health."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    checks: dict[str, str]


class MessageResponse(BaseModel):
    """Generic message response returned by several endpoints."""

    model_config = ConfigDict(populate_by_name=True)

    msg: str


class NotificationResponse(MessageResponse):
    """Message response for endpoints that dispatch an email.

    ``notificationSent`` is False when the mail provider rejected or never
    received the message; the state change itself has still been persisted.
    """

    notification_sent: bool = Field(alias="notificationSent")
