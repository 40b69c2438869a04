"""
Response DTOs for the email OTP endpoints.

OtpResponse — POST /api/sendOtp and POST /api/resendOtp (200)
"""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from schemas.dto.responses.common import NotificationResponse


class OtpResponse(NotificationResponse):
    """Response body for OTP dispatch endpoints.

    status:
      - "sent"    — a new code was generated and handed to the mail provider
      - "pending" — a code is already outstanding; nothing new was sent
    """

    status: Literal["sent", "pending"] = Field(default="sent")
