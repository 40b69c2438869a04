"""
Request DTOs for the email OTP endpoints.

SendOtpRequest    — POST /api/sendOtp
VerifyOtpRequest  — POST /api/verifyOtp
ResendOtpRequest  — POST /api/resendOtp
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from schemas.dto.requests.fields import Email, OtpCode


class SendOtpRequest(BaseModel):
    """Request body for POST /api/sendOtp."""

    model_config = ConfigDict(populate_by_name=True)

    email: Email


class VerifyOtpRequest(BaseModel):
    """Request body for POST /api/verifyOtp.

    ``otp`` is the 6-digit code mailed to the address.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Email
    otp: OtpCode


class ResendOtpRequest(BaseModel):
    """Request body for POST /api/resendOtp."""

    model_config = ConfigDict(populate_by_name=True)

    email: Email
