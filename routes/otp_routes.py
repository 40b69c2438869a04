"""
Email OTP endpoints.

POST /api/sendOtp    — start verification for an email
POST /api/verifyOtp  — confirm the mailed code
POST /api/resendOtp  — replace the code and mail it again
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_otp_service
from schemas.dto.requests.otp import ResendOtpRequest, SendOtpRequest, VerifyOtpRequest
from schemas.dto.responses.common import MessageResponse
from schemas.dto.responses.otp import OtpResponse
from services.otp_service import OtpDispatch, OtpService

router = APIRouter(prefix="/api", tags=["otp"])

_UNDELIVERED = "The email could not be sent. Please use resend to try again."


def _otp_response(dispatch: OtpDispatch, sent_msg: str) -> OtpResponse:
    if dispatch.status == "pending":
        msg = "Verification in progress. Please check your email for OTP."
    elif dispatch.notification_sent:
        msg = sent_msg
    else:
        msg = _UNDELIVERED
    return OtpResponse(
        msg=msg, status=dispatch.status, notification_sent=dispatch.notification_sent
    )


@router.post("/sendOtp", response_model=OtpResponse)
async def send_otp(
    body: SendOtpRequest, service: OtpService = Depends(get_otp_service)
) -> OtpResponse:
    dispatch = await service.request_otp(body.email)
    return _otp_response(
        dispatch, "OTP sent to your email. Please verify to complete the sign-up."
    )


@router.post("/verifyOtp", response_model=MessageResponse)
async def verify_otp(
    body: VerifyOtpRequest, service: OtpService = Depends(get_otp_service)
) -> MessageResponse:
    await service.verify_otp(body.email, body.otp)
    return MessageResponse(msg="Email verified successfully.")


@router.post("/resendOtp", response_model=OtpResponse)
async def resend_otp(
    body: ResendOtpRequest, service: OtpService = Depends(get_otp_service)
) -> OtpResponse:
    dispatch = await service.resend_otp(body.email)
    return _otp_response(dispatch, "OTP resent successfully. Please check your email.")
