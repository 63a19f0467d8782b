from fastapi import APIRouter, HTTPException, Depends

from vidya.auth.otp_service import OtpService
from vidya.learning.database import LearningStore
from vidya.learning.dependencies import get_store, get_otp_service
from vidya.learning.models import (
    OtpSendRequest, OtpSendResponse, OtpVerifyRequest, OtpVerifyResponse
)

router = APIRouter(tags=["Authentication"])

# ==================== OTP ====================

@router.post("/otp/send", response_model=OtpSendResponse)
@router.post("/auth/send-otp", response_model=OtpSendResponse, include_in_schema=False)
async def send_otp(
    payload: OtpSendRequest,
    otp_service: OtpService = Depends(get_otp_service)
):
    """
    Issue a fresh code for the number. Any earlier code stops working.
    The code is returned in the response because no SMS channel exists yet.
    """
    record = await otp_service.issue(payload.mobile_number)
    return OtpSendResponse(success=True, message="OTP sent successfully", otp=record.otp)


@router.post("/otp/verify", response_model=OtpVerifyResponse)
@router.post("/auth/verify-otp", response_model=OtpVerifyResponse, include_in_schema=False)
async def verify_otp(
    payload: OtpVerifyRequest,
    otp_service: OtpService = Depends(get_otp_service),
    store: LearningStore = Depends(get_store)
):
    if not await otp_service.verify(payload.mobile_number, payload.otp):
        raise HTTPException(status_code=400, detail="Invalid or expired OTP")

    user = await store.get_user_by_mobile(payload.mobile_number)
    return OtpVerifyResponse(success=True, user_exists=user is not None, user=user)
