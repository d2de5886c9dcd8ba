from fastapi import APIRouter, Depends

from app.core.dependencies import get_otp_ledger
from app.services.otp import resend_otp, send_otp, verify_otp
from app.services.otp_services.ledger import OtpLedger

# --- Pydantics Model Import -----
from app.models.otp_models import ResendOtpRequest, SendOtpRequest, VerifyOtpRequest

router = APIRouter()


@router.post("/send")
async def send(request: SendOtpRequest, ledger: OtpLedger = Depends(get_otp_ledger)):
    return await send_otp(request, ledger)


@router.post("/verify")
async def verify(request: VerifyOtpRequest, ledger: OtpLedger = Depends(get_otp_ledger)):
    return await verify_otp(request, ledger)


@router.post("/resend")
async def resend(request: ResendOtpRequest, ledger: OtpLedger = Depends(get_otp_ledger)):
    return await resend_otp(request, ledger)
