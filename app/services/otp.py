import logging

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.models.otp_models import ResendOtpRequest, SendOtpRequest, VerifyOtpRequest
from app.services.otp_services.ledger import IssueResult, OtpLedger, OtpOutcome, VerifyResult
from app.services.otp_services.store import OtpStoreError

logger = logging.getLogger(__name__)

OUTCOME_STATUS = {
    OtpOutcome.SUCCESS: 200,
    OtpOutcome.CODE_MISMATCH: 400,
    OtpOutcome.INVALID_REQUEST: 404,
    OtpOutcome.ALREADY_VERIFIED: 409,
    OtpOutcome.EXPIRED: 410,
    OtpOutcome.ATTEMPTS_EXHAUSTED: 429,
    OtpOutcome.DELIVERY_FAILED: 502,
}


def _store_failure(e: OtpStoreError) -> JSONResponse:
    logger.error(f"❌ {e}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "message": "Internal error, please try again later"
        }
    )


def _issue_response(result: IssueResult) -> JSONResponse:
    if not result.success:
        return JSONResponse(
            status_code=OUTCOME_STATUS[result.outcome],
            content={
                "success": False,
                "message": result.message,
                "error": result.outcome.value,
                "details": result.error
            }
        )

    return JSONResponse(
        status_code=200,
        content={
            "success": True,
            "message": result.message,
            "data": jsonable_encoder({
                "verification_token": result.verification_token,
                "expires_at": result.expires_at
            })
        }
    )


def _verify_response(result: VerifyResult) -> JSONResponse:
    if result.success:
        return JSONResponse(
            status_code=200,
            content={
                "success": True,
                "message": result.message
            }
        )

    content = {
        "success": False,
        "message": result.message,
        "error": result.outcome.value
    }
    if result.attempts_remaining is not None:
        content["attempts_remaining"] = result.attempts_remaining

    return JSONResponse(status_code=OUTCOME_STATUS[result.outcome], content=content)


async def send_otp(request: SendOtpRequest, ledger: OtpLedger):
    try:
        result = await ledger.issue(request.phone_number, request.purpose)
    except OtpStoreError as e:
        return _store_failure(e)
    return _issue_response(result)


async def verify_otp(request: VerifyOtpRequest, ledger: OtpLedger):
    try:
        result = await ledger.verify(
            request.phone_number,
            request.otp,
            request.verification_token,
            request.purpose,
        )
    except OtpStoreError as e:
        return _store_failure(e)
    return _verify_response(result)


async def resend_otp(request: ResendOtpRequest, ledger: OtpLedger):
    try:
        result = await ledger.resend(
            request.phone_number,
            request.verification_token,
            request.purpose,
        )
    except OtpStoreError as e:
        return _store_failure(e)
    return _issue_response(result)
