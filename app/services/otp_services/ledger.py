import logging
import secrets
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
from uuid import uuid4

from pydantic import BaseModel

from app.schemas.otp import OtpPurpose, OtpRecord
from app.services.otp_services.messages import build_otp_message
from app.services.otp_services.store import OtpStore
from app.services.sms_services.dispatcher import SmsDispatcher, mask_phone

logger = logging.getLogger(__name__)


class OtpOutcome(str, Enum):
    SUCCESS = "success"
    INVALID_REQUEST = "invalid_request"
    ALREADY_VERIFIED = "already_verified"
    ATTEMPTS_EXHAUSTED = "attempts_exhausted"
    EXPIRED = "expired"
    CODE_MISMATCH = "code_mismatch"
    DELIVERY_FAILED = "delivery_failed"


class IssueResult(BaseModel):
    success: bool
    outcome: OtpOutcome
    message: str
    verification_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    error: Optional[str] = None


class VerifyResult(BaseModel):
    success: bool
    outcome: OtpOutcome
    message: str
    attempts_remaining: Optional[int] = None


def generate_otp_code(length: int = 6) -> str:
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def generate_verification_token() -> str:
    return uuid4().hex


class OtpLedger:
    """Issues and verifies one-time codes per (phone number, purpose).

    Domain failures come back as ``IssueResult`` / ``VerifyResult`` values.
    Store faults propagate as ``OtpStoreError`` and are never retried here.
    """

    def __init__(
        self,
        store: OtpStore,
        dispatcher: SmsDispatcher,
        ttl_seconds: int = 300,
        max_attempts: int = 5,
        code_generator: Callable[[], str] = generate_otp_code,
        token_generator: Callable[[], str] = generate_verification_token,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if ttl_seconds < 1:
            raise ValueError("ttl_seconds must be positive")

        self.store = store
        self.dispatcher = dispatcher
        self.ttl_seconds = ttl_seconds
        self.max_attempts = max_attempts
        self._generate_code = code_generator
        self._generate_token = token_generator
        self._now = clock

    async def issue(self, phone_number: str, purpose: OtpPurpose = OtpPurpose.REGISTRATION) -> IssueResult:
        code = self._generate_code()
        verification_token = self._generate_token()
        expiry = self._now() + timedelta(seconds=self.ttl_seconds)

        await self.store.upsert(
            phone_number,
            purpose,
            code=code,
            verification_token=verification_token,
            expiry=expiry,
        )

        message = build_otp_message(purpose, code, self.ttl_seconds)
        try:
            sms_result = await self.dispatcher.send(phone_number, message)
        except BaseException:
            # Includes cancellation, a code that was never delivered must not persist
            await self.store.delete(phone_number, purpose, verification_token)
            raise

        if not sms_result.success:
            # Only remove our own issuance; a newer one may have replaced it
            await self.store.delete(phone_number, purpose, verification_token)
            logger.warning(
                f"⚠️ OTP delivery failed for {mask_phone(phone_number)} ({purpose.value}): {sms_result.error}"
            )
            return IssueResult(
                success=False,
                outcome=OtpOutcome.DELIVERY_FAILED,
                message="Failed to send OTP SMS",
                error=sms_result.error or "SMS delivery failed",
            )

        logger.info(f"✅ OTP issued for {mask_phone(phone_number)} ({purpose.value}), expires {expiry.isoformat()}")
        return IssueResult(
            success=True,
            outcome=OtpOutcome.SUCCESS,
            message="OTP sent successfully",
            verification_token=verification_token,
            expires_at=expiry,
        )

    async def verify(
        self,
        phone_number: str,
        code: str,
        verification_token: str,
        purpose: OtpPurpose = OtpPurpose.REGISTRATION,
    ) -> VerifyResult:
        now = self._now()
        record = await self.store.find(phone_number, purpose, verification_token)
        if record is None:
            return self._invalid_request()

        blocked = self._blocked(record, now)
        if blocked:
            return blocked

        if not secrets.compare_digest(record.code.encode(), str(code).encode()):
            attempts = await self.store.increment_attempts(
                phone_number, purpose, verification_token, self.max_attempts
            )
            if attempts is None:
                return await self._reevaluate(phone_number, purpose, verification_token, now)

            remaining = max(0, self.max_attempts - attempts)
            logger.info(f"OTP mismatch for {mask_phone(phone_number)} ({purpose.value}), {remaining} attempts remaining")
            return VerifyResult(
                success=False,
                outcome=OtpOutcome.CODE_MISMATCH,
                message=f"Invalid OTP. {remaining} attempts remaining.",
                attempts_remaining=remaining,
            )

        if not await self.store.mark_verified(
            phone_number, purpose, verification_token, now, self.max_attempts
        ):
            return await self._reevaluate(phone_number, purpose, verification_token, now)

        logger.info(f"✅ OTP verified for {mask_phone(phone_number)} ({purpose.value})")
        return VerifyResult(
            success=True,
            outcome=OtpOutcome.SUCCESS,
            message="OTP verified successfully",
        )

    async def resend(
        self,
        phone_number: str,
        verification_token: Optional[str] = None,
        purpose: OtpPurpose = OtpPurpose.REGISTRATION,
    ) -> IssueResult:
        # The token is accepted but not checked, a user who lost it can still resend
        await self.store.delete(phone_number, purpose)
        return await self.issue(phone_number, purpose)

    def _blocked(self, record: OtpRecord, now: datetime) -> Optional[VerifyResult]:
        if record.verified:
            return VerifyResult(
                success=False,
                outcome=OtpOutcome.ALREADY_VERIFIED,
                message="OTP already verified",
            )
        if record.attempts >= self.max_attempts:
            return VerifyResult(
                success=False,
                outcome=OtpOutcome.ATTEMPTS_EXHAUSTED,
                message="Maximum attempts reached. Please request a new OTP.",
                attempts_remaining=0,
            )
        if now > record.expiry:
            return VerifyResult(
                success=False,
                outcome=OtpOutcome.EXPIRED,
                message="OTP expired. Please request a new one.",
            )
        return None

    async def _reevaluate(self, phone_number, purpose, verification_token, now) -> VerifyResult:
        # A concurrent request changed the record between our read and write
        record = await self.store.find(phone_number, purpose, verification_token)
        if record is None:
            return self._invalid_request()
        return self._blocked(record, now) or self._invalid_request()

    @staticmethod
    def _invalid_request() -> VerifyResult:
        return VerifyResult(
            success=False,
            outcome=OtpOutcome.INVALID_REQUEST,
            message="Invalid OTP request",
        )
