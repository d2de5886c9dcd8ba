import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional, Protocol

from beanie.odm.queries.update import UpdateResponse
from beanie.operators import Inc, Set
from pymongo.errors import PyMongoError

from app.schemas.otp import OtpPurpose, OtpRecord

logger = logging.getLogger(__name__)


class OtpStoreError(Exception):
    """Raised when the OTP collection cannot be read or written."""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"OTP store {operation} failed: {cause}")
        self.operation = operation
        self.cause = cause


class OtpStore(Protocol):
    async def upsert(
        self,
        phone_number: str,
        purpose: OtpPurpose,
        *,
        code: str,
        verification_token: str,
        expiry: datetime,
    ) -> None:
        ...

    async def find(
        self, phone_number: str, purpose: OtpPurpose, verification_token: str
    ) -> Optional[OtpRecord]:
        ...

    async def increment_attempts(
        self,
        phone_number: str,
        purpose: OtpPurpose,
        verification_token: str,
        max_attempts: int,
    ) -> Optional[int]:
        ...

    async def mark_verified(
        self,
        phone_number: str,
        purpose: OtpPurpose,
        verification_token: str,
        verified_at: datetime,
        max_attempts: int,
    ) -> bool:
        ...

    async def delete(
        self,
        phone_number: str,
        purpose: OtpPurpose,
        verification_token: Optional[str] = None,
    ) -> int:
        ...


@asynccontextmanager
async def _store_errors(operation: str):
    try:
        yield
    except PyMongoError as e:
        logger.error(f"❌ OTP store {operation} failed: {e}")
        raise OtpStoreError(operation, e) from e


class BeanieOtpStore:
    """MongoDB-backed OTP records.

    Every mutation is a single document operation so that concurrent
    requests for the same (phone, purpose) never lose updates.
    """

    async def upsert(self, phone_number, purpose, *, code, verification_token, expiry):
        now = datetime.utcnow()
        async with _store_errors("upsert"):
            # Atomic replace-or-insert, keyed by the unique (phone, purpose) index
            await OtpRecord.get_motor_collection().find_one_and_update(
                {"phone_number": phone_number, "purpose": purpose.value},
                {
                    "$set": {
                        "code": code,
                        "verification_token": verification_token,
                        "expiry": expiry,
                        "attempts": 0,
                        "verified": False,
                        "verified_at": None,
                        "created_at": now,
                    }
                },
                upsert=True,
            )

    async def find(self, phone_number, purpose, verification_token):
        async with _store_errors("find"):
            return await OtpRecord.find_one(
                OtpRecord.phone_number == phone_number,
                OtpRecord.purpose == purpose,
                OtpRecord.verification_token == verification_token,
            )

    async def increment_attempts(self, phone_number, purpose, verification_token, max_attempts):
        async with _store_errors("increment_attempts"):
            record = await OtpRecord.find_one(
                OtpRecord.phone_number == phone_number,
                OtpRecord.purpose == purpose,
                OtpRecord.verification_token == verification_token,
                OtpRecord.verified == False,  # noqa: E712
                OtpRecord.attempts < max_attempts,
            ).update(
                Inc({OtpRecord.attempts: 1}),
                response_type=UpdateResponse.NEW_DOCUMENT,
            )
        return record.attempts if record else None

    async def mark_verified(self, phone_number, purpose, verification_token, verified_at, max_attempts):
        async with _store_errors("mark_verified"):
            result = await OtpRecord.find_one(
                OtpRecord.phone_number == phone_number,
                OtpRecord.purpose == purpose,
                OtpRecord.verification_token == verification_token,
                OtpRecord.verified == False,  # noqa: E712
                OtpRecord.attempts < max_attempts,
                OtpRecord.expiry >= verified_at,
            ).update(
                Set({OtpRecord.verified: True, OtpRecord.verified_at: verified_at})
            )
        return bool(result and result.modified_count)

    async def delete(self, phone_number, purpose, verification_token=None):
        filters = [
            OtpRecord.phone_number == phone_number,
            OtpRecord.purpose == purpose,
        ]
        if verification_token is not None:
            filters.append(OtpRecord.verification_token == verification_token)

        async with _store_errors("delete"):
            result = await OtpRecord.find(*filters).delete()
        return result.deleted_count if result else 0
