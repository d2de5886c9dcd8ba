from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import pytest

from app.schemas.otp import OtpPurpose
from app.services.otp_services.ledger import OtpLedger
from app.services.sms_services.dispatcher import SmsResult


@dataclass
class StoredOtp:
    phone_number: str
    purpose: OtpPurpose
    code: str
    verification_token: str
    expiry: datetime
    attempts: int = 0
    verified: bool = False
    verified_at: Optional[datetime] = None


class InMemoryOtpStore:
    """Dict-backed store with the same conditional-update semantics as Mongo."""

    def __init__(self):
        self.records: Dict[Tuple[str, OtpPurpose], StoredOtp] = {}

    async def upsert(self, phone_number, purpose, *, code, verification_token, expiry):
        self.records[(phone_number, purpose)] = StoredOtp(
            phone_number=phone_number,
            purpose=purpose,
            code=code,
            verification_token=verification_token,
            expiry=expiry,
        )

    def _match(self, phone_number, purpose, verification_token):
        record = self.records.get((phone_number, purpose))
        if record is None or record.verification_token != verification_token:
            return None
        return record

    async def find(self, phone_number, purpose, verification_token):
        return self._match(phone_number, purpose, verification_token)

    async def increment_attempts(self, phone_number, purpose, verification_token, max_attempts):
        record = self._match(phone_number, purpose, verification_token)
        if record is None or record.verified or record.attempts >= max_attempts:
            return None
        record.attempts += 1
        return record.attempts

    async def mark_verified(self, phone_number, purpose, verification_token, verified_at, max_attempts):
        record = self._match(phone_number, purpose, verification_token)
        if record is None or record.verified or record.attempts >= max_attempts:
            return False
        if verified_at > record.expiry:
            return False
        record.verified = True
        record.verified_at = verified_at
        return True

    async def delete(self, phone_number, purpose, verification_token=None):
        record = self.records.get((phone_number, purpose))
        if record is None:
            return 0
        if verification_token is not None and record.verification_token != verification_token:
            return 0
        del self.records[(phone_number, purpose)]
        return 1


@dataclass
class ScriptedDispatcher:
    succeed: bool = True
    error: str = "Invalid sender id"
    sent: List[Tuple[str, str]] = field(default_factory=list)

    async def send(self, phone_number, message):
        self.sent.append((phone_number, message))
        if self.succeed:
            return SmsResult(success=True, message_id=str(len(self.sent)), status_text="Success")
        return SmsResult(success=False, error=self.error, status_code="1003")

    async def check_balance(self):
        return {"balance": "42.00"}

    async def get_status(self, message_id):
        return None


class FakeClock:
    def __init__(self, start: datetime = datetime(2025, 1, 1, 12, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class SequenceGenerator:
    def __init__(self, *values):
        self.values = list(values)

    def __call__(self) -> str:
        return self.values.pop(0)


@pytest.fixture
def store():
    return InMemoryOtpStore()


@pytest.fixture
def dispatcher():
    return ScriptedDispatcher()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(store, dispatcher, clock):
    return OtpLedger(
        store=store,
        dispatcher=dispatcher,
        ttl_seconds=300,
        max_attempts=5,
        code_generator=SequenceGenerator("482913", "105577", "771204", "300001"),
        token_generator=SequenceGenerator("t1", "t2", "t3", "t4"),
        clock=clock,
    )
