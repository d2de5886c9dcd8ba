from datetime import datetime
from enum import Enum
from typing import Optional

from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, IndexModel

from app.core.config import settings


class OtpPurpose(str, Enum):
    REGISTRATION = "registration"
    PHONE_VERIFICATION = "phone-verification"
    PASSWORD_RESET = "password-reset"
    LOGIN = "login"


class OtpRecord(Document):
    phone_number: str
    purpose: OtpPurpose = OtpPurpose.REGISTRATION
    code: str
    verification_token: str
    expiry: datetime
    attempts: int = 0
    verified: bool = False
    verified_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "otps"
        indexes = [
            IndexModel(
                [("phone_number", ASCENDING), ("purpose", ASCENDING)],
                unique=True,
                name="phone_purpose_unique",
            ),
            IndexModel([("verification_token", ASCENDING)], name="verification_token"),
            IndexModel(
                [("created_at", ASCENDING)],
                expireAfterSeconds=settings.OTP_RECORD_RETENTION_SECONDS,
                name="created_at_ttl",
            ),
        ]
