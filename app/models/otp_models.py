from typing import Optional

from pydantic import BaseModel, Field, field_validator

from app.schemas.otp import OtpPurpose


class SendOtpRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)
    purpose: OtpPurpose = OtpPurpose.REGISTRATION

    @field_validator("phone_number")
    def strip_phone(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Phone number cannot be empty")
        return v


class VerifyOtpRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)
    otp: str = Field(..., min_length=1, max_length=12)
    verification_token: str = Field(..., min_length=1)
    purpose: OtpPurpose = OtpPurpose.REGISTRATION

    @field_validator("phone_number", "otp")
    def strip_value(cls, v):
        return v.strip()


class ResendOtpRequest(BaseModel):
    phone_number: str = Field(..., min_length=1)
    verification_token: Optional[str] = None
    purpose: OtpPurpose = OtpPurpose.REGISTRATION

    @field_validator("phone_number")
    def strip_phone(cls, v):
        v = v.strip()
        if not v:
            raise ValueError("Phone number cannot be empty")
        return v
