from app.schemas.otp import OtpPurpose

MESSAGE_TEMPLATES = {
    OtpPurpose.REGISTRATION: "Your OTP for registration is {code}. Valid for {validity}.",
    OtpPurpose.PHONE_VERIFICATION: "Your phone verification code is {code}. Valid for {validity}.",
    OtpPurpose.PASSWORD_RESET: "Your password reset code is {code}. Valid for {validity}. Do not share it with anyone.",
    OtpPurpose.LOGIN: "Your login code is {code}. Valid for {validity}.",
}


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_validity(ttl_seconds: int) -> str:
    minutes, seconds = divmod(ttl_seconds, 60)
    if not minutes:
        return _plural(seconds, "second")
    if not seconds:
        return _plural(minutes, "minute")
    return f"{_plural(minutes, 'minute')} {_plural(seconds, 'second')}"


def build_otp_message(purpose: OtpPurpose, code: str, ttl_seconds: int) -> str:
    return MESSAGE_TEMPLATES[purpose].format(code=code, validity=format_validity(ttl_seconds))
