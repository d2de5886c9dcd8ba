from fastapi import Request

from app.core.config import Settings
from app.services.otp_services.ledger import OtpLedger, generate_otp_code
from app.services.otp_services.store import BeanieOtpStore
from app.services.sms_services.dispatcher import build_dispatcher


def build_ledger(settings: Settings, dispatcher) -> OtpLedger:
    return OtpLedger(
        store=BeanieOtpStore(),
        dispatcher=dispatcher,
        ttl_seconds=settings.OTP_TTL_SECONDS,
        max_attempts=settings.OTP_MAX_ATTEMPTS,
        code_generator=lambda: generate_otp_code(settings.OTP_LENGTH),
    )


def setup_services(app, settings: Settings):
    """Construct the dispatcher and ledger once and hang them on app.state."""
    dispatcher = build_dispatcher(settings)
    app.state.sms_dispatcher = dispatcher
    app.state.otp_ledger = build_ledger(settings, dispatcher)


def get_otp_ledger(request: Request) -> OtpLedger:
    return request.app.state.otp_ledger


def get_sms_dispatcher(request: Request):
    return request.app.state.sms_dispatcher
