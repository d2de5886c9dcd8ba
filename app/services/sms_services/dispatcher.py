import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel

from app.core.config import Settings

logger = logging.getLogger(__name__)


class SmsResult(BaseModel):
    success: bool
    message_id: Optional[str] = None
    status_text: Optional[str] = None
    error: Optional[str] = None
    status_code: Optional[str] = None


class SmsDispatcher(Protocol):
    async def send(self, phone_number: str, message: str) -> SmsResult:
        ...


def mask_phone(phone_number: str, visible_digits: int = 2) -> str:
    if not phone_number:
        return ""
    if len(phone_number) <= visible_digits:
        return phone_number
    return "*" * (len(phone_number) - visible_digits) + phone_number[-visible_digits:]


def mask_digits(message: str) -> str:
    """Hide runs of digits (codes) in a message before it is logged."""
    if not message:
        return ""
    return re.sub(r"\d{2,}", lambda m: "*" * (len(m.group(0)) - 2) + m.group(0)[-2:], message)


@dataclass
class SonaliSmsDispatcher:
    """SonaliSMS HTTP gateway.

    The gateway always answers with a JSON body carrying its own status:
    ``Status == "0"`` means the message was accepted, anything else is a
    rejection described by ``Text``. Exactly one request is made per send.
    """

    api_key: str
    secret_key: str
    sender_id: str
    send_url: str
    status_url: str
    balance_url: str
    timeout: float = 10.0
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def send(self, phone_number: str, message: str) -> SmsResult:
        params = {
            "apikey": self.api_key,
            "secretkey": self.secret_key,
            "callerID": self.sender_id,
            "toUser": phone_number,
            "messageContent": message,
        }

        try:
            async with self._client() as client:
                response = await client.get(self.send_url, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ SMS sending to {mask_phone(phone_number)} failed: {e}")
            return SmsResult(success=False, error=f"Failed to send SMS: {e}")

        if not isinstance(data, dict):
            logger.error(f"❌ Unexpected SMS gateway response: {data!r}")
            return SmsResult(success=False, error="Unexpected SMS gateway response")

        status = str(data.get("Status", ""))
        text = data.get("Text")
        if status == "0":
            message_id = data.get("Message_ID")
            logger.info(f"📨 SMS accepted for {mask_phone(phone_number)} (id={message_id})")
            return SmsResult(
                success=True,
                message_id=str(message_id) if message_id is not None else None,
                status_text=text,
            )

        logger.warning(f"⚠️ SMS rejected for {mask_phone(phone_number)}: status={status} text={text}")
        return SmsResult(success=False, error=text or "SMS rejected by gateway", status_code=status)

    async def check_balance(self) -> Optional[dict]:
        try:
            async with self._client() as client:
                response = await client.get(self.balance_url, params={"client": self.api_key})
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Failed to check SMS balance: {e}")
            return None

    async def get_status(self, message_id: str) -> Optional[dict]:
        params = {
            "apikey": self.api_key,
            "secretkey": self.secret_key,
            "messageid": message_id,
        }
        try:
            async with self._client() as client:
                response = await client.get(self.status_url, params=params)
                response.raise_for_status()
                return response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"❌ Failed to check SMS status for {message_id}: {e}")
            return None


@dataclass
class BoomcastSmsDispatcher:
    """Boomcast OTP gateway.

    The gateway has no status field in its reply, an HTTP 2xx answer is
    taken as acceptance. It offers no balance or status endpoints.
    """

    username: str
    password: str
    masking: str
    send_url: str
    timeout: float = 10.0
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    async def send(self, phone_number: str, message: str) -> SmsResult:
        params = {
            "masking": self.masking,
            "userName": self.username,
            "password": self.password,
            "MsgType": "TEXT",
            "receiver": phone_number,
            "message": message,
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.get(self.send_url, params=params)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"❌ Boomcast SMS to {mask_phone(phone_number)} failed: {e}")
            return SmsResult(success=False, error=f"Failed to send SMS: {e}")

        logger.info(f"📨 Boomcast SMS accepted for {mask_phone(phone_number)}")
        return SmsResult(success=True, status_text=response.text.strip() or None)

    async def check_balance(self) -> Optional[dict]:
        return None

    async def get_status(self, message_id: str) -> Optional[dict]:
        return None


@dataclass
class LogSmsDispatcher:
    """Development backend: logs the (masked) message instead of sending it."""

    async def send(self, phone_number: str, message: str) -> SmsResult:
        logger.info(f"📨 [log sms] to={mask_phone(phone_number)} msg={mask_digits(message)}")
        return SmsResult(success=True, message_id=None, status_text="logged")

    async def check_balance(self) -> Optional[dict]:
        return None

    async def get_status(self, message_id: str) -> Optional[dict]:
        return None


def resolve_provider(settings: Settings) -> str:
    if settings.SMS_PROVIDER:
        return settings.SMS_PROVIDER.lower()
    # Real gateways are opt-in outside production
    return "sonali" if settings.ENVIRONMENT.lower() == "production" else "log"


def build_dispatcher(settings: Settings):
    provider = resolve_provider(settings)
    if provider == "log":
        return LogSmsDispatcher()
    if provider == "boomcast":
        return BoomcastSmsDispatcher(
            username=settings.BOOMCAST_USERNAME,
            password=settings.BOOMCAST_PASSWORD,
            masking=settings.BOOMCAST_MASKING,
            send_url=settings.BOOMCAST_SEND_URL,
            timeout=settings.SMS_TIMEOUT_SECONDS,
        )
    if provider != "sonali":
        raise ValueError(f"Unknown SMS provider: {settings.SMS_PROVIDER}")

    return SonaliSmsDispatcher(
        api_key=settings.SMS_API_KEY,
        secret_key=settings.SMS_SECRET_KEY,
        sender_id=settings.SMS_SENDER_ID,
        send_url=settings.SMS_SEND_URL,
        status_url=settings.SMS_STATUS_URL,
        balance_url=settings.SMS_BALANCE_URL,
        timeout=settings.SMS_TIMEOUT_SECONDS,
    )
