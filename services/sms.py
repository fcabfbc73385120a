"""
SMS dispatchers used to deliver OTP codes.

- ConsoleSmsDispatcher: development; prints the code to stdout (never to the logs)
- MemorySmsDispatcher: tests; keeps an outbox in memory
- HttpSmsDispatcher: production; posts to an HTTP SMS gateway with httpx

A gateway timeout or error surfaces as SmsDeliveryError (503, retryable).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

import httpx

from services.errors import SmsDeliveryError

logger = logging.getLogger(__name__)

OTP_MESSAGE = "Your verification code is: {code}. Valid for {minutes} minutes. Do not share it with anyone."


def mask_phone(phone_number: Optional[str]) -> str:
    if not phone_number:
        return ""
    return f"{'*' * max(len(phone_number) - 4, 0)}{phone_number[-4:]}"


class ConsoleSmsDispatcher:
    def __init__(self, ttl_minutes: int = 5):
        self.ttl_minutes = ttl_minutes

    def send_otp(self, phone_number: str, code: str) -> bool:
        banner = "=" * 50
        print(f"\n{banner}\nOTP for {phone_number}: {code}\nValid for {self.ttl_minutes} minutes\n{banner}\n")
        logger.info("OTP printed to console for %s", mask_phone(phone_number))
        return True


@dataclass
class SentMessage:
    phone_number: str
    code: str


class MemorySmsDispatcher:
    def __init__(self):
        self.outbox: List[SentMessage] = []
        self.fail_next = False

    def send_otp(self, phone_number: str, code: str) -> bool:
        if self.fail_next:
            self.fail_next = False
            raise SmsDeliveryError()
        self.outbox.append(SentMessage(phone_number, code))
        return True

    def last_code(self, phone_number: str) -> Optional[str]:
        for message in reversed(self.outbox):
            if message.phone_number == phone_number:
                return message.code
        return None


class HttpSmsDispatcher:
    def __init__(self, api_url: str, api_key: str, sender_id: str = "", timeout: float = 5.0,
                 ttl_minutes: int = 5, client: Optional[httpx.Client] = None):
        if not api_url:
            raise ValueError("SMS_API_URL is required for the http SMS provider")
        self.api_url = api_url
        self.sender_id = sender_id
        self.ttl_minutes = ttl_minutes
        self._client = client or httpx.Client(
            timeout=timeout,
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def send_otp(self, phone_number: str, code: str) -> bool:
        body = {
            "phone": phone_number,
            "message": OTP_MESSAGE.format(code=code, minutes=self.ttl_minutes),
            "sender": self.sender_id,
        }
        try:
            response = self._client.post(self.api_url, json=body)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            logger.error("SMS gateway timed out for %s", mask_phone(phone_number))
            raise SmsDeliveryError("SMS gateway timed out, please retry") from exc
        except httpx.HTTPError as exc:
            logger.error("SMS gateway error for %s: %s", mask_phone(phone_number), exc.__class__.__name__)
            raise SmsDeliveryError() from exc
        logger.info("OTP sent to %s", mask_phone(phone_number))
        return True


def create_sms_dispatcher(config):
    provider = config.get("SMS_PROVIDER", "console")
    ttl_minutes = max(int(config.get("OTP_TTL_SECONDS", 300)) // 60, 1)
    if provider == "memory":
        return MemorySmsDispatcher()
    if provider == "http":
        return HttpSmsDispatcher(
            api_url=config.get("SMS_API_URL"),
            api_key=config.get("SMS_API_KEY", ""),
            sender_id=config.get("SMS_SENDER_ID", ""),
            timeout=float(config.get("SMS_TIMEOUT_SECONDS", 5)),
            ttl_minutes=ttl_minutes,
        )
    if provider == "console":
        return ConsoleSmsDispatcher(ttl_minutes=ttl_minutes)
    raise ValueError(f"Unknown SMS_PROVIDER: {provider!r}")
