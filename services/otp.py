"""
OTP engine: numeric one-time codes with expiry, attempt ceiling and a resend interval.

State is kept on the user row (current_otp, otp_expires_at, otp_attempts,
otp_is_used, otp_sent_at) and written through the PrincipalStore.
"""
from __future__ import annotations

import hmac
import logging
import math
import secrets
from dataclasses import dataclass
from datetime import timedelta

from models.base_model import as_utc
from services.errors import NoOtpFound, OtpAlreadyUsed, OtpExpired, RateLimited, TooManyAttempts

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OtpCheck:
    matched: bool
    remaining_attempts: int


class OtpEngine:
    def __init__(self, store, clock, *, length: int = 6, ttl_seconds: int = 300,
                 max_attempts: int = 5, resend_interval_seconds: int = 60):
        self.store = store
        self.clock = clock
        self.length = length
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts
        self.resend_interval = resend_interval_seconds

    def generate(self) -> str:
        """Uniform draw from 10**(length-1) .. 10**length - 1 (100000-999999 for six digits)."""
        low = 10 ** (self.length - 1)
        return str(low + secrets.randbelow(9 * low))

    def retry_after(self, user) -> int:
        """Seconds until another OTP may be issued to `user`; 0 when allowed now."""
        sent_at = as_utc(user.otp_sent_at)
        if sent_at is None:
            return 0
        elapsed = (self.clock.now() - sent_at).total_seconds()
        if elapsed >= self.resend_interval:
            return 0
        return max(1, math.ceil(self.resend_interval - elapsed))

    def issue(self, user, otp: str | None = None) -> str:
        """
        Store a fresh OTP on `user` and return it.
        Raises RateLimited when the previous one was issued less than the
        resend interval ago.
        """
        wait = self.retry_after(user)
        if wait:
            raise RateLimited(wait, f"Please wait {wait} seconds before requesting another OTP")
        otp = otp or self.generate()
        now = self.clock.now()
        self.store.save_otp(user, otp, expires_at=now + self.ttl, sent_at=now)
        logger.info("OTP issued user=%s", user.id)
        return otp

    def validate(self, user, supplied: str) -> OtpCheck:
        """
        Check `supplied` against the OTP on file. Checks run in order and the
        first failing one raises. Every guess is charged against the attempt
        ceiling in the database before comparing; a match gives the attempt back.
        Marking the OTP used is the caller's job (see consume()).
        """
        if not user.current_otp or user.otp_expires_at is None:
            raise NoOtpFound()
        if user.otp_is_used:
            raise OtpAlreadyUsed()
        if (user.otp_attempts or 0) >= self.max_attempts:
            raise TooManyAttempts(self.retry_after(user) or self.resend_interval)
        if self.clock.now() > as_utc(user.otp_expires_at):
            raise OtpExpired()
        attempts = self.store.charge_otp_attempt(user, self.max_attempts)
        if attempts is None:
            if user.otp_is_used:
                raise OtpAlreadyUsed()
            raise TooManyAttempts(self.retry_after(user) or self.resend_interval)
        if not hmac.compare_digest(str(user.current_otp), str(supplied or "")):
            logger.warning("OTP mismatch user=%s attempts=%s", user.id, attempts)
            return OtpCheck(matched=False, remaining_attempts=max(self.max_attempts - attempts, 0))
        attempts = self.store.refund_otp_attempt(user)
        return OtpCheck(matched=True, remaining_attempts=self.max_attempts - attempts)

    def consume(self, user, code: str):
        """Mark `code` used; raises OtpAlreadyUsed when a concurrent request consumed it first."""
        if not self.store.consume_otp(user, code):
            raise OtpAlreadyUsed()
        return user

    def discard(self, user):
        """Forget the pending OTP, e.g. after the SMS could not be delivered."""
        return self.store.clear_otp(user)
