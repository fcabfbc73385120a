"""
User authentication flows.

Two credential modes share one orchestrator (AUTH_MODE):
- password: register/login with email + password (PasswordVerifier)
- otp: register/login by phone number with an SMS one-time code (OtpVerifier)

Both write the same User shape and hand off to the same SessionManager for
token issuance, refresh rotation and logout.

The password path has no per-account failed-attempt ceiling; only the HTTP
auth rate limit (5 failures / 15 min per IP + identifier) slows guessing.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from services.errors import (
    Conflict,
    Forbidden,
    InvalidCredentials,
    InvalidOtp,
    NoOtpFound,
    NotFound,
    ServiceError,
)
from services.sms import mask_phone

logger = logging.getLogger(__name__)


class AuthMode(str, Enum):
    OTP = "otp"
    PASSWORD = "password"


class PasswordVerifier:
    def __init__(self, hasher):
        self.hasher = hasher

    def verify(self, user, password: str) -> None:
        if user is None or not user.password_hash or not self.hasher.verify(password or "", user.password_hash):
            raise InvalidCredentials()


class OtpVerifier:
    def __init__(self, engine):
        self.engine = engine

    def verify(self, user, code: str) -> None:
        if user is None:
            raise NoOtpFound()
        check = self.engine.validate(user, code)
        if not check.matched:
            raise InvalidOtp(check.remaining_attempts)
        self.engine.consume(user, code)


class UserAuthService:
    def __init__(self, *, store, hasher, otp_engine, sms, sessions, mode: AuthMode = AuthMode.OTP):
        self.store = store
        self.hasher = hasher
        self.otp = otp_engine
        self.sms = sms
        self.sessions = sessions
        self.mode = AuthMode(mode)
        self.password_verifier = PasswordVerifier(hasher)
        self.otp_verifier = OtpVerifier(otp_engine)

    # ------------------------------------------------------------------
    # password mode
    # ------------------------------------------------------------------
    def register(self, *, email: str, password: str, first_name: str, last_name: str):
        if self.store.find_user_by_email(email):
            raise Conflict("Email already registered")
        user = self.store.create_user(
            email=email,
            password_hash=self.hasher.hash(password),
            first_name=first_name,
            last_name=last_name,
        )
        result = self.sessions.start(user)
        logger.info("User registered id=%s", user.id)
        return result

    def login(self, email: str, password: str):
        user = self.store.find_user_by_email(email)
        try:
            self.password_verifier.verify(user, password)
        except InvalidCredentials:
            logger.warning("Failed login attempt for %s", email)
            raise
        if not user.is_active:
            raise Forbidden("Account is deactivated")
        if self.hasher.needs_rehash(user.password_hash):
            self.store.update(user, password_hash=self.hasher.hash(password))
            logger.info("Password hash upgraded id=%s", user.id)
        result = self.sessions.start(user)
        self.store.touch_last_login(user)
        logger.info("User logged in id=%s", user.id)
        return result

    # ------------------------------------------------------------------
    # otp mode
    # ------------------------------------------------------------------
    def _dispatch(self, user, phone_number: str) -> dict:
        code = self.otp.issue(user)
        try:
            self.sms.send_otp(phone_number, code)
        except ServiceError:
            # Let the caller retry immediately instead of waiting out the resend interval
            self.otp.discard(user)
            raise
        return {
            "phoneNumber": phone_number,
            "expiresIn": int(self.otp.ttl.total_seconds()),
            "resendIn": self.otp.resend_interval,
        }

    def send_register_otp(self, phone_number: str, first_name: str, last_name: str) -> dict:
        user = self.store.find_user_by_phone(phone_number)
        if user is not None and user.is_verified:
            raise Conflict("Phone number already registered. Please login")
        if user is None:
            user = self.store.create_user(phone_number=phone_number, first_name=first_name, last_name=last_name)
        else:
            self.store.update(user, first_name=first_name, last_name=last_name)
        payload = self._dispatch(user, phone_number)
        logger.info("Registration OTP sent to %s", mask_phone(phone_number))
        return payload

    def verify_register_otp(self, phone_number: str, otp: str, first_name: Optional[str] = None,
                            last_name: Optional[str] = None):
        user = self.store.find_user_by_phone(phone_number)
        if user is not None and user.is_verified:
            raise Conflict("Phone number already registered. Please login")
        self.otp_verifier.verify(user, otp)
        updates = {"is_verified": True}
        if first_name:
            updates["first_name"] = first_name
        if last_name:
            updates["last_name"] = last_name
        self.store.update(user, **updates)
        result = self.sessions.start(user)
        self.store.touch_last_login(user)
        logger.info("User registered via OTP id=%s", user.id)
        return result

    def _login_candidate(self, phone_number: str):
        user = self.store.find_user_by_phone(phone_number)
        if user is None:
            raise NotFound("No account found for this phone number. Please register first")
        if not user.is_verified:
            raise Forbidden("Phone number not verified. Please complete registration")
        if not user.is_active:
            raise Forbidden("Account is deactivated")
        return user

    def send_login_otp(self, phone_number: str) -> dict:
        user = self._login_candidate(phone_number)
        payload = self._dispatch(user, phone_number)
        logger.info("Login OTP sent to %s", mask_phone(phone_number))
        return payload

    def resend_login_otp(self, phone_number: str) -> dict:
        return self.send_login_otp(phone_number)

    def verify_login_otp(self, phone_number: str, otp: str):
        user = self._login_candidate(phone_number)
        self.otp_verifier.verify(user, otp)
        result = self.sessions.start(user)
        self.store.touch_last_login(user)
        logger.info("User logged in via OTP id=%s", user.id)
        return result

    # ------------------------------------------------------------------
    # sessions
    # ------------------------------------------------------------------
    def refresh(self, presented: str):
        return self.sessions.refresh(presented)

    def logout(self, user, presented: Optional[str]) -> bool:
        return self.sessions.logout(user, presented)

    def logout_all(self, user) -> None:
        self.sessions.logout_all(user)
