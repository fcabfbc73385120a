"""
User self-service: profile edits, password change, account deletion and an
OTP-confirmed phone-number change.

A phone change is held as a typed pending change (pending_phone_number +
pending_phone_expires_at) until the OTP sent to the new number is confirmed.
"""
from __future__ import annotations

import logging
from typing import Optional

from models.base_model import as_utc
from services.errors import Conflict, InvalidCredentials, ServiceError, ValidationError
from services.sms import mask_phone

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(self, *, store, hasher, otp_verifier, user_auth, clock):
        self.store = store
        self.hasher = hasher
        self.otp_verifier = otp_verifier
        self.user_auth = user_auth
        self.clock = clock

    def update_profile(self, user, *, first_name: Optional[str] = None, last_name: Optional[str] = None,
                       email: Optional[str] = None):
        updates = {}
        if first_name:
            updates["first_name"] = first_name
        if last_name:
            updates["last_name"] = last_name
        if email:
            email = email.strip().lower()
            if email != user.email and self.store.email_taken(email, exclude_id=user.id):
                raise Conflict("Email already in use")
            updates["email"] = email
        if updates:
            self.store.update(user, **updates)
            logger.info("Profile updated id=%s fields=%s", user.id, sorted(updates))
        return user

    def change_password(self, user, current_password: str, new_password: str) -> None:
        if not user.has_password:
            raise ValidationError("This account signs in with OTP and has no password")
        if not self.hasher.verify(current_password or "", user.password_hash):
            logger.warning("Password change failed - invalid current password id=%s", user.id)
            raise InvalidCredentials("Current password is incorrect")
        self.store.update(user, password_hash=self.hasher.hash(new_password))
        self.user_auth.logout_all(user)
        logger.info("Password changed id=%s", user.id)

    def delete_account(self, user, password: Optional[str] = None) -> None:
        if user.has_password and not self.hasher.verify(password or "", user.password_hash):
            logger.warning("Account deletion failed - invalid password id=%s", user.id)
            raise InvalidCredentials("Invalid password")
        self.user_auth.logout_all(user)
        self.store.soft_delete(user)

    def request_phone_change(self, user, new_phone: str) -> dict:
        if new_phone == user.phone_number:
            raise ValidationError("New phone number is the same as the current one")
        if self.store.phone_taken(new_phone, exclude_id=user.id):
            raise Conflict("Phone number already in use")
        otp = self.user_auth.otp
        code = otp.issue(user)
        self.store.update(
            user,
            pending_phone_number=new_phone,
            pending_phone_expires_at=self.clock.now() + otp.ttl,
        )
        try:
            self.user_auth.sms.send_otp(new_phone, code)
        except ServiceError:
            otp.discard(user)
            self.store.update(user, pending_phone_number=None, pending_phone_expires_at=None)
            raise
        logger.info("Phone change OTP sent id=%s to %s", user.id, mask_phone(new_phone))
        return {"phoneNumber": new_phone, "expiresIn": int(otp.ttl.total_seconds())}

    def confirm_phone_change(self, user, new_phone: str, code: str):
        pending = user.pending_phone_number
        expires_at = as_utc(user.pending_phone_expires_at)
        if not pending or pending != new_phone or expires_at is None or expires_at < self.clock.now():
            raise ValidationError("No pending phone number change. Please request a new OTP")
        self.otp_verifier.verify(user, code)
        if self.store.phone_taken(pending, exclude_id=user.id):
            raise Conflict("Phone number already in use")
        self.store.update(
            user,
            phone_number=pending,
            is_verified=True,
            pending_phone_number=None,
            pending_phone_expires_at=None,
        )
        logger.info("Phone number changed id=%s", user.id)
        return user
