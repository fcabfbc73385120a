"""
Service-level error taxonomy.

Every failure raised by the auth core and the API layer is a ServiceError
carrying the HTTP status it maps to, a stable error code, a caller-safe
message and optional structured detail (remaining OTP attempts, retry-after
seconds, ...). api/errors.py turns these into the response envelope.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ServiceError(Exception):
    status_code = 500
    error_code = "INTERNAL_ERROR"
    default_message = "Internal server error"

    def __init__(self, message: Optional[str] = None, detail: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        payload = {"code": self.error_code, "message": self.message}
        if self.detail:
            payload.update(self.detail)
        return payload


class ValidationError(ServiceError):
    status_code = 400
    error_code = "VALIDATION_ERROR"
    default_message = "Validation error"


BadRequest = ValidationError


class Unauthorized(ServiceError):
    status_code = 401
    error_code = "UNAUTHORIZED"
    default_message = "Authentication required"


class InvalidCredentials(Unauthorized):
    error_code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password"


class InvalidToken(Unauthorized):
    error_code = "INVALID_TOKEN"
    default_message = "Invalid token"


class ExpiredToken(Unauthorized):
    error_code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class InvalidOtp(Unauthorized):
    error_code = "INVALID_OTP"
    default_message = "Invalid OTP"

    def __init__(self, remaining_attempts: int, message: Optional[str] = None):
        self.remaining_attempts = remaining_attempts
        super().__init__(
            message or f"Invalid OTP. {remaining_attempts} attempt(s) remaining",
            detail={"remainingAttempts": remaining_attempts},
        )


class Forbidden(ServiceError):
    status_code = 403
    error_code = "FORBIDDEN"
    default_message = "Access denied"


class NotFound(ServiceError):
    status_code = 404
    error_code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    status_code = 409
    error_code = "CONFLICT"
    default_message = "Resource already exists"


class RateLimited(ServiceError):
    status_code = 429
    error_code = "RATE_LIMITED"
    default_message = "Too many requests, please try again later"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = max(int(retry_after), 1)
        super().__init__(message, detail={"retryAfter": self.retry_after})


class TooManyAttempts(RateLimited):
    error_code = "TOO_MANY_ATTEMPTS"
    default_message = "Too many failed attempts. Please request a new OTP"


class NoOtpFound(ValidationError):
    error_code = "NO_OTP_FOUND"
    default_message = "No OTP found. Please request a new one"


class OtpAlreadyUsed(ValidationError):
    error_code = "OTP_ALREADY_USED"
    default_message = "OTP has already been used. Please request a new one"


class OtpExpired(ValidationError):
    error_code = "OTP_EXPIRED"
    default_message = "OTP has expired. Please request a new one"


class ServiceUnavailable(ServiceError):
    status_code = 503
    error_code = "SERVICE_UNAVAILABLE"
    default_message = "Service temporarily unavailable, please retry"
    retry_after = 1


class SmsDeliveryError(ServiceUnavailable):
    error_code = "SMS_DELIVERY_FAILED"
    default_message = "Could not send the OTP, please retry"


class MediaHostError(ServiceUnavailable):
    error_code = "MEDIA_HOST_ERROR"
    default_message = "Media host unavailable, please retry"


class CredentialError(ServiceError):
    error_code = "CREDENTIAL_ERROR"
    default_message = "Stored credential is malformed"
