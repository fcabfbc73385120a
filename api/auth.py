"""
Authentication blueprint (users):
- POST /auth/register, /auth/login                        (AUTH_MODE=password)
- POST /auth/register/send-otp, /auth/register/verify-otp  (AUTH_MODE=otp)
- POST /auth/login/send-otp, /auth/login/resend-otp, /auth/login/verify-otp
- POST /auth/refresh
- POST /auth/logout, /auth/logout-all
- GET  /auth/me

Routes of the inactive mode answer 404. The refresh token travels in an
HTTP-only cookie; /auth/refresh also accepts it in the JSON body.
"""
from __future__ import annotations

from functools import wraps

from flask import Blueprint, abort, g, request

from api.responses import clear_refresh_cookie, presented_refresh_token, session_response, success_response
from models.schemas.user import (
    LoginSchema,
    PhoneSchema,
    RefreshSchema,
    RegisterSchema,
    SendRegisterOtpSchema,
    UserOutSchema,
    VerifyOtpSchema,
    VerifyRegisterOtpSchema,
)
from services.auth_service import AuthMode
from utils.context import get_services
from utils.decorators import ip_identifier_key, ip_key, rate_limit, user_required

bp = Blueprint("auth", __name__, url_prefix="/auth")

register_schema = RegisterSchema()
login_schema = LoginSchema()
send_register_otp_schema = SendRegisterOtpSchema()
verify_register_otp_schema = VerifyRegisterOtpSchema()
phone_schema = PhoneSchema()
verify_otp_schema = VerifyOtpSchema()
refresh_schema = RefreshSchema()
user_out_schema = UserOutSchema()


def auth_mode(mode: AuthMode):
    """Expose the route only when AUTH_MODE matches."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if get_services().auth_mode != mode:
                abort(404)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def _json() -> dict:
    return request.get_json(silent=True) or {}


def _user_session(result, message: str, status: int = 200):
    return session_response(result, "user", user_out_schema.dump(result.principal), message, status)


# ----------------------------------------------------------------------
# password mode
# ----------------------------------------------------------------------
@bp.post("/register")
@auth_mode(AuthMode.PASSWORD)
@rate_limit("register", ip_key)
def register():
    """
    Register a new user with email and password
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password, firstName, lastName]
          properties:
            email: { type: string }
            password: { type: string, minLength: 8 }
            firstName: { type: string }
            lastName: { type: string }
    responses:
      201: { description: Registered; refresh token set as cookie }
      400: { description: Validation error }
      409: { description: Email already registered }
    """
    data = register_schema.load(_json())
    result = get_services().user_auth.register(**data)
    return _user_session(result, "Registration successful", 201)


@bp.post("/login")
@auth_mode(AuthMode.PASSWORD)
@rate_limit("auth", ip_identifier_key, skip_successful=True)
def login():
    """
    Log in with email and password
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [email, password]
          properties:
            email: { type: string }
            password: { type: string }
    responses:
      200: { description: Logged in }
      401: { description: Invalid email or password }
      403: { description: Account is deactivated }
      429: { description: Too many failed attempts }
    """
    data = login_schema.load(_json())
    result = get_services().user_auth.login(data["email"], data["password"])
    return _user_session(result, "Login successful")


# ----------------------------------------------------------------------
# otp mode
# ----------------------------------------------------------------------
@bp.post("/register/send-otp")
@auth_mode(AuthMode.OTP)
@rate_limit("register", ip_key)
def send_register_otp():
    """
    Start phone registration by sending an OTP
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [phoneNumber, firstName, lastName]
          properties:
            phoneNumber: { type: string, example: "+15551234567" }
            firstName: { type: string }
            lastName: { type: string }
    responses:
      200: { description: OTP sent }
      409: { description: Phone number already registered }
      429: { description: OTP requested too recently }
      503: { description: SMS gateway unavailable }
    """
    data = send_register_otp_schema.load(_json())
    payload = get_services().user_auth.send_register_otp(
        data["phone_number"], data["first_name"], data["last_name"]
    )
    return success_response(payload, "OTP sent successfully")


@bp.post("/register/verify-otp")
@auth_mode(AuthMode.OTP)
@rate_limit("auth", ip_identifier_key, skip_successful=True)
def verify_register_otp():
    """
    Complete phone registration with the OTP
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [phoneNumber, otp]
          properties:
            phoneNumber: { type: string }
            otp: { type: string, example: "123456" }
            firstName: { type: string }
            lastName: { type: string }
    responses:
      201: { description: Registered and verified; refresh token set as cookie }
      400: { description: "No OTP found, OTP already used or expired" }
      401: { description: Invalid OTP (remainingAttempts in errors) }
      429: { description: Too many attempts }
    """
    data = verify_register_otp_schema.load(_json())
    result = get_services().user_auth.verify_register_otp(
        data["phone_number"], data["otp"], data.get("first_name"), data.get("last_name")
    )
    return _user_session(result, "Registration successful", 201)


@bp.post("/login/send-otp")
@auth_mode(AuthMode.OTP)
@rate_limit("auth", ip_identifier_key, skip_successful=True)
def send_login_otp():
    """
    Send a login OTP
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [phoneNumber]
          properties:
            phoneNumber: { type: string }
    responses:
      200: { description: OTP sent }
      403: { description: Phone not verified or account deactivated }
      404: { description: No account for this phone number }
      429: { description: OTP requested too recently }
    """
    data = phone_schema.load(_json())
    payload = get_services().user_auth.send_login_otp(data["phone_number"])
    return success_response(payload, "OTP sent successfully")


@bp.post("/login/resend-otp")
@auth_mode(AuthMode.OTP)
@rate_limit("auth", ip_identifier_key, skip_successful=True)
def resend_login_otp():
    """
    Resend the login OTP (subject to the resend interval)
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [phoneNumber]
          properties:
            phoneNumber: { type: string }
    responses:
      200: { description: OTP resent }
      429: { description: OTP requested too recently }
    """
    data = phone_schema.load(_json())
    payload = get_services().user_auth.resend_login_otp(data["phone_number"])
    return success_response(payload, "OTP resent successfully")


@bp.post("/login/verify-otp")
@auth_mode(AuthMode.OTP)
@rate_limit("auth", ip_identifier_key, skip_successful=True)
def verify_login_otp():
    """
    Log in with the OTP
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [phoneNumber, otp]
          properties:
            phoneNumber: { type: string }
            otp: { type: string }
    responses:
      200: { description: Logged in }
      400: { description: "No OTP found, OTP already used or expired" }
      401: { description: Invalid OTP }
      429: { description: Too many attempts }
    """
    data = verify_otp_schema.load(_json())
    result = get_services().user_auth.verify_login_otp(data["phone_number"], data["otp"])
    return _user_session(result, "Login successful")


# ----------------------------------------------------------------------
# sessions
# ----------------------------------------------------------------------
@bp.post("/refresh")
def refresh():
    """
    Rotate the refresh token and issue a new access token
    ---
    tags: [Auth]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        required: false
        schema:
          type: object
          properties:
            refreshToken: { type: string, description: "Falls back to the refreshToken cookie" }
    responses:
      200: { description: New access token; rotated refresh token set as cookie }
      401: { description: "Missing, invalid, expired, revoked or rotated refresh token" }
      403: { description: Account is deactivated }
    """
    data = refresh_schema.load(_json())
    token = presented_refresh_token({"refreshToken": data["refresh_token"]})
    result = get_services().user_auth.refresh(token)
    return _user_session(result, "Token refreshed successfully")


@bp.post("/logout")
@user_required()
def logout():
    """
    Log out the current session
    ---
    tags: [Auth]
    security:
      - Bearer: []
    responses:
      200: { description: Logged out; cookie cleared }
      401: { description: Unauthorized }
    """
    token = presented_refresh_token(_json())
    get_services().user_auth.logout(g.current_user, token)
    response, status = success_response(None, "Logout successful")
    clear_refresh_cookie(response)
    return response, status


@bp.post("/logout-all")
@user_required()
def logout_all():
    """
    Log out from all devices
    ---
    tags: [Auth]
    security:
      - Bearer: []
    responses:
      200: { description: Every refresh session revoked }
      401: { description: Unauthorized }
    """
    get_services().user_auth.logout_all(g.current_user)
    response, status = success_response(None, "Logged out from all devices")
    clear_refresh_cookie(response)
    return response, status


@bp.get("/me")
@user_required()
def me():
    """
    Current user
    ---
    tags: [Auth]
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    return success_response(user_out_schema.dump(g.current_user), "User retrieved successfully")
