from __future__ import annotations

from flask import Blueprint, g, request

from api.responses import clear_refresh_cookie, success_response
from models.schemas.user import (
    ChangePasswordSchema,
    DeleteAccountSchema,
    PhoneSchema,
    ProfileUpdateSchema,
    UserOutSchema,
    VerifyOtpSchema,
)
from services.errors import NotFound
from utils.context import get_services
from utils.decorators import admin_required, principal_key, rate_limit, user_required

bp = Blueprint("users", __name__, url_prefix="/users")

profile_update_schema = ProfileUpdateSchema()
change_password_schema = ChangePasswordSchema()
delete_account_schema = DeleteAccountSchema()
phone_schema = PhoneSchema()
verify_otp_schema = VerifyOtpSchema()
user_out_schema = UserOutSchema()


@bp.get("/profile")
@user_required()
def get_profile():
    """
    Current user's profile
    ---
    tags: [Users]
    security:
      - Bearer: []
    responses:
      200: { description: OK }
    """
    return success_response(user_out_schema.dump(g.current_user), "Profile retrieved successfully")


@bp.put("/profile")
@user_required()
def update_profile():
    """
    Update profile fields
    ---
    tags: [Users]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            firstName: { type: string }
            lastName: { type: string }
            email: { type: string }
    responses:
      200: { description: Updated }
      409: { description: Email already in use }
    """
    data = profile_update_schema.load(request.get_json(silent=True) or {})
    user = get_services().accounts.update_profile(g.current_user, **data)
    return success_response(user_out_schema.dump(user), "Profile updated successfully")


@bp.put("/password")
@user_required()
def change_password():
    """
    Change password; every refresh session is revoked
    ---
    tags: [Users]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [currentPassword, newPassword]
          properties:
            currentPassword: { type: string }
            newPassword: { type: string, minLength: 8 }
    responses:
      200: { description: Password changed }
      400: { description: Account has no password }
      401: { description: Current password is incorrect }
    """
    data = change_password_schema.load(request.get_json(silent=True) or {})
    get_services().accounts.change_password(g.current_user, data["current_password"], data["new_password"])
    response, status = success_response(None, "Password changed successfully. Please log in again")
    clear_refresh_cookie(response)
    return response, status


@bp.delete("/account")
@user_required()
def delete_account():
    """
    Delete (soft) the current account
    ---
    tags: [Users]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            password: { type: string, description: "Required when the account has a password" }
    responses:
      200: { description: Account deleted }
      401: { description: Invalid password }
    """
    data = delete_account_schema.load(request.get_json(silent=True) or {})
    get_services().accounts.delete_account(g.current_user, data.get("password"))
    response, status = success_response(None, "Account deleted successfully")
    clear_refresh_cookie(response)
    return response, status


@bp.post("/phone/send-otp")
@user_required()
@rate_limit("auth", principal_key, skip_successful=True)
def send_phone_change_otp():
    """
    Send an OTP to a new phone number
    ---
    tags: [Users]
    security:
      - Bearer: []
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
      200: { description: OTP sent to the new number }
      409: { description: Phone number already in use }
      429: { description: OTP requested too recently }
    """
    data = phone_schema.load(request.get_json(silent=True) or {})
    payload = get_services().accounts.request_phone_change(g.current_user, data["phone_number"])
    return success_response(payload, "OTP sent to new phone number")


@bp.post("/phone/verify-otp")
@user_required()
@rate_limit("auth", principal_key, skip_successful=True)
def verify_phone_change_otp():
    """
    Confirm the phone number change
    ---
    tags: [Users]
    security:
      - Bearer: []
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
      200: { description: Phone number updated }
      400: { description: No pending change or OTP failure }
      401: { description: Invalid OTP }
      409: { description: Phone number taken meanwhile }
    """
    data = verify_otp_schema.load(request.get_json(silent=True) or {})
    user = get_services().accounts.confirm_phone_change(g.current_user, data["phone_number"], data["otp"])
    return success_response(user_out_schema.dump(user), "Phone number updated successfully")


@bp.get("/<user_id>")
@admin_required()
def get_user(user_id: str):
    """
    Get a user by id (admins only)
    ---
    tags: [Users]
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    user = get_services().store.get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    return success_response(user_out_schema.dump(user), "User retrieved successfully")
