"""
Admin blueprint:
- POST /admin/login
- POST /admin/refresh-token (alias /admin/refresh)
- POST /admin/register      (superadmin)
- GET  /admin/profile
- POST /admin/logout, /admin/logout-all
- PUT  /admin/deactivate    (self)
- GET  /admin/all           (superadmin, paginated)
"""
from __future__ import annotations

from flask import Blueprint, current_app, g, request

from api.responses import (
    clear_refresh_cookie,
    created_response,
    paginated_response,
    parse_pagination,
    presented_refresh_token,
    session_response,
    success_response,
)
from models.schemas.admin import AdminLoginSchema, AdminOutSchema, AdminRegisterSchema
from models.schemas.user import RefreshSchema
from utils.context import get_services
from utils.decorators import admin_required, ip_identifier_key, rate_limit, roles_required

bp = Blueprint("admin", __name__, url_prefix="/admin")

login_schema = AdminLoginSchema()
register_schema = AdminRegisterSchema()
refresh_schema = RefreshSchema()
admin_out_schema = AdminOutSchema()
admin_list_schema = AdminOutSchema(many=True)


def _cookie_name() -> str:
    return current_app.config["ADMIN_REFRESH_COOKIE_NAME"]


def _admin_session(result, message: str):
    return session_response(
        result, "admin", admin_out_schema.dump(result.principal), message,
        cookie_name=_cookie_name(), include_refresh=True,
    )


@bp.post("/login")
@rate_limit("auth", ip_identifier_key, skip_successful=True)
def login():
    """
    Admin login
    ---
    tags: [Admin]
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
      403: { description: Admin account is deactivated }
    """
    data = login_schema.load(request.get_json(silent=True) or {})
    result = get_services().admin_auth.login(data["email"], data["password"])
    return _admin_session(result, "Admin login successful")


@bp.post("/refresh-token")
@bp.post("/refresh")
def refresh():
    """
    Rotate the admin refresh token
    ---
    tags: [Admin]
    consumes: [application/json]
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            refreshToken: { type: string }
    responses:
      200: { description: New token pair }
      401: { description: "Invalid, expired or rotated refresh token" }
      403: { description: Admin account is deactivated }
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    token = presented_refresh_token({"refreshToken": data["refresh_token"]}, _cookie_name())
    result = get_services().admin_auth.refresh(token)
    return _admin_session(result, "Token refreshed successfully")


@bp.post("/register")
@roles_required("superadmin")
def register():
    """
    Register a new admin (superadmin only)
    ---
    tags: [Admin]
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name, email, password]
          properties:
            name: { type: string }
            email: { type: string }
            password: { type: string, minLength: 8 }
            role: { type: string, enum: [superadmin, admin, editor], default: admin }
    responses:
      201: { description: Created }
      403: { description: Insufficient role }
      409: { description: Email already registered }
    """
    data = register_schema.load(request.get_json(silent=True) or {})
    admin = get_services().admin_auth.register(**data)
    return created_response(admin_out_schema.dump(admin), "Admin registered successfully")


@bp.get("/profile")
@admin_required()
def profile():
    """
    Current admin
    ---
    tags: [Admin]
    security:
      - Bearer: []
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
    """
    return success_response(admin_out_schema.dump(g.current_admin), "Admin profile retrieved")


@bp.post("/logout")
@admin_required()
def logout():
    """
    Log out the current admin session
    ---
    tags: [Admin]
    security:
      - Bearer: []
    responses:
      200: { description: Logged out }
    """
    token = presented_refresh_token(request.get_json(silent=True), _cookie_name())
    get_services().admin_auth.logout(g.current_admin, token)
    response, status = success_response(None, "Admin logged out successfully")
    clear_refresh_cookie(response, _cookie_name())
    return response, status


@bp.post("/logout-all")
@admin_required()
def logout_all():
    """
    Revoke every admin session
    ---
    tags: [Admin]
    security:
      - Bearer: []
    responses:
      200: { description: Logged out everywhere }
    """
    get_services().admin_auth.logout_all(g.current_admin)
    response, status = success_response(None, "Logged out from all devices")
    clear_refresh_cookie(response, _cookie_name())
    return response, status


@bp.put("/deactivate")
@admin_required()
def deactivate():
    """
    Deactivate the current admin account
    ---
    tags: [Admin]
    security:
      - Bearer: []
    responses:
      200: { description: Deactivated; sessions revoked }
    """
    get_services().admin_auth.deactivate(g.current_admin)
    response, status = success_response(None, "Admin deactivated successfully")
    clear_refresh_cookie(response, _cookie_name())
    return response, status


@bp.get("/all")
@roles_required("superadmin")
def list_admins():
    """
    List admins (superadmin only)
    ---
    tags: [Admin]
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
    responses:
      200: { description: OK }
      403: { description: Insufficient role }
    """
    page, limit = parse_pagination()
    rows, total = get_services().admin_auth.list_admins(page, limit)
    return paginated_response(admin_list_schema.dump(rows), page, limit, total, "Admins retrieved successfully")
