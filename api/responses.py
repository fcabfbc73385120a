"""
Uniform response envelope: {success, message, data?, errors?, pagination?}
plus the refresh-token cookie helpers shared by the user and admin blueprints.
"""
from __future__ import annotations

import math
from typing import Any, Tuple

from flask import current_app, jsonify, request

from services.errors import ValidationError
from utils.context import get_services

MAX_LIMIT = 100


def success_response(data: Any = None, message: str = "Success", status: int = 200):
    payload = {"success": True, "message": message}
    if data is not None:
        payload["data"] = data
    return jsonify(payload), status


def created_response(data: Any = None, message: str = "Resource created successfully"):
    return success_response(data, message, 201)


def error_response(message: str, status: int, errors: list | None = None):
    payload = {"success": False, "message": message}
    if errors:
        payload["errors"] = errors
    return jsonify(payload), status


def paginated_response(items: list, page: int, limit: int, total: int, message: str = "Success"):
    total_pages = math.ceil(total / limit) if limit else 0
    return jsonify({
        "success": True,
        "message": message,
        "data": items,
        "pagination": {
            "currentPage": page,
            "totalPages": total_pages,
            "totalItems": total,
            "itemsPerPage": limit,
            "hasNextPage": page < total_pages,
            "hasPrevPage": page > 1,
        },
    }), 200


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
    except ValueError:
        raise ValidationError("page and limit must be integers")
    page = max(page, 1)
    limit = max(1, min(limit, MAX_LIMIT))
    return page, limit


def set_refresh_cookie(response, token: str, max_age: int, name: str | None = None):
    cfg = current_app.config
    response.set_cookie(
        name or cfg["REFRESH_COOKIE_NAME"],
        token,
        max_age=max_age,
        httponly=cfg["COOKIE_HTTP_ONLY"],
        secure=cfg["COOKIE_SECURE"],
        samesite=cfg["COOKIE_SAME_SITE"],
        path="/",
    )
    return response


def clear_refresh_cookie(response, name: str | None = None):
    cfg = current_app.config
    response.delete_cookie(
        name or cfg["REFRESH_COOKIE_NAME"],
        path="/",
        httponly=cfg["COOKIE_HTTP_ONLY"],
        secure=cfg["COOKIE_SECURE"],
        samesite=cfg["COOKIE_SAME_SITE"],
    )
    return response


def session_response(result, principal_key: str, principal_data: dict, message: str, status: int = 200,
                     cookie_name: str | None = None, include_refresh: bool = False):
    """
    Body carries the principal and access token; the refresh token goes into
    an HTTP-only cookie whose max-age matches its expiry.
    """
    data = {
        principal_key: principal_data,
        "accessToken": result.access_token,
        "expiresIn": result.access_expires_in,
    }
    if include_refresh:
        data["refreshToken"] = result.refresh_token
    response, status = success_response(data, message, status)
    max_age = max(int((result.refresh_expires_at - get_services().clock.now()).total_seconds()), 0)
    set_refresh_cookie(response, result.refresh_token, max_age, name=cookie_name)
    return response, status


def presented_refresh_token(body: dict | None, cookie_name: str | None = None) -> str | None:
    """Refresh token from the JSON body, falling back to the cookie."""
    token = (body or {}).get("refreshToken")
    return token or request.cookies.get(cookie_name or current_app.config["REFRESH_COOKIE_NAME"])
