"""
Request authenticator and rate guard decorators.

jwt_required() probes the bearer token against an ordered list of
authentication strategies (user secret first, then admin secret). The first
strategy whose token verifies and whose principal is active and not deleted
wins; the principal lands on flask.g as current_user or current_admin.
Views reachable by either kind check which one is set.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import wraps
from typing import Callable, Optional

from flask import g, make_response, request

from api.logging_config import client_ip
from services.errors import Forbidden, RateLimited, ServiceError, Unauthorized
from services.tokens import TokenKind, TokenService
from utils.context import get_services

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthStrategy:
    kind: str
    tokens: TokenService
    loader: Callable[[str], Optional[object]]


def auth_strategies():
    services = get_services()
    return (
        AuthStrategy("user", services.user_tokens, services.store.get_user),
        AuthStrategy("admin", services.admin_tokens, services.store.get_admin),
    )


def bearer_token() -> Optional[str]:
    auth = request.headers.get("Authorization", "")
    if not auth.startswith("Bearer "):
        return None
    return auth.split(" ", 1)[1].strip() or None


def resolve_principal(token: str):
    """Return (kind, principal) for the first strategy that accepts `token`, else None."""
    for strategy in auth_strategies():
        try:
            claims = strategy.tokens.verify(token, TokenKind.ACCESS)
        except ServiceError:
            continue
        principal = strategy.loader(claims.principal_id)
        if principal is not None and principal.is_active:
            return strategy.kind, principal
    return None


def _attach(kind: str, principal) -> None:
    g.current_user = principal if kind == "user" else None
    g.current_admin = principal if kind == "admin" else None
    g.principal_id = principal.id


def _authenticate(optional: bool) -> None:
    g.current_user = None
    g.current_admin = None
    token = bearer_token()
    if token is None:
        if optional:
            return
        raise Unauthorized("Access token required")
    resolved = resolve_principal(token)
    if resolved is None:
        if optional:
            return
        raise Unauthorized("Invalid or expired token")
    _attach(*resolved)


def jwt_required():
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            _authenticate(optional=False)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def jwt_optional():
    """Same probing as jwt_required, but an absent or bad token just means anonymous."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            _authenticate(optional=True)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def user_required():
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if g.current_user is None:
                raise Forbidden("User access required")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def admin_required():
    def decorator(fn):
        @wraps(fn)
        @jwt_required()
        def wrapper(*args, **kwargs):
            if g.current_admin is None:
                raise Forbidden("Admin access required")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def roles_required(*required_roles: str):
    """
    Allow an admin whose role is in `required_roles`.
    Users and admins with any other role get 403.
    """
    req = set(required_roles)

    def decorator(fn):
        @wraps(fn)
        @admin_required()
        def wrapper(*args, **kwargs):
            if g.current_admin.role_name not in req:
                logger.warning("Role %s denied for %s", g.current_admin.role_name, request.path)
                raise Forbidden("Insufficient role")
            return fn(*args, **kwargs)

        return wrapper

    return decorator


# ----------------------------------------------------------------------
# rate guard
# ----------------------------------------------------------------------
def _body_identifier() -> str:
    payload = request.get_json(silent=True) or {}
    value = payload.get("email") or payload.get("phoneNumber") or ""
    return str(value).strip().lower()


def ip_key() -> str:
    return client_ip()


def ip_identifier_key() -> str:
    return f"{client_ip()}-{_body_identifier()}"


def principal_key() -> str:
    principal_id = g.get("principal_id")
    return f"principal-{principal_id}" if principal_id else client_ip()


def enforce_rate_limit(rule_name: str, key: str):
    limiter = get_services().rate_limiter
    result = limiter.consume(rule_name, key)
    if not result.allowed:
        logger.warning(
            "Rate limit exceeded: %s ip=%s path=%s identifier=%s",
            rule_name, client_ip(), request.path, _body_identifier() or g.get("principal_id") or "-",
        )
        raise RateLimited(result.retry_after, limiter.rules[rule_name].message)
    return result


def rate_limit(rule_name: str, key_func: Callable[[], str] = ip_key, skip_successful: bool = False):
    """
    Count the request against a fixed-window rule. With skip_successful,
    responses below 400 are refunded so only failures use up the budget.
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            key = key_func()
            result = enforce_rate_limit(rule_name, key)
            response = make_response(fn(*args, **kwargs))
            if skip_successful and response.status_code < 400:
                get_services().rate_limiter.refund(rule_name, key, result.window)
            return response

        return wrapper

    return decorator
