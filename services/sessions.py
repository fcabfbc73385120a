"""
Session manager: token issuance, refresh rotation and logout for one principal type.

Users and admins each get their own SessionManager, wired with that audience's
TokenService, refresh-session store and principal loader, so the code paths
are shared while keys and storage stay separate.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from services.errors import Forbidden, ServiceError, Unauthorized
from services.tokens import TokenKind, TokenService

logger = logging.getLogger(__name__)

REFRESH_FAILED = "Invalid or expired refresh token"


@dataclass
class AuthResult:
    principal: object
    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_at: datetime


class SessionManager:
    def __init__(self, *, tokens: TokenService, sessions, loader: Callable[[str], Optional[object]],
                 claims: Callable[[object], dict] | None = None):
        self.tokens = tokens
        self.sessions = sessions
        self.loader = loader
        self._claims = claims or (lambda principal: {})

    def start(self, principal) -> AuthResult:
        """Mint an access/refresh pair and persist the refresh session."""
        pair = self.tokens.issue_pair(principal.id, **self._claims(principal))
        self.sessions.store(principal, pair.refresh_token, pair.refresh_expires_at)
        return AuthResult(
            principal=principal,
            access_token=pair.access_token,
            refresh_token=pair.refresh_token,
            access_expires_in=pair.access_expires_in,
            refresh_expires_at=pair.refresh_expires_at,
        )

    def refresh(self, presented: str) -> AuthResult:
        """
        Exchange a refresh token for a new pair, rotating the stored session.
        A token that was already rotated away fails even though its signature
        still verifies.
        """
        if not presented:
            raise Unauthorized("Refresh token required")
        try:
            claims = self.tokens.verify(presented, TokenKind.REFRESH)
        except ServiceError:
            raise Unauthorized(REFRESH_FAILED)

        principal = self.loader(claims.principal_id)
        if principal is None or not self.sessions.is_live(principal, presented):
            logger.warning("Refresh rejected for %s", claims.principal_id)
            raise Unauthorized(REFRESH_FAILED)
        if not principal.is_active:
            raise Forbidden("Account is deactivated")

        new_refresh = self.tokens.issue_refresh(principal.id)
        expires_at = self.tokens.refresh_expiry_date()
        if not self.sessions.rotate(principal, presented, new_refresh, expires_at):
            logger.warning("Refresh rotation lost race for %s", principal.id)
            raise Unauthorized(REFRESH_FAILED)

        logger.info("Tokens refreshed for %s", principal.id)
        return AuthResult(
            principal=principal,
            access_token=self.tokens.issue_access(principal.id, **self._claims(principal)),
            refresh_token=new_refresh,
            access_expires_in=int(self.tokens.access_ttl.total_seconds()),
            refresh_expires_at=expires_at,
        )

    def logout(self, principal, presented: Optional[str]) -> bool:
        """Revoke the presented session if it is the one on file."""
        if not presented:
            return False
        revoked = self.sessions.revoke(principal, presented)
        logger.info("Logout for %s (session revoked=%s)", principal.id, revoked)
        return revoked

    def logout_all(self, principal) -> None:
        self.sessions.revoke_all(principal)
        logger.info("All sessions revoked for %s", principal.id)
