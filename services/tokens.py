"""
Token service: signs and verifies access and refresh JWTs (PyJWT, HS256).

One TokenService instance exists per principal audience (users, admins), each
holding its own access and refresh secrets, so four keys are in play overall.
A token minted for one kind or audience never verifies under another: the
secrets differ and the `type` claim is checked on top of the signature.

Nothing is persisted here; refresh-session state lives with the principal.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, Optional

import jwt

from services.errors import ExpiredToken, InvalidToken
from utils.security import generate_jti

logger = logging.getLogger(__name__)

UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400}
DEFAULT_REFRESH_TTL = timedelta(days=7)
_DURATION_RE = re.compile(r"^\s*(\d+)\s*([A-Za-z]*)\s*$")


def parse_duration(value, default: timedelta = DEFAULT_REFRESH_TTL) -> timedelta:
    """
    Parse "<n><unit>" (unit in s, m, h, d) into a timedelta.
    Unknown units and unparsable strings fall back to `default`.
    """
    if isinstance(value, timedelta):
        return value
    if isinstance(value, (int, float)):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(str(value or ""))
    if not match:
        return default
    amount, unit = int(match.group(1)), match.group(2).lower()
    if unit not in UNIT_SECONDS:
        return default
    return timedelta(seconds=amount * UNIT_SECONDS[unit])


class TokenKind(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


@dataclass(frozen=True)
class TokenClaims:
    principal_id: str
    kind: TokenKind
    jti: str
    expires_at: datetime
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_at: datetime


_RESERVED = {"sub", "type", "jti", "iat", "exp", "iss", "aud"}


class TokenService:
    def __init__(self, *, access_secret: str, refresh_secret: str, issuer: str, audience: str,
                 access_ttl="15m", refresh_ttl="7d", algorithm: str = "HS256",
                 now: Optional[Callable[[], datetime]] = None):
        if access_secret == refresh_secret:
            raise ValueError("access and refresh tokens must be signed with different secrets")
        self._secrets = {TokenKind.ACCESS: access_secret, TokenKind.REFRESH: refresh_secret}
        self._ttls = {
            TokenKind.ACCESS: parse_duration(access_ttl, default=timedelta(minutes=15)),
            TokenKind.REFRESH: parse_duration(refresh_ttl),
        }
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm
        self._now = now or (lambda: datetime.now(timezone.utc))

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[TokenKind.ACCESS]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[TokenKind.REFRESH]

    def _issue(self, kind: TokenKind, principal_id: str, claims: Dict[str, Any]) -> str:
        issued = self._now()
        payload = {k: v for k, v in claims.items() if k not in _RESERVED}
        payload.update({
            "sub": str(principal_id),
            "type": kind.value,
            "jti": generate_jti(),
            "iss": self.issuer,
            "aud": self.audience,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self._ttls[kind]).timestamp()),
        })
        return jwt.encode(payload, self._secrets[kind], algorithm=self.algorithm)

    def issue_access(self, principal_id: str, **claims) -> str:
        return self._issue(TokenKind.ACCESS, principal_id, claims)

    def issue_refresh(self, principal_id: str, **claims) -> str:
        return self._issue(TokenKind.REFRESH, principal_id, claims)

    def issue_pair(self, principal_id: str, **claims) -> TokenPair:
        return TokenPair(
            access_token=self.issue_access(principal_id, **claims),
            refresh_token=self.issue_refresh(principal_id),
            access_expires_in=int(self.access_ttl.total_seconds()),
            refresh_expires_at=self.refresh_expiry_date(),
        )

    def verify(self, token: str, kind: TokenKind) -> TokenClaims:
        """
        Decode and validate a token of the expected kind.
        Raises ExpiredToken for an expired signature, InvalidToken for anything else.
        """
        kind = TokenKind(kind)
        if not token or not isinstance(token, str):
            raise InvalidToken()
        try:
            decoded = jwt.decode(
                token,
                self._secrets[kind],
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
                # exp is checked below against the injected clock
                options={"require": ["exp", "iat", "sub", "type", "jti"], "verify_exp": False, "verify_iat": False},
            )
            expires_at = datetime.fromtimestamp(int(decoded["exp"]), tz=timezone.utc)
        except (jwt.InvalidTokenError, TypeError, ValueError, OverflowError) as exc:
            logger.debug("Invalid %s token: %s", kind.value, exc.__class__.__name__)
            raise InvalidToken("Invalid refresh token" if kind is TokenKind.REFRESH else "Invalid token")
        if expires_at <= self._now():
            logger.debug("%s token expired", kind.value)
            raise ExpiredToken("Refresh token expired" if kind is TokenKind.REFRESH else "Token expired")

        if decoded.get("type") != kind.value:
            raise InvalidToken("Invalid token type")
        return TokenClaims(
            principal_id=decoded["sub"],
            kind=kind,
            jti=decoded["jti"],
            expires_at=expires_at,
            extra={k: v for k, v in decoded.items() if k not in _RESERVED},
        )

    def refresh_expiry_date(self, now: Optional[Callable[[], datetime]] = None) -> datetime:
        """Absolute expiry for a refresh token issued now."""
        current = (now or self._now)()
        return current + self.refresh_ttl
