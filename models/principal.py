"""
Columns shared by both principal types (User and Admin).

The refresh-token triplet lives on the principal row:
- refresh_token: SHA-256 digest of the current refresh token (never the raw token)
- refresh_token_expires_at: absolute expiry of that token
- refresh_token_revoked_at: non-null means the stored token is dead even if not expired
"""
from sqlalchemy import Column, String, DateTime, Boolean


class RefreshTokenMixin:
    refresh_token = Column(String(64), nullable=True, index=True)
    refresh_token_expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    refresh_token_revoked_at = Column(DateTime(timezone=True), nullable=True)


class PrincipalMixin(RefreshTokenMixin):
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)

    # Used by the request authenticator to tell principal types apart
    principal_type = "principal"
