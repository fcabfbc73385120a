"""
Refresh-session storage strategies.

EmbeddedRefreshStore keeps one live session on the principal row (User and
Admin share the same refresh_token / expires_at / revoked_at triplet). A login
or rotation overwrites it, which logs other devices out: a single-session
policy.

TableRefreshStore keeps one RefreshTokenRecord row per session so several
devices stay signed in and each can be revoked on its own (users only).

Both store SHA-256 digests, never raw tokens, and both rotate with a single
conditional UPDATE keyed by principal id + expected token: of two concurrent
refreshes presenting the same token, exactly one matches a row.
"""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import and_, or_, update

from models.base_model import as_utc
from models.refresh_token import RefreshTokenRecord
from utils.security import digest_token

logger = logging.getLogger(__name__)


class EmbeddedRefreshStore:
    def __init__(self, storage, clock):
        self.storage = storage
        self.clock = clock

    def store(self, principal, token: str, expires_at: datetime) -> None:
        with self.storage.atomic():
            principal.refresh_token = digest_token(token)
            principal.refresh_token_expires_at = expires_at
            principal.refresh_token_revoked_at = None
            self.storage.new(principal)

    def is_live(self, principal, token: str) -> bool:
        if not principal.refresh_token or principal.refresh_token != digest_token(token):
            return False
        if principal.refresh_token_revoked_at is not None:
            return False
        expires_at = as_utc(principal.refresh_token_expires_at)
        return expires_at is None or expires_at > self.clock.now()

    def rotate(self, principal, presented: str, new_token: str, expires_at: datetime) -> bool:
        model = type(principal)
        now = self.clock.now()
        with self.storage.atomic() as session:
            result = session.execute(
                update(model)
                .where(
                    model.id == principal.id,
                    model.refresh_token == digest_token(presented),
                    model.refresh_token_revoked_at.is_(None),
                    or_(model.refresh_token_expires_at.is_(None), model.refresh_token_expires_at > now),
                )
                .values(
                    refresh_token=digest_token(new_token),
                    refresh_token_expires_at=expires_at,
                    refresh_token_revoked_at=None,
                )
                .execution_options(synchronize_session=False)
            )
        swapped = result.rowcount == 1
        if swapped:
            self._expire(principal)
        return swapped

    def revoke(self, principal, presented: str) -> bool:
        model = type(principal)
        with self.storage.atomic() as session:
            result = session.execute(
                update(model)
                .where(
                    model.id == principal.id,
                    model.refresh_token == digest_token(presented),
                    model.refresh_token_revoked_at.is_(None),
                )
                .values(refresh_token_revoked_at=self.clock.now())
                .execution_options(synchronize_session=False)
            )
        self._expire(principal)
        return result.rowcount == 1

    def revoke_all(self, principal) -> None:
        model = type(principal)
        with self.storage.atomic() as session:
            session.execute(
                update(model)
                .where(model.id == principal.id)
                .values(
                    refresh_token=None,
                    refresh_token_expires_at=None,
                    refresh_token_revoked_at=self.clock.now(),
                )
                .execution_options(synchronize_session=False)
            )
        self._expire(principal)

    def _expire(self, principal):
        # Conditional UPDATEs bypass the identity map; force a reload on next access
        session = self.storage.get_session()
        if principal in session:
            session.expire(principal)


class TableRefreshStore:
    def __init__(self, storage, clock):
        self.storage = storage
        self.clock = clock

    def _live_filter(self, principal, token: str):
        return and_(
            RefreshTokenRecord.user_id == principal.id,
            RefreshTokenRecord.token == digest_token(token),
            RefreshTokenRecord.revoked_at.is_(None),
            RefreshTokenRecord.expires_at > self.clock.now(),
        )

    def store(self, principal, token: str, expires_at: datetime) -> None:
        with self.storage.atomic() as session:
            session.add(RefreshTokenRecord(user_id=principal.id, token=digest_token(token), expires_at=expires_at))

    def is_live(self, principal, token: str) -> bool:
        session = self.storage.get_session()
        q = session.query(RefreshTokenRecord).filter(self._live_filter(principal, token))
        return session.query(q.exists()).scalar()

    def rotate(self, principal, presented: str, new_token: str, expires_at: datetime) -> bool:
        with self.storage.atomic() as session:
            result = session.execute(
                update(RefreshTokenRecord)
                .where(self._live_filter(principal, presented))
                .values(revoked_at=self.clock.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return False
            session.add(RefreshTokenRecord(user_id=principal.id, token=digest_token(new_token), expires_at=expires_at))
        return True

    def revoke(self, principal, presented: str) -> bool:
        with self.storage.atomic() as session:
            result = session.execute(
                update(RefreshTokenRecord)
                .where(
                    RefreshTokenRecord.user_id == principal.id,
                    RefreshTokenRecord.token == digest_token(presented),
                    RefreshTokenRecord.revoked_at.is_(None),
                )
                .values(revoked_at=self.clock.now())
                .execution_options(synchronize_session=False)
            )
        return result.rowcount == 1

    def revoke_all(self, principal) -> None:
        with self.storage.atomic() as session:
            result = session.execute(
                update(RefreshTokenRecord)
                .where(RefreshTokenRecord.user_id == principal.id, RefreshTokenRecord.revoked_at.is_(None))
                .values(revoked_at=self.clock.now())
                .execution_options(synchronize_session=False)
            )
        logger.info("Revoked %s refresh session(s) user=%s", result.rowcount, principal.id)

    def live_sessions(self, principal) -> int:
        session = self.storage.get_session()
        return (
            session.query(RefreshTokenRecord)
            .filter(
                RefreshTokenRecord.user_id == principal.id,
                RefreshTokenRecord.revoked_at.is_(None),
                RefreshTokenRecord.expires_at > self.clock.now(),
            )
            .count()
        )


def create_refresh_store(kind: str, storage, clock):
    if kind == "table":
        return TableRefreshStore(storage, clock)
    if kind == "embedded":
        return EmbeddedRefreshStore(storage, clock)
    raise ValueError(f"Unknown REFRESH_TOKEN_STORAGE: {kind!r}")
