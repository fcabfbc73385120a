"""
Admin authentication and administration.

Admins log in with email + password only. Their refresh sessions use the same
triplet as users (token digest, expiry, revocation), signed with the admin
secrets, so an admin refresh token expires and rotates like a user's.
"""
from __future__ import annotations

import logging
from typing import Optional

from models.admin import AdminRole
from services.errors import Forbidden, InvalidCredentials, ValidationError

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(self, *, store, hasher, sessions):
        self.store = store
        self.hasher = hasher
        self.sessions = sessions

    def login(self, email: str, password: str):
        admin = self.store.find_admin_by_email(email)
        if admin is None or not self.hasher.verify(password or "", admin.password_hash):
            logger.warning("Failed admin login attempt for %s", email)
            raise InvalidCredentials()
        if not admin.is_active:
            raise Forbidden("Admin account is deactivated")
        if self.hasher.needs_rehash(admin.password_hash):
            self.store.update(admin, password_hash=self.hasher.hash(password))
            logger.info("Admin password hash upgraded id=%s", admin.id)
        result = self.sessions.start(admin)
        self.store.touch_last_login(admin)
        logger.info("Admin logged in id=%s", admin.id)
        return result

    def register(self, *, name: str, email: str, password: str, role: str = AdminRole.ADMIN.value):
        try:
            role = AdminRole(role)
        except ValueError:
            raise ValidationError(
                "Invalid role",
                detail={"field": "role", "allowed": [r.value for r in AdminRole]},
            )
        admin = self.store.create_admin(
            name=name,
            email=email,
            password_hash=self.hasher.hash(password),
            role=role,
        )
        logger.info("Admin registered id=%s role=%s", admin.id, admin.role_name)
        return admin

    def refresh(self, presented: str):
        return self.sessions.refresh(presented)

    def logout(self, admin, presented: Optional[str]) -> bool:
        return self.sessions.logout(admin, presented)

    def logout_all(self, admin) -> None:
        self.sessions.logout_all(admin)

    def deactivate(self, admin) -> None:
        self.store.update(admin, is_active=False)
        self.sessions.logout_all(admin)
        logger.info("Admin deactivated id=%s", admin.id)

    def list_admins(self, page: int, limit: int):
        return self.store.list_admins(page, limit)
