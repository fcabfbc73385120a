"""
Principal store: the only component that reads and writes User and Admin rows.

Every lookup used by the auth flows ignores soft-deleted rows, so a principal
with deleted_at set can neither be found nor authenticate. Multi-field writes
(OTP issuance in particular) go through storage.atomic() so a failure cannot
leave half-written state behind.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Tuple, Type

from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value

from models.admin import Admin, AdminRole
from models.user import User
from services.errors import Conflict

logger = logging.getLogger(__name__)


def normalize_email(email: Optional[str]) -> Optional[str]:
    return email.strip().lower() if isinstance(email, str) and email.strip() else None


class PrincipalStore:
    def __init__(self, storage, clock):
        self.storage = storage
        self.clock = clock

    @property
    def session(self):
        return self.storage.get_session()

    def _live(self, model: Type):
        return self.session.query(model).filter(model.deleted_at.is_(None))

    def reload(self, principal):
        """Re-read a principal after a conditional UPDATE bypassed the ORM."""
        return self._live(type(principal)).filter(type(principal).id == principal.id).populate_existing().first()

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    def get_user(self, user_id: str) -> Optional[User]:
        if not user_id:
            return None
        return self._live(User).filter(User.id == str(user_id)).first()

    def find_user_by_email(self, email: str) -> Optional[User]:
        email = normalize_email(email)
        if not email:
            return None
        return self._live(User).filter(User.email == email).first()

    def find_user_by_phone(self, phone_number: str) -> Optional[User]:
        if not phone_number:
            return None
        return self._live(User).filter(User.phone_number == phone_number).first()

    def email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        q = self._live(User).filter(User.email == normalize_email(email))
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        return self.session.query(q.exists()).scalar()

    def phone_taken(self, phone_number: str, exclude_id: Optional[str] = None) -> bool:
        q = self._live(User).filter(User.phone_number == phone_number)
        if exclude_id:
            q = q.filter(User.id != exclude_id)
        return self.session.query(q.exists()).scalar()

    def create_user(self, **fields) -> User:
        if fields.get("email") and self.email_taken(fields["email"]):
            raise Conflict("Email already registered")
        if fields.get("phone_number") and self.phone_taken(fields["phone_number"]):
            raise Conflict("Phone number already registered")
        user = User(**fields)
        self.storage.new(user)
        self.storage.save()
        logger.info("User created id=%s", user.id)
        return user

    # ------------------------------------------------------------------
    # admins
    # ------------------------------------------------------------------
    def get_admin(self, admin_id: str) -> Optional[Admin]:
        if not admin_id:
            return None
        return self._live(Admin).filter(Admin.id == str(admin_id)).first()

    def find_admin_by_email(self, email: str) -> Optional[Admin]:
        email = normalize_email(email)
        if not email:
            return None
        return self._live(Admin).filter(Admin.email == email).first()

    def create_admin(self, *, name: str, email: str, password_hash: str, role=AdminRole.ADMIN) -> Admin:
        if self.find_admin_by_email(email):
            raise Conflict("Admin already exists")
        admin = Admin(name=name, email=email, password_hash=password_hash, role=AdminRole(role))
        self.storage.new(admin)
        self.storage.save()
        logger.info("Admin created id=%s role=%s", admin.id, admin.role_name)
        return admin

    def list_admins(self, page: int, limit: int) -> Tuple[list, int]:
        query = self._live(Admin)
        total = query.count()
        rows = query.order_by(Admin.created_at.desc()).offset((page - 1) * limit).limit(limit).all()
        return rows, total

    # ------------------------------------------------------------------
    # shared writes
    # ------------------------------------------------------------------
    def update(self, principal, **fields):
        for key, value in fields.items():
            setattr(principal, key, value)
        self.storage.new(principal)
        self.storage.save()
        return principal

    def touch_last_login(self, principal):
        return self.update(principal, last_login=self.clock.now())

    def soft_delete(self, principal):
        principal.delete()
        logger.info("%s soft-deleted id=%s", principal.principal_type.capitalize(), principal.id)

    # ------------------------------------------------------------------
    # OTP state (users only)
    # ------------------------------------------------------------------
    def save_otp(self, user: User, otp: str, expires_at: datetime, sent_at: datetime) -> User:
        with self.storage.atomic():
            user.current_otp = otp
            user.otp_expires_at = expires_at
            user.otp_attempts = 0
            user.otp_is_used = False
            user.otp_sent_at = sent_at
            self.storage.new(user)
        return user

    def _reload_otp_state(self, user: User) -> None:
        row = (
            self.session.query(User.current_otp, User.otp_attempts, User.otp_is_used)
            .filter(User.id == user.id)
            .one()
        )
        set_committed_value(user, "current_otp", row.current_otp)
        set_committed_value(user, "otp_attempts", row.otp_attempts)
        set_committed_value(user, "otp_is_used", row.otp_is_used)

    def charge_otp_attempt(self, user: User, max_attempts: int) -> Optional[int]:
        """
        Spend one verification attempt with a conditional UPDATE that only
        matches while the OTP is unused and under the ceiling. Returns the new
        count, or None when no attempt was left; `user` is refreshed either way.
        """
        with self.storage.atomic() as session:
            result = session.execute(
                update(User)
                .where(
                    User.id == user.id,
                    User.otp_attempts < max_attempts,
                    User.otp_is_used.is_(False),
                )
                .values(otp_attempts=User.otp_attempts + 1)
                .execution_options(synchronize_session=False)
            )
        self._reload_otp_state(user)
        return user.otp_attempts if result.rowcount == 1 else None

    def refund_otp_attempt(self, user: User) -> int:
        with self.storage.atomic() as session:
            session.execute(
                update(User)
                .where(User.id == user.id, User.otp_attempts > 0)
                .values(otp_attempts=User.otp_attempts - 1)
                .execution_options(synchronize_session=False)
            )
        self._reload_otp_state(user)
        return user.otp_attempts

    def consume_otp(self, user: User, code: str) -> bool:
        """Flip otp_is_used for `code`; False when another request got there first."""
        with self.storage.atomic() as session:
            result = session.execute(
                update(User)
                .where(User.id == user.id, User.current_otp == code, User.otp_is_used.is_(False))
                .values(otp_is_used=True)
                .execution_options(synchronize_session=False)
            )
        self._reload_otp_state(user)
        return result.rowcount == 1

    def clear_otp(self, user: User) -> User:
        with self.storage.atomic():
            user.current_otp = None
            user.otp_expires_at = None
            user.otp_attempts = 0
            user.otp_is_used = False
            user.otp_sent_at = None
            self.storage.new(user)
        return user
