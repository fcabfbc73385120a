from sqlalchemy import Column, String, Boolean, DateTime, Integer, Index, text
from sqlalchemy.orm import relationship

from models.base_model import Base, BaseModel, SoftDeleteMixin
from models.principal import PrincipalMixin


class User(SoftDeleteMixin, PrincipalMixin, BaseModel, Base):
    __tablename__ = "users"

    principal_type = "user"

    # OTP-registered users are keyed by phone, password-registered users by email
    phone_number = Column(String(16), nullable=True)
    email = Column(String(255), nullable=True)
    # Only users created through the password flow carry a hash
    password_hash = Column(String(255), nullable=True)
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)

    # OTP state; current_otp set implies otp_expires_at set
    current_otp = Column(String(8), nullable=True)
    otp_expires_at = Column(DateTime(timezone=True), nullable=True, index=True)
    otp_attempts = Column(Integer, nullable=False, default=0)
    otp_is_used = Column(Boolean, nullable=False, default=False)
    otp_sent_at = Column(DateTime(timezone=True), nullable=True)

    # Pending phone-number change, confirmed by an OTP sent to the new number
    pending_phone_number = Column(String(16), nullable=True)
    pending_phone_expires_at = Column(DateTime(timezone=True), nullable=True)

    posts = relationship("Post", back_populates="author")
    refresh_sessions = relationship(
        "RefreshTokenRecord",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # Natural keys are unique among live rows only, so a deleted account frees its phone/email
        Index(
            "uq_users_phone_number_live",
            "phone_number",
            unique=True,
            sqlite_where=text("deleted_at IS NULL AND phone_number IS NOT NULL"),
            postgresql_where=text("deleted_at IS NULL AND phone_number IS NOT NULL"),
        ),
        Index(
            "uq_users_email_live",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL AND email IS NOT NULL"),
            postgresql_where=text("deleted_at IS NULL AND email IS NOT NULL"),
        ),
    )

    def __init__(self, *args, **kwargs):
        if kwargs.get("email"):
            kwargs["email"] = kwargs["email"].strip().lower()
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("is_verified", False)
        kwargs.setdefault("otp_attempts", 0)
        kwargs.setdefault("otp_is_used", False)
        super().__init__(*args, **kwargs)

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)
