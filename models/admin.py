from enum import Enum

from sqlalchemy import Column, String, Index, text
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

from models.base_model import Base, BaseModel, SoftDeleteMixin
from models.principal import PrincipalMixin


class AdminRole(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    EDITOR = "editor"


class Admin(SoftDeleteMixin, PrincipalMixin, BaseModel, Base):
    __tablename__ = "admins"

    principal_type = "admin"

    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(
        SAEnum(AdminRole, name="admin_role", native_enum=False, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AdminRole.ADMIN,
    )

    news = relationship("News", back_populates="created_by_admin")

    __table_args__ = (
        Index(
            "uq_admins_email_live",
            "email",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    def __init__(self, *args, **kwargs):
        if kwargs.get("email"):
            kwargs["email"] = kwargs["email"].strip().lower()
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("role", AdminRole.ADMIN)
        super().__init__(*args, **kwargs)

    @property
    def role_name(self) -> str:
        return self.role.value if isinstance(self.role, AdminRole) else str(self.role)
