#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the Regional CMS API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() and delete() that use the DBStorage singleton
- SoftDeleteMixin (deleted_at) for principals, ActivatableMixin (is_active) for content

Notes:
- Server-side defaults (func.now()) set timestamps consistently; SQLite maps it to CURRENT_TIMESTAMP.
- SQLite hands back naive datetimes even for DateTime(timezone=True) columns, so every
  comparison against "now" goes through as_utc().
- Put the mixin FIRST in the model's inheritance list so its delete() wins via MRO:
    class User(SoftDeleteMixin, BaseModel, Base): ...
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
import models

from sqlalchemy import Column, String, DateTime, Boolean
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at and
    save()/delete() wired to DBStorage.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        created_at/updated_at are left to DB defaults unless passed explicitly.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"

    def save(self):
        """Persist the instance and commit."""
        self.updated_at = utcnow()
        models.storage.new(self)
        models.storage.save()

    def delete(self):
        """
        Hard delete the current instance and commit.
        Soft-deletable models inherit a mixin first to override this method.
        """
        models.storage.delete(self)
        models.storage.save()


class SoftDeleteMixin:
    """
    Adds a deleted_at timestamp; delete() marks the row deleted and inactive.
    A row with deleted_at set is invisible to every lookup used by the auth flows.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True, index=True)

    def delete(self):  # type: ignore[override]
        self.deleted_at = utcnow()
        self.is_active = False
        models.storage.new(self)
        models.storage.save()


class ActivatableMixin:
    """
    Content rows are retired with an is_active flag instead of a timestamp.
    Lists only show active rows; delete() flips the flag.
    """

    is_active = Column(Boolean, nullable=False, default=True)

    def deactivate(self):
        self.is_active = False
        models.storage.new(self)
        models.storage.save()

    def delete(self):  # type: ignore[override]
        self.deactivate()
