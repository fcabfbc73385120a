"""Query helpers shared by the content blueprints."""
from __future__ import annotations

from sqlalchemy import func

from models import storage
from services.errors import NotFound, ValidationError


def get_or_404(model, obj_id: str, label: str, active_only: bool = True):
    obj = storage.get(model, obj_id)
    if obj is None or (active_only and not obj.is_active):
        raise NotFound(f"{label} not found")
    return obj


def require_active(model, obj_id: str, label: str):
    """Like get_or_404, but a missing reference in a request body is a 400."""
    obj = storage.get(model, obj_id) if obj_id else None
    if obj is None or not obj.is_active:
        raise ValidationError(f"{label} does not exist", detail={"field": f"{label.lower()}Id"})
    return obj


def name_taken(model, name: str, exclude_id: str | None = None, **scope) -> bool:
    """Case-insensitive name uniqueness, optionally scoped (e.g. district_id)."""
    session = storage.get_session()
    q = session.query(model).filter(func.lower(model.name) == name.strip().lower())
    for column, value in scope.items():
        q = q.filter(getattr(model, column) == value)
    if exclude_id:
        q = q.filter(model.id != exclude_id)
    return session.query(q.exists()).scalar()


def paginate(query, page: int, limit: int, *order_by):
    total = query.count()
    rows = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    return rows, total
