"""Security helpers (multi-tenant scoping)."""

from __future__ import annotations

from typing import TypeVar
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from .auth import check_permission
from .models import User

T = TypeVar("T")


def require_permission(user: User, permission: str) -> None:
    """Enforce a role permission server-side."""
    if not check_permission(user, permission):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission denied: {permission} required",
        )


def require_org_entity(db: Session, model: type[T], *, entity_id: UUID, org_id: UUID, not_found: str) -> T:
    """Load an entity by (id, org_id) or raise 404."""
    entity = db.query(model).filter(  # type: ignore[arg-type]
        getattr(model, "id") == entity_id,  # noqa: B009
        getattr(model, "org_id") == org_id,  # noqa: B009
    ).first()
    if not entity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return entity


def lock_org_entity(db: Session, model: type[T], *, entity_id: UUID, org_id: UUID, not_found: str) -> T:
    """Load an entity by (id, org_id) with a row lock (SELECT ... FOR UPDATE) or raise 404."""
    entity = (
        db.query(model)  # type: ignore[arg-type]
        .filter(
            getattr(model, "id") == entity_id,  # noqa: B009
            getattr(model, "org_id") == org_id,  # noqa: B009
        )
        .with_for_update()
        .first()
    )
    if not entity:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=not_found)
    return entity
