"""Audit trail endpoints."""
from datetime import date, datetime, time, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import AuditEvent, User
from ..schemas import AuditEventOut

router = APIRouter(prefix="/audit-events", tags=["audit"])


@router.get("", response_model=list[AuditEventOut])
def list_audit_events(
    plan_id: Optional[UUID] = None,
    entity_type: Optional[str] = Query(None, pattern="^(plan|release|defect|user)$"),
    action: Optional[str] = Query(None, max_length=50),
    since: Optional[date] = None,
    limit: int = Query(200, ge=1, le=1000),
    current_user: User = Depends(PermissionChecker("canViewAudit")),
    db: Session = Depends(get_db),
):
    """Newest audit rows of the caller's organization, optionally narrowed to one plan."""
    filters = [AuditEvent.org_id == current_user.org_id]
    if plan_id:
        filters.append(AuditEvent.plan_id == plan_id)
    if entity_type:
        filters.append(AuditEvent.entity_type == entity_type)
    if action:
        filters.append(AuditEvent.action == action)
    if since:
        filters.append(AuditEvent.created_at >= datetime.combine(since, time.min, tzinfo=timezone.utc))

    events = db.query(AuditEvent).filter(*filters).order_by(AuditEvent.created_at.desc()).limit(limit).all()
    return [AuditEventOut.model_validate(event) for event in events]
