"""Work plan use-cases: creation and ledger-backed read models."""
from __future__ import annotations

from uuid import UUID, uuid4

from fastapi import HTTPException
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ..database import commit_or_500
from ..domain_errors import DomainError, ValidationError
from ..models import AuditEvent, ReleaseEntry, User, WorkPlan
from ..schemas import WorkPlanCreate, WorkPlanDetail, WorkPlanOut
from ..security import require_org_entity
from ..services.defect_catalog import ensure_known_area
from ..services.release_ledger import LedgerSummary, summarize
from .release_ledger_use_cases import entries_out, load_plan_entries, plan_out

_TEXT_FIELDS: tuple[str, ...] = ("color", "lf", "pt", "lp", "pedido", "cliente")


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def create_plan_use_case(*, data: WorkPlanCreate, current_user: User, db: Session) -> WorkPlanOut:
    try:
        area = ensure_known_area(data.area)
    except ValueError as error:
        raise ValidationError(code="PLAN_AREA_INVALID", http_status=422, message=str(error)) from error

    producto = (data.producto or "").strip()
    if not producto:
        raise ValidationError(code="PLAN_PRODUCT_REQUIRED", http_status=422, message="Product is required")

    plan = WorkPlan(
        id=uuid4(),
        org_id=current_user.org_id,
        area=area,
        target_qty=int(data.target_qty),
        producto=producto,
        created_by=current_user.id,
        ledger_version=0,
        **{field: _clean_text(getattr(data, field)) for field in _TEXT_FIELDS},
    )
    db.add(plan)
    db.flush()

    db.add(
        AuditEvent(
            org_id=current_user.org_id,
            action="plan_created",
            entity_type="plan",
            entity_id=plan.id,
            entity_name=f"plan:{plan.producto}",
            user_id=current_user.id,
            user_name=current_user.initials,
            plan_id=plan.id,
            details={"area": area, "target_qty": plan.target_qty, "pedido": plan.pedido},
        )
    )
    commit_or_500(db, action="create plan")
    db.refresh(plan)
    return plan_out(plan, LedgerSummary(target=plan.target_qty, released=0, ledger_version=0))


def ledger_totals_by_plan(db: Session, *, org_id: UUID, plan_ids: list[UUID]) -> dict[UUID, tuple[int, int]]:
    """Return {plan_id: (released, entries_count)} summed in one grouped query."""
    if not plan_ids:
        return {}
    rows = (
        db.query(
            ReleaseEntry.plan_id,
            func.coalesce(func.sum(ReleaseEntry.amount), 0),
            func.count(ReleaseEntry.id),
        )
        .filter(
            ReleaseEntry.org_id == org_id,
            ReleaseEntry.plan_id.in_(plan_ids),
        )
        .group_by(ReleaseEntry.plan_id)
        .all()
    )
    return {plan_id: (int(released or 0), int(count or 0)) for plan_id, released, count in rows}


def _plan_summary(plan: WorkPlan, totals: dict[UUID, tuple[int, int]]) -> LedgerSummary:
    released, count = totals.get(plan.id, (0, 0))
    return LedgerSummary(
        target=int(plan.target_qty),
        released=released,
        entries_count=count,
        ledger_version=int(plan.ledger_version or 0),
    )


def list_plans_with_summaries(
    *,
    db: Session,
    current_user: User,
    area: str | None = None,
    search: str | None = None,
) -> list[tuple[WorkPlan, LedgerSummary]]:
    query = db.query(WorkPlan).filter(WorkPlan.org_id == current_user.org_id)
    if area:
        query = query.filter(WorkPlan.area == area.strip().upper())
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                WorkPlan.producto.ilike(pattern),
                WorkPlan.color.ilike(pattern),
                WorkPlan.lf.ilike(pattern),
                WorkPlan.pt.ilike(pattern),
                WorkPlan.lp.ilike(pattern),
                WorkPlan.pedido.ilike(pattern),
                WorkPlan.cliente.ilike(pattern),
            )
        )
    plans = query.order_by(WorkPlan.created_at.desc()).all()
    totals = ledger_totals_by_plan(db, org_id=current_user.org_id, plan_ids=[plan.id for plan in plans])
    return [(plan, _plan_summary(plan, totals)) for plan in plans]


def list_plans_use_case(
    *,
    db: Session,
    current_user: User,
    area: str | None = None,
    search: str | None = None,
) -> list[WorkPlanOut]:
    return [
        plan_out(plan, summary)
        for plan, summary in list_plans_with_summaries(db=db, current_user=current_user, area=area, search=search)
    ]


def get_plan_detail_use_case(*, plan_id: UUID, db: Session, current_user: User) -> WorkPlanDetail:
    try:
        plan = require_org_entity(
            db,
            WorkPlan,
            entity_id=plan_id,
            org_id=current_user.org_id,
            not_found="Plan not found",
        )
    except HTTPException as exc:
        raise DomainError(code="PLAN_NOT_FOUND", http_status=404, message="Plan not found") from exc

    entries = load_plan_entries(db, plan)
    summary = summarize(target=plan.target_qty, entries=entries, ledger_version=plan.ledger_version)
    return WorkPlanDetail(plan=plan_out(plan, summary), entries=entries_out(entries))
