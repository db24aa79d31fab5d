"""Work plan and release ledger endpoints."""
from __future__ import annotations

import io
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    LedgerWriteResult,
    ReleaseCreate,
    ReversalCreate,
    WorkPlanCreate,
    WorkPlanDetail,
    WorkPlanOut,
)
from ..security import require_permission
from ..services.spreadsheet_export import XLSX_MEDIA_TYPE, export_work_plans, plans_export_filename
from ..use_cases.release_ledger_use_cases import (
    DEFAULT_LEDGER_HOOKS,
    record_release_use_case,
    record_reversal_use_case,
)
from ..use_cases.work_plans import (
    create_plan_use_case,
    get_plan_detail_use_case,
    list_plans_use_case,
    list_plans_with_summaries,
)

router = APIRouter(tags=["plans"])

LEDGER_USE_CASE_HOOKS = DEFAULT_LEDGER_HOOKS


@router.post("/plans", response_model=WorkPlanOut, status_code=201)
def create_plan(
    payload: WorkPlanCreate,
    current_user: User = Depends(PermissionChecker("canManagePlans")),
    db: Session = Depends(get_db),
):
    return create_plan_use_case(data=payload, current_user=current_user, db=db)


@router.get("/plans", response_model=list[WorkPlanOut])
def list_plans(
    area: Optional[str] = None,
    q: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return list_plans_use_case(db=db, current_user=current_user, area=area, search=q)


@router.get("/plans/export")
def export_plans(
    area: Optional[str] = None,
    q: Optional[str] = Query(None, max_length=100),
    current_user: User = Depends(PermissionChecker("canViewReports")),
    db: Session = Depends(get_db),
):
    """Download the filtered plans with their ledger totals as .xlsx."""
    rows = list_plans_with_summaries(db=db, current_user=current_user, area=area, search=q)
    content = export_work_plans(rows, area=area)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{plans_export_filename(area)}"'},
    )


@router.get("/plans/{plan_id}", response_model=WorkPlanDetail)
def get_plan(
    plan_id: UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Plan with its full release/reversal history (oldest first)."""
    return get_plan_detail_use_case(plan_id=plan_id, db=db, current_user=current_user)


@router.post("/plans/{plan_id}/releases", response_model=LedgerWriteResult, status_code=201)
def record_release(
    plan_id: UUID,
    payload: ReleaseCreate,
    current_user: User = Depends(PermissionChecker("canReleasePlans")),
    db: Session = Depends(get_db),
):
    return record_release_use_case(
        plan_id=plan_id,
        data=payload,
        current_user=current_user,
        db=db,
        hooks=LEDGER_USE_CASE_HOOKS,
    )


@router.post("/releases/{entry_id}/reversals", response_model=LedgerWriteResult, status_code=201)
def record_reversal(
    entry_id: UUID,
    payload: ReversalCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    require_permission(current_user, "canRevertReleases")
    return record_reversal_use_case(
        entry_id=entry_id,
        data=payload,
        current_user=current_user,
        db=db,
        hooks=LEDGER_USE_CASE_HOOKS,
    )
