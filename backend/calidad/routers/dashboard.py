"""Dashboard endpoints (chart data + spreadsheet export)."""
from __future__ import annotations

import io
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import DashboardOut
from ..services.spreadsheet_export import XLSX_MEDIA_TYPE, defect_export_filename
from ..use_cases.dashboard import dashboard_use_case, export_defects_use_case
from ..use_cases.defect_intake import DefectFilters

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/stats", response_model=DashboardOut)
def get_dashboard_stats(
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(PermissionChecker("canViewDashboard")),
    db: Session = Depends(get_db),
):
    return dashboard_use_case(db=db, current_user=current_user, start=start, end=end)


@router.get("/export")
def export_dashboard(
    start: Optional[date] = None,
    end: Optional[date] = None,
    current_user: User = Depends(PermissionChecker("canViewDashboard")),
    db: Session = Depends(get_db),
):
    content = export_defects_use_case(db=db, current_user=current_user, filters=DefectFilters(start=start, end=end))
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{defect_export_filename(start, end)}"'},
    )
