"""Dashboard read models over defect reports."""
from __future__ import annotations

from datetime import date

from sqlalchemy.orm import Session

from ..config import settings
from ..models import User
from ..schemas import AreaStatOut, DashboardOut, DefectStatOut
from ..services.defect_stats import build_dashboard
from ..services.spreadsheet_export import export_defect_reports
from .defect_intake import DefectFilters, load_defect_reports


def dashboard_use_case(
    *,
    db: Session,
    current_user: User,
    start: date | None = None,
    end: date | None = None,
) -> DashboardOut:
    reports = load_defect_reports(db=db, current_user=current_user, filters=DefectFilters(start=start, end=end))
    dashboard = build_dashboard(reports, start=start, end=end, limit=settings.DASHBOARD_TOP_DEFECTS)
    return DashboardOut(
        total=dashboard.total,
        start=start,
        end=end,
        by_area=[AreaStatOut(**vars(stat)) for stat in dashboard.by_area],
        top_defects=[DefectStatOut(**vars(stat)) for stat in dashboard.top_defects],
    )


def export_defects_use_case(*, db: Session, current_user: User, filters: DefectFilters) -> bytes:
    reports = load_defect_reports(db=db, current_user=current_user, filters=filters)
    return export_defect_reports(reports, start=filters.start, end=filters.end)
