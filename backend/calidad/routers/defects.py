"""Defect report endpoints."""
from __future__ import annotations

import io
from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..database import get_db
from ..models import User
from ..schemas import (
    BulkDeleteResult,
    DefectIntakeResult,
    DefectPhotoOut,
    DefectReportCreate,
    DefectReportOut,
    DefectVocabularyOut,
)
from ..services.defect_catalog import AREAS, defect_tags_for_area, is_known_area, normalize_area
from ..services.spreadsheet_export import XLSX_MEDIA_TYPE, defect_export_filename
from ..use_cases.dashboard import export_defects_use_case
from ..use_cases.defect_intake import (
    DEFAULT_INTAKE_HOOKS,
    DefectFilters,
    bulk_delete_defects_use_case,
    create_defect_report_use_case,
    list_defect_reports_use_case,
    list_report_photos_use_case,
)

router = APIRouter(prefix="/defects", tags=["defects"])

INTAKE_USE_CASE_HOOKS = DEFAULT_INTAKE_HOOKS


def _filters(
    start: Optional[date] = None,
    end: Optional[date] = None,
    fecha: Optional[date] = None,
    area: Optional[str] = None,
    cliente: Optional[str] = None,
    pedido: Optional[str] = None,
) -> DefectFilters:
    return DefectFilters(start=start, end=end, fecha=fecha, area=area, cliente=cliente, pedido=pedido)


@router.get("/vocabulary", response_model=list[DefectVocabularyOut])
def get_vocabulary(current_user: User = Depends(get_current_user)):
    """Areas and the defect names each one accepts."""
    return [DefectVocabularyOut(area=area, defects=list(defect_tags_for_area(area))) for area in AREAS]


@router.get("/vocabulary/{area}", response_model=DefectVocabularyOut)
def get_area_vocabulary(area: str, current_user: User = Depends(get_current_user)):
    if not is_known_area(area):
        raise HTTPException(status_code=404, detail="Unknown area")
    key = normalize_area(area)
    return DefectVocabularyOut(area=key, defects=list(defect_tags_for_area(key)))


@router.post("", response_model=DefectIntakeResult, status_code=201)
async def create_defect_report(
    area: str = Form(""),
    producto: str = Form(""),
    fecha: Optional[date] = Form(None),
    color: Optional[str] = Form(None),
    lf: Optional[str] = Form(None),
    pt: Optional[str] = Form(None),
    lp: Optional[str] = Form(None),
    pedido: Optional[str] = Form(None),
    cliente: Optional[str] = Form(None),
    descripcion: Optional[str] = Form(None),
    defect_tags: list[str] = Form([]),
    photos: list[UploadFile] = File([]),
    current_user: User = Depends(PermissionChecker("canRegisterDefects")),
    db: Session = Depends(get_db),
):
    """Register a defect (multipart form; photos are optional and stored best-effort)."""
    data = DefectReportCreate(
        fecha=fecha,
        area=area,
        producto=producto,
        color=color,
        lf=lf,
        pt=pt,
        lp=lp,
        pedido=pedido,
        cliente=cliente,
        defect_tags=defect_tags,
        descripcion=descripcion,
    )
    return await create_defect_report_use_case(
        data=data,
        photos=photos,
        current_user=current_user,
        db=db,
        hooks=INTAKE_USE_CASE_HOOKS,
    )


@router.get("", response_model=list[DefectReportOut])
def list_defect_reports(
    filters: DefectFilters = Depends(_filters),
    current_user: User = Depends(PermissionChecker("canViewReports")),
    db: Session = Depends(get_db),
):
    return list_defect_reports_use_case(db=db, current_user=current_user, filters=filters)


@router.get("/export")
def export_defect_reports(
    filters: DefectFilters = Depends(_filters),
    current_user: User = Depends(PermissionChecker("canViewReports")),
    db: Session = Depends(get_db),
):
    content = export_defects_use_case(db=db, current_user=current_user, filters=filters)
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{defect_export_filename(filters.start, filters.end)}"'
        },
    )


@router.get("/{report_id}/photos", response_model=list[DefectPhotoOut])
def list_report_photos(
    report_id: UUID,
    current_user: User = Depends(PermissionChecker("canViewReports")),
    db: Session = Depends(get_db),
):
    return list_report_photos_use_case(report_id=report_id, db=db, current_user=current_user)


@router.delete("", response_model=BulkDeleteResult)
def bulk_delete_defect_reports(
    filters: DefectFilters = Depends(_filters),
    current_user: User = Depends(PermissionChecker("canDeleteDefects")),
    db: Session = Depends(get_db),
):
    """Delete every report matching the filters (all reports when none are given)."""
    return bulk_delete_defects_use_case(
        db=db,
        current_user=current_user,
        filters=filters,
        hooks=INTAKE_USE_CASE_HOOKS,
    )
