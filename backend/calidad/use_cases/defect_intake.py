"""Defect report intake, listing and bulk deletion."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Awaitable, Callable, Iterable, Optional
from uuid import UUID, uuid4

from fastapi import HTTPException, UploadFile
from sqlalchemy import and_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from ..config import settings
from ..database import commit_or_500
from ..domain_errors import DomainError, ValidationError
from ..models import AuditEvent, DefectPhoto, DefectReport, User
from ..schemas import (
    BulkDeleteResult,
    DefectIntakeResult,
    DefectPhotoOut,
    DefectReportCreate,
    DefectReportOut,
    FailedPhoto,
)
from ..security import require_org_entity
from ..services.defect_catalog import clean_defect_tags, ensure_known_area
from ..services.photo_storage import StoredPhoto, delete_photo_file, store_photo

logger = logging.getLogger(__name__)

_TEXT_FIELDS: tuple[str, ...] = ("color", "lf", "pt", "lp", "pedido", "cliente")


@dataclass(frozen=True)
class DefectFilters:
    start: Optional[date] = None
    end: Optional[date] = None
    fecha: Optional[date] = None
    area: Optional[str] = None
    cliente: Optional[str] = None
    pedido: Optional[str] = None


@dataclass(frozen=True)
class DefectIntakeHooks:
    """File-storage seams used by intake use-cases (overridden in tests)."""

    store_photo: Callable[..., Awaitable[StoredPhoto]] = store_photo
    delete_photo_file: Callable[..., bool] = delete_photo_file
    today: Callable[[], date] = date.today


DEFAULT_INTAKE_HOOKS = DefectIntakeHooks()


def _clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = value.strip()
    return cleaned or None


def validate_defect_report(data: DefectReportCreate) -> tuple[str, str, list[str]]:
    """Return (area, producto, tags) or raise ValidationError."""
    try:
        area = ensure_known_area(data.area)
    except ValueError as error:
        raise ValidationError(code="DEFECT_AREA_INVALID", http_status=422, message=str(error)) from error

    producto = (data.producto or "").strip()
    if not producto:
        raise ValidationError(code="DEFECT_PRODUCT_REQUIRED", http_status=422, message="Product is required")

    try:
        tags = clean_defect_tags(area=area, tags=data.defect_tags)
    except LookupError as error:
        raise ValidationError(
            code="DEFECT_TAG_NOT_ALLOWED",
            http_status=422,
            message=str(error),
            details={"area": area},
        ) from error
    except ValueError as error:
        raise ValidationError(code="DEFECT_TAGS_REQUIRED", http_status=422, message=str(error)) from error

    return area, producto, tags


def report_out(report: DefectReport) -> DefectReportOut:
    return DefectReportOut.model_validate(report)


async def _attach_photo(
    *,
    db: Session,
    report: DefectReport,
    file: UploadFile,
    current_user: User,
    hooks: DefectIntakeHooks,
) -> DefectPhoto:
    stored = await hooks.store_photo(file=file, org_id=current_user.org_id)
    photo = DefectPhoto(
        id=uuid4(),
        org_id=current_user.org_id,
        report_id=report.id,
        url=stored.url,
        original_name=stored.original_name[:255],
        size=stored.size,
    )
    try:
        db.add(photo)
        db.add(
            AuditEvent(
                org_id=current_user.org_id,
                action="defect_photo_added",
                entity_type="defect",
                entity_id=report.id,
                entity_name=f"defect:{report.producto}",
                user_id=current_user.id,
                user_name=current_user.initials,
                details={"photo_id": str(photo.id), "name": photo.original_name, "size": photo.size},
            )
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        hooks.delete_photo_file(url=stored.url, org_id=current_user.org_id)
        raise
    return photo


async def create_defect_report_use_case(
    *,
    data: DefectReportCreate,
    photos: Iterable[UploadFile] = (),
    current_user: User,
    db: Session,
    hooks: DefectIntakeHooks = DEFAULT_INTAKE_HOOKS,
) -> DefectIntakeResult:
    area, producto, tags = validate_defect_report(data)

    report = DefectReport(
        id=uuid4(),
        org_id=current_user.org_id,
        fecha=data.fecha or hooks.today(),
        area=area,
        producto=producto,
        defect_tags=tags,
        descripcion=_clean_text(data.descripcion),
        created_by=current_user.id,
        **{field: _clean_text(getattr(data, field)) for field in _TEXT_FIELDS},
    )
    db.add(report)
    db.flush()
    db.add(
        AuditEvent(
            org_id=current_user.org_id,
            action="defect_reported",
            entity_type="defect",
            entity_id=report.id,
            entity_name=f"defect:{producto}",
            user_id=current_user.id,
            user_name=current_user.initials,
            details={"area": area, "defects": tags, "fecha": report.fecha.isoformat()},
        )
    )
    # The report is durable before any photo is attempted.
    commit_or_500(db, action="create defect report")
    db.refresh(report)
    logger.info("Defect report created id=%s area=%s defects=%s", report.id, area, len(tags))

    failed: list[FailedPhoto] = []
    for index, file in enumerate(photos):
        name = file.filename or f"photo-{index + 1}"
        if index >= settings.MAX_PHOTOS_PER_REPORT:
            failed.append(FailedPhoto(name=name, reason=f"Max {settings.MAX_PHOTOS_PER_REPORT} photos per report"))
            continue
        try:
            await _attach_photo(db=db, report=report, file=file, current_user=current_user, hooks=hooks)
        except HTTPException as exc:
            logger.warning("Photo rejected report=%s name=%s: %s", report.id, name, exc.detail)
            failed.append(FailedPhoto(name=name, reason=str(exc.detail)))
        except (OSError, SQLAlchemyError):
            logger.exception("Failed to attach photo report=%s name=%s", report.id, name)
            failed.append(FailedPhoto(name=name, reason="Failed to save photo"))

    db.refresh(report)
    return DefectIntakeResult(report=report_out(report), failed_photos=failed)


def filtered_reports_query(db: Session, *, org_id: UUID, filters: DefectFilters):
    conditions = [DefectReport.org_id == org_id]
    if filters.fecha:
        conditions.append(DefectReport.fecha == filters.fecha)
    if filters.start:
        conditions.append(DefectReport.fecha >= filters.start)
    if filters.end:
        conditions.append(DefectReport.fecha <= filters.end)
    if filters.area:
        conditions.append(DefectReport.area == filters.area.strip().upper())
    if filters.cliente and filters.cliente.strip():
        conditions.append(DefectReport.cliente.ilike(f"%{filters.cliente.strip()}%"))
    if filters.pedido and filters.pedido.strip():
        conditions.append(DefectReport.pedido.ilike(f"%{filters.pedido.strip()}%"))
    return db.query(DefectReport).filter(and_(*conditions))


def load_defect_reports(*, db: Session, current_user: User, filters: DefectFilters) -> list[DefectReport]:
    return (
        filtered_reports_query(db, org_id=current_user.org_id, filters=filters)
        .options(selectinload(DefectReport.photos))
        .order_by(DefectReport.fecha.desc(), DefectReport.created_at.desc())
        .all()
    )


def list_defect_reports_use_case(
    *,
    db: Session,
    current_user: User,
    filters: DefectFilters = DefectFilters(),
) -> list[DefectReportOut]:
    return [report_out(report) for report in load_defect_reports(db=db, current_user=current_user, filters=filters)]


def list_report_photos_use_case(*, report_id: UUID, db: Session, current_user: User) -> list[DefectPhotoOut]:
    try:
        require_org_entity(
            db,
            DefectReport,
            entity_id=report_id,
            org_id=current_user.org_id,
            not_found="Defect report not found",
        )
    except HTTPException as exc:
        raise DomainError(code="DEFECT_NOT_FOUND", http_status=404, message="Defect report not found") from exc

    photos = (
        db.query(DefectPhoto)
        .filter(
            DefectPhoto.report_id == report_id,
            DefectPhoto.org_id == current_user.org_id,
        )
        .order_by(DefectPhoto.created_at.asc())
        .all()
    )
    return [DefectPhotoOut.model_validate(photo) for photo in photos]


def bulk_delete_defects_use_case(
    *,
    db: Session,
    current_user: User,
    filters: DefectFilters = DefectFilters(),
    hooks: DefectIntakeHooks = DEFAULT_INTAKE_HOOKS,
) -> BulkDeleteResult:
    reports = (
        filtered_reports_query(db, org_id=current_user.org_id, filters=filters)
        .options(selectinload(DefectReport.photos))
        .all()
    )
    urls = [photo.url for report in reports for photo in report.photos]

    for report in reports:
        db.delete(report)
    db.add(
        AuditEvent(
            org_id=current_user.org_id,
            action="defects_bulk_deleted",
            entity_type="defect",
            entity_id=current_user.org_id,
            entity_name="defects:bulk",
            user_id=current_user.id,
            user_name=current_user.initials,
            details={
                "reports": len(reports),
                "photos": len(urls),
                "filters": {
                    "start": filters.start.isoformat() if filters.start else None,
                    "end": filters.end.isoformat() if filters.end else None,
                    "fecha": filters.fecha.isoformat() if filters.fecha else None,
                    "area": filters.area,
                    "cliente": filters.cliente,
                    "pedido": filters.pedido,
                },
            },
        )
    )
    commit_or_500(db, action="delete defect reports")

    # Files are removed only once the rows are committed.
    files_deleted = sum(1 for url in urls if hooks.delete_photo_file(url=url, org_id=current_user.org_id))
    if files_deleted != len(urls):
        logger.warning("Bulk delete removed %s of %s photo files", files_deleted, len(urls))

    logger.info("Bulk deleted defect reports org=%s reports=%s photos=%s", current_user.org_id, len(reports), len(urls))
    return BulkDeleteResult(reports_deleted=len(reports), photos_deleted=len(urls), files_deleted=files_deleted)
