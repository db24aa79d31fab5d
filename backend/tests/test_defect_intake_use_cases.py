from __future__ import annotations

import asyncio
from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException

from calidad.domain_errors import DomainError, ValidationError
from calidad.models import AuditEvent, DefectPhoto, DefectReport
from calidad.schemas import DefectReportCreate
from calidad.services.photo_storage import StoredPhoto
from calidad.use_cases.defect_intake import (
    DefectFilters,
    DefectIntakeHooks,
    bulk_delete_defects_use_case,
    create_defect_report_use_case,
    list_report_photos_use_case,
    validate_defect_report,
)

TODAY = date(2026, 3, 4)


class _QueryStub:
    def __init__(self, rows: list[object]) -> None:
        self._rows = rows

    def filter(self, *_args, **_kwargs):
        return self

    def options(self, *_args, **_kwargs):
        return self

    def order_by(self, *_args, **_kwargs):
        return self

    def first(self):
        return self._rows[0] if self._rows else None

    def all(self):
        return list(self._rows)


class _SessionStub:
    def __init__(self, *, reports=(), photos=()) -> None:
        self._reports = list(reports)
        self._photos = list(photos)
        self.added: list[object] = []
        self.deleted: list[object] = []
        self.commit_calls = 0
        self.rollback_calls = 0

    def query(self, model):
        if model is DefectReport:
            return _QueryStub(self._reports)
        if model is DefectPhoto:
            return _QueryStub(self._photos)
        raise AssertionError(f"Unexpected model queried: {model}")

    def add(self, obj: object) -> None:
        self.added.append(obj)

    def delete(self, obj: object) -> None:
        self.deleted.append(obj)

    def flush(self) -> None:
        return None

    def commit(self) -> None:
        self.commit_calls += 1

    def rollback(self) -> None:
        self.rollback_calls += 1

    def refresh(self, _obj: object) -> None:
        return None


def _user():
    return SimpleNamespace(id=uuid4(), org_id=uuid4(), initials="INS", role="inspector")


def _upload(name: str):
    return SimpleNamespace(filename=name)


def _hooks(*, failures: dict[str, Exception] | None = None, deleted: list[str] | None = None) -> DefectIntakeHooks:
    failures = failures or {}

    async def _store(*, file, org_id):  # noqa: ARG001
        if file.filename in failures:
            raise failures[file.filename]
        return StoredPhoto(
            filename=f"{uuid4()}.jpg",
            original_name=file.filename,
            url=f"/api/v1/photos/serve/{file.filename}",
            size=1024,
        )

    def _delete(*, url, org_id):  # noqa: ARG001
        if deleted is not None:
            deleted.append(url)
        return not url.endswith("missing.jpg")

    return DefectIntakeHooks(store_photo=_store, delete_photo_file=_delete, today=lambda: TODAY)


def _valid_payload(**overrides) -> DefectReportCreate:
    payload = {
        "area": "sillas",
        "producto": " SILLA COMEDOR ",
        "pedido": "P-1001",
        "defect_tags": ["laca mancha", "GRAPA VISIBLE", "LACA MANCHA"],
    }
    payload.update(overrides)
    return DefectReportCreate(**payload)


def test_validate_defect_report_normalizes_fields() -> None:
    area, producto, tags = validate_defect_report(_valid_payload())
    assert area == "SILLAS"
    assert producto == "SILLA COMEDOR"
    assert tags == ["LACA MANCHA", "GRAPA VISIBLE"]


@pytest.mark.parametrize(
    ("overrides", "code"),
    [
        ({"area": "MESAS"}, "DEFECT_AREA_INVALID"),
        ({"area": ""}, "DEFECT_AREA_INVALID"),
        ({"producto": "  "}, "DEFECT_PRODUCT_REQUIRED"),
        ({"defect_tags": []}, "DEFECT_TAGS_REQUIRED"),
        ({"defect_tags": ["TELA MANCHADA"]}, "DEFECT_TAG_NOT_ALLOWED"),
    ],
)
def test_validate_defect_report_rejections_have_stable_codes(overrides, code) -> None:
    with pytest.raises(ValidationError) as exc:
        validate_defect_report(_valid_payload(**overrides))

    assert exc.value.code == code
    assert exc.value.http_status == 422


def test_create_report_without_photos_defaults_fecha_and_audits() -> None:
    db = _SessionStub()

    result = asyncio.run(
        create_defect_report_use_case(data=_valid_payload(), current_user=_user(), db=db, hooks=_hooks())
    )

    assert result.failed_photos == []
    assert result.report.fecha == TODAY
    assert result.report.area == "SILLAS"
    assert result.report.defect_tags == ["LACA MANCHA", "GRAPA VISIBLE"]
    assert db.commit_calls == 1
    audits = [item for item in db.added if isinstance(item, AuditEvent)]
    assert [audit.action for audit in audits] == ["defect_reported"]


def test_create_report_keeps_explicit_fecha() -> None:
    result = asyncio.run(
        create_defect_report_use_case(
            data=_valid_payload(fecha=date(2026, 1, 15)),
            current_user=_user(),
            db=_SessionStub(),
            hooks=_hooks(),
        )
    )

    assert result.report.fecha == date(2026, 1, 15)


def test_photo_failures_are_reported_without_rolling_back_the_report() -> None:
    db = _SessionStub()
    hooks = _hooks(
        failures={
            "bad.exe": HTTPException(status_code=400, detail="File type not allowed"),
            "disk.jpg": OSError("disk full"),
        }
    )

    result = asyncio.run(
        create_defect_report_use_case(
            data=_valid_payload(),
            photos=[_upload("ok.jpg"), _upload("bad.exe"), _upload("disk.jpg")],
            current_user=_user(),
            db=db,
            hooks=hooks,
        )
    )

    assert [(item.name, item.reason) for item in result.failed_photos] == [
        ("bad.exe", "File type not allowed"),
        ("disk.jpg", "Failed to save photo"),
    ]
    photos = [item for item in db.added if isinstance(item, DefectPhoto)]
    assert len(photos) == 1
    assert photos[0].original_name == "ok.jpg"
    assert photos[0].url == "/api/v1/photos/serve/ok.jpg"
    # One commit for the report, one for the stored photo.
    assert db.commit_calls == 2
    assert db.rollback_calls == 0
    actions = [item.action for item in db.added if isinstance(item, AuditEvent)]
    assert actions == ["defect_reported", "defect_photo_added"]


def test_invalid_report_stores_nothing() -> None:
    db = _SessionStub()

    with pytest.raises(ValidationError):
        asyncio.run(
            create_defect_report_use_case(
                data=_valid_payload(defect_tags=[]),
                photos=[_upload("ok.jpg")],
                current_user=_user(),
                db=db,
                hooks=_hooks(),
            )
        )

    assert db.added == []
    assert db.commit_calls == 0


def test_bulk_delete_removes_rows_then_files_and_counts() -> None:
    reports = [
        SimpleNamespace(id=uuid4(), photos=[SimpleNamespace(url="/api/v1/photos/serve/a.jpg")]),
        SimpleNamespace(
            id=uuid4(),
            photos=[
                SimpleNamespace(url="/api/v1/photos/serve/b.jpg"),
                SimpleNamespace(url="/api/v1/photos/serve/missing.jpg"),
            ],
        ),
        SimpleNamespace(id=uuid4(), photos=[]),
    ]
    db = _SessionStub(reports=reports)
    deleted_urls: list[str] = []

    result = bulk_delete_defects_use_case(
        db=db,
        current_user=_user(),
        filters=DefectFilters(area="sillas"),
        hooks=_hooks(deleted=deleted_urls),
    )

    assert result.reports_deleted == 3
    assert result.photos_deleted == 3
    assert result.files_deleted == 2
    assert db.deleted == reports
    assert db.commit_calls == 1
    assert len(deleted_urls) == 3
    audits = [item for item in db.added if isinstance(item, AuditEvent)]
    assert audits[0].action == "defects_bulk_deleted"
    assert audits[0].details["filters"]["area"] == "sillas"


def test_list_report_photos_unknown_report_returns_stable_code() -> None:
    with pytest.raises(DomainError, match="Defect report not found") as exc:
        list_report_photos_use_case(report_id=uuid4(), db=_SessionStub(), current_user=_user())

    assert exc.value.http_status == 404
    assert exc.value.code == "DEFECT_NOT_FOUND"
