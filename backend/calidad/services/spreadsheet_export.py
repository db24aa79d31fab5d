"""Excel (.xlsx) serialization of defect and release listings."""

from __future__ import annotations

from datetime import date, datetime
from io import BytesIO
from typing import Any, Iterable, Sequence

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from .defect_catalog import is_known_area, normalize_area

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

DEFECT_HEADERS: tuple[str, ...] = (
    "Fecha",
    "Fecha Creación",
    "Área",
    "Producto",
    "Color",
    "LF",
    "PT",
    "LP",
    "Pedido",
    "Cliente",
    "Defectos",
    "Descripción",
    "URL Fotos",
)

PLAN_HEADERS: tuple[str, ...] = (
    "Creado",
    "Área",
    "Producto",
    "Color",
    "LF",
    "PT",
    "LP",
    "Pedido",
    "Cliente",
    "Cantidad",
    "Liberado",
    "Pendiente",
)

_HEADER_FILL = PatternFill(start_color="FFD9E1F2", end_color="FFD9E1F2", fill_type="solid")


def defect_export_filename(start: date | None, end: date | None) -> str:
    start_label = start.isoformat() if start else "todos"
    end_label = end.isoformat() if end else "todos"
    return f"reporte_defectos_{start_label}_{end_label}.xlsx"


def plans_export_filename(area: str | None) -> str:
    label = normalize_area(area).lower() if is_known_area(area) else "todos"
    return f"planes_{label}.xlsx"


def _date_cell(value: date | datetime | None) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    return value.isoformat()


def _write_sheet(
    wb: Workbook,
    *,
    title: str,
    heading: str,
    subtitle: str | None,
    headers: Sequence[str],
    rows: Iterable[Sequence[Any]],
) -> None:
    ws = wb.active
    ws.title = title

    ws.merge_cells(start_row=1, start_column=1, end_row=1, end_column=len(headers))
    title_cell = ws.cell(row=1, column=1)
    title_cell.value = heading
    title_cell.font = Font(size=14, bold=True)
    title_cell.alignment = Alignment(horizontal="center")

    ws.cell(row=2, column=1).value = subtitle or ""
    ws.cell(row=2, column=1).font = Font(size=10)
    ws.append([])

    ws.append(list(headers))
    header_row = ws.max_row
    for col in range(1, len(headers) + 1):
        cell = ws.cell(row=header_row, column=col)
        cell.font = Font(bold=True)
        cell.fill = _HEADER_FILL
        cell.alignment = Alignment(horizontal="center")

    widths = [len(h) for h in headers]
    for row in rows:
        values = list(row)
        ws.append(values)
        # Free text is never a formula.
        for cell in ws[ws.max_row]:
            if isinstance(cell.value, str):
                cell.data_type = "s"
        for idx, value in enumerate(values):
            widths[idx] = max(widths[idx], min(len(str(value)), 60))

    for idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(idx)].width = width + 2
    ws.freeze_panes = ws.cell(row=header_row + 1, column=1)


def _to_bytes(wb: Workbook) -> bytes:
    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def defect_report_row(report: Any) -> list[Any]:
    photos = getattr(report, "photos", None) or []
    return [
        _date_cell(report.fecha),
        _date_cell(report.created_at),
        report.area,
        report.producto,
        report.color or "",
        report.lf or "",
        report.pt or "",
        report.lp or "",
        report.pedido or "",
        report.cliente or "",
        ", ".join(report.defect_tags or []),
        report.descripcion or "",
        "\n".join(photo.url for photo in photos),
    ]


def export_defect_reports(
    reports: Iterable[Any],
    *,
    start: date | None = None,
    end: date | None = None,
) -> bytes:
    wb = Workbook()
    if start or end:
        subtitle = f"Rango de fechas: {_date_cell(start) or 'inicio'} - {_date_cell(end) or 'hoy'}"
    else:
        subtitle = "Rango de fechas: todos"
    _write_sheet(
        wb,
        title="Reportes de Defectos",
        heading="Reporte de Defectos",
        subtitle=subtitle,
        headers=DEFECT_HEADERS,
        rows=(defect_report_row(report) for report in reports),
    )
    return _to_bytes(wb)


def export_work_plans(rows: Iterable[tuple[Any, Any]], *, area: str | None = None) -> bytes:
    """Serialize (plan, LedgerSummary) pairs."""
    wb = Workbook()
    _write_sheet(
        wb,
        title="Planes",
        heading="Planes de Trabajo",
        subtitle=f"Área: {area or 'todas'}",
        headers=PLAN_HEADERS,
        rows=(
            [
                _date_cell(plan.created_at),
                plan.area,
                plan.producto,
                plan.color or "",
                plan.lf or "",
                plan.pt or "",
                plan.lp or "",
                plan.pedido or "",
                plan.cliente or "",
                int(plan.target_qty),
                summary.released,
                summary.pending,
            ]
            for plan, summary in rows
        ),
    )
    return _to_bytes(wb)
