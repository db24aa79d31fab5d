from __future__ import annotations

from datetime import date
from types import SimpleNamespace

from calidad.services.defect_stats import (
    CHART_COLORS,
    build_dashboard,
    chart_label,
    count_by_area,
    filter_by_date,
    top_defects,
)


def _report(fecha: date, area: str, *tags: str):
    return SimpleNamespace(fecha=fecha, area=area, defect_tags=list(tags))


def _reports():
    return [
        _report(date(2026, 3, 1), "SILLAS", "LACA MANCHA", "GRAPA VISIBLE"),
        _report(date(2026, 3, 2), "SILLAS", "LACA MANCHA"),
        _report(date(2026, 3, 3), "SALAS", "TELA SUCIA", "LACA MANCHA"),
        _report(date(2026, 3, 5), "SILLAS", "GRAPA VISIBLE"),
    ]


def test_area_breakdown_uses_first_seen_order_and_palette() -> None:
    stats = count_by_area(_reports())

    assert [(stat.area, stat.count, stat.percentage) for stat in stats] == [
        ("SILLAS", 3, 75.0),
        ("SALAS", 1, 25.0),
    ]
    assert [stat.color for stat in stats] == list(CHART_COLORS[:2])


def test_top_defects_counts_each_tag_once_per_report_and_ranks() -> None:
    reports = _reports() + [_report(date(2026, 3, 6), "SILLAS", "OTRO", "OTRO")]

    stats = top_defects(reports)

    assert [(stat.defect, stat.count) for stat in stats] == [
        ("LACA MANCHA", 3),
        ("GRAPA VISIBLE", 2),
        ("OTRO", 1),
        ("TELA SUCIA", 1),
    ]
    # Percentage is against the number of reports, not the number of tags.
    assert stats[0].percentage == 60.0


def test_top_defects_is_truncated_to_limit() -> None:
    reports = [_report(date(2026, 3, 1), "SILLAS", f"DEFECTO {index:02d}") for index in range(15)]

    assert len(top_defects(reports)) == 10
    assert len(top_defects(reports, limit=3)) == 3


def test_chart_label_truncates_long_names() -> None:
    assert chart_label("TELA SUCIA") == "TELA SUCIA"
    assert chart_label("TIRA TACHUELA DESALINEADO") == "TIRA TACHUELA DESALI..."


def test_date_filter_bounds_are_inclusive_and_optional() -> None:
    reports = _reports()

    assert len(filter_by_date(reports, start=date(2026, 3, 2), end=date(2026, 3, 3))) == 2
    assert len(filter_by_date(reports, start=date(2026, 3, 3))) == 2
    assert len(filter_by_date(reports, end=date(2026, 3, 1))) == 1
    assert len(filter_by_date(reports)) == 4


def test_dashboard_over_empty_range_is_all_zero() -> None:
    dashboard = build_dashboard(_reports(), start=date(2027, 1, 1))

    assert dashboard.total == 0
    assert dashboard.by_area == []
    assert dashboard.top_defects == []


def test_dashboard_combines_filter_and_aggregates() -> None:
    dashboard = build_dashboard(_reports(), start=date(2026, 3, 2), limit=1)

    assert dashboard.total == 3
    assert [stat.area for stat in dashboard.by_area] == ["SILLAS", "SALAS"]
    assert [(stat.defect, stat.count) for stat in dashboard.top_defects] == [("LACA MANCHA", 2)]
