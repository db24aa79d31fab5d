"""Dashboard aggregation over loaded defect reports (chart data only)."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

CHART_COLORS: tuple[str, ...] = ("#0088FE", "#00C49F", "#FFBB28", "#FF8042", "#8884D8", "#82CA9D")
CHART_LABEL_MAX = 20
DEFAULT_TOP_DEFECTS = 10


@dataclass(frozen=True)
class AreaStat:
    area: str
    count: int
    percentage: float
    color: str


@dataclass(frozen=True)
class DefectStat:
    defect: str
    label: str
    count: int
    percentage: float


@dataclass(frozen=True)
class DefectDashboard:
    total: int
    by_area: list[AreaStat] = field(default_factory=list)
    top_defects: list[DefectStat] = field(default_factory=list)


def _percentage(count: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(count * 100.0 / total, 1)


def chart_label(defect: str) -> str:
    if len(defect) > CHART_LABEL_MAX:
        return f"{defect[:CHART_LABEL_MAX]}..."
    return defect


def report_tags(report: Any) -> list[str]:
    tags = getattr(report, "defect_tags", None) or []
    return [tag for tag in dict.fromkeys(tags) if tag]


def filter_by_date(
    reports: Iterable[Any],
    *,
    start: date | None = None,
    end: date | None = None,
) -> list[Any]:
    """Keep reports whose ``fecha`` lies in [start, end]; open bounds are ignored."""
    selected = []
    for report in reports:
        fecha = report.fecha
        if start is not None and (fecha is None or fecha < start):
            continue
        if end is not None and (fecha is None or fecha > end):
            continue
        selected.append(report)
    return selected


def count_by_area(reports: Iterable[Any]) -> list[AreaStat]:
    rows = list(reports)
    total = len(rows)
    counts: dict[str, int] = {}
    # First-seen order keeps chart colours stable across reloads of the same data.
    for report in rows:
        counts[report.area] = counts.get(report.area, 0) + 1
    return [
        AreaStat(
            area=area,
            count=count,
            percentage=_percentage(count, total),
            color=CHART_COLORS[index % len(CHART_COLORS)],
        )
        for index, (area, count) in enumerate(counts.items())
    ]


def top_defects(reports: Iterable[Any], *, limit: int = DEFAULT_TOP_DEFECTS) -> list[DefectStat]:
    rows = list(reports)
    total = len(rows)
    counter: Counter[str] = Counter()
    for report in rows:
        counter.update(report_tags(report))

    ranked = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return [
        DefectStat(
            defect=defect,
            label=chart_label(defect),
            count=count,
            percentage=_percentage(count, total),
        )
        for defect, count in ranked[: max(limit, 0)]
    ]


def build_dashboard(
    reports: Iterable[Any],
    *,
    start: date | None = None,
    end: date | None = None,
    limit: int = DEFAULT_TOP_DEFECTS,
) -> DefectDashboard:
    selected = filter_by_date(reports, start=start, end=end)
    return DefectDashboard(
        total=len(selected),
        by_area=count_by_area(selected),
        top_defects=top_defects(selected, limit=limit),
    )
