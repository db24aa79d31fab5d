from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from calidad.auth import get_current_user
from calidad.database import get_db
from calidad.main import app
from calidad.models import DefectReport


class _QueryStub:
    def __init__(self, rows: list[object]) -> None:
        self._rows = rows

    def filter(self, *_args, **_kwargs):
        return self

    def options(self, *_args, **_kwargs):
        return self

    def order_by(self, *_args, **_kwargs):
        return self

    def all(self):
        return list(self._rows)


class _SessionStub:
    def __init__(self, reports=()) -> None:
        self._reports = list(reports)

    def query(self, model):
        if model is DefectReport:
            return _QueryStub(self._reports)
        raise AssertionError(f"Unexpected model queried: {model}")


@pytest.fixture
def client_as():
    def _build(role: str, *, reports=()):
        user = SimpleNamespace(id=uuid4(), org_id=uuid4(), initials="USR", role=role)
        app.dependency_overrides[get_current_user] = lambda: user
        app.dependency_overrides[get_db] = lambda: _SessionStub(reports)
        return TestClient(app)

    yield _build
    app.dependency_overrides.clear()


def test_dashboard_stats_returns_chart_data(client_as) -> None:
    reports = [
        SimpleNamespace(fecha=date(2026, 3, 1), area="SILLAS", defect_tags=["LACA MANCHA"]),
        SimpleNamespace(fecha=date(2026, 3, 2), area="SALAS", defect_tags=["TELA SUCIA", "OTRO"]),
    ]
    response = client_as("manager", reports=reports).get("/api/v1/dashboard/stats")

    assert response.status_code == 200
    payload = response.json()
    assert payload["total"] == 2
    assert [item["area"] for item in payload["by_area"]] == ["SILLAS", "SALAS"]
    assert payload["by_area"][0]["percentage"] == 50.0
    assert {item["defect"] for item in payload["top_defects"]} == {"LACA MANCHA", "TELA SUCIA", "OTRO"}


def test_dashboard_is_forbidden_for_operators(client_as) -> None:
    response = client_as("operator").get("/api/v1/dashboard/stats")
    assert response.status_code == 403


def test_release_requires_release_permission(client_as) -> None:
    response = client_as("operator").post(
        f"/api/v1/plans/{uuid4()}/releases",
        json={"amount": 5, "actor": "Ana"},
    )
    assert response.status_code == 403


def test_plan_with_unknown_area_maps_to_problem_details(client_as) -> None:
    response = client_as("manager").post(
        "/api/v1/plans",
        json={"area": "MESAS", "target_qty": 10, "producto": "MESA"},
    )

    assert response.status_code == 422
    assert response.headers["content-type"].startswith("application/problem+json")
    assert response.json()["code"] == "PLAN_AREA_INVALID"


def test_defect_vocabulary_lists_both_areas(client_as) -> None:
    response = client_as("operator").get("/api/v1/defects/vocabulary")

    assert response.status_code == 200
    payload = {item["area"]: item["defects"] for item in response.json()}
    assert set(payload) == {"SILLAS", "SALAS"}
    assert "PATAS FLOJAS" in payload["SALAS"]


def test_dashboard_export_sets_spreadsheet_filename(client_as) -> None:
    response = client_as("admin").get("/api/v1/dashboard/export", params={"start": "2026-03-01"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )
    assert 'filename="reporte_defectos_2026-03-01_todos.xlsx"' in response.headers["content-disposition"]
