from __future__ import annotations

from types import SimpleNamespace

import pytest

from calidad.auth import ROLE_PERMISSIONS, UI_PERMISSION_KEYS, check_permission, get_role_ui_permissions


@pytest.mark.parametrize(
    ("role", "granted"),
    [
        (
            "admin",
            {
                "canRegisterDefects",
                "canViewReports",
                "canDeleteDefects",
                "canManagePlans",
                "canReleasePlans",
                "canRevertReleases",
                "canViewDashboard",
                "canViewAudit",
            },
        ),
        (
            "manager",
            {
                "canRegisterDefects",
                "canViewReports",
                "canManagePlans",
                "canReleasePlans",
                "canRevertReleases",
                "canViewDashboard",
                "canViewAudit",
            },
        ),
        (
            "inspector",
            {"canRegisterDefects", "canViewReports", "canReleasePlans", "canViewDashboard"},
        ),
        ("operator", {"canRegisterDefects"}),
    ],
)
def test_role_ui_permissions_matrix_is_stable(role: str, granted: set[str]) -> None:
    permissions = get_role_ui_permissions(role)
    assert {key for key, value in permissions.items() if value} == granted


def test_role_ui_permissions_has_exact_ui_keyset_for_each_role() -> None:
    expected_keys = set(UI_PERMISSION_KEYS)
    for role in ROLE_PERMISSIONS:
        assert set(get_role_ui_permissions(role).keys()) == expected_keys


def test_unknown_role_denies_all_ui_permissions() -> None:
    permissions = get_role_ui_permissions("unknown-role")
    assert set(permissions.keys()) == set(UI_PERMISSION_KEYS)
    assert all(value is False for value in permissions.values())


def test_only_admin_may_bulk_delete_defects() -> None:
    assert check_permission(SimpleNamespace(role="admin"), "canDeleteDefects")
    assert not check_permission(SimpleNamespace(role="manager"), "canDeleteDefects")
    assert not check_permission(SimpleNamespace(role="admin"), "canDoAnythingElse")
