from __future__ import annotations

from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi import HTTPException

from calidad.services import photo_storage
from calidad.services.photo_storage import (
    delete_photo_file,
    filename_from_url,
    photo_url,
    sanitize_filename,
    validate_photo,
)

FILENAME = "35bf5afa-184f-495e-8a0d-7257fe204aa0.png"


def test_sanitize_filename_accepts_uuid_filename_with_extension() -> None:
    assert sanitize_filename(FILENAME) == FILENAME


@pytest.mark.parametrize(
    "filename",
    [
        f"../{FILENAME}",
        "photo.png",
        "35bf5afa-184f-495e-8a0d-7257fe204aa0.exe",
        "",
    ],
)
def test_sanitize_filename_rejects_unsafe_names(filename: str) -> None:
    with pytest.raises(HTTPException) as exc:
        sanitize_filename(filename)
    assert exc.value.status_code == 400


def test_validate_photo_checks_extension() -> None:
    assert validate_photo(SimpleNamespace(filename="Foto.JPG")) == "jpg"
    with pytest.raises(HTTPException) as exc:
        validate_photo(SimpleNamespace(filename="report.pdf"))
    assert exc.value.status_code == 400
    with pytest.raises(HTTPException):
        validate_photo(SimpleNamespace(filename="noextension"))


def test_filename_from_url_only_accepts_served_photo_urls() -> None:
    assert filename_from_url(photo_url(FILENAME)) == FILENAME
    assert filename_from_url(f"/uploads/{FILENAME}") is None
    assert filename_from_url("/api/v1/photos/serve/../../etc/passwd") is None
    assert filename_from_url(None) is None


def test_delete_photo_file_removes_file_under_org_dir(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(photo_storage.settings, "UPLOAD_DIR", str(tmp_path))
    org_id = uuid4()
    target = tmp_path / str(org_id) / FILENAME
    target.parent.mkdir(parents=True)
    target.write_bytes(b"png")

    assert delete_photo_file(url=photo_url(FILENAME), org_id=org_id) is True
    assert not target.exists()
    # Missing files are not an error.
    assert delete_photo_file(url=photo_url(FILENAME), org_id=org_id) is True
    assert delete_photo_file(url="https://elsewhere/x.png", org_id=org_id) is False
