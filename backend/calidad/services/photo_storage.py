"""On-disk storage for defect photos (one folder per organization)."""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID

from fastapi import HTTPException, UploadFile

from ..config import settings

logger = logging.getLogger(__name__)

PHOTO_URL_PREFIX = "/api/v1/photos/serve/"

_SAFE_FILENAME_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}\.[A-Za-z0-9]{1,16}$"
)
_CHUNK_SIZE = 1024 * 1024  # 1MB


@dataclass(frozen=True)
class StoredPhoto:
    filename: str
    original_name: str
    url: str
    size: int


def org_upload_dir(org_id: UUID) -> Path:
    # Strict tenant isolation on disk.
    org_dir = Path(settings.UPLOAD_DIR) / str(org_id)
    org_dir.mkdir(parents=True, exist_ok=True)
    return org_dir


def photo_url(filename: str) -> str:
    return f"{PHOTO_URL_PREFIX}{filename}"


def filename_from_url(url: str | None) -> str | None:
    if not url or not url.startswith(PHOTO_URL_PREFIX):
        return None
    candidate = url[len(PHOTO_URL_PREFIX):]
    if not _SAFE_FILENAME_RE.match(candidate):
        return None
    return candidate


def sanitize_filename(filename: str) -> str:
    if not filename:
        raise HTTPException(status_code=400, detail="Invalid filename")

    # Reject traversal and path separators regardless of OS.
    if "/" in filename or "\\" in filename or ".." in filename:
        raise HTTPException(status_code=400, detail="Invalid filename")

    if Path(filename).name != filename:
        raise HTTPException(status_code=400, detail="Invalid filename")

    if not _SAFE_FILENAME_RE.match(filename):
        raise HTTPException(status_code=400, detail="Invalid filename")

    ext = filename.rsplit(".", 1)[-1].lower()
    if ext not in settings.allowed_photo_extensions_list:
        raise HTTPException(status_code=400, detail="Invalid filename")

    return filename


def validate_photo(file: UploadFile) -> str:
    if not file.filename:
        raise HTTPException(status_code=400, detail="Filename is required")

    if "." not in file.filename:
        raise HTTPException(status_code=400, detail="File extension is required")

    ext = file.filename.rsplit(".", 1)[-1].lower()
    if ext not in settings.allowed_photo_extensions_list:
        raise HTTPException(
            status_code=400,
            detail=f"File type not allowed. Allowed: {settings.ALLOWED_PHOTO_EXTENSIONS}",
        )
    return ext


async def _stream_save_upload(*, file: UploadFile, dest_path: Path) -> int:
    """Stream UploadFile to disk with a hard size limit."""
    size = 0
    try:
        with dest_path.open("xb") as out:
            while True:
                chunk = await file.read(_CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > settings.MAX_UPLOAD_SIZE:
                    raise HTTPException(
                        status_code=400,
                        detail=f"File too large. Max size: {settings.MAX_UPLOAD_SIZE} bytes",
                    )
                out.write(chunk)
    except HTTPException:
        dest_path.unlink(missing_ok=True)
        raise
    except FileExistsError:
        raise HTTPException(status_code=409, detail="File collision, try again")
    except OSError:
        dest_path.unlink(missing_ok=True)
        logger.exception("Failed to save photo %s", dest_path.name)
        raise HTTPException(status_code=500, detail="Failed to save file")
    finally:
        await file.close()
    return size


async def store_photo(*, file: UploadFile, org_id: UUID) -> StoredPhoto:
    ext = validate_photo(file)
    filename = f"{uuid.uuid4()}.{ext}"
    size = await _stream_save_upload(file=file, dest_path=org_upload_dir(org_id) / filename)
    return StoredPhoto(
        filename=filename,
        original_name=file.filename or filename,
        url=photo_url(filename),
        size=size,
    )


def delete_photo_file(*, url: str | None, org_id: UUID) -> bool:
    """Remove the stored file behind a photo URL; missing files are not an error."""
    filename = filename_from_url(url)
    if filename is None:
        return False
    path = Path(settings.UPLOAD_DIR) / str(org_id) / filename
    try:
        path.unlink(missing_ok=True)
    except OSError:
        logger.exception("Failed to delete photo file %s", filename)
        return False
    return True
