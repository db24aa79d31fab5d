"""Authenticated serving of defect photos."""
import logging
import mimetypes
import time
from email.utils import formatdate

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..database import get_db
from ..models import DefectPhoto, User
from ..services.photo_storage import org_upload_dir, photo_url, sanitize_filename

router = APIRouter(prefix="/photos", tags=["photos"])
logger = logging.getLogger(__name__)


@router.get("/serve/{filename}")
def serve_photo(
    filename: str,
    request: Request,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Serve a stored photo; it must belong to a report of the caller's organization."""
    start = time.perf_counter()
    filename = sanitize_filename(filename)

    photo = db.query(DefectPhoto).filter(
        DefectPhoto.org_id == current_user.org_id,
        DefectPhoto.url == photo_url(filename),
    ).first()
    if photo is None:
        raise HTTPException(status_code=404, detail="File not found")

    file_path = org_upload_dir(current_user.org_id) / filename
    try:
        stat = file_path.stat()
    except OSError:
        raise HTTPException(status_code=404, detail="File not found")
    if not file_path.is_file() or stat.st_size > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(status_code=404, detail="File not found")

    etag = f'W/"{stat.st_mtime_ns}-{stat.st_size}"'
    headers = {
        "Cache-Control": "private, max-age=3600, must-revalidate",
        "ETag": etag,
        "Last-Modified": formatdate(stat.st_mtime, usegmt=True),
    }
    if request.headers.get("if-none-match") == etag:
        return Response(status_code=304, headers=headers)

    mime, _ = mimetypes.guess_type(str(file_path))
    if settings.DEBUG:
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info("photos.serve filename=%s ms=%.0f size=%s", filename, elapsed_ms, stat.st_size)
    return FileResponse(
        path=str(file_path),
        media_type=mime or "application/octet-stream",
        headers=headers,
    )
