"""Uploaded file storage for course content"""
import os
import secrets
import shutil
import tempfile
from typing import Optional

from fastapi import UploadFile

from app.config import settings
from app.errors import ValidationError
from app.utils.logger import logger
from app.utils.media import DOCUMENT_MIME_TYPES

VIDEO_EXTENSIONS = (".mp4", ".webm", ".mov", ".mkv", ".avi", ".m4v", ".ogg")


def _check_type(upload: UploadFile, kind: str, extension: str) -> None:
    if kind == "video":
        is_video = (upload.content_type or "").startswith("video/") or extension in VIDEO_EXTENSIONS
        if not is_video:
            raise ValidationError(f"Unsupported video file type: {upload.filename}")
    elif extension not in DOCUMENT_MIME_TYPES:
        raise ValidationError(f"Unsupported document file type: {upload.filename}")


def save_upload(upload: UploadFile, kind: str) -> dict:
    """Persist an uploaded file under a random name and return its descriptor.

    The body is copied to a temporary file in UPLOAD_DIR and renamed into
    place, so a half-written file never carries a content filename.

    Args:
        upload: Multipart file from the request
        kind: ``video`` or ``document``

    Returns:
        {"filename", "original_name", "path", "size", "mimetype"}
    """
    original_name = os.path.basename(upload.filename or "")
    extension = os.path.splitext(original_name)[1].lower()
    _check_type(upload, kind, extension)

    os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
    filename = f"{secrets.token_hex(16)}{extension}"
    path = os.path.join(settings.UPLOAD_DIR, filename)

    fd, tmp_path = tempfile.mkstemp(dir=settings.UPLOAD_DIR, suffix=".part")
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(upload.file, out)
        size = os.path.getsize(tmp_path)
        if size > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(f"File too large: {original_name}")
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise

    logger.info(f"Stored {kind} upload {filename}", extra={"action": "store_upload"})
    return {
        "filename": filename,
        "original_name": original_name,
        "path": path,
        "size": size,
        "mimetype": upload.content_type or "",
    }


def delete_file(descriptor: Optional[dict]) -> None:
    """Best-effort removal of a stored file. Failures are logged, never raised."""
    if not descriptor:
        return
    path = descriptor.get("path")
    if not path:
        return
    try:
        if os.path.exists(path):
            os.unlink(path)
    except OSError as exc:
        logger.warning(f"Could not delete stored file {path}", extra={"error": str(exc)})
