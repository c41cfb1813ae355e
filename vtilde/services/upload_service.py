"""
vtilde.services.upload_service — Art image uploads
===================================================

Images are validated here, then handed to the Cloudinary media host
(:mod:`vtilde.services.media_host`) when ``CLOUDINARY_*`` is configured.
Without it they are written to a configurable ``uploads/`` directory (a
Docker volume in development) and served back under ``/api/uploads``.

Either way the stored ``image_url`` is the public URL, so deleting art can
hand it straight back to :func:`delete_upload`.
"""

from __future__ import annotations

import asyncio
import logging
import os
import uuid
from pathlib import Path

from vtilde.errors import ValidationError
from vtilde.services.media_host import MediaHost

logger = logging.getLogger(__name__)

UPLOAD_DIR = Path(os.getenv("VTILDE_UPLOAD_DIR", "uploads"))
UPLOAD_URL_PREFIX = "/api/uploads/"
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10 MB
ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}
ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
}


def ensure_upload_dir() -> None:
    """Create the upload directory if it doesn't exist."""
    UPLOAD_DIR.mkdir(parents=True, exist_ok=True)


async def save_upload(filename: str, content: bytes, content_type: str | None = None) -> str:
    """Validate and persist an uploaded image.

    Returns
    -------
    str
        The media host's HTTPS URL, or the local URL path
        (e.g. ``/api/uploads/abc123.png``).

    Raises
    ------
    ValidationError
        Empty file, too large, or not an allowed image type.
    ExternalServiceError
        The media host rejected or failed the upload.
    """
    if not content:
        raise ValidationError("Uploaded file is empty")
    if len(content) > MAX_FILE_SIZE:
        raise ValidationError(
            f"File too large: {len(content)} bytes (max {MAX_FILE_SIZE // 1024 // 1024}MB)"
        )

    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError(
            f"File type not allowed: {ext!r}. "
            f"Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    if content_type and content_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"MIME type not allowed: {content_type!r}")

    host = MediaHost.from_env()
    if host is not None:
        url = await asyncio.to_thread(host.upload, content, filename)
        logger.debug("Uploaded %s to the media host (%d bytes)", filename, len(content))
        return url

    ensure_upload_dir()
    unique_name = f"{uuid.uuid4().hex}{ext}"
    await asyncio.to_thread((UPLOAD_DIR / unique_name).write_bytes, content)
    logger.debug("Stored upload %s (%d bytes)", unique_name, len(content))
    return f"{UPLOAD_URL_PREFIX}{unique_name}"


def delete_upload(url_path: str) -> bool:
    """Remove an uploaded image by its URL.

    Returns True if the image existed and was deleted.  URLs that point
    neither into the upload directory nor at the media host are ignored
    (seeded art may link anywhere).
    """
    if not url_path.startswith(UPLOAD_URL_PREFIX):
        host = MediaHost.from_env()
        if host is not None and host.owns(url_path):
            return host.destroy(url_path)
        return False
    filepath = UPLOAD_DIR / url_path.rsplit("/", 1)[-1]
    if filepath.exists() and filepath.is_file():
        filepath.unlink()
        return True
    return False
