"""Validation and storage of uploaded images (avatars, resource covers)."""

import io
import logging
import re
import uuid
from typing import Optional

from fastapi import HTTPException, UploadFile
from PIL import Image, UnidentifiedImageError

from ..config import settings

logger = logging.getLogger("aiclub.api")

ALLOWED_IMAGE_FORMATS = {"PNG", "JPEG", "GIF", "WEBP"}
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def validate_filename(filename: Optional[str]) -> str:
    """Reject empty, overlong or path-like names; return a storage-safe name."""
    if not filename or len(filename) > 200:
        raise HTTPException(status_code=400, detail="invalid filename")
    if "/" in filename or "\\" in filename or filename.startswith("."):
        raise HTTPException(status_code=400, detail="invalid filename path")
    return _UNSAFE_CHARS.sub("_", filename)


def read_limited(upload: UploadFile, max_bytes: Optional[int] = None) -> bytes:
    max_bytes = max_bytes or settings.MAX_UPLOAD_BYTES
    payload = upload.file.read(max_bytes + 1)
    if len(payload) > max_bytes:
        raise HTTPException(status_code=413, detail="file too large")
    if not payload:
        raise HTTPException(status_code=400, detail="empty file")
    return payload


def verify_image(payload: bytes) -> str:
    """Return the Pillow format name, or raise 415 for anything but a known image."""
    try:
        with Image.open(io.BytesIO(payload)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise HTTPException(status_code=415, detail="unsupported file content; expected an image")
    if fmt not in ALLOWED_IMAGE_FORMATS:
        raise HTTPException(status_code=415, detail=f"unsupported image format {fmt}")
    return fmt


def save_image(upload: UploadFile, subdir: str) -> str:
    """Validate `upload` as an image and store it under `UPLOADS_DIR/subdir`.

    Returns the public URL path (`/uploads/<subdir>/<uuid>_<name>`).
    """
    name = validate_filename(upload.filename)
    payload = read_limited(upload)
    verify_image(payload)
    target_dir = settings.UPLOADS_DIR / subdir
    target_dir.mkdir(parents=True, exist_ok=True)
    stored = f"{uuid.uuid4()}_{name}"
    (target_dir / stored).write_bytes(payload)
    logger.info("upload_saved subdir=%s name=%s bytes=%d", subdir, stored, len(payload))
    return f"/uploads/{subdir}/{stored}"
