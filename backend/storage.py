"""Poster image storage on the local filesystem."""
import logging
import os
import random
import re
import time

from fastapi import UploadFile

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./public/uploads")
MAX_POSTER_BYTES = int(os.getenv("MAX_POSTER_BYTES", str(5 * 1024 * 1024)))
UPLOAD_URL_PREFIX = "/api/uploads"

_ALLOWED_EXTENSIONS = re.compile(r"\.(jpg|jpeg|png|gif)$", re.IGNORECASE)


class PosterRejected(ValueError):
    """Uploaded poster is not an accepted image or is too large."""


def ensure_upload_dir() -> str:
    """Create the upload directory if it doesn't exist."""
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    return UPLOAD_DIR


def has_poster(upload: UploadFile | None) -> bool:
    """An empty file field on the form means no poster was supplied."""
    return upload is not None and bool(upload.filename)


def save_poster(upload: UploadFile) -> str:
    """
    Store an uploaded poster and return its public reference.

    The file lands in UPLOAD_DIR as ``<epoch-ms>-<random><ext>`` and is
    referenced as ``/api/uploads/<name>``.
    """
    filename = upload.filename or ""
    if not _ALLOWED_EXTENSIONS.search(filename):
        raise PosterRejected("Only image files (jpg, jpeg, png, gif) can be uploaded")

    # One byte past the limit is enough to detect an oversized file
    content = upload.file.read(MAX_POSTER_BYTES + 1)
    if len(content) > MAX_POSTER_BYTES:
        raise PosterRejected(f"Poster exceeds the {MAX_POSTER_BYTES} byte limit")

    ext = os.path.splitext(filename)[1].lower()
    stored_name = f"{int(time.time() * 1000)}-{random.randint(0, 10**9)}{ext}"
    path = os.path.join(ensure_upload_dir(), stored_name)
    with open(path, "wb") as f:
        f.write(content)

    logger.info(f"Stored poster {filename} as {stored_name} ({len(content)} bytes)")
    return f"{UPLOAD_URL_PREFIX}/{stored_name}"


def discard_poster(reference: str | None) -> None:
    """Remove a stored poster by its public reference, if it exists."""
    if not reference or not reference.startswith(f"{UPLOAD_URL_PREFIX}/"):
        return
    path = os.path.join(UPLOAD_DIR, os.path.basename(reference))
    try:
        os.remove(path)
        logger.info(f"Discarded poster {path}")
    except FileNotFoundError:
        logger.warning(f"Poster already gone: {path}")
