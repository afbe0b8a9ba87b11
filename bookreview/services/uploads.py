"""
Upload Service

Stores book cover images on local disk and removes them again.

Flow for a book create/update:
1. No file part, or an empty filename: nothing to do, keep the old URL
2. Content type must be image/jpeg or image/png
3. Write to <upload_dir>/<time_ns>-<basename>, record /uploads/<name>
4. After the database write succeeds, delete the previous image
   (best-effort); if it fails, delete the file just written

Files are served back by the StaticFiles mount at /uploads.
"""

import logging
import shutil
import time
from pathlib import Path

from starlette.datastructures import UploadFile

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = frozenset({"image/jpeg", "image/png"})
UPLOAD_URL_PREFIX = "/uploads/"
CHUNK_SIZE = 64 * 1024


class UploadError(Exception):
    """Base class for upload failures."""


class InvalidFileTypeError(UploadError):
    """The uploaded file is not a JPEG or PNG image."""

    def __init__(self, content_type: str | None) -> None:
        super().__init__(f"invalid file type: {content_type!r}")
        self.content_type = content_type


class RequestTooLargeError(UploadError):
    """The request body exceeds the configured upload limit."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"request body exceeds {limit} bytes")
        self.limit = limit


def has_file(upload: UploadFile | None) -> bool:
    return upload is not None and bool(upload.filename)


def generate_filename(original: str) -> str:
    """
    Build a unique file name from a nanosecond timestamp and the basename.

    Path(...).name drops any directory part a client sends along.
    """
    return f"{time.time_ns()}-{Path(original).name}"


def save_image(upload: UploadFile, upload_dir: str | Path, max_size: int) -> str:
    """
    Write an uploaded image to upload_dir and return its public URL.

    Raises:
        InvalidFileTypeError: content type is not image/jpeg or image/png
        RequestTooLargeError: the file is larger than max_size
    """
    if upload.content_type not in ALLOWED_CONTENT_TYPES:
        raise InvalidFileTypeError(upload.content_type)

    directory = Path(upload_dir)
    directory.mkdir(parents=True, exist_ok=True)

    name = generate_filename(upload.filename)
    destination = directory / name

    written = 0
    upload.file.seek(0)
    with destination.open("wb") as out:
        while chunk := upload.file.read(CHUNK_SIZE):
            written += len(chunk)
            if written > max_size:
                break
            out.write(chunk)

    if written > max_size:
        destination.unlink(missing_ok=True)
        raise RequestTooLargeError(max_size)

    logger.info(f"Saved upload {name} ({written} bytes)")
    return UPLOAD_URL_PREFIX + name


def remove_image(url: str, upload_dir: str | Path) -> bool:
    """
    Delete the file behind an /uploads/ URL.

    Best-effort: failures are logged and reported as False, never raised.
    URLs outside /uploads/ are left alone.
    """
    if not url or not url.startswith(UPLOAD_URL_PREFIX):
        return False

    path = Path(upload_dir) / Path(url[len(UPLOAD_URL_PREFIX):]).name
    try:
        path.unlink()
    except FileNotFoundError:
        logger.warning(f"Image already gone: {path}")
        return False
    except OSError as exc:
        logger.error(f"Failed to remove image {path}: {exc}")
        return False

    logger.info(f"Removed image {path}")
    return True


def clear_upload_dir(upload_dir: str | Path) -> None:
    """Remove every stored upload. Used by tests and development resets."""
    directory = Path(upload_dir)
    if directory.exists():
        shutil.rmtree(directory)
    directory.mkdir(parents=True, exist_ok=True)
