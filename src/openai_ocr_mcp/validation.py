"""
Shared Validation Utilities

Input checks for the files the tools read and write: source images for
extraction and OCR text files for appended analysis.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

# ─── Constants ───────────────────────────────────────────────────────────────

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MiB
READ_CHECK_SIZE = 1024
ALLOWED_IMAGE_EXTS: tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif", ".webp")

MIME_TYPES: dict[str, str] = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}
DEFAULT_MIME_TYPE = "image/jpeg"

TEXT_FILE_SUFFIX = ".txt"


# ─── Errors ──────────────────────────────────────────────────────────────────


class ImageValidationError(ValueError):
    """The image path is missing, inaccessible or not an acceptable image."""


class AnalysisTargetError(ValueError):
    """The file analysis should be appended to is missing or not a .txt file."""


# ─── Image Validation ────────────────────────────────────────────────────────


def validate_image_file(image_path: str) -> Path:
    """
    Resolve ``image_path`` and check it is a readable image under the size cap.

    Returns the absolute path. Raises ImageValidationError describing the
    first check that failed.
    """
    if not image_path:
        raise ImageValidationError("image_path is required but was missing")

    path = Path(os.path.abspath(image_path))
    logger.info("Resolved absolute path: %s", path)

    if not path.exists():
        raise ImageValidationError(f"File not found at path: {path}")

    if not path.is_file():
        raise ImageValidationError(f"Not a file: {path}")

    size = path.stat().st_size
    logger.debug("File size: %d bytes", size)
    if size > MAX_FILE_SIZE:
        raise ImageValidationError(
            f"File too large: {size / (1024 * 1024):.2f}MB "
            f"(max: {MAX_FILE_SIZE // (1024 * 1024)}MB)"
        )

    ext = path.suffix.lower()
    if ext not in ALLOWED_IMAGE_EXTS:
        raise ImageValidationError(
            f"Invalid file type: {ext or '(none)'}. Allowed types: {', '.join(ALLOWED_IMAGE_EXTS)}"
        )

    try:
        with path.open("rb") as f:
            f.read(READ_CHECK_SIZE)
    except OSError as exc:
        raise ImageValidationError(f"File read error: {exc}") from exc

    return path


def get_mime_type(path: str | Path) -> str:
    """MIME type for an image path, by extension."""
    return MIME_TYPES.get(Path(path).suffix.lower(), DEFAULT_MIME_TYPE)


# ─── Text File Validation ────────────────────────────────────────────────────


def assert_text_file(text_file_path: str) -> Path:
    """Check that an analysis target exists and is a .txt file."""
    path = Path(text_file_path)
    if not path.exists():
        raise AnalysisTargetError(f"Text file not found: {text_file_path}")
    if path.suffix != TEXT_FILE_SUFFIX:
        raise AnalysisTargetError("File must be a .txt file")
    return path
