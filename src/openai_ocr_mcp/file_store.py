"""
Content-addressed output store for extracted text.

Output files sit next to their source image and are named
``{image stem}-{digest}.txt`` where the digest is the first 8 hex
characters of the SHA-256 of the extracted text. Identical text for the
same image always maps to the same file; different text maps to a new
file and earlier variants are left in place.

File layout:

    OCR EXTRACTED TEXT:
    ==================
    <text>

    LLM ANALYSIS:
    =============
    [<timestamp>]
    <analysis>

Writes are plain overwrites/appends; they are not atomic.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

DIGEST_LENGTH = 8
OCR_HEADER = "OCR EXTRACTED TEXT:\n==================\n"
ANALYSIS_SEPARATOR = "\n\nLLM ANALYSIS:\n=============\n"


def well_formed(text: str) -> str:
    """Replace lone UTF-16 surrogates with U+FFFD so ``text`` encodes as UTF-8."""
    return text.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "replace")


def short_hash(text: str) -> str:
    """Truncated SHA-256 hex digest of ``text``."""
    return hashlib.sha256(well_formed(text).encode("utf-8")).hexdigest()[:DIGEST_LENGTH]


def output_path_for(image_path: str | Path, text: str) -> Path:
    image = Path(image_path)
    return image.parent / f"{image.stem}-{short_hash(text)}.txt"


def save_extracted_text(image_path: str | Path, text: str) -> Path:
    """Write ``text`` under its content-addressed name; returns the path."""
    txt_path = output_path_for(image_path, text)
    txt_path.write_text(f"{OCR_HEADER}{well_formed(text)}\n", encoding="utf-8")
    logger.info("Saved extracted text to: %s", txt_path)
    return txt_path


def utc_timestamp() -> str:
    """Current UTC time as ISO-8601 with millisecond precision and a Z suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def append_analysis_section(txt_path: str | Path, analysis: str, timestamp: str | None = None) -> None:
    """Append one timestamped analysis section to an existing output file."""
    stamp = timestamp or utc_timestamp()
    with open(txt_path, "a", encoding="utf-8") as f:
        f.write(f"{ANALYSIS_SEPARATOR}[{stamp}]\n{well_formed(analysis)}\n")
    logger.info("Appended analysis to: %s", txt_path)


def find_latest_output(image_path: str | Path) -> Path | None:
    """
    Find the output file for an image by scanning its directory.

    Matches ``{stem}-*.txt`` and picks the lexicographically last name.
    Best effort: with several variants for one image the choice is not
    necessarily the most recent extraction.
    """
    image = Path(image_path)
    directory = image.parent
    prefix = f"{image.stem}-"
    logger.debug("Looking for %s*.txt in %s", prefix, directory)

    matches = sorted(
        entry.name
        for entry in directory.iterdir()
        if entry.name.startswith(prefix) and entry.name.endswith(".txt") and entry.is_file()
    )
    logger.debug("Found %d matching text files: %s", len(matches), matches)
    if not matches:
        return None
    return directory / matches[-1]
