"""
extract_text_from_image — Extract text (and optional analysis) from an image.

Pipeline:
  1. Validate the image (exists, regular file, ≤ 5 MiB, allowed extension, readable)
  2. Send it to the vision completion service as a base64 data URL
  3. Split the reply into extracted text and optional analysis
  4. Record the extraction in the correlation state
  5. Save the text next to the image as {stem}-{digest}.txt
  6. Append the analysis section, if there is one

Every failure becomes an error result (isError) instead of a protocol error.
Runs are serialized on the context's pipeline lock.
"""

from __future__ import annotations

import base64
import logging
import re

from pydantic import BaseModel, Field

from ..file_store import save_extracted_text, well_formed
from ..mcp_base import MCPResult, MCPTool
from ..ocr_types import ExtractionResult
from ..validation import (
    AnalysisTargetError,
    ImageValidationError,
    get_mime_type,
    validate_image_file,
)
from ..vision_client import VisionServiceError
from .append_analysis import append_analysis

logger = logging.getLogger(__name__)

# ─── Constants ───────────────────────────────────────────────────────────────

INSTRUCTION = (
    "Extract all text from this image and provide a detailed analysis of its contents. "
    "Include both the raw text and your analysis."
)

# A blank line followed by one of these headings starts the analysis part.
ANALYSIS_SPLIT = re.compile(
    r"\n\n(?=Analysis:|Interpretation:|Summary:|Understanding:)", re.IGNORECASE
)


class Params(BaseModel):
    """Parameters for extract_text_from_image."""

    image_path: str = Field(
        description="Full path to a local image file (e.g., /Users/username/Pictures/image.jpg)"
    )


def split_completion(completion: str) -> tuple[str, str]:
    """Split a completion into (extracted text, analysis) at the first analysis heading."""
    parts = ANALYSIS_SPLIT.split(completion)
    return parts[0], "\n\n".join(parts[1:])


def encode_image(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


# ─── Tool Implementation ─────────────────────────────────────────────────────


class ExtractTextFromImage(MCPTool[Params]):
    """Extract text from a local image using a vision model."""

    name = "extract_text_from_image"
    description = (
        "Extract text from images using OpenAI's vision capabilities. "
        "Simply provide the full path to a local image file."
    )
    path_argument = "image_path"
    output_description = "Extracted text from the image"

    async def execute(self, params: Params) -> MCPResult:
        """Run the OCR pipeline; failures come back as an error result."""
        async with self.context.pipeline_lock:
            logger.info("Processing OCR request for path: %s", params.image_path)
            try:
                result = await self._extract(params.image_path)
            except (ImageValidationError, VisionServiceError, OSError) as exc:
                logger.error("Error in extract_text_from_image: %s", exc)
                return MCPResult.error(str(exc))
            except Exception as exc:
                logger.exception("Unexpected error in extract_text_from_image")
                return MCPResult.error(str(exc))

        return MCPResult.text(
            result.extracted_text,
            f"\n\nText has been saved to: {result.saved_file_path}",
            data=result,
        )

    async def _extract(self, image_path: str) -> ExtractionResult:
        path = validate_image_file(image_path)

        image_bytes = path.read_bytes()
        data_url = encode_image(image_bytes, get_mime_type(path))
        logger.info("Calling vision service for image of size %d bytes", len(image_bytes))

        completion = well_formed(await self.context.vision.complete(INSTRUCTION, data_url))
        extracted_text, analysis = split_completion(completion)
        logger.info("Successfully extracted %d characters of text", len(extracted_text))

        self.context.correlation.record_extraction(path, extracted_text)

        txt_path = save_extracted_text(path, extracted_text)

        if analysis:
            try:
                append_analysis(str(txt_path), analysis)
            except (AnalysisTargetError, OSError) as exc:
                logger.warning("Failed to append initial analysis: %s", exc)

        return ExtractionResult(
            extracted_text=extracted_text,
            analysis_text=analysis,
            saved_file_path=str(txt_path),
        )
