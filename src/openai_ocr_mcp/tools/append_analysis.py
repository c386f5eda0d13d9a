"""
append_analysis — Append an analysis section to an existing OCR text file.

The target must already exist and end in .txt; nothing is created.
Each call appends a new timestamped section, repeated calls are not
deduplicated.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from ..file_store import append_analysis_section
from ..mcp_base import MCPResult, MCPTool
from ..validation import AnalysisTargetError, assert_text_file

logger = logging.getLogger(__name__)


class Params(BaseModel):
    """Parameters for append_analysis."""

    text_file_path: str = Field(description="Path to the OCR text file to append analysis to")
    analysis: str = Field(description="The LLM's analysis to append to the file")


def append_analysis(text_file_path: str, analysis: str) -> None:
    """Validate the target and append ``analysis`` to it."""
    path = assert_text_file(text_file_path)
    append_analysis_section(path, analysis)


class AppendAnalysis(MCPTool[Params]):
    """Append LLM analysis to an OCR text file."""

    name = "append_analysis"
    description = (
        "Append LLM analysis to an OCR text file. "
        "This tool is used to add AI commentary to existing OCR results."
    )
    path_argument = "text_file_path"
    output_description = "Status message about the analysis being appended"

    async def execute(self, params: Params) -> MCPResult:
        logger.info("Appending analysis to file: %s", params.text_file_path)
        try:
            append_analysis(params.text_file_path, params.analysis)
        except (AnalysisTargetError, OSError) as exc:
            logger.error("Error appending analysis: %s", exc)
            return MCPResult.error(str(exc))

        return MCPResult.text(f"Analysis has been appended to: {params.text_file_path}")
