"""
Shared Pydantic models for the OCR MCP server.

Defines the value types passed between the dispatcher, the tools and the
correlation state:
- ToolInvocation — canonical tool call produced by the normalizer
- ExtractionResult — outcome of one OCR extraction
- AnalysisEntry — one recorded analysis notification
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ToolInvocation(BaseModel):
    """A tool call resolved to its canonical name and arguments."""

    model_config = ConfigDict(frozen=True)

    tool_name: str = Field(description="Registered tool name")
    arguments: dict[str, Any] = Field(default_factory=dict, description="Tool-specific arguments")


class ExtractionResult(BaseModel):
    """Text (and optional analysis) extracted from one image."""

    extracted_text: str = Field(description="Text read from the image")
    analysis_text: str = Field(default="", description="Commentary that followed the text, if any")
    saved_file_path: str = Field(description="Output file the text was written to")


class AnalysisEntry(BaseModel):
    """An analysis notification as recorded in the correlation state."""

    timestamp: str = Field(description="ISO-8601 UTC receipt time")
    response: str = Field(description="Analysis text as it was appended")
