"""Tools exposed by the OCR server, in registry order."""

from .append_analysis import AppendAnalysis
from .extract_text_from_image import ExtractTextFromImage

__all__ = ["ExtractTextFromImage", "AppendAnalysis"]
