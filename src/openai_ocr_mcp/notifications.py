"""
notifications/llm_response: attach late-arriving analysis to an output file.

The client may send its own commentary on an extraction as a notification.
If the params name a ``text_file_path`` the analysis goes there; otherwise
the file is found from the correlation state by scanning the last image's
directory for ``{stem}-*.txt`` and taking the last match. With no match
the analysis is only kept in the in-memory log.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from .context import ServerContext
from .tools.append_analysis import append_analysis
from .validation import AnalysisTargetError

logger = logging.getLogger(__name__)


def format_analysis(params: Any) -> str:
    """Render notification params as the text to append."""
    if isinstance(params, str):
        return params
    if isinstance(params, dict) and isinstance(params.get("analysis"), str):
        return params["analysis"]
    return json.dumps(params, indent=2)


def explicit_target(params: Any) -> str | None:
    if isinstance(params, dict) and isinstance(params.get("text_file_path"), str):
        return params["text_file_path"]
    return None


async def handle_llm_response(context: ServerContext, params: Any) -> None:
    """Record an analysis notification and append it to the matching output file."""
    analysis = format_analysis(params)

    # Queue behind any extraction that arrived earlier.
    async with context.pipeline_lock:
        entry = context.correlation.record_analysis(analysis)
        logger.info("LLM response received at %s", entry.timestamp)
        logger.debug("Previous OCR image: %s", context.correlation.last_image_path)

        target = explicit_target(params)
        if target is None:
            located = context.correlation.locate_output_file()
            if located is None:
                logger.info(
                    "Could not find corresponding text file for image: %s",
                    context.correlation.last_image_path,
                )
                return
            target = str(located)

        logger.info("Selected text file to update: %s", target)
        try:
            append_analysis(target, analysis)
        except (AnalysisTargetError, OSError) as exc:
            logger.warning("Error appending analysis to %s: %s", target, exc)
