"""
Server context: the state shared by every handler for the process lifetime.

One ServerContext is built at startup and passed to the tools and
notification handlers. It carries the settings, the vision client, the
correlation record that links the most recent extraction to analysis
notifications that arrive later, and the lock that serializes OCR
pipeline runs.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .config import Settings
from .file_store import find_latest_output, utc_timestamp
from .ocr_types import AnalysisEntry

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    async def complete(self, instruction: str, image_data_url: str) -> str: ...


@dataclass
class CorrelationState:
    """Most recent extraction plus every analysis notification received.

    Never persisted; each update overwrites the previous one.
    """

    last_image_path: str | None = None
    last_extracted_text: str | None = None
    analysis_log: list[AnalysisEntry] = field(default_factory=list)

    def record_extraction(self, image_path: str | Path, extracted_text: str) -> None:
        self.last_image_path = str(image_path)
        self.last_extracted_text = extracted_text

    def record_analysis(self, response: str) -> AnalysisEntry:
        entry = AnalysisEntry(timestamp=utc_timestamp(), response=response)
        self.analysis_log.append(entry)
        return entry

    def locate_output_file(self) -> Path | None:
        """Best-effort lookup of the output file for the last extracted image."""
        if not self.last_image_path:
            logger.info("No previous image path found in conversation state")
            return None
        try:
            return find_latest_output(self.last_image_path)
        except OSError as exc:
            logger.warning("Could not scan for output of %s: %s", self.last_image_path, exc)
            return None


@dataclass
class ServerContext:
    settings: Settings
    vision: CompletionClient
    correlation: CorrelationState = field(default_factory=CorrelationState)
    pipeline_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    client_info: Any = None
