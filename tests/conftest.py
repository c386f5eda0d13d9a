"""
Shared fixtures for OCR server tests.

Provides temp image files, a scripted stand-in for the vision service and
a fully wired server context.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from openai_ocr_mcp.config import Settings
from openai_ocr_mcp.context import ServerContext
from openai_ocr_mcp.mcp_base import MCPServer
from openai_ocr_mcp.server import build_server

TEST_API_KEY = "sk-test-" + "a" * 40

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


# ─── Fakes ───────────────────────────────────────────────────────────────────


class FakeVisionClient:
    """Records every call and answers with a scripted completion."""

    def __init__(self, reply: str = "Hello World", error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.delay = 0.0
        self.calls: list[tuple[str, str]] = []

    async def complete(self, instruction: str, image_data_url: str) -> str:
        self.calls.append((instruction, image_data_url))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


# ─── Fixtures ────────────────────────────────────────────────────────────────


@pytest.fixture()
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test files."""
    return tmp_path


@pytest.fixture()
def sample_image(tmp_dir: Path) -> Path:
    """A small PNG-looking file; its bytes are never decoded."""
    img = tmp_dir / "scan.png"
    img.write_bytes(PNG_BYTES)
    return img


@pytest.fixture()
def settings() -> Settings:
    return Settings(api_key=TEST_API_KEY, heartbeat_seconds=0, exit_on_eof=True)


@pytest.fixture()
def vision() -> FakeVisionClient:
    return FakeVisionClient()


@pytest.fixture()
def context(settings: Settings, vision: FakeVisionClient) -> ServerContext:
    return ServerContext(settings=settings, vision=vision)


@pytest.fixture()
def server(context: ServerContext) -> MCPServer:
    return build_server(context)
